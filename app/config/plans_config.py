"""
Subscription Plans Configuration
This config defines every subscription plan, its feature flags and its monthly usage quotas.
Used by the usage limiter at request time and by the seed script to populate the plan tables.
"""

UNLIMITED = -1

# Monthly usage quotas per plan (UNLIMITED = no cap)
USAGE_LIMITS = {
    "free": {
        "tournaments": 10,
        "teams": 5,
        "bookings": 2,
        "recommendations": 10,
    },
    "pro": {
        "tournaments": 50,
        "teams": 20,
        "bookings": 10,
        "recommendations": 100,
    },
    "dual": {
        "tournaments": UNLIMITED,
        "teams": UNLIMITED,
        "bookings": UNLIMITED,
        "recommendations": UNLIMITED,
    },
    "premium": {
        "tournaments": UNLIMITED,
        "teams": UNLIMITED,
        "bookings": UNLIMITED,
        "recommendations": UNLIMITED,
    },
    "club": {
        "tournaments": UNLIMITED,
        "teams": UNLIMITED,
        "bookings": UNLIMITED,
        "recommendations": UNLIMITED,
    },
}

# Feature flags shown on the pricing page and returned with the current subscription
PLAN_FEATURES = {
    "free": {
        "analytics": False,
        "achievements": True,
        "leaderboards": True,
        "priority_support": False,
        "ad_free": False,
        "custom_branding": False,
        "api_access": False,
    },
    "pro": {
        "analytics": True,
        "achievements": True,
        "leaderboards": True,
        "priority_support": True,
        "ad_free": True,
        "custom_branding": False,
        "api_access": False,
    },
    "dual": {
        "analytics": True,
        "achievements": True,
        "leaderboards": True,
        "priority_support": True,
        "ad_free": True,
        "custom_branding": False,
        "api_access": False,
    },
    "premium": {
        "analytics": True,
        "achievements": True,
        "leaderboards": True,
        "priority_support": True,
        "ad_free": True,
        "custom_branding": True,
        "api_access": True,
    },
    "club": {
        "analytics": True,
        "achievements": True,
        "leaderboards": True,
        "priority_support": True,
        "ad_free": True,
        "custom_branding": True,
        "api_access": True,
    },
}

PLAN_DESCRIPTIONS = {
    "free": "Get started with padel tournaments and the social feed",
    "pro": "For regular players who organise and compete every week",
    "dual": "Pro for two players sharing one account",
    "premium": "Unlimited everything plus API access",
    "club": "For clubs running tournaments for their members",
}

PAID_PLANS = ["pro", "dual", "premium", "club"]

# Usage log feature name -> quota key
FEATURE_LIMIT_KEYS = {
    "tournament_created": "tournaments",
    "team_created": "teams",
    "booking_created": "bookings",
    "recommendation_created": "recommendations",
}


def get_plan_limits(plan: str) -> dict:
    """Usage quotas merged with feature flags; unknown plans fall back to free"""
    if plan not in USAGE_LIMITS:
        plan = "free"
    return {**USAGE_LIMITS[plan], **PLAN_FEATURES[plan]}


def get_plan_matrix():
    """
    Returns every plan with its quotas and features
    Format: {
        "plans": [
            {"name": "free", "description": "...", "paid": False, "limits": {...}, "features": {...}},
            ...
        ]
    }
    """
    plans = []
    for plan_name, limits in USAGE_LIMITS.items():
        plans.append({
            "name": plan_name,
            "description": PLAN_DESCRIPTIONS[plan_name],
            "paid": plan_name in PAID_PLANS,
            "limits": dict(limits),
            "features": dict(PLAN_FEATURES[plan_name]),
        })
    return {"plans": plans}


# Export the matrix for use in seed scripts
PLAN_MATRIX = get_plan_matrix()
