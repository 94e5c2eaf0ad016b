"""
User-user collaborative filtering.

Players are compared on five feature groups (skill, location, play style,
schedule and social circle), each scored 0-1 and combined with fixed
weights. Item scores come from the interactions of the most similar users,
decayed by age.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List, Optional
import math

LEVELS = ["beginner", "intermediate", "advanced", "professional"]
MAX_RATING_DIFF = 1000
MAX_DISTANCE_KM = 50
EARTH_RADIUS_KM = 6371
INTERACTION_WEIGHTS = {
    "played_with": 1.0,
    "attended": 0.8,
    "joined": 0.7,
    "bookmarked": 0.5,
}


class PlayStyle(BaseModel):
    aggressive: float = 0
    defensive: float = 0
    consistent: float = 0
    strategic: float = 0

    def vector(self) -> List[float]:
        return [self.aggressive, self.defensive, self.consistent, self.strategic]


class UserFeatures(BaseModel):
    user_id: str
    level: Optional[str] = None
    skill_rating: Optional[float] = None
    city: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    play_style: Optional[PlayStyle] = None
    preferred_time_slot: Optional[str] = None
    availability_days: Optional[List[str]] = None
    club_memberships: List[str] = Field(default_factory=list)
    frequent_partners: List[str] = Field(default_factory=list)

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None


class SimilarityWeights(BaseModel):
    skill: float = 0.3
    location: float = 0.25
    play_style: float = 0.2
    schedule: float = 0.15
    social: float = 0.1


class FilteringConfig(BaseModel):
    similarity_threshold: float = 0.3
    max_similar_users: int = 50
    weights: SimilarityWeights = Field(default_factory=SimilarityWeights)
    min_interactions: int = 2
    decay_factor: float = 0.95


class Interaction(BaseModel):
    user_id: str
    item_id: str
    interaction_type: str
    interaction_strength: float = 1.0
    timestamp: datetime


DEFAULT_CONFIG = FilteringConfig()


def level_label(level: Optional[float]) -> Optional[str]:
    """Numeric profile level (1.0-7.0) -> coarse label"""
    if level is None:
        return None
    if level < 2.5:
        return "beginner"
    if level < 4:
        return "intermediate"
    if level < 5.5:
        return "advanced"
    return "professional"


def cosine_similarity(a: List[float], b: List[float]) -> float:
    if len(a) != len(b):
        return 0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0
    return dot / (norm_a * norm_b)


def jaccard_similarity(a: List[str], b: List[str]) -> float:
    if not a and not b:
        return 1
    if not a or not b:
        return 0
    return len(set(a) & set(b)) / len(set(a) | set(b))


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def skill_similarity(a: UserFeatures, b: UserFeatures) -> float:
    if a.skill_rating is not None and b.skill_rating is not None:
        return max(0, 1 - abs(a.skill_rating - b.skill_rating) / MAX_RATING_DIFF)
    level_a = LEVELS.index(a.level) if a.level in LEVELS else 1
    level_b = LEVELS.index(b.level) if b.level in LEVELS else 1
    return 1 - abs(level_a - level_b) / (len(LEVELS) - 1)


def location_proximity(a: UserFeatures, b: UserFeatures) -> float:
    if not a.has_location or not b.has_location:
        if a.city and b.city:
            return 1 if a.city == b.city else 0.3
        return 0.5
    distance = haversine_km(a.lat, a.lng, b.lat, b.lng)
    return max(0, 1 - distance / MAX_DISTANCE_KM)


def play_style_match(a: UserFeatures, b: UserFeatures) -> float:
    if a.play_style is None or b.play_style is None:
        return 0.5
    return cosine_similarity(a.play_style.vector(), b.play_style.vector())


def schedule_compatibility(a: UserFeatures, b: UserFeatures) -> float:
    time_match = 0.5
    if a.preferred_time_slot and b.preferred_time_slot:
        time_match = 1 if a.preferred_time_slot == b.preferred_time_slot else 0.3
    days_match = 0.5
    if a.availability_days is not None and b.availability_days is not None:
        days_match = jaccard_similarity(a.availability_days, b.availability_days)
    return (time_match + days_match) / 2


def social_overlap(a: UserFeatures, b: UserFeatures) -> float:
    clubs = jaccard_similarity(a.club_memberships, b.club_memberships)
    partners = jaccard_similarity(a.frequent_partners, b.frequent_partners)
    return (clubs + partners) / 2


def calculate_user_similarity(a: UserFeatures, b: UserFeatures, config: FilteringConfig = DEFAULT_CONFIG) -> Dict:
    breakdown = {
        "skill_similarity": skill_similarity(a, b),
        "location_proximity": location_proximity(a, b),
        "play_style_match": play_style_match(a, b),
        "schedule_compatibility": schedule_compatibility(a, b),
        "social_overlap": social_overlap(a, b),
    }
    weights = config.weights
    overall = (
        breakdown["skill_similarity"] * weights.skill
        + breakdown["location_proximity"] * weights.location
        + breakdown["play_style_match"] * weights.play_style
        + breakdown["schedule_compatibility"] * weights.schedule
        + breakdown["social_overlap"] * weights.social
    )
    return {"user_a": a.user_id, "user_b": b.user_id, "overall_similarity": overall, "breakdown": breakdown}


def find_similar_users(target: UserFeatures, users: List[UserFeatures], config: FilteringConfig = DEFAULT_CONFIG) -> List[Dict]:
    """[{user_id, similarity}] above the threshold, most similar first, at most max_similar_users"""
    scored = [
        {"user_id": u.user_id, "similarity": calculate_user_similarity(target, u, config)["overall_similarity"]}
        for u in users
        if u.user_id != target.user_id
    ]
    scored = [s for s in scored if s["similarity"] >= config.similarity_threshold]
    scored.sort(key=lambda s: s["similarity"], reverse=True)
    return scored[:config.max_similar_users]


def interaction_strength(interaction: Interaction, config: FilteringConfig = DEFAULT_CONFIG, now: Optional[datetime] = None) -> float:
    base = INTERACTION_WEIGHTS.get(interaction.interaction_type, 0.5)
    days = ((now or datetime.utcnow()) - interaction.timestamp).total_seconds() / 86400
    return base * config.decay_factor ** days * interaction.interaction_strength


def score_item_recommendation(
    item_id: str,
    similar_users: List[Dict],
    interactions: List[Interaction],
    config: FilteringConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> float:
    item_interactions = [i for i in interactions if i.item_id == item_id]
    if len(item_interactions) < config.min_interactions:
        return 0

    total_score = 0.0
    total_weight = 0.0
    for similar in similar_users:
        for interaction in item_interactions:
            if interaction.user_id != similar["user_id"]:
                continue
            total_score += interaction_strength(interaction, config, now) * similar["similarity"]
            total_weight += similar["similarity"]
    return total_score / total_weight if total_weight > 0 else 0
