"""
Tests for collaborative filtering and the recommendation service.
"""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from app.modules.discovery.collaborative_filtering import (
    FilteringConfig,
    Interaction,
    PlayStyle,
    UserFeatures,
    calculate_user_similarity,
    cosine_similarity,
    find_similar_users,
    interaction_strength,
    jaccard_similarity,
    level_label,
    location_proximity,
    score_item_recommendation,
    skill_similarity,
)
from app.modules.discovery.recommendations import RecommendationService, features_from_profile, player_reason
from app.modules.discovery.schemas import GenerateRecommendationsRequest, RecommendationFeedback

NOW = datetime(2026, 10, 1, 12, 0, 0)


def player(user_id, **kwargs):
    defaults = {
        "level": "advanced",
        "city": "Madrid",
        "lat": 40.4168,
        "lng": -3.7038,
        "play_style": PlayStyle(aggressive=0.8, consistent=0.4),
        "preferred_time_slot": "evening",
        "availability_days": ["mon", "wed"],
    }
    defaults.update(kwargs)
    return UserFeatures(user_id=user_id, **defaults)


# =============================================================================
# Similarity
# =============================================================================

class TestSimilarity:
    """Feature comparisons between two players"""

    @pytest.mark.parametrize("level,label", [(None, None), (1.5, "beginner"), (3.0, "intermediate"),
                                             (4.5, "advanced"), (6.0, "professional")])
    def test_level_label(self, level, label):
        assert level_label(level) == label

    def test_cosine_and_jaccard(self):
        assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1)
        assert cosine_similarity([1, 0], [0, 1]) == 0
        assert cosine_similarity([0, 0], [1, 0]) == 0
        assert jaccard_similarity([], []) == 1
        assert jaccard_similarity(["a"], []) == 0
        assert jaccard_similarity(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)

    def test_identical_players_are_fully_similar(self):
        result = calculate_user_similarity(player("a"), player("b"))
        assert result["overall_similarity"] == pytest.approx(1)
        assert set(result["breakdown"]) == {
            "skill_similarity", "location_proximity", "play_style_match",
            "schedule_compatibility", "social_overlap",
        }

    def test_location_falls_back_to_city(self):
        a = player("a", lat=None, lng=None)
        assert location_proximity(a, player("b", lat=None, lng=None)) == 1
        assert location_proximity(a, player("c", lat=None, lng=None, city="Sevilla")) == 0.3
        assert location_proximity(a, player("d", lat=None, lng=None, city=None)) == 0.5

    def test_far_away_players_get_no_location_score(self):
        assert location_proximity(player("a"), player("b", lat=41.3874, lng=2.1686)) == 0

    def test_skill_rating_beats_level(self):
        a = player("a", skill_rating=1500)
        b = player("b", level="beginner", skill_rating=1400)
        result = calculate_user_similarity(a, b)
        assert result["breakdown"]["skill_similarity"] == pytest.approx(0.9)

    def test_skill_similarity_never_negative(self):
        a = player("a", skill_rating=3000)
        b = player("b", skill_rating=500)
        assert skill_similarity(a, b) == 0
        result = calculate_user_similarity(a, b)
        assert result["breakdown"]["skill_similarity"] == 0
        assert 0 <= result["overall_similarity"] <= 1

    def test_find_similar_users(self):
        target = player("me")
        users = [
            target,
            player("twin"),
            player("far", level="beginner", lat=28.1, lng=-15.4, play_style=PlayStyle(defensive=1),
                   preferred_time_slot="morning", availability_days=["sat"], club_memberships=["x"]),
        ]
        similar = find_similar_users(target, users, FilteringConfig(similarity_threshold=0.5))
        assert [s["user_id"] for s in similar] == ["twin"]


# =============================================================================
# Item scores
# =============================================================================

class TestItemScoring:
    """Interactions of similar users, decayed by age"""

    def test_interaction_decay(self):
        interaction = Interaction(
            user_id="u", item_id="t1", interaction_type="played_with", timestamp=NOW - timedelta(days=1)
        )
        assert interaction_strength(interaction, now=NOW) == pytest.approx(0.95)

    def test_item_needs_minimum_interactions(self):
        interactions = [Interaction(user_id="u1", item_id="t1", interaction_type="joined", timestamp=NOW)]
        assert score_item_recommendation("t1", [{"user_id": "u1", "similarity": 0.9}], interactions, now=NOW) == 0

    def test_item_score_is_similarity_weighted(self):
        interactions = [
            Interaction(user_id="u1", item_id="t1", interaction_type="attended", timestamp=NOW),
            Interaction(user_id="u2", item_id="t1", interaction_type="bookmarked", timestamp=NOW),
            Interaction(user_id="stranger", item_id="t1", interaction_type="attended", timestamp=NOW),
        ]
        similar = [{"user_id": "u1", "similarity": 1.0}, {"user_id": "u2", "similarity": 1.0}]
        score = score_item_recommendation("t1", similar, interactions, now=NOW)
        assert score == pytest.approx((0.8 + 0.5) / 2)


# =============================================================================
# RecommendationService
# =============================================================================

class TestRecommendationService:
    """Generating, listing and feedback"""

    def test_features_from_profile(self):
        features = features_from_profile(
            {"id": "u1", "level": 4.2, "city": "Madrid", "preferences": {
                "play_style": {"aggressive": 0.5}, "preferred_time_slot": "morning",
            }},
            clubs=["org-1"],
        )
        assert features.level == "advanced"
        assert features.play_style.aggressive == 0.5
        assert features.club_memberships == ["org-1"]
        assert player_reason(features, player("x")) == "Same level of play (advanced)"

    def test_cannot_generate_for_someone_else(self, fake_db, current_user):
        request = GenerateRecommendationsRequest(type="players", user_id="someone-else")
        with pytest.raises(HTTPException) as exc:
            RecommendationService(fake_db).request_recommendations(request, current_user)
        assert exc.value.status_code == 403

    def test_fresh_recommendations_are_not_regenerated(self, fake_db, current_user):
        fake_db.queue("subscription", [{"plan": "premium", "status": "active"}])
        fake_db.queue("recommendation", [], count=10)

        result = RecommendationService(fake_db).request_recommendations(
            GenerateRecommendationsRequest(type="players"), current_user
        )
        assert result == {"generated": 0, "count": 10, "message": "Fresh recommendations already exist"}
        assert fake_db.called("usage_log", "insert") == []

    def test_player_recommendations(self, fake_db, current_user):
        fake_db.queue("subscription", [{"plan": "premium", "status": "active"}])
        fake_db.queue("recommendation", [], count=0)
        fake_db.queue("user_profile", [{"id": "user-1", "level": 4.0, "city": "Madrid", "lat": 40.4, "lng": -3.7}])
        fake_db.queue("follow", [{"following_id": "followed"}])
        fake_db.queue("user_profile", [
            {"id": "match", "level": 4.5, "city": "Madrid", "lat": 40.4, "lng": -3.7},
            {"id": "far", "level": 1.0, "city": "Sevilla", "lat": 37.38, "lng": -5.98},
            {"id": "followed", "level": 4.0, "city": "Madrid", "lat": 40.4, "lng": -3.7},
        ])

        result = RecommendationService(fake_db).request_recommendations(
            GenerateRecommendationsRequest(type="players"), current_user
        )

        assert result["generated"] == 1
        recommendation = result["recommendations"][0]
        assert recommendation["recommended_id"] == "match"
        assert recommendation["reason"] == "Same level of play (advanced)"
        inserted, = fake_db.called("recommendation", "insert")[0]
        assert inserted[0]["user_id"] == "user-1"
        assert inserted[0]["shown"] is False
        usage, = fake_db.called("usage_log", "insert")[0]
        assert usage["metadata"]["count"] == 1

    def test_club_recommendations_scored_by_distance(self, fake_db):
        fake_db.queue("user_profile", [{"id": "user-1", "lat": 40.4, "lng": -3.7}])
        fake_db.queue("rpc:get_nearby_clubs", [{"club_id": "org-1", "club_name": "Padel Norte", "distance_km": 5}])

        recommendations = RecommendationService(fake_db).generate("user-1", "clubs")
        assert recommendations[0]["score"] == pytest.approx(0.75)
        assert recommendations[0]["reason"] == "Club 5km away"

    def test_clubs_need_a_location(self, fake_db):
        fake_db.queue("user_profile", [{"id": "user-1", "lat": None, "lng": None}])
        assert RecommendationService(fake_db).generate("user-1", "clubs") == []

    def test_listing_marks_recommendations_shown(self, fake_db):
        fake_db.queue("recommendation", [{"id": "r1"}, {"id": "r2"}])
        result = RecommendationService(fake_db).list_recommendations("user-1")

        assert result["total"] == 2
        assert fake_db.called("recommendation", "update") == [({"shown": True},)]
        assert ("id", ["r1", "r2"]) in fake_db.called("recommendation", "in_")

    def test_feedback_on_unknown_recommendation(self, fake_db):
        with pytest.raises(HTTPException) as exc:
            RecommendationService(fake_db).record_feedback(RecommendationFeedback(recommendation_id="r1"), "user-1")
        assert exc.value.status_code == 404

    def test_feedback_on_someone_elses_recommendation(self, fake_db):
        fake_db.queue("recommendation", [{"user_id": "other"}])
        with pytest.raises(HTTPException) as exc:
            RecommendationService(fake_db).record_feedback(
                RecommendationFeedback(recommendation_id="r1", clicked=True), "user-1"
            )
        assert exc.value.status_code == 403

    def test_feedback_updates_flags(self, fake_db):
        fake_db.queue("recommendation", [{"user_id": "user-1"}])
        RecommendationService(fake_db).record_feedback(
            RecommendationFeedback(recommendation_id="r1", clicked=True), "user-1"
        )
        assert fake_db.called("recommendation", "update") == [({"clicked": True},)]

    def test_route_reports_fresh_recommendations(self, client, fake_db):
        fake_db.queue("subscription", [{"plan": "premium", "status": "active"}])
        fake_db.queue("recommendation", [], count=10)

        response = client.post("/api/v1/recommendations", json={"type": "players"})
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Fresh recommendations already exist"
        assert body["data"] == {"generated": 0, "count": 10}
