"""
HTTP contract tests for /api/feedback and /health.
"""

from feedbackhub.schemas import Submission
from feedbackhub.services.analysis import AnalysisEnricher
from feedbackhub.services.feedback_service import FeedbackService
from feedbackhub.services.store import InMemorySubmissionStore, SubmissionStoreError


FALLBACK_SENTIMENT = "Neutral"


class BrokenStore(InMemorySubmissionStore):
    """Store whose every operation fails like a lost database connection."""

    async def insert(self, submission):
        raise SubmissionStoreError("connection lost")

    async def list_all(self):
        raise SubmissionStoreError("connection lost")

    async def update_partial(self, submission_id, fields):
        raise SubmissionStoreError("connection lost")


class CrashingStore(InMemorySubmissionStore):
    async def list_all(self):
        raise RuntimeError("unexpected")


def _use_store(client, store):
    client.app.state.feedback_service = FeedbackService(store, AnalysisEnricher(None))


class TestSubmitFeedback:
    def test_end_to_end_with_ai_disabled(self, client):
        response = client.post("/api/feedback", json={"rating": 5, "reviewText": "Great service!"})

        assert response.status_code == 201
        body = response.json()
        assert body["rating"] == 5
        assert body["reviewText"] == "Great service!"
        assert body["aiAnalysis"]["sentiment"] == FALLBACK_SENTIMENT
        assert body["aiAnalysis"]["summary"] == "AI analysis unavailable at this moment."
        assert body["helpfulResponse"] is None
        assert body["id"]
        assert isinstance(body["timestamp"], int)

        listing = client.get("/api/feedback")
        assert listing.status_code == 200
        assert listing.json()[0] == body

    def test_response_uses_camel_case(self, client):
        body = client.post("/api/feedback", json={"rating": 3, "reviewText": "Fine"}).json()

        assert set(body) == {"id", "rating", "reviewText", "timestamp", "aiAnalysis", "helpfulResponse"}
        assert set(body["aiAnalysis"]) == {"userResponse", "summary", "recommendedActions", "sentiment"}

    def test_client_supplied_analysis_is_kept(self, client):
        analysis = {
            "userResponse": "Sorry to hear that.",
            "summary": "Customer unhappy with wait time.",
            "recommendedActions": ["Add staff", "Apologise", "Track wait times"],
            "sentiment": "Negative",
        }

        response = client.post(
            "/api/feedback", json={"rating": 1, "reviewText": "Waited an hour", "aiAnalysis": analysis}
        )

        assert response.status_code == 201
        assert response.json()["aiAnalysis"] == analysis

    def test_missing_fields_rejected(self, client):
        for payload in [{"rating": 4}, {"reviewText": "No rating"}, {}]:
            response = client.post("/api/feedback", json=payload)
            assert response.status_code == 400
            assert "message" in response.json()

    def test_rating_out_of_range_rejected(self, client):
        for rating in [0, 6, -1]:
            response = client.post("/api/feedback", json={"rating": rating, "reviewText": "x"})
            assert response.status_code == 400
            assert "rating" in response.json()["message"]

    def test_rating_must_be_integer(self, client):
        for rating in ["5", 4.5, True, None]:
            response = client.post("/api/feedback", json={"rating": rating, "reviewText": "x"})
            assert response.status_code == 400

    def test_blank_review_rejected(self, client):
        response = client.post("/api/feedback", json={"rating": 4, "reviewText": "   "})

        assert response.status_code == 400
        assert "reviewText" in response.json()["message"]

    def test_malformed_analysis_rejected(self, client):
        response = client.post(
            "/api/feedback",
            json={"rating": 4, "reviewText": "Nice", "aiAnalysis": {"sentiment": "Happy"}},
        )

        assert response.status_code == 400

    def test_storage_failure_is_400(self, client):
        _use_store(client, BrokenStore())

        response = client.post("/api/feedback", json={"rating": 4, "reviewText": "Nice"})

        assert response.status_code == 400
        assert "connection lost" in response.json()["message"]


class TestListFeedback:
    def test_empty_list(self, client):
        response = client.get("/api/feedback")

        assert response.status_code == 200
        assert response.json() == []

    def test_newest_first(self, client):
        ids = [
            client.post("/api/feedback", json={"rating": r, "reviewText": f"review {r}"}).json()["id"]
            for r in (1, 2, 3)
        ]

        listed = client.get("/api/feedback").json()

        assert [item["id"] for item in listed] == list(reversed(ids))
        timestamps = [item["timestamp"] for item in listed]
        assert timestamps == sorted(timestamps, reverse=True)

    def _seed(self, client):
        reviews = [
            (5, "Loved the friendly staff", "Positive"),
            (2, "Checkout was slow", "Negative"),
            (4, "Friendly but pricey", "Positive"),
            (3, "It was fine", "Neutral"),
        ]
        for rating, text, sentiment in reviews:
            analysis = {
                "userResponse": "Thanks!",
                "summary": f"{sentiment} review",
                "recommendedActions": ["Follow up"],
                "sentiment": sentiment,
            }
            client.post(
                "/api/feedback", json={"rating": rating, "reviewText": text, "aiAnalysis": analysis}
            )

    def _texts(self, client, **params):
        response = client.get("/api/feedback", params=params)
        assert response.status_code == 200
        return [item["reviewText"] for item in response.json()]

    def test_search_is_case_insensitive(self, client):
        self._seed(client)

        assert self._texts(client, search="FRIENDLY") == ["Friendly but pricey", "Loved the friendly staff"]

    def test_search_matches_summary(self, client):
        self._seed(client)

        assert self._texts(client, search="negative review") == ["Checkout was slow"]

    def test_filter_by_rating(self, client):
        self._seed(client)

        assert self._texts(client, rating=3) == ["It was fine"]

    def test_filter_by_sentiment(self, client):
        self._seed(client)

        assert self._texts(client, sentiment="Positive") == ["Friendly but pricey", "Loved the friendly staff"]

    def test_filters_combine(self, client):
        self._seed(client)

        assert self._texts(client, search="friendly", rating=5, sentiment="Positive") == [
            "Loved the friendly staff"
        ]
        assert self._texts(client, search="friendly", sentiment="Negative") == []

    def test_blank_search_returns_everything(self, client):
        self._seed(client)

        assert len(self._texts(client, search="  ")) == 4

    def test_invalid_filters_rejected(self, client):
        for params in [{"rating": 0}, {"rating": 6}, {"rating": "five"}, {"sentiment": "Happy"}]:
            response = client.get("/api/feedback", params=params)
            assert response.status_code == 400
            assert "message" in response.json()

    def test_storage_failure_is_500(self, client):
        _use_store(client, BrokenStore())

        response = client.get("/api/feedback")

        assert response.status_code == 500
        assert response.json() == {"message": "connection lost"}

    def test_unexpected_error_still_answered(self, client):
        _use_store(client, CrashingStore())

        response = client.get("/api/feedback")

        assert response.status_code == 500
        assert response.json() == {"message": "Internal server error"}
        # Service keeps serving afterwards
        assert client.get("/health").status_code == 200


class TestPatchFeedback:
    def test_helpful_vote(self, client):
        created = client.post("/api/feedback", json={"rating": 5, "reviewText": "Great"}).json()

        response = client.patch(f"/api/feedback/{created['id']}", json={"helpfulResponse": True})

        assert response.status_code == 200
        assert response.json() == {**created, "helpfulResponse": True}
        assert client.get("/api/feedback").json()[0]["helpfulResponse"] is True

    def test_vote_can_be_changed(self, client):
        created = client.post("/api/feedback", json={"rating": 5, "reviewText": "Great"}).json()
        client.patch(f"/api/feedback/{created['id']}", json={"helpfulResponse": True})

        response = client.patch(f"/api/feedback/{created['id']}", json={"helpfulResponse": False})

        assert response.json()["helpfulResponse"] is False

    def test_unknown_id_is_404(self, client):
        client.post("/api/feedback", json={"rating": 5, "reviewText": "Great"})
        before = client.get("/api/feedback").json()

        response = client.patch("/api/feedback/nonexistent", json={"helpfulResponse": True})

        assert response.status_code == 404
        assert response.json() == {"message": "Not found"}
        assert client.get("/api/feedback").json() == before

    def test_other_fields_cannot_be_patched(self, client):
        created = client.post("/api/feedback", json={"rating": 5, "reviewText": "Great"}).json()

        response = client.patch(
            f"/api/feedback/{created['id']}", json={"helpfulResponse": True, "timestamp": 0}
        )

        assert response.status_code == 400
        assert client.get("/api/feedback").json()[0] == created

    def test_empty_patch_rejected(self, client):
        created = client.post("/api/feedback", json={"rating": 5, "reviewText": "Great"}).json()

        response = client.patch(f"/api/feedback/{created['id']}", json={})

        assert response.status_code == 400

    def test_vote_must_be_a_real_boolean(self, client):
        created = client.post("/api/feedback", json={"rating": 5, "reviewText": "Great"}).json()

        for value in ["no", "yes", "off", 1, 0]:
            response = client.patch(f"/api/feedback/{created['id']}", json={"helpfulResponse": value})
            assert response.status_code == 400
            assert "helpfulResponse" in response.json()["message"]

        assert client.get("/api/feedback").json()[0]["helpfulResponse"] is None

    def test_vote_can_be_cleared(self, client):
        created = client.post("/api/feedback", json={"rating": 5, "reviewText": "Great"}).json()
        client.patch(f"/api/feedback/{created['id']}", json={"helpfulResponse": True})

        response = client.patch(f"/api/feedback/{created['id']}", json={"helpfulResponse": None})

        assert response.status_code == 200
        assert response.json()["helpfulResponse"] is None

    def test_storage_failure_is_400(self, client):
        _use_store(client, BrokenStore())

        response = client.patch("/api/feedback/abc", json={"helpfulResponse": True})

        assert response.status_code == 400


class TestStats:
    def test_stats(self, client):
        for rating in (5, 4, 1):
            client.post("/api/feedback", json={"rating": rating, "reviewText": "text"})

        body = client.get("/api/feedback/stats").json()

        assert body["totalReviews"] == 3
        assert body["averageRating"] == 3.3
        assert body["sentimentDistribution"] == {"Positive": 0, "Neutral": 3, "Negative": 0}
        assert body["ratingDistribution"][0] == {"rating": 1, "count": 1}
        assert body["helpfulVotes"] == {"helpful": 0, "notHelpful": 0, "unanswered": 3}

    def test_average_rating_has_one_decimal(self, client):
        for rating in (5, 4, 4):
            client.post("/api/feedback", json={"rating": rating, "reviewText": "text"})

        assert client.get("/api/feedback/stats").json()["averageRating"] == 4.3

    def test_stats_storage_failure_is_500(self, client):
        _use_store(client, BrokenStore())

        assert client.get("/api/feedback/stats").status_code == 500


class TestHealthAndStorageSelection:
    def test_health_in_memory(self, client):
        body = client.get("/health").json()

        assert body["status"] == "ok"
        assert body["storage"] == "memory"
        assert body["aiConfigured"] is False

    def test_database_backend_selected_when_configured(self, make_client, tmp_path):
        client = make_client(database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")

        assert client.get("/health").json()["storage"] == "database"
        created = client.post("/api/feedback", json={"rating": 4, "reviewText": "Stored"}).json()
        listed = client.get("/api/feedback").json()
        assert [Submission.model_validate(item).id for item in listed] == [created["id"]]

    def test_unreachable_database_falls_back_to_memory(self, make_client, tmp_path):
        client = make_client(database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'api.db'}")

        assert client.get("/health").json()["storage"] == "memory"
        assert client.post("/api/feedback", json={"rating": 4, "reviewText": "Kept"}).status_code == 201

    def test_ai_configured_flag(self, make_client):
        client = make_client(api_key="sk-test")

        assert client.get("/health").json()["aiConfigured"] is True
