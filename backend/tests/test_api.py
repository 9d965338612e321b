from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

from studydeck import app
from studydeck.services import task_registry

pytestmark = pytest.mark.asyncio

ANA = {"X-Learner-Id": "ana"}


@pytest_asyncio.fixture
async def client(db):
    """HTTP client bound to the app; the ``db`` fixture has initialized storage."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestHealth:
    async def test_health(self, client):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}


class TestLearnerIdentity:
    @pytest.mark.parametrize("headers", [{}, {"X-Learner-Id": "   "}])
    async def test_missing_learner_is_rejected(self, client, headers):
        res = await client.get("/study/due-cards", headers=headers)
        assert res.status_code == 401


class TestCardSets:
    async def test_create_get_delete(self, client):
        res = await client.post("/card-sets/", json={"title": "Kanji N5"})
        assert res.status_code == 201
        set_id = res.json()["id"]

        res = await client.get(f"/card-sets/{set_id}")
        assert res.json()["title"] == "Kanji N5"

        res = await client.get("/card-sets/")
        assert res.json()["total"] == 1

        assert (await client.delete(f"/card-sets/{set_id}")).status_code == 204
        assert (await client.get(f"/card-sets/{set_id}")).status_code == 404
        assert (await client.delete(f"/card-sets/{set_id}")).status_code == 404


class TestStudyFlow:
    async def test_review_then_query(self, client, seed_set):
        deck = await seed_set("Deck")

        res = await client.post(
            "/study/cards/c1/review",
            json={"card_set_id": deck, "is_correct": True, "confidence_rating": 5},
            headers=ANA,
        )
        assert res.status_code == 200
        body = res.json()
        assert body["interval"] == 1
        assert body["repetitions"] == 1
        assert body["easiness_factor"] == pytest.approx(2.6)

        res = await client.get("/study/due-cards", headers=ANA)
        assert res.json() == {"sets": [], "total_due": 0}

        res = await client.get("/study/due-cards/schedule", headers=ANA)
        schedule = res.json()
        assert schedule["tomorrow"]["count"] == 1
        assert len(schedule["days"]) == 14

    async def test_out_of_range_confidence_is_accepted(self, client):
        res = await client.post(
            "/study/cards/c1/review",
            json={"card_set_id": "deck", "is_correct": False, "confidence_rating": 9},
            headers=ANA,
        )
        assert res.status_code == 200
        assert res.json()["quality"] == 0

    async def test_due_cards_with_orphan(self, client, seed_set, seed_state):
        now = datetime.now(timezone.utc)
        deck = await seed_set("Deck")
        await seed_state("ana", deck, "c1", now, timedelta(days=-1))
        await seed_state("ana", "deleted-set", "c2", now, timedelta(days=-1))

        res = await client.get("/study/due-cards", headers=ANA)
        assert res.status_code == 200
        assert res.json() == {
            "sets": [
                {
                    "card_set_id": deck,
                    "card_set_name": "Deck",
                    "due_count": 1,
                    "due_card_ids": ["c1"],
                }
            ],
            "total_due": 1,
        }
        await task_registry.drain()

        res = await client.get(f"/study/due-cards?set_id={deck}", headers=ANA)
        assert res.json()["total_due"] == 1

    async def test_store_failure_maps_to_503(self, client, db):
        await db.execute("DROP TABLE review_states")
        await db.commit()

        res = await client.get("/study/due-cards", headers=ANA)
        assert res.status_code == 503
        assert res.json()["detail"] == "Could not load due cards"

    async def test_schedule_rejects_bad_horizon(self, client):
        res = await client.get("/study/due-cards/schedule?days=0", headers=ANA)
        assert res.status_code == 422
