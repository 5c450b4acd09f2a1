"""HTTP tests for the voting API, run in-process over ASGITransport."""

import asyncio

import httpx
import pytest
from sqlalchemy import select

from podium import services
from podium.main import app
from podium.errors import InternalError
from podium.models import Vote


class TestVoteEndpoint:
    async def test_vote_then_status(self, api_client: httpx.AsyncClient):
        response = await api_client.post(
            "/vote", json={"number": 42, "fingerprint": "fp-1"}
        )
        assert response.status_code == 201
        assert response.json() == {"ok": True}

        status = await api_client.get("/vote/status", params={"fp": "fp-1"})
        assert status.status_code == 200
        assert status.json() == {"hasVoted": True}

    async def test_accepts_fp_alias(self, api_client: httpx.AsyncClient):
        response = await api_client.post("/vote", json={"number": 3, "fp": "fp-alias"})

        assert response.status_code == 201

    @pytest.mark.parametrize(
        "payload",
        [
            {"number": -1, "fingerprint": "fp"},
            {"number": 101, "fingerprint": "fp"},
            {"number": 5.5, "fingerprint": "fp"},
            {"number": "5", "fingerprint": "fp"},
            {"number": True, "fingerprint": "fp"},
            {"number": 5, "fingerprint": ""},
            {"number": 5},
            {"fingerprint": "fp"},
        ],
    )
    async def test_invalid_payload_rejected(
        self, api_client: httpx.AsyncClient, count_votes, payload
    ):
        response = await api_client.post("/vote", json=payload)

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "VALIDATION_ERROR"}
        assert await count_votes() == 0

    async def test_malformed_json_rejected(self, api_client: httpx.AsyncClient):
        response = await api_client.post(
            "/vote", content=b"{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_duplicate_is_conflict(self, api_client: httpx.AsyncClient, count_votes):
        first = await api_client.post("/vote", json={"number": 1, "fingerprint": "fp-d"})
        second = await api_client.post("/vote", json={"number": 2, "fingerprint": "fp-d"})

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json() == {"ok": False, "error": "ALREADY_VOTED"}
        assert await count_votes("fp-d") == 1

    async def test_concurrent_duplicates(self, api_client: httpx.AsyncClient, count_votes):
        responses = await asyncio.gather(
            *(
                api_client.post("/vote", json={"number": n, "fingerprint": "fp-race"})
                for n in range(8)
            )
        )

        codes = sorted(r.status_code for r in responses)
        assert codes == [201] + [409] * 7
        assert await count_votes("fp-race") == 1

    async def test_records_forwarded_ip_and_user_agent(
        self, api_client: httpx.AsyncClient, session_factory
    ):
        await api_client.post(
            "/vote",
            json={"number": 8, "fingerprint": "fp-ip"},
            headers={
                "x-forwarded-for": "203.0.113.7, 10.0.0.1",
                "user-agent": "pytest-agent",
            },
        )

        async with session_factory() as session:
            vote = (await session.execute(select(Vote))).scalar_one()
        assert vote.ip == "203.0.113.7"
        assert vote.user_agent == "pytest-agent"

    async def test_missing_forwarded_header_uses_sentinel(
        self, api_client: httpx.AsyncClient, session_factory
    ):
        await api_client.post("/vote", json={"number": 8, "fingerprint": "fp-noip"})

        async with session_factory() as session:
            ip = (await session.execute(select(Vote.ip))).scalar_one()
        assert ip == "unknown"

    async def test_storage_failure_is_opaque(
        self, api_client: httpx.AsyncClient, monkeypatch
    ):
        async def broken(session, **kwargs):
            raise InternalError("database unreachable")

        monkeypatch.setattr(services, "submit_vote", broken)

        response = await api_client.post("/vote", json={"number": 1, "fingerprint": "fp"})

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "INTERNAL_ERROR"}


class TestStatusEndpoint:
    async def test_fresh_fingerprint(self, api_client: httpx.AsyncClient):
        response = await api_client.get("/vote/status", params={"fp": "never"})

        assert response.json() == {"hasVoted": False}

    @pytest.mark.parametrize("params", [{}, {"fp": ""}])
    async def test_missing_fp(self, api_client: httpx.AsyncClient, params):
        response = await api_client.get("/vote/status", params=params)

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_storage_failure_is_opaque(
        self, api_client: httpx.AsyncClient, monkeypatch
    ):
        async def broken(session, fingerprint):
            raise InternalError("database unreachable")

        monkeypatch.setattr(services, "has_voted", broken)

        response = await api_client.get("/vote/status", params={"fp": "fp"})

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "INTERNAL_ERROR"}


class TestResultsAndFeed:
    async def test_aggregation(self, api_client: httpx.AsyncClient, cast_votes):
        await cast_votes([5, 5, 3, 9, 9, 9])

        response = await api_client.get("/results")

        assert response.status_code == 200
        assert response.json() == {
            "counts": {"3": 1, "5": 2, "9": 3},
            "top3": [
                {"number": 9, "count": 3},
                {"number": 5, "count": 2},
                {"number": 3, "count": 1},
            ],
            "totalVotes": 6,
        }

    async def test_tie_break(self, api_client: httpx.AsyncClient, cast_votes):
        await cast_votes([7, 7, 4, 4])

        top3 = (await api_client.get("/results")).json()["top3"]

        assert top3 == [{"number": 4, "count": 2}, {"number": 7, "count": 2}]

    async def test_empty(self, api_client: httpx.AsyncClient):
        results = await api_client.get("/results")
        votes = await api_client.get("/votes")

        assert results.json() == {"counts": {}, "top3": [], "totalVotes": 0}
        assert votes.json() == {"votes": []}

    async def test_feed_order(self, api_client: httpx.AsyncClient, cast_votes):
        await cast_votes([10, 20, 10])

        response = await api_client.get("/votes")

        assert response.status_code == 200
        assert response.json() == {"votes": [10, 20, 10]}

    @pytest.mark.parametrize(
        "path, target",
        [("/results", "aggregate_results"), ("/votes", "list_vote_numbers")],
    )
    async def test_storage_failure_is_opaque(
        self, api_client: httpx.AsyncClient, monkeypatch, path, target
    ):
        async def broken(session):
            raise InternalError("database unreachable")

        monkeypatch.setattr(services, target, broken)

        response = await api_client.get(path)

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "INTERNAL_ERROR"}


async def test_health(api_client: httpx.AsyncClient):
    response = await api_client.get("/health")

    assert response.json() == {"status": "ok"}


async def test_unexpected_error_hides_details(api_client: httpx.AsyncClient, monkeypatch):
    async def broken(session):
        raise RuntimeError("secret connection string in here")

    monkeypatch.setattr(services, "aggregate_results", broken)
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/results")

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "INTERNAL_ERROR"}
    assert "secret" not in response.text
