"""
Unit tests for collaborator services and the profile service HTTP client.
"""

import json

import httpx
import pytest

from lingo_core.core.models import ChunkStatus, LearnerProfile
from lingo_core.services.collaborators import (
    ContentService,
    InMemoryContentService,
    InMemoryProfileService,
    ProfileService,
    update_confidence_score,
)
from lingo_core.services.profile_client import ProfileServiceClient


class TestUpdateConfidenceScore:
    """Rolling confidence average."""

    def test_correct(self):
        assert update_confidence_score(0.5, True, False) == pytest.approx(0.55)

    def test_correct_with_help_is_partial(self):
        assert update_confidence_score(0.5, True, True) == pytest.approx(0.52)

    def test_wrong(self):
        assert update_confidence_score(0.5, False, False) == pytest.approx(0.45)

    def test_stays_in_range(self):
        assert update_confidence_score(1.0, True, False) == pytest.approx(1.0)
        assert update_confidence_score(0.0, False, True) == 0.0


class TestLearnerProfileFromRecord:
    """Collaborator records map to safe defaults."""

    def test_camel_case_record(self):
        profile = LearnerProfile.from_record(
            {
                "userId": "u1",
                "averageConfidence": 0.8,
                "filterRiskScore": 0.3,
                "chunksAcquired": 420,
                "lastActivityAt": "2025-03-01T08:00:00Z",
            }
        )
        assert profile.user_id == "u1"
        assert profile.average_confidence == pytest.approx(0.8)
        assert profile.chunks_acquired == 420
        assert profile.last_activity_at.year == 2025

    def test_malformed_fields_fall_back(self):
        profile = LearnerProfile.from_record(
            {
                "average_confidence": "not a number",
                "wrong_answer_rate": 3.0,
                "chunks_acquired": None,
                "last_activity_at": "yesterday-ish",
            }
        )
        assert profile.average_confidence == 0.5
        assert profile.wrong_answer_rate == 1.0
        assert profile.chunks_acquired == 0
        assert profile.last_activity_at is None

    def test_round_trip_keys(self):
        data = LearnerProfile(user_id="u1", chunks_acquired=3).to_dict()
        assert data["user_id"] == "u1"
        assert data["last_activity_at"] is None


class TestInMemoryServices:
    """In-memory collaborators."""

    def test_protocol_conformance(self):
        assert isinstance(InMemoryProfileService(), ProfileService)
        assert isinstance(InMemoryContentService(), ContentService)

    @pytest.mark.asyncio
    async def test_record_struggle_caps_at_one(self):
        service = InMemoryProfileService({"u1": LearnerProfile(user_id="u1", filter_risk_score=0.95)})
        await service.record_struggle("u1")
        profile = await service.get_profile("u1")
        assert profile.filter_risk_score == 1.0

    @pytest.mark.asyncio
    async def test_blend_filter_risk(self):
        service = InMemoryProfileService({"u1": LearnerProfile(user_id="u1", filter_risk_score=0.5)})
        await service.blend_filter_risk("u1", 1.0)
        profile = await service.get_profile("u1")
        assert profile.filter_risk_score == pytest.approx(0.6)

    @pytest.mark.asyncio
    async def test_missing_profile_is_ignored(self):
        service = InMemoryProfileService()
        await service.update_confidence("ghost", True, False)
        await service.record_struggle("ghost")
        assert await service.get_profile("ghost") is None

    @pytest.mark.asyncio
    async def test_chunk_acquired_after_clean_streak(self):
        service = InMemoryContentService()
        for _ in range(3):
            await service.record_encounter("u1", "hola", True, 2000, False)
        assert service.chunk_progress("u1", "hola").status == ChunkStatus.ACQUIRED
        assert await service.chunks_acquired("u1") == 1

    @pytest.mark.asyncio
    async def test_acquired_chunk_becomes_fragile(self):
        service = InMemoryContentService()
        for _ in range(3):
            await service.record_encounter("u1", "hola", True, 2000, False)
        await service.record_encounter("u1", "hola", False, 9000, False)
        chunk = service.chunk_progress("u1", "hola")
        assert chunk.status == ChunkStatus.FRAGILE
        assert chunk.wrong_attempts == 1
        assert await service.chunks_acquired("u1") == 0

    @pytest.mark.asyncio
    async def test_helped_answers_do_not_build_streak(self):
        service = InMemoryContentService()
        for _ in range(3):
            await service.record_encounter("u1", "adios", True, 2000, True)
        chunk = service.chunk_progress("u1", "adios")
        assert chunk.status == ChunkStatus.LEARNING
        assert chunk.help_used_count == 3


def make_client(handler, api_key="secret"):
    return ProfileServiceClient(
        "http://profiles.test/",
        api_key=api_key,
        transport=httpx.MockTransport(handler),
    )


class TestProfileServiceClient:
    """HTTP client against a mocked transport."""

    @pytest.mark.asyncio
    async def test_get_profile(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(
                200, json={"averageConfidence": 0.7, "chunksAcquired": 310, "filterRiskScore": 0.2}
            )

        async with make_client(handler) as client:
            profile = await client.get_profile("u1")

        assert seen == {"path": "/profiles/u1", "auth": "Bearer secret"}
        assert profile.user_id == "u1"
        assert profile.average_confidence == pytest.approx(0.7)
        assert profile.chunks_acquired == 310

    @pytest.mark.asyncio
    async def test_unknown_profile_is_none(self):
        async with make_client(lambda request: httpx.Response(404)) as client:
            assert await client.get_profile("ghost") is None

    @pytest.mark.asyncio
    async def test_writes_post_json(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content) if request.content else None
            requests.append((request.method, request.url.path, body))
            return httpx.Response(204)

        async with make_client(handler, api_key=None) as client:
            await client.update_confidence("u1", True, False)
            await client.blend_filter_risk("u1", 0.42)
            await client.record_struggle("u1")

        assert requests == [
            ("POST", "/profiles/u1/confidence", {"correct": True, "used_help": False}),
            ("POST", "/profiles/u1/filter-risk", {"session_score": 0.42}),
            ("POST", "/profiles/u1/struggles", None),
        ]

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        async with make_client(lambda request: httpx.Response(500)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.update_confidence("u1", False, False)

    def test_from_settings(self):
        class FakeSettings:
            profile_service_url = "http://profiles.test"
            profile_service_api_key = None
            profile_service_timeout = 2.0

        client = ProfileServiceClient.from_settings(FakeSettings())
        assert client.base_url == "http://profiles.test"
        assert "Authorization" not in client.client.headers
