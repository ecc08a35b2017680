"""
HTTP client for a remote learner profile service.

Implements the ProfileService protocol over a small JSON API:

    GET  /profiles/{user_id}              -> profile record (404 = unknown user)
    POST /profiles/{user_id}/confidence   {"correct": bool, "used_help": bool}
    POST /profiles/{user_id}/filter-risk  {"session_score": float}
    POST /profiles/{user_id}/struggles

HTTP errors propagate as ``httpx.HTTPStatusError``; the session flows treat
them as collaborator failures.
"""
from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from lingo_core.core.models import LearnerProfile


class ProfileServiceClient:
    """Async HTTP client for the learner profile service."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the profile service
            api_key: Bearer token (optional)
            timeout: Request timeout in seconds
            transport: Custom transport (e.g. httpx.MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any, transport: httpx.AsyncBaseTransport | None = None):
        """Build a client from application settings."""
        return cls(
            base_url=settings.profile_service_url,
            api_key=settings.profile_service_api_key,
            timeout=settings.profile_service_timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> ProfileServiceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get_profile(self, user_id: str) -> LearnerProfile | None:
        response = await self.client.get(f"/profiles/{user_id}")
        if response.status_code == 404:
            logger.debug(f"No profile for user {user_id}")
            return None
        response.raise_for_status()
        record = response.json()
        record.setdefault("user_id", user_id)
        return LearnerProfile.from_record(record)

    async def update_confidence(self, user_id: str, correct: bool, used_help: bool) -> None:
        response = await self.client.post(
            f"/profiles/{user_id}/confidence",
            json={"correct": correct, "used_help": used_help},
        )
        response.raise_for_status()

    async def blend_filter_risk(self, user_id: str, session_score: float) -> None:
        response = await self.client.post(
            f"/profiles/{user_id}/filter-risk",
            json={"session_score": session_score},
        )
        response.raise_for_status()

    async def record_struggle(self, user_id: str) -> None:
        response = await self.client.post(f"/profiles/{user_id}/struggles")
        response.raise_for_status()
