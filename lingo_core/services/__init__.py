"""
Collaborator services.

- collaborators: ProfileService / ContentService protocols and in-memory versions
- profile_client: httpx client for a remote profile service
"""

from lingo_core.services.collaborators import (
    ContentService,
    InMemoryContentService,
    InMemoryProfileService,
    ProfileService,
)
from lingo_core.services.profile_client import ProfileServiceClient

__all__ = [
    "ContentService",
    "InMemoryContentService",
    "InMemoryProfileService",
    "ProfileService",
    "ProfileServiceClient",
]
