"""
HTTP API schemas.
"""

from api.schemas import (
    ApiResponse,
    ContentRequest,
    CreatePlaylistRequest,
    CreateUserRequest,
    HealthResponse,
    PublishVideoRequest,
    UpdateAccountRequest,
    UpdatePlaylistRequest,
    UpdateVideoRequest,
)

__all__ = [
    "ApiResponse",
    "ContentRequest",
    "CreatePlaylistRequest",
    "CreateUserRequest",
    "HealthResponse",
    "PublishVideoRequest",
    "UpdateAccountRequest",
    "UpdatePlaylistRequest",
    "UpdateVideoRequest",
]
