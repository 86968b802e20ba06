"""
Pydantic schemas for the HTTP API.

Defines request bodies for every mutation and the response envelope
shared by all endpoints.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Response Schemas
# =============================================================================

class ApiResponse(BaseModel):
    """
    Envelope returned by every endpoint.

    Successful calls carry data; failures carry the error kind and a
    human-readable message.
    """

    success: bool = Field(
        ...,
        description="Whether the operation succeeded"
    )

    data: Optional[Any] = Field(
        default=None,
        description="Operation result: a record, a page, a toggle outcome or stats"
    )

    message: Optional[str] = Field(
        default=None,
        description="Human-readable status or failure message"
    )

    error: Optional[str] = Field(
        default=None,
        description="Error kind: invalid_identifier, not_found, forbidden, "
                    "validation_failure, conflict, store_failure"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "data": {"state": "added", "record": {"id": "7d0c..."}},
                "message": "Like toggled",
                "error": None
            }
        }


class HealthResponse(BaseModel):
    """Response schema for the /health endpoint."""

    status: str = Field(
        default="healthy",
        description="Server health status"
    )

    version: str = Field(
        ...,
        description="Server version"
    )


# =============================================================================
# Request Schemas
# =============================================================================

class CreateUserRequest(BaseModel):
    """Register a user. The password arrives already hashed."""

    username: str = Field(..., min_length=1, max_length=64, examples=["chaiaurcode"])
    email: str = Field(..., min_length=3, max_length=255, examples=["hitesh@example.com"])
    full_name: str = Field(..., min_length=1, max_length=255)
    avatar: str = Field(..., min_length=1, description="URL of the uploaded avatar")
    password_hash: str = Field(..., min_length=1)
    cover_image: Optional[str] = Field(default=None, description="URL of the uploaded cover image")


class UpdateAccountRequest(BaseModel):
    """Change the caller's full name and/or email."""

    full_name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, min_length=3, max_length=255)


class PublishVideoRequest(BaseModel):
    """
    Publish a video whose media has already been uploaded.
    """

    title: str = Field(..., min_length=1, max_length=255, examples=["Learn FastAPI in one video"])
    video_url: str = Field(..., min_length=1, description="URL of the uploaded video file")
    description: Optional[str] = Field(default=None, max_length=10000)
    thumbnail_url: Optional[str] = Field(default=None)
    duration: int = Field(default=0, ge=0, description="Length in seconds")
    is_published: bool = Field(default=True)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Learn FastAPI in one video",
                "video_url": "https://cdn.example.com/v/abc.mp4",
                "description": "Routing, dependencies and testing",
                "thumbnail_url": "https://cdn.example.com/t/abc.jpg",
                "duration": 3600
            }
        }


class UpdateVideoRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=10000)
    thumbnail_url: Optional[str] = Field(default=None)


class ContentRequest(BaseModel):
    """Body for creating or editing a tweet or comment."""

    content: str = Field(..., min_length=1, max_length=10000)


class CreatePlaylistRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Watch later"])
    description: Optional[str] = Field(default=None, max_length=10000)


class UpdatePlaylistRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=10000)
