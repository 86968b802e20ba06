"""
VidTube Engine - FastAPI Application

HTTP boundary over the content services. Authentication happens upstream;
the authenticated user's id arrives in the X-User-Id header.

Business logic is delegated to the services package - this file only handles:
- API routing
- Request/response handling
- Mapping Result failures to HTTP status codes
- Middleware configuration
- Health checks
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

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
from config import config
from db.session import get_session_factory
from engine.result import ErrorKind, Result
from services.registry import ServiceRegistry
from store.sql_store import SqlContentStore


# Configure logging
logging.basicConfig(
    level=getattr(logging, config.server.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

STATUS_BY_ERROR = {
    ErrorKind.INVALID_IDENTIFIER: status.HTTP_400_BAD_REQUEST,
    ErrorKind.VALIDATION_FAILURE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.STORE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


# =============================================================================
# Dependencies and helpers
# =============================================================================

def get_services(request: Request) -> ServiceRegistry:
    services = request.app.state.services
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services not initialized"
        )
    return services


def get_principal(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Authenticated user id; required for mutations."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return x_user_id


def get_viewer(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Optional user id for reads; anonymous when absent."""
    return x_user_id or None


def respond(result: Result, message: str, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """
    Turn a service Result into the response envelope.

    Failures map their ErrorKind to an HTTP status; store failures hide
    the underlying message.
    """
    if not result.success:
        code = STATUS_BY_ERROR.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
        detail = result.message
        if result.error == ErrorKind.STORE_FAILURE:
            detail = "Storage temporarily unavailable"
        return JSONResponse(
            status_code=code,
            content=ApiResponse(
                success=False,
                message=detail,
                error=result.error.value,
            ).model_dump(),
        )

    value = result.value
    data = value.to_dict() if hasattr(value, "to_dict") else value
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(success=True, data=data, message=message).model_dump(mode="json"),
    )


# =============================================================================
# Application factory
# =============================================================================

def create_app(services: Optional[ServiceRegistry] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built registry (tests inject one over SQLite). When
            None, a registry over the configured database is built on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan handler for startup/shutdown events.

        Validates configuration and wires the store on startup.
        """
        # Startup
        logger.info("Starting VidTube Engine...")

        warnings = config.validate()
        for warning in warnings:
            logger.warning(f"Config warning: {warning}")

        if app.state.services is None:
            store = SqlContentStore(get_session_factory())
            app.state.services = ServiceRegistry.build(store, config)

        logger.info(f"Debug mode: {config.server.debug}")

        yield

        # Shutdown
        logger.info("Shutting down VidTube Engine...")

    app = FastAPI(
        title="VidTube Engine",
        description="Video sharing backend: likes, subscriptions, feeds and channel stats",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if config.server.debug else None,
        redoc_url="/redoc" if config.server.debug else None,
    )
    app.state.services = services

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        first = exc.errors()[0] if exc.errors() else {}
        field_path = ".".join(str(part) for part in first.get("loc", ())[1:])
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ApiResponse(
                success=False,
                message=f"{field_path}: {first.get('msg', 'invalid request')}",
                error=ErrorKind.VALIDATION_FAILURE.value,
            ).model_dump(),
        )

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    """Attach every endpoint to the application."""

    # -------------------------------------------------------------------------
    # System
    # -------------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check() -> HealthResponse:
        """
        Health check endpoint for container orchestration.

        Returns:
            HealthResponse with server status
        """
        return HealthResponse(status="healthy", version=VERSION)

    @app.get("/", tags=["System"])
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "service": "VidTube Engine",
            "version": VERSION,
            "docs": "/docs" if config.server.debug else "Disabled in production"
        }

    # -------------------------------------------------------------------------
    # Users and channels
    # -------------------------------------------------------------------------

    @app.post(
        "/api/v1/users",
        response_model=ApiResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Users"],
    )
    def create_user(body: CreateUserRequest, services: ServiceRegistry = Depends(get_services)):
        logger.info(f"Create user request: username={body.username}")
        result = services.users.create_user(**body.model_dump())
        return respond(result, "User registered", status.HTTP_201_CREATED)

    @app.get("/api/v1/users/me", response_model=ApiResponse, tags=["Users"])
    def get_current_user(
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.users.get_current_user(principal), "Current user fetched")

    @app.patch("/api/v1/users/me", response_model=ApiResponse, tags=["Users"])
    def update_account_details(
        body: UpdateAccountRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.users.update_account_details(principal, **body.model_dump())
        return respond(result, "Account details updated")

    @app.get("/api/v1/users/me/history", response_model=ApiResponse, tags=["Users"])
    def watch_history(
        page: Optional[str] = None,
        limit: Optional[str] = None,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.feeds.watch_history(principal, page, limit), "Watch history fetched")

    @app.get("/api/v1/users/{user_id}", response_model=ApiResponse, tags=["Users"])
    def get_user(user_id: str, services: ServiceRegistry = Depends(get_services)):
        return respond(services.users.get_user(user_id), "User fetched")

    @app.get("/api/v1/channels/{username}", response_model=ApiResponse, tags=["Channels"])
    def channel_profile(
        username: str,
        viewer: Optional[str] = Depends(get_viewer),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.feeds.channel_profile(viewer, username), "Channel fetched")

    @app.get("/api/v1/channels/{channel_id}/subscribers", response_model=ApiResponse, tags=["Channels"])
    def channel_subscribers(
        channel_id: str,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.feeds.channel_subscribers(channel_id, page, limit)
        return respond(result, "Subscribers fetched")

    @app.get("/api/v1/users/{user_id}/subscriptions", response_model=ApiResponse, tags=["Channels"])
    def subscribed_channels(
        user_id: str,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.feeds.subscribed_channels(user_id, page, limit)
        return respond(result, "Subscribed channels fetched")

    @app.post("/api/v1/subscriptions/{channel_id}", response_model=ApiResponse, tags=["Channels"])
    def toggle_subscription(
        channel_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.relations.toggle_subscription(principal, channel_id)
        return respond(result, "Subscription toggled")

    # -------------------------------------------------------------------------
    # Videos
    # -------------------------------------------------------------------------

    @app.get("/api/v1/videos", response_model=ApiResponse, tags=["Videos"])
    def list_videos(
        query: Optional[str] = None,
        owner_id: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        viewer: Optional[str] = Depends(get_viewer),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.feeds.list_videos(
            viewer_id=viewer,
            query=query,
            owner_id=owner_id,
            sort_by=sort_by,
            sort_type=sort_type,
            page=page,
            limit=limit,
        )
        return respond(result, "Videos fetched")

    @app.post(
        "/api/v1/videos",
        response_model=ApiResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Videos"],
    )
    def publish_video(
        body: PublishVideoRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.videos.publish_video(principal, **body.model_dump())
        return respond(result, "Video published", status.HTTP_201_CREATED)

    @app.get("/api/v1/videos/{video_id}", response_model=ApiResponse, tags=["Videos"])
    def get_video(
        video_id: str,
        viewer: Optional[str] = Depends(get_viewer),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.feeds.get_video(viewer, video_id), "Video fetched")

    @app.patch("/api/v1/videos/{video_id}", response_model=ApiResponse, tags=["Videos"])
    def update_video(
        video_id: str,
        body: UpdateVideoRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.videos.update_video(principal, video_id, **body.model_dump())
        return respond(result, "Video updated")

    @app.delete("/api/v1/videos/{video_id}", response_model=ApiResponse, tags=["Videos"])
    def delete_video(
        video_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.videos.delete_video(principal, video_id), "Video deleted")

    @app.patch("/api/v1/videos/{video_id}/publish", response_model=ApiResponse, tags=["Videos"])
    def toggle_publish_status(
        video_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.videos.toggle_publish_status(principal, video_id)
        return respond(result, "Publish status toggled")

    @app.post("/api/v1/videos/{video_id}/views", response_model=ApiResponse, tags=["Videos"])
    def record_view(
        video_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.videos.record_view(principal, video_id), "View recorded")

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    @app.get("/api/v1/videos/{video_id}/comments", response_model=ApiResponse, tags=["Comments"])
    def video_comments(
        video_id: str,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        viewer: Optional[str] = Depends(get_viewer),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.feeds.video_comments(viewer, video_id, page, limit)
        return respond(result, "Comments fetched")

    @app.post(
        "/api/v1/videos/{video_id}/comments",
        response_model=ApiResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Comments"],
    )
    def add_comment(
        video_id: str,
        body: ContentRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.comments.add_comment(principal, video_id, body.content)
        return respond(result, "Comment added", status.HTTP_201_CREATED)

    @app.patch("/api/v1/comments/{comment_id}", response_model=ApiResponse, tags=["Comments"])
    def update_comment(
        comment_id: str,
        body: ContentRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.comments.update_comment(principal, comment_id, body.content)
        return respond(result, "Comment updated")

    @app.delete("/api/v1/comments/{comment_id}", response_model=ApiResponse, tags=["Comments"])
    def delete_comment(
        comment_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.comments.delete_comment(principal, comment_id), "Comment deleted")

    # -------------------------------------------------------------------------
    # Tweets
    # -------------------------------------------------------------------------

    @app.post(
        "/api/v1/tweets",
        response_model=ApiResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Tweets"],
    )
    def create_tweet(
        body: ContentRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.tweets.create_tweet(principal, body.content)
        return respond(result, "Tweet created", status.HTTP_201_CREATED)

    @app.get("/api/v1/users/{user_id}/tweets", response_model=ApiResponse, tags=["Tweets"])
    def user_tweets(
        user_id: str,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        viewer: Optional[str] = Depends(get_viewer),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.feeds.user_tweets(viewer, user_id, page, limit)
        return respond(result, "Tweets fetched")

    @app.patch("/api/v1/tweets/{tweet_id}", response_model=ApiResponse, tags=["Tweets"])
    def update_tweet(
        tweet_id: str,
        body: ContentRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.tweets.update_tweet(principal, tweet_id, body.content)
        return respond(result, "Tweet updated")

    @app.delete("/api/v1/tweets/{tweet_id}", response_model=ApiResponse, tags=["Tweets"])
    def delete_tweet(
        tweet_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.tweets.delete_tweet(principal, tweet_id), "Tweet deleted")

    # -------------------------------------------------------------------------
    # Likes
    # -------------------------------------------------------------------------

    @app.post("/api/v1/likes/videos/{video_id}", response_model=ApiResponse, tags=["Likes"])
    def toggle_video_like(
        video_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.relations.toggle_video_like(principal, video_id), "Like toggled")

    @app.post("/api/v1/likes/comments/{comment_id}", response_model=ApiResponse, tags=["Likes"])
    def toggle_comment_like(
        comment_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.relations.toggle_comment_like(principal, comment_id), "Like toggled")

    @app.post("/api/v1/likes/tweets/{tweet_id}", response_model=ApiResponse, tags=["Likes"])
    def toggle_tweet_like(
        tweet_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.relations.toggle_tweet_like(principal, tweet_id), "Like toggled")

    @app.get("/api/v1/likes/videos", response_model=ApiResponse, tags=["Likes"])
    def liked_videos(
        page: Optional[str] = None,
        limit: Optional[str] = None,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.feeds.liked_videos(principal, page, limit), "Liked videos fetched")

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    @app.post(
        "/api/v1/playlists",
        response_model=ApiResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["Playlists"],
    )
    def create_playlist(
        body: CreatePlaylistRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.playlists.create_playlist(principal, body.name, body.description)
        return respond(result, "Playlist created", status.HTTP_201_CREATED)

    @app.get("/api/v1/users/{user_id}/playlists", response_model=ApiResponse, tags=["Playlists"])
    def user_playlists(
        user_id: str,
        page: Optional[str] = None,
        limit: Optional[str] = None,
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.feeds.user_playlists(user_id, page, limit), "Playlists fetched")

    @app.get("/api/v1/playlists/{playlist_id}", response_model=ApiResponse, tags=["Playlists"])
    def get_playlist(playlist_id: str, services: ServiceRegistry = Depends(get_services)):
        return respond(services.feeds.get_playlist(playlist_id), "Playlist fetched")

    @app.patch("/api/v1/playlists/{playlist_id}", response_model=ApiResponse, tags=["Playlists"])
    def update_playlist(
        playlist_id: str,
        body: UpdatePlaylistRequest,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.playlists.update_playlist(
            principal, playlist_id, body.name, body.description)
        return respond(result, "Playlist updated")

    @app.delete("/api/v1/playlists/{playlist_id}", response_model=ApiResponse, tags=["Playlists"])
    def delete_playlist(
        playlist_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        return respond(services.playlists.delete_playlist(principal, playlist_id), "Playlist deleted")

    @app.patch(
        "/api/v1/playlists/{playlist_id}/videos/{video_id}",
        response_model=ApiResponse,
        tags=["Playlists"],
    )
    def add_video_to_playlist(
        playlist_id: str,
        video_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.playlists.add_video(principal, playlist_id, video_id)
        return respond(result, "Video added to playlist")

    @app.delete(
        "/api/v1/playlists/{playlist_id}/videos/{video_id}",
        response_model=ApiResponse,
        tags=["Playlists"],
    )
    def remove_video_from_playlist(
        playlist_id: str,
        video_id: str,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.playlists.remove_video(principal, playlist_id, video_id)
        return respond(result, "Video removed from playlist")

    # -------------------------------------------------------------------------
    # Dashboard
    # -------------------------------------------------------------------------

    @app.get("/api/v1/dashboard/stats", response_model=ApiResponse, tags=["Dashboard"])
    def channel_stats(
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.metrics.compute_channel_stats(principal)
        return respond(result, "Channel stats fetched")

    @app.get("/api/v1/dashboard/videos", response_model=ApiResponse, tags=["Dashboard"])
    def channel_videos(
        page: Optional[str] = None,
        limit: Optional[str] = None,
        principal: str = Depends(get_principal),
        services: ServiceRegistry = Depends(get_services),
    ):
        result = services.feeds.channel_videos(principal, page, limit)
        return respond(result, "Channel videos fetched")


# Initialize FastAPI application
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.debug,
        log_level=config.server.log_level.lower()
    )
