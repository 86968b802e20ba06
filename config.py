"""
Centralized configuration for the content engine.

Loads all environment variables and provides typed configuration objects.
No hardcoded secrets - all sensitive values must come from environment.
"""

import os
from typing import Optional
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class DatabaseConfig:
    """Relational database configuration for the content and relation stores."""

    # Support direct DATABASE_URL or individual components
    database_url: Optional[str] = field(
        default_factory=lambda: os.getenv("DATABASE_URL"))
    host: str = field(default_factory=lambda: os.getenv(
        "POSTGRES_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(
        os.getenv("POSTGRES_PORT", "5432")))
    user: str = field(
        default_factory=lambda: os.getenv("POSTGRES_USER", "vidtube"))
    password: Optional[str] = field(
        default_factory=lambda: os.getenv("POSTGRES_PASSWORD"))
    database: str = field(default_factory=lambda: os.getenv(
        "POSTGRES_DB", "vidtube"))
    ssl_mode: str = field(default_factory=lambda: os.getenv(
        "POSTGRES_SSL_MODE", "prefer"))
    echo: bool = field(default_factory=lambda: os.getenv(
        "DB_ECHO", "false").lower() == "true")

    @property
    def url(self) -> str:
        """
        Build the SQLAlchemy connection URL.

        Prioritizes DATABASE_URL if set, otherwise builds a PostgreSQL
        URL from components (synchronous psycopg2 driver).
        """
        if self.database_url:
            url = self.database_url
            # Normalize postgres:// to postgresql://
            if url.startswith("postgres://"):
                return url.replace("postgres://", "postgresql://", 1)
            return url

        auth = f"{self.user}:{self.password}@" if self.password else f"{self.user}@"
        return f"postgresql://{auth}{self.host}:{self.port}/{self.database}?sslmode={self.ssl_mode}"


@dataclass
class ServerConfig:
    """Server runtime configuration."""

    host: str = field(default_factory=lambda: os.getenv(
        "SERVER_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(
        os.getenv("SERVER_PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv(
        "DEBUG", "false").lower() == "true")
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    cors_origins: list[str] = field(
        default_factory=lambda: os.getenv("CORS_ORIGINS", "*").split(",")
    )


@dataclass
class QueryConfig:
    """Defaults applied by the query composer."""

    default_page_size: int = field(default_factory=lambda: int(
        os.getenv("DEFAULT_PAGE_SIZE", "10")))


@dataclass
class RelationConfig:
    """Toggle engine tuning."""

    # Bounded retries when concurrent writers race on the same pair
    toggle_max_attempts: int = field(default_factory=lambda: int(
        os.getenv("RELATION_TOGGLE_MAX_ATTEMPTS", "3")))


@dataclass
class Config:
    """
    Root configuration object aggregating all config sections.

    Usage:
        config = Config()
        database_url = config.database.url
        page_size = config.query.default_page_size
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    relations: RelationConfig = field(default_factory=RelationConfig)

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of warnings/errors.

        Returns:
            List of validation messages (empty if all valid)
        """
        warnings = []

        if not self.database.database_url and not self.database.password and not self.server.debug:
            warnings.append("POSTGRES_PASSWORD not set in production mode")

        if self.query.default_page_size < 1:
            warnings.append("DEFAULT_PAGE_SIZE must be positive - falling back to 10")

        if self.relations.toggle_max_attempts < 1:
            warnings.append("RELATION_TOGGLE_MAX_ATTEMPTS must be positive - falling back to 1")

        return warnings


# Global config instance - import and use this
config = Config()
