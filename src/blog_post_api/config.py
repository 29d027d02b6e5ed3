"""Application configuration via environment variables."""

from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

MEMORY_SCHEMES = frozenset({"memory"})
REDIS_SCHEMES = frozenset({"redis", "rediss", "unix"})


class Settings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = {"env_prefix": ""}

    # Store
    database_url: str = Field(
        default="memory://",
        description="Backing store: memory:// or a redis:// / rediss:// / unix:// URL",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8000, description="Server bind port")
    log_level: str = Field(default="info", description="Log level")

    # API behaviour
    idempotent_delete: bool = Field(
        default=False,
        description="Return 204 instead of 404 when deleting a post that does not exist",
    )

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, v: str) -> str:
        scheme = urlparse(v).scheme
        if scheme not in MEMORY_SCHEMES | REDIS_SCHEMES:
            raise ValueError(f"DATABASE_URL scheme '{scheme}' is not supported")
        return v

    @property
    def store_backend(self) -> str:
        return "redis" if urlparse(self.database_url).scheme in REDIS_SCHEMES else "memory"
