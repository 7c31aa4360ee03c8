"""Library settings using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """compactjwt configuration.

    Read from the environment (``COMPACTJWT_`` prefix) and an optional
    ``.env`` file. Values are consumed at configuration time only: the
    algorithm registry and logging are built from them before any token is
    signed or verified.

    Examples:
        COMPACTJWT_LOG_ENABLED=true
        COMPACTJWT_LOG_LEVEL=DEBUG
        COMPACTJWT_DISABLED_ALGORITHMS='["HS256"]'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="COMPACTJWT_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_enabled: bool = Field(
        default=False,
        description="Emit compactjwt log records (library is silent by default)",
    )
    log_level: str = Field(default="INFO", description="Log level for the stderr sink")

    # Algorithms
    default_algorithm: str = Field(
        default="HS256", description="Algorithm used by the CLI when none is given"
    )
    disabled_algorithms: list[str] = Field(
        default_factory=list,
        description="Algorithm names removed from the default registry",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


settings = Settings()
