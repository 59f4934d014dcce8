"""boundfs configuration settings."""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from boundfs.infrastructure.config.settings_utils import (
    env_bool,
    env_int,
    env_list,
    env_str,
    parse_bool,
    parse_int,
    parse_list,
)
from boundfs.infrastructure.logging_setup import configure_logging


LOCK_ATTEMPTS_RANGE = (1, 50)
LOCK_DELAY_MS_RANGE = (0, 1000)
MIN_COPY_CHUNK_SIZE = 1024


class Settings(BaseSettings):
    """Library defaults with env var support.

    Only the ``BOUNDFS_*`` variables below are read, through the field
    default factories; bare field names in the environment or in a ``.env``
    file of the host application are ignored. Every value is clamped into
    its range, whether it comes from the environment or the constructor.

    Every value here is only a default: call sites that pass an explicit
    argument (for example ``max_attempts=`` on lock acquisition) win.
    """

    model_config = SettingsConfigDict(extra="ignore")

    # Advisory lock retry policy: attempts are spaced by
    # initial_delay, 2*initial_delay, 4*initial_delay, ...
    lock_max_attempts: int = Field(
        default_factory=lambda: env_int(
            "BOUNDFS_LOCK_MAX_ATTEMPTS",
            5,
            minimum=LOCK_ATTEMPTS_RANGE[0],
            maximum=LOCK_ATTEMPTS_RANGE[1],
        )
    )
    lock_initial_delay_ms: int = Field(
        default_factory=lambda: env_int(
            "BOUNDFS_LOCK_INITIAL_DELAY_MS",
            10,
            minimum=LOCK_DELAY_MS_RANGE[0],
            maximum=LOCK_DELAY_MS_RANGE[1],
        )
    )

    # Streaming copy buffer
    copy_chunk_size: int = Field(
        default_factory=lambda: env_int("BOUNDFS_COPY_CHUNK_SIZE", 65536, minimum=MIN_COPY_CHUNK_SIZE)
    )

    # Directories whose files are transient uploads owned by another subsystem
    upload_dirs: list[str] = Field(
        default_factory=lambda: env_list("BOUNDFS_UPLOAD_DIRS", default=[])
    )

    # Observability
    log_level: str = Field(default_factory=lambda: env_str("BOUNDFS_LOG_LEVEL", "INFO"))
    log_json: bool = Field(default_factory=lambda: env_bool("BOUNDFS_LOG_JSON", False))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment is read by the default factories only.
        return (init_settings,)

    @field_validator("lock_max_attempts", mode="before")
    @classmethod
    def _clamp_attempts(cls, value: Any) -> int:
        minimum, maximum = LOCK_ATTEMPTS_RANGE
        return parse_int(value, 5, minimum=minimum, maximum=maximum)

    @field_validator("lock_initial_delay_ms", mode="before")
    @classmethod
    def _clamp_delay(cls, value: Any) -> int:
        minimum, maximum = LOCK_DELAY_MS_RANGE
        return parse_int(value, 10, minimum=minimum, maximum=maximum)

    @field_validator("copy_chunk_size", mode="before")
    @classmethod
    def _clamp_chunk_size(cls, value: Any) -> int:
        return parse_int(value, 65536, minimum=MIN_COPY_CHUNK_SIZE)

    @field_validator("upload_dirs", mode="before")
    @classmethod
    def _split_upload_dirs(cls, value: Any) -> list[str]:
        return parse_list(value)

    @field_validator("log_json", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return parse_bool(value)

    def setup_logging(self) -> None:
        configure_logging(level=self.log_level, json_logs=self.log_json)


# Global settings instance
settings = Settings()
