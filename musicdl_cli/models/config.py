"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = "musicdl-cli/1.0 ( https://github.com/musicdl-cli/musicdl-cli )"


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    # Storage
    app_dir: Path = Field(default_factory=lambda: Path("~/MusicDL").expanduser())

    # Search Settings
    search_limit: int = 5

    # Timeouts (seconds)
    tool_timeout: float = 30.0
    download_timeout: float = 60.0
    http_timeout: float = 10.0

    # Remote services
    user_agent: str = DEFAULT_USER_AGENT

    # Internal fields not loaded from INI file
    verbose: int = Field(default=0, repr=False)
    config_path: str = Field(default="", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("app_dir", mode="after")
    @classmethod
    def expand_app_dir(cls, v: Path) -> Path:
        """Expands '~' so every derived path is absolute-ish and stable."""
        return v.expanduser()

    @field_validator("search_limit")
    @classmethod
    def validate_search_limit(cls, v: int) -> int:
        """Ensures a reasonable number of video search results."""
        if v < 1 or v > 25:
            raise ValueError("Search limit must be between 1 and 25.")
        return v

    @field_validator("tool_timeout", "download_timeout", "http_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive numbers of seconds.")
        return v

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        # MusicBrainz rejects anonymous clients.
        if not v:
            raise ValueError("User agent cannot be empty.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path", "verbose"}
        return {key for key in cls.model_fields if key not in internal_fields}
