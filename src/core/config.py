"""Configuration management for familyquest."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    sqlite_db_path: str = Field(default="data/familyquest.db", description="Path to the SQLite database file")

    # Auth Configuration
    secret_key: str = Field(default="dev-secret-change-me", description="Secret used to sign bearer tokens")
    token_max_age_seconds: int = Field(
        default=30 * 24 * 3600, description="Lifetime of issued bearer tokens (in seconds)"
    )

    # Deployment Configuration
    environment: str = Field(default="development", description="Deployment environment name")
    frontend_url: str = Field(default="http://localhost:3000", description="Allowed CORS origin for the web client")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # OpenRouter Configuration (optional, used for quest descriptions)
    openrouter_api_key: str | None = Field(default=None, description="OpenRouter API key for LLM access")
    model_id: str = Field(
        default="google/gemini-2.5-flash",
        description="Model ID for OpenRouter used to write quest descriptions",
    )

    # Game Rules
    enforce_booking_deadline: bool = Field(
        default=False, description="Reject claims on OPEN tasks whose booking deadline has passed"
    )
    reject_expired_side_quest_responses: bool = Field(
        default=False, description="Reject responses to PENDING side quests that have already expired"
    )

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production."""
        return self.environment.lower() == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Progression
    LEVEL_THRESHOLDS: tuple[int, ...] = (0, 50, 100, 150, 200)
    MAX_GAME_SCORE: int = 200  # Board rendering clamps here, ranking does not
    GATE_PROXIMITY_POINTS: int = 10  # A gate is "in range" at this distance or closer

    # Tasks
    MIN_TASK_POINTS: int = 1
    PROPOSAL_BOOKING_WINDOW_MS: int = 24 * 3600 * 1000
    PROPOSAL_COMPLETION_WINDOW_MS: int = 48 * 3600 * 1000

    # Side Quests
    MS_PER_HOUR: int = 3600 * 1000
    MAX_SIDE_QUEST_HOURS: int = 24 * 30

    # Families
    INVITE_CODE_LENGTH: int = 6
    INVITE_CODE_MAX_ATTEMPTS: int = 10

    # Accounts
    MAX_NAME_LENGTH: int = 50
    MIN_PASSWORD_LENGTH: int = 4
    PASSWORD_HASH_ITERATIONS: int = 240_000
    DEFAULT_AVATAR_URL: str = "https://picsum.photos/seed/{seed}/100/100"

    # Description generation
    DESCRIPTION_FALLBACK: str = "An important quest for the family's heroes."
    DESCRIPTION_ERROR_FALLBACK: str = "A legendary quest awaits."

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
