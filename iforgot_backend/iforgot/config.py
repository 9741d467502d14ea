import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

DEMO_OWNER_ID = "00000000-0000-0000-0000-000000000001"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> Optional[str]:
    value = os.environ.get(name, "").strip()
    return value or None


# PUBLIC_INTERFACE
@dataclass
class Settings:
    """Runtime configuration handed to create_app()."""

    database_url: str
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    classifier_max_tokens: int = 1024
    classifier_timeout_seconds: float = 30.0
    deepgram_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    transcribe_timeout_seconds: float = 60.0
    demo_owner_id: str = DEMO_OWNER_ID
    seed_demo_owner: bool = True
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables (and a .env file if present).

        Raises:
            ValueError: If DATABASE_URL is not set.
        """
        load_dotenv(env_file)

        database_url = os.environ.get("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError(
                "DATABASE_URL environment variable must be set in your .env file (see .env.example)"
            )

        origins = os.environ.get("CORS_ORIGINS", "*")
        return cls(
            database_url=database_url,
            anthropic_api_key=_env_optional("ANTHROPIC_API_KEY"),
            anthropic_model=os.environ.get("ANTHROPIC_MODEL", cls.anthropic_model),
            classifier_max_tokens=int(os.environ.get("CLASSIFIER_MAX_TOKENS", 1024)),
            classifier_timeout_seconds=float(os.environ.get("CLASSIFIER_TIMEOUT_SECONDS", 30)),
            deepgram_api_key=_env_optional("DEEPGRAM_API_KEY"),
            openai_api_key=_env_optional("OPENAI_API_KEY"),
            transcribe_timeout_seconds=float(os.environ.get("TRANSCRIBE_TIMEOUT_SECONDS", 60)),
            demo_owner_id=os.environ.get("DEMO_OWNER_ID", DEMO_OWNER_ID),
            seed_demo_owner=_env_flag("SEED_DEMO_OWNER", True),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
