import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from reunite.errors import ConfigurationError

load_dotenv()

LEXICAL = "lexical"
SEMANTIC = "semantic"

# Embeddings cluster higher than token overlap, so the bar is higher too
DEFAULT_MIN_SCORES = {
    LEXICAL: 30,
    SEMANTIC: 60,
}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", {"value": value})


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./reunite.db"

    # Matching
    match_strategy: str = LEXICAL
    match_min_score: Optional[int] = None
    match_top_k: int = 3
    notify_min_score: int = 60
    notify_claim_timeout: int = 300
    match_approved_only: bool = False

    # Embedding provider
    embedding_api_url: str = "https://api.openai.com/v1/embeddings"
    embedding_api_key: Optional[str] = None
    embedding_model: str = "text-embedding-3-small"
    embedding_timeout: float = 30.0

    # Mail
    resend_api_key: Optional[str] = None
    mail_from: str = "Lost & Found <onboarding@resend.dev>"
    mail_team_name: str = "Lost & Found Team"

    # Server
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    def __post_init__(self):
        if self.match_strategy not in DEFAULT_MIN_SCORES:
            raise ConfigurationError(
                f"Unknown match strategy '{self.match_strategy}'",
                {"allowed": sorted(DEFAULT_MIN_SCORES)},
            )
        if self.match_top_k < 1:
            raise ConfigurationError("MATCH_TOP_K must be at least 1")
        if self.notify_claim_timeout < 1:
            raise ConfigurationError("NOTIFY_CLAIM_TIMEOUT must be at least 1 second")

    @property
    def min_score(self) -> int:
        """Ranking threshold; each strategy has its own default."""
        if self.match_min_score is not None:
            return self.match_min_score
        return DEFAULT_MIN_SCORES[self.match_strategy]

    @classmethod
    def from_env(cls) -> "Settings":
        min_score = os.getenv("MATCH_MIN_SCORE")
        origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            match_strategy=os.getenv("MATCH_STRATEGY", LEXICAL).strip().lower(),
            match_min_score=_env_int("MATCH_MIN_SCORE", 0) if min_score else None,
            match_top_k=_env_int("MATCH_TOP_K", 3),
            notify_min_score=_env_int("NOTIFY_MIN_SCORE", 60),
            notify_claim_timeout=_env_int("NOTIFY_CLAIM_TIMEOUT", 300),
            match_approved_only=_env_bool("MATCH_APPROVED_ONLY"),
            embedding_api_url=os.getenv("EMBEDDING_API_URL", cls.embedding_api_url),
            embedding_api_key=os.getenv("EMBEDDING_API_KEY"),
            embedding_model=os.getenv("EMBEDDING_MODEL", cls.embedding_model),
            embedding_timeout=float(os.getenv("EMBEDDING_TIMEOUT", "30")),
            resend_api_key=os.getenv("RESEND_API_KEY"),
            mail_from=os.getenv("MAIL_FROM", cls.mail_from),
            mail_team_name=os.getenv("MAIL_TEAM_NAME", cls.mail_team_name),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("LOG_JSON"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


@lru_cache
def get_settings() -> Settings:
    """Settings are read from the environment once and reused."""
    return Settings.from_env()
