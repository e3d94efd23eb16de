from pydantic_settings import BaseSettings
from typing import Optional, List


def _parse_allowed_origins(v: str) -> List[str]:
    """Parse comma-separated origins string; strip whitespace; keep non-empty."""
    if not v or not v.strip():
        return []
    return [o.strip() for o in v.split(",") if o.strip()]


_DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql://postgres:postgres@db:5432/reviewflow"

    # CORS: comma-separated extra origins for production (e.g. https://reviews.example.com)
    # Default localhost origins are always included.
    ALLOWED_ORIGINS_EXTRA: str = ""

    def get_allowed_origins(self) -> List[str]:
        """Return CORS allowed origins: default localhost + ALLOWED_ORIGINS_EXTRA."""
        return _DEFAULT_CORS_ORIGINS + _parse_allowed_origins(self.ALLOWED_ORIGINS_EXTRA)

    # Order verification (marketplace order lookup returning the purchased ASIN)
    ORDER_VERIFICATION_URL: str = "http://localhost:54321/functions/v1/get-amazon-asin"
    ORDER_VERIFICATION_API_KEY: Optional[str] = None
    ORDER_VERIFICATION_TIMEOUT_SECONDS: float = 20.0

    # Evidence storage (object storage with public read URLs)
    STORAGE_URL: str = "http://localhost:54321/storage/v1"
    STORAGE_API_KEY: Optional[str] = None
    EVIDENCE_BUCKET: str = "review-screenshots"
    STORAGE_TIMEOUT_SECONDS: float = 30.0
    MAX_EVIDENCE_BYTES: int = 10 * 1024 * 1024

    # Review sessions
    SESSION_TTL_MINUTES: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        # Environment variables win over values from .env


settings = Settings()
