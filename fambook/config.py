import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    # -------------------------------------------------------
    # Project
    # -------------------------------------------------------
    PROJECT_NAME: str = "Fambook API"
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Adds the raw exception text to 500 envelopes
    DEBUG_ERRORS: bool = _flag("DEBUG_ERRORS")

    CORS_ORIGINS: list[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
    ]

    # -------------------------------------------------------
    # Database
    # -------------------------------------------------------
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./fambook.db"
    )

    # Render uses postgres:// but SQLAlchemy needs postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    # -------------------------------------------------------
    # Authentication (Supabase Auth JWT)
    # -------------------------------------------------------
    SUPABASE_JWT_SECRET: str = os.getenv(
        "SUPABASE_JWT_SECRET",
        "supersecretlocalkey123"   # Only used for local dev
    )
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = os.getenv("JWT_AUDIENCE", "authenticated")

    # -------------------------------------------------------
    # Public base URL (used to build absolute media URLs)
    # -------------------------------------------------------
    BASE_URL: str = os.getenv(
        "BASE_URL",
        "http://127.0.0.1:8000"
    )

    # -------------------------------------------------------
    # Storage Configuration
    # -------------------------------------------------------
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "local")

    # Local media folder
    LOCAL_MEDIA_PATH: str = os.getenv(
        "LOCAL_MEDIA_PATH",
        "./media"   # Default for dev
    )

    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
    SUPABASE_BUCKET: str = os.getenv("SUPABASE_BUCKET", "fambook")

    MAX_IMAGE_SIZE: int = 5 * 1024 * 1024
    MAX_VIDEO_SIZE: int = 50 * 1024 * 1024

    # -------------------------------------------------------
    # Product limits
    # -------------------------------------------------------
    POST_LIMIT: int = int(os.getenv("POST_LIMIT", 30))
    ALBUM_LIMIT: int = int(os.getenv("ALBUM_LIMIT", 5))
    EVENT_LIMIT: int = int(os.getenv("EVENT_LIMIT", 3))

    # Per album, also the highest limit an album can ask for
    DEFAULT_MEDIA_LIMIT: int = int(os.getenv("DEFAULT_MEDIA_LIMIT", 100))
    NOTIFICATION_FEED_SIZE: int = 50

    # -------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------
    ALLOW_BULK_WIPE: bool = _flag("ALLOW_BULK_WIPE")


# Single instance that is imported everywhere
settings = Settings()
