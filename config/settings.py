import os
import logging

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings from environment variables"""
    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB = os.getenv("MONGODB_DB", "chat_app")

    # JWT issued by the identity provider
    SECRET_KEY = os.getenv("SECRET_KEY", "supersecret")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")

    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "gemini-1.5-flash")

    COMPLETION_URL = os.getenv("COMPLETION_URL", "http://127.0.0.1:8000/api/ask-question")
    COMPLETION_TIMEOUT = float(os.getenv("COMPLETION_TIMEOUT", "60"))
    HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "20"))

    PERSIST_MAX_RETRIES = int(os.getenv("PERSIST_MAX_RETRIES", "2"))
    PERSIST_RETRY_DELAY = float(os.getenv("PERSIST_RETRY_DELAY", "0.5"))
    NOTIFY_ON_PERSIST_FAILURE = _as_bool(os.getenv("NOTIFY_ON_PERSIST_FAILURE", "true"))

    MAX_INPUT_ROWS = int(os.getenv("MAX_INPUT_ROWS", "10"))
    MAX_TABS_PER_USER = int(os.getenv("MAX_TABS_PER_USER", "8"))

    ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*")  # comma separated
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "")

    @classmethod
    def allowed_origins(cls) -> list[str]:
        return [origin.strip() for origin in cls.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @classmethod
    def validate(cls) -> bool:
        """Validate required environment variables"""
        logger = logging.getLogger(__name__)
        ok = True
        if not cls.GEMINI_API_KEY:
            logger.warning("GEMINI_API_KEY not found in environment, replies will use the fallback text")
            ok = False
        if cls.SECRET_KEY == "supersecret":
            logger.warning("SECRET_KEY is the development default; set it to the identity provider's signing key")
            ok = False
        return ok


def configure_logging(level: str | None = None) -> None:
    """Configure root logging the same way for the API and the scripts"""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if Settings.LOG_FILE:
        handlers.append(logging.FileHandler(Settings.LOG_FILE))

    logging.basicConfig(
        level=(level or Settings.LOG_LEVEL).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )
