# chatrelay/core/config.py
import os
from typing import List, Literal
from dotenv import load_dotenv


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Setup environment variables.
        - JWT_SECRET / JWT_ALGORITHM verify the bearer tokens of chat clients
        - GEMINI_* configure the text-completion service used for AI replies
        - AI_SENDER_ID is the reserved sender id of AI messages and typing events
        - MESSAGE_STORE the persistence backend to use: "memory" or "sql"
    """

    # Load environment variables from the .env file
    load_dotenv()

    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", "8080"))

    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_API_URL: str = os.getenv(
        "GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1"
    )
    GEMINI_TIMEOUT: float = float(os.getenv("GEMINI_TIMEOUT", "30"))

    AI_SENDER_ID: str = os.getenv("AI_SENDER_ID", "GEMINI")
    AI_REPLY_ENABLED: bool = _as_bool(os.getenv("AI_REPLY_ENABLED", "true"))

    MESSAGE_STORE: Literal["memory", "sql"] = os.getenv("MESSAGE_STORE", "memory")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./chat.db")

    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]

settings = Settings()
