import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    db_path: str = "mindguard.db"
    user_email: Optional[str] = None
    gemini_api_key: Optional[str] = None
    analysis_model: str = "gemini-2.5-flash"
    chat_model: str = "gemini-2.5-pro"
    greeting_model: str = "gemini-2.5-flash"
    cors_origins: tuple = ("*",)
    log_level: str = "INFO"


def get_settings() -> Settings:
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        db_path=os.getenv("MINDGUARD_DB_PATH", "mindguard.db"),
        user_email=os.getenv("USER_EMAIL") or None,
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        analysis_model=os.getenv("ANALYSIS_MODEL", "gemini-2.5-flash"),
        chat_model=os.getenv("CHAT_MODEL", "gemini-2.5-pro"),
        greeting_model=os.getenv("GREETING_MODEL", "gemini-2.5-flash"),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
