# File: autoscheduler/core/config_manager.py
"""
Centralized configuration management for the task auto-scheduler.
Loads settings from environment variables and the optional .env file.
"""

import os
from pathlib import Path
from typing import Dict, Any, List
from dotenv import load_dotenv

from autoscheduler.utils.logger import setup_logger

# Load environment variables
load_dotenv()

logger = setup_logger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {raw!r}")
        return default


class Config:
    """Application configuration singleton."""

    # Base directories
    BASE_DIR = Path(__file__).parent.parent.parent  # Go up 3 levels from autoscheduler/core/

    OUTPUT_DIR = BASE_DIR / "output"

    # Files
    DB_PATH = Path(os.getenv("SCHEDULER_DB_PATH", str(BASE_DIR / "scheduler.db")))
    SCHEDULE_OUTPUT_FILE = OUTPUT_DIR / "last_schedule.json"
    TOKEN_FILE = BASE_DIR / "token.json"
    CREDENTIALS_FILE = BASE_DIR / "credentials.json"
    ENV_FILE = BASE_DIR / ".env"

    # API Keys
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")

    # Google Services
    CALENDAR_ID = os.getenv("CALENDAR_ID", "primary")
    GOOGLE_SCOPES = [
        'https://www.googleapis.com/auth/calendar',
    ]

    # Application Settings
    TARGET_TIMEZONE = os.getenv("TIMEZONE", "UTC")
    GENERATOR_ID = "AI_Task_Autoscheduler_v1"
    DEFAULT_USER_ID = os.getenv("SCHEDULER_USER", "default")
    # Prefix written into the description of every auto-placed event,
    # followed by a JSON payload such as {"durationMin": 45}.
    AI_MARKER = "[autoscheduler]"

    # Scheduling
    SCHEDULE_HORIZON_DAYS = _env_int("SCHEDULE_HORIZON_DAYS", 7)
    SUGGEST_HORIZON_DAYS = _env_int("SUGGEST_HORIZON_DAYS", 14)
    SUGGEST_STRATEGY = os.getenv("SUGGEST_STRATEGY", "best").lower()
    MIN_WINDOW_MINUTES = 30
    MIN_TASK_MINUTES = 5
    MAX_TASK_MINUTES = 1440
    ROUNDING_STEP_MINUTES = 5

    DEFAULT_PREFERENCES: Dict[str, Any] = {
        'work_start_hour': 9,
        'work_end_hour': 17,
        'buffer_minutes': 15,
        'prefer_morning': True,
        'allow_weekend': False,
        'default_duration_min': 60,
        'time_zone': TARGET_TIMEZONE,
        'suggest_time': True,
    }

    # LLM Settings
    GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
    MODEL_ID = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
    REQUEST_TIMEOUT_SECONDS = 30

    SUGGEST_STRATEGIES: List[str] = ["best", "first"]

    @classmethod
    def validate(cls) -> bool:
        """Validate that all required configuration is present."""
        errors = []

        if not cls.CREDENTIALS_FILE.exists() and not cls.TOKEN_FILE.exists():
            errors.append(f"Neither credentials.json nor token.json found in {cls.BASE_DIR}")

        if cls.SUGGEST_STRATEGY not in cls.SUGGEST_STRATEGIES:
            errors.append(
                f"SUGGEST_STRATEGY must be one of {cls.SUGGEST_STRATEGIES}, got {cls.SUGGEST_STRATEGY!r}"
            )

        if cls.SCHEDULE_HORIZON_DAYS < 1 or cls.SUGGEST_HORIZON_DAYS < 1:
            errors.append("Horizon settings must be at least one day")

        if not cls.GROQ_API_KEY:
            # Optional: tasks are then stored verbatim
            logger.warning("GROQ_API_KEY not set; task text will not be parsed")

        if errors:
            for error in errors:
                logger.error(f"Configuration Error: {error}")
            return False

        return True
