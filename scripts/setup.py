"""
One-time setup for the task auto-scheduler.

Steps:
    1. Groq API key (optional, enables free-text task parsing)
    2. Google Calendar authentication (token.json)
    3. Local SQLite database
    4. Working-hour preferences for the default user
"""

import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from autoscheduler.auth.google_auth import create_initial_token
from autoscheduler.core.config_manager import Config
from autoscheduler.models import resolve_preferences
from autoscheduler.services.store import SchedulerStore


def setup_groq_api() -> bool:
    """
    Store the Groq API key in .env. Skipping is allowed.

    Returns:
        True if a key is configured or the step was skipped
    """
    print("\n--- Groq API Key Setup (optional) ---")

    if Config.ENV_FILE.exists():
        with open(Config.ENV_FILE, 'r') as f:
            for line in f:
                if line.startswith('GROQ_API_KEY='):
                    print("✓ Existing Groq API key detected.")
                    return True

    print("Visit: https://console.groq.com/keys")
    print("Without a key, task text is stored verbatim with the default duration.\n")

    key = input("Enter your Groq API key (leave empty to skip): ").strip()
    if not key:
        print("Skipped.")
        return True
    if len(key) < 20:
        print("Invalid API key.")
        return False

    try:
        with open(Config.ENV_FILE, 'a') as f:
            f.write(f"\nGROQ_API_KEY={key}\n")
        print("API key saved to .env")
        return True
    except OSError as e:
        print(f"Could not update .env: {e}")
        return False


def setup_google_auth() -> bool:
    print("\n--- Google Calendar Authentication ---")
    if Config.TOKEN_FILE.exists():
        choice = input("token.json already exists. Re-authenticate? (y/N): ").lower()
        if choice != 'y':
            return True
    return create_initial_token()


def _ask_int(prompt: str, default: int) -> int:
    raw = input(f"{prompt} (default {default}): ").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"Not a number, using {default}.")
        return default


def setup_preferences(store: SchedulerStore, user_id: str) -> bool:
    """Ask for working hours and save them for `user_id`."""
    print("\n--- Working Hours ---")
    current = store.get_preferences(user_id)

    answers = {
        'work_start_hour': _ask_int("Workday start hour", current.work_start_hour),
        'work_end_hour': _ask_int("Workday end hour", current.work_end_hour),
        'buffer_minutes': _ask_int("Buffer around meetings in minutes", current.buffer_minutes),
        'default_duration_min': _ask_int("Default task duration in minutes", current.default_duration_min),
        'time_zone': input(f"Time zone (default {current.time_zone}): ").strip() or current.time_zone,
        'prefer_morning': input("Prefer mornings? (Y/n): ").strip().lower() != 'n',
        'allow_weekend': input("Schedule on weekends? (y/N): ").strip().lower() == 'y',
    }

    try:
        prefs = resolve_preferences(answers, current.to_dict())
    except ValueError as e:
        print(f"Invalid preferences: {e}")
        return False

    store.save_preferences(user_id, prefs)
    print("Preferences saved.")
    return True


def main() -> int:
    print("=" * 60)
    print("Task Auto-Scheduler Setup")
    print("=" * 60)

    if not setup_groq_api():
        return 1

    if not setup_google_auth():
        print("Google authentication failed. Check credentials.json and try again.")
        return 1

    store = SchedulerStore(Config.DB_PATH)
    print(f"\nDatabase ready at {Config.DB_PATH}")
    try:
        if not setup_preferences(store, Config.DEFAULT_USER_ID):
            return 1
    finally:
        store.close()

    print("\nSetup complete. Run 'python scripts/plan.py schedule' to plan your week.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
