"""
Application configuration.

Values are read from the environment (and a local .env file) once at import.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

ENV = os.getenv('ENV', 'development').lower()

# Reminder sweep
SWEEP_INTERVAL_MINUTES = int(os.getenv('SWEEP_INTERVAL_MINUTES', '5'))
REMINDER_RETENTION_DAYS = int(os.getenv('REMINDER_RETENTION_DAYS', '30'))
PURGE_INTERVAL_HOURS = int(os.getenv('PURGE_INTERVAL_HOURS', '24'))

# Reminder defaults for new profiles
DEFAULT_TIMEZONE = os.getenv('DEFAULT_TIMEZONE', 'UTC')
DEFAULT_NOTIFICATION_HOUR = int(os.getenv('DEFAULT_NOTIFICATION_HOUR', '9'))

# Optional Telegram delivery
TELEGRAM_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN') or os.getenv('BOT_TOKEN')


def check_environment() -> list:
    """
    Validate numeric settings.

    Returns:
        List of problems found, empty when the configuration is usable
    """
    problems = []

    if SWEEP_INTERVAL_MINUTES < 1:
        problems.append(f"SWEEP_INTERVAL_MINUTES must be >= 1, got {SWEEP_INTERVAL_MINUTES}")
    if REMINDER_RETENTION_DAYS < 1:
        problems.append(f"REMINDER_RETENTION_DAYS must be >= 1, got {REMINDER_RETENTION_DAYS}")
    if PURGE_INTERVAL_HOURS < 1:
        problems.append(f"PURGE_INTERVAL_HOURS must be >= 1, got {PURGE_INTERVAL_HOURS}")
    if not 0 <= DEFAULT_NOTIFICATION_HOUR <= 23:
        problems.append(
            f"DEFAULT_NOTIFICATION_HOUR must be between 0 and 23, got {DEFAULT_NOTIFICATION_HOUR}"
        )

    return problems
