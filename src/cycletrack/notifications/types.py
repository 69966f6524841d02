"""
Reminder categories, priorities and default texts.
"""

from enum import Enum
from typing import Dict, Tuple


class ReminderCategory(str, Enum):
    PERIOD_REMINDER = "period_reminder"
    FERTILE_WINDOW = "fertile_window"
    WELLNESS_TIP = "wellness_tip"
    CYCLE_PREDICTION = "cycle_prediction"


class ReminderPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Categories regenerated whenever cycle info changes. Wellness tips come from
# outside the core and are never replaced.
REPLACEABLE_CATEGORIES: Tuple[ReminderCategory, ...] = (
    ReminderCategory.PERIOD_REMINDER,
    ReminderCategory.FERTILE_WINDOW,
    ReminderCategory.CYCLE_PREDICTION,
)

DEFAULT_REMINDER_DAYS = (3, 1)
DEFAULT_NOTIFICATION_HOUR = 9

PERIOD_REMINDER_TITLE = "Period Starting Soon"
PERIOD_REMINDER_TEMPLATE = "Your next period is predicted in {days} {day_word}."

MID_CYCLE_TITLE = "Mid-Cycle Check"
MID_CYCLE_MESSAGE = (
    "You're halfway through your cycle. "
    "Great time to focus on nutrition and exercise."
)

FERTILE_WINDOW_MESSAGES: Dict[str, Tuple[str, str]] = {
    "start": (
        "Fertile Window Begins",
        "Your fertile window begins today.",
    ),
    "end": (
        "Fertile Window Ends",
        "Your fertile window ends today.",
    ),
}

CATEGORY_EMOJI = {
    ReminderCategory.PERIOD_REMINDER: "🔔",
    ReminderCategory.FERTILE_WINDOW: "🌸",
    ReminderCategory.WELLNESS_TIP: "💡",
    ReminderCategory.CYCLE_PREDICTION: "📅",
}


def format_period_reminder(days_before: int, template: str = PERIOD_REMINDER_TEMPLATE) -> str:
    """
    Render the period reminder text.

    Args:
        days_before: Days between the reminder and the predicted period
        template: str.format template with {days} and {day_word} fields

    Returns:
        Reminder text
    """
    day_word = "day" if days_before == 1 else "days"
    return template.format(days=days_before, day_word=day_word)


def priority_for_offset(days_before: int) -> ReminderPriority:
    """The day-before reminder is high priority, earlier ones medium."""
    return ReminderPriority.HIGH if days_before == 1 else ReminderPriority.MEDIUM


def get_category_emoji(category) -> str:
    """Emoji shown in front of a reminder title."""
    try:
        return CATEGORY_EMOJI[ReminderCategory(category)]
    except ValueError:
        return "🔔"
