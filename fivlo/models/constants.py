"""Constants for FIVLO.

This module centralizes magic numbers and default values used throughout the application.
"""

import os

from dotenv import load_dotenv

load_dotenv()


# Calendar-day normalization
DEFAULT_TIMEZONE = os.getenv("FIVLO_DEFAULT_TIMEZONE", "Asia/Seoul")

# Recurrence expansion cap (about two years of occurrences)
MAX_RECURRENCE_SPAN_DAYS = 730

# Coin rewards
DAILY_REWARD_AMOUNT = 1
REWARD_PREMIUM_ONLY = os.getenv("FIVLO_REWARD_PREMIUM_ONLY", "True").lower() == "true"

# Categories
DEFAULT_CATEGORY_NAME = "Daily"
DEFAULT_CATEGORY_COLOR = "#3B82F6"

# Pomodoro durations (seconds)
POMODORO_DURATIONS = {
    "FOCUS": 25 * 60,
    "SHORT_BREAK": 5 * 60,
    "LONG_BREAK": 15 * 60,
}
DEFAULT_FOCUS_MINUTES = 25
MIN_SESSION_MINUTES = 1
MAX_SESSION_MINUTES = 120
QUICK_START_GOAL = "Focus"

# D-Day goals
DDAY_GOAL_DAYS = 30
DDAY_DAILY_TARGET_MINUTES = 120
