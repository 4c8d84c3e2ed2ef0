"""OpenAI API integration for FIVLO.

Generates personalized focus-routine recommendations from a user's pomodoro
history. Without an API key, or when a call fails, a rule-based recommendation
is returned instead.
"""

import os
import logging
from datetime import datetime
from typing import Dict, Optional
from openai import OpenAI, APIError
from dotenv import load_dotenv

from fivlo.models.stats import RoutineProfile, RoutineRecommendation

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

SYSTEM_PROMPT = (
    "You are a focus and productivity coach. Analyze the user's pomodoro data "
    "and suggest a personalized routine."
)

ROUTINE_PROMPT_TEMPLATE = """Focus pattern analysis for the user:

Overall:
- Pomodoro sessions: {total_sessions}
- Total focus time: {focus_hours}h {focus_minutes}m
- Average focus session: {average} min
- Completion rate: {completion_rate}%
- Active days: {active_days}

Patterns:
{patterns}

Based on this data, suggest a personalized focus routine that covers:
1. How to use the best focus hours
2. A weekly planning guide
3. Three or four concrete tips to improve focus
4. How to split time between goals

Keep it friendly and practical; every suggestion should be specific and actionable."""


def calculate_confidence(profile: RoutineProfile) -> int:
    """Confidence (0-100) from data volume, completion rate and consistency."""
    confidence = 0

    if profile.total_sessions >= 30:
        confidence += 40
    elif profile.total_sessions >= 15:
        confidence += 25
    elif profile.total_sessions >= 5:
        confidence += 15

    if profile.completion_rate >= 80:
        confidence += 30
    elif profile.completion_rate >= 60:
        confidence += 20
    elif profile.completion_rate >= 40:
        confidence += 10

    if profile.active_days >= 14:
        confidence += 30
    elif profile.active_days >= 7:
        confidence += 20
    elif profile.active_days >= 3:
        confidence += 10

    return min(confidence, 100)


def build_routine_prompt(profile: RoutineProfile) -> str:
    patterns = []
    if profile.peak_hour is not None:
        patterns.append(f"- Best focus hour: {profile.peak_hour}:00")
    if profile.productive_hours:
        patterns.append("- Productive hours: " + ", ".join(f"{h}:00" for h in profile.productive_hours))
    for goal in profile.top_goals:
        patterns.append(f"- Goal '{goal.goal}': {goal.focus_time} min")
    return ROUTINE_PROMPT_TEMPLATE.format(
        total_sessions=profile.total_sessions,
        focus_hours=profile.total_focus_time // 60,
        focus_minutes=profile.total_focus_time % 60,
        average=profile.average_session_length,
        completion_rate=profile.completion_rate,
        active_days=profile.active_days,
        patterns="\n".join(patterns) or "- Not enough pattern data yet",
    )


def rule_based_recommendation(profile: RoutineProfile, now: Optional[datetime] = None) -> RoutineRecommendation:
    """Recommendation built from fixed rules, used when OpenAI is unavailable."""
    lines = ["Personalized focus routine", ""]
    if profile.total_sessions < 5:
        lines += [
            "Building the habit:",
            "1. Start with 2-3 pomodoro sessions a day",
            "2. Keep the 25 minute focus + 5 minute break cycle",
            "3. Step away from the screen and stretch during breaks",
            "4. Record every session you finish",
        ]
    else:
        if profile.peak_hour is not None:
            peak = f"- You focus best around {profile.peak_hour}:00; schedule important work then"
        else:
            peak = "- No clear pattern yet; try sessions at different times of day"
        lines += [
            "1. Use your best focus hours",
            f"   {peak}",
            "",
            "2. Weekly plan",
            "   - Monday: set weekly goals and priorities",
            "   - Tuesday to Thursday: core work (4-6 pomodoros a day)",
            "   - Friday: wrap up and review",
            "",
            "3. Focus tips",
            "   - Leave your phone in another room before a session",
            "   - If focusing is hard, take two minutes to breathe first",
            "   - Give yourself a small reward after finishing",
        ]

    lines += ["", f"Current completion rate: {profile.completion_rate}%"]
    if profile.completion_rate < 70:
        lines.append("Try splitting goals into smaller pieces to finish more sessions.")
    else:
        lines.append("Great completion rate. Keep up the pace!")

    return RoutineRecommendation(
        success=True,
        recommendation="\n".join(lines),
        type="rule_based",
        confidence=calculate_confidence(profile),
        generated_at=now or datetime.utcnow(),
    )


class OpenAIClient:
    """Client for OpenAI API integration."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY environment variable.
            model: Chat model name. Defaults to OPENAI_MODEL.

        Note:
            Without an API key the client still initializes and every call
            degrades to the rule-based recommendation.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or OPENAI_MODEL
        self.client = None

        if self.api_key:
            self.client = OpenAI(api_key=self.api_key)
        else:
            logger.warning("OPENAI_API_KEY not found in environment. AI routine recommendations will be rule-based.")

    def generate_routine_recommendation(
        self, profile: RoutineProfile, now: Optional[datetime] = None
    ) -> RoutineRecommendation:
        """Recommend a focus routine for the given profile.

        Returns an `ai_generated` recommendation when the API answers, otherwise
        a `rule_based` one. Never raises for API problems.
        """
        if not self.client:
            logger.debug("OpenAI client not initialized. Using rule-based recommendation.")
            return rule_based_recommendation(profile, now)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_routine_prompt(profile)},
                ],
                temperature=0.7,
                max_tokens=500,
            )
            content = (response.choices[0].message.content or "").strip()
            if not content:
                logger.warning("OpenAI returned an empty recommendation")
                return rule_based_recommendation(profile, now)

            logger.debug(f"OpenAI routine recommendation for {profile.total_sessions} sessions")
            return RoutineRecommendation(
                success=True,
                recommendation=content,
                type="ai_generated",
                confidence=calculate_confidence(profile),
                generated_at=now or datetime.utcnow(),
            )

        except APIError as e:
            error_code = getattr(e, 'code', None)
            status_code = getattr(e, 'status_code', None)

            if error_code == 'insufficient_quota':
                logger.warning("OpenAI API quota insufficient. Please check billing/payment method in OpenAI dashboard.")
            elif status_code == 429:
                logger.warning("OpenAI API rate limit exceeded. Please wait before retrying.")
            else:
                logger.error(f"OpenAI API error: {status_code or 'unknown'} ({error_code or 'unknown'})")
            return rule_based_recommendation(profile, now)
        except Exception as e:
            # Full message may contain sensitive request data
            logger.error(f"Error calling OpenAI API: {type(e).__name__}")
            return rule_based_recommendation(profile, now)

    def get_service_status(self) -> Dict:
        return {
            "is_initialized": self.client is not None,
            "has_api_key": bool(self.api_key),
            "provider": f"OpenAI {self.model}",
        }


def get_openai_client() -> OpenAIClient:
    """OpenAI client dependency (for FastAPI)."""
    return OpenAIClient()
