"""
Client-side wellbeing heuristics.

Both rules are deliberately simple and kept arithmetic-for-arithmetic with the
app's dashboard; they are candidates for revision, not clinical models.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional

LOW_MOOD_THRESHOLD = 2
ESCALATION_WINDOW = 2
TREND_DAYS = 7


@dataclass(frozen=True)
class DailySentiment:
    day: date
    label: str
    level: Optional[float]


def mood_level(value) -> Optional[float]:
    """Numeric mood level, or None for whatever else a client stored."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def should_escalate(moods: Iterable[dict], new_level: int) -> bool:
    """
    True when a newly recorded low mood completes a run of low moods.

    `moods` must already include the new entry. Only the two most recent
    entries by date are looked at.
    """
    if new_level > LOW_MOOD_THRESHOLD:
        return False
    recent = sorted(moods, key=lambda m: m["date"], reverse=True)[:ESCALATION_WINDOW]
    if len(recent) < ESCALATION_WINDOW:
        return False
    levels = [mood_level(m["level"]) for m in recent]
    return all(level is not None and level <= LOW_MOOD_THRESHOLD for level in levels)


def mood_from_sentiment(score: float) -> float:
    # 0..100 (100 = worst) onto roughly 5..1
    return 5 - score / 25


def journal_day(timestamp: str, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Local calendar day of a stored journal timestamp, or None if unparseable."""
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(tz)
    return moment.date()


def daily_sentiment(
    moods: Iterable[dict],
    journals: Iterable[dict],
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> list[DailySentiment]:
    """Blend explicit moods with journal sentiment for the last seven days, oldest first."""
    today = today or datetime.now(tz).date()
    moods_by_day = {
        m["date"]: mood_level(m["level"])
        for m in moods
        if mood_level(m["level"]) is not None
    }

    derived: dict[date, list[float]] = {}
    for journal in journals:
        day = journal_day(journal.get("timestamp") or "", tz)
        if day is None or journal.get("sentiment_score") is None:
            continue
        derived.setdefault(day, []).append(mood_from_sentiment(journal["sentiment_score"]))

    series = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        mood = moods_by_day.get(day.isoformat())
        scores = derived.get(day)
        journal_mood = sum(scores) / len(scores) if scores else None

        if mood is not None and journal_mood is not None:
            level = (mood + journal_mood) / 2
        elif mood is not None:
            level = mood
        else:
            level = journal_mood

        series.append(DailySentiment(
            day=day,
            label=day.strftime("%a"),
            level=round(level, 1) if level is not None else None,
        ))
    return series
