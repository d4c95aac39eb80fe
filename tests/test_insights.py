from datetime import date, timezone

from insights import daily_sentiment, journal_day, mood_from_sentiment, should_escalate

TODAY = date(2024, 6, 10)


def test_escalates_after_two_low_moods():
    moods = [{"date": "2024-06-10", "level": 2}, {"date": "2024-06-09", "level": 1}]
    assert should_escalate(moods, 2)


def test_no_escalation_for_a_single_low_mood():
    assert not should_escalate([{"date": "2024-06-10", "level": 1}], 1)


def test_no_escalation_when_new_mood_is_fine():
    moods = [{"date": "2024-06-10", "level": 3}, {"date": "2024-06-09", "level": 1}]
    assert not should_escalate(moods, 3)


def test_escalation_only_looks_at_two_most_recent_by_date():
    moods = [
        {"date": "2024-06-08", "level": 1},
        {"date": "2024-06-10", "level": 2},
        {"date": "2024-06-09", "level": 4},
    ]
    assert not should_escalate(moods, 2)


def test_mood_from_sentiment_inverts_scale():
    assert mood_from_sentiment(0) == 5
    assert mood_from_sentiment(100) == 1
    assert mood_from_sentiment(50) == 3


def test_journal_day_handles_store_and_client_formats():
    assert journal_day("2024-06-09T23:30:00.000Z", timezone.utc) == date(2024, 6, 9)
    assert journal_day("2024-06-09 10:00:00") == date(2024, 6, 9)
    assert journal_day("garbage") is None


def test_daily_sentiment_covers_last_seven_days_oldest_first():
    series = daily_sentiment([], [], today=TODAY, tz=timezone.utc)
    assert [d.day for d in series] == [date(2024, 6, d) for d in range(4, 11)]
    assert all(d.level is None for d in series)
    assert series[-1].label == "Mon"


def test_daily_sentiment_blends_sources():
    moods = [
        {"date": "2024-06-10", "level": 4},
        {"date": "2024-06-08", "level": 2},
    ]
    journals = [
        # 2024-06-10: mean of 5 - 50/25 = 3 and 5 - 0/25 = 5 -> 4, blended with mood 4 -> 4
        {"timestamp": "2024-06-10T08:00:00.000Z", "sentiment_score": 50},
        {"timestamp": "2024-06-10T20:00:00.000Z", "sentiment_score": 0},
        # 2024-06-09: journal only, 5 - 30/25 = 3.8
        {"timestamp": "2024-06-09T12:00:00.000Z", "sentiment_score": 30},
        # outside the window
        {"timestamp": "2024-05-01T12:00:00.000Z", "sentiment_score": 100},
    ]

    levels = {d.day: d.level for d in daily_sentiment(moods, journals, today=TODAY, tz=timezone.utc)}

    assert levels[date(2024, 6, 10)] == 4.0
    assert levels[date(2024, 6, 9)] == 3.8
    assert levels[date(2024, 6, 8)] == 2.0
    assert levels[date(2024, 6, 7)] is None


def test_daily_sentiment_rounds_to_one_decimal():
    moods = [{"date": "2024-06-10", "level": 3}]
    journals = [{"timestamp": "2024-06-10T08:00:00Z", "sentiment_score": 33}]
    # (3 + (5 - 1.32)) / 2 = 3.34
    [today] = daily_sentiment(moods, journals, today=TODAY, tz=timezone.utc)[-1:]
    assert today.level == 3.3


def test_non_numeric_levels_are_ignored():
    moods = [{"date": "2024-06-10", "level": "abc"}, {"date": "2024-06-09", "level": 1}]
    assert not should_escalate(moods, 1)

    [today] = daily_sentiment(moods, [], today=TODAY, tz=timezone.utc)[-1:]
    assert today.level is None
