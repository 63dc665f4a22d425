import pytest

from alerts.break_reminder import BreakReminder, format_driving_time

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


@pytest.mark.parametrize(
    ("elapsed_ms", "expected"),
    [
        (2.5 * HOUR_MS, "2 hours and 30 minutes"),
        (HOUR_MS, "1 hour"),
        (HOUR_MS + MINUTE_MS, "1 hour and 1 minute"),
        (45 * MINUTE_MS, "45 minutes"),
        (MINUTE_MS, "1 minute"),
    ],
)
def test_format_driving_time(elapsed_ms: float, expected: str) -> None:
    assert format_driving_time(elapsed_ms) == expected


@pytest.fixture
def reminder(scheduler, feedback) -> BreakReminder:
    reminder = BreakReminder(scheduler, feedback)
    reminder.start()
    return reminder


def test_first_reminder_after_two_hours(reminder, scheduler, tones, speech) -> None:
    scheduler.advance(2 * HOUR_MS - 1000)
    assert speech.texts == []
    assert not reminder.should_take_break

    scheduler.advance(1000)
    assert reminder.should_take_break
    assert tones.names == ["break_chime"]
    assert speech.texts == [
        "You've been driving for 2 hours. Consider taking a break.",
    ]
    assert speech.requests[0].rate == pytest.approx(0.9)


def test_reminders_repeat_every_thirty_minutes(reminder, scheduler, speech) -> None:
    scheduler.advance(2 * HOUR_MS + 30 * MINUTE_MS)
    assert speech.texts[-1] == (
        "You've been driving for 2 hours and 30 minutes. Consider taking a break."
    )
    assert len(speech.texts) == 2


def test_dismiss_postpones_next_reminder(reminder, scheduler, speech) -> None:
    scheduler.advance(2 * HOUR_MS)
    reminder.dismiss()

    assert not reminder.should_take_break
    assert reminder.breaks_dismissed == 1

    scheduler.advance(30 * MINUTE_MS)
    assert len(speech.texts) == 1
    scheduler.advance(30 * MINUTE_MS)
    assert len(speech.texts) == 2


def test_driving_time_is_tracked(reminder, scheduler) -> None:
    scheduler.advance(5000)
    assert reminder.as_dict()["drivingTime"] == 5000


def test_stop_cancels_tick(reminder, scheduler, speech) -> None:
    reminder.stop()
    assert not reminder.is_running
    assert scheduler.pending == []

    scheduler.advance(3 * HOUR_MS)
    assert speech.texts == []
