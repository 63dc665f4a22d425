import pytest

from alerts.zone_announcer import ZoneAnnouncer
from core.feedback import FeedbackChannel
from core.timers import ManualScheduler


@pytest.fixture
def announcer(scheduler: ManualScheduler, feedback) -> ZoneAnnouncer:
    return ZoneAnnouncer(scheduler, feedback)


def test_first_limit_is_a_silent_baseline(announcer, scheduler, speech) -> None:
    announcer.update(50.0, False)
    scheduler.advance(1000)
    assert speech.texts == []
    assert announcer.previous_limit == 50.0


def test_limit_change_is_announced_after_settling(announcer, scheduler, speech) -> None:
    announcer.update(50.0, False)
    announcer.update(80.0, False)

    scheduler.advance(499)
    assert speech.texts == []
    scheduler.advance(1)
    assert speech.texts == ["Speed limit now 80 kilometers per hour"]
    assert speech.requests[0].interrupt
    assert announcer.last_announced == 80.0


def test_limit_flapping_only_announces_latest(announcer, scheduler, speech) -> None:
    announcer.update(50.0, False)
    announcer.update(80.0, False)
    scheduler.advance(200)
    announcer.update(60.0, False)
    scheduler.advance(1000)

    assert speech.texts == ["Speed limit now 60 kilometers per hour"]


def test_school_zone_bounce_only_announces_exit(announcer, scheduler, speech) -> None:
    announcer.update(None, False)
    announcer.update(None, True)
    scheduler.advance(100)
    announcer.update(None, False)
    scheduler.advance(1000)

    assert speech.texts == ["Leaving school zone."]


def test_school_zone_entry(announcer, scheduler, speech) -> None:
    announcer.update(30.0, True)
    scheduler.advance(300)
    assert speech.texts == ["Caution. School zone."]
    assert announcer.in_school_zone


def test_missing_limit_keeps_previous(announcer, scheduler, speech) -> None:
    announcer.update(50.0, False)
    announcer.update(None, False)
    announcer.update(50.0, False)
    scheduler.advance(1000)
    assert speech.texts == []


def test_mph_announcements_are_converted(scheduler, feedback, speech) -> None:
    announcer = ZoneAnnouncer(scheduler, feedback, unit="mph")
    announcer.update(50.0, False)
    announcer.update(100.0, False)
    scheduler.advance(500)

    assert speech.texts == ["Speed limit now 62 miles per hour"]


def test_disabling_cancels_pending_announcement(announcer, scheduler, speech) -> None:
    announcer.update(50.0, False)
    announcer.update(80.0, False)
    announcer.set_enabled(False)
    scheduler.advance(1000)

    assert speech.texts == []
    assert not announcer.has_pending


def test_changes_while_disabled_are_not_replayed(announcer, scheduler, speech) -> None:
    announcer.update(50.0, False)
    assert announcer.toggle_announcements() is False
    announcer.update(80.0, True)
    assert announcer.toggle_announcements() is True
    announcer.update(80.0, True)
    scheduler.advance(1000)

    assert speech.texts == []
    assert announcer.in_school_zone


def test_speech_failure_is_swallowed(scheduler) -> None:
    class BrokenSpeech:
        def speak(self, request) -> None:
            raise OSError("no speech engine")

    announcer = ZoneAnnouncer(scheduler, FeedbackChannel(speech_sink=BrokenSpeech()))
    announcer.update(50.0, False)
    announcer.update(80.0, False)
    scheduler.advance(500)

    assert announcer.last_announced == 80.0


def test_clear_resets_baseline(announcer, scheduler, speech) -> None:
    announcer.update(50.0, False)
    announcer.clear()
    announcer.update(80.0, False)
    scheduler.advance(1000)
    assert speech.texts == []
