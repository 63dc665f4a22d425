import pytest

from core.feedback import (
    AGGRESSIVE_ALARM_TONE,
    BREAK_CHIME_TONE,
    MILD_ALARM_TONE,
    TURN_WARNING_TONE,
    FeedbackChannel,
    SpeechRequest,
)
from core.units import display_limit, kmh_to_unit, spoken_unit, validate_unit


def test_tone_durations() -> None:
    assert MILD_ALARM_TONE.duration_s == pytest.approx(0.15)
    assert AGGRESSIVE_ALARM_TONE.duration_s == pytest.approx(1.1)
    assert BREAK_CHIME_TONE.duration_s == pytest.approx(1.0)


def test_frequency_sweeps_carry_timing() -> None:
    pulse = AGGRESSIVE_ALARM_TONE.pulses[0]
    assert (pulse.frequency_hz, pulse.end_frequency_hz) == (2500.0, 3000.0)
    assert pulse.sweep == "step"
    assert pulse.sweep_s == pytest.approx(0.1)

    (turn,) = TURN_WARNING_TONE.pulses
    assert (turn.frequency_hz, turn.end_frequency_hz) == (1200.0, 800.0)
    assert turn.sweep == "ramp"
    assert turn.sweep_s == pytest.approx(0.2)
    assert turn.sweep_s < turn.duration_s


def test_channel_forwards_to_sinks(feedback, tones, speech) -> None:
    assert feedback.play(MILD_ALARM_TONE)
    assert feedback.speak("Hello")
    assert tones.names == ["alarm_mild"]
    assert speech.requests == [SpeechRequest(text="Hello")]


def test_blank_speech_is_skipped(feedback, speech) -> None:
    assert not feedback.speak("   ")
    assert speech.requests == []


def test_sink_errors_are_contained() -> None:
    class Broken:
        def play(self, tone) -> None:
            raise RuntimeError("no audio")

        def speak(self, request) -> None:
            raise RuntimeError("no speech")

    channel = FeedbackChannel(tone_sink=Broken(), speech_sink=Broken())
    assert channel.play(MILD_ALARM_TONE) is False
    assert channel.speak("Reduce speed.") is False


def test_default_channel_is_silent() -> None:
    channel = FeedbackChannel()
    assert channel.play(MILD_ALARM_TONE)
    assert channel.speak("Nobody hears this")


def test_units() -> None:
    assert validate_unit("mph") == "mph"
    with pytest.raises(ValueError):
        validate_unit("knots")

    assert kmh_to_unit(100.0, "km/h") == 100.0
    assert kmh_to_unit(100.0, "mph") == pytest.approx(62.1371)
    assert display_limit(None, "mph") is None
    assert display_limit(80.0, "mph") == 50
    assert spoken_unit("km/h") == "kilometers per hour"
