"""
Audio and speech feedback capabilities.

Components never talk to an audio device directly. They describe what should
be heard with ``ToneSpec``/``SpeechRequest`` values and hand them to a
``FeedbackChannel``, which forwards to injected sinks and swallows (but logs)
any sink failure so a broken speaker can never stall tick processing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

Waveform = Literal["sine", "square", "triangle", "sawtooth"]


@dataclass(frozen=True)
class TonePulse:
    """One oscillator burst inside a tone."""

    offset_s: float
    duration_s: float
    frequency_hz: float
    gain: float
    end_frequency_hz: float | None = None
    # Seconds after the pulse offset at which end_frequency_hz is reached.
    # "step" jumps there at sweep_s, "ramp" glides linearly from the start.
    sweep_s: float = 0.0
    sweep: Literal["step", "ramp"] = "step"
    # "step" holds gain then cuts, "exponential" decays to near silence.
    envelope: Literal["step", "exponential"] = "step"


@dataclass(frozen=True)
class ToneSpec:
    """Descriptor for a short synthesized sound."""

    name: str
    waveform: Waveform
    pulses: tuple[TonePulse, ...] = field(default_factory=tuple)

    @property
    def duration_s(self) -> float:
        if not self.pulses:
            return 0.0
        return max(p.offset_s + p.duration_s for p in self.pulses)


@dataclass(frozen=True)
class SpeechRequest:
    text: str
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 0.8
    # Drop anything still queued before speaking this one.
    interrupt: bool = False


class ToneSink(Protocol):
    """Interface for anything that can play a ToneSpec."""

    def play(self, tone: ToneSpec) -> None:
        """Play the tone; may raise if the device is unavailable."""
        ...


class SpeechSink(Protocol):
    """Interface for text-to-speech output."""

    def speak(self, request: SpeechRequest) -> None:
        """Speak the request; may raise if speech is unsupported."""
        ...


class NullToneSink:
    def play(self, tone: ToneSpec) -> None:
        return None


class NullSpeechSink:
    def speak(self, request: SpeechRequest) -> None:
        return None


class FeedbackChannel:
    """Best-effort fan-out to tone and speech sinks."""

    def __init__(
        self,
        tone_sink: ToneSink | None = None,
        speech_sink: SpeechSink | None = None,
    ) -> None:
        self.tone_sink: ToneSink = tone_sink or NullToneSink()
        self.speech_sink: SpeechSink = speech_sink or NullSpeechSink()

    def play(self, tone: ToneSpec) -> bool:
        """Play a tone. Returns False if the sink failed."""
        try:
            self.tone_sink.play(tone)
        except Exception as e:
            logger.debug("Tone %s dropped: %s", tone.name, e)
            return False
        return True

    def speak(self, request: SpeechRequest | str) -> bool:
        """Speak text. Returns False if the sink failed."""
        if isinstance(request, str):
            request = SpeechRequest(text=request)
        if not request.text.strip():
            return False
        try:
            self.speech_sink.speak(request)
        except Exception as e:
            logger.debug("Speech %r dropped: %s", request.text, e)
            return False
        return True


# Tone library

MILD_ALARM_TONE = ToneSpec(
    name="alarm_mild",
    waveform="sine",
    pulses=(
        TonePulse(0.0, 0.15, 1800.0, 0.08, envelope="exponential"),
    ),
)

MODERATE_ALARM_TONE = ToneSpec(
    name="alarm_moderate",
    waveform="sine",
    pulses=tuple(TonePulse(i * 0.5, 0.2, 2500.0, 0.18) for i in range(2)),
)

AGGRESSIVE_ALARM_TONE = ToneSpec(
    name="alarm_aggressive",
    waveform="square",
    pulses=tuple(
        TonePulse(
            i * 0.3,
            0.2,
            2500.0,
            0.25,
            end_frequency_hz=3000.0,
            sweep_s=0.1,
        )
        for i in range(4)
    ),
)

TURN_WARNING_TONE = ToneSpec(
    name="turn_warning",
    waveform="triangle",
    pulses=(
        TonePulse(
            0.0,
            0.3,
            1200.0,
            0.15,
            end_frequency_hz=800.0,
            sweep_s=0.2,
            sweep="ramp",
            envelope="exponential",
        ),
    ),
)

BREAK_CHIME_TONE = ToneSpec(
    name="break_chime",
    waveform="sine",
    pulses=tuple(
        TonePulse(i * 0.3, 0.4, freq, 0.06, envelope="exponential")
        for i, freq in enumerate((523.25, 659.25, 783.99))
    ),
)
