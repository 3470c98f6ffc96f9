"""Feedback sinks that deliver responses to an accepted bark."""

import asyncio

import numpy as np
import pyaudio

from .config import (
    PULSE_TONE_DURATION,
    RESPONSE_TONE_DURATION,
    TONE_FREQUENCY_HZ,
    TONE_SAMPLE_RATE,
)
from .exceptions import SinkFailure
from .interfaces import FeedbackSink
from .logging_utils import get_logger
from .models import FeedbackIntensity

logger = get_logger(__name__)

PULSE_AMPLITUDE = {
    FeedbackIntensity.LOW: 0.3,
    FeedbackIntensity.MEDIUM: 0.6,
    FeedbackIntensity.HEAVY: 1.0,
}


def synthesize_tone(
    duration: float,
    amplitude: float,
    frequency: float = TONE_FREQUENCY_HZ,
    sample_rate: int = TONE_SAMPLE_RATE,
) -> bytes:
    """
    Render a sine tone as 16-bit mono PCM.

    A 5 ms linear fade is applied at both ends to avoid clicks.

    Args:
        duration: Tone length in seconds
        amplitude: Peak amplitude in [0, 1]
        frequency: Tone frequency in Hz
        sample_rate: Output sample rate in Hz

    Returns:
        Raw int16 PCM bytes
    """
    amplitude = max(0.0, min(1.0, amplitude))
    frames = max(1, int(duration * sample_rate))
    t = np.arange(frames) / sample_rate
    wave = np.sin(2.0 * np.pi * frequency * t) * amplitude

    fade = min(frames // 2, int(0.005 * sample_rate))
    if fade > 0:
        ramp = np.linspace(0.0, 1.0, fade)
        wave[:fade] *= ramp
        wave[-fade:] *= ramp[::-1]

    return (wave * 32767).astype("<i2").tobytes()


class LoggingFeedbackSink(FeedbackSink):
    """Reports responses through the log; used when no output device is wanted."""

    async def pulse(self, intensity: FeedbackIntensity) -> None:
        logger.info(f"📳 Pulse: {intensity.value}")

    async def play_response(self, volume: float) -> None:
        logger.info(f"🔔 Response sound at volume {volume:.0%}")


class ToneFeedbackSink(FeedbackSink):
    """Plays pulses and the response sound as tones on the default output device."""

    def __init__(self, master_volume: float = 1.0) -> None:
        self._master_volume = max(0.0, min(1.0, master_volume))
        self._pyaudio = None
        self._stream = None
        self._lock = asyncio.Lock()

    async def pulse(self, intensity: FeedbackIntensity) -> None:
        amplitude = PULSE_AMPLITUDE[intensity] * self._master_volume
        await self._play(synthesize_tone(PULSE_TONE_DURATION, amplitude))

    async def play_response(self, volume: float) -> None:
        amplitude = volume * self._master_volume
        await self._play(synthesize_tone(RESPONSE_TONE_DURATION, amplitude))

    async def close(self) -> None:
        """Close the output stream."""
        async with self._lock:
            self._release()

    async def _play(self, pcm: bytes) -> None:
        loop = asyncio.get_running_loop()
        # One output stream, so tones are written one after another
        async with self._lock:
            try:
                stream = self._ensure_stream()
                await loop.run_in_executor(None, stream.write, pcm)
            except OSError as e:
                self._release()
                raise SinkFailure(f"Failed to play tone: {e}") from e

    def _ensure_stream(self):
        if self._stream is None:
            self._pyaudio = pyaudio.PyAudio()
            self._stream = self._pyaudio.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=TONE_SAMPLE_RATE,
                output=True,
            )
            logger.debug("🔈 Tone output stream opened")
        return self._stream

    def _release(self) -> None:
        if self._stream:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except OSError as e:
                logger.warning(f"⚠️ Error closing output stream: {e}")
            self._stream = None
        if self._pyaudio:
            self._pyaudio.terminate()
            self._pyaudio = None
