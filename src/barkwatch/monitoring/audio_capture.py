"""Audio sources that feed the monitoring loop."""

import asyncio
import random
import time

import numpy as np
import pyaudio

from .config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_SAMPLE_RATE,
    MAX_INT16,
    SILENCE_FLOOR_DB,
    SIMULATED_FREQUENCY_HIGH_HZ,
    SIMULATED_FREQUENCY_LOW_HZ,
)
from .exceptions import AudioCaptureError, DeviceBusyError, PermissionDeniedError
from .interfaces import AudioSource
from .logging_utils import get_logger
from .models import AudioSample

logger = get_logger(__name__)


def analyze_pcm(audio_data: bytes, sample_rate: int) -> tuple[float, float]:
    """
    Compute the volume and dominant frequency of a 16-bit mono PCM window.

    Volume is the RMS level in dBFS shifted onto a 0-100 scale, so full scale
    maps to 100 and -100 dBFS (or silence) maps to 0.

    Args:
        audio_data: Raw little-endian int16 samples
        sample_rate: Sample rate of the window in Hz

    Returns:
        Tuple of (volume, dominant frequency in Hz)
    """
    samples = np.frombuffer(audio_data, dtype="<i2").astype(np.float64)
    if samples.size == 0:
        return 0.0, 0.0

    rms = float(np.sqrt(np.mean(samples**2)))
    if rms <= 0.0:
        return 0.0, 0.0

    level_db = 20.0 * np.log10(rms / MAX_INT16)
    volume = float(np.clip(level_db - SILENCE_FLOOR_DB, 0.0, 100.0))

    windowed = samples * np.hanning(samples.size)
    spectrum = np.abs(np.fft.rfft(windowed))
    if spectrum.size < 2:
        return volume, 0.0
    spectrum[0] = 0.0  # ignore DC offset
    freqs = np.fft.rfftfreq(samples.size, d=1.0 / sample_rate)
    frequency = float(freqs[int(np.argmax(spectrum))])

    return volume, frequency


class PyAudioSource(AudioSource):
    """Microphone input through PyAudio, one analysis window per tick."""

    def __init__(
        self,
        sample_rate: int = None,
        chunk_size: int = None,
    ) -> None:
        """
        Initialize the microphone source.

        Args:
            sample_rate: Audio sample rate in Hz
            chunk_size: Number of samples per analysis window
        """
        self.sample_rate = sample_rate if sample_rate is not None else DEFAULT_SAMPLE_RATE
        self.chunk_size = chunk_size if chunk_size is not None else DEFAULT_CHUNK_SIZE

        if self.sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self._capturing = False
        self._pyaudio = None
        self._stream = None
        self._read_future: asyncio.Future | None = None
        self._windows_read = 0

    async def request_permission(self) -> bool:
        """Check that a default input device can be reached."""
        probe = None
        try:
            probe = pyaudio.PyAudio()
            device_info = probe.get_default_input_device_info()
            logger.debug(f"🎤 Default input device: {device_info.get('name', 'Unknown')}")
            return True
        except OSError as e:
            logger.warning(f"⚠️ No usable input device: {e}")
            return False
        finally:
            if probe is not None:
                probe.terminate()

    async def start_capture(self) -> None:
        """Open the microphone stream."""
        if self._capturing:
            raise DeviceBusyError("Already capturing")

        try:
            self._pyaudio = pyaudio.PyAudio()

            try:
                self._pyaudio.get_default_input_device_info()
            except OSError as e:
                logger.error("❌ No default input device found")
                raise DeviceBusyError("No microphone found") from e

            try:
                self._stream = self._pyaudio.open(
                    format=pyaudio.paInt16,
                    channels=1,
                    rate=self.sample_rate,
                    input=True,
                    frames_per_buffer=self.chunk_size,
                )
                self._stream.start_stream()
            except OSError as e:
                if "Permission denied" in str(e):
                    logger.error("❌ Microphone permission denied")
                    raise PermissionDeniedError("Permission denied") from e
                logger.error(f"❌ Failed to open audio stream: {e}")
                raise DeviceBusyError(f"Failed to open audio stream: {e}") from e

            self._capturing = True
            self._windows_read = 0
            logger.debug(
                f"✅ Audio stream started (sample_rate: {self.sample_rate}, "
                f"chunk_size: {self.chunk_size})"
            )
        except Exception:
            self._release()
            raise

    async def next_sample(self) -> AudioSample:
        """Read one window from the stream and analyze it."""
        if not self._capturing or self._stream is None:
            raise AudioCaptureError("Not capturing")

        loop = asyncio.get_running_loop()
        # A read abandoned by a cancelled caller is picked up by the next call
        if self._read_future is None:
            self._read_future = loop.run_in_executor(None, self._read_window)
        try:
            data = await asyncio.shield(self._read_future)
            self._read_future = None
        except OSError as e:
            self._read_future = None
            logger.error(f"❌ Failed to read audio from stream: {e}")
            raise AudioCaptureError("Failed to read audio") from e

        self._windows_read += 1
        volume, frequency = analyze_pcm(data, self.sample_rate)
        return AudioSample(volume=volume, frequency=frequency, captured_at=time.time())

    async def stop_capture(self) -> None:
        """Close the microphone stream."""
        if not self._capturing:
            return
        self._capturing = False
        if self._read_future is not None:
            await asyncio.wait([self._read_future], timeout=1.0)
            self._read_future = None
        self._release()
        logger.debug(f"Audio stream closed after {self._windows_read} windows")

    def is_capturing(self) -> bool:
        return self._capturing

    def _read_window(self) -> bytes:
        return self._stream.read(self.chunk_size, exception_on_overflow=False)

    def _release(self) -> None:
        if self._stream:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except OSError as e:
                logger.warning(f"⚠️ Error closing audio stream: {e}")
            self._stream = None

        if self._pyaudio:
            self._pyaudio.terminate()
            self._pyaudio = None


class SimulatedAudioSource(AudioSource):
    """
    Random volume/frequency generator standing in for a microphone.

    Frequencies are drawn from the bark band so the sensitivity setting alone
    decides how often barks are reported.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        permission_granted: bool = True,
    ) -> None:
        self._rng = rng or random.Random()
        self._permission_granted = permission_granted
        self._capturing = False

    async def request_permission(self) -> bool:
        return self._permission_granted

    async def start_capture(self) -> None:
        if not self._permission_granted:
            raise PermissionDeniedError("Permission denied")
        if self._capturing:
            raise DeviceBusyError("Already capturing")
        self._capturing = True
        logger.debug("🎲 Simulated audio source started")

    async def next_sample(self) -> AudioSample:
        if not self._capturing:
            raise AudioCaptureError("Not capturing")
        return AudioSample(
            volume=self._rng.uniform(0.0, 100.0),
            frequency=self._rng.uniform(
                SIMULATED_FREQUENCY_LOW_HZ, SIMULATED_FREQUENCY_HIGH_HZ
            ),
            captured_at=time.time(),
        )

    async def stop_capture(self) -> None:
        self._capturing = False
