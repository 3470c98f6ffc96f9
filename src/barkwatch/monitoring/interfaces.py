"""Abstract interfaces for the collaborators the monitoring engine depends on."""

from abc import ABC, abstractmethod
from typing import Any

from .models import AudioSample, ClassificationResult, FeedbackIntensity


class BarkClassifier(ABC):
    """Maps one audio sample to a bark/no-bark decision."""

    @abstractmethod
    def classify(self, sample: AudioSample, sensitivity: int) -> ClassificationResult:
        """
        Classify a single analysis window.

        Args:
            sample: Volume and dominant frequency of the window
            sensitivity: User sensitivity in [1, 10], higher detects more

        Returns:
            ClassificationResult with confidence in [0, 1]
        """
        pass


class AudioSource(ABC):
    """A capture device that yields one analysis sample per tick."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """
        Ask for access to the capture device.

        Returns:
            True if capture is allowed
        """
        pass

    @abstractmethod
    async def start_capture(self) -> None:
        """
        Open the capture stream.

        Raises:
            PermissionDeniedError: If access to the device is refused
            DeviceBusyError: If the device cannot be opened
        """
        pass

    @abstractmethod
    async def next_sample(self) -> AudioSample:
        """
        Pull the next analysis sample.

        Returns:
            AudioSample for the most recent window

        Raises:
            AudioCaptureError: If the stream cannot be read
        """
        pass

    @abstractmethod
    async def stop_capture(self) -> None:
        """Release the capture stream. Safe to call when not capturing."""
        pass


class FeedbackSink(ABC):
    """Haptic/acoustic output device."""

    @abstractmethod
    async def pulse(self, intensity: FeedbackIntensity) -> None:
        """
        Fire a single feedback pulse.

        Args:
            intensity: Pulse strength
        """
        pass

    @abstractmethod
    async def play_response(self, volume: float) -> None:
        """
        Play the acoustic response.

        Args:
            volume: Playback volume in [0, 1]
        """
        pass


class DurableStore(ABC):
    """
    Key-value style persistence for events, sessions and settings.

    Records cross this boundary as plain dictionaries so a store never needs
    to know about the engine's types. Every operation may raise StorageFailure.
    """

    async def initialize(self) -> None:
        """Prepare the store for use."""

    async def close(self) -> None:
        """Release any resources held by the store."""

    @abstractmethod
    async def append_bark_event(self, record: dict[str, Any]) -> None:
        """Append a bark event record."""
        pass

    @abstractmethod
    async def trim_bark_events(self, keep: int) -> int:
        """
        Drop the oldest bark events so that at most ``keep`` remain.

        Returns:
            Number of records removed
        """
        pass

    @abstractmethod
    async def list_bark_events(self) -> list[dict[str, Any]]:
        """Return bark event records, oldest first."""
        pass

    @abstractmethod
    async def append_session(self, record: dict[str, Any]) -> None:
        """Append a training session record."""
        pass

    @abstractmethod
    async def list_sessions(self) -> list[dict[str, Any]]:
        """Return training session records in insertion order."""
        pass

    @abstractmethod
    async def read_settings(self) -> dict[str, Any] | None:
        """Return the stored settings record, or None if nothing was saved."""
        pass

    @abstractmethod
    async def write_settings(self, record: dict[str, Any]) -> None:
        """Replace the stored settings record."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove all stored records."""
        pass
