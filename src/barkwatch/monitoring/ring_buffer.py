"""Rolling waveform buffer for level visualization."""

from collections import deque

from .config import WAVEFORM_CAPACITY


class WaveformBuffer:
    """Fixed-capacity buffer of recent volume samples; pushing past capacity evicts the oldest."""

    def __init__(self, capacity: int = WAVEFORM_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("Capacity must be positive")
        self._samples: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    def push(self, value: float) -> None:
        self._samples.append(float(value))

    def snapshot(self, limit: int | None = None) -> tuple[float, ...]:
        """
        Copy the buffer contents, oldest first.

        Args:
            limit: Only return the newest ``limit`` samples

        Returns:
            Immutable tuple of volume samples
        """
        samples = tuple(self._samples)
        if limit is None or limit >= len(samples):
            return samples
        if limit <= 0:
            return ()
        return samples[-limit:]

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)
