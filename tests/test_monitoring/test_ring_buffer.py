"""Tests for the waveform ring buffer."""

import pytest

from barkwatch.monitoring.ring_buffer import WaveformBuffer


@pytest.mark.unit
class TestWaveformBuffer:
    """Test cases for WaveformBuffer."""

    def test_default_capacity(self) -> None:
        """Test the default capacity is 100 samples."""
        assert WaveformBuffer().capacity == 100

    def test_invalid_capacity(self) -> None:
        """Test a non-positive capacity raises ValueError."""
        with pytest.raises(ValueError, match="Capacity must be positive"):
            WaveformBuffer(capacity=0)

    def test_push_below_capacity(self) -> None:
        """Test contents are kept in insertion order."""
        buffer = WaveformBuffer(capacity=5)
        for value in (1, 2, 3):
            buffer.push(value)

        assert buffer.snapshot() == (1.0, 2.0, 3.0)
        assert len(buffer) == 3

    def test_overflow_keeps_last_capacity_values(self) -> None:
        """Test pushing past capacity evicts the oldest values."""
        buffer = WaveformBuffer(capacity=10)
        for value in range(37):
            buffer.push(value)

        snapshot = buffer.snapshot()
        assert len(snapshot) == 10
        assert snapshot == tuple(float(v) for v in range(27, 37))

    def test_snapshot_is_a_copy(self) -> None:
        """Test later pushes do not change an earlier snapshot."""
        buffer = WaveformBuffer(capacity=3)
        buffer.push(1)
        snapshot = buffer.snapshot()
        buffer.push(2)

        assert snapshot == (1.0,)
        assert isinstance(snapshot, tuple)

    def test_snapshot_limit(self) -> None:
        """Test limit returns only the newest samples."""
        buffer = WaveformBuffer(capacity=100)
        for value in range(80):
            buffer.push(value)

        assert buffer.snapshot(limit=50) == tuple(float(v) for v in range(30, 80))
        assert buffer.snapshot(limit=500) == buffer.snapshot()
        assert buffer.snapshot(limit=0) == ()

    def test_clear(self) -> None:
        """Test clear empties the buffer."""
        buffer = WaveformBuffer(capacity=3)
        buffer.push(5)
        buffer.clear()

        assert buffer.snapshot() == ()
