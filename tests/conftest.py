"""Shared fakes and fixtures for bark monitoring tests."""

import asyncio
import random
import time
from collections.abc import Callable
from typing import Any

import pytest

from barkwatch.monitoring.dispatcher import ResponseDispatcher
from barkwatch.monitoring.event_log import EventLog
from barkwatch.monitoring.exceptions import DeviceBusyError, StorageFailure
from barkwatch.monitoring.interfaces import AudioSource, FeedbackSink
from barkwatch.monitoring.models import AudioSample, FeedbackIntensity
from barkwatch.storage.memory_store import InMemoryStore


def make_bark_sample(volume: float = 90.0, frequency: float = 1000.0) -> AudioSample:
    return AudioSample(volume=volume, frequency=frequency, captured_at=time.time())


def make_quiet_sample(volume: float = 10.0, frequency: float = 1000.0) -> AudioSample:
    return AudioSample(volume=volume, frequency=frequency, captured_at=time.time())


class ScriptedAudioSource(AudioSource):
    """Plays a fixed list of samples, then repeats a filler sample."""

    def __init__(
        self,
        script: list[AudioSample] | None = None,
        filler: AudioSample | None = None,
        permission_granted: bool = True,
        start_error: Exception | None = None,
    ) -> None:
        self.script = list(script or [])
        self.filler = filler or make_quiet_sample()
        self.permission_granted = permission_granted
        self.start_error = start_error
        self.exhausted = asyncio.Event()
        self.samples_served = 0
        self.capturing = False
        self.start_calls = 0
        self.stop_calls = 0

    async def request_permission(self) -> bool:
        return self.permission_granted

    async def start_capture(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        if self.capturing:
            raise DeviceBusyError("Already capturing")
        self.capturing = True

    async def next_sample(self) -> AudioSample:
        if self.samples_served < len(self.script):
            sample = self.script[self.samples_served]
        else:
            self.exhausted.set()
            sample = self.filler
        self.samples_served += 1
        return sample

    async def stop_capture(self) -> None:
        self.stop_calls += 1
        self.capturing = False


class GatedAudioSource(ScriptedAudioSource):
    """Blocks inside next_sample until the test opens the gate."""

    def __init__(self, sample: AudioSample) -> None:
        super().__init__()
        self.sample = sample
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def next_sample(self) -> AudioSample:
        self.entered.set()
        await self.gate.wait()
        self.gate.clear()
        return self.sample


class SlowAudioSource(ScriptedAudioSource):
    """Takes longer than a sampling period to deliver each sample."""

    def __init__(self, latency: float) -> None:
        super().__init__()
        self.latency = latency
        self.pulls = 0

    async def next_sample(self) -> AudioSample:
        self.pulls += 1
        await asyncio.sleep(self.latency)
        return make_quiet_sample()


class RecordingSink(FeedbackSink):
    """Records every response it is asked to deliver."""

    def __init__(self, fail: bool = False, delay: float = 0.0, serialized: bool = False) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.fail = fail
        self.delay = delay
        # One response at a time, like a single output stream
        self._lock = asyncio.Lock() if serialized else None

    async def pulse(self, intensity: FeedbackIntensity) -> None:
        await self._deliver("pulse", intensity)

    async def play_response(self, volume: float) -> None:
        await self._deliver("play", volume)

    async def _deliver(self, kind: str, value: Any) -> None:
        if self._lock is not None:
            async with self._lock:
                await self._output(kind, value)
        else:
            await self._output(kind, value)

    async def _output(self, kind: str, value: Any) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise OSError("haptic engine unavailable")
        self.calls.append((kind, value))

    def pulses(self) -> list[FeedbackIntensity]:
        return [value for kind, value in self.calls if kind == "pulse"]


class FailingStore(InMemoryStore):
    """In-memory store whose selected operations raise."""

    def __init__(self, failing: set[str], error: type[Exception] = StorageFailure) -> None:
        super().__init__()
        self.failing = failing
        self.error = error

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise self.error(f"{operation} failed: disk full")

    async def append_bark_event(self, record: dict[str, Any]) -> None:
        self._check("append_bark_event")
        await super().append_bark_event(record)

    async def append_session(self, record: dict[str, Any]) -> None:
        self._check("append_session")
        await super().append_session(record)

    async def read_settings(self) -> dict[str, Any] | None:
        self._check("read_settings")
        return await super().read_settings()

    async def write_settings(self, record: dict[str, Any]) -> None:
        self._check("write_settings")
        await super().write_settings(record)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def wait_for_condition(
    predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005
) -> None:
    """Poll until ``predicate`` holds or fail the test after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            pytest.fail("Condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def bark_sample() -> Callable[..., AudioSample]:
    """Factory for loud in-band samples."""
    return make_bark_sample


@pytest.fixture
def quiet_sample() -> Callable[..., AudioSample]:
    """Factory for samples below every threshold."""
    return make_quiet_sample


@pytest.fixture
def scripted_source() -> type[ScriptedAudioSource]:
    """Audio source class that replays a fixed script of samples."""
    return ScriptedAudioSource


@pytest.fixture
def gated_source() -> type[GatedAudioSource]:
    """Audio source class that holds each pull until released."""
    return GatedAudioSource


@pytest.fixture
def slow_source() -> type[SlowAudioSource]:
    """Audio source class with a fixed per-sample latency."""
    return SlowAudioSource


@pytest.fixture
def recording_sink() -> type[RecordingSink]:
    """Feedback sink class for custom failure or latency settings."""
    return RecordingSink


@pytest.fixture
def failing_store() -> type[FailingStore]:
    """Store class whose selected operations raise."""
    return FailingStore


@pytest.fixture
def wait_until() -> Callable[..., Any]:
    """Coroutine function polling a predicate with a timeout."""
    return wait_for_condition


@pytest.fixture
def store() -> InMemoryStore:
    """Create an empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def event_log(store: InMemoryStore) -> EventLog:
    """Create an event log over the in-memory store."""
    return EventLog(store)


@pytest.fixture
def sink() -> RecordingSink:
    """Create a feedback sink that records calls."""
    return RecordingSink()


@pytest.fixture
def instant_dispatcher(sink: RecordingSink) -> ResponseDispatcher:
    """Create a dispatcher with all response delays set to zero."""
    return ResponseDispatcher(
        sink,
        vibration_secondary_delay=0.0,
        sound_heavy_delay=0.0,
        sound_medium_delay=0.0,
    )


@pytest.fixture
def seeded_rng() -> random.Random:
    """Create a deterministic random source."""
    return random.Random(1234)


@pytest.fixture
def clock() -> FakeClock:
    """Create a manually advanced clock."""
    return FakeClock()
