"""Bark monitoring service: session lifecycle and the sampling loop."""

import asyncio
import dataclasses
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .classifier import ThresholdBarkClassifier
from .config import (
    ACCEPT_CONFIDENCE_THRESHOLD,
    DEFAULT_BARK_DURATION,
    MAX_PENDING_WRITES,
    SAMPLING_PERIOD,
    STRONG_RESPONSE_EVERY,
    WAVEFORM_DISPLAY_SIZE,
)
from .dispatcher import ResponseDispatcher
from .event_log import EventLog
from .exceptions import (
    AudioCaptureError,
    PermissionDeniedError,
    SettingsValidationError,
)
from .interfaces import AudioSource, BarkClassifier
from .logging_utils import get_logger
from .models import (
    AudioLevelUpdate,
    BarkEvent,
    ClassificationResult,
    SessionState,
    SessionStatus,
    StartFailure,
    StartResult,
    TrainingSession,
    UserSettings,
)
from .ring_buffer import WaveformBuffer

logger = get_logger(__name__)


@dataclass
class _SessionRun:
    """Mutable state of one capturing session, owned by the sampling loop."""

    session_id: str
    started_at: datetime
    started_monotonic: float
    settings: UserSettings
    stop_requested: asyncio.Event = field(default_factory=asyncio.Event)
    bark_count: int = 0
    ticks: int = 0
    dropped_ticks: int = 0
    dropped_writes: int = 0
    writes: set[asyncio.Task] = field(default_factory=set)


class BarkMonitorService:
    """Coordinates audio capture, classification, responses and the event log."""

    def __init__(
        self,
        audio_source: AudioSource,
        event_log: EventLog,
        dispatcher: ResponseDispatcher,
        classifier: BarkClassifier | None = None,
        waveform: WaveformBuffer | None = None,
        sampling_period: float = SAMPLING_PERIOD,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize the monitoring service.

        Args:
            audio_source: Capture device yielding one sample per tick
            event_log: Persistence for events, sessions and settings
            dispatcher: Response dispatcher for accepted barks
            classifier: Bark classifier (threshold classifier if None)
            waveform: Buffer receiving every sampled volume
            sampling_period: Seconds between ticks
            clock: Monotonic clock used for session duration
            wall_clock: Clock used for event and session timestamps
        """
        if sampling_period <= 0:
            raise ValueError("Sampling period must be positive")

        self._audio_source = audio_source
        self._event_log = event_log
        self._dispatcher = dispatcher
        self._classifier = classifier or ThresholdBarkClassifier()
        self._waveform = waveform or WaveformBuffer()
        self._period = sampling_period
        self._clock = clock
        self._wall_clock = wall_clock

        self._state = SessionState.IDLE
        self._run: _SessionRun | None = None
        self._loop_task: asyncio.Task | None = None
        self._lifecycle_lock = asyncio.Lock()

        # Observers
        self._audio_level_callback: Callable[[AudioLevelUpdate], None] | None = None
        self._bark_event_callback: Callable[[BarkEvent], None] | None = None
        self._state_change_callback: Callable[[SessionStatus], None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def is_capturing(self) -> bool:
        return self._state is SessionState.CAPTURING

    def set_audio_level_callback(
        self, callback: Callable[[AudioLevelUpdate], None] | None
    ) -> None:
        """
        Set callback for per-tick audio levels.

        Args:
            callback: Function called with an AudioLevelUpdate on every tick
        """
        self._audio_level_callback = callback

    def set_bark_event_callback(self, callback: Callable[[BarkEvent], None] | None) -> None:
        """
        Set callback for accepted barks.

        Args:
            callback: Function called with each accepted BarkEvent
        """
        self._bark_event_callback = callback

    def set_state_change_callback(
        self, callback: Callable[[SessionStatus], None] | None
    ) -> None:
        """
        Set callback for session start/stop notifications.

        Args:
            callback: Function called with a SessionStatus on each transition
        """
        self._state_change_callback = callback

    async def start(self) -> StartResult:
        """
        Start a monitoring session.

        Returns:
            StartResult; on failure the service stays idle
        """
        async with self._lifecycle_lock:
            if self._state is SessionState.CAPTURING:
                logger.warning("Monitoring is already running")
                return StartResult(
                    success=False,
                    failure=StartFailure.ALREADY_CAPTURING,
                    error="Monitoring is already running",
                )

            settings = await self._event_log.read_settings()

            try:
                if not await self._audio_source.request_permission():
                    raise PermissionDeniedError("Microphone permission not granted")
                await self._audio_source.start_capture()
            except PermissionDeniedError as e:
                logger.error(f"❌ Cannot start monitoring: {e}")
                await self._release_audio_source()
                return StartResult(
                    success=False, failure=StartFailure.PERMISSION_DENIED, error=str(e)
                )
            except (AudioCaptureError, OSError) as e:
                logger.error(f"❌ Cannot start monitoring: {e}")
                await self._release_audio_source()
                return StartResult(
                    success=False, failure=StartFailure.DEVICE_BUSY, error=str(e)
                )

            started_at = self._wall_clock()
            run = _SessionRun(
                session_id=str(int(started_at.timestamp() * 1000)),
                started_at=started_at,
                started_monotonic=self._clock(),
                settings=settings,
            )
            self._waveform.clear()
            self._run = run
            self._state = SessionState.CAPTURING
            self._loop_task = asyncio.create_task(self._sampling_loop(run))

            logger.info(
                f"🐕 Monitoring started (session {run.session_id}, "
                f"sensitivity {settings.sensitivity})"
            )
            self._notify_state(
                SessionStatus(
                    state=SessionState.CAPTURING,
                    duration_seconds=0,
                    bark_count=0,
                    session_id=run.session_id,
                )
            )
            return StartResult(success=True, session_id=run.session_id)

    async def stop(self) -> TrainingSession | None:
        """
        Stop the current session.

        The service is idle as soon as this is called; the in-flight tick is
        allowed to finish before the session is finalized.

        Returns:
            The recorded TrainingSession, or None if nothing was recorded
        """
        run = self._run
        if self._state is not SessionState.CAPTURING or run is None:
            return None

        self._state = SessionState.IDLE
        self._run = None
        run.stop_requested.set()
        elapsed = self._clock() - run.started_monotonic

        async with self._lifecycle_lock:
            loop_task = self._loop_task
            self._loop_task = None
            if loop_task is not None:
                try:
                    await loop_task
                except Exception as e:
                    logger.error(f"❌ Sampling loop ended with error: {e}")

            await self._release_audio_source()
            await self._dispatcher.drain()
            if run.writes:
                await asyncio.gather(*run.writes, return_exceptions=True)

            duration_seconds = int(elapsed)
            session = None
            if duration_seconds > 0:
                session = TrainingSession(
                    id=run.session_id,
                    date=run.started_at,
                    duration_seconds=duration_seconds,
                    barks_detected=run.bark_count,
                    success=run.bark_count == 0,
                )
                await self._event_log.append_session(session)
            else:
                logger.info("Session stopped immediately; not recorded")

            logger.info(
                f"🛑 Monitoring stopped after {duration_seconds}s: "
                f"{run.bark_count} barks, {run.ticks} ticks, "
                f"{run.dropped_ticks} dropped"
            )
            self._notify_state(
                SessionStatus(
                    state=SessionState.IDLE,
                    duration_seconds=duration_seconds,
                    bark_count=run.bark_count,
                    session_id=run.session_id,
                )
            )
            return session

    async def shutdown(self) -> None:
        """Stop any running session and cancel responses still pending."""
        await self.stop()
        await self._dispatcher.cancel_pending()

    async def update_sensitivity(self, sensitivity: int) -> UserSettings:
        """
        Change sensitivity; a running session uses it from the next tick.

        Raises:
            SettingsValidationError: If sensitivity is outside [1, 10]
        """
        return await self.update_settings(sensitivity=sensitivity)

    async def update_settings(self, **changes: Any) -> UserSettings:
        """
        Validate, persist and apply settings changes.

        Args:
            **changes: UserSettings fields to replace

        Returns:
            The settings now in effect

        Raises:
            SettingsValidationError: If a field is unknown or a value is out of range
        """
        run = self._run
        current = run.settings if run is not None else await self._event_log.read_settings()
        try:
            updated = dataclasses.replace(current, **changes)
        except TypeError as e:
            raise SettingsValidationError(f"Unknown setting: {e}") from e

        await self._event_log.write_settings(updated)

        # A session may have started or stopped while the write was in flight
        if self._run is not None:
            self._run.settings = updated
        logger.debug(f"Settings updated: {changes}")
        return updated

    def get_status(self) -> SessionStatus:
        run = self._run
        if run is None:
            return SessionStatus(state=SessionState.IDLE, duration_seconds=0, bark_count=0)
        return SessionStatus(
            state=self._state,
            duration_seconds=int(self._clock() - run.started_monotonic),
            bark_count=run.bark_count,
            session_id=run.session_id,
        )

    def get_waveform(self, limit: int | None = WAVEFORM_DISPLAY_SIZE) -> tuple[float, ...]:
        """Recent volume samples, oldest first."""
        return self._waveform.snapshot(limit)

    def get_debug_stats(self) -> dict[str, Any]:
        """
        Get debug statistics about the current session.

        Returns:
            Dictionary with debug information
        """
        run = self._run
        return {
            "state": self._state.value,
            "session_id": run.session_id if run else None,
            "ticks": run.ticks if run else 0,
            "dropped_ticks": run.dropped_ticks if run else 0,
            "dropped_writes": run.dropped_writes if run else 0,
            "pending_writes": len(run.writes) if run else 0,
            "pending_responses": self._dispatcher.pending_count,
            "dropped_responses": self._dispatcher.dropped_count,
            "waveform_samples": len(self._waveform),
            "storage_failures": self._event_log.failure_count,
        }

    async def _sampling_loop(self, run: _SessionRun) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while not run.stop_requested.is_set():
            try:
                await self._tick(run)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"❌ Error in sampling tick: {e}")

            next_tick += self._period
            now = loop.time()
            # Only slots that lapsed entirely are skipped; a timed-out pull
            # ends just after its own slot and was counted in _tick
            missed = int((now - next_tick) // self._period)
            if missed > 0:
                run.dropped_ticks += missed
                next_tick += missed * self._period
                logger.trace(f"Tick overran its period; skipped {missed} ticks")

            try:
                await asyncio.wait_for(
                    run.stop_requested.wait(), timeout=max(0.0, next_tick - now)
                )
            except asyncio.TimeoutError:
                pass

    async def _tick(self, run: _SessionRun) -> None:
        try:
            sample = await asyncio.wait_for(
                self._audio_source.next_sample(), timeout=self._period
            )
        except asyncio.TimeoutError:
            run.dropped_ticks += 1
            logger.trace("Audio sample not ready within the period; tick dropped")
            return
        except AudioCaptureError as e:
            logger.warning(f"⚠️ Audio sample unavailable: {e}")
            return

        run.ticks += 1
        self._waveform.push(sample.volume)
        result = self._classifier.classify(sample, run.settings.sensitivity)
        accepted = result.is_bark and result.confidence > ACCEPT_CONFIDENCE_THRESHOLD

        self._notify_level(
            AudioLevelUpdate(
                volume=sample.volume,
                bark_flash=accepted,
                frequency=sample.frequency,
                timestamp=sample.captured_at,
            )
        )

        if accepted:
            self._accept_bark(run, result)

    def _accept_bark(self, run: _SessionRun, result: ClassificationResult) -> None:
        event = BarkEvent(
            timestamp=self._wall_clock(),
            volume=result.volume,
            duration=DEFAULT_BARK_DURATION,
            confidence=result.confidence,
            session_id=run.session_id,
        )
        self._schedule_write(run, event)
        run.bark_count += 1
        logger.info(
            f"🐶 Bark #{run.bark_count} (volume {result.volume:.0f}, "
            f"confidence {result.confidence:.2f})"
        )

        if self._bark_event_callback:
            try:
                self._bark_event_callback(event)
            except Exception as e:
                logger.error(f"❌ Bark event callback failed: {e}")

        strong = run.bark_count % STRONG_RESPONSE_EVERY == 0
        try:
            self._dispatcher.on_bark_accepted(event, run.settings, strong=strong)
        except Exception as e:
            logger.error(f"❌ Failed to dispatch responses: {e}")

    def _schedule_write(self, run: _SessionRun, event: BarkEvent) -> None:
        if len(run.writes) >= MAX_PENDING_WRITES:
            run.dropped_writes += 1
            logger.warning("⚠️ Event log is falling behind; bark event not persisted")
            return
        task = asyncio.create_task(self._write_bark_event(event))
        run.writes.add(task)
        task.add_done_callback(run.writes.discard)

    async def _write_bark_event(self, event: BarkEvent) -> None:
        try:
            await self._event_log.append_bark_event(event)
        except Exception as e:
            logger.error(f"❌ Failed to persist bark event: {e}")

    async def _release_audio_source(self) -> None:
        try:
            await self._audio_source.stop_capture()
        except Exception as e:
            logger.error(f"❌ Error stopping audio capture: {e}")

    def _notify_level(self, update: AudioLevelUpdate) -> None:
        if not self._audio_level_callback:
            return
        try:
            self._audio_level_callback(update)
        except Exception as e:
            logger.error(f"❌ Audio level callback failed: {e}")

    def _notify_state(self, status: SessionStatus) -> None:
        if not self._state_change_callback:
            return
        try:
            self._state_change_callback(status)
        except Exception as e:
            logger.error(f"❌ State change callback failed: {e}")
