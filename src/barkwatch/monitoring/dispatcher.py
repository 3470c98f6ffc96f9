"""Fires feedback responses for accepted barks without blocking sampling."""

import asyncio
from collections.abc import Awaitable, Callable

from .config import (
    MAX_PENDING_RESPONSES,
    RESPONSE_DRAIN_TIMEOUT,
    SOUND_HEAVY_DELAY,
    SOUND_MEDIUM_DELAY,
    VIBRATION_SECONDARY_DELAY,
)
from .interfaces import FeedbackSink
from .logging_utils import get_logger
from .models import BarkEvent, FeedbackIntensity, UserSettings

logger = get_logger(__name__)

# (delay, label, sink method, argument)
_Action = tuple[float, str, Callable[..., Awaitable[None]], object]


class ResponseDispatcher:
    """
    Schedules vibration and sound responses on a feedback sink.

    Every response action runs as its own delayed task, so a slow or failing
    sink never holds up the caller, and pending actions can be awaited or
    cancelled when monitoring stops. When the sink falls behind and the
    pending actions would exceed ``max_pending``, the whole pattern for a new
    bark is dropped rather than queued.
    """

    def __init__(
        self,
        sink: FeedbackSink,
        vibration_secondary_delay: float = VIBRATION_SECONDARY_DELAY,
        sound_heavy_delay: float = SOUND_HEAVY_DELAY,
        sound_medium_delay: float = SOUND_MEDIUM_DELAY,
        max_pending: int = MAX_PENDING_RESPONSES,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            sink: Output device for pulses and the response sound
            vibration_secondary_delay: Delay of the lighter follow-up pulse
            sound_heavy_delay: Delay of the heavy pulse and response sound
            sound_medium_delay: Delay of the closing medium pulse
            max_pending: Most response actions allowed in flight at once
        """
        if max_pending <= 0:
            raise ValueError("Pending response cap must be positive")
        self._sink = sink
        self._vibration_secondary_delay = vibration_secondary_delay
        self._sound_heavy_delay = sound_heavy_delay
        self._sound_medium_delay = sound_medium_delay
        self._max_pending = max_pending
        self._pending: set[asyncio.Task] = set()
        self._failures = 0
        self._dropped = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def failure_count(self) -> int:
        return self._failures

    @property
    def dropped_count(self) -> int:
        """Bark patterns skipped because the sink was behind."""
        return self._dropped

    def on_bark_accepted(
        self, event: BarkEvent, settings: UserSettings, strong: bool = False
    ) -> bool:
        """
        Schedule the responses configured in ``settings`` for one bark.

        Must be called from within a running event loop. Returns immediately.

        Args:
            event: The accepted bark
            settings: Settings in effect for the session
            strong: Add an immediate heavy pulse (every Nth bark of a session)

        Returns:
            False if the pattern was dropped because too many responses are pending
        """
        actions = self._pattern(settings, strong)
        if not actions:
            return True

        if len(self._pending) + len(actions) > self._max_pending:
            self._dropped += 1
            logger.warning(
                f"⚠️ Feedback is falling behind ({len(self._pending)} pending); "
                f"skipping responses for bark at {event.timestamp:%H:%M:%S}"
            )
            return False

        logger.debug(
            f"Dispatching responses for bark at {event.timestamp:%H:%M:%S} "
            f"(strong={strong})"
        )
        for delay, label, action, argument in actions:
            self._schedule(delay, label, action, argument)
        return True

    def _pattern(self, settings: UserSettings, strong: bool) -> list[_Action]:
        actions: list[_Action] = []

        if strong:
            actions.append((0.0, "strong pulse", self._sink.pulse, FeedbackIntensity.HEAVY))

        if settings.vibration_enabled:
            actions.append(
                (0.0, "primary pulse", self._sink.pulse, FeedbackIntensity.MEDIUM)
            )
            actions.append(
                (
                    self._vibration_secondary_delay,
                    "secondary pulse",
                    self._sink.pulse,
                    FeedbackIntensity.LOW,
                )
            )

        if settings.sound_response_enabled:
            actions.append(
                (
                    self._sound_heavy_delay,
                    "sound pulse",
                    self._sink.pulse,
                    FeedbackIntensity.HEAVY,
                )
            )
            actions.append(
                (
                    self._sound_heavy_delay,
                    "response sound",
                    self._sink.play_response,
                    settings.response_volume,
                )
            )
            actions.append(
                (
                    self._sound_medium_delay,
                    "sound follow-up pulse",
                    self._sink.pulse,
                    FeedbackIntensity.MEDIUM,
                )
            )

        return actions

    async def drain(self, timeout: float = RESPONSE_DRAIN_TIMEOUT) -> None:
        """
        Wait for pending responses, cancelling whatever is left after ``timeout``.

        Args:
            timeout: Seconds to wait before cancelling
        """
        if not self._pending:
            return
        pending = set(self._pending)
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        if still_pending:
            logger.warning(
                f"⚠️ Cancelling {len(still_pending)} responses still pending after {timeout}s"
            )
            for task in still_pending:
                task.cancel()
            await asyncio.gather(*still_pending, return_exceptions=True)

    async def cancel_pending(self) -> None:
        """Cancel every pending response and wait for the cancellations."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _schedule(
        self,
        delay: float,
        label: str,
        action: Callable[..., Awaitable[None]],
        argument: object,
    ) -> None:
        task = asyncio.create_task(self._run(delay, label, action, argument))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run(
        self,
        delay: float,
        label: str,
        action: Callable[..., Awaitable[None]],
        argument: object,
    ) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await action(argument)
            logger.trace(f"Response delivered: {label}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failures += 1
            logger.error(f"❌ Feedback {label} failed: {e}")
