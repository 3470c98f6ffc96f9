"""Event log: persistence of bark events, sessions and settings."""

from datetime import datetime
from typing import Any

from .config import MAX_BARK_EVENTS
from .interfaces import DurableStore
from .logging_utils import get_logger
from .models import BarkEvent, TrainingSession, UserSettings

logger = get_logger(__name__)


def bark_event_to_record(event: BarkEvent) -> dict[str, Any]:
    return {
        "timestamp": event.timestamp.isoformat(),
        "volume": event.volume,
        "duration": event.duration,
        "confidence": event.confidence,
        "session_id": event.session_id,
    }


def record_to_bark_event(record: dict[str, Any]) -> BarkEvent:
    return BarkEvent(
        timestamp=datetime.fromisoformat(record["timestamp"]),
        volume=float(record["volume"]),
        duration=float(record["duration"]),
        confidence=float(record["confidence"]),
        session_id=record.get("session_id"),
    )


def session_to_record(session: TrainingSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "date": session.date.isoformat(),
        "duration_seconds": session.duration_seconds,
        "barks_detected": session.barks_detected,
        "success": session.success,
        "notes": session.notes,
        "photos": list(session.photos),
    }


def record_to_session(record: dict[str, Any]) -> TrainingSession:
    return TrainingSession(
        id=str(record["id"]),
        date=datetime.fromisoformat(record["date"]),
        duration_seconds=int(record["duration_seconds"]),
        barks_detected=int(record["barks_detected"]),
        success=bool(record["success"]),
        notes=record.get("notes"),
        photos=tuple(record.get("photos") or ()),
    )


class EventLog:
    """
    Engine-side wrapper around a durable store.

    Storage failures are logged and swallowed: the monitoring engine keeps
    running in memory and the affected record is lost. Settings validation
    errors are not storage failures and propagate to the caller.
    """

    def __init__(self, store: DurableStore, max_events: int = MAX_BARK_EVENTS) -> None:
        """
        Initialize the event log.

        Args:
            store: Durable store backing the log
            max_events: Retention cap for bark events (oldest evicted first)
        """
        if max_events <= 0:
            raise ValueError("Retention cap must be positive")
        self._store = store
        self._max_events = max_events
        self._failures = 0

    @property
    def max_events(self) -> int:
        return self._max_events

    @property
    def failure_count(self) -> int:
        return self._failures

    async def append_bark_event(self, event: BarkEvent) -> bool:
        """
        Append a bark event and enforce the retention cap.

        Returns:
            True if the event was stored
        """
        try:
            await self._store.append_bark_event(bark_event_to_record(event))
            removed = await self._store.trim_bark_events(self._max_events)
            if removed:
                logger.trace(f"Evicted {removed} old bark events")
            return True
        except Exception as e:
            self._record_failure("append bark event", e)
            return False

    async def append_session(self, session: TrainingSession) -> bool:
        """
        Append a completed training session.

        Returns:
            True if the session was stored
        """
        try:
            await self._store.append_session(session_to_record(session))
            logger.info(
                f"💾 Session {session.id} saved: {session.duration_seconds}s, "
                f"{session.barks_detected} barks, success={session.success}"
            )
            return True
        except Exception as e:
            self._record_failure("append session", e)
            return False

    async def read_settings(self) -> UserSettings:
        """Load settings, falling back to defaults if nothing usable is stored."""
        try:
            raw = await self._store.read_settings()
        except Exception as e:
            self._record_failure("read settings", e)
            return UserSettings()

        if not raw:
            return UserSettings()
        if not isinstance(raw, dict):
            logger.warning(
                f"⚠️ Stored settings are a {type(raw).__name__}, not a record; using defaults"
            )
            return UserSettings()
        try:
            return UserSettings.from_dict(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"⚠️ Stored settings unreadable, using defaults: {e}")
            return UserSettings()

    async def write_settings(self, settings: UserSettings) -> bool:
        """
        Validate and persist settings.

        Returns:
            True if the settings were stored

        Raises:
            SettingsValidationError: If a value is out of range
        """
        settings.validate()
        try:
            await self._store.write_settings(settings.to_dict())
            return True
        except Exception as e:
            self._record_failure("write settings", e)
            return False

    async def list_bark_events(self) -> list[BarkEvent]:
        try:
            records = await self._store.list_bark_events()
        except Exception as e:
            self._record_failure("list bark events", e)
            return []
        return [record_to_bark_event(record) for record in records]

    async def list_sessions(self) -> list[TrainingSession]:
        try:
            records = await self._store.list_sessions()
        except Exception as e:
            self._record_failure("list sessions", e)
            return []
        return [record_to_session(record) for record in records]

    async def clear(self) -> bool:
        """Remove all events, sessions and settings."""
        try:
            await self._store.clear()
            logger.info("🧹 Event log cleared")
            return True
        except Exception as e:
            self._record_failure("clear", e)
            return False

    def _record_failure(self, operation: str, error: Exception) -> None:
        self._failures += 1
        logger.error(f"❌ Storage failure during {operation}: {error}")
