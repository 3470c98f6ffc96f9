"""Data models for bark monitoring."""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .config import (
    DEFAULT_RESPONSE_VOLUME,
    DEFAULT_SENSITIVITY,
    MAX_SENSITIVITY,
    MIN_SENSITIVITY,
)
from .exceptions import SettingsValidationError


class SessionState(str, Enum):
    """Monitoring session lifecycle state."""

    IDLE = "idle"
    CAPTURING = "capturing"


class FeedbackIntensity(str, Enum):
    """Strength of a single feedback pulse."""

    LOW = "low"
    MEDIUM = "medium"
    HEAVY = "heavy"


class StartFailure(str, Enum):
    """Reasons a monitoring session could not be started."""

    PERMISSION_DENIED = "permission_denied"
    DEVICE_BUSY = "device_busy"
    ALREADY_CAPTURING = "already_capturing"


@dataclass
class AudioSample:
    """One analysis window produced by an audio source."""

    volume: float  # 0-100
    frequency: float  # dominant frequency in Hz
    captured_at: float  # epoch seconds


@dataclass
class ClassificationResult:
    """Bark/no-bark decision for a single sample."""

    is_bark: bool
    confidence: float
    volume: float
    frequency: float


@dataclass(frozen=True)
class BarkEvent:
    """An accepted bark."""

    timestamp: datetime
    volume: float
    duration: float
    confidence: float
    session_id: str | None = None


@dataclass(frozen=True)
class TrainingSession:
    """Summary of a completed monitoring session."""

    id: str
    date: datetime
    duration_seconds: int
    barks_detected: int
    success: bool
    notes: str | None = None
    photos: tuple[str, ...] = ()


@dataclass
class UserSettings:
    """User-adjustable monitoring settings."""

    sensitivity: int = DEFAULT_SENSITIVITY
    vibration_enabled: bool = True
    sound_response_enabled: bool = True
    response_volume: float = DEFAULT_RESPONSE_VOLUME
    dog_name: str | None = None
    training_goal: str | None = None

    def validate(self) -> None:
        """
        Check value ranges before the settings are persisted or acted on.

        Raises:
            SettingsValidationError: If sensitivity or response volume is out of range
        """
        if isinstance(self.sensitivity, bool) or not isinstance(self.sensitivity, int):
            raise SettingsValidationError(
                f"Sensitivity must be an integer, got {self.sensitivity!r}"
            )
        if not MIN_SENSITIVITY <= self.sensitivity <= MAX_SENSITIVITY:
            raise SettingsValidationError(
                f"Sensitivity must be between {MIN_SENSITIVITY} and "
                f"{MAX_SENSITIVITY}, got {self.sensitivity}"
            )
        if not 0.0 <= self.response_volume <= 1.0:
            raise SettingsValidationError(
                f"Response volume must be between 0.0 and 1.0, got {self.response_volume}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "UserSettings":
        """
        Build settings from a stored record.

        Unknown keys are ignored and out-of-range numbers from older records are
        clamped into range rather than rejected.
        """
        settings = cls()
        if "sensitivity" in raw:
            sensitivity = int(raw["sensitivity"])
            settings.sensitivity = max(MIN_SENSITIVITY, min(MAX_SENSITIVITY, sensitivity))
        if "vibration_enabled" in raw:
            settings.vibration_enabled = bool(raw["vibration_enabled"])
        if "sound_response_enabled" in raw:
            settings.sound_response_enabled = bool(raw["sound_response_enabled"])
        if "response_volume" in raw:
            settings.response_volume = max(0.0, min(1.0, float(raw["response_volume"])))
        settings.dog_name = raw.get("dog_name") or None
        settings.training_goal = raw.get("training_goal") or None
        return settings


@dataclass
class AudioLevelUpdate:
    """Per-tick level published to observers."""

    volume: float
    bark_flash: bool
    frequency: float
    timestamp: float


@dataclass
class SessionStatus:
    """Snapshot of the session lifecycle for observers."""

    state: SessionState
    duration_seconds: int
    bark_count: int
    session_id: str | None = None


@dataclass
class StartResult:
    """Outcome of a start request."""

    success: bool
    failure: StartFailure | None = None
    error: str | None = None
    session_id: str | None = None
