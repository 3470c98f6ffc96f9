"""Bark monitoring engine."""

from .classifier import ThresholdBarkClassifier
from .dispatcher import ResponseDispatcher
from .event_log import EventLog
from .interfaces import AudioSource, BarkClassifier, DurableStore, FeedbackSink
from .models import (
    AudioLevelUpdate,
    AudioSample,
    BarkEvent,
    ClassificationResult,
    FeedbackIntensity,
    SessionState,
    SessionStatus,
    StartFailure,
    StartResult,
    TrainingSession,
    UserSettings,
)
from .progress import ProgressStats, compute_progress
from .ring_buffer import WaveformBuffer
from .service import BarkMonitorService

__all__ = [
    "AudioSample",
    "ClassificationResult",
    "BarkEvent",
    "TrainingSession",
    "UserSettings",
    "SessionState",
    "SessionStatus",
    "StartFailure",
    "StartResult",
    "AudioLevelUpdate",
    "FeedbackIntensity",
    "AudioSource",
    "BarkClassifier",
    "DurableStore",
    "FeedbackSink",
    "ThresholdBarkClassifier",
    "WaveformBuffer",
    "ResponseDispatcher",
    "EventLog",
    "BarkMonitorService",
    "ProgressStats",
    "compute_progress",
]
