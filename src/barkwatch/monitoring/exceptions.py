"""Custom exceptions for bark monitoring."""


class BarkMonitorError(Exception):
    """Base exception for bark monitoring errors."""

    pass


class AudioCaptureError(BarkMonitorError):
    """Exception raised for audio capture related errors."""

    pass


class PermissionDeniedError(AudioCaptureError):
    """Exception raised when microphone access is refused."""

    pass


class DeviceBusyError(AudioCaptureError):
    """Exception raised when the capture device cannot be opened."""

    pass


class StorageFailure(BarkMonitorError):
    """Exception raised when a durable store operation fails."""

    pass


class SinkFailure(BarkMonitorError):
    """Exception raised when a feedback sink cannot deliver a response."""

    pass


class SettingsValidationError(BarkMonitorError, ValueError):
    """Exception raised for out-of-range settings writes."""

    pass
