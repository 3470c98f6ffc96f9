"""Configuration constants for bark monitoring."""

# Sampling
SAMPLING_PERIOD = 0.1  # seconds between ticks
WAVEFORM_CAPACITY = 100  # volume samples kept for visualization
WAVEFORM_DISPLAY_SIZE = 50  # samples handed to the display

# Microphone capture
DEFAULT_SAMPLE_RATE = 16000  # Hz
DEFAULT_CHUNK_SIZE = 1024  # samples per analysis window, shorter than one tick
SILENCE_FLOOR_DB = -100.0  # dBFS mapped to volume 0
MAX_INT16 = 32767.0

# Classification
BASE_VOLUME_THRESHOLD = 50.0  # volume below this is background noise
SENSITIVITY_SCALE_FACTOR = 8.0  # threshold step per sensitivity point
BARK_FREQUENCY_LOW_HZ = 500.0
BARK_FREQUENCY_HIGH_HZ = 2000.0
BARK_CONFIDENCE_MIN = 0.7  # confidence range for bark candidates
BARK_CONFIDENCE_MAX = 1.0
NON_BARK_CONFIDENCE_MAX = 0.3  # confidence range for everything else
ACCEPT_CONFIDENCE_THRESHOLD = 0.6
DEFAULT_BARK_DURATION = 1.0  # seconds, approximate

# Settings
MIN_SENSITIVITY = 1
MAX_SENSITIVITY = 10
DEFAULT_SENSITIVITY = 5
DEFAULT_RESPONSE_VOLUME = 0.7

# Responses
STRONG_RESPONSE_EVERY = 5  # every Nth bark in a session gets a heavy extra pulse
VIBRATION_SECONDARY_DELAY = 0.2  # seconds
SOUND_HEAVY_DELAY = 0.1  # seconds
SOUND_MEDIUM_DELAY = 0.3  # seconds
RESPONSE_DRAIN_TIMEOUT = 1.0  # seconds to let pending responses finish on stop
MAX_PENDING_RESPONSES = 16  # queued response actions before new bark patterns are dropped

# Simulation (stand-in for a real microphone)
SIMULATED_FREQUENCY_LOW_HZ = 800.0
SIMULATED_FREQUENCY_HIGH_HZ = 2000.0

# Response tone playback
TONE_SAMPLE_RATE = 22050  # Hz
TONE_FREQUENCY_HZ = 2500.0
PULSE_TONE_DURATION = 0.08  # seconds
RESPONSE_TONE_DURATION = 0.5  # seconds

# Event log
MAX_BARK_EVENTS = 1000
MAX_PENDING_WRITES = 32  # bark-event writes in flight before new ones are dropped
