"""Configuration constants for durable storage."""

import os

DEFAULT_DATABASE_PATH = os.path.expanduser("~/.barkwatch/barkwatch.db")
DEFAULT_WAL_MODE = True

# Database Schema Version
SCHEMA_VERSION = 1

# Key of the single settings row
SETTINGS_KEY = "user_settings"
