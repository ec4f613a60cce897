"""Application-wide constants for the mentorship platform."""

from __future__ import annotations

BRAND_NAME = "Mentorship"

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = f"Backend API for {BRAND_NAME} - booking sessions between mentors and mentees"
API_VERSION = "1.0.0"

# Session lengths a mentee can book, in minutes
SESSION_DURATION_OPTIONS = (30, 60, 120)
DEFAULT_SESSION_DURATION = 60

# Shortest weekly or one-off window a mentor can publish
MIN_WINDOW_MINUTES = 30

MAX_REASON_LENGTH = 500
MAX_TOPIC_LENGTH = 200
