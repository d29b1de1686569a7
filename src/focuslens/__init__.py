"""focuslens -- Screenshot-driven productivity tracking.

This package records a desktop session, captures screenshots on a
timer and on user activity (clicks, typing, focus changes), and asks a
vision-capable LLM to score each screenshot against the user's stated
goal. Results accumulate into an in-memory session that drives the
terminal feed and an end-of-session summary.
"""

__version__ = "0.1.0"
