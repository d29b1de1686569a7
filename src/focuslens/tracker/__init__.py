"""Tracker module for focuslens.

Contains the recording state machine that orchestrates capture,
triggers and analysis, the per-session aggregator, and the telemetry
sinks that receive end-of-session summaries.

Public API:
    ProductivityTracker -- Recording state machine
    SessionAggregator -- Per-session state and progress metrics
    TelemetrySink -- Abstract summary receiver
"""

from focuslens.tracker.controller import ProductivityTracker, TrackerState
from focuslens.tracker.session import SessionAggregator
from focuslens.tracker.telemetry import (
    HttpTelemetrySink,
    LoggingTelemetrySink,
    TelemetrySink,
)

__all__ = [
    "HttpTelemetrySink",
    "LoggingTelemetrySink",
    "ProductivityTracker",
    "SessionAggregator",
    "TelemetrySink",
    "TrackerState",
]
