"""
Behavior Engine - rrweb session events to a semantic session.

Normalizes raw recording events, folds them through a stateful classifier
and aggregates counters and behavioral signals.
"""

from .analyzer import (
    NoMeaningfulInteractionsError,
    SessionAnalyzer,
    ensure_meaningful,
    parse_session,
)
from .config import DEFAULT_CONFIG, AnalyzerConfig, DeadClickScope
from .metrics import BehavioralSignals, SemanticLog, SemanticSession, SessionSummary
from .renderer import render_transcript

__all__ = [
    "SessionAnalyzer",
    "parse_session",
    "ensure_meaningful",
    "NoMeaningfulInteractionsError",
    "AnalyzerConfig",
    "DeadClickScope",
    "DEFAULT_CONFIG",
    "SemanticSession",
    "SemanticLog",
    "SessionSummary",
    "BehavioralSignals",
    "render_transcript",
]
