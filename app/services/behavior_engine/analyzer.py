"""
Session analyzer: raw rrweb events in, SemanticSession out.

Pipeline: EventNormalizer -> SessionClassifier (single fold) ->
build_summary / derive_signals -> render_logs.
"""

import logging
from typing import Any, Iterable, Optional

from .classifier import SessionClassifier
from .config import DEFAULT_CONFIG, AnalyzerConfig
from .metrics import SemanticSession
from .normalizer import EventNormalizer
from .renderer import format_duration, render_logs
from .signals import build_summary, derive_signals

logger = logging.getLogger(__name__)


class NoMeaningfulInteractionsError(Exception):
    """The session produced no semantic log lines worth analyzing."""

    def __init__(self, session: SemanticSession):
        super().__init__("No meaningful user interactions found")
        self.session = session


def ensure_meaningful(session: SemanticSession) -> SemanticSession:
    if not session.has_interactions:
        raise NoMeaningfulInteractionsError(session)
    return session


class SessionAnalyzer:
    """
    Pure, synchronous analyzer. Holds configuration only; every call to
    `analyze` builds its own scratch state, so an instance may be shared.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.normalizer = EventNormalizer()
        self.classifier = SessionClassifier(self.config)

    def analyze(self, raw_events: Optional[Iterable[Any]]) -> SemanticSession:
        """
        Analyze one recorded session.

        Never raises for bad input: malformed events are skipped and an empty
        stream yields an empty session (check `has_interactions`).
        """
        normalized = self.normalizer.normalize(raw_events)
        if normalized.event_count == 0:
            return SemanticSession()

        state = self.classifier.fold(normalized.events, normalized.start_time, normalized.end_time)
        summary = build_summary(state)
        signals = derive_signals(summary, self.config)
        logs = render_logs(state.logs, normalized.start_time, normalized.page_url, normalized.page_title)

        logger.info(
            f"Analyzed session: {normalized.event_count} events, {len(logs)} log lines, "
            f"{summary.total_clicks} clicks ({summary.rage_clicks} rage, {summary.dead_clicks} dead)"
        )

        return SemanticSession(
            page_url=normalized.page_url,
            page_title=normalized.page_title,
            total_duration=format_duration(normalized.duration_ms),
            event_count=normalized.event_count,
            viewport_size=normalized.viewport,
            logs=logs,
            summary=summary,
            behavioral_signals=signals,
        )

    def analyze_or_raise(self, raw_events: Optional[Iterable[Any]]) -> SemanticSession:
        """Like `analyze`, but reports an empty session as NoMeaningfulInteractionsError."""
        return ensure_meaningful(self.analyze(raw_events))


def parse_session(raw_events: Optional[Iterable[Any]], config: Optional[AnalyzerConfig] = None) -> SemanticSession:
    return SessionAnalyzer(config).analyze(raw_events)
