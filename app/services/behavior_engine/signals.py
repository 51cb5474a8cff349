"""
Aggregator: finalizes the summary counters and derives the behavioral
signals from them with fixed, independent threshold rules.
"""

from .classifier import ClassifierState
from .config import DEFAULT_CONFIG, AnalyzerConfig
from .metrics import BehavioralSignals, SessionSummary


def build_summary(state: ClassifierState) -> SessionSummary:
    """Pure copy of the classifier counters."""
    return SessionSummary(**state.counters)


def derive_signals(summary: SessionSummary, config: AnalyzerConfig = DEFAULT_CONFIG) -> BehavioralSignals:
    """
    Evaluates every signal rule once. Signals are non-exclusive (a session can
    be exploring, confused and frustrated together); only is_engaged and
    is_exploring consult another outcome.
    """
    s = summary

    completed_goal = s.form_submissions > 0 or s.conversions > 0

    is_frustrated = (
        s.rage_clicks > 0
        or s.dead_clicks > 0
        or s.rapid_scrolls > config.FRUSTRATED_MIN_RAPID_SCROLLS
    )

    is_exploring = (
        s.total_scrolls >= config.EXPLORING_MIN_SCROLLS
        and s.total_scrolls >= config.EXPLORING_SCROLL_CLICK_RATIO * max(s.total_clicks, 1)
        and not completed_goal
    )

    is_confused = (
        s.hesitations >= config.CONFUSED_MIN_HESITATIONS
        and s.scroll_reversals >= config.CONFUSED_MIN_REVERSALS
    )

    minutes = s.session_duration / 60000
    actions_per_minute = (s.total_clicks + s.total_inputs) / minutes if minutes > 0 else 0.0
    is_engaged = (
        s.session_duration >= config.ENGAGED_MIN_DURATION_MS
        and actions_per_minute >= config.ENGAGED_MIN_ACTIONS_PER_MINUTE
        and not is_frustrated
    )

    is_mobile = (s.total_touches + s.swipes + s.pinch_zooms) > 0

    return BehavioralSignals(
        is_exploring=is_exploring,
        is_frustrated=is_frustrated,
        is_engaged=is_engaged,
        is_confused=is_confused,
        is_mobile=is_mobile,
        completed_goal=completed_goal,
    )
