from dataclasses import dataclass
from enum import Enum


class DeadClickScope(str, Enum):
    """Which later events count as the page "responding" to a click."""
    SAME_TARGET = "same_target"  # Only events on the clicked element (plus mutation/navigation)
    ANY_EVENT = "any_event"      # Any non-click event anywhere in the session


@dataclass(frozen=True)
class AnalyzerConfig:
    """
    Fixed heuristic thresholds used by the classifier and the signal rules.

    All times are milliseconds relative to event timestamps; nothing here
    is measured against the wall clock.
    """

    # =====================================================================
    # CLICK PATTERNS
    # =====================================================================

    RAGE_CLICK_WINDOW_MS: int = 1000
    RAGE_CLICK_MIN_CLICKS: int = 3
    # 3+ clicks on the same element inside a 1s trailing window.

    THRASH_WINDOW_MS: int = 1500
    THRASH_MIN_TARGETS: int = 3
    # Clicks spread over 3+ different elements inside 1.5s.

    DEAD_CLICK_TIMEOUT_MS: int = 500
    DEAD_CLICK_SCOPE: DeadClickScope = DeadClickScope.SAME_TARGET

    # =====================================================================
    # ATTENTION
    # =====================================================================

    HESITATION_MS: int = 1500
    # Hover longer than this without clicking the hovered element.

    HOVER_LOG_INTERVAL_MS: int = 3000

    IDLE_THRESHOLD_MS: int = 5000
    # Only the part of a gap beyond this threshold is counted as idle.

    # =====================================================================
    # SCROLLING
    # =====================================================================

    SCROLL_REVERSAL_MIN_DELTA_PX: int = 50
    RAPID_SCROLL_INTERVAL_MS: int = 250
    RAPID_SCROLL_BURST: int = 5
    # 5 same-direction scroll events, each within 250ms of the previous one.

    SCROLL_LOG_INTERVAL_MS: int = 2000
    SCROLL_LOG_MIN_Y: int = 100
    HORIZONTAL_SCROLL_MIN_X: int = 100

    # =====================================================================
    # INPUT LOGGING
    # =====================================================================

    INPUT_LOG_INTERVAL_MS: int = 500
    INPUT_LOG_MIN_LENGTH_CHANGE: int = 3
    LARGE_MUTATION_NODES: int = 10

    # =====================================================================
    # SIGNAL RULES
    # =====================================================================

    FRUSTRATED_MIN_RAPID_SCROLLS: int = 3      # rapid_scrolls above this
    EXPLORING_MIN_SCROLLS: int = 10
    EXPLORING_SCROLL_CLICK_RATIO: float = 4.0
    CONFUSED_MIN_HESITATIONS: int = 1
    CONFUSED_MIN_REVERSALS: int = 2
    ENGAGED_MIN_ACTIONS_PER_MINUTE: float = 2.0
    ENGAGED_MIN_DURATION_MS: int = 30000


DEFAULT_CONFIG = AnalyzerConfig()
