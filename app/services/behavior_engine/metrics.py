import json
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, List, Tuple


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class SemanticLog:
    """One readable line of the session transcript."""
    timestamp: str              # [MM:SS], session-relative
    action: str
    details: str
    flags: Tuple[str, ...] = ()  # [RAGE CLICK], [NO RESPONSE], [CONSOLE ERROR] ...
    raw_timestamp: int = 0       # Original event timestamp, used for ordering

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "action": self.action,
            "details": self.details,
            "flags": list(self.flags),
            "rawTimestamp": self.raw_timestamp,
        }


@dataclass(frozen=True)
class SessionSummary:
    """
    DTO that holds the aggregate counters of one analyzed session.
    Durations (hover_time, idle_time, session_duration) are milliseconds.
    """
    # Click metrics
    total_clicks: int = 0
    rage_clicks: int = 0
    dead_clicks: int = 0
    double_clicks: int = 0
    right_clicks: int = 0

    # Input metrics
    total_inputs: int = 0
    abandoned_inputs: int = 0
    cleared_inputs: int = 0
    form_submissions: int = 0

    # Navigation metrics
    total_scrolls: int = 0
    scroll_depth_max: int = 0   # Percentage
    rapid_scrolls: int = 0      # Fast scroll bursts (frustration indicator)
    scroll_reversals: int = 0   # Going back up (searching behavior)

    # Hover/attention metrics
    total_hovers: int = 0
    hesitations: int = 0
    hover_time: int = 0

    # Touch metrics (mobile)
    total_touches: int = 0
    swipes: int = 0
    pinch_zooms: int = 0

    # Media metrics
    total_media_interactions: int = 0
    video_plays: int = 0
    video_pauses: int = 0

    # Selection/clipboard metrics
    total_selections: int = 0
    copy_events: int = 0
    paste_events: int = 0

    # Error metrics
    console_errors: int = 0
    console_warnings: int = 0
    network_errors: int = 0
    slow_requests: int = 0
    slow_page_loads: int = 0

    # Engagement metrics
    tab_switches: int = 0
    idle_time: int = 0
    conversions: int = 0
    session_duration: int = 0

    # Viewport metrics
    resize_events: int = 0
    orientation_changes: int = 0

    @classmethod
    def counter_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def to_dict(self) -> dict:
        return {_camel(name): value for name, value in asdict(self).items()}


@dataclass(frozen=True)
class BehavioralSignals:
    """Session-level boolean labels derived from SessionSummary only."""
    is_exploring: bool = False    # Lots of scrolling, few clicks
    is_frustrated: bool = False   # Rage clicks, dead clicks, rapid scrolls
    is_engaged: bool = False      # Steady interaction without friction
    is_confused: bool = False     # Hesitations plus back-and-forth scrolling
    is_mobile: bool = False       # Touch events detected
    completed_goal: bool = False  # Form submission or conversion detected

    def to_dict(self) -> dict:
        return {_camel(name): value for name, value in asdict(self).items()}


@dataclass(frozen=True)
class SemanticSession:
    """
    The analyzer output: readable transcript, counters and signals.
    Created fresh per analysis and never mutated afterwards.
    """
    page_url: str = ""
    page_title: str = ""
    total_duration: str = "00:00"
    event_count: int = 0
    viewport_size: Tuple[int, int] = (0, 0)
    logs: Tuple[SemanticLog, ...] = ()
    summary: SessionSummary = field(default_factory=SessionSummary)
    behavioral_signals: BehavioralSignals = field(default_factory=BehavioralSignals)

    @property
    def has_interactions(self) -> bool:
        return len(self.logs) > 0

    def to_dict(self) -> Dict:
        width, height = self.viewport_size
        return {
            "pageUrl": self.page_url,
            "pageTitle": self.page_title,
            "totalDuration": self.total_duration,
            "eventCount": self.event_count,
            "viewportSize": {"width": width, "height": height},
            "logs": [log.to_dict() for log in self.logs],
            "summary": self.summary.to_dict(),
            "behavioralSignals": self.behavioral_signals.to_dict(),
        }

    def to_json(self) -> str:
        """Serialized blob for persistence; stable for identical input."""
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))
