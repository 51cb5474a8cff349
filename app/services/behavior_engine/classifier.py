"""
Stateful classifier: a single forward fold over NormalizedEvents.

Each event is applied to an explicit ClassifierState by `step`; the state
carries the small rolling windows needed to spot rage clicks, click thrashing, dead clicks,
hesitations, scroll reversals and bursts, idle gaps and abandoned inputs.
Every rule is total: unexpected values degrade, nothing raises.
"""

from collections import deque
from dataclasses import dataclass, field
from functools import reduce
from typing import Callable, Deque, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

from .config import DEFAULT_CONFIG, AnalyzerConfig, DeadClickScope
from .events import (
    CLICK_KINDS,
    RESPONSE_KINDS,
    SYSTEM_KINDS,
    ElementRole,
    EventKind,
    NormalizedEvent,
)
from .labels import truncate
from .metrics import SessionSummary

TargetKey = Union[int, str]

# Pointer bookkeeping never counts as the page responding to a click.
POINTER_KINDS = frozenset({EventKind.MOUSE_MOVE, EventKind.HOVER_START, EventKind.HOVER_END})

RECENT_CLICKS_MAXLEN = 32

CLICK_ACTIONS = {
    ElementRole.LINK: "Clicked link",
    ElementRole.BUTTON: "Clicked button",
    ElementRole.SUBMIT: "Clicked submit",
    ElementRole.CHECKBOX: "Toggled checkbox",
    ElementRole.RADIO: "Selected radio",
}


# --- STATE ---

@dataclass
class LogDraft:
    timestamp: int
    action: str
    details: str
    flags: List[str] = field(default_factory=list)

    def flag(self, flag: str) -> None:
        if flag not in self.flags:
            self.flags.append(flag)


@dataclass
class PendingClick:
    timestamp: int
    target_key: TargetKey
    log_index: int


@dataclass
class HoverState:
    target_key: TargetKey
    target_label: str
    started_at: int
    clicked: bool = False


@dataclass
class InputFieldState:
    label: str
    last_text: str = ""
    last_logged_at: Optional[int] = None


@dataclass
class ClassifierState:
    """
    Scratch state of one classification pass. Owned by a single call to
    SessionClassifier.fold and never shared between sessions.
    """
    counters: Dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(SessionSummary.counter_names(), 0)
    )
    logs: List[LogDraft] = field(default_factory=list)

    # Click windows
    recent_clicks: Deque[Tuple[int, TargetKey]] = field(
        default_factory=lambda: deque(maxlen=RECENT_CLICKS_MAXLEN)
    )
    pending_clicks: Deque[PendingClick] = field(default_factory=deque)

    # Attention
    last_activity: Optional[int] = None
    hover: Optional[HoverState] = None
    last_hover_log: Optional[int] = None

    # Scrolling
    scroll_anchor: int = 0
    scroll_direction: int = 0
    last_scroll_y: int = 0
    last_scroll_at: Optional[int] = None
    last_scroll_log: Optional[int] = None
    burst_direction: int = 0
    burst_length: int = 0
    burst_counted: bool = False

    # Inputs; unsubmitted is an ordered set of fields holding content
    inputs: Dict[TargetKey, InputFieldState] = field(default_factory=dict)
    unsubmitted: Dict[TargetKey, None] = field(default_factory=dict)

    def bump(self, counter: str, amount: int = 1) -> None:
        self.counters[counter] += max(0, int(amount))

    def log(self, timestamp: int, action: str, details: str, *flags: str) -> int:
        draft = LogDraft(timestamp, action, details)
        for flag in flags:
            draft.flag(flag)
        self.logs.append(draft)
        return len(self.logs) - 1


# --- STATELESS RULES ---

Text = Union[str, Callable[[NormalizedEvent], str]]


class _Rule(NamedTuple):
    counters: Tuple[str, ...]
    action: Text
    details: Text
    flags: Tuple[str, ...] = ()


def _label(event: NormalizedEvent) -> str:
    return event.target_label


def _value(event: NormalizedEvent) -> str:
    return str(event.value) if event.value not in (None, "") else ""


SIMPLE_RULES: Dict[EventKind, _Rule] = {
    EventKind.DBLCLICK: _Rule(("double_clicks",), "Double-clicked", _label),
    EventKind.RIGHTCLICK: _Rule(("right_clicks",), "Right-clicked", _label),
    EventKind.FOCUS: _Rule((), "Focused on", _label),
    EventKind.TOUCH: _Rule(("total_touches",), "Touched", _label),
    EventKind.TAP: _Rule((), "Tapped", _label),
    EventKind.LONG_PRESS: _Rule((), "Long pressed", _label, ("[LONG PRESS]",)),
    EventKind.TOUCH_CANCEL: _Rule((), "Touch cancelled", lambda e: f"on {e.target_label}"),
    EventKind.SWIPE: _Rule(("swipes",), "Swiped", _value, ("[SWIPE]",)),
    EventKind.PINCH: _Rule(("pinch_zooms",), "Pinch zoomed", lambda e: f"{e.value} touch points", ("[PINCH ZOOM]",)),
    EventKind.VIDEO_PLAY: _Rule(("total_media_interactions", "video_plays"), "Played", _label),
    EventKind.VIDEO_PAUSE: _Rule(("total_media_interactions", "video_pauses"), "Paused", _label),
    EventKind.MEDIA_SEEK: _Rule(
        ("total_media_interactions",), "Seeked", lambda e: f"{e.target_label} to {e.value}s", ("[VIDEO SEEK]",)
    ),
    EventKind.VOLUME_CHANGE: _Rule(
        ("total_media_interactions",),
        lambda e: "Muted" if e.extra.get("muted") else "Changed volume",
        lambda e: e.target_label if e.extra.get("muted") else f"on {e.target_label} to {e.value}%",
    ),
    EventKind.RATE_CHANGE: _Rule(
        ("total_media_interactions",), "Changed playback speed", lambda e: f"on {e.target_label} to {e.value}x"
    ),
    EventKind.SELECT: _Rule(
        ("total_selections",), "Selected text", lambda e: f'"{truncate(e.value)}"' if e.value else "text"
    ),
    EventKind.COPY: _Rule(("copy_events",), "Copied", "text to clipboard"),
    EventKind.PASTE: _Rule(("paste_events",), "Pasted", "from clipboard"),
    EventKind.CUT: _Rule((), "Cut", "text to clipboard"),
    EventKind.CONSOLE_ERROR: _Rule(("console_errors",), "Console Error", _value, ("[CONSOLE ERROR]",)),
    EventKind.CONSOLE_WARNING: _Rule(("console_warnings",), "Console Warning", _value, ("[CONSOLE WARNING]",)),
    EventKind.SLOW_LOAD: _Rule(("slow_page_loads",), "Slow page load", lambda e: f"LCP: {e.value}ms", ("[SLOW LOAD]",)),
    EventKind.RESIZE: _Rule(("resize_events",), "Resized window", lambda e: f"to {e.value}"),
    EventKind.ORIENTATION_CHANGE: _Rule(
        ("resize_events", "orientation_changes"), "Rotated device", lambda e: f"to {e.value}", ("[ORIENTATION CHANGE]",)
    ),
    EventKind.DRAG: _Rule((), "Dragged", lambda e: f"{e.value}px"),
    EventKind.CANVAS: _Rule((), "Drew on canvas", "interactive element"),
    EventKind.EXIT_INTENT: _Rule((), "Attempted to leave", "page", ("[EXIT INTENT]",)),
    EventKind.PAGE_SHOW: _Rule((), "Returned", "to page"),
    EventKind.PRINT: _Rule((), "Printed", "page"),
    EventKind.FULLSCREEN: _Rule((), lambda e: "Entered fullscreen" if e.value else "Exited fullscreen", "page"),
    EventKind.ONLINE: _Rule((), "Came online", "network restored"),
    EventKind.OFFLINE: _Rule((), "Went offline", "network lost", ("[OFFLINE]",)),
    EventKind.STORAGE: _Rule((), "Storage changed", lambda e: e.value or "unknown key"),
    EventKind.SHORTCUT: _Rule((), "Pressed", _value, ("[KEYBOARD SHORTCUT]",)),
    EventKind.AUTOCAPTURE: _Rule((), "Interacted with", lambda e: f'"{truncate(e.value)}"'),
    EventKind.CONVERSION: _Rule(("conversions",), "Converted", _value, ("[CONVERSION]",)),
}


def _render(text: Text, event: NormalizedEvent) -> str:
    return text(event) if callable(text) else text


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


class SessionClassifier:
    """
    Folds a time-ordered NormalizedEvent sequence into ClassifierState.

    Usage:
        state = SessionClassifier().fold(events, start_time, end_time)
    """

    def __init__(self, config: AnalyzerConfig = DEFAULT_CONFIG):
        self.config = config
        self._handlers: Dict[EventKind, Callable[[ClassifierState, NormalizedEvent], None]] = {
            EventKind.CLICK: self._click,
            EventKind.HOVER_START: self._hover_start,
            EventKind.HOVER_END: self._hover_end,
            EventKind.SCROLL: self._scroll,
            EventKind.INPUT: self._input,
            EventKind.SUBMIT: self._submit,
            EventKind.NAVIGATION: self._leave,
            EventKind.PAGE_LEAVE: self._leave,
            EventKind.VISIBILITY_CHANGE: self._visibility,
            EventKind.NETWORK_ERROR: self._network_error,
            EventKind.SLOW_NETWORK: self._slow_network,
            EventKind.MUTATION: self._mutation,
        }

    def fold(
        self,
        events: Iterable[NormalizedEvent],
        start_time: int = 0,
        end_time: Optional[int] = None,
    ) -> ClassifierState:
        initial = ClassifierState(last_activity=start_time)
        state = reduce(self.step, events, initial)
        return self.finish(state, start_time, end_time)

    def step(self, state: ClassifierState, event: NormalizedEvent) -> ClassifierState:
        """Apply one event to the state and return it."""
        self._resolve_pending_clicks(state, event)
        self._track_idle(state, event)

        handler = self._handlers.get(event.kind)
        if handler is not None:
            handler(state, event)
        elif event.kind in SIMPLE_RULES:
            self._apply_rule(state, event, SIMPLE_RULES[event.kind])
        return state

    def finish(self, state: ClassifierState, start_time: int, end_time: Optional[int]) -> ClassifierState:
        """Close whatever is still open when the recording stops."""
        last = end_time
        if last is None:
            last = state.logs[-1].timestamp if state.logs else start_time

        while state.pending_clicks:
            self._mark_dead(state, state.pending_clicks.popleft())
        if state.hover is not None:
            self._close_hover(state, last)
        if state.unsubmitted:
            # Content typed but never submitted before the recording ended
            self._abandon_inputs(state)

        state.counters["session_duration"] = max(0, last - start_time)
        return state

    # --- CROSS-CUTTING BOOKKEEPING ---

    def _track_idle(self, state: ClassifierState, event: NormalizedEvent) -> None:
        if event.kind in SYSTEM_KINDS:
            return
        if state.last_activity is not None:
            gap = event.timestamp - state.last_activity
            if gap > self.config.IDLE_THRESHOLD_MS:
                state.bump("idle_time", gap - self.config.IDLE_THRESHOLD_MS)
        state.last_activity = event.timestamp

    def _resolve_pending_clicks(self, state: ClassifierState, event: NormalizedEvent) -> None:
        timeout = self.config.DEAD_CLICK_TIMEOUT_MS
        pending = state.pending_clicks

        while pending and event.timestamp - pending[0].timestamp > timeout:
            self._mark_dead(state, pending.popleft())

        if not pending or event.kind in CLICK_KINDS or event.kind in POINTER_KINDS:
            return

        if event.kind in RESPONSE_KINDS or self.config.DEAD_CLICK_SCOPE == DeadClickScope.ANY_EVENT:
            pending.clear()
            return

        remaining = [p for p in pending if p.target_key != event.target_key]
        if len(remaining) != len(pending):
            pending.clear()
            pending.extend(remaining)

    def _mark_dead(self, state: ClassifierState, click: PendingClick) -> None:
        state.bump("dead_clicks")
        state.logs[click.log_index].flag("[NO RESPONSE]")

    def _apply_rule(self, state: ClassifierState, event: NormalizedEvent, rule: _Rule) -> None:
        for counter in rule.counters:
            state.bump(counter)
        state.log(event.timestamp, _render(rule.action, event), _render(rule.details, event), *rule.flags)

    # --- CLICKS ---

    def _click(self, state: ClassifierState, event: NormalizedEvent) -> None:
        cfg = self.config
        ts, key = event.timestamp, event.target_key
        state.bump("total_clicks")

        recent = state.recent_clicks
        horizon = max(cfg.RAGE_CLICK_WINDOW_MS, cfg.THRASH_WINDOW_MS)
        while recent and ts - recent[0][0] > horizon:
            recent.popleft()
        recent.append((ts, key))

        flags = []
        same_target = sum(1 for t, k in recent if k == key and ts - t <= cfg.RAGE_CLICK_WINDOW_MS)
        if same_target >= cfg.RAGE_CLICK_MIN_CLICKS:
            flags.append("[RAGE CLICK]")
            state.bump("rage_clicks")

        # Rapid clicks wandering across different elements
        targets = {k for t, k in recent if ts - t <= cfg.THRASH_WINDOW_MS}
        if len(targets) >= cfg.THRASH_MIN_TARGETS:
            flags.append("[CLICK THRASHING]")

        if event.element == ElementRole.SUBMIT:
            state.bump("form_submissions")
            state.unsubmitted.clear()

        action = CLICK_ACTIONS.get(event.element, "Clicked")
        index = state.log(ts, action, event.target_label, *flags)
        state.pending_clicks.append(PendingClick(ts, key, index))

        if state.hover is not None:
            if state.hover.target_key == key:
                state.hover.clicked = True
            else:
                self._close_hover(state, ts)

    # --- HOVER ---

    def _hover_start(self, state: ClassifierState, event: NormalizedEvent) -> None:
        if state.hover is not None:
            self._close_hover(state, event.timestamp)
        ts = event.timestamp
        state.bump("total_hovers")
        state.hover = HoverState(event.target_key, event.target_label, ts)

        # A hesitation closed at this instant already logged this pointer move
        throttled = state.last_hover_log is not None and ts - state.last_hover_log <= self.config.HOVER_LOG_INTERVAL_MS
        if throttled or (state.logs and state.logs[-1].timestamp == ts):
            return
        state.log(ts, "Hovered over", event.target_label)
        state.last_hover_log = ts

    def _hover_end(self, state: ClassifierState, event: NormalizedEvent) -> None:
        if state.hover is not None and state.hover.target_key == event.target_key:
            self._close_hover(state, event.timestamp)

    def _close_hover(self, state: ClassifierState, ts: int) -> None:
        hover, state.hover = state.hover, None
        dwell = max(0, ts - hover.started_at)
        state.bump("hover_time", dwell)
        if dwell > self.config.HESITATION_MS and not hover.clicked:
            state.bump("hesitations")
            state.log(ts, "Hesitated over", f"{hover.target_label} for {dwell / 1000:.1f}s", "[HESITATION]")

    # --- SCROLLING ---

    def _scroll(self, state: ClassifierState, event: NormalizedEvent) -> None:
        cfg = self.config
        ts = event.timestamp
        y, x = int(event.extra.get("y", 0)), int(event.extra.get("x", 0))
        depth = int(event.value or 0)

        state.bump("total_scrolls")
        if depth > state.counters["scroll_depth_max"]:
            state.counters["scroll_depth_max"] = depth

        # Net direction with a noise threshold; the anchor follows the extreme
        # position reached in the current direction.
        delta = y - state.scroll_anchor
        if state.scroll_direction == 0:
            if abs(delta) >= cfg.SCROLL_REVERSAL_MIN_DELTA_PX:
                state.scroll_direction = _sign(delta)
                state.scroll_anchor = y
        elif delta * state.scroll_direction > 0:
            state.scroll_anchor = y
        elif abs(delta) >= cfg.SCROLL_REVERSAL_MIN_DELTA_PX:
            state.bump("scroll_reversals")
            state.scroll_direction = -state.scroll_direction
            state.scroll_anchor = y

        # Bursts of quick same-direction steps
        step = _sign(y - state.last_scroll_y)
        quick = state.last_scroll_at is not None and ts - state.last_scroll_at <= cfg.RAPID_SCROLL_INTERVAL_MS
        if quick and step != 0 and step == state.burst_direction:
            state.burst_length += 1
        else:
            state.burst_length = 1 if step != 0 else 0
            state.burst_direction = step
            state.burst_counted = False

        rapid = False
        if state.burst_length >= cfg.RAPID_SCROLL_BURST and not state.burst_counted:
            state.bump("rapid_scrolls")
            state.burst_counted = True
            rapid = True

        state.last_scroll_y = y
        state.last_scroll_at = ts

        throttled = state.last_scroll_log is not None and ts - state.last_scroll_log <= cfg.SCROLL_LOG_INTERVAL_MS
        if rapid or (not throttled and y > cfg.SCROLL_LOG_MIN_Y):
            if depth >= 67:
                details = "deep into page"
            elif depth >= 34:
                details = "down the page"
            else:
                details = "near top"
            details += f" ({depth}%)"

            flags = ["[RAPID SCROLL]"] if rapid else []
            if x > cfg.HORIZONTAL_SCROLL_MIN_X:
                details += f" (horizontal: {x}px)"
                flags.append("[HORIZONTAL SCROLL]")
            state.log(ts, "Scrolled", details, *flags)
            state.last_scroll_log = ts

    # --- INPUTS & FORMS ---

    def _input(self, state: ClassifierState, event: NormalizedEvent) -> None:
        cfg = self.config
        ts, key = event.timestamp, event.target_key
        state.bump("total_inputs")

        # Recorders send isChecked on every input; only toggles read it
        is_checked = event.extra.get("is_checked")
        if event.element in (ElementRole.CHECKBOX, ElementRole.RADIO) and isinstance(is_checked, bool):
            state.log(ts, "Checked" if is_checked else "Unchecked", event.target_label)
            return

        field_state = state.inputs.setdefault(key, InputFieldState(event.target_label))
        text = event.value if isinstance(event.value, str) else ""
        previous = field_state.last_text
        if text == previous:
            return

        if text:
            state.unsubmitted[key] = None
            due = (
                field_state.last_logged_at is None
                or ts - field_state.last_logged_at > cfg.INPUT_LOG_INTERVAL_MS
                or abs(len(text) - len(previous)) > cfg.INPUT_LOG_MIN_LENGTH_CHANGE
            )
            if due:
                masked = event.extra.get("masked") or set(text) == {"*"}
                if masked:
                    details = f"in {event.target_label} ({len(text)} characters, masked)"
                else:
                    details = f'"{truncate(text)}" in {event.target_label}'
                flags = ["[CORRECTION]"] if previous and len(text) < len(previous) else []
                state.log(ts, "Typed", details, *flags)
                field_state.last_logged_at = ts
        else:
            state.bump("cleared_inputs")
            state.unsubmitted.pop(key, None)
            state.log(ts, "Cleared", event.target_label, "[CLEARED INPUT]")
            field_state.last_logged_at = ts

        field_state.last_text = text

    def _submit(self, state: ClassifierState, event: NormalizedEvent) -> None:
        state.bump("form_submissions")
        state.unsubmitted.clear()
        state.log(event.timestamp, "Submitted", _value(event) or "form", "[FORM SUBMIT]")

    def _abandon_inputs(self, state: ClassifierState) -> List[str]:
        """Count fields still holding unsubmitted content; returns their labels."""
        labels = [state.inputs[key].label for key in state.unsubmitted if key in state.inputs]
        state.bump("abandoned_inputs", len(state.unsubmitted))
        state.unsubmitted.clear()
        return labels

    def _leave(self, state: ClassifierState, event: NormalizedEvent) -> None:
        abandoned = self._abandon_inputs(state) if state.unsubmitted else []
        if event.kind == EventKind.NAVIGATION:
            action, details = "Navigated", f"to {event.value or 'new page'}"
        else:
            action, details = "Left page", "current page"

        if abandoned:
            details += f" leaving {', '.join(abandoned)} unsubmitted"
            state.log(event.timestamp, action, details, "[ABANDONED INPUT]")
        else:
            state.log(event.timestamp, action, details)

    # --- PAGE & NETWORK ---

    def _visibility(self, state: ClassifierState, event: NormalizedEvent) -> None:
        if event.value:
            state.bump("tab_switches")
            state.log(event.timestamp, "Switched away", "from tab", "[TAB SWITCH]")
        else:
            state.log(event.timestamp, "Returned", "to tab")

    def _network_error(self, state: ClassifierState, event: NormalizedEvent) -> None:
        count = int(event.value or 1)
        codes = ", ".join(str(code) for code in event.extra.get("codes", []))
        state.bump("network_errors", count)
        details = f"{count} failed request(s)" + (f" - {codes}" if codes else "")
        index = state.log(event.timestamp, "Network error", details, "[NETWORK ERROR]")
        slow = int(event.extra.get("slow", 0))
        if slow:
            # Slow requests from the same batch share the error line
            state.bump("slow_requests", slow)
            state.logs[index].flag("[SLOW NETWORK]")

    def _slow_network(self, state: ClassifierState, event: NormalizedEvent) -> None:
        count = int(event.value or 1)
        state.bump("slow_requests", count)
        state.log(event.timestamp, "Slow network", f"{count} slow request(s)", "[SLOW NETWORK]")

    def _mutation(self, state: ClassifierState, event: NormalizedEvent) -> None:
        added = int(event.value or 0)
        if added > self.config.LARGE_MUTATION_NODES:
            state.log(event.timestamp, "Content loaded", f"{added} elements added")
