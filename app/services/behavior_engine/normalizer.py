"""
Event normalizer: validates, orders and flattens raw rrweb events into
NormalizedEvents, collecting page metadata (URL, title, viewport) on the way.

Malformed or unrecognized events are skipped, never raised.
"""

import gzip
import json
import logging
import math
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .events import (
    EventKind,
    EventType,
    IncrementalSource,
    MediaInteraction,
    MouseInteraction,
    NodeInfo,
    NormalizedEvent,
    UNKNOWN_TARGET,
)
from .labels import (
    build_node_map,
    element_role,
    find_title,
    is_interactive,
    redact,
    semantic_name,
)

logger = logging.getLogger(__name__)

# Custom event tags/types treated as a completed conversion.
CONVERSION_TAGS = frozenset({
    "conversion", "$conversion", "purchase", "checkout_completed", "signup_completed",
})

MAX_MESSAGE_LENGTH = 100
SLOW_REQUEST_MS = 3000
SLOW_LCP_MS = 4000
TAP_MAX_DISTANCE_PX = 10
TAP_MAX_DURATION_MS = 300
SWIPE_MIN_DISTANCE_PX = 50
LONG_PRESS_MIN_MS = 500
ESTIMATED_PAGE_SCREENS = 3  # Page height estimate in viewport heights


@dataclass
class NormalizationResult:
    events: List[NormalizedEvent]
    page_url: str = ""
    page_title: str = ""
    viewport: Tuple[int, int] = (0, 0)
    event_count: int = 0
    start_time: int = 0
    end_time: int = 0

    @property
    def duration_ms(self) -> int:
        return max(0, self.end_time - self.start_time)


@dataclass
class _Context:
    """Scratch state of one normalization pass."""
    node_map: Dict[int, NodeInfo] = field(default_factory=dict)
    page_url: str = ""
    page_title: str = ""
    viewport: Tuple[int, int] = (0, 0)
    hover_id: Optional[int] = None
    touch_start: Optional[Tuple[float, float, int, Optional[int]]] = None


def _number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return value


def _valid_timestamp(raw: Any) -> bool:
    if not isinstance(raw, dict):
        return False
    ts = raw.get("timestamp")
    return not isinstance(ts, bool) and isinstance(ts, (int, float)) and math.isfinite(ts)


def decode_snapshot(data: Any) -> Optional[dict]:
    """Full snapshots may arrive gzip-compressed or as a JSON string."""
    if isinstance(data, dict):
        return data
    if not isinstance(data, (str, bytes)):
        return None

    raw = data.encode("latin-1", errors="ignore") if isinstance(data, str) else data
    try:
        return json.loads(gzip.decompress(raw).decode("utf-8"))
    except (OSError, EOFError, ValueError, zlib.error):
        pass
    try:
        decoded = json.loads(data)
    except ValueError:
        logger.warning("Could not decompress or parse snapshot data")
        return None
    return decoded if isinstance(decoded, dict) else None


class EventNormalizer:
    """
    Turns raw rrweb events into the analyzer's event vocabulary.

    Each call to `normalize` uses fresh scratch state, so one instance can
    serve any number of sessions.
    """

    def normalize(self, raw_events: Optional[Iterable[Any]]) -> NormalizationResult:
        valid = [e for e in (raw_events or []) if _valid_timestamp(e)]
        # Stable sort keeps recording order for equal timestamps
        valid.sort(key=lambda e: e["timestamp"])

        if not valid:
            return NormalizationResult(events=[])

        ctx = _Context()
        events: List[NormalizedEvent] = []
        skipped = 0

        for raw in valid:
            try:
                events.extend(self._normalize_event(ctx, raw, int(raw["timestamp"])))
            except (TypeError, ValueError, KeyError, AttributeError, IndexError) as e:
                skipped += 1
                logger.debug(f"Skipping malformed event at {raw.get('timestamp')}: {e}")

        if skipped:
            logger.debug(f"Skipped {skipped} malformed events out of {len(valid)}")

        return NormalizationResult(
            events=events,
            page_url=ctx.page_url,
            page_title=ctx.page_title,
            viewport=ctx.viewport,
            event_count=len(valid),
            start_time=int(valid[0]["timestamp"]),
            end_time=int(valid[-1]["timestamp"]),
        )

    # --- DISPATCH ---

    def _normalize_event(self, ctx: _Context, raw: dict, ts: int) -> List[NormalizedEvent]:
        event_type = raw.get("type")
        data = raw.get("data")

        if event_type == EventType.META:
            return self._meta(ctx, data or {}, ts)
        if event_type == EventType.FULL_SNAPSHOT:
            self._full_snapshot(ctx, data)
            return []
        if event_type == EventType.INCREMENTAL_SNAPSHOT and isinstance(data, dict):
            return self._incremental(ctx, data, ts)
        if event_type == EventType.CUSTOM and isinstance(data, dict):
            event = self._custom(data, ts)
            return [event] if event else []
        if event_type == EventType.PLUGIN and isinstance(data, dict):
            return self._plugin(data, ts)
        return []

    def _meta(self, ctx: _Context, data: dict, ts: int) -> List[NormalizedEvent]:
        href = data.get("href")
        href = href if isinstance(href, str) else ""
        width, height = int(_number(data.get("width"))), int(_number(data.get("height")))
        if width or height:
            ctx.viewport = (width, height)

        if href and not ctx.page_url:
            ctx.page_url = href
            return []
        if href and href != ctx.page_url:
            # A later meta event means the recording followed a page load
            return [NormalizedEvent(ts, EventKind.NAVIGATION, value=redact(href))]
        return []

    def _full_snapshot(self, ctx: _Context, data: Any) -> None:
        snapshot = decode_snapshot(data)
        if not snapshot or not isinstance(snapshot.get("node"), dict):
            return
        build_node_map(snapshot["node"], ctx.node_map)
        if not ctx.page_title:
            ctx.page_title = find_title(snapshot["node"])

    def _target(self, ctx: _Context, node_id: Any) -> Tuple[Optional[int], Optional[NodeInfo], str]:
        if isinstance(node_id, bool) or not isinstance(node_id, int):
            return None, None, UNKNOWN_TARGET
        info = ctx.node_map.get(node_id)
        try:
            label = semantic_name(info)
        except (TypeError, AttributeError) as e:
            logger.debug(f"Unresolvable label for node {node_id}: {e}")
            label = UNKNOWN_TARGET
        return node_id, info, label

    def _event(self, ctx: _Context, ts: int, kind: EventKind, node_id: Any, value: Any = None,
               **extra) -> NormalizedEvent:
        target_id, info, label = self._target(ctx, node_id)
        return NormalizedEvent(
            timestamp=ts,
            kind=kind,
            target_label=label,
            value=value,
            target_id=target_id,
            element=element_role(info),
            extra=extra,
        )

    # --- INCREMENTAL SNAPSHOTS ---

    def _incremental(self, ctx: _Context, data: dict, ts: int) -> List[NormalizedEvent]:
        source = data.get("source")

        if source == IncrementalSource.MUTATION:
            adds = data.get("adds") or []
            for add in adds:
                if isinstance(add, dict) and isinstance(add.get("node"), dict):
                    build_node_map(add["node"], ctx.node_map)
            return [NormalizedEvent(ts, EventKind.MUTATION, value=len(adds))]

        if source == IncrementalSource.MOUSE_MOVE:
            return self._mouse_move(ctx, data, ts)

        if source == IncrementalSource.MOUSE_INTERACTION:
            event = self._mouse_interaction(ctx, data, ts)
            return [event] if event else []

        if source == IncrementalSource.SCROLL:
            y = max(0, _number(data.get("y")))
            x = max(0, _number(data.get("x")))
            page_height = ctx.viewport[1] * ESTIMATED_PAGE_SCREENS
            depth = min(100, round(y / page_height * 100)) if page_height > 0 else 0
            return [NormalizedEvent(ts, EventKind.SCROLL, value=depth,
                                    extra={"x": int(x), "y": int(y)})]

        if source == IncrementalSource.VIEWPORT_RESIZE:
            return [self._resize(ctx, data, ts)]

        if source == IncrementalSource.INPUT:
            text = data.get("text")
            text = redact(text) if isinstance(text, str) else ""
            node_id = data.get("id")
            info = ctx.node_map.get(node_id) if isinstance(node_id, int) else None
            masked = info is not None and info.type == "password"
            return [self._event(ctx, ts, EventKind.INPUT, node_id, text,
                                is_checked=data.get("isChecked"), masked=masked)]

        if source == IncrementalSource.TOUCH_MOVE:
            positions = [p for p in data.get("positions") or [] if isinstance(p, dict)]
            offsets = [p.get("timeOffset") for p in positions]
            # Two touch points sampled at the same instant means a multi-touch gesture
            if len(offsets) != len(set(offsets)):
                return [NormalizedEvent(ts, EventKind.PINCH, value=len(positions))]
            return []

        if source == IncrementalSource.MEDIA_INTERACTION:
            return self._media(ctx, data, ts)

        if source == IncrementalSource.LOG:
            return self._console(data, ts)

        if source == IncrementalSource.DRAG:
            positions = [p for p in data.get("positions") or [] if isinstance(p, dict)]
            if not positions:
                return []
            start, end = positions[0], positions[-1]
            distance = math.hypot(_number(end.get("x")) - _number(start.get("x")),
                                  _number(end.get("y")) - _number(start.get("y")))
            return [NormalizedEvent(ts, EventKind.DRAG, value=round(distance))]

        if source == IncrementalSource.CANVAS_MUTATION:
            return [NormalizedEvent(ts, EventKind.CANVAS)]

        return []

    def _mouse_move(self, ctx: _Context, data: dict, ts: int) -> List[NormalizedEvent]:
        events = [NormalizedEvent(ts, EventKind.MOUSE_MOVE)]
        positions = [p for p in data.get("positions") or [] if isinstance(p, dict)]
        if not positions:
            return events

        node_id = positions[-1].get("id")
        if node_id == ctx.hover_id:
            return events

        info = ctx.node_map.get(node_id) if isinstance(node_id, int) else None
        if ctx.hover_id is not None:
            events.append(self._event(ctx, ts, EventKind.HOVER_END, ctx.hover_id))
            ctx.hover_id = None
        if is_interactive(info):
            events.append(self._event(ctx, ts, EventKind.HOVER_START, node_id))
            ctx.hover_id = node_id
        return events

    def _mouse_interaction(self, ctx: _Context, data: dict, ts: int) -> Optional[NormalizedEvent]:
        kind = data.get("type")
        node_id = data.get("id")

        if kind == MouseInteraction.CLICK:
            return self._event(ctx, ts, EventKind.CLICK, node_id)
        if kind == MouseInteraction.DBL_CLICK:
            return self._event(ctx, ts, EventKind.DBLCLICK, node_id)
        if kind == MouseInteraction.CONTEXT_MENU:
            return self._event(ctx, ts, EventKind.RIGHTCLICK, node_id)

        if kind in (MouseInteraction.FOCUS, MouseInteraction.BLUR):
            info = ctx.node_map.get(node_id) if isinstance(node_id, int) else None
            if info is None or info.tag not in ("input", "textarea", "select"):
                return None
            return self._event(
                ctx, ts, EventKind.FOCUS if kind == MouseInteraction.FOCUS else EventKind.BLUR, node_id
            )

        if kind == MouseInteraction.TOUCH_START:
            x, y = _number(data.get("x")), _number(data.get("y"))
            ctx.touch_start = (x, y, ts, node_id if isinstance(node_id, int) else None)
            return self._event(ctx, ts, EventKind.TOUCH, node_id)

        if kind == MouseInteraction.TOUCH_END:
            return self._touch_end(ctx, data, ts)

        if kind == MouseInteraction.TOUCH_CANCEL:
            ctx.touch_start = None
            return self._event(ctx, ts, EventKind.TOUCH_CANCEL, node_id)

        return None

    def _touch_end(self, ctx: _Context, data: dict, ts: int) -> Optional[NormalizedEvent]:
        if ctx.touch_start is None:
            return None
        start_x, start_y, start_ts, start_id = ctx.touch_start
        ctx.touch_start = None

        dx = _number(data.get("x")) - start_x
        dy = _number(data.get("y")) - start_y
        distance = math.hypot(dx, dy)
        duration = ts - start_ts
        node_id = data.get("id") if isinstance(data.get("id"), int) else start_id

        if distance < TAP_MAX_DISTANCE_PX and duration < TAP_MAX_DURATION_MS:
            return self._event(ctx, ts, EventKind.TAP, node_id)
        if distance > SWIPE_MIN_DISTANCE_PX:
            if abs(dx) > abs(dy):
                direction = "right" if dx > 0 else "left"
            else:
                direction = "down" if dy > 0 else "up"
            return NormalizedEvent(ts, EventKind.SWIPE, value=direction)
        if duration > LONG_PRESS_MIN_MS:
            return self._event(ctx, ts, EventKind.LONG_PRESS, node_id, duration)
        return None

    def _resize(self, ctx: _Context, data: dict, ts: int) -> NormalizedEvent:
        old_width, old_height = ctx.viewport
        width, height = int(_number(data.get("width"))), int(_number(data.get("height")))
        ctx.viewport = (width, height)

        if old_width and old_height and (old_height > old_width) != (height > width):
            orientation = "portrait" if height > width else "landscape"
            return NormalizedEvent(ts, EventKind.ORIENTATION_CHANGE, value=orientation)
        return NormalizedEvent(ts, EventKind.RESIZE, value=f"{width}x{height}")

    def _media(self, ctx: _Context, data: dict, ts: int) -> List[NormalizedEvent]:
        kind = data.get("type")
        node_id = data.get("id")

        if kind == MediaInteraction.PLAY:
            return [self._event(ctx, ts, EventKind.VIDEO_PLAY, node_id)]
        if kind == MediaInteraction.PAUSE:
            return [self._event(ctx, ts, EventKind.VIDEO_PAUSE, node_id)]
        if kind == MediaInteraction.SEEKED:
            return [self._event(ctx, ts, EventKind.MEDIA_SEEK, node_id,
                                round(_number(data.get("currentTime"))))]
        if kind == MediaInteraction.VOLUME_CHANGE:
            return [self._event(ctx, ts, EventKind.VOLUME_CHANGE, node_id,
                                round(_number(data.get("volume")) * 100), muted=bool(data.get("muted")))]
        if kind == MediaInteraction.RATE_CHANGE:
            return [self._event(ctx, ts, EventKind.RATE_CHANGE, node_id,
                                _number(data.get("playbackRate"), 1))]
        return []

    def _console(self, data: dict, ts: int) -> List[NormalizedEvent]:
        level = data.get("level")
        payload = data.get("payload")
        message = " ".join(str(p) for p in payload) if isinstance(payload, list) else ""

        if level == "error":
            trace = data.get("trace")
            if not message and isinstance(trace, list) and trace:
                message = str(trace[0])
            message = redact(message or "Unknown error")[:MAX_MESSAGE_LENGTH]
            return [NormalizedEvent(ts, EventKind.CONSOLE_ERROR, value=message)]
        if level == "warn":
            return [NormalizedEvent(ts, EventKind.CONSOLE_WARNING, value=redact(message)[:MAX_MESSAGE_LENGTH])]
        return []

    # --- CUSTOM & PLUGIN EVENTS ---

    def _custom(self, data: dict, ts: int) -> Optional[NormalizedEvent]:
        tag = data.get("tag")
        payload = data.get("payload")
        payload = payload if isinstance(payload, dict) else {}
        payload_type = payload.get("type")

        if tag in CONVERSION_TAGS or payload_type in CONVERSION_TAGS:
            return NormalizedEvent(ts, EventKind.CONVERSION, value=str(payload.get("name") or tag or payload_type))

        if payload.get("level") == "error" or payload_type == "error":
            message = payload.get("message") or payload.get("content") or "Unknown error"
            return NormalizedEvent(ts, EventKind.CONSOLE_ERROR, value=redact(str(message))[:MAX_MESSAGE_LENGTH])
        if payload.get("level") == "warn" or payload_type == "warning":
            message = payload.get("message") or payload.get("content") or ""
            return NormalizedEvent(ts, EventKind.CONSOLE_WARNING, value=redact(str(message))[:MAX_MESSAGE_LENGTH])

        if payload_type in ("submit", "form_submit"):
            return NormalizedEvent(ts, EventKind.SUBMIT, value="form")
        if payload_type == "visibilitychange":
            return NormalizedEvent(ts, EventKind.VISIBILITY_CHANGE, value=bool(payload.get("hidden")))
        if payload_type == "selection" or payload.get("selection"):
            text = payload.get("selection") or payload.get("text") or ""
            return NormalizedEvent(ts, EventKind.SELECT, value=redact(str(text)))
        if payload_type == "copy":
            return NormalizedEvent(ts, EventKind.COPY)
        if payload_type == "paste":
            return NormalizedEvent(ts, EventKind.PASTE)
        if payload_type == "cut":
            return NormalizedEvent(ts, EventKind.CUT)
        if payload_type == "navigation" or payload.get("href"):
            destination = payload.get("href") or payload.get("url") or "new page"
            return NormalizedEvent(ts, EventKind.NAVIGATION, value=redact(str(destination)))
        if payload_type == "pagehide":
            return NormalizedEvent(ts, EventKind.PAGE_LEAVE)
        if payload_type == "pageshow":
            return NormalizedEvent(ts, EventKind.PAGE_SHOW)
        if payload_type == "beforeunload":
            return NormalizedEvent(ts, EventKind.EXIT_INTENT)
        if payload_type in ("print", "beforeprint"):
            return NormalizedEvent(ts, EventKind.PRINT)
        if payload_type == "fullscreenchange":
            return NormalizedEvent(ts, EventKind.FULLSCREEN, value=bool(payload.get("isFullscreen")))
        if payload_type == "online":
            return NormalizedEvent(ts, EventKind.ONLINE)
        if payload_type == "offline":
            return NormalizedEvent(ts, EventKind.OFFLINE)
        if payload_type == "storage":
            return NormalizedEvent(ts, EventKind.STORAGE, value=str(payload.get("key") or ""))
        if payload_type in ("keydown", "keypress"):
            return self._shortcut(payload, ts)

        # PostHog specific events
        if tag == "$pageview":
            return NormalizedEvent(ts, EventKind.NAVIGATION, value=redact(str(payload.get("$current_url") or "")))
        if tag == "$pageleave":
            return NormalizedEvent(ts, EventKind.PAGE_LEAVE)
        if tag == "$autocapture" and payload.get("$el_text"):
            return NormalizedEvent(ts, EventKind.AUTOCAPTURE, value=redact(str(payload["$el_text"])))
        return None

    def _shortcut(self, payload: dict, ts: int) -> Optional[NormalizedEvent]:
        key = payload.get("key") or payload.get("code") or ""
        modifiers = [
            name for flag, name in (
                ("ctrlKey", "Ctrl"), ("metaKey", "Cmd"), ("altKey", "Alt"), ("shiftKey", "Shift"),
            ) if payload.get(flag)
        ]
        has_modifier = any(payload.get(flag) for flag in ("ctrlKey", "metaKey", "altKey"))
        if not (has_modifier and key):
            return None
        return NormalizedEvent(ts, EventKind.SHORTCUT, value="+".join(modifiers + [str(key)]))

    def _plugin(self, data: dict, ts: int) -> List[NormalizedEvent]:
        """Network and performance plugins; at most one event per plugin record."""
        payload = data.get("payload")
        if not isinstance(payload, dict):
            return []

        requests = payload.get("requests")
        if isinstance(requests, list):
            requests = [r for r in requests if isinstance(r, dict)]
            failed = [r for r in requests if _number(r.get("responseStatus"), -1) >= 400
                      or r.get("responseStatus") == 0]
            slow = [r for r in requests if _number(r.get("duration")) > SLOW_REQUEST_MS
                    and 0 < _number(r.get("responseStatus"), -1) < 400]
            if failed:
                codes = sorted({int(_number(r.get("responseStatus"))) for r in failed})
                return [NormalizedEvent(ts, EventKind.NETWORK_ERROR, value=len(failed),
                                        extra={"codes": codes, "slow": len(slow)})]
            if slow:
                return [NormalizedEvent(ts, EventKind.SLOW_NETWORK, value=len(slow))]

        if payload.get("type") == "performance" or payload.get("performanceEntries"):
            lcp = _number(payload.get("largestContentfulPaint") or payload.get("lcp"))
            if lcp > SLOW_LCP_MS:
                return [NormalizedEvent(ts, EventKind.SLOW_LOAD, value=round(lcp))]
        return []
