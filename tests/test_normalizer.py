"""
Normalizer tests: raw rrweb events in, NormalizedEvents and page metadata out.
"""
import gzip
import json

from app.services.behavior_engine.events import (
    ElementRole,
    EventKind,
    IncrementalSource,
    MouseInteraction,
    UNKNOWN_TARGET,
)
from app.services.behavior_engine.normalizer import EventNormalizer, decode_snapshot
from rrweb_builders import (
    EMAIL_FIELD,
    MENU_ICON,
    SEND_BUTTON,
    SIGNUP_LINK,
    SUBMIT_BUTTON,
    T0,
    TERMS_CHECKBOX,
    TOOLTIP,
    checkout_page,
    click,
    document,
    element,
    console_log,
    custom,
    full_snapshot,
    incremental,
    meta,
    mouse,
    mouse_move,
    plugin,
    recorded,
    scroll,
    text_input,
)


def normalize(raw):
    return EventNormalizer().normalize(raw)


def kinds(result):
    return [event.kind for event in result.events]


# ---------------------------------------------------------------------------
# Validation & ordering
# ---------------------------------------------------------------------------

def test_events_without_valid_timestamp_are_dropped():
    raw = [None, "click", {"type": 3}, {"timestamp": "soon"}, {"timestamp": float("nan")},
           {"timestamp": True, "type": 4}]
    result = normalize(raw)
    assert result.events == []
    assert result.event_count == 0


def test_none_input_is_an_empty_result():
    assert normalize(None).event_count == 0


def test_events_are_sorted_by_timestamp():
    raw = recorded(click(T0 + 900, SUBMIT_BUTTON), click(T0 + 100, MENU_ICON))
    result = normalize(raw)

    assert [e.timestamp for e in result.events] == [T0 + 100, T0 + 900]
    assert result.start_time == T0
    assert result.end_time == T0 + 900
    assert result.duration_ms == 900


def test_malformed_event_is_skipped_but_counted():
    raw = recorded(incremental(T0 + 10, IncrementalSource.MOUSE_INTERACTION, type=2, id=None),
                   {"type": 3, "timestamp": T0 + 20, "data": "garbage"})
    result = normalize(raw)
    assert result.event_count == 4
    assert [e.target_label for e in result.events] == [UNKNOWN_TARGET]


# ---------------------------------------------------------------------------
# Page metadata
# ---------------------------------------------------------------------------

def test_meta_and_snapshot_fill_page_metadata():
    result = normalize(recorded(click(T0 + 100, SUBMIT_BUTTON)))
    assert result.page_url == "https://shop.example.com/checkout"
    assert result.page_title == "Checkout"
    assert result.viewport == (1280, 800)


def test_second_meta_with_new_url_is_navigation():
    raw = recorded(meta(T0 + 5000, href="https://shop.example.com/thanks"))
    result = normalize(raw)
    assert kinds(result) == [EventKind.NAVIGATION]
    assert result.events[0].value == "https://shop.example.com/thanks"
    assert result.page_url == "https://shop.example.com/checkout"


def test_non_string_meta_href_is_ignored():
    result = normalize([meta(href=123), full_snapshot(), click(T0 + 100, SUBMIT_BUTTON)])
    assert result.page_url == ""
    assert result.viewport == (1280, 800)
    assert kinds(result) == [EventKind.CLICK]


def test_gzip_compressed_snapshot_is_decoded():
    snapshot = {"node": checkout_page()}
    packed = gzip.compress(json.dumps(snapshot).encode("utf-8")).decode("latin-1")
    assert decode_snapshot(packed) == snapshot

    raw = [meta(), full_snapshot(T0, None), click(T0 + 10, SIGNUP_LINK)]
    raw[1]["data"] = packed
    result = normalize(raw)
    assert result.events[0].target_label == '"Sign up" link'


def test_undecodable_snapshot_is_ignored():
    assert decode_snapshot("not json at all") is None
    assert decode_snapshot(42) is None


# ---------------------------------------------------------------------------
# Target labels
# ---------------------------------------------------------------------------

def test_click_labels_and_roles_come_from_the_snapshot():
    raw = recorded(
        click(T0 + 1, SUBMIT_BUTTON),
        click(T0 + 2, MENU_ICON),
        click(T0 + 3, SIGNUP_LINK),
        click(T0 + 4, SEND_BUTTON),
        click(T0 + 5, EMAIL_FIELD),
        click(T0 + 6, TERMS_CHECKBOX),
        click(T0 + 7, 4242),
    )
    events = normalize(raw).events

    assert [(e.target_label, e.element) for e in events] == [
        ('"Submit" button', ElementRole.BUTTON),
        ('"Menu icon" div', ElementRole.OTHER),
        ('"Sign up" link', ElementRole.LINK),
        ('"Send" button', ElementRole.SUBMIT),
        ('"Email" email field', ElementRole.FIELD),
        ('"terms" checkbox field', ElementRole.CHECKBOX),
        (UNKNOWN_TARGET, ElementRole.OTHER),
    ]
    assert events[0].target_id == SUBMIT_BUTTON



def test_non_string_attributes_still_resolve_a_label():
    page = document([
        element(20, "div", {"id": 5}),
        element(21, "span", {"class": True, "aria-label": 7}),
        element(22, "p", {"class": ["a", "b"], "id": None}),
    ])
    raw = [meta(), full_snapshot(node=page), click(T0 + 1, 20), click(T0 + 2, 21), click(T0 + 3, 22)]
    events = normalize(raw).events

    assert [e.kind for e in events] == [EventKind.CLICK] * 3
    assert [e.target_label for e in events] == ["#5 div", '"7" span', "p"]


# ---------------------------------------------------------------------------
# Incremental snapshots
# ---------------------------------------------------------------------------

def test_mouse_moves_produce_hover_transitions():
    raw = recorded(mouse_move(T0 + 100, TOOLTIP), mouse_move(T0 + 200, TOOLTIP), mouse_move(T0 + 2100, 5))
    result = normalize(raw)
    assert kinds(result) == [
        EventKind.MOUSE_MOVE, EventKind.HOVER_START,
        EventKind.MOUSE_MOVE,
        EventKind.MOUSE_MOVE, EventKind.HOVER_END,
    ]
    assert result.events[1].target_label == '"Tooltip trigger" button'


def test_scroll_depth_is_relative_to_estimated_page_height():
    result = normalize(recorded(scroll(T0 + 100, 1200, x=30), scroll(T0 + 200, 99999)))
    first, second = result.events
    assert first.value == 50
    assert first.extra == {"x": 30, "y": 1200}
    assert second.value == 100


def test_input_text_is_redacted():
    result = normalize(recorded(text_input(T0 + 100, EMAIL_FIELD, "me@example.com")))
    event = result.events[0]
    assert event.kind == EventKind.INPUT
    assert event.value == "[REDACTED]"
    assert event.extra["masked"] is False


def test_touch_start_and_end_become_touch_and_swipe():
    raw = recorded(
        mouse(T0 + 100, MouseInteraction.TOUCH_START, SUBMIT_BUTTON, x=100, y=400),
        mouse(T0 + 250, MouseInteraction.TOUCH_END, SUBMIT_BUTTON, x=300, y=410),
        mouse(T0 + 1000, MouseInteraction.TOUCH_START, SUBMIT_BUTTON, x=50, y=50),
        mouse(T0 + 1100, MouseInteraction.TOUCH_END, SUBMIT_BUTTON, x=52, y=51),
    )
    result = normalize(raw)
    assert kinds(result) == [EventKind.TOUCH, EventKind.SWIPE, EventKind.TOUCH, EventKind.TAP]
    assert result.events[1].value == "right"


def test_simultaneous_touch_points_are_a_pinch():
    positions = [{"x": 10, "y": 10, "id": 5, "timeOffset": -20},
                 {"x": 90, "y": 90, "id": 5, "timeOffset": -20}]
    result = normalize(recorded(incremental(T0 + 100, IncrementalSource.TOUCH_MOVE, positions=positions)))
    assert kinds(result) == [EventKind.PINCH]


def test_flipping_aspect_ratio_is_orientation_change():
    raw = recorded(incremental(T0 + 100, IncrementalSource.VIEWPORT_RESIZE, width=800, height=1280),
                   incremental(T0 + 200, IncrementalSource.VIEWPORT_RESIZE, width=900, height=1280))
    result = normalize(raw)
    assert kinds(result) == [EventKind.ORIENTATION_CHANGE, EventKind.RESIZE]
    assert result.events[0].value == "portrait"
    assert result.viewport == (900, 1280)


def test_console_errors_and_warnings():
    raw = recorded(console_log(T0 + 100, "error", "TypeError:", "x is undefined"),
                   console_log(T0 + 200, "warn", "deprecated API"),
                   console_log(T0 + 300, "info", "ignored"))
    result = normalize(raw)
    assert kinds(result) == [EventKind.CONSOLE_ERROR, EventKind.CONSOLE_WARNING]
    assert result.events[0].value == "TypeError: x is undefined"


def test_mutation_reports_added_node_count_and_extends_node_map():
    adds = [{"parentId": 5, "node": {"type": 2, "id": 77, "tagName": "button",
                                     "attributes": {}, "childNodes": [
                                         {"type": 3, "id": 78, "textContent": "Retry"}]}}]
    raw = recorded(incremental(T0 + 100, IncrementalSource.MUTATION, adds=adds), click(T0 + 200, 77))
    result = normalize(raw)
    assert result.events[0].kind == EventKind.MUTATION
    assert result.events[0].value == 1
    assert result.events[1].target_label == '"Retry" button'


# ---------------------------------------------------------------------------
# Custom & plugin events
# ---------------------------------------------------------------------------

def test_custom_events_map_to_kinds():
    raw = recorded(
        custom(T0 + 1, tag="purchase", name="Pro plan"),
        custom(T0 + 2, type="visibilitychange", hidden=True),
        custom(T0 + 3, type="submit"),
        custom(T0 + 4, type="copy"),
        custom(T0 + 5, type="keydown", key="k", ctrlKey=True),
        custom(T0 + 6, type="keydown", key="a"),
        custom(T0 + 7, tag="$pageleave"),
    )
    result = normalize(raw)
    assert kinds(result) == [
        EventKind.CONVERSION,
        EventKind.VISIBILITY_CHANGE,
        EventKind.SUBMIT,
        EventKind.COPY,
        EventKind.SHORTCUT,
        EventKind.PAGE_LEAVE,
    ]
    assert result.events[0].value == "Pro plan"
    assert result.events[1].value is True
    assert result.events[4].value == "Ctrl+k"


def test_network_plugin_yields_one_event_per_record():
    requests = [
        {"url": "/api/cart", "responseStatus": 404, "duration": 120},
        {"url": "/api/pay", "responseStatus": 500, "duration": 90},
        {"url": "/api/items", "responseStatus": 200, "duration": 4500},
    ]
    result = normalize(recorded(plugin(T0 + 100, requests=requests),
                                plugin(T0 + 200, requests=[requests[2]])))
    assert kinds(result) == [EventKind.NETWORK_ERROR, EventKind.SLOW_NETWORK]
    error = result.events[0]
    assert error.value == 2
    assert error.extra == {"codes": [404, 500], "slow": 1}


def test_slow_largest_contentful_paint_is_slow_load():
    result = normalize(recorded(plugin(T0 + 100, plugin_name="rrweb/performance@1",
                                       type="performance", largestContentfulPaint=5200)))
    assert kinds(result) == [EventKind.SLOW_LOAD]
    assert result.events[0].value == 5200
