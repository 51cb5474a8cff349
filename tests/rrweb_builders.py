"""
Raw rrweb event builders.

They produce the JSON shapes the recorder emits, so tests read as a
recorded session: a meta event, a full snapshot of the page and then
incremental snapshots, custom and plugin events.
"""
from app.services.behavior_engine.events import (
    EventType,
    IncrementalSource,
    MouseInteraction,
    NodeType,
)

T0 = 1_700_000_000_000


# ---------------------------------------------------------------------------
# DOM nodes
# ---------------------------------------------------------------------------

def element(node_id, tag, attributes=None, text=None, children=None, text_id=None):
    child_nodes = list(children or [])
    if text is not None:
        child_nodes.insert(0, {
            "type": NodeType.TEXT,
            "id": text_id if text_id is not None else node_id * 1000,
            "textContent": text,
        })
    return {
        "type": NodeType.ELEMENT,
        "id": node_id,
        "tagName": tag,
        "attributes": attributes or {},
        "childNodes": child_nodes,
    }


def document(body_children, title="Checkout"):
    head = element(3, "head", children=[element(4, "title", text=title)])
    body = element(5, "body", children=body_children)
    html = element(2, "html", children=[head, body])
    return {"type": NodeType.DOCUMENT, "id": 1, "childNodes": [html]}


# Page used by most tests
SUBMIT_BUTTON = 10
MENU_ICON = 11
TOOLTIP = 12
EMAIL_FIELD = 13
SIGNUP_LINK = 14
SEND_BUTTON = 15
TERMS_CHECKBOX = 16
VIDEO = 17


def checkout_page():
    return document([
        element(SUBMIT_BUTTON, "button", text="Submit"),
        element(MENU_ICON, "div", {"aria-label": "Menu icon"}),
        element(TOOLTIP, "button", {"aria-label": "Tooltip trigger"}),
        element(EMAIL_FIELD, "input", {"type": "email", "placeholder": "Email"}),
        element(SIGNUP_LINK, "a", {"href": "/signup"}, text="Sign up"),
        element(SEND_BUTTON, "button", {"type": "submit"}, text="Send"),
        element(TERMS_CHECKBOX, "input", {"type": "checkbox", "name": "terms"}),
        element(VIDEO, "video", {"src": "/intro.mp4"}),
    ])


# ---------------------------------------------------------------------------
# Raw events
# ---------------------------------------------------------------------------

def meta(ts=T0, href="https://shop.example.com/checkout", width=1280, height=800):
    return {"type": EventType.META, "timestamp": ts,
            "data": {"href": href, "width": width, "height": height}}


def full_snapshot(ts=T0, node=None):
    return {"type": EventType.FULL_SNAPSHOT, "timestamp": ts,
            "data": {"node": node or checkout_page(), "initialOffset": {"top": 0, "left": 0}}}


def incremental(ts, source, **data):
    return {"type": EventType.INCREMENTAL_SNAPSHOT, "timestamp": ts,
            "data": {"source": source, **data}}


def mouse(ts, interaction, node_id, x=0, y=0):
    return incremental(ts, IncrementalSource.MOUSE_INTERACTION,
                       type=interaction, id=node_id, x=x, y=y)


def click(ts, node_id):
    return mouse(ts, MouseInteraction.CLICK, node_id)


def mouse_move(ts, node_id, x=100, y=100):
    return incremental(ts, IncrementalSource.MOUSE_MOVE,
                       positions=[{"x": x, "y": y, "id": node_id, "timeOffset": 0}])


def scroll(ts, y, x=0, node_id=1):
    return incremental(ts, IncrementalSource.SCROLL, id=node_id, x=x, y=y)


def text_input(ts, node_id, text, is_checked=False):
    # The recorder sends isChecked on every input, text fields included
    return incremental(ts, IncrementalSource.INPUT, id=node_id, text=text, isChecked=is_checked)


def mutation(ts, adds=1):
    nodes = [{"parentId": 5, "nextId": None,
              "node": element(900 + i, "p", text=f"row {i}")} for i in range(adds)]
    return incremental(ts, IncrementalSource.MUTATION,
                       adds=nodes, removes=[], texts=[], attributes=[])


def console_log(ts, level, *payload):
    return incremental(ts, IncrementalSource.LOG, level=level, payload=list(payload), trace=[])


def custom(ts, tag="custom", **payload):
    return {"type": EventType.CUSTOM, "timestamp": ts, "data": {"tag": tag, "payload": payload}}


def plugin(ts, plugin_name="rrweb/network@1", **payload):
    return {"type": EventType.PLUGIN, "timestamp": ts,
            "data": {"plugin": plugin_name, "payload": payload}}


def recorded(*events, ts=T0):
    """A session: meta + snapshot of the checkout page, then the given events."""
    return [meta(ts), full_snapshot(ts), *events]
