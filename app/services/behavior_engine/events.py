"""
Event vocabulary for the session analyzer.

Raw events follow the rrweb recording format (what PostHog session replay
exports); normalized events are the analyzer's own flat representation.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Union

UNKNOWN_TARGET = "unknown element"


# --- RAW (rrweb) ENUMS ---

class EventType(IntEnum):
    DOM_CONTENT_LOADED = 0
    LOAD = 1
    FULL_SNAPSHOT = 2
    INCREMENTAL_SNAPSHOT = 3
    META = 4
    CUSTOM = 5
    PLUGIN = 6


class IncrementalSource(IntEnum):
    MUTATION = 0
    MOUSE_MOVE = 1
    MOUSE_INTERACTION = 2
    SCROLL = 3
    VIEWPORT_RESIZE = 4
    INPUT = 5
    TOUCH_MOVE = 6
    MEDIA_INTERACTION = 7
    STYLE_SHEET_RULE = 8
    CANVAS_MUTATION = 9
    FONT = 10
    LOG = 11
    DRAG = 12
    STYLE_DECLARATION = 13


class MouseInteraction(IntEnum):
    MOUSE_UP = 0
    MOUSE_DOWN = 1
    CLICK = 2
    CONTEXT_MENU = 3
    DBL_CLICK = 4
    FOCUS = 5
    BLUR = 6
    TOUCH_START = 7
    TOUCH_MOVE_DEPARTED = 8
    TOUCH_END = 9
    TOUCH_CANCEL = 10


class MediaInteraction(IntEnum):
    PLAY = 0
    PAUSE = 1
    SEEKED = 2
    VOLUME_CHANGE = 3
    RATE_CHANGE = 4


class NodeType(IntEnum):
    DOCUMENT = 0
    DOCUMENT_TYPE = 1
    ELEMENT = 2
    TEXT = 3
    CDATA = 4
    COMMENT = 5


# --- NORMALIZED VOCABULARY ---

class EventKind(str, Enum):
    CLICK = "click"
    DBLCLICK = "dblclick"
    RIGHTCLICK = "rightclick"
    SCROLL = "scroll"
    INPUT = "input"
    SUBMIT = "submit"
    HOVER_START = "hover-start"
    HOVER_END = "hover-end"
    TOUCH = "touch"
    SWIPE = "swipe"
    PINCH = "pinch"
    VIDEO_PLAY = "video-play"
    VIDEO_PAUSE = "video-pause"
    SELECT = "select"
    COPY = "copy"
    PASTE = "paste"
    CONSOLE_ERROR = "console-error"
    NETWORK_ERROR = "network-error"
    RESIZE = "resize"
    ORIENTATION_CHANGE = "orientation-change"
    VISIBILITY_CHANGE = "visibility-change"

    MUTATION = "mutation"
    NAVIGATION = "navigation"
    PAGE_LEAVE = "page-leave"
    PAGE_SHOW = "page-show"
    EXIT_INTENT = "exit-intent"
    FOCUS = "focus"
    BLUR = "blur"
    TAP = "tap"
    LONG_PRESS = "long-press"
    TOUCH_CANCEL = "touch-cancel"
    MOUSE_MOVE = "mouse-move"
    MEDIA_SEEK = "media-seek"
    VOLUME_CHANGE = "volume-change"
    RATE_CHANGE = "rate-change"
    DRAG = "drag"
    CANVAS = "canvas"
    CONSOLE_WARNING = "console-warning"
    SLOW_NETWORK = "slow-network"
    SLOW_LOAD = "slow-load"
    CUT = "cut"
    CONVERSION = "conversion"
    PRINT = "print"
    FULLSCREEN = "fullscreen"
    ONLINE = "online"
    OFFLINE = "offline"
    STORAGE = "storage"
    SHORTCUT = "shortcut"
    AUTOCAPTURE = "autocapture"


class ElementRole(str, Enum):
    LINK = "link"
    BUTTON = "button"
    SUBMIT = "submit"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    FIELD = "field"
    MEDIA = "media"
    OTHER = "other"


# Kinds produced by the page or the network rather than by the user.
SYSTEM_KINDS = frozenset({
    EventKind.MUTATION,
    EventKind.CONSOLE_ERROR,
    EventKind.CONSOLE_WARNING,
    EventKind.NETWORK_ERROR,
    EventKind.SLOW_NETWORK,
    EventKind.SLOW_LOAD,
    EventKind.STORAGE,
    EventKind.ONLINE,
    EventKind.OFFLINE,
    EventKind.CANVAS,
})

CLICK_KINDS = frozenset({EventKind.CLICK, EventKind.DBLCLICK, EventKind.RIGHTCLICK})

# Signals that the page reacted, whatever the click target was.
RESPONSE_KINDS = frozenset({
    EventKind.MUTATION,
    EventKind.NAVIGATION,
    EventKind.PAGE_LEAVE,
    EventKind.SUBMIT,
})


@dataclass
class NodeInfo:
    """Attributes of one recorded DOM element, keyed by rrweb node id."""
    tag_name: str = ""
    id: Optional[str] = None
    class_name: Optional[str] = None
    type: Optional[str] = None
    placeholder: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    aria_label: Optional[str] = None
    text_content: Optional[str] = None
    href: Optional[str] = None
    src: Optional[str] = None

    @property
    def tag(self) -> str:
        return (self.tag_name or "").lower()


@dataclass(frozen=True)
class NormalizedEvent:
    """
    Canonical form of one meaningful interaction.

    `value` holds the kind-specific scalar (scroll depth %, input text,
    error message, swipe direction ...); `extra` carries secondary details
    such as scroll coordinates.
    """
    timestamp: int
    kind: EventKind
    target_label: str = ""
    value: Any = None
    target_id: Optional[int] = None
    element: ElementRole = ElementRole.OTHER
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def target_key(self) -> Union[int, str]:
        return self.target_id if self.target_id is not None else self.target_label
