"""
Region Editor Module - Pointer-driven state machine for drawing redaction boxes

The editor is decoupled from any widget toolkit: callers translate their own
mouse/touch/pen events into PointerDown / PointerMove / PointerUp /
PointerCancel and feed them to RegionEditor.handle(). Coordinates are pixels
on the active page's preview surface.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .errors import RegionTooSmall
from .models import Page, Region
from .store import AnnotationStore


logger = logging.getLogger(__name__)


class Tool(enum.Enum):
    NONE = "none"
    DRAW = "draw"


@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    pass


@dataclass(frozen=True)
class PointerCancel:
    pass


PointerEvent = Union[PointerDown, PointerMove, PointerUp, PointerCancel]

# (x0, y0, x1, y1) in percent, normalized so x0 <= x1 and y0 <= y1
Box = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    origin: Tuple[float, float]
    current: Box

    @property
    def width(self) -> float:
        return self.current[2] - self.current[0]

    @property
    def height(self) -> float:
        return self.current[3] - self.current[1]


EditorState = Union[Idle, Dragging]


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


class RegionEditor:
    """
    Converts pointer gestures into annotations on the active page

    States: Idle and Dragging(origin, current). A drag only starts while the
    draw tool is active; every move re-clamps the box to the page; release
    commits when the box is large enough; cancel always discards.
    """

    def __init__(self, store: AnnotationStore, page: Optional[Page] = None,
                 tool: Tool = Tool.DRAW, fill_color: str = "black",
                 label: Optional[str] = None):
        self.store = store
        self.page = page
        self.tool = tool
        self.fill_color = fill_color
        self.label = label
        self.state: EditorState = Idle()

    @property
    def is_dragging(self) -> bool:
        return isinstance(self.state, Dragging)

    def set_page(self, page: Optional[Page]) -> None:
        """Switch the active page; an unfinished drag is discarded"""
        if self.is_dragging:
            self.handle(PointerCancel())
        self.page = page

    def set_tool(self, tool: Tool) -> None:
        if tool is not Tool.DRAW and self.is_dragging:
            self.handle(PointerCancel())
        self.tool = tool

    def _to_percent(self, x: float, y: float) -> Tuple[float, float]:
        return (
            _clamp(x / self.page.pixel_width * 100.0),
            _clamp(y / self.page.pixel_height * 100.0),
        )

    def _inside(self, x: float, y: float) -> bool:
        return 0 <= x <= self.page.pixel_width and 0 <= y <= self.page.pixel_height

    def handle(self, event: PointerEvent) -> Optional[str]:
        """
        Apply one pointer event

        Args:
            event: PointerDown, PointerMove, PointerUp or PointerCancel

        Returns:
            The new annotation id when a PointerUp committed a region, else None
        """
        state = self.state

        if isinstance(state, Idle):
            if isinstance(event, PointerDown):
                self._start(event)
            return None

        if isinstance(event, PointerMove):
            px, py = self._to_percent(event.x, event.y)
            ox, oy = state.origin
            self.state = Dragging(
                state.origin,
                (min(ox, px), min(oy, py), max(ox, px), max(oy, py)),
            )
            return None

        if isinstance(event, PointerUp):
            self.state = Idle()
            return self._commit(state)

        if isinstance(event, PointerCancel):
            self.state = Idle()
            logger.debug("Drag cancelled on page %s", self.page.id)
            return None

        # PointerDown while already dragging is ignored
        return None

    def _start(self, event: PointerDown) -> None:
        if self.tool is not Tool.DRAW or self.page is None or self.store.locked:
            return
        if not self._inside(event.x, event.y):
            return

        origin = self._to_percent(event.x, event.y)
        self.state = Dragging(origin, (origin[0], origin[1], origin[0], origin[1]))

    def _commit(self, state: Dragging) -> Optional[str]:
        x0, y0, x1, y1 = state.current
        if x1 <= x0 or y1 <= y0:
            return None

        region = Region.from_corners(x0, y0, x1, y1)
        try:
            return self.store.add(self.page.id, region, self.fill_color, self.label)
        except RegionTooSmall:
            logger.debug("Discarded undersized drag on page %s: %s", self.page.id, region)
            return None

    def pointer_down(self, x: float, y: float) -> None:
        self.handle(PointerDown(x, y))

    def pointer_move(self, x: float, y: float) -> None:
        self.handle(PointerMove(x, y))

    def pointer_up(self) -> Optional[str]:
        return self.handle(PointerUp())

    def pointer_cancel(self) -> None:
        self.handle(PointerCancel())
