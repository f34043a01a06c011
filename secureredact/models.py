"""
Data Model Module - Regions, annotations, pages and export results

All regions are expressed as percentages of the page width/height with a
top-left origin, so they stay valid at any render scale.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .errors import InvalidRegion


# Tolerance for accumulated float error when checking x + width <= 100
_EPSILON = 1e-6

RGB = Tuple[int, int, int]

# Fill color -> (fill RGB, contrasting label RGB)
FILL_PALETTE: Dict[str, Tuple[RGB, RGB]] = {
    "black": ((0, 0, 0), (255, 255, 255)),
    "white": ((255, 255, 255), (0, 0, 0)),
    "gray": ((128, 128, 128), (255, 255, 255)),
    "red": ((200, 0, 0), (255, 255, 255)),
}


def _check_fill(name: str) -> str:
    key = name.lower()
    if key == "grey":
        key = "gray"
    if key not in FILL_PALETTE:
        raise ValueError(
            f"Unknown fill color {name!r}; expected one of {', '.join(FILL_PALETTE)}"
        )
    return key


def fill_rgb(name: str) -> RGB:
    """Return the RGB fill for a palette color name"""
    return FILL_PALETTE[_check_fill(name)][0]


def label_rgb(name: str) -> RGB:
    """Return the label color that contrasts with a palette fill"""
    return FILL_PALETTE[_check_fill(name)][1]


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class Region:
    """Rectangle in percent of page size, top-left origin"""
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                raise InvalidRegion(f"{name}={value} is outside [0, 100]")
        if self.width <= 0 or self.height <= 0:
            raise InvalidRegion(f"Region has no area: {self.width} x {self.height}")
        if self.x + self.width > 100.0 + _EPSILON or self.y + self.height > 100.0 + _EPSILON:
            raise InvalidRegion(f"Region {self} extends past the page edge")

    @property
    def x1(self) -> float:
        return self.x + self.width

    @property
    def y1(self) -> float:
        return self.y + self.height

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "Region":
        """
        Build the normalized bounding box of two corner points (in percent)

        Both points are clamped to [0, 100] first, so the result never leaves
        the page. Raises InvalidRegion when the box has no area.
        """
        x0, x1 = sorted((_clamp(x0), _clamp(x1)))
        y0, y1 = sorted((_clamp(y0), _clamp(y1)))
        return cls(x0, y0, x1 - x0, y1 - y0)

    def to_pixels(self, pixel_width: int, pixel_height: int) -> Tuple[int, int, int, int]:
        """
        Convert to integer pixel bounds on a raster

        Args:
            pixel_width: Raster width in pixels
            pixel_height: Raster height in pixels

        Returns:
            (x0, y0, x1, y1) with x1/y1 exclusive
        """
        x0 = round(self.x / 100.0 * pixel_width)
        y0 = round(self.y / 100.0 * pixel_height)
        x1 = round(self.x1 / 100.0 * pixel_width)
        y1 = round(self.y1 / 100.0 * pixel_height)
        return (
            max(0, min(pixel_width, x0)),
            max(0, min(pixel_height, y0)),
            max(0, min(pixel_width, x1)),
            max(0, min(pixel_height, y1)),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Annotation:
    """A redaction region with its appearance; immutable once stored"""
    id: str
    region: Region
    fill_color: str = "black"
    label: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "fill_color", _check_fill(self.fill_color))
        if self.label is not None and not self.label.strip():
            object.__setattr__(self, "label", None)

    def to_dict(self) -> Dict:
        data = {"id": self.id, "fill": self.fill_color, **self.region.to_dict()}
        if self.label:
            data["label"] = self.label
        return data


@dataclass(frozen=True)
class Page:
    """Page descriptor; annotations live in the AnnotationStore, keyed by id"""
    id: str
    index: int
    pixel_width: int
    pixel_height: int
    width_pt: float
    height_pt: float


@dataclass(frozen=True)
class TextRun:
    """
    One positioned run from a page text layer

    baseline_y is measured bottom-up from the page's lower edge, in points.
    display_box is the run's (x0, y0, x1, y1) top-down on the displayed page;
    sources set it for rotated pages, where text need not run left to right.
    """
    text: str
    baseline_x: float
    baseline_y: float
    advance_width: float
    font_size: float
    display_box: Optional[Tuple[float, float, float, float]] = None


@dataclass(frozen=True)
class SearchMatch:
    """Candidate region for a located query; not stored until applied"""
    page_index: int
    region: Region
    matched_text: str


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after each page-sized unit of work"""
    page_index: int
    page_count: int
    phase: str

    @property
    def percent(self) -> float:
        if self.page_count <= 0:
            return 100.0
        return min(100.0, (self.page_index + 1) / self.page_count * 100.0)


@dataclass(frozen=True)
class ExportResult:
    """Serialized output document; produced once per export"""
    data: bytes
    filename: str
    page_count: int
    flattened_pages: Tuple[int, ...] = field(default_factory=tuple)

    @property
    def size(self) -> int:
        return len(self.data)

    def save(self, path: str) -> None:
        """Write the buffer to disk"""
        with open(path, "wb") as f:
            f.write(self.data)
