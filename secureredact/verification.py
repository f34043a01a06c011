"""
Verification Module - Audit overlays for the preview and residual-text checks

The verification flag only changes how annotations are drawn on the preview.
It never touches the annotation store or the exported document.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF
from PIL import Image, ImageDraw

from .models import Annotation, fill_rgb


logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

# Verification overlays: translucent fill plus a solid outline
VERIFICATION_FILL_ALPHA = 90
OUTLINE_RGB = (255, 0, 0)
OUTLINE_WIDTH = 2


@dataclass(frozen=True)
class OverlayStyle:
    """How one annotation is drawn on the interactive preview"""
    fill: RGBA
    outline: Optional[Tuple[int, int, int]] = None
    outline_width: int = 0


def overlay_style(annotation: Annotation, verification: bool) -> OverlayStyle:
    """
    Pick the preview style of an annotation

    Args:
        annotation: Annotation to draw
        verification: True for audit mode (translucent and outlined)

    Returns:
        OverlayStyle; opaque fill when verification is off
    """
    r, g, b = fill_rgb(annotation.fill_color)
    if not verification:
        return OverlayStyle(fill=(r, g, b, 255))

    return OverlayStyle(
        fill=(r, g, b, VERIFICATION_FILL_ALPHA),
        outline=OUTLINE_RGB,
        outline_width=OUTLINE_WIDTH,
    )


def draw_overlays(image: Image.Image, annotations: Sequence[Annotation],
                  verification: bool) -> Image.Image:
    """
    Draw annotations over a preview raster

    Args:
        image: Page preview
        annotations: Annotations in insertion order
        verification: Audit mode flag

    Returns:
        New RGB image; the input is left untouched
    """
    base = image.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    width, height = base.size

    for annotation in annotations:
        x0, y0, x1, y1 = annotation.region.to_pixels(width, height)
        if x1 <= x0 or y1 <= y0:
            continue
        style = overlay_style(annotation, verification)
        draw.rectangle(
            [x0, y0, x1 - 1, y1 - 1],
            fill=style.fill,
            outline=style.outline,
            width=style.outline_width,
        )

    return Image.alpha_composite(base, overlay).convert("RGB")


def render_preview(source, page_index: int, annotations: Sequence[Annotation],
                   verification: bool = False, scale: float = 1.0) -> Image.Image:
    """Render a page from the source and draw its annotation overlays"""
    raster = source.render_page(page_index, scale)
    return draw_overlays(raster, annotations, verification)


def find_residual_text(pdf_bytes: bytes, terms: Iterable[str],
                       page_indexes: Optional[Iterable[int]] = None) -> Dict[int, List[str]]:
    """
    Check an exported document for terms that should no longer be extractable

    Args:
        pdf_bytes: Exported PDF
        terms: Literal terms, compared case-insensitively
        page_indexes: 0-based pages to check; all pages when None

    Returns:
        Page index -> terms still present on that page (empty when clean)
    """
    terms = [term for term in terms if term]
    remaining: Dict[int, List[str]] = {}

    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        indexes = range(doc.page_count) if page_indexes is None else page_indexes
        for index in indexes:
            text = doc[index].get_text().lower()
            found = [term for term in terms if term.lower() in text]
            if found:
                remaining[index] = found

    if remaining:
        logger.warning("Residual text found on pages %s",
                       ", ".join(str(i + 1) for i in sorted(remaining)))
    return remaining
