"""
Secure Export Module - Produce an output PDF with no recoverable redacted content

Pages without annotations are copied verbatim and keep their text layer.
Pages with annotations are re-rendered, overpainted and replaced by a single
opaque image, so no glyphs, vector paths or fonts of the original page
survive. A failure while flattening any such page aborts the whole export;
there is no fallback to the unredacted page.
"""

import io
import logging
from typing import Callable, Generator, Iterable, Mapping, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .config import RedactConfig
from .errors import ExportCancelled, ExportRenderFailure, RedactionError, SerializationFailure
from .models import Annotation, ExportResult, Page, ProgressEvent, fill_rgb, label_rgb
from .sanitize import scrub_metadata
from .source import FitzPageSource
from .writer import FitzDocumentWriter


logger = logging.getLogger(__name__)

PHASE_COPY = "copy"
PHASE_FLATTEN = "flatten"
PHASE_FINALIZE = "finalize"

MIN_LABEL_PX = 6

STATUS_MESSAGES = {
    "start": "Reading original PDF...",
    "pages": "Constructing document...",
    PHASE_FINALIZE: "Finalizing PDF...",
}


class CancellationToken:
    """Checked between pages; cancel() stops the export at the next page"""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, page_index: Optional[int] = None) -> None:
        if self._cancelled:
            raise ExportCancelled(page_index)


def _fit_label_font(draw: ImageDraw.ImageDraw, label: str,
                    box_width: int, box_height: int, ratio: float):
    size = max(MIN_LABEL_PX, int(box_height * ratio))
    while size >= MIN_LABEL_PX:
        font = ImageFont.load_default(size=size)
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        if right - left <= box_width - 2 and bottom - top <= box_height:
            return font, (left, top, right, bottom)
        size -= 1
    return None, None


def composite_annotations(image: Image.Image, annotations: Sequence[Annotation],
                          label_height_ratio: float = 0.6) -> Image.Image:
    """
    Paint annotations onto a copy of a page raster

    Regions are converted against the raster's own pixel size. Annotations
    are painted in insertion order, so later ones cover earlier ones.

    Args:
        image: Rendered page
        annotations: Annotations in insertion order
        label_height_ratio: Label text height as a fraction of the box height

    Returns:
        New RGB image with opaque boxes and centered labels
    """
    canvas = image.convert("RGB") if image.mode != "RGB" else image.copy()
    width, height = canvas.size
    draw = ImageDraw.Draw(canvas)

    for annotation in annotations:
        x0, y0, x1, y1 = annotation.region.to_pixels(width, height)
        if x1 <= x0 or y1 <= y0:
            continue

        # ImageDraw treats the end coordinates as inclusive
        draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=fill_rgb(annotation.fill_color))

        if not annotation.label:
            continue

        font, bbox = _fit_label_font(draw, annotation.label, x1 - x0, y1 - y0,
                                     label_height_ratio)
        if font is None:
            logger.debug("Label %r does not fit in %dx%d px box, omitted",
                         annotation.label, x1 - x0, y1 - y0)
            continue

        left, top, right, bottom = bbox
        tx = x0 + ((x1 - x0) - (right - left)) / 2 - left
        ty = y0 + ((y1 - y0) - (bottom - top)) / 2 - top
        draw.text((tx, ty), annotation.label, fill=label_rgb(annotation.fill_color), font=font)

    return canvas


def encode_raster(image: Image.Image, image_format: str = "jpeg", quality: int = 90) -> bytes:
    """Encode a raster as an opaque JPEG or PNG"""
    buffer = io.BytesIO()
    if image_format == "png":
        image.save(buffer, format="PNG", optimize=False)
    else:
        image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class SecureExporter:
    """Two-path exporter: verbatim copy or full flattening, page by page"""

    def __init__(self, source: FitzPageSource, config: Optional[RedactConfig] = None):
        self.source = source
        self.config = config or RedactConfig()

    def flatten_page(self, page: Page, annotations: Sequence[Annotation]) -> bytes:
        """
        Render, overpaint and encode one annotated page

        Raises:
            ExportRenderFailure: if any step fails
        """
        try:
            raster = self.source.render_page(page.index, self.config.render_scale)
            composed = composite_annotations(raster, annotations,
                                             self.config.label_height_ratio)
            return encode_raster(composed, self.config.image_format,
                                 self.config.jpeg_quality)
        except ExportRenderFailure:
            raise
        except (RedactionError, RuntimeError, ValueError, OSError) as e:
            raise ExportRenderFailure(page.index, str(e)) from e

    def iter_export(self, pages: Iterable[Page],
                    annotations: Mapping[str, Sequence[Annotation]],
                    cancel_token: Optional[CancellationToken] = None
                    ) -> Generator[ProgressEvent, None, ExportResult]:
        """
        Export page by page, yielding a ProgressEvent after each page

        The page list and annotations are snapshotted when this is called,
        so later edits do not affect the running export.

        Args:
            pages: Ordered page descriptors to emit
            annotations: Page id -> annotations in insertion order
            cancel_token: Optional token checked before every page

        Returns:
            Generator whose return value (StopIteration.value) is the ExportResult

        Raises:
            ExportRenderFailure: a flagged page could not be flattened
            SerializationFailure: the output could not be written
            ExportCancelled: the token was cancelled
        """
        pages = tuple(pages)
        snapshot = {page.id: tuple(annotations.get(page.id, ())) for page in pages}
        return self._run(pages, snapshot, cancel_token)

    def _run(self, pages: Tuple[Page, ...], snapshot: Mapping[str, Tuple[Annotation, ...]],
             cancel_token: Optional[CancellationToken]
             ) -> Generator[ProgressEvent, None, ExportResult]:
        page_count = len(pages)
        writer = FitzDocumentWriter()
        flattened = []

        try:
            for position, page in enumerate(pages):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(position)

                page_annotations = snapshot[page.id]
                if not page_annotations:
                    try:
                        writer.append_verbatim(self.source.doc, page.index)
                    except (RuntimeError, ValueError) as e:
                        raise SerializationFailure(
                            f"Could not copy page {page.index + 1}: {e}"
                        ) from e
                    logger.debug("Page %d: copied verbatim", page.index + 1)
                    yield ProgressEvent(position, page_count, PHASE_COPY)
                    continue

                try:
                    image_bytes = self.flatten_page(page, page_annotations)
                    writer.append_image_page(page.width_pt, page.height_pt, image_bytes)
                except ExportRenderFailure as e:
                    logger.error("Export aborted: %s", e)
                    raise
                except (RuntimeError, ValueError) as e:
                    logger.error("Export aborted on page %d: %s", page.index + 1, e)
                    raise ExportRenderFailure(page.index, str(e)) from e

                flattened.append(page.index)
                logger.debug("Page %d: flattened with %d annotations",
                             page.index + 1, len(page_annotations))
                yield ProgressEvent(position, page_count, PHASE_FLATTEN)

            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            yield ProgressEvent(max(page_count - 1, 0), page_count, PHASE_FINALIZE)

            title = f"{self.config.filename_prefix}{self.source.name}"
            writer.set_metadata(title=title, producer=self.config.producer)
            data = writer.serialize()
            if self.config.scrub_metadata:
                data = scrub_metadata(data, title=title, producer=self.config.producer)
        finally:
            writer.close()

        logger.info("Exported %d pages (%d flattened, %d bytes)",
                    page_count, len(flattened), len(data))
        return ExportResult(
            data=data,
            filename=title,
            page_count=page_count,
            flattened_pages=tuple(flattened),
        )


def export_secure(exporter: SecureExporter, pages: Iterable[Page],
                  annotations: Mapping[str, Sequence[Annotation]],
                  on_progress: Optional[Callable[[ProgressEvent], None]] = None,
                  on_status: Optional[Callable[[str], None]] = None,
                  cancel_token: Optional[CancellationToken] = None) -> ExportResult:
    """
    Drive an export to completion, forwarding progress to callbacks

    Returns:
        The complete ExportResult; any failure raises instead
    """
    if on_status:
        on_status(STATUS_MESSAGES["start"])

    events = exporter.iter_export(pages, annotations, cancel_token)

    if on_status:
        on_status(STATUS_MESSAGES["pages"])

    while True:
        try:
            event = next(events)
        except StopIteration as stop:
            return stop.value

        if event.phase == PHASE_FINALIZE and on_status:
            on_status(STATUS_MESSAGES[PHASE_FINALIZE])
        if on_progress:
            on_progress(event)
