"""
Page Source Module - Read-only access to the pages of a loaded PDF

Supplies page descriptors, rendered rasters and positioned text runs. The
text layer is reported bottom-up (PDF user space) so the locator can apply
the same baseline conversion to any source.
"""

import logging
import os
import uuid
from typing import List, Optional, Union

import fitz  # PyMuPDF
from PIL import Image

from .errors import SearchExtractionFailure, SourceParseFailure
from .models import Page, TextRun


logger = logging.getLogger(__name__)


class PageSource:
    """Interface consumed by the locator and the exporter"""

    name: str = "document.pdf"

    def get_page_count(self) -> int:
        raise NotImplementedError

    def pages(self) -> List[Page]:
        raise NotImplementedError

    def render_page(self, page_index: int, scale: float) -> Image.Image:
        raise NotImplementedError

    def get_text_layer(self, page_index: int) -> List[TextRun]:
        raise NotImplementedError


def _open_document(source: Union[str, bytes], filetype: Optional[str] = None) -> fitz.Document:
    try:
        if isinstance(source, (bytes, bytearray)):
            doc = fitz.open(stream=bytes(source), filetype=filetype or "pdf")
        else:
            doc = fitz.open(source)
    except (RuntimeError, ValueError, OSError) as e:
        raise SourceParseFailure(f"Cannot open document: {e}") from e

    if not doc.is_pdf:
        doc.close()
        raise SourceParseFailure("Input is not a PDF document")

    if doc.needs_pass:
        doc.close()
        raise SourceParseFailure("Document is encrypted; unlock it before redacting")

    if doc.page_count == 0:
        doc.close()
        raise SourceParseFailure("Document has no pages")

    return doc


class FitzPageSource(PageSource):
    """PyMuPDF-backed page source"""

    def __init__(self, doc: fitz.Document, name: str = "document.pdf",
                 preview_scale: float = 1.0):
        self.doc = doc
        self.name = name
        self.preview_scale = preview_scale
        self._page_ids = [uuid.uuid4().hex[:8] for _ in range(doc.page_count)]

    @classmethod
    def open(cls, path: str, preview_scale: float = 1.0) -> "FitzPageSource":
        """
        Open a PDF from disk

        Raises:
            SourceParseFailure: if the file is corrupt, encrypted or empty
        """
        doc = _open_document(str(path))
        return cls(doc, name=os.path.basename(str(path)), preview_scale=preview_scale)

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "document.pdf",
                   preview_scale: float = 1.0) -> "FitzPageSource":
        doc = _open_document(data)
        return cls(doc, name=name, preview_scale=preview_scale)

    def close(self) -> None:
        self.doc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def get_page_count(self) -> int:
        return self.doc.page_count

    def pages(self) -> List[Page]:
        pages = []
        for index in range(self.doc.page_count):
            rect = self.doc[index].rect
            pages.append(Page(
                id=self._page_ids[index],
                index=index,
                pixel_width=max(1, round(rect.width * self.preview_scale)),
                pixel_height=max(1, round(rect.height * self.preview_scale)),
                width_pt=rect.width,
                height_pt=rect.height,
            ))
        return pages

    def render_page(self, page_index: int, scale: float) -> Image.Image:
        """
        Render a page to an RGB raster

        Args:
            page_index: 0-based page index
            scale: Pixels per point

        Returns:
            PIL image of the page as displayed (rotation applied)
        """
        page = self.doc[page_index]
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        if pix.n != 3:
            pix = fitz.Pixmap(fitz.csRGB, pix)
        return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)

    def get_text_layer(self, page_index: int) -> List[TextRun]:
        """
        Extract positioned text runs (one per span)

        Raises:
            SearchExtractionFailure: if the page's text cannot be read
        """
        try:
            page = self.doc[page_index]
            page_height = page.rect.height
            rotate = page.rotation != 0
            blocks = page.get_text("dict")["blocks"]
        except (RuntimeError, ValueError, IndexError) as e:
            raise SearchExtractionFailure(page_index, str(e)) from e

        runs = []
        for block in blocks:
            if "lines" not in block:
                continue
            for line in block["lines"]:
                for span in line["spans"]:
                    text = span["text"]
                    if not text.strip():
                        continue

                    bbox = fitz.Rect(span["bbox"])
                    origin = fitz.Point(span["origin"])
                    display_box = None
                    if rotate:
                        # Spans are reported on the unrotated page
                        bbox = bbox * page.rotation_matrix
                        origin = origin * page.rotation_matrix
                        display_box = (bbox.x0, bbox.y0, bbox.x1, bbox.y1)

                    runs.append(TextRun(
                        text=text,
                        baseline_x=bbox.x0,
                        baseline_y=page_height - origin.y,
                        advance_width=bbox.width,
                        font_size=span["size"],
                        display_box=display_box,
                    ))

        return runs
