"""
Document Writer Module - Assemble the redacted output document with PyMuPDF
"""

import logging
from typing import Optional

import fitz  # PyMuPDF

from .errors import SerializationFailure


logger = logging.getLogger(__name__)


class FitzDocumentWriter:
    """Builds the output PDF page by page, in order"""

    def __init__(self):
        self.doc = fitz.open()  # New empty PDF

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def append_verbatim(self, source_doc: fitz.Document, page_index: int) -> None:
        """Copy one source page unchanged to the end of the output"""
        self.doc.insert_pdf(source_doc, from_page=page_index, to_page=page_index)

    def append_image_page(self, width: float, height: float, image_bytes: bytes) -> None:
        """
        Append a new page whose only content is an opaque image

        Args:
            width: Page width in points
            height: Page height in points
            image_bytes: Encoded JPEG or PNG covering the whole page
        """
        page = self.doc.new_page(width=width, height=height)
        page.insert_image(page.rect, stream=image_bytes, keep_proportion=False)

    def set_metadata(self, title: str, producer: str, creator: Optional[str] = None) -> None:
        self.doc.set_metadata({
            "title": title,
            "producer": producer,
            "creator": creator or producer,
        })

    def serialize(self) -> bytes:
        """
        Write the output document to bytes

        Raises:
            SerializationFailure: if PyMuPDF cannot write the document
        """
        try:
            return self.doc.tobytes(
                garbage=4,  # Remove unused objects
                deflate=True,  # Compress streams
            )
        except (RuntimeError, ValueError) as e:
            raise SerializationFailure(f"Could not serialize output document: {e}") from e

    def close(self) -> None:
        self.doc.close()
