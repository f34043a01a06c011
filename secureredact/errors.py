"""
Error Module - Failure taxonomy for annotation, search and secure export
"""

from typing import Optional


class RedactionError(Exception):
    """Base class for every error raised by secureredact"""


class InvalidRegion(RedactionError, ValueError):
    """Region coordinates fall outside [0, 100] or have no area"""


class RegionTooSmall(RedactionError):
    """Region is below the minimum size threshold and was not stored"""

    def __init__(self, width: float, height: float, minimum: float):
        super().__init__(
            f"Region {width:.3f}% x {height:.3f}% is below the minimum of {minimum}%"
        )
        self.width = width
        self.height = height
        self.minimum = minimum


class UnknownPage(RedactionError, KeyError):
    """No page with the given id is registered"""

    def __str__(self) -> str:
        return f"Unknown page: {self.args[0]!r}"


class AnnotationNotFound(RedactionError, KeyError):
    """No annotation with the given id exists on the page"""

    def __init__(self, page_id: str, annotation_id: str):
        super().__init__(page_id, annotation_id)
        self.page_id = page_id
        self.annotation_id = annotation_id

    def __str__(self) -> str:
        return f"Annotation {self.annotation_id!r} not found on page {self.page_id!r}"


class EditingLocked(RedactionError):
    """Annotations cannot change while an export is running"""


class SourceParseFailure(RedactionError):
    """The source document cannot be opened (corrupt, encrypted or empty)"""


class SearchExtractionFailure(RedactionError):
    """Text layer of a single page could not be extracted"""

    def __init__(self, page_index: int, reason: str):
        super().__init__(f"Page {page_index + 1}: text extraction failed: {reason}")
        self.page_index = page_index


class ExportRenderFailure(RedactionError):
    """A page carrying annotations could not be flattened"""

    def __init__(self, page_index: int, reason: str):
        super().__init__(f"Page {page_index + 1}: secure flattening failed: {reason}")
        self.page_index = page_index


class SerializationFailure(RedactionError):
    """The output document could not be written to bytes"""


class ExportCancelled(RedactionError):
    """Export was stopped through its cancellation token"""

    def __init__(self, page_index: Optional[int] = None):
        where = f" before page {page_index + 1}" if page_index is not None else ""
        super().__init__(f"Export cancelled{where}")
        self.page_index = page_index
