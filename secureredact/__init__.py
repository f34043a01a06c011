"""
Secure Redact - Mark sensitive regions in PDFs and export them unrecoverably

Regions are drawn by hand or located by literal text search. On export, every
page carrying a region is flattened to an opaque image with the regions
painted over; unmarked pages are copied unchanged.
"""

__version__ = "1.0.0"
__author__ = "Secure Redact"
__email__ = ""

from .config import RedactConfig, load_config
from .editor import PointerCancel, PointerDown, PointerMove, PointerUp, RegionEditor, Tool
from .errors import (
    AnnotationNotFound,
    EditingLocked,
    ExportCancelled,
    ExportRenderFailure,
    InvalidRegion,
    RedactionError,
    RegionTooSmall,
    SearchExtractionFailure,
    SerializationFailure,
    SourceParseFailure,
    UnknownPage,
)
from .exporter import CancellationToken, SecureExporter, export_secure
from .locator import TextPatternLocator
from .models import Annotation, ExportResult, Page, ProgressEvent, Region, SearchMatch, TextRun
from .sanitize import analyze_metadata, scrub_metadata
from .session import RedactionSession
from .source import FitzPageSource, PageSource
from .store import AnnotationStore
from .utils import get_pdf_info, load_regions, validate_pdf
from .verification import find_residual_text, overlay_style, render_preview

__all__ = [
    "RedactConfig",
    "load_config",
    "RegionEditor",
    "Tool",
    "PointerDown",
    "PointerMove",
    "PointerUp",
    "PointerCancel",
    "RedactionError",
    "InvalidRegion",
    "RegionTooSmall",
    "UnknownPage",
    "AnnotationNotFound",
    "EditingLocked",
    "SourceParseFailure",
    "SearchExtractionFailure",
    "ExportRenderFailure",
    "SerializationFailure",
    "ExportCancelled",
    "CancellationToken",
    "SecureExporter",
    "export_secure",
    "TextPatternLocator",
    "Annotation",
    "ExportResult",
    "Page",
    "ProgressEvent",
    "Region",
    "SearchMatch",
    "TextRun",
    "RedactionSession",
    "FitzPageSource",
    "PageSource",
    "AnnotationStore",
    "find_residual_text",
    "overlay_style",
    "render_preview",
    "analyze_metadata",
    "scrub_metadata",
    "get_pdf_info",
    "load_regions",
    "validate_pdf",
]
