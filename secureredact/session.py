"""
Session Module - Editing session tying the page source, store, editor and exporter

All state is in memory for the lifetime of one loaded document. Every
mutation runs synchronously on the caller's thread; long operations
(search and export) are page-sized generators the caller can interleave
with its own event loop.
"""

import logging
from typing import Callable, Dict, Generator, Iterator, List, Optional, Tuple

from .config import RedactConfig
from .editor import RegionEditor, Tool
from .errors import RegionTooSmall, UnknownPage
from .exporter import CancellationToken, SecureExporter, export_secure
from .locator import TextPatternLocator
from .models import Annotation, ExportResult, Page, ProgressEvent, Region, SearchMatch, fill_rgb
from .source import FitzPageSource
from .store import AnnotationStore
from .verification import render_preview


logger = logging.getLogger(__name__)


class RedactionSession:
    """Application-facing API for one document"""

    def __init__(self, source: FitzPageSource, config: Optional[RedactConfig] = None):
        self.config = config or RedactConfig()
        self.source = source
        self.pages: List[Page] = source.pages()
        self._by_id: Dict[str, Page] = {page.id: page for page in self.pages}

        self.store = AnnotationStore(
            (page.id for page in self.pages),
            min_region_percent=self.config.min_region_percent,
        )
        self.locator = TextPatternLocator(source, self.config)
        self.exporter = SecureExporter(source, self.config)
        self.editor = RegionEditor(self.store, page=self.pages[0] if self.pages else None)

        self.verification = False
        self.active_page_id: Optional[str] = self.pages[0].id if self.pages else None

    @classmethod
    def open(cls, path: str, config: Optional[RedactConfig] = None) -> "RedactionSession":
        """
        Load a PDF and start a session

        Raises:
            SourceParseFailure: if the PDF cannot be read
        """
        config = config or RedactConfig()
        source = FitzPageSource.open(path, preview_scale=config.preview_scale)
        return cls(source, config)

    def close(self) -> None:
        self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def page(self, page_id: str) -> Page:
        try:
            return self._by_id[page_id]
        except KeyError:
            raise UnknownPage(page_id) from None

    def page_at(self, index: int) -> Page:
        return self.pages[index]

    @property
    def active_page(self) -> Optional[Page]:
        if self.active_page_id is None:
            return None
        return self._by_id[self.active_page_id]

    def set_active_page(self, page_id: str) -> None:
        page = self.page(page_id)
        self.active_page_id = page.id
        self.editor.set_page(page)

    def set_tool(self, tool: Tool) -> None:
        self.editor.set_tool(tool)

    def set_fill(self, fill_color: str, label: Optional[str] = None) -> None:
        """Appearance used by the editor for the next drawn regions"""
        fill_rgb(fill_color)  # raises ValueError for colors outside the palette
        self.editor.fill_color = fill_color
        self.editor.label = label

    def draw_annotation(self, page_id: str, region: Region, fill_color: str = "black",
                        label: Optional[str] = None) -> str:
        """
        Store a region on a page

        Raises:
            RegionTooSmall: if the region is below the minimum size
        """
        return self.store.add(page_id, region, fill_color, label)

    def remove_annotation(self, page_id: str, annotation_id: str) -> Annotation:
        return self.store.remove(page_id, annotation_id)

    def undo_last(self, page_id: str) -> Optional[Annotation]:
        return self.store.undo_last(page_id)

    def annotations(self, page_id: str) -> Tuple[Annotation, ...]:
        return self.store.list_for(page_id)

    def iter_search(self, query: str) -> Iterator[Tuple[int, List[SearchMatch]]]:
        return self.locator.iter_search(query)

    def search(self, query: str) -> List[SearchMatch]:
        return self.locator.search(query)

    def apply_match(self, match: SearchMatch, fill_color: str = "black",
                    label: Optional[str] = None) -> Optional[str]:
        """
        Store a search match as an annotation and activate its page

        Returns:
            The annotation id, or None when the match region is below the
            minimum size
        """
        page = self.page_at(match.page_index)
        try:
            annotation_id = self.store.add(page.id, match.region, fill_color, label)
        except RegionTooSmall:
            logger.debug("Match %r on page %d too small to apply",
                         match.matched_text, match.page_index + 1)
            return None

        self.set_active_page(page.id)
        return annotation_id

    def apply_all(self, matches: List[SearchMatch], fill_color: str = "black",
                  label: Optional[str] = None) -> List[str]:
        """Apply every match; returns the ids of stored annotations"""
        ids = []
        for match in matches:
            annotation_id = self.apply_match(match, fill_color, label)
            if annotation_id is not None:
                ids.append(annotation_id)
        return ids

    def set_verification_mode(self, enabled: bool) -> None:
        self.verification = bool(enabled)

    def preview(self, page_id: str, scale: Optional[float] = None):
        """Preview raster of a page with overlays in the current view mode"""
        page = self.page(page_id)
        return render_preview(
            self.source,
            page.index,
            self.store.list_for(page_id),
            verification=self.verification,
            scale=scale or self.config.preview_scale,
        )

    def iter_export(self, cancel_token: Optional[CancellationToken] = None
                    ) -> Generator[ProgressEvent, None, ExportResult]:
        """
        Generator form of export_secure

        Editing is locked from the first step until the generator is
        exhausted or closed; its return value is the ExportResult.
        """
        if self.editor.is_dragging:
            self.editor.pointer_cancel()

        self.store.lock()
        try:
            events = self.exporter.iter_export(self.pages, self.store.snapshot(), cancel_token)
            return (yield from events)
        finally:
            self.store.unlock()

    def export_secure(self, on_progress: Optional[Callable[[ProgressEvent], None]] = None,
                      on_status: Optional[Callable[[str], None]] = None,
                      cancel_token: Optional[CancellationToken] = None) -> ExportResult:
        """
        Export every page in order; editing is locked until it finishes

        Raises:
            ExportRenderFailure, SerializationFailure, ExportCancelled
        """
        if self.editor.is_dragging:
            self.editor.pointer_cancel()

        self.store.lock()
        try:
            return export_secure(
                self.exporter,
                self.pages,
                self.store.snapshot(),
                on_progress=on_progress,
                on_status=on_status,
                cancel_token=cancel_token,
            )
        finally:
            self.store.unlock()
