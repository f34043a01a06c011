"""
Annotation Store Module - Per-page ordered redaction annotations

Pages are referenced by id only; the store owns every annotation list.
Insertion order is application order and undo order.
"""

import logging
import uuid
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import AnnotationNotFound, EditingLocked, RegionTooSmall, UnknownPage
from .models import Annotation, Region


logger = logging.getLogger(__name__)

DEFAULT_MIN_REGION_PERCENT = 0.5


class AnnotationStore:
    """Arena of annotations keyed by page id"""

    def __init__(self, page_ids: Iterable[str] = (),
                 min_region_percent: float = DEFAULT_MIN_REGION_PERCENT):
        self._pages: Dict[str, List[Annotation]] = {}
        self.min_region_percent = min_region_percent
        self._locked = False
        for page_id in page_ids:
            self.register_page(page_id)

    def register_page(self, page_id: str) -> None:
        """Register a page; registering an existing page keeps its annotations"""
        self._pages.setdefault(page_id, [])

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        self._locked = True

    def unlock(self) -> None:
        self._locked = False

    def _check_unlocked(self) -> None:
        if self._locked:
            raise EditingLocked("Annotations cannot be edited while an export is running")

    def _annotations(self, page_id: str) -> List[Annotation]:
        try:
            return self._pages[page_id]
        except KeyError:
            raise UnknownPage(page_id) from None

    def add(self, page_id: str, region: Region, fill_color: str = "black",
            label: Optional[str] = None) -> str:
        """
        Append an annotation to a page

        Args:
            page_id: Target page id
            region: Region in percent of page size
            fill_color: Palette color name
            label: Optional text drawn centered in the region at export

        Returns:
            The new annotation id

        Raises:
            RegionTooSmall: if width or height is below the minimum size
            UnknownPage: if the page is not registered
            EditingLocked: while an export is running
        """
        self._check_unlocked()
        annotations = self._annotations(page_id)

        if region.width < self.min_region_percent or region.height < self.min_region_percent:
            raise RegionTooSmall(region.width, region.height, self.min_region_percent)

        annotation_id = uuid.uuid4().hex[:12]
        annotation = Annotation(annotation_id, region, fill_color, label)
        annotations.append(annotation)

        logger.debug("Page %s: added annotation %s at %s", page_id, annotation_id, region)
        return annotation_id

    def remove(self, page_id: str, annotation_id: str) -> Annotation:
        """
        Remove one annotation from a page

        Returns:
            The removed annotation

        Raises:
            AnnotationNotFound: if the id does not exist on the page
        """
        self._check_unlocked()
        annotations = self._annotations(page_id)

        for i, annotation in enumerate(annotations):
            if annotation.id == annotation_id:
                del annotations[i]
                logger.debug("Page %s: removed annotation %s", page_id, annotation_id)
                return annotation

        raise AnnotationNotFound(page_id, annotation_id)

    def list_for(self, page_id: str) -> Tuple[Annotation, ...]:
        """Annotations of a page in insertion order"""
        return tuple(self._annotations(page_id))

    def undo_last(self, page_id: str) -> Optional[Annotation]:
        """
        Remove the most recently added annotation of a page

        Returns:
            The removed annotation, or None if the page has none
        """
        self._check_unlocked()
        annotations = self._annotations(page_id)
        if not annotations:
            return None

        annotation = annotations.pop()
        logger.debug("Page %s: undid annotation %s", page_id, annotation.id)
        return annotation

    def clear(self, page_id: str) -> int:
        """Remove every annotation on a page; returns how many were removed"""
        self._check_unlocked()
        annotations = self._annotations(page_id)
        removed = len(annotations)
        annotations.clear()
        return removed

    def count(self, page_id: Optional[str] = None) -> int:
        if page_id is not None:
            return len(self._annotations(page_id))
        return sum(len(annotations) for annotations in self._pages.values())

    def annotated_page_ids(self) -> List[str]:
        return [page_id for page_id, annotations in self._pages.items() if annotations]

    def snapshot(self) -> Mapping[str, Tuple[Annotation, ...]]:
        """Read-only copy of every page's annotations"""
        return MappingProxyType(
            {page_id: tuple(annotations) for page_id, annotations in self._pages.items()}
        )
