"""
Text Pattern Locator Module - Turn a search query into candidate redaction regions

Matching is a case-insensitive literal substring test against each text run.
Run boxes are estimated from the baseline and font size, so the resulting
regions are an approximation: generous vertically, padded horizontally, and
least accurate on unusually scaled text. On rotated pages the displayed run
box is used as is.
"""

import logging
from typing import Iterator, List, Optional, Tuple

from .config import RedactConfig
from .errors import InvalidRegion, SearchExtractionFailure
from .models import Region, SearchMatch, TextRun
from .source import PageSource


logger = logging.getLogger(__name__)


def run_region(run: TextRun, page_width: float, page_height: float,
               config: RedactConfig) -> Region:
    """
    Estimate the top-left percentage region covering a text run

    The text layer is bottom-up while regions are top-down, so the top edge
    is page_height - baseline - ascent, with the ascent approximated from
    the font size. The box is 1.5 line heights tall to absorb ascenders
    and descenders. Runs that carry a display box (rotated pages) use that
    box, padded on every side, since their text may run vertically.

    Args:
        run: Text run with baseline position in points (bottom-up)
        page_width: Page width in points
        page_height: Page height in points
        config: Padding and height factors

    Returns:
        Region clamped to the page
    """
    padding = config.search_padding

    if run.display_box is not None:
        bx0, by0, bx1, by1 = run.display_box
        return Region.from_corners(
            (bx0 - padding) / page_width * 100.0,
            (by0 - padding) / page_height * 100.0,
            (bx1 + padding) / page_width * 100.0,
            (by1 + padding) / page_height * 100.0,
        )

    size = run.font_size
    width = run.advance_width if run.advance_width > 0 else len(run.text) * size * 0.5

    y_from_top = page_height - run.baseline_y - size * config.ascent_factor
    top = y_from_top - size

    x0 = (run.baseline_x - padding) / page_width * 100.0
    x1 = (run.baseline_x + width + padding) / page_width * 100.0
    y0 = top / page_height * 100.0
    y1 = (top + size * config.line_height_factor) / page_height * 100.0

    return Region.from_corners(x0, y0, x1, y1)


class TextPatternLocator:
    """Searches every page's text layer in document order"""

    def __init__(self, source: PageSource, config: Optional[RedactConfig] = None):
        self.source = source
        self.config = config or RedactConfig()

    def is_searchable(self, query: str) -> bool:
        return bool(query) and len(query) >= self.config.min_query_length

    def _page_matches(self, page_index: int, needle: str,
                      page_width: float, page_height: float) -> List[SearchMatch]:
        matches = []
        for run in self.source.get_text_layer(page_index):
            if needle not in run.text.lower():
                continue
            try:
                region = run_region(run, page_width, page_height, self.config)
            except InvalidRegion:
                # Run lies entirely off the visible page
                logger.debug("Page %d: ignoring off-page run %r", page_index + 1, run.text)
                continue
            matches.append(SearchMatch(page_index, region, run.text))
        return matches

    def iter_search(self, query: str) -> Iterator[Tuple[int, List[SearchMatch]]]:
        """
        Search page by page, yielding after each page

        Pages whose text layer cannot be extracted are logged and yield an
        empty list; they never abort the search.

        Args:
            query: Literal text, at least min_query_length characters

        Yields:
            (page_index, matches on that page)
        """
        if not self.is_searchable(query):
            logger.debug("Query %r shorter than %d characters, not searching",
                         query, self.config.min_query_length)
            return

        needle = query.lower()
        for page in self.source.pages():
            try:
                matches = self._page_matches(page.index, needle, page.width_pt, page.height_pt)
            except (SearchExtractionFailure, RuntimeError, ValueError, KeyError) as e:
                logger.warning("Skipping page %d during search: %s", page.index + 1, e)
                matches = []
            if matches:
                logger.debug("Page %d: %d matches for %r", page.index + 1, len(matches), query)
            yield page.index, matches

    def search(self, query: str) -> List[SearchMatch]:
        """
        Find every run containing the query, in page order

        Returns:
            List of SearchMatch; empty for queries that are too short
        """
        results = []
        for _, matches in self.iter_search(query):
            results.extend(matches)
        return results
