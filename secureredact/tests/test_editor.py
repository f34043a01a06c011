"""
Tests for the pointer-driven region editor
"""

import unittest

from secureredact.editor import (
    Dragging, Idle, PointerCancel, PointerDown, PointerMove, PointerUp, RegionEditor, Tool,
)
from secureredact.models import Page
from secureredact.store import AnnotationStore


class TestRegionEditor(unittest.TestCase):

    def setUp(self):
        self.page = Page("p1", 0, 1000, 1400, 500, 700)
        self.store = AnnotationStore([self.page.id])
        self.editor = RegionEditor(self.store, self.page)

    def drag(self, start, end):
        self.editor.pointer_down(*start)
        self.editor.pointer_move(*end)
        return self.editor.pointer_up()

    def test_drawn_bounds_round_trip_to_pixels(self):
        gestures = [
            ((100, 280), (400, 350)),
            ((400, 350), (100, 280)),  # dragged up and to the left
            ((0, 0), (1000, 1400)),
            ((333, 777), (341, 790)),
            ((12.3, 45.6), (987.6, 1333.3)),
        ]
        for start, end in gestures:
            annotation_id = self.drag(start, end)
            self.assertIsNotNone(annotation_id, (start, end))

            region = self.store.list_for("p1")[-1].region
            drawn = (
                min(start[0], end[0]), min(start[1], end[1]),
                max(start[0], end[0]), max(start[1], end[1]),
            )
            stored = (
                region.x / 100 * self.page.pixel_width,
                region.y / 100 * self.page.pixel_height,
                region.x1 / 100 * self.page.pixel_width,
                region.y1 / 100 * self.page.pixel_height,
            )
            for a, b in zip(drawn, stored):
                self.assertLessEqual(abs(a - b), 1.0, (start, end))

    def test_state_transitions(self):
        self.assertIsInstance(self.editor.state, Idle)

        self.editor.handle(PointerDown(100, 100))
        self.assertIsInstance(self.editor.state, Dragging)
        self.assertEqual(self.editor.state.width, 0)

        self.editor.handle(PointerMove(300, 200))
        self.assertIsInstance(self.editor.state, Dragging)

        self.editor.handle(PointerUp())
        self.assertIsInstance(self.editor.state, Idle)
        self.assertEqual(self.store.count("p1"), 1)

    def test_cancel_discards_drag(self):
        before = self.store.count("p1")

        self.editor.handle(PointerDown(100, 100))
        self.editor.handle(PointerMove(500, 600))
        self.editor.handle(PointerCancel())

        self.assertIsInstance(self.editor.state, Idle)
        self.assertEqual(self.store.count("p1"), before)

        # Release after cancel does nothing
        self.assertIsNone(self.editor.handle(PointerUp()))
        self.assertEqual(self.store.count("p1"), before)

    def test_move_is_clamped_to_page(self):
        self.editor.handle(PointerDown(500, 700))
        self.editor.handle(PointerMove(-250, 5000))

        x0, y0, x1, y1 = self.editor.state.current
        for value in (x0, y0, x1, y1):
            self.assertGreaterEqual(value, 0.0)
            self.assertLessEqual(value, 100.0)
        self.assertEqual((x0, y1), (0.0, 100.0))

        self.editor.handle(PointerUp())
        region = self.store.list_for("p1")[0].region
        self.assertEqual((region.x, region.y1), (0.0, 100.0))

    def test_small_drag_is_discarded_silently(self):
        # 4 px on a 1000 px wide page is 0.4%
        self.assertIsNone(self.drag((100, 100), (104, 300)))
        self.assertIsNone(self.drag((100, 100), (100, 100)))
        self.assertEqual(self.store.count("p1"), 0)
        self.assertIsInstance(self.editor.state, Idle)

    def test_no_drag_without_draw_tool(self):
        self.editor.set_tool(Tool.NONE)
        self.editor.handle(PointerDown(100, 100))
        self.assertIsInstance(self.editor.state, Idle)

        self.editor.handle(PointerMove(300, 300))
        self.editor.handle(PointerUp())
        self.assertEqual(self.store.count("p1"), 0)

    def test_press_outside_surface_is_ignored(self):
        self.editor.handle(PointerDown(-5, 100))
        self.assertIsInstance(self.editor.state, Idle)

    def test_no_drag_while_store_locked(self):
        self.store.lock()
        self.editor.handle(PointerDown(100, 100))
        self.assertIsInstance(self.editor.state, Idle)

    def test_committed_annotation_uses_editor_appearance(self):
        self.editor.fill_color = "white"
        self.editor.label = "REDACTED"
        self.drag((100, 100), (400, 200))

        annotation = self.store.list_for("p1")[0]
        self.assertEqual(annotation.fill_color, "white")
        self.assertEqual(annotation.label, "REDACTED")

    def test_switching_page_discards_drag(self):
        other = Page("p2", 1, 1000, 1400, 500, 700)
        self.store.register_page(other.id)

        self.editor.handle(PointerDown(100, 100))
        self.editor.handle(PointerMove(400, 400))
        self.editor.set_page(other)

        self.assertIsInstance(self.editor.state, Idle)
        self.assertEqual(self.store.count(), 0)


if __name__ == "__main__":
    unittest.main()
