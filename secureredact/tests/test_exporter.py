"""
Tests for the secure export pipeline
"""

import os
import shutil
import tempfile
import unittest
from unittest import mock

import fitz  # PyMuPDF
from PIL import Image

from secureredact.config import RedactConfig
from secureredact.errors import (
    EditingLocked, ExportCancelled, ExportRenderFailure, SerializationFailure,
)
from secureredact.exporter import CancellationToken, composite_annotations
from secureredact.models import Annotation, Region
from secureredact.sanitize import analyze_metadata, scrub_metadata
from secureredact.session import RedactionSession
from secureredact.source import FitzPageSource
from secureredact.verification import find_residual_text
from secureredact.writer import FitzDocumentWriter

from .pdf_fixtures import make_pdf, three_page_ssn_pdf


BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


class FailingRenderSource(FitzPageSource):
    """Source that cannot rasterize its second page"""

    def render_page(self, page_index, scale):
        if page_index == 1:
            raise RuntimeError("cannot render page")
        return super().render_page(page_index, scale)


def page_image(pdf_bytes, page_index):
    """Decode the single image placed on an exported page"""
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        images = doc[page_index].get_images(full=True)
        assert len(images) == 1, images
        return fitz.Pixmap(doc, images[0][0])


class TestSecureExport(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.pdf_path = three_page_ssn_pdf(os.path.join(self.temp_dir, "ssn.pdf"))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def open_session(self, **config):
        return RedactionSession.open(self.pdf_path, RedactConfig(**config))

    def test_unannotated_pages_are_copied_verbatim(self):
        with self.open_session() as session:
            session.draw_annotation(session.pages[1].id, Region(10, 10, 40, 10))
            result = session.export_secure()

        with fitz.open(self.pdf_path) as src, fitz.open(stream=result.data, filetype="pdf") as out:
            self.assertEqual(out.page_count, 3)
            for index in (0, 2):
                self.assertEqual(out[index].read_contents(), src[index].read_contents())
                self.assertEqual(out[index].get_text(), src[index].get_text())
                self.assertEqual(out[index].rect, src[index].rect)

        self.assertEqual(result.flattened_pages, (1,))

    def test_annotated_page_keeps_no_text(self):
        with self.open_session() as session:
            match = session.search("SSN")[0]
            session.apply_match(match)
            result = session.export_secure()

        with fitz.open(stream=result.data, filetype="pdf") as out:
            flattened = out[1]
            self.assertEqual(flattened.get_text().strip(), "")
            self.assertEqual(flattened.get_fonts(), [])
            self.assertEqual(len(flattened.get_images()), 1)
            self.assertEqual(flattened.rect, fitz.Rect(0, 0, 500, 700))

        self.assertEqual(find_residual_text(result.data, ["SSN", "123-45-6789"]), {})

    def test_raster_has_opaque_box_at_region(self):
        path = make_pdf(os.path.join(self.temp_dir, "blank.pdf"),
                        [[("Footer text", (72, 650))]])
        with RedactionSession.open(path, RedactConfig(image_format="png")) as session:
            session.draw_annotation(session.pages[0].id, Region(10, 20, 30, 5), "black")
            result = session.export_secure()

        pix = page_image(result.data, 0)
        self.assertEqual((pix.width, pix.height), (1000, 1400))

        for x, y in [(100, 280), (399, 349), (250, 315)]:
            self.assertEqual(pix.pixel(x, y)[:3], BLACK, (x, y))
        for x, y in [(99, 280), (100, 279), (400, 315), (250, 350), (700, 100)]:
            self.assertEqual(pix.pixel(x, y)[:3], WHITE, (x, y))

    def test_export_is_idempotent(self):
        with self.open_session() as session:
            session.draw_annotation(session.pages[1].id, Region(10, 10, 40, 10), label="SSN")
            first = session.export_secure()
            second = session.export_secure()

        with fitz.open(stream=first.data, filetype="pdf") as a, \
                fitz.open(stream=second.data, filetype="pdf") as b:
            image_a = a.extract_image(a[1].get_images()[0][0])["image"]
            image_b = b.extract_image(b[1].get_images()[0][0])["image"]
        self.assertEqual(image_a, image_b)

    def test_page_order_preserved(self):
        with self.open_session() as session:
            session.draw_annotation(session.pages[0].id, Region(10, 10, 10, 10))
            session.draw_annotation(session.pages[2].id, Region(10, 10, 10, 10))
            result = session.export_secure()

        with fitz.open(stream=result.data, filetype="pdf") as out:
            self.assertEqual(out[0].get_text(), "")
            self.assertIn("Employee record", out[1].get_text())
            self.assertEqual(out[2].get_text(), "")

    def test_progress_and_status(self):
        events, statuses = [], []
        with self.open_session() as session:
            session.draw_annotation(session.pages[1].id, Region(10, 10, 40, 10))
            session.export_secure(on_progress=events.append, on_status=statuses.append)

        self.assertEqual([e.phase for e in events], ["copy", "flatten", "copy", "finalize"])
        self.assertEqual([e.page_index for e in events[:3]], [0, 1, 2])
        self.assertEqual(events[-1].percent, 100.0)
        self.assertEqual(statuses, [
            "Reading original PDF...", "Constructing document...", "Finalizing PDF...",
        ])

    def test_render_failure_is_fatal(self):
        source = FailingRenderSource.open(self.pdf_path)
        session = RedactionSession(source)
        try:
            session.draw_annotation(session.pages[1].id, Region(10, 10, 40, 10))

            with self.assertRaises(ExportRenderFailure) as ctx:
                session.export_secure()

            self.assertEqual(ctx.exception.page_index, 1)
            self.assertFalse(session.store.locked)
        finally:
            session.close()

    def test_render_failure_on_unannotated_page_is_not_reached(self):
        source = FailingRenderSource.open(self.pdf_path)
        session = RedactionSession(source)
        try:
            session.draw_annotation(session.pages[0].id, Region(10, 10, 40, 10))
            result = session.export_secure()
            self.assertEqual(result.flattened_pages, (0,))
        finally:
            session.close()

    def test_cancellation(self):
        token = CancellationToken()

        def cancel_after_first(event):
            token.cancel()

        with self.open_session() as session:
            session.draw_annotation(session.pages[1].id, Region(10, 10, 40, 10))
            with self.assertRaises(ExportCancelled) as ctx:
                session.export_secure(on_progress=cancel_after_first, cancel_token=token)
            self.assertEqual(ctx.exception.page_index, 1)
            self.assertFalse(session.store.locked)

    def test_editing_locked_while_exporting(self):
        with self.open_session() as session:
            page_id = session.pages[1].id
            session.draw_annotation(page_id, Region(10, 10, 40, 10))

            events = session.iter_export()
            next(events)
            with self.assertRaises(EditingLocked):
                session.draw_annotation(page_id, Region(50, 50, 10, 10))

            while True:
                try:
                    next(events)
                except StopIteration as stop:
                    result = stop.value
                    break

            self.assertEqual(result.page_count, 3)
            session.draw_annotation(page_id, Region(50, 50, 10, 10))
            self.assertEqual(session.store.count(page_id), 2)

    def test_snapshot_taken_at_invocation(self):
        with self.open_session() as session:
            exporter_pages = session.pages
            annotations = {session.pages[1].id: [
                Annotation("a1", Region(10, 10, 40, 10)),
            ]}
            events = session.exporter.iter_export(exporter_pages, annotations)
            annotations[session.pages[1].id].clear()

            while True:
                try:
                    next(events)
                except StopIteration as stop:
                    result = stop.value
                    break

        self.assertEqual(result.flattened_pages, (1,))

    def test_metadata_scrubbed(self):
        path = make_pdf(os.path.join(self.temp_dir, "meta.pdf"), [[("Hello", (72, 100))]],
                        metadata={"author": "Alice Example", "subject": "Payroll"})
        with RedactionSession.open(path) as session:
            result = session.export_secure()

        analysis = analyze_metadata(result.data)
        self.assertNotIn("/Author", analysis["info_keys"])
        self.assertNotIn("/Subject", analysis["info_keys"])
        self.assertFalse(analysis["xmp_metadata"])
        self.assertEqual(result.filename, "redacted_meta.pdf")


class TestSerializationFailure(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.pdf_path = three_page_ssn_pdf(os.path.join(self.temp_dir, "ssn.pdf"))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def assert_export_fails_cleanly(self, session):
        events = []
        with self.assertRaises(SerializationFailure):
            session.export_secure(on_progress=events.append)

        # Every page was processed, but no result came back
        self.assertEqual([e.phase for e in events], ["copy", "flatten", "copy", "finalize"])
        self.assertFalse(session.store.locked)
        session.draw_annotation(session.pages[0].id, Region(10, 10, 10, 10))

    def test_writer_failure(self):
        with RedactionSession.open(self.pdf_path) as session:
            session.draw_annotation(session.pages[1].id, Region(10, 10, 40, 10))
            with mock.patch.object(FitzDocumentWriter, "serialize",
                                   side_effect=SerializationFailure("disk full")):
                self.assert_export_fails_cleanly(session)

    def test_metadata_scrub_failure(self):
        with RedactionSession.open(self.pdf_path) as session:
            session.draw_annotation(session.pages[1].id, Region(10, 10, 40, 10))
            with mock.patch("secureredact.sanitize.pikepdf.open",
                            side_effect=RuntimeError("unexpected object stream")):
                self.assert_export_fails_cleanly(session)

    def test_scrub_rejects_unreadable_buffer(self):
        with self.assertRaises(SerializationFailure):
            scrub_metadata(b"not a pdf", title="redacted_x.pdf", producer="secureredact")

    def test_scrub_removes_document_actions(self):
        doc = fitz.open()
        doc.new_page()
        doc.set_metadata({"author": "Alice Example"})
        catalog = doc.pdf_catalog()
        doc.xref_set_key(catalog, "OpenAction", "<</S/JavaScript/JS(app.alert(1))>>")
        data = doc.tobytes()
        doc.close()

        self.assertIn("/OpenAction", analyze_metadata(data)["document_actions"])

        scrubbed = analyze_metadata(scrub_metadata(data, "redacted_x.pdf", "secureredact"))

        self.assertEqual(scrubbed["document_actions"], [])
        self.assertNotIn("/Author", scrubbed["info_keys"])
        self.assertIn("/Title", scrubbed["info_keys"])


class TestComposite(unittest.TestCase):

    def test_later_annotations_paint_over_earlier(self):
        image = Image.new("RGB", (200, 100), WHITE)
        annotations = [
            Annotation("a", Region(0, 0, 50, 50), "black"),
            Annotation("b", Region(25, 0, 50, 50), "red"),
        ]

        out = composite_annotations(image, annotations)

        self.assertEqual(out.getpixel((10, 10)), BLACK)
        self.assertEqual(out.getpixel((60, 10)), (200, 0, 0))
        self.assertEqual(out.getpixel((180, 80)), WHITE)
        self.assertEqual(image.getpixel((10, 10)), WHITE)  # input untouched

    def test_label_stays_inside_box(self):
        image = Image.new("RGB", (400, 200), WHITE)
        annotation = Annotation("a", Region(25, 25, 50, 50), "black", "REDACTED")

        out = composite_annotations(image, [annotation])

        # Outside the box nothing changed
        for x, y in [(99, 100), (300, 100), (200, 49), (200, 150)]:
            self.assertEqual(out.getpixel((x, y)), WHITE)
        # Inside the box some pixels carry the contrasting label color
        box = out.crop((100, 50, 300, 150))
        self.assertIn(WHITE, [color for _, color in box.getcolors(maxcolors=100000)])


if __name__ == "__main__":
    unittest.main()
