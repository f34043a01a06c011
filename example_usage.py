#!/usr/bin/env python3
"""
Example usage of the Secure Redact library

Draws a region by pointer gestures, marks search matches, previews the
result in verification mode and exports a flattened copy.
"""

import os
import tempfile

import fitz  # PyMuPDF

from secureredact import (
    CancellationToken, ExportCancelled, RedactionSession, Region,
    analyze_metadata, find_residual_text, get_pdf_info,
)


def create_sample_pdf(output_path: str) -> str:
    """Create a sample PDF with sensitive content for testing"""
    doc = fitz.open()  # New PDF

    # Page 1: Mixed sensitive content
    page1 = doc.new_page()
    content1 = [
        "CONFIDENTIAL DOCUMENT",
        "",
        "Employee Information:",
        "Name: John Q. Public",
        "SSN: 123-45-6789",
        "Email: john.public@company.com",
    ]
    y_pos = 72
    for line in content1:
        page1.insert_text((72, y_pos), line, fontsize=12)
        y_pos += 20

    # Page 2: Nothing to redact
    page2 = doc.new_page()
    page2.insert_text((72, 72), "Public appendix", fontsize=12)

    doc.set_metadata({"author": "HR Department", "title": "Employee file"})
    doc.save(output_path)
    doc.close()

    print(f"✓ Created sample PDF: {output_path}")
    return output_path


def example_manual_and_search(input_pdf: str, output_pdf: str):
    """Mark regions by hand and by search, then export"""
    print("\n=== Manual and Search Redaction Example ===")

    with RedactionSession.open(input_pdf) as session:
        first = session.page_at(0)

        # A drag in preview pixels over the header line
        session.set_fill("black", label="REDACTED")
        editor = session.editor
        editor.pointer_down(60, 55)
        editor.pointer_move(260, 80)
        annotation_id = editor.pointer_up()
        print(f"Drawn annotation: {annotation_id}")

        for term in ["John Q. Public", "123-45-6789"]:
            matches = session.search(term)
            applied = session.apply_all(matches, fill_color="black")
            print(f"  {term!r}: {len(applied)} of {len(matches)} matches marked")

        # An explicit region in percent of the page
        session.draw_annotation(first.id, Region(10, 22, 50, 4), "gray")
        session.undo_last(first.id)

        print(f"Annotations on page 1: {len(session.annotations(first.id))}")

        result = session.export_secure(
            on_progress=lambda e: print(f"  [{e.percent:5.1f}%] page {e.page_index + 1} {e.phase}"),
            on_status=print,
        )
        result.save(output_pdf)
        print(f"✓ Export complete: {output_pdf} ({result.size} bytes)")

        remaining = find_residual_text(result.data, ["John Q. Public", "123-45-6789"])
        if remaining:
            print(f"⚠️  Warning: text still extractable on pages {sorted(remaining)}")
        else:
            print("✓ Verification passed: no target content found in output")

        print(f"  Metadata keys left: {analyze_metadata(result.data)['info_keys']}")


def example_verification_preview(input_pdf: str, preview_png: str):
    """Render an audit preview with translucent, outlined overlays"""
    print("\n=== Verification Preview Example ===")

    with RedactionSession.open(input_pdf) as session:
        session.apply_all(session.search("SSN"))
        session.set_verification_mode(True)

        page = session.active_page
        session.preview(page.id, scale=1.5).save(preview_png)
        print(f"✓ Preview written: {preview_png}")


def example_cancelled_export(input_pdf: str):
    """Stop an export between pages"""
    print("\n=== Cancelled Export Example ===")

    token = CancellationToken()
    with RedactionSession.open(input_pdf) as session:
        session.apply_all(session.search("SSN"))
        try:
            for event in session.iter_export(cancel_token=token):
                print(f"  page {event.page_index + 1}: {event.phase}")
                token.cancel()
        except ExportCancelled as e:
            print(f"✓ {e}")


def example_pdf_info(input_pdf: str):
    """Demonstrate PDF information extraction"""
    print("\n=== PDF Info Example ===")

    info = get_pdf_info(input_pdf)

    print("PDF Information:")
    print(f"  Valid: {info['valid']}")
    print(f"  Pages: {info['pages']}")
    print(f"  Encrypted: {info['encrypted']}")
    print(f"  File size: {info['file_size']} bytes")

    if info.get('title'):
        print(f"  Title: {info['title']}")
    if info.get('author'):
        print(f"  Author: {info['author']}")


def main():
    """Run all examples"""
    print("Secure Redact - Example Usage")
    print("=" * 40)

    with tempfile.TemporaryDirectory() as temp_dir:
        input_pdf = create_sample_pdf(os.path.join(temp_dir, "sample_input.pdf"))

        example_pdf_info(input_pdf)
        example_manual_and_search(input_pdf, os.path.join(temp_dir, "redacted_sample.pdf"))
        example_verification_preview(input_pdf, os.path.join(temp_dir, "preview.png"))
        example_cancelled_export(input_pdf)

    print("\n" + "=" * 40)
    print("All examples completed successfully!")
    print("\nFor command-line usage, try:")
    print("secureredact --help")


if __name__ == "__main__":
    main()
