"""
Utility functions for loading regions, inspecting PDFs and reporting exports
"""

import datetime
import json
import os
from typing import Any, Dict, List

import fitz  # PyMuPDF

from .models import ExportResult, Region
from .store import AnnotationStore


def validate_pdf(pdf_path: str) -> bool:
    """
    Validate that a file is a readable, unencrypted PDF with pages

    Args:
        pdf_path: Path to PDF file

    Returns:
        True if valid PDF, False otherwise
    """
    try:
        with fitz.open(pdf_path) as doc:
            return doc.is_pdf and not doc.needs_pass and doc.page_count > 0
    except (RuntimeError, ValueError, OSError):
        return False


def get_pdf_info(pdf_path: str) -> Dict[str, Any]:
    """
    Get basic information about a PDF

    Args:
        pdf_path: Path to PDF file

    Returns:
        Dictionary with PDF information
    """
    info = {
        "valid": False,
        "pages": 0,
        "encrypted": False,
        "title": "",
        "author": "",
        "producer": "",
        "page_sizes": [],
        "file_size": 0,
    }

    try:
        info["file_size"] = os.path.getsize(pdf_path)

        with fitz.open(pdf_path) as doc:
            info["valid"] = doc.is_pdf
            info["pages"] = doc.page_count
            info["encrypted"] = doc.needs_pass

            metadata = doc.metadata or {}
            info["title"] = metadata.get("title", "")
            info["author"] = metadata.get("author", "")
            info["producer"] = metadata.get("producer", "")

            if not doc.needs_pass:
                info["page_sizes"] = [
                    (round(page.rect.width, 2), round(page.rect.height, 2)) for page in doc
                ]

    except (RuntimeError, ValueError, OSError) as e:
        info["error"] = str(e)

    return info


def load_regions(regions_path: str) -> Dict[int, List[Dict[str, Any]]]:
    """
    Load user-drawn regions from a JSON file

    The file maps 1-based page numbers to lists of
    {"x", "y", "width", "height", "color"?, "label"?} in percent of page size:

        {"2": [{"x": 10, "y": 20, "width": 30, "height": 5, "label": "SSN"}]}

    Args:
        regions_path: Path to JSON file

    Returns:
        Dictionary mapping 0-based page index to entries with a Region under
        "region" plus "color" and "label"

    Raises:
        ValueError: if the file is malformed
    """
    with open(regions_path, "r") as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"{regions_path}: expected an object keyed by page number")

    regions: Dict[int, List[Dict[str, Any]]] = {}
    for page_str, entries in raw.items():
        try:
            page_number = int(page_str)
        except ValueError:
            raise ValueError(f"{regions_path}: invalid page number {page_str!r}") from None
        if page_number < 1:
            raise ValueError(f"{regions_path}: page numbers start at 1, got {page_number}")

        parsed = []
        for entry in entries:
            try:
                region = Region(
                    float(entry["x"]),
                    float(entry["y"]),
                    float(entry["width"]),
                    float(entry["height"]),
                )
            except (KeyError, TypeError) as e:
                raise ValueError(
                    f"{regions_path}: page {page_number}: bad region {entry!r}"
                ) from e
            parsed.append({
                "region": region,
                "color": entry.get("color", "black"),
                "label": entry.get("label"),
            })
        regions[page_number - 1] = parsed

    return regions


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} TB"


def build_export_report(input_path: str,
                        result: ExportResult,
                        store: AnnotationStore,
                        page_ids: List[str],
                        residual: Dict[int, List[str]]) -> Dict[str, Any]:
    """
    Create a detailed report of an export

    Args:
        input_path: Path to input PDF
        result: Completed export
        store: Annotation store the export was made from
        page_ids: Page ids in document order
        residual: Output of find_residual_text for the export

    Returns:
        Dictionary with redaction report
    """
    report = {
        "input_file": input_path,
        "output_file": result.filename,
        "timestamp": datetime.datetime.now().isoformat(),
        "redaction_summary": {
            "total_annotations": store.count(),
            "pages_total": result.page_count,
            "pages_flattened": [i + 1 for i in result.flattened_pages],
        },
        "file_analysis": {
            "input_size": os.path.getsize(input_path) if os.path.exists(input_path) else 0,
            "output_size": result.size,
        },
        "redaction_details": {},
        "verification": {
            "residual_text": {str(i + 1): terms for i, terms in residual.items()},
            "verification_passed": not residual,
        },
    }

    for index, page_id in enumerate(page_ids):
        annotations = store.list_for(page_id)
        if annotations:
            report["redaction_details"][f"page_{index + 1}"] = {
                "redaction_count": len(annotations),
                "regions": [annotation.to_dict() for annotation in annotations],
            }

    return report


def save_report(report: Dict[str, Any], report_path: str) -> None:
    """Save a report dictionary as JSON"""
    with open(report_path, 'w') as f:
        json.dump(report, f, indent=2, default=str)
