"""
PDF Sanitization Module - Scrub document-level metadata from the export buffer

Only catalog-level entries are touched. Page objects are left as written so
pages copied without annotations stay identical to the source.
"""

import io
import logging
from typing import Any, Dict

import pikepdf

from .errors import SerializationFailure


logger = logging.getLogger(__name__)

# Catalog keys that run code or navigate on open
_DOCUMENT_ACTION_KEYS = ["/OpenAction", "/AA", "/JS", "/JavaScript"]


def _remove_metadata(pdf: pikepdf.Pdf) -> int:
    """
    Remove the document info dictionary and XMP metadata

    Returns:
        Number of metadata items removed
    """
    removed_count = 0

    for key in list(pdf.docinfo.keys()):
        del pdf.docinfo[key]
        removed_count += 1

    if "/Metadata" in pdf.Root:
        del pdf.Root["/Metadata"]
        removed_count += 1

    return removed_count


def _remove_document_actions(pdf: pikepdf.Pdf) -> int:
    """
    Remove document-level JavaScript and automatic actions

    Returns:
        Number of catalog entries removed
    """
    removed_count = 0

    for key in _DOCUMENT_ACTION_KEYS:
        if key in pdf.Root:
            del pdf.Root[key]
            removed_count += 1

    if "/Names" in pdf.Root and "/JavaScript" in pdf.Root["/Names"]:
        del pdf.Root["/Names"]["/JavaScript"]
        removed_count += 1

    return removed_count


def scrub_metadata(data: bytes, title: str, producer: str) -> bytes:
    """
    Replace all document-level metadata of a serialized PDF

    Args:
        data: Serialized PDF
        title: Title to record in the new info dictionary
        producer: Producer/Creator to record

    Returns:
        Rewritten PDF bytes

    Raises:
        SerializationFailure: if pikepdf cannot read or write the buffer
    """
    output = io.BytesIO()
    try:
        with pikepdf.open(io.BytesIO(data)) as pdf:
            removed = _remove_metadata(pdf)
            removed += _remove_document_actions(pdf)

            pdf.docinfo["/Title"] = title
            pdf.docinfo["/Producer"] = producer
            pdf.docinfo["/Creator"] = producer

            pdf.save(
                output,
                linearize=False,
                compress_streams=True,
                object_stream_mode=pikepdf.ObjectStreamMode.generate,
                deterministic_id=False,
            )
    except Exception as e:
        raise SerializationFailure(f"Could not scrub output metadata: {e}") from e

    logger.debug("Scrubbed %d document-level metadata entries", removed)
    return output.getvalue()


def analyze_metadata(data: bytes) -> Dict[str, Any]:
    """
    Report what document-level metadata a PDF buffer still carries

    Returns:
        Dictionary with info keys, XMP presence and document actions
    """
    analysis = {
        "info_keys": [],
        "xmp_metadata": False,
        "document_actions": [],
    }

    with pikepdf.open(io.BytesIO(data)) as pdf:
        analysis["info_keys"] = [str(key) for key in pdf.docinfo.keys()]

        analysis["xmp_metadata"] = "/Metadata" in pdf.Root

        for key in _DOCUMENT_ACTION_KEYS:
            if key in pdf.Root:
                analysis["document_actions"].append(key)

    return analysis
