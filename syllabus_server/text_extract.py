# -*- coding: utf-8 -*-
import io
import logging
import typing as t
from pathlib import Path

import docx
import pdfplumber

from .errors import ExtractionError

logger = logging.getLogger(__name__)

DeclaredType = t.Literal["pdf", "docx"]

SUPPORTED_SUFFIXES: dict[str, DeclaredType] = {
    ".pdf": "pdf",
    ".docx": "docx",
}


def declared_type_for(file_name: str) -> DeclaredType:
    """
    Maps a file name to the document type used for text extraction.
    :param file_name: Name of the uploaded file.
    :return: "pdf" or "docx".
    :raises ExtractionError: If the extension is not supported.
    """
    suffix = Path(file_name).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ExtractionError(f"Unsupported file type '{suffix or file_name}'")
    return SUPPORTED_SUFFIXES[suffix]


def extract_pdf_pages(content: bytes) -> list[str]:
    """
    Extracts the text of every non-empty page of a PDF.
    :param content: Raw PDF bytes.
    :return: One string per page that produced text.
    """
    pages: list[str] = []
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                pages.append(text.strip())
    return pages


def extract_docx_text(content: bytes) -> str:
    """
    Extracts paragraphs, then table rows, from a DOCX document.
    :param content: Raw DOCX bytes.
    :return: The document text.
    """
    document = docx.Document(io.BytesIO(content))
    lines = [p.text for p in document.paragraphs if p.text.strip()]

    # Tables come last; syllabus schedules often live in them
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            cells = [c for c in cells if c]
            if cells:
                lines.append("   ".join(cells))

    return "\n".join(lines)


def extract_text(content: bytes, declared_type: DeclaredType) -> str:
    """
    Turns raw document bytes into plain text.
    :param content: Raw file bytes.
    :param declared_type: "pdf" or "docx".
    :return: The extracted text.
    :raises ExtractionError: If the bytes cannot be read or contain no text.
    """
    try:
        if declared_type == "pdf":
            text = "\n".join(extract_pdf_pages(content))
        elif declared_type == "docx":
            text = extract_docx_text(content)
        else:
            raise ExtractionError(f"Unsupported document type '{declared_type}'")
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from {declared_type.upper()}: {e}") from e

    if not text.strip():
        raise ExtractionError(f"No extractable text found in {declared_type.upper()}")

    logger.debug("Extracted %d characters of %s text", len(text), declared_type)
    return text
