# -*- coding: utf-8 -*-
"""Sequential, failure-isolated processing of a batch of uploaded syllabi."""
from __future__ import annotations

import logging
import typing as t
from dataclasses import dataclass

from .errors import CompletionError, ExtractionError, ProtocolParseError
from .extraction import Completer, extract
from .models import ParsedSyllabus, error_placeholder
from .text_extract import DeclaredType, declared_type_for, extract_text

logger = logging.getLogger(__name__)

TextExtractor = t.Callable[[bytes, DeclaredType], str]

# Errors that degrade a single file; anything else (ConfigError included) propagates
PER_FILE_ERRORS = (ExtractionError, CompletionError, ProtocolParseError)


@dataclass
class UploadedSyllabus:
    """One uploaded file: its name and raw bytes."""
    file_name: str
    content: bytes


def parse_upload(upload: UploadedSyllabus, complete: Completer,
                 extractor: TextExtractor = extract_text) -> ParsedSyllabus:
    """Extract text from one upload and run it through the extraction protocol."""
    declared_type = declared_type_for(upload.file_name)
    text = extractor(upload.content, declared_type)
    return extract(text, upload.file_name, complete)


def parse_uploads(uploads: t.Sequence[UploadedSyllabus], complete: Completer,
                  extractor: TextExtractor = extract_text) -> list[ParsedSyllabus]:
    """Parse every upload in order, one at a time.

    Always returns one result per upload. A file that fails is recorded as an
    error placeholder and the batch moves on.
    """
    results: list[ParsedSyllabus] = []
    for upload in uploads:
        try:
            results.append(parse_upload(upload, complete, extractor))
        except PER_FILE_ERRORS as e:
            logger.error("Error processing file %s: %s", upload.file_name, e)
            results.append(error_placeholder(upload.file_name))
    return results
