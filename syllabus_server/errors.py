# -*- coding: utf-8 -*-
"""
Exception hierarchy for the syllabus pipeline.

Failures on a single unit (a file, a row) are isolated by the caller; only
``ConfigError`` is meant to abort a whole request.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(PipelineError):
    """Required credentials or settings are missing."""


class ExtractionError(PipelineError):
    """A document could not be turned into plain text."""


class CompletionError(PipelineError):
    """The LLM completion call failed."""


class ProtocolParseError(PipelineError):
    """The LLM response was empty or not the expected JSON object."""


class RemoteActionError(PipelineError):
    """A remote action on the integration broker failed."""


class BrokerConnectionError(PipelineError):
    """The account-link handshake with the integration broker failed."""
