#!/usr/bin/env python3
"""
KUBEPIPE ERRORS - Failure Taxonomy
----------------------------------
Every failure the engine surfaces derives from KubePipeError. A missing
field or annotation is never an error: lookups return None for that case.

Author: KubePipe Team
Date: 2026-10-18
"""

from typing import Any, Optional


class KubePipeError(Exception):
    """
    Base error. Carries an optional serialized document so the user can
    locate the fault in the input.
    """

    def __init__(self, message: str, document: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.document = document

    def with_document(self, document: str) -> "KubePipeError":
        """Attaches the offending document text and returns self for re-raising."""
        if self.document is None:
            self.document = document
        return self

    def __str__(self) -> str:
        if self.document:
            return f"{self.message}: {self.document}"
        return self.message


class TypeMismatchError(KubePipeError):
    """An existing node has the wrong kind for the requested operation."""

    def __init__(self, message: str, step: Any = None, expected: Any = None, actual: Any = None):
        super().__init__(message)
        self.step = step
        self.expected = expected
        self.actual = actual


class InvalidStepError(KubePipeError):
    """A sequence index falls outside the writable range [0, len]."""


class SchemaError(KubePipeError):
    """Document metadata (or a ResourceList wrapper) is structurally invalid."""


class StreamError(KubePipeError):
    """The input or output stream cannot be read or written."""


class ReadError(StreamError):
    """A document in the input stream is not parseable YAML."""

    def __init__(self, message: str, source: str = "", index: int = -1):
        super().__init__(message)
        self.source = source
        self.index = index


class StageError(KubePipeError):
    """A transformation stage failed; the whole run is aborted."""

    def __init__(self, stage: str, index: int, cause: BaseException):
        super().__init__(f"stage '{stage}' failed on document {index}: {cause}")
        self.stage = stage
        self.index = index
        self.cause = cause


class PipelineError(KubePipeError):
    """The pipeline was used outside its lifecycle (e.g. executed twice)."""
