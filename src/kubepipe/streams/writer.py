#!/usr/bin/env python3
"""
KUBEPIPE WRITER - High-Fidelity Output
--------------------------------------
Serializes a batch back into a YAML stream in batch order. A document
whose tree still serializes to the fingerprint taken at read time is
emitted from its original text, so untouched documents come out
byte-identical. Everything else goes through ruamel.yaml with the
indentation detected on input.

Author: KubePipe Team
Date: 2026-10-18
"""

import logging
from typing import IO, List, Optional

from ruamel.yaml.comments import CommentedSeq

from kubepipe.core.errors import StreamError
from kubepipe.core.models import INDEX_ANNOTATION, Kind, Provenance
from kubepipe.core.node import Node
from kubepipe.streams.reader import is_bare_separator

logger = logging.getLogger("kubepipe.streams")


class ByteWriter:
    """
    Writes Nodes to a text stream. With a ResourceList wrapper, the batch
    is written back into the wrapper's items instead.
    """

    def __init__(self, stream: IO, keep_reader_annotations: bool = False,
                 wrapper: Optional[Node] = None, source: Optional[str] = None):
        self.stream = stream
        self.keep_reader_annotations = keep_reader_annotations
        self.wrapper = wrapper
        # Name of the reader whose documents this writer receives; None takes all
        self.source = source

    def write(self, nodes: List[Node]) -> int:
        self.emit(self.render(nodes))
        logger.debug("wrote %d document(s)", len(nodes))
        return len(nodes)

    def emit(self, text: str) -> None:
        """Writes already rendered output in one call."""
        try:
            self.stream.write(text)
            if hasattr(self.stream, 'flush'):
                self.stream.flush()
        except OSError as e:
            raise StreamError(f"cannot write output: {e}") from e

    def render(self, nodes: List[Node]) -> str:
        if self.keep_reader_annotations:
            for node in nodes:
                self._annotate(node)

        if self.wrapper is not None:
            return self._render_wrapped(nodes)
        parts = [render_document(node, first=(i == 0)) for i, node in enumerate(nodes)]
        # A document that ended the input without a newline may no longer be last
        return "".join(
            part if part.endswith("\n") or i == len(parts) - 1 else part + "\n"
            for i, part in enumerate(parts))

    @staticmethod
    def _annotate(node: Node) -> None:
        if node.kind is Kind.MAPPING and node.provenance is not None:
            node.set_annotation(INDEX_ANNOTATION, str(node.provenance.index))

    def _render_wrapped(self, nodes: List[Node]) -> str:
        data = self.wrapper.value
        items = data.get("items")
        values = [node.value for node in nodes]

        # Keep the original items sequence (and its comments) when the batch
        # still holds exactly the same objects in the same order
        unchanged = items is not None and len(items) == len(values) and all(
            a is b for a, b in zip(items, values))
        if not unchanged and (values or items is not None):
            data["items"] = CommentedSeq(values)

        return render_document(self.wrapper, first=True)


def render_document(node: Node, first: bool) -> str:
    """Text of one document, including its markers and surrounding comment-only text."""
    provenance = node.provenance or Provenance(raw=None)
    text = node.to_string()

    if provenance.raw is not None and text == provenance.fingerprint:
        separator, body = provenance.separator, provenance.raw
    else:
        body = text
        if body.startswith(("---\n", "--- ")):
            separator = ""
        elif is_bare_separator(provenance.separator):
            separator = provenance.separator
        elif provenance.separator is not None:
            # Content of the original separator line is part of the dump now
            separator = "---\n"
        else:
            separator = None

    if separator is None:
        separator = "" if first and not provenance.directives else "---\n"

    end = provenance.end
    if end and body.endswith("...\n"):
        end = ""

    return provenance.leading + provenance.directives + separator + body + end + provenance.trailing
