#!/usr/bin/env python3
"""
KUBEPIPE READER - Multi-Document Intake
---------------------------------------
Splits a YAML stream on '---' lines, parses each document in round-trip
mode and records everything the writer needs to reproduce an untouched
document byte-for-byte (original text, separator line, indentation,
fingerprint of the freshly parsed tree).

A stream holding a single kustomize ResourceList is unwrapped: its items
become the batch and the wrapper is kept for the writer.

Author: KubePipe Team
Date: 2026-10-18
"""

import logging
import re
from dataclasses import dataclass
from typing import IO, List, Optional

from ruamel.yaml import YAMLError

from kubepipe.core import codec
from kubepipe.core.errors import ReadError, SchemaError, StreamError
from kubepipe.core.models import (
    RESOURCE_LIST_API_VERSIONS,
    RESOURCE_LIST_KIND,
    Kind,
    Provenance,
)
from kubepipe.core.node import Node

logger = logging.getLogger("kubepipe.streams")

# A document start marker, optionally followed by a comment or content
_SEPARATOR = re.compile(r'^---(?:[ \t].*)?$')
# A start marker carrying nothing but an optional comment
_BARE_SEPARATOR = re.compile(r'^---[ \t]*(?:#.*)?$')
# A document end marker
_END = re.compile(r'^\.\.\.(?:[ \t].*)?$')


def is_bare_separator(line: Optional[str]) -> bool:
    """True for '---' lines whose tail is only a comment (e.g. Helm '# Source:' headers)."""
    return line is not None and bool(_BARE_SEPARATOR.match(line.rstrip('\r\n')))


@dataclass
class RawDocument:
    separator: Optional[str]  # The '---' line (with newline) opening the document
    body: str = ""            # Everything up to the next separator or end marker
    directives: str = ""      # '%YAML' / '%TAG' lines in front of the separator
    end: str = ""             # The '...' line closing the document, if any

    @property
    def text(self) -> str:
        return self.directives + (self.separator or "") + self.body + self.end

    @property
    def source(self) -> str:
        """
        What ruamel parses. A bare separator line stays out of it, so its
        comment cannot leak into the dumped tree; a separator carrying
        content is part of the document itself.
        """
        if self.separator is None or is_bare_separator(self.separator):
            return self.directives + ("---\n" if self.directives else "") + self.body
        return self.directives + self.separator + self.body


def _directives_only(body: str) -> bool:
    lines = [line for line in body.splitlines() if line.strip() and not line.lstrip().startswith('#')]
    return bool(lines) and all(line.startswith('%') for line in lines)


def split_documents(text: str) -> List[RawDocument]:
    """Cuts a stream into raw documents without losing a single character."""
    chunks = [RawDocument(separator=None)]
    for line in text.splitlines(keepends=True):
        marker = line.rstrip('\r\n')
        current = chunks[-1]
        if _SEPARATOR.match(marker):
            # Directives belong to the document their separator opens
            if current.separator is None and _directives_only(current.body):
                chunks[-1] = RawDocument(separator=line, directives=current.body)
            else:
                chunks.append(RawDocument(separator=line))
        elif _END.match(marker):
            current.end = line
            chunks.append(RawDocument(separator=None))
        else:
            current.body += line
    return chunks


class ByteReader:
    """
    Reads every document of a text stream into Nodes.
    Empty and comment-only documents are not part of the batch; their text
    is carried verbatim on the neighbouring document's provenance.
    """

    def __init__(self, stream: IO, name: str = "stdin", unwrap_resource_list: bool = True):
        self.stream = stream
        self.name = name
        self.unwrap_resource_list = unwrap_resource_list
        self.wrapper: Optional[Node] = None
        self.function_config: Optional[Node] = None

    def read(self) -> List[Node]:
        try:
            text = self.stream.read()
        except OSError as e:
            raise StreamError(f"cannot read from {self.name}: {e}") from e

        if isinstance(text, bytes):
            try:
                text = text.decode('utf-8')
            except UnicodeDecodeError as e:
                raise ReadError(f"{self.name}: input is not UTF-8: {e}", source=self.name) from e

        # Drop the UTF-8 BOM some editors leave behind
        text = text.lstrip('\ufeff')

        nodes = self._parse(text)
        logger.debug("read %d document(s) from %s", len(nodes), self.name)

        if self.unwrap_resource_list and len(nodes) == 1 and self._is_resource_list(nodes[0]):
            return self._unwrap(nodes[0])
        return nodes

    def _parse(self, text: str) -> List[Node]:
        nodes: List[Node] = []
        pending = ""

        for position, raw in enumerate(split_documents(text)):
            try:
                value = codec.load(raw.source)
            except YAMLError as e:
                raise ReadError(
                    f"{self.name}: document {position} is not valid YAML: {e}",
                    source=self.name, index=position) from e

            if value is None:
                pending += raw.text
                continue

            provenance = Provenance(
                source=self.name,
                index=len(nodes),
                raw=raw.body,
                separator=raw.separator,
                directives=raw.directives,
                end=raw.end,
                leading=pending,
                style=codec.guess_indent(raw.body),
            )
            node = Node(value, provenance=provenance)
            provenance.fingerprint = node.to_string()
            nodes.append(node)
            pending = ""

        if pending and nodes:
            nodes[-1].provenance.trailing = pending
        elif pending:
            logger.debug("%s holds no documents; comment-only input is dropped", self.name)
        return nodes

    @staticmethod
    def _is_resource_list(node: Node) -> bool:
        if node.kind is not Kind.MAPPING:
            return False
        data = node.value
        return data.get("kind") == RESOURCE_LIST_KIND and data.get("apiVersion") in RESOURCE_LIST_API_VERSIONS

    def _unwrap(self, wrapper: Node) -> List[Node]:
        items = wrapper.child("items")
        if items is not None and items.kind not in (Kind.SEQUENCE, Kind.NULL):
            raise SchemaError("ResourceList items must be a sequence").with_document(wrapper.to_string())

        self.wrapper = wrapper
        self.function_config = wrapper.child("functionConfig")

        nodes = []
        for index, item in enumerate(items.elements() if items is not None else []):
            nodes.append(Node(
                item.value,
                provenance=Provenance(source=self.name, index=index, style=wrapper.provenance.style),
                slot=item.slot,
            ))
        logger.debug("unwrapped ResourceList with %d item(s)", len(nodes))
        return nodes
