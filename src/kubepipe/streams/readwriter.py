#!/usr/bin/env python3
"""
KUBEPIPE READ/WRITER
--------------------
Pairs one input stream with one output stream. Whatever the read side
learned about the input (a ResourceList wrapper) is reused when writing,
so a function invoked by `kustomize config run` answers in the same
envelope it was called with.

Author: KubePipe Team
Date: 2026-10-18
"""

from typing import IO, List, Optional

from kubepipe.core.node import Node
from kubepipe.streams.reader import ByteReader
from kubepipe.streams.writer import ByteWriter


class ByteReadWriter:
    def __init__(self, reader: IO, writer: IO, name: str = "stdin",
                 keep_reader_annotations: bool = False):
        self.reader = reader
        self.writer = writer
        self.name = name
        self.keep_reader_annotations = keep_reader_annotations
        self._byte_reader: Optional[ByteReader] = None

    @property
    def source(self) -> str:
        """Writers route by reader name; this pair only takes back its own documents."""
        return self.name

    @property
    def function_config(self) -> Optional[Node]:
        return self._byte_reader.function_config if self._byte_reader else None

    def read(self) -> List[Node]:
        self._byte_reader = ByteReader(self.reader, name=self.name)
        return self._byte_reader.read()

    def write(self, nodes: List[Node]) -> int:
        return self._writer().write(nodes)

    def render(self, nodes: List[Node]) -> str:
        return self._writer().render(nodes)

    def emit(self, text: str) -> None:
        self._writer().emit(text)

    def _writer(self) -> ByteWriter:
        wrapper = self._byte_reader.wrapper if self._byte_reader else None
        return ByteWriter(
            self.writer,
            keep_reader_annotations=self.keep_reader_annotations,
            wrapper=wrapper,
            source=self.name,
        )
