#!/usr/bin/env python3
"""
KUBEPIPE PIPELINE - Reader -> Stages -> Writer
----------------------------------------------
Runs one batch through three strictly ordered phases:

  READING       every input is consumed before any stage runs;
  TRANSFORMING  for each stage, for each document in input order;
  WRITING       only after every stage succeeded on every document.

Any failure moves the run to FAILED and nothing is written, so the output
is never a mix of transformed and untransformed documents. A Pipeline
instance runs once.

Author: KubePipe Team
Date: 2026-10-18
"""

import logging
from typing import Any, Callable, Iterable, List, Optional

from kubepipe.core.errors import PipelineError, StageError
from kubepipe.core.models import PipelineState
from kubepipe.core.node import Node
from kubepipe.pipeline.context import RunContext
from kubepipe.rules.base import stage_name

StageFn = Callable[[Node], Optional[Node]]


class Pipeline:
    """
    Orchestrates readers, stages and writers.

    Readers expose `read() -> List[Node]`; writers expose
    `write(nodes) -> int` and an optional `source` naming the reader
    whose documents they take back (None takes every document). Writers
    that also expose `render(nodes) -> str` and `emit(text)` are all
    rendered before any of them emits.
    """

    def __init__(self, inputs: Iterable[Any], stages: Optional[Iterable[StageFn]] = None,
                 outputs: Optional[Iterable[Any]] = None, logger: Optional[logging.Logger] = None):
        self.inputs = list(inputs)
        self.stages = list(stages or [])
        self.outputs = list(outputs or [])
        self.logger = logger or logging.getLogger("kubepipe.pipeline")
        self.context = RunContext(stage_names=[stage_name(stage) for stage in self.stages])

    @property
    def state(self) -> PipelineState:
        return self.context.state

    def execute(self) -> RunContext:
        if self.context.state is not PipelineState.IDLE:
            raise PipelineError(f"pipeline already ran (state: {self.context.state.value})")

        try:
            # --- PHASE 1: READING ---
            self._enter(PipelineState.READING)
            batch = self._read()

            # --- PHASE 2: TRANSFORMING ---
            self._enter(PipelineState.TRANSFORMING)
            self._transform(batch)

            # --- PHASE 3: WRITING ---
            self._enter(PipelineState.WRITING)
            self._write(batch)
        except Exception as e:
            self.context.error = str(e)
            self._enter(PipelineState.FAILED)
            raise

        self._enter(PipelineState.DONE)
        return self.context

    def _enter(self, state: PipelineState) -> None:
        self.logger.debug("pipeline %s -> %s", self.context.state.value, state.value)
        self.context.state = state

    def _read(self) -> List[Node]:
        batch: List[Node] = []
        for reader in self.inputs:
            batch.extend(reader.read())
        self.context.documents = batch
        self.context.documents_read = len(batch)
        self.logger.info("read %d document(s) from %d input(s)", len(batch), len(self.inputs))
        return batch

    def _transform(self, batch: List[Node]) -> None:
        for stage in self.stages:
            name = stage_name(stage)
            self.logger.debug("running stage %s over %d document(s)", name, len(batch))
            for index, node in enumerate(batch):
                try:
                    result = stage(node)
                except Exception as e:
                    raise StageError(name, index, e) from e
                if isinstance(result, Node):
                    batch[index] = result

    def _write(self, batch: List[Node]) -> None:
        routed = [(writer, self._route(writer, position, batch))
                  for position, writer in enumerate(self.outputs)]

        # Render every output before the first byte reaches any stream
        rendered = [
            writer.render(nodes) if _renders(writer) else None
            for writer, nodes in routed
        ]

        written = 0
        for (writer, nodes), text in zip(routed, rendered):
            if text is None:
                written += writer.write(nodes) or 0
            else:
                writer.emit(text)
                written += len(nodes)
        self.context.documents_written = written
        self.logger.info("wrote %d document(s) to %d output(s)", written, len(self.outputs))

    @staticmethod
    def _route(writer: Any, position: int, batch: List[Node]) -> List[Node]:
        """
        Documents go back to the writer named after their reader. Documents
        without provenance (created by a stage) go to the first writer.
        """
        source = getattr(writer, "source", None)
        if source is None:
            return list(batch)
        return [
            node for node in batch
            if (node.provenance is not None and node.provenance.source == source)
            or (node.provenance is None and position == 0)
        ]


def _renders(writer: Any) -> bool:
    """Writers that can render ahead of emitting take part in the all-or-nothing write."""
    return hasattr(writer, "render") and hasattr(writer, "emit")
