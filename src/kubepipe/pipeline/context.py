#!/usr/bin/env python3
"""
KUBEPIPE RUN CONTEXT
--------------------
The record of one pipeline run: where it is in its lifecycle, the batch
it holds and what it read and wrote.

Author: KubePipe Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from typing import List, Optional

from kubepipe.core.models import PipelineState
from kubepipe.core.node import Node


@dataclass
class RunContext:
    state: PipelineState = PipelineState.IDLE
    documents: List[Node] = field(default_factory=list)  # The batch, in input order
    stage_names: List[str] = field(default_factory=list)
    documents_read: int = 0
    documents_written: int = 0
    error: Optional[str] = None                           # Message of the failure, if any

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE
