#!/usr/bin/env python3
"""
KUBEPIPE STAGE BASE
-------------------
A stage is policy logic applied to one document at a time. It keeps no
state between documents and touches nothing but the Node it is given.

Author: KubePipe Team
Date: 2026-10-18
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from kubepipe.core.node import Node


class Stage(ABC):
    name = "stage"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(f"kubepipe.rules.{self.name}")

    @abstractmethod
    def apply(self, node: Node) -> Optional[Node]:
        """Returns the (possibly mutated) document; None keeps the input node."""

    def __call__(self, node: Node) -> Optional[Node]:
        return self.apply(node)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def stage_name(stage: Any) -> str:
    """Display name for a Stage or a plain callable used as one."""
    name = getattr(stage, "name", None)
    if isinstance(name, str) and name:
        return name
    return getattr(stage, "__name__", type(stage).__name__)


def describe(node: Node) -> str:
    if node.provenance is not None:
        return f"{node.provenance.source}[{node.provenance.index}]"
    return "document"
