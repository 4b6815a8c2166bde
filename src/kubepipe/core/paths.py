#!/usr/bin/env python3
"""
KUBEPIPE PATH OPERATIONS
------------------------
Composable filters that navigate or mutate a Node through a sequence of
field/index steps:

    node.pipe(LookupOrCreate("spec", "replicaCount"), Set(Node.scalar(3)))

Contract relied on by stages:
  * a missing field (or a null one) yields None - "not present", benign;
  * an existing node of the wrong kind for a step raises TypeMismatchError.

A chain is atomic. Every mutation a filter makes is recorded in the
chain's Journal; when a later filter raises, the journal is replayed
backwards and the tree is left exactly as it was before the chain ran.

Author: KubePipe Team
Date: 2026-10-18
"""

import copy
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from kubepipe.core.errors import InvalidStepError, TypeMismatchError
from kubepipe.core.models import Kind
from kubepipe.core.node import Node, Step, is_index

Path = Tuple[Step, ...]

# "spec.containers[0].image" -> key tokens and [index] tokens
_TOKEN = re.compile(r'([^.\[\]]+)|\[(\d+)\]')


def parse_path(expr: Union[str, Sequence[Step]]) -> Path:
    """Normalizes a dotted path expression or a step sequence into a tuple."""
    if not isinstance(expr, str):
        return tuple(expr)
    if not expr:
        return ()

    steps: List[Step] = []
    consumed = 0
    for match in _TOKEN.finditer(expr):
        key, index = match.groups()
        gap = expr[consumed:match.start()]
        if index is not None:
            well_formed = gap == ""
        else:
            well_formed = gap == ("." if steps else "")
        if not well_formed:
            raise InvalidStepError(f"malformed path expression '{expr}'")
        steps.append(int(index) if index is not None else key)
        consumed = match.end()

    if consumed != len(expr):
        raise InvalidStepError(f"malformed path expression '{expr}'")
    return tuple(steps)


def format_path(path: Sequence[Step]) -> str:
    text = ""
    for step in path:
        if is_index(step):
            text += f"[{step}]"
        else:
            text += f".{step}" if text else str(step)
    return text


class Journal:
    """Undo log for one filter chain."""

    def __init__(self):
        self._undo: List[Callable[[], None]] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()

    def __len__(self) -> int:
        return len(self._undo)


class Filter(ABC):
    """One link of a pipe chain."""

    @abstractmethod
    def apply(self, node: Node, journal: Journal) -> Optional[Node]:
        ...


def _expected_kind(step: Step) -> Kind:
    return Kind.SEQUENCE if is_index(step) else Kind.MAPPING


def _check_step(node: Node, step: Step, path: Sequence[Step], depth: int) -> None:
    expected = _expected_kind(step)
    if node.kind is not expected:
        where = format_path(path[:depth]) or "<root>"
        raise TypeMismatchError(
            f"wrong node kind at '{where}': expected {expected.value} for step "
            f"{step!r}, found {node.kind.value}",
            step=step, expected=expected, actual=node.kind)


class Lookup(Filter):
    """Walks the path; never mutates."""

    def __init__(self, *path: Step):
        self.path = tuple(path)

    def apply(self, node: Node, journal: Journal) -> Optional[Node]:
        current = node
        for depth, step in enumerate(self.path):
            if current.kind is Kind.NULL:
                return None
            _check_step(current, step, self.path, depth)
            current = current.child(step)
            if current is None:
                return None
        if current.kind is Kind.NULL:
            return None
        return current

    def __repr__(self) -> str:
        return f"Lookup({format_path(self.path)!r})"


class LookupOrCreate(Filter):
    """
    Walks the path, materializing genuine gaps: a missing field, a null
    value where a container is needed, or an index equal to the sequence
    length. The terminal node is created with `kind` when absent.
    """

    def __init__(self, *path: Step, kind: Kind = Kind.SCALAR):
        self.path = tuple(path)
        self.kind = kind

    def apply(self, node: Node, journal: Journal) -> Optional[Node]:
        current = node
        for depth, step in enumerate(self.path):
            last = depth == len(self.path) - 1
            wanted = self.kind if last else _expected_kind(self.path[depth + 1])

            _check_step(current, step, self.path, depth)
            child = current.child(step)

            if child is None:
                child = self._create(current, step, Node.new(wanted), journal)
            elif child.kind is Kind.NULL and wanted in (Kind.MAPPING, Kind.SEQUENCE):
                child = Set(Node.new(wanted)).apply(child, journal)

            current = child
        return current

    @staticmethod
    def _create(parent: Node, step: Step, value: Node, journal: Journal) -> Node:
        container = parent.value
        if is_index(step):
            if step != len(container):
                raise InvalidStepError(
                    f"cannot create index {step} in sequence of length {len(container)}")
            child = parent.set_child(step, value)
            journal.record(container.pop)
            return child

        child = parent.set_child(step, value)
        journal.record(lambda: container.pop(step, None))
        return child

    def __repr__(self) -> str:
        return f"LookupOrCreate({format_path(self.path)!r}, kind={self.kind.value})"


class Set(Filter):
    """
    Replaces the node's value (scalar content or whole subtree).
    Collections are deep-copied so one value never lands in two places.
    """

    def __init__(self, value: Any):
        self.value = value if isinstance(value, Node) else Node(value)

    def apply(self, node: Node, journal: Journal) -> Optional[Node]:
        raw = self.value.value
        if isinstance(raw, (dict, list)):
            raw = copy.deepcopy(raw)

        if node.slot is not None:
            container, step = node.slot
            previous = container[step]
            result = node.replace(raw)
            journal.record(lambda: container.__setitem__(step, previous))
            return result

        target = node.value
        if node.kind is Kind.MAPPING:
            snapshot = list(target.items())

            def restore():
                target.clear()
                target.update(snapshot)
        else:
            snapshot = list(target) if node.kind is Kind.SEQUENCE else None

            def restore():
                target[:] = snapshot

        result = node.replace(raw)
        journal.record(restore)
        return result


class SetField(Filter):
    """Upserts one field of a mapping and returns the field's node."""

    def __init__(self, name: str, value: Any):
        self.name = name
        self.value = value if isinstance(value, Node) else Node(value)

    def apply(self, node: Node, journal: Journal) -> Optional[Node]:
        _check_step(node, self.name, (self.name,), 0)
        container = node.value
        raw = self.value.value
        if isinstance(raw, (dict, list)):
            raw = copy.deepcopy(raw)

        if self.name in container:
            previous = container[self.name]
            journal.record(lambda: container.__setitem__(self.name, previous))
        else:
            journal.record(lambda: container.pop(self.name, None))
        return node.set_child(self.name, raw)


class Clear(Filter):
    """Removes a field from a mapping; returns the removed node or None."""

    def __init__(self, name: str):
        self.name = name

    def apply(self, node: Node, journal: Journal) -> Optional[Node]:
        if node.kind is Kind.NULL:
            return None
        _check_step(node, self.name, (self.name,), 0)
        container = node.value
        if self.name not in container:
            return None

        position = list(container.keys()).index(self.name)
        removed = node.remove_child(self.name)
        journal.record(lambda: container.insert(position, self.name, removed.value))
        return removed


class VisitElements(Filter):
    """Calls fn for each element of a sequence; passes the node through."""

    def __init__(self, fn: Callable[[Node], Any]):
        self.fn = fn

    def apply(self, node: Node, journal: Journal) -> Optional[Node]:
        node.visit_elements(self.fn)
        return node


def visit_elements(node: Optional[Node], fn: Callable[[Node], Any]) -> None:
    """Like Node.visit_elements, but an absent collection is a no-op too."""
    if node is None:
        return
    node.visit_elements(fn)


def pipe(node: Optional[Node], *filters) -> Optional[Node]:
    """
    Runs filters left to right, each receiving the previous result.
    None short-circuits the rest of the chain. An exception rolls back
    every journaled mutation of the chain and propagates.
    Plain callables taking and returning a Node are accepted as filters.
    """
    journal = Journal()
    current = node
    try:
        for link in filters:
            if current is None:
                break
            if isinstance(link, Filter):
                current = link.apply(current, journal)
            else:
                current = link(current)
    except Exception:
        journal.rollback()
        raise
    return current
