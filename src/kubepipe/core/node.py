#!/usr/bin/env python3
"""
KUBEPIPE NODE - The Document Tree
---------------------------------
A Node wraps one ruamel.yaml round-trip value (CommentedMap, CommentedSeq,
a style-preserving scalar or None) and exposes navigation and structural
mutation without disturbing sibling content.

A node read out of a container remembers the slot it came from (the
container and its key or index) so that a later Set can write back into
the tree. It holds no reference to anything above that container.

Author: KubePipe Team
Date: 2026-10-18
"""

import copy
from typing import Any, Callable, List, Optional, Tuple, Union

from ruamel.yaml.comments import CommentedMap, CommentedSeq

from kubepipe.core import codec
from kubepipe.core.errors import InvalidStepError, SchemaError, TypeMismatchError
from kubepipe.core.models import Kind, Provenance, ResourceMeta

Step = Union[str, int]
Slot = Tuple[Any, Step]


def is_index(step: Any) -> bool:
    """bool is an int subclass; it is never a valid sequence index."""
    return isinstance(step, int) and not isinstance(step, bool)


class Node:
    """One value in a document tree."""

    def __init__(self, value: Any = None, provenance: Optional[Provenance] = None,
                 slot: Optional[Slot] = None):
        if isinstance(value, Node):
            value = value.value
        self._value = value
        self._kind = codec.kind_of(value)
        self._slot = slot
        self.provenance = provenance

    # --- CONSTRUCTORS ---

    @classmethod
    def mapping(cls, items: Optional[dict] = None) -> "Node":
        return cls(CommentedMap(items or {}))

    @classmethod
    def sequence(cls, items: Optional[list] = None) -> "Node":
        return cls(CommentedSeq(items or []))

    @classmethod
    def scalar(cls, value: Any) -> "Node":
        if isinstance(value, (dict, list)) or value is None:
            raise TypeMismatchError(f"not a scalar value: {value!r}")
        return cls(value)

    @classmethod
    def null(cls) -> "Node":
        return cls(None)

    @classmethod
    def new(cls, kind: Kind) -> "Node":
        """Empty node of the given kind."""
        if kind is Kind.MAPPING:
            return cls.mapping()
        if kind is Kind.SEQUENCE:
            return cls.sequence()
        if kind is Kind.SCALAR:
            return cls("")
        return cls.null()

    @classmethod
    def parse_scalar(cls, text: str) -> "Node":
        """Scalar node typed from literal text ("5" -> 5, "'5'" -> quoted string)."""
        return cls(codec.parse_scalar(text))

    @classmethod
    def from_string(cls, text: str) -> "Node":
        return cls(codec.load(text))

    # --- INSPECTION ---

    @property
    def kind(self) -> Kind:
        return self._kind

    @property
    def value(self) -> Any:
        return self._value

    @property
    def slot(self) -> Optional[Slot]:
        """(container, key or index) this node was read from, if any."""
        return self._slot

    def __repr__(self) -> str:
        return f"Node(kind={self._kind.value}, value={self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Node):
            return self._value == other._value
        return NotImplemented

    __hash__ = None  # mutable

    def fields(self) -> List[str]:
        """Keys of a mapping node, in document order. Empty for other kinds."""
        if self._kind is not Kind.MAPPING:
            return []
        return list(self._value.keys())

    def elements(self) -> List["Node"]:
        """Children of a sequence node, in order. Empty for other kinds."""
        if self._kind is not Kind.SEQUENCE:
            return []
        return [Node(item, slot=(self._value, i)) for i, item in enumerate(self._value)]

    def copy(self) -> "Node":
        """Deep, unbound copy of this node (comments travel with it)."""
        return Node(copy.deepcopy(self._value), provenance=self.provenance)

    def to_string(self) -> str:
        style = self.provenance.style if self.provenance else None
        return codec.dump(self._value, style)

    # --- NAVIGATION ---

    def child(self, step: Step) -> Optional["Node"]:
        """
        Immediate child by mapping key or sequence index.
        Returns None when the child is missing or the receiver does not
        hold children of that addressing type.
        """
        if is_index(step):
            if self._kind is not Kind.SEQUENCE:
                return None
            if 0 <= step < len(self._value):
                return Node(self._value[step], slot=(self._value, step))
            return None

        if self._kind is not Kind.MAPPING:
            return None
        if step in self._value:
            return Node(self._value[step], slot=(self._value, step))
        return None

    # --- MUTATION ---

    def set_child(self, step: Step, value: Any) -> "Node":
        """
        Upserts a mapping key (existing keys keep their position, new keys
        append) or writes a sequence index in [0, len] (len appends).
        Returns the child, bound to its new slot.
        """
        raw = value.value if isinstance(value, Node) else value

        if is_index(step):
            if self._kind is not Kind.SEQUENCE:
                raise TypeMismatchError(
                    f"cannot set index {step} on a {self._kind.value} node",
                    step=step, expected=Kind.SEQUENCE, actual=self._kind)
            if not 0 <= step <= len(self._value):
                raise InvalidStepError(
                    f"index {step} out of range for sequence of length {len(self._value)}")
            if step == len(self._value):
                self._value.append(raw)
            else:
                self._value[step] = raw
            return Node(raw, slot=(self._value, step))

        if self._kind is not Kind.MAPPING:
            raise TypeMismatchError(
                f"cannot set field '{step}' on a {self._kind.value} node",
                step=step, expected=Kind.MAPPING, actual=self._kind)
        self._value[step] = raw
        return Node(raw, slot=(self._value, step))

    def remove_child(self, step: Step) -> Optional["Node"]:
        """Structural delete. Returns the removed (unbound) child or None."""
        if is_index(step):
            if self._kind is Kind.SEQUENCE and 0 <= step < len(self._value):
                return Node(self._value.pop(step))
            return None
        if self._kind is Kind.MAPPING and step in self._value:
            return Node(self._value.pop(step))
        return None

    def replace(self, value: Any) -> "Node":
        """
        Writes value into the slot this node was read from and returns a
        handle on the new value. An unbound container is refilled in place
        when the new value has the same kind.
        """
        raw = value.value if isinstance(value, Node) else value
        if raw is self._value:
            return self

        if self._slot is not None:
            container, step = self._slot
            container[step] = raw
            return Node(raw, provenance=self.provenance, slot=self._slot)

        new_kind = codec.kind_of(raw)
        if new_kind is not self._kind or self._kind not in (Kind.MAPPING, Kind.SEQUENCE):
            raise TypeMismatchError(
                f"cannot replace unbound {self._kind.value} node with a {new_kind.value} value",
                expected=self._kind, actual=new_kind)
        if self._kind is Kind.MAPPING:
            self._value.clear()
            self._value.update(raw)
        else:
            self._value[:] = list(raw)
        return self

    # --- TRAVERSAL ---

    def visit_elements(self, fn: Callable[["Node"], Any]) -> None:
        """
        Calls fn once per sequence element, in order. The first exception
        raised by fn stops the walk and propagates.
        A null node is treated as an empty collection.
        """
        if self._kind is Kind.NULL:
            return
        if self._kind is not Kind.SEQUENCE:
            raise TypeMismatchError(
                f"cannot visit elements of a {self._kind.value} node",
                expected=Kind.SEQUENCE, actual=self._kind)
        for element in self.elements():
            fn(element)

    def pipe(self, *filters) -> Optional["Node"]:
        """Runs a chain of path filters against this node (see kubepipe.core.paths)."""
        from kubepipe.core.paths import pipe
        return pipe(self, *filters)

    # --- METADATA ---

    def get_meta(self) -> ResourceMeta:
        """
        Reads apiVersion, kind and metadata of a top-level document.
        Missing pieces yield empty values; present-but-malformed pieces
        raise SchemaError.
        """
        if self._kind is Kind.NULL:
            return ResourceMeta()
        if self._kind is not Kind.MAPPING:
            raise SchemaError(f"document is a {self._kind.value}, not a mapping")

        meta = ResourceMeta(
            api_version=self._scalar_field(self._value, "apiVersion"),
            kind=self._scalar_field(self._value, "kind"),
        )

        metadata = self._value.get("metadata")
        if metadata is None:
            return meta
        if not isinstance(metadata, dict):
            raise SchemaError("metadata must be a mapping")

        meta.name = self._scalar_field(metadata, "name", "metadata.")
        meta.namespace = self._scalar_field(metadata, "namespace", "metadata.")
        meta.labels = self._string_map(metadata, "labels")
        meta.annotations = self._string_map(metadata, "annotations")
        return meta

    def set_annotation(self, key: str, value: str) -> None:
        self._set_meta_entry("annotations", key, value)

    def set_label(self, key: str, value: str) -> None:
        self._set_meta_entry("labels", key, value)

    def _set_meta_entry(self, section: str, key: str, value: str) -> None:
        from kubepipe.core.paths import LookupOrCreate, Set
        self.pipe(LookupOrCreate("metadata", section, key), Set(Node(str(value))))

    @staticmethod
    def _scalar_field(data: dict, key: str, prefix: str = "") -> str:
        value = data.get(key)
        if isinstance(value, (dict, list)):
            raise SchemaError(f"{prefix}{key} must be a scalar")
        return codec.scalar_text(value)

    @staticmethod
    def _string_map(metadata: dict, key: str) -> dict:
        section = metadata.get(key)
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise SchemaError(f"metadata.{key} must be a mapping")

        result = {}
        for name, value in section.items():
            if isinstance(value, (dict, list)):
                raise SchemaError(f"metadata.{key}.{name} must be a scalar")
            result[codec.scalar_text(name)] = codec.scalar_text(value)
        return result
