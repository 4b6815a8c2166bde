#!/usr/bin/env python3
"""
KUBEPIPE NODE SUITE
-------------------
Navigation, structural mutation, element visiting and metadata parsing
on the Node document model.

Author: KubePipe Team
Date: 2026-10-18
"""

import pytest

from kubepipe.core.errors import InvalidStepError, SchemaError, TypeMismatchError
from kubepipe.core.models import Kind
from kubepipe.core.node import Node

DEPLOYMENT = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  namespace: shop
  labels:
    app: web
    tier: frontend
  annotations:
    owner: team-a
spec:
  replicas: 2
  template:
    spec:
      containers:
        - name: web
          image: nginx
        - name: sidecar
          image: envoy
"""


def _doc() -> Node:
    return Node.from_string(DEPLOYMENT)


@pytest.mark.parametrize("text, kind", [
    ("a: 1", Kind.MAPPING),
    ("- 1\n- 2", Kind.SEQUENCE),
    ("hello", Kind.SCALAR),
    ("", Kind.NULL),
])
def test_kind_follows_parsed_content(text, kind):
    assert Node.from_string(text).kind is kind


def test_child_by_key_and_index():
    doc = _doc()
    containers = doc.child("spec").child("template").child("spec").child("containers")

    assert containers.kind is Kind.SEQUENCE
    assert containers.child(1).child("image").value == "envoy"
    assert containers.child(2) is None
    assert containers.child(-1) is None


def test_child_is_absent_for_wrong_receiver_kind():
    doc = _doc()
    assert doc.child(0) is None, "Index into a mapping must be absent, not an error"
    assert doc.child("spec").child("replicas").child("x") is None
    assert Node.null().child("anything") is None


def test_set_child_replaces_in_place_and_appends_new_keys():
    doc = _doc()
    meta = doc.child("metadata")

    meta.set_child("name", "api")
    meta.set_child("uid", "1234")

    assert meta.fields() == ["name", "namespace", "labels", "annotations", "uid"]
    assert meta.child("name").value == "api"


def test_set_child_on_sequence():
    seq = Node.sequence(["a", "b"])

    seq.set_child(1, "B")
    seq.set_child(2, "c")

    assert seq.value == ["a", "B", "c"]
    with pytest.raises(InvalidStepError):
        seq.set_child(5, "z")


def test_set_child_type_mismatch():
    with pytest.raises(TypeMismatchError):
        Node.mapping().set_child(0, "x")
    with pytest.raises(TypeMismatchError):
        Node.sequence().set_child("key", "x")
    with pytest.raises(TypeMismatchError):
        Node.scalar("text").set_child("key", "x")


def test_remove_child():
    doc = _doc()
    removed = doc.child("metadata").remove_child("labels")

    assert removed.value == {"app": "web", "tier": "frontend"}
    assert "labels" not in doc.child("metadata").fields()
    assert doc.child("metadata").remove_child("missing") is None


def test_visit_elements_in_order():
    seen = []
    Node.sequence([1, 2, 3]).visit_elements(lambda n: seen.append(n.value))
    assert seen == [1, 2, 3]


def test_visit_elements_stops_on_first_error():
    seen = []

    def visit(node):
        seen.append(node.value)
        if node.value == 2:
            raise ValueError("boom")

    with pytest.raises(ValueError):
        Node.sequence([1, 2, 3]).visit_elements(visit)
    assert seen == [1, 2]


def test_visit_elements_null_is_noop_and_mapping_is_mismatch():
    calls = []
    Node.null().visit_elements(calls.append)
    Node.sequence().visit_elements(calls.append)
    assert calls == []

    with pytest.raises(TypeMismatchError):
        Node.mapping({"a": 1}).visit_elements(calls.append)


def test_get_meta():
    meta = _doc().get_meta()

    assert meta.signature == ("apps/v1", "Deployment")
    assert meta.name == "web"
    assert meta.namespace == "shop"
    assert list(meta.labels) == ["app", "tier"]
    assert meta.annotations == {"owner": "team-a"}


def test_get_meta_absent_metadata_is_empty():
    meta = Node.from_string("apiVersion: v1\nkind: List\n").get_meta()
    assert meta.kind == "List"
    assert meta.labels == {} and meta.annotations == {}


def test_get_meta_renders_scalars_as_strings():
    meta = Node.from_string("metadata:\n  annotations:\n    replicas: 3\n    enabled: true\n").get_meta()
    assert meta.annotations == {"replicas": "3", "enabled": "true"}


@pytest.mark.parametrize("text", [
    "metadata: [a, b]",
    "metadata:\n  annotations: [x]",
    "metadata:\n  labels:\n    app: {nested: true}",
    "metadata:\n  name: [web]",
    "- just\n- a list",
])
def test_get_meta_schema_errors(text):
    with pytest.raises(SchemaError):
        Node.from_string(text).get_meta()


def test_set_annotation_keeps_position():
    doc = Node.from_string("metadata:\n  annotations:\n    a: '1'\n    b: '2'\n")
    doc.set_annotation("a", "10")
    doc.set_annotation("c", "3")

    assert doc.get_meta().annotations == {"a": "10", "b": "2", "c": "3"}
    assert list(doc.get_meta().annotations) == ["a", "b", "c"]


def test_set_label_creates_metadata():
    doc = Node.from_string("kind: ConfigMap\n")
    doc.set_label("app", "web")
    assert doc.get_meta().labels == {"app": "web"}


@pytest.mark.parametrize("text, expected", [
    ("5", 5),
    ("true", True),
    ("5Gi", "5Gi"),
    ("'5'", "5"),
    ("a: b", "a: b"),
    ("", ""),
])
def test_parse_scalar(text, expected):
    node = Node.parse_scalar(text)
    assert node.kind is Kind.SCALAR
    assert node.value == expected


def test_quoted_scalar_keeps_its_style():
    node = Node.parse_scalar("'5'")
    assert isinstance(node.value, str)
    assert Node.mapping({"n": node.value}).to_string() == "n: '5'\n"


def test_copy_is_deep_and_unbound():
    doc = _doc()
    clone = doc.child("metadata").copy()
    clone.set_child("name", "other")

    assert doc.get_meta().name == "web"
    assert clone.slot is None
