#!/usr/bin/env python3
"""
KUBEPIPE STREAM FIDELITY SUITE
------------------------------
Reader/writer behaviour: lossless splitting, byte-identical re-emission of
untouched documents, indentation detection and ResourceList envelopes.

Author: KubePipe Team
Date: 2026-10-18
"""

import io

import pytest
from ruamel.yaml import YAML

from kubepipe.core.codec import guess_indent
from kubepipe.core.errors import ReadError, SchemaError, StreamError
from kubepipe.core.models import INDEX_ANNOTATION, IndentStyle
from kubepipe.core.node import Node
from kubepipe.streams.reader import ByteReader, split_documents
from kubepipe.streams.readwriter import ByteReadWriter
from kubepipe.streams.writer import ByteWriter, render_document

MULTI_DOC = """\
# leading comment
apiVersion: v1
kind: ConfigMap
metadata:
  name: one   # inline comment
data:
  key: "quoted"
  flow: {a: 1, b: [x, y]}
---
# comment-only document
---   # separator with a comment
apiVersion: v1
kind: Secret
metadata:
  name: two
stringData:
  password: 'hunter2'
---
# trailing comment
"""

COMPACT_POD = """\
apiVersion: v1
kind: Pod
metadata:
  name: web
spec:
  containers:
  - name: web
    image: nginx:1.26  # pinned
    ports:
    - containerPort: 80
"""

RESOURCE_LIST = """\
apiVersion: config.kubernetes.io/v1
kind: ResourceList
items:
- apiVersion: v1
  kind: ConfigMap
  metadata:
    name: cfg  # settings
  data:
    key: value
- apiVersion: v1
  kind: Service
  metadata:
    name: svc
functionConfig:
  apiVersion: v1
  kind: ConfigMap
  data:
    replicas: "3"
"""


class BrokenStream:
    def read(self):
        raise OSError("device vanished")

    def write(self, text):
        raise OSError("disk full")


def _roundtrip(text: str, mutate=None, **kwargs) -> str:
    out = io.StringIO()
    rw = ByteReadWriter(io.StringIO(text), out, **kwargs)
    nodes = rw.read()
    if mutate:
        mutate(nodes)
    rw.write(nodes)
    return out.getvalue()


def test_split_is_lossless():
    chunks = split_documents(MULTI_DOC)
    assert "".join(c.text for c in chunks) == MULTI_DOC
    assert [c.separator for c in chunks][1:] == ["---\n", "---   # separator with a comment\n", "---\n"]


def test_separator_needs_whole_marker():
    chunks = split_documents("a: ---\nb: |\n  ----\n---x: 1\n")
    assert len(chunks) == 1


def test_untouched_stream_is_byte_identical():
    assert _roundtrip(MULTI_DOC) == MULTI_DOC


def test_comment_only_documents_are_not_in_batch():
    nodes = ByteReader(io.StringIO(MULTI_DOC)).read()

    assert [n.get_meta().name for n in nodes] == ["one", "two"]
    assert [n.provenance.index for n in nodes] == [0, 1]
    assert nodes[1].provenance.leading == "---\n# comment-only document\n"
    assert nodes[1].provenance.trailing == "---\n# trailing comment\n"


def test_mutation_only_touches_changed_document():
    def mutate(nodes):
        nodes[1].set_label("app", "vault")

    result = _roundtrip(MULTI_DOC, mutate)
    first, rest = result.split("---\n# comment-only document\n", 1)

    assert first == MULTI_DOC.split("---\n# comment-only document\n", 1)[0]
    assert rest.startswith("---   # separator with a comment\n")
    assert rest.count("# separator with a comment") == 1
    assert "  labels:\n    app: vault\n" in rest
    assert "  password: 'hunter2'\n" in rest
    assert rest.endswith("---\n# trailing comment\n")


def test_separator_comment_is_written_once():
    text = "--- # Source: shop/templates/web.yaml\napiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: web\n"

    assert _roundtrip(text) == text
    result = _roundtrip(text, lambda nodes: nodes[0].set_label("app", "web"))
    assert result == text + "  labels:\n    app: web\n"


def test_separator_with_inline_content():
    text = "a: 1\n--- {kind: X, metadata: {name: x}}\n"
    nodes = ByteReader(io.StringIO(text)).read()
    assert [n.get_meta().kind for n in nodes] == ["", "X"]
    assert _roundtrip(text) == text

    result = _roundtrip(text, lambda nodes: nodes[1].set_label("app", "web"))
    docs = list(YAML(typ='safe').load_all(result))

    assert docs == [{"a": 1}, {"kind": "X", "metadata": {"name": "x", "labels": {"app": "web"}}}]
    assert result.count("kind: X") == 1


def test_document_end_marker_is_kept():
    text = "kind: A\n...\n---\nkind: B\n"
    assert len(ByteReader(io.StringIO(text)).read()) == 2
    assert _roundtrip(text) == text

    result = _roundtrip(text, lambda nodes: nodes[0].set_label("app", "a"))
    assert result == "kind: A\nmetadata:\n  labels:\n    app: a\n...\n---\nkind: B\n"


def test_directives_travel_with_their_document():
    text = "%YAML 1.2\n---\nkind: A\n"
    nodes = ByteReader(io.StringIO(text)).read()
    assert [n.get_meta().kind for n in nodes] == ["A"]
    assert _roundtrip(text) == text

    result = _roundtrip(text, lambda nodes: nodes[0].set_label("app", "a"))
    assert result == "%YAML 1.2\n---\nkind: A\nmetadata:\n  labels:\n    app: a\n"


def test_directives_after_document_end():
    text = "kind: A\n...\n%YAML 1.2\n---\nkind: B\n"
    chunks = split_documents(text)

    assert "".join(c.text for c in chunks) == text
    assert chunks[-1].directives == "%YAML 1.2\n"
    assert [n.get_meta().kind for n in ByteReader(io.StringIO(text)).read()] == ["A", "B"]
    assert _roundtrip(text) == text


@pytest.mark.parametrize("text, style", [
    (COMPACT_POD, IndentStyle(mapping=2, sequence=2, offset=0)),
    ("spec:\n  containers:\n    - name: web\n      image: x\n", IndentStyle(mapping=2, sequence=4, offset=2)),
    ("metadata:\n    name: x\nspec:\n    items:\n        - a\n", IndentStyle(mapping=4, sequence=6, offset=4)),
    ("a: 1\nb: 2\n", IndentStyle()),
])
def test_guess_indent(text, style):
    assert guess_indent(text) == style


def test_mutated_document_keeps_compact_layout_and_comments():
    def mutate(nodes):
        nodes[0].set_label("app", "web")

    result = _roundtrip(COMPACT_POD, mutate)

    assert "  containers:\n  - name: web\n    image: nginx:1.26  # pinned\n" in result
    assert "    ports:\n    - containerPort: 80\n" in result
    assert "  labels:\n    app: web\n" in result


def test_documents_are_written_in_batch_order():
    nodes = ByteReader(io.StringIO("a: 1\n---\nb: 2")).read()
    out = io.StringIO()

    assert ByteWriter(out).write(list(reversed(nodes))) == 2
    assert out.getvalue() == "---\nb: 2\n---\na: 1\n"


def test_created_document_gets_a_separator():
    assert render_document(Node.mapping({"a": 1}), first=True) == "a: 1\n"
    assert render_document(Node.mapping({"a": 1}), first=False) == "---\na: 1\n"


def test_empty_and_comment_only_input():
    assert ByteReader(io.StringIO("")).read() == []
    assert ByteReader(io.StringIO("# nothing here\n")).read() == []


def test_bytes_and_bom_input():
    nodes = ByteReader(io.BytesIO("\ufeffkind: Pod\n".encode('utf-8'))).read()
    assert nodes[0].get_meta().kind == "Pod"

    with pytest.raises(ReadError):
        ByteReader(io.BytesIO(b"kind: \xff\xfe\n")).read()


def test_invalid_yaml_is_a_read_error():
    with pytest.raises(ReadError) as exc:
        ByteReader(io.StringIO("a: 1\n---\na: [1, 2\n"), name="app.yaml").read()

    assert exc.value.index == 1
    assert "app.yaml" in str(exc.value)


def test_stream_failures_are_stream_errors():
    with pytest.raises(StreamError):
        ByteReader(BrokenStream()).read()
    with pytest.raises(StreamError):
        ByteWriter(BrokenStream()).write([Node.mapping({"a": 1})])


def test_keep_reader_annotations():
    result = _roundtrip("kind: A\n---\nkind: B\nmetadata:\n  annotations:\n    x: y\n",
                        keep_reader_annotations=True)
    docs = list(YAML(typ='safe').load_all(result))

    assert docs[0]["metadata"]["annotations"] == {INDEX_ANNOTATION: "0"}
    assert docs[1]["metadata"]["annotations"] == {"x": "y", INDEX_ANNOTATION: "1"}


def test_reader_annotations_are_not_added_by_default():
    assert INDEX_ANNOTATION not in _roundtrip("kind: A\n---\nkind: B\n")


def test_resource_list_is_unwrapped():
    rw = ByteReadWriter(io.StringIO(RESOURCE_LIST), io.StringIO())
    nodes = rw.read()

    assert [n.get_meta().kind for n in nodes] == ["ConfigMap", "Service"]
    assert [n.provenance.index for n in nodes] == [0, 1]
    assert rw.function_config.child("data").child("replicas").value == "3"


def test_resource_list_roundtrip_is_identical():
    assert _roundtrip(RESOURCE_LIST) == RESOURCE_LIST


def test_resource_list_mutation_keeps_envelope():
    def mutate(nodes):
        nodes[0].set_label("app", "web")

    result = _roundtrip(RESOURCE_LIST, mutate)
    data = YAML(typ='safe').load(result)

    assert result.startswith("apiVersion: config.kubernetes.io/v1\nkind: ResourceList\nitems:\n- apiVersion: v1\n")
    assert "    name: cfg  # settings\n" in result
    assert '    replicas: "3"\n' in result
    assert data["items"][0]["metadata"]["labels"] == {"app": "web"}
    assert data["functionConfig"]["data"] == {"replicas": "3"}


def test_resource_list_with_dropped_item():
    result = _roundtrip(RESOURCE_LIST, lambda nodes: nodes.pop())
    data = YAML(typ='safe').load(result)

    assert [item["kind"] for item in data["items"]] == ["ConfigMap"]


def test_resource_list_items_must_be_a_sequence():
    text = "apiVersion: config.kubernetes.io/v1\nkind: ResourceList\nitems: nope\n"
    with pytest.raises(SchemaError) as exc:
        ByteReader(io.StringIO(text)).read()
    assert "ResourceList" in exc.value.document


def test_resource_list_unwrapping_can_be_disabled():
    nodes = ByteReader(io.StringIO(RESOURCE_LIST), unwrap_resource_list=False).read()
    assert len(nodes) == 1
    assert nodes[0].get_meta().kind == "ResourceList"
