#!/usr/bin/env python3
"""
KUBEPIPE CODEC - ruamel.yaml Round-Trip Configuration
-----------------------------------------------------
Central place where ruamel.yaml is configured. Round-trip mode keeps
comments, quoting style, flow/block style and key order, so a document
that is loaded and dumped again only differs where it was mutated.

Indentation cannot be recovered by ruamel itself, so each document is
scanned line by line to guess the mapping indent and the sequence dash
offset it was written with.

Author: KubePipe Team
Date: 2026-10-18
"""

import io
from typing import Any, Optional

from ruamel.yaml import YAML, YAMLError

from kubepipe.core.models import IndentStyle, Kind


def new_yaml(style: Optional[IndentStyle] = None) -> YAML:
    """Builds a round-trip YAML instance for the given indentation style."""
    style = style or IndentStyle()
    yaml = YAML(typ='rt')
    yaml.preserve_quotes = True
    yaml.indent(mapping=style.mapping, sequence=style.sequence, offset=style.offset)
    # Never re-wrap long values (certificates, JSON blobs in annotations)
    yaml.width = 4096
    return yaml


def load(text: str) -> Any:
    return new_yaml().load(text)


def dump(value: Any, style: Optional[IndentStyle] = None) -> str:
    """Serializes a round-trip value into a YAML string."""
    stream = io.StringIO()
    new_yaml(style).dump(value, stream)
    return stream.getvalue()


def kind_of(value: Any) -> Kind:
    if value is None:
        return Kind.NULL
    if isinstance(value, dict):
        return Kind.MAPPING
    if isinstance(value, list):
        return Kind.SEQUENCE
    return Kind.SCALAR


def parse_scalar(text: str) -> Any:
    """
    Types a literal the way a YAML reader would: "5" becomes an int,
    "true" a bool, "'5'" a quoted string. Text that would parse into a
    collection (or not parse at all) stays a plain string.
    """
    try:
        value = load(text)
    except YAMLError:
        return text
    if isinstance(value, (dict, list)):
        return text
    if value is None and text.strip() not in ("~", "null", "Null", "NULL"):
        return text
    return value


def scalar_text(value: Any) -> str:
    """Renders a scalar as the string a K8s client would see."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _key_column(line: str) -> int:
    """Column of the mapping key on a line, skipping any '- ' list indicators."""
    rest = line.lstrip(' ')
    col = len(line) - len(rest)
    while rest.startswith('- '):
        after = rest[1:].lstrip(' ')
        col += len(rest) - len(after)
        rest = after
    return col


def guess_indent(text: str) -> IndentStyle:
    """
    Scans 'key:' lines and the line that follows each to detect the
    mapping indent and the dash offset of block sequences. Falls back to
    the defaults of IndentStyle for whatever cannot be observed.
    """
    mapping = None
    offset = None

    lines = [
        line.replace('\t', '  ') for line in text.splitlines()
        if line.strip() and not line.lstrip().startswith('#')
    ]

    for prev, line in zip(lines, lines[1:]):
        code = prev.split(' #')[0].rstrip()
        if not code.endswith(':') or code.lstrip().startswith('---'):
            continue

        key_col = _key_column(prev)
        stripped = line.lstrip(' ')
        col = len(line) - len(stripped)

        if stripped.startswith('- ') or stripped == '-':
            if offset is None and col >= key_col:
                offset = col - key_col
        elif mapping is None and col > key_col:
            mapping = col - key_col

        if mapping is not None and offset is not None:
            break

    default = IndentStyle()
    mapping = mapping or default.mapping
    if offset is None:
        return IndentStyle(mapping=mapping, sequence=default.sequence, offset=default.offset)
    return IndentStyle(mapping=mapping, sequence=offset + 2, offset=offset)
