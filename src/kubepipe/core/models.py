#!/usr/bin/env python3
"""
KUBEPIPE CORE MODELS
--------------------
Defines the fundamental data structures used across the KubePipe engine:
node kinds, pipeline states, resource metadata and document provenance.

Author: KubePipe Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

# Reader annotation written back when a run is configured to keep it
INDEX_ANNOTATION = "config.kubernetes.io/index"

# kustomize function protocol wrapper
RESOURCE_LIST_KIND = "ResourceList"
RESOURCE_LIST_API_VERSIONS = ("config.kubernetes.io/v1", "config.kubernetes.io/v1alpha1")


class Kind(Enum):
    """Type tag of a Node."""
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"
    NULL = "null"


class PipelineState(Enum):
    IDLE = "idle"
    READING = "reading"
    TRANSFORMING = "transforming"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class IndentStyle:
    """
    ruamel.yaml indentation settings for one document.
    Defaults follow the standard K8s layout: 2-space mappings with
    sequences indented 4 (dash offset 2).
    """
    mapping: int = 2
    sequence: int = 4
    offset: int = 2


@dataclass
class ResourceMeta:
    """
    The identifying sub-structure of a top-level document.
    labels and annotations keep the order they appear in the source.
    """
    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)

    @property
    def signature(self) -> Tuple[str, str]:
        return self.api_version, self.kind


@dataclass
class Provenance:
    """
    Out-of-band record of where a document came from.
    Used by writers for routing and for byte-identical re-emission;
    stages never touch it.
    """
    source: str = "stdin"           # Name of the reader that produced the document
    index: int = 0                  # Position within that reader's stream
    raw: Optional[str] = None       # Original document body (without separator line)
    separator: Optional[str] = None # Original '---' line including newline, if any
    directives: str = ""            # '%YAML' / '%TAG' lines preceding the separator
    end: str = ""                   # Original '...' line, if the document had one
    leading: str = ""               # Comment-only documents that preceded this one
    trailing: str = ""              # Comment-only documents after the last one
    style: IndentStyle = field(default_factory=IndentStyle)
    fingerprint: Optional[str] = None  # Serialized form right after parsing
