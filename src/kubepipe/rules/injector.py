#!/usr/bin/env python3
"""
KUBEPIPE FIELD INJECTOR - Annotation-Driven Policy
--------------------------------------------------
Copies the value of a trigger annotation into a field of every nested
object that matches a target apiVersion/kind. With the default config
this is the OAM scaler rule: an ApplicationConfiguration annotated with
`scaler: "5"` gets `replicaCount: 5` on each of its ManualScalerTraits.

Documents without the applies-to collection, or without the annotation,
pass through untouched. Objects that do not match are never modified.

Author: KubePipe Team
Date: 2026-10-18
"""

import logging
from typing import List, Optional

from kubepipe.core.errors import KubePipeError
from kubepipe.core.node import Node
from kubepipe.core.paths import Lookup, LookupOrCreate, Set, format_path, visit_elements
from kubepipe.rules.base import Stage, describe
from kubepipe.rules.config import InjectorConfig


class FieldInjector(Stage):
    name = "injector"

    def __init__(self, config: Optional[InjectorConfig] = None,
                 logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.config = config or InjectorConfig()

    def apply(self, node: Node) -> Node:
        try:
            self._inject(node)
        except KubePipeError as e:
            raise e.with_document(node.to_string())
        return node

    def _inject(self, node: Node) -> int:
        config = self.config

        # 1. Does the document hold the collection this rule works on?
        collection = node.pipe(Lookup(*config.applies_to))
        if collection is None:
            self.logger.debug("%s: no %s", describe(node), format_path(config.applies_to))
            return 0

        # 2. Is the rule switched on for this document?
        value = node.get_meta().annotations.get(config.trigger_annotation)
        if value is None:
            self.logger.debug("%s: no %s annotation", describe(node), config.trigger_annotation)
            return 0

        # 3. Walk members -> elements -> target objects
        changed: List[str] = []

        def visit_element(element: Node) -> None:
            target = element.pipe(Lookup(*config.target)) if config.target else element
            if target is None:
                return

            meta = target.get_meta()
            if meta.signature != config.target_signature:
                self.logger.debug("%s: skipping %s %s", describe(node), meta.api_version, meta.kind)
                return

            if config.create_if_absent:
                field = LookupOrCreate(*config.target_field)
            else:
                field = Lookup(*config.target_field)

            if target.pipe(field, Set(Node.parse_scalar(value))) is not None:
                changed.append(meta.kind)

        def visit_member(member: Node) -> None:
            if not config.elements:
                visit_element(member)
                return
            visit_elements(member.pipe(Lookup(*config.elements)), visit_element)

        collection.visit_elements(visit_member)

        if changed:
            self.logger.info("%s: set %s=%s on %d object(s)", describe(node),
                             format_path(config.target_field), value, len(changed))
        return len(changed)
