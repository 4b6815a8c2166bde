#!/usr/bin/env python3
"""
KUBEPIPE RULE CONFIGURATION
---------------------------
Configuration surface of the field-injection stage. The defaults inject
the OAM ManualScalerTrait replica count from a 'scaler' annotation; a YAML
file with camelCase keys can point the same stage at any other field.

    appliesTo: spec.components
    triggerAnnotation: scaler
    elements: traits
    target: trait
    targetApiVersion: core.oam.dev/v1alpha2
    targetKind: ManualScalerTrait
    field: spec.replicaCount
    createIfAbsent: true

Author: KubePipe Team
Date: 2026-10-18
"""

from dataclasses import dataclass
from pathlib import Path as FilePath
from typing import Any, Dict, Tuple, Union

from ruamel.yaml import YAML, YAMLError

from kubepipe.core.errors import ReadError, SchemaError, StreamError
from kubepipe.core.paths import Path, parse_path

OAM_API_VERSION = "core.oam.dev/v1alpha2"
OAM_MANUAL_SCALER = "ManualScalerTrait"


@dataclass(frozen=True)
class InjectorConfig:
    applies_to: Path = ("spec", "components")
    trigger_annotation: str = "scaler"
    elements: Path = ("traits",)   # Collection inside each applies-to member; () visits members directly
    target: Path = ("trait",)      # Object inside each element carrying apiVersion/kind; () is the element
    target_signature: Tuple[str, str] = (OAM_API_VERSION, OAM_MANUAL_SCALER)
    target_field: Path = ("spec", "replicaCount")
    create_if_absent: bool = True

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "InjectorConfig":
        """Builds a config from camelCase keys; missing keys keep their defaults."""
        if not isinstance(data, dict):
            raise SchemaError("injector configuration must be a mapping")

        unknown = set(data) - set(_PATH_KEYS) - {
            "triggerAnnotation", "targetApiVersion", "targetKind", "createIfAbsent"}
        if unknown:
            raise SchemaError(f"unknown configuration key(s): {', '.join(sorted(map(str, unknown)))}")

        default = cls()
        values: Dict[str, Any] = {}

        for key, attr in _PATH_KEYS.items():
            if key in data:
                values[attr] = _path_value(key, data[key])

        if "triggerAnnotation" in data:
            values["trigger_annotation"] = _string_value("triggerAnnotation", data["triggerAnnotation"])

        api_version, kind = default.target_signature
        if "targetApiVersion" in data:
            api_version = _string_value("targetApiVersion", data["targetApiVersion"])
        if "targetKind" in data:
            kind = _string_value("targetKind", data["targetKind"])
        values["target_signature"] = (api_version, kind)

        if "createIfAbsent" in data:
            values["create_if_absent"] = _bool_value("createIfAbsent", data["createIfAbsent"])

        config = cls(**values)
        if not config.applies_to or not config.target_field:
            raise SchemaError("appliesTo and field must not be empty")
        return config


_PATH_KEYS = {
    "appliesTo": "applies_to",
    "elements": "elements",
    "target": "target",
    "field": "target_field",
}


def _path_value(key: str, value: Any) -> Path:
    if value is None:
        return ()
    if isinstance(value, str):
        return parse_path(value)
    if isinstance(value, list) and all(isinstance(step, (str, int)) for step in value):
        return tuple(value)
    raise SchemaError(f"{key} must be a path string or a list of steps")


def _string_value(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise SchemaError(f"{key} must be a non-empty string")
    return value


def _bool_value(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise SchemaError(f"{key} must be true or false")


def load_config(path: Union[str, FilePath]) -> InjectorConfig:
    """Loads an InjectorConfig from a YAML file."""
    config_path = FilePath(path)
    try:
        text = config_path.read_text(encoding='utf-8-sig')
    except OSError as e:
        raise StreamError(f"cannot read configuration {config_path}: {e}") from e

    try:
        data = YAML(typ='safe').load(text)
    except YAMLError as e:
        raise ReadError(f"{config_path}: not valid YAML: {e}", source=str(config_path)) from e

    return InjectorConfig.from_mapping(data or {})
