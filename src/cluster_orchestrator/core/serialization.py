from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any, Mapping

import yaml


def _normalize(obj: Any) -> Any:
    if hasattr(obj, "value"):
        return obj.value
    if isinstance(obj, Mapping):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_normalize(v) for v in obj]
    return obj


def to_plain_dict(obj: Any) -> dict[str, Any]:
    """
    Convert a dataclass object into a plain dict of builtin values.

    Enum members are replaced by their values so the result can be dumped as
    YAML or JSON.
    """
    raw = asdict(obj) if is_dataclass(obj) else obj
    normalized = _normalize(raw)
    if not isinstance(normalized, dict):
        raise TypeError("expected dict after normalization")
    return normalized


def dump_yaml(data: Mapping[str, Any]) -> str:
    """
    Dump a mapping as block style YAML.

    Key order is preserved, which keeps rendered manifests byte stable.
    """
    return yaml.safe_dump(
        _normalize(data),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
