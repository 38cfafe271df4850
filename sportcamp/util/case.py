from __future__ import annotations

from typing import Any, Dict, Mapping


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def camelize(row: Mapping[str, Any] | Any) -> Dict[str, Any]:
    """Map a DB row (snake_case columns) to an API object (camelCase keys)."""
    return {snake_to_camel(str(k)): v for k, v in dict(row).items()}
