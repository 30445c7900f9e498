"""Normalization of parsed feed nodes.

Feed parsers hand back fields in several shapes depending on how often an
element occurs and whether it carries attributes: a plain string, a list of
values, or a mapping with a text payload and attributes. ``XmlNode`` names
that union and the helpers below are the only place that inspects it.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

XmlNode = Union[None, str, int, float, list["XmlNode"], tuple["XmlNode", ...], Mapping[str, Any]]

TEXT_KEYS = ("#text", "value")
URL_KEYS = ("@_url", "url", "href")


def as_list(node: XmlNode) -> list[XmlNode]:
    """Treat a field as multi-valued regardless of how it was parsed."""
    if node is None:
        return []
    if isinstance(node, (list, tuple)):
        return list(node)
    return [node]


def attr(node: XmlNode, *names: str) -> str:
    """Return the first non-empty attribute among ``names``.

    Both the ``@_name`` and bare ``name`` spellings are tried.
    """
    if not isinstance(node, Mapping):
        return ""
    for name in names:
        for key in (f"@_{name}", name):
            val = node.get(key)
            if val is None or isinstance(val, (Mapping, list, tuple)):
                continue
            s = str(val).strip()
            if s:
                return s
    return ""


def extract_text(node: XmlNode) -> str:
    """Flatten a node into plain text.

    Leaf strings are concatenated with single spaces. Anything unexpected is
    coerced to ``str`` or dropped; this never raises. A plain string comes
    back untouched.
    """
    if isinstance(node, str):
        return node
    try:
        return _extract(node).strip()
    except Exception:
        return ""


def _extract(node: Any) -> str:
    if node is None:
        return ""
    if isinstance(node, str):
        return node
    if isinstance(node, bool):
        return ""
    if isinstance(node, (int, float)):
        return str(node)
    if isinstance(node, (list, tuple)):
        parts = [_extract(n) for n in node]
        return " ".join(p.strip() for p in parts if p and p.strip())
    if isinstance(node, Mapping):
        for key in TEXT_KEYS:
            if key in node and node[key] is not None:
                return _extract(node[key])
        for key in URL_KEYS:
            if node.get(key):
                return _extract(node[key])
        parts = [_extract(v) for k, v in node.items() if not str(k).startswith("@_")]
        return " ".join(p.strip() for p in parts if p and p.strip())
    return str(node)
