from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Optional

import yaml

from refbind.refbind_errors import ConfigurationError


# --------------------------
# Helpers
# --------------------------

_SUFFIX_FORMATS = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
}


def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode(encoding or 'utf-8', errors='replace')
    if isinstance(data, str):
        return data
    return str(data)


def detect_format(content_type: Optional[str] = None,
                  data_hint: Optional[str] = None,
                  path: Optional[str] = None) -> Optional[str]:
    """
    Returns a canonical format name among: 'json', 'yaml', 'toml'.
    Uses the file suffix first, then Content-Type, then simple data sniffing.
    """
    if path:
        f = _SUFFIX_FORMATS.get(Path(path).suffix.lower())
        if f:
            return f
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct or 'x-yaml' in ct:
        return 'yaml'
    if 'toml' in ct:
        return 'toml'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{'):
            return 'json'
        if s.startswith('['):
            # '[' opens a JSON array or a TOML table header
            first = s.splitlines()[0].strip()
            if first.endswith(']') and '"' not in first and ',' not in first:
                return 'toml'
            return 'json'
        # YAML is a superset of JSON and the most forgiving default for config text
        return 'yaml'
    return None


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str,
                *,
                content_type: Optional[str] = None,
                fmt: Optional[str] = None,
                path: Optional[str] = None) -> Any:
    """
    Parse configuration text into plain Python structures.
    Supported fmt: 'json', 'yaml', 'toml'. If fmt is None, uses the path
    suffix, then content_type, then sniffing. Parse failures raise
    ConfigurationError with the parser's message.
    """
    text = _norm_text(data)
    f = (fmt or detect_format(content_type, text, path))
    try:
        if f == 'json':
            return json.loads(text)
        if f == 'yaml':
            return yaml.safe_load(text)
        if f == 'toml':
            return tomllib.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid {f} configuration: {e}") from e
    raise ConfigurationError(f"Unsupported configuration format: {f!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    """
    Convert plain Python structures into configuration text.
    - fmt: 'json' | 'yaml'. TOML is read-only (tomllib has no writer).
    """
    f = (fmt or '').lower()
    if f == 'json':
        return json.dumps(value, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(value, sort_keys=False)
    if f == 'toml':
        raise ConfigurationError("TOML serialization is not supported (tomllib is read-only)")
    raise ConfigurationError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
]
