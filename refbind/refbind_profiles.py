"""
Named binding profiles.

A profile is a list of flag names stored in configuration, so call sites can
ask for "the flags we use for test doubles" instead of repeating the chain:

    profiles:
      internals: [public, non_public, instance, static, flatten_hierarchy]

JSON and TOML documents use the same shape.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from refbind.refbind_errors import ConfigurationError
from refbind.refbind_options import BindingFlags, BindingOptions
from refbind.refbind_serialize import deserialize, serialize

BUILTIN_PROFILES: Dict[str, BindingOptions] = {
    "all": BindingOptions(BindingFlags.PUBLIC | BindingFlags.NON_PUBLIC
                          | BindingFlags.INSTANCE | BindingFlags.STATIC
                          | BindingFlags.FLATTEN_HIERARCHY),
    "public_instance": BindingOptions(BindingFlags.PUBLIC | BindingFlags.INSTANCE),
    "public_static": BindingOptions(BindingFlags.PUBLIC | BindingFlags.STATIC),
    "everything_declared": BindingOptions(BindingFlags.PUBLIC | BindingFlags.NON_PUBLIC
                                          | BindingFlags.INSTANCE | BindingFlags.STATIC
                                          | BindingFlags.DECLARED_ONLY),
}


def profiles_from_data(data: Any) -> Dict[str, BindingOptions]:
    if not isinstance(data, Mapping):
        raise ConfigurationError("Profile document must be a mapping")
    section = data.get("profiles", data)
    if not isinstance(section, Mapping):
        raise ConfigurationError("'profiles' must be a mapping of name -> flag list")
    out: Dict[str, BindingOptions] = {}
    for name, flags in section.items():
        if isinstance(flags, str):
            flags = [flags]
        if not isinstance(flags, (list, tuple)):
            raise ConfigurationError(f"Profile {name!r} must be a list of flag names")
        out[str(name)] = BindingOptions.from_names(flags)
    return out


def load_profiles(text: str | bytes, *, fmt: Optional[str] = None,
                  include_builtin: bool = False) -> Dict[str, BindingOptions]:
    """Parse profile text. Entries in the document override built-ins of the same name."""
    profiles = dict(BUILTIN_PROFILES) if include_builtin else {}
    profiles.update(profiles_from_data(deserialize(text, fmt=fmt)))
    return profiles


def load_profiles_file(path: str | Path, *, include_builtin: bool = False) -> Dict[str, BindingOptions]:
    p = Path(path)
    try:
        raw = p.read_bytes()
    except FileNotFoundError:
        raise ConfigurationError(f"Profile file not found: {p}") from None
    profiles = dict(BUILTIN_PROFILES) if include_builtin else {}
    profiles.update(profiles_from_data(deserialize(raw, path=str(p))))
    return profiles


def dump_profiles(profiles: Mapping[str, BindingOptions], *, fmt: str = "yaml") -> str:
    data = {"profiles": {name: opts.flag_names() for name, opts in profiles.items()}}
    return serialize(data, fmt=fmt)


__all__ = [
    "BUILTIN_PROFILES",
    "profiles_from_data",
    "load_profiles",
    "load_profiles_file",
    "dump_profiles",
]
