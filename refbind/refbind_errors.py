"""
Error kinds raised by the refbind runtime.

Each error also derives from the builtin exception a plain Python caller would
expect for the same failure, so `except AttributeError` around a refbind
lookup keeps working.
"""

from typing import Any, Optional


class BindingError(Exception):
    """Base class for every error refbind raises on its own behalf."""
    pass


class MemberNotFoundError(BindingError, AttributeError):
    """No member matches the name/signature under the active flags."""
    def __init__(self, owner: Optional[type], kind: str, key: str):
        owner_name = getattr(owner, "__qualname__", repr(owner))
        super().__init__(f"{kind} '{key}' not found on {owner_name}")
        self.owner = owner
        self.kind = kind
        self.key = key


class TypeMismatchError(BindingError, TypeError):
    def __init__(self, expected: Any, actual: Any, member: Optional[str] = None):
        where = f" for '{member}'" if member else ""
        super().__init__(
            f"expected {_type_label(expected)}{where}, got {_type_label(actual)}"
        )
        self.expected = expected
        self.actual = actual
        self.member = member


class ConfigurationError(BindingError, ValueError):
    """Binding options were composed or loaded in a way that cannot be used."""
    pass


class InvalidOperationError(BindingError, AttributeError):
    """The member exists but the requested use of it is not allowed."""
    def __init__(self, owner: Optional[type], member: str, reason: str):
        owner_name = getattr(owner, "__qualname__", repr(owner))
        super().__init__(f"{owner_name}.{member}: {reason}")
        self.owner = owner
        self.member = member
        self.reason = reason


def _type_label(t: Any) -> str:
    if isinstance(t, type):
        return t.__qualname__
    return repr(t)


__all__ = [
    "BindingError",
    "MemberNotFoundError",
    "TypeMismatchError",
    "ConfigurationError",
    "InvalidOperationError",
]
