"""
Binding options: which members a search can see and how a found member may be used.

A `BindingOptions` value is immutable. Every flag transition returns a new value,
so options can be shared and composed freely:

    opts = BindingOptions().public.non_public.set_instance(obj)
"""

from __future__ import annotations

import enum
from typing import Any, Iterable, List, Optional, TYPE_CHECKING

from refbind.refbind_errors import ConfigurationError

if TYPE_CHECKING:
    from refbind.refbind_accessors import AccessorFactory
    from refbind.refbind_cache import MemberCache


class BindingFlags(enum.IntFlag):
    """Member-search vocabulary. Values follow the classic reflection flag layout."""
    DEFAULT = 0
    IGNORE_CASE = 0x1
    DECLARED_ONLY = 0x2
    INSTANCE = 0x4
    STATIC = 0x8
    PUBLIC = 0x10
    NON_PUBLIC = 0x20
    FLATTEN_HIERARCHY = 0x40
    INVOKE_METHOD = 0x100
    CREATE_INSTANCE = 0x200
    GET_FIELD = 0x400
    SET_FIELD = 0x800
    GET_PROPERTY = 0x1000
    SET_PROPERTY = 0x2000
    PUT_DISP_PROPERTY = 0x4000
    PUT_REF_DISP_PROPERTY = 0x8000
    EXACT_BINDING = 0x10000
    SUPPRESS_CHANGE_TYPE = 0x20000
    OPTIONAL_PARAM_BINDING = 0x40000
    IGNORE_RETURN = 0x1000000


# Flags that restrict how a located member may be used. None set means "any use".
USAGE_FLAGS = (
    BindingFlags.GET_FIELD | BindingFlags.SET_FIELD
    | BindingFlags.GET_PROPERTY | BindingFlags.SET_PROPERTY
    | BindingFlags.INVOKE_METHOD | BindingFlags.CREATE_INSTANCE
)


def flag_from_name(name: str) -> BindingFlags:
    """Map 'non_public', 'non-public' or 'NON_PUBLIC' to the matching flag."""
    key = str(name).strip().replace("-", "_").upper()
    try:
        return BindingFlags[key]
    except KeyError:
        raise ConfigurationError(f"Unknown binding flag: {name!r}") from None


def _flag_property(flag: BindingFlags):
    def getter(self: "BindingOptions") -> "BindingOptions":
        return self.with_flags(flag)
    getter.__doc__ = f"A copy with {flag.name} set."
    return property(getter)


def _has_property(flag: BindingFlags):
    def getter(self: "BindingOptions") -> bool:
        return self.has(flag)
    getter.__doc__ = f"True when {flag.name} is set."
    return property(getter)


class BindingOptions:
    """Immutable flag set plus an optional bound class and bound instance.

    Invariant: a bound instance exists only while INSTANCE is set. Clearing
    INSTANCE (through `flags_off` or `to_static`) drops the instance with it.
    """
    __slots__ = ("_flags", "_bound_type", "_bound_instance")

    def __init__(self, flags: BindingFlags = BindingFlags.DEFAULT,
                 bound_type: Optional[type] = None,
                 bound_instance: Any = None):
        flags = BindingFlags(flags)
        if bound_instance is not None and not (flags & BindingFlags.INSTANCE):
            raise ConfigurationError(
                "A bound instance requires the INSTANCE flag; use set_instance() or to_instance()."
            )
        object.__setattr__(self, "_flags", flags)
        object.__setattr__(self, "_bound_type", bound_type)
        object.__setattr__(self, "_bound_instance", bound_instance)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    # --- state -------------------------------------------------------------

    @property
    def flags(self) -> BindingFlags:
        return self._flags

    @property
    def bound_type(self) -> Optional[type]:
        return self._bound_type

    @property
    def bound_instance(self) -> Any:
        return self._bound_instance

    def has(self, flag: BindingFlags) -> bool:
        # DEFAULT is 0, so like HasFlag(0) it is always "present".
        return (self._flags & flag) == flag

    def allows_usage(self, usage: BindingFlags) -> bool:
        """True when no usage flag is set, or `usage` is one of those set."""
        restricted = self._flags & USAGE_FLAGS
        return not restricted or bool(restricted & usage)

    # --- transitions -------------------------------------------------------

    def _add(self, flags: BindingFlags) -> BindingFlags:
        if self._flags == BindingFlags.DEFAULT:
            return BindingFlags(flags)
        return self._flags | flags

    def with_flags(self, flags: BindingFlags) -> "BindingOptions":
        return BindingOptions(self._add(flags), self._bound_type, self._bound_instance)

    def flags_off(self, flags: BindingFlags) -> "BindingOptions":
        remaining = self._flags & ~BindingFlags(flags)
        instance = self._bound_instance if remaining & BindingFlags.INSTANCE else None
        return BindingOptions(remaining, self._bound_type, instance)

    def set_instance(self, instance_object: Any) -> "BindingOptions":
        """Set INSTANCE and bind `instance_object`, leaving STATIC as it is."""
        return BindingOptions(self._add(BindingFlags.INSTANCE), self._bound_type, instance_object)

    def to_static(self) -> "BindingOptions":
        result = self
        if self.has_instance:
            result = self.flags_off(BindingFlags.INSTANCE)
        return result.static

    def to_instance(self, instance_object: Any) -> "BindingOptions":
        result = self
        if self.has_static:
            result = self.flags_off(BindingFlags.STATIC)
        return result.set_instance(instance_object)

    def scoped_to(self, bound_type: type) -> "BindingOptions":
        """Same flags and instance, scoped to `bound_type` (any earlier type is dropped)."""
        return BindingOptions(self._flags, bound_type, self._bound_instance)

    def generate_accessor(self, cache: Optional["MemberCache"] = None, search=None) -> "AccessorFactory":
        if self._bound_type is None:
            raise ConfigurationError(
                "Accessor requested from binding options that were never scoped to a type; "
                "create them with TypeBinder(cls).bind() or pass them through TypeBinder(cls).bind(options)."
            )
        from refbind.refbind_accessors import AccessorFactory
        return AccessorFactory(self._bound_type, self._bound_instance, self, cache=cache, search=search)

    # --- names (used by profiles) -----------------------------------------

    @classmethod
    def from_names(cls, names: Iterable[str], bound_type: Optional[type] = None) -> "BindingOptions":
        opts = cls(bound_type=bound_type)
        for n in names:
            opts = opts.with_flags(flag_from_name(n))
        return opts

    def flag_names(self) -> List[str]:
        return [f.name.lower() for f in BindingFlags if f.value and self._flags & f]

    # --- equality ----------------------------------------------------------

    def __eq__(self, other):
        if not isinstance(other, BindingOptions):
            return NotImplemented
        return (self._flags == other._flags
                and self._bound_type is other._bound_type
                and self._bound_instance is other._bound_instance)

    def __hash__(self):
        return hash(self._bound_type)

    def __repr__(self):
        type_name = getattr(self._bound_type, "__qualname__", None)
        names = "|".join(self.flag_names()) or "default"
        return f"BindingOptions({names}, type={type_name}, instance={self._bound_instance!r})"

    # --- fluent flag setters -----------------------------------------------

    default = _flag_property(BindingFlags.DEFAULT)
    ignore_case = _flag_property(BindingFlags.IGNORE_CASE)
    declared_only = _flag_property(BindingFlags.DECLARED_ONLY)
    instance = _flag_property(BindingFlags.INSTANCE)
    static = _flag_property(BindingFlags.STATIC)
    public = _flag_property(BindingFlags.PUBLIC)
    non_public = _flag_property(BindingFlags.NON_PUBLIC)
    flatten_hierarchy = _flag_property(BindingFlags.FLATTEN_HIERARCHY)
    invoke_method = _flag_property(BindingFlags.INVOKE_METHOD)
    create_instance = _flag_property(BindingFlags.CREATE_INSTANCE)
    get_field = _flag_property(BindingFlags.GET_FIELD)
    set_field = _flag_property(BindingFlags.SET_FIELD)
    get_property = _flag_property(BindingFlags.GET_PROPERTY)
    set_property = _flag_property(BindingFlags.SET_PROPERTY)
    put_disp_property = _flag_property(BindingFlags.PUT_DISP_PROPERTY)
    put_ref_disp_property = _flag_property(BindingFlags.PUT_REF_DISP_PROPERTY)
    exact_binding = _flag_property(BindingFlags.EXACT_BINDING)
    suppress_change_type = _flag_property(BindingFlags.SUPPRESS_CHANGE_TYPE)
    optional_param_binding = _flag_property(BindingFlags.OPTIONAL_PARAM_BINDING)
    ignore_return = _flag_property(BindingFlags.IGNORE_RETURN)

    # --- flag queries ------------------------------------------------------

    has_default = _has_property(BindingFlags.DEFAULT)
    has_ignore_case = _has_property(BindingFlags.IGNORE_CASE)
    has_declared_only = _has_property(BindingFlags.DECLARED_ONLY)
    has_instance = _has_property(BindingFlags.INSTANCE)
    has_static = _has_property(BindingFlags.STATIC)
    has_public = _has_property(BindingFlags.PUBLIC)
    has_non_public = _has_property(BindingFlags.NON_PUBLIC)
    has_flatten_hierarchy = _has_property(BindingFlags.FLATTEN_HIERARCHY)
    has_invoke_method = _has_property(BindingFlags.INVOKE_METHOD)
    has_create_instance = _has_property(BindingFlags.CREATE_INSTANCE)
    has_get_field = _has_property(BindingFlags.GET_FIELD)
    has_set_field = _has_property(BindingFlags.SET_FIELD)
    has_get_property = _has_property(BindingFlags.GET_PROPERTY)
    has_set_property = _has_property(BindingFlags.SET_PROPERTY)
    has_put_disp_property = _has_property(BindingFlags.PUT_DISP_PROPERTY)
    has_put_ref_disp_property = _has_property(BindingFlags.PUT_REF_DISP_PROPERTY)
    has_exact_binding = _has_property(BindingFlags.EXACT_BINDING)
    has_suppress_change_type = _has_property(BindingFlags.SUPPRESS_CHANGE_TYPE)
    has_optional_param_binding = _has_property(BindingFlags.OPTIONAL_PARAM_BINDING)
    has_ignore_return = _has_property(BindingFlags.IGNORE_RETURN)


__all__ = [
    "BindingFlags",
    "BindingOptions",
    "USAGE_FLAGS",
    "flag_from_name",
]
