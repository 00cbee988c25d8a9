"""
Accessor factory and typed accessors.

An `AccessorFactory` binds (class, instance, options) and hands out typed
accessors. Every accessor resolves its member through the shared
`MemberCache`, so the expensive search happens once per class and key no
matter how many accessors are created afterwards.

    acc = TypeBinder(Sample).bind(BindingOptions().public.non_public.set_instance(obj))
    acc.field("count", int).value = 7
    acc.method("add", 1, 2, returns=int).invoke()
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Iterable, List, Optional, Sequence, Tuple

from refbind.refbind_cache import DEFAULT_CACHE, MemberCache, key_label
from refbind.refbind_constants import INDEXER_KEY_PREFIX
from refbind.refbind_errors import InvalidOperationError, MemberNotFoundError, TypeMismatchError
from refbind.refbind_members import IndexerHandle, MemberHandle, MemberKind, MethodHandle
from refbind.refbind_options import BindingFlags, BindingOptions
from refbind.refbind_params import (
    ArgumentDescriptor, call_values, check_value, signature_key, signature_types, write_back_all,
)
from refbind.refbind_search import MemberSearch

_SCOPE = BindingFlags.INSTANCE | BindingFlags.STATIC


# =================================================================
# Typed accessors
# =================================================================

class _Accessor:
    """Shared plumbing: target checks, usage checks and the typed read cast."""

    def __init__(self, handle: MemberHandle, target: Any, options: BindingOptions,
                 expected: Any = object):
        self._handle = handle
        self._target = target
        self._options = options
        self._expected = expected

    @property
    def handle(self) -> MemberHandle:
        return self._handle

    @property
    def target(self) -> Any:
        return self._target

    def _require_target(self) -> None:
        if not self._handle.is_static and self._target is None:
            raise InvalidOperationError(self._handle.owner, self._handle.name,
                                        "instance member used without a bound instance")

    def _require_usage(self, usage: BindingFlags, verb: str) -> None:
        if not self._options.allows_usage(usage):
            raise InvalidOperationError(self._handle.owner, self._handle.name,
                                        f"binding options do not permit {verb}")

    def _checked(self, value: Any) -> Any:
        if not check_value(value, self._expected):
            raise TypeMismatchError(self._expected, type(value), self._handle.name)
        return value

    def __repr__(self):
        return f"<{type(self).__name__} {self._handle!r}>"


class FieldAccessor(_Accessor):
    @property
    def value(self) -> Any:
        self._require_usage(BindingFlags.GET_FIELD, "reading fields")
        self._require_target()
        return self._checked(self._handle.get_value(self._target))

    @value.setter
    def value(self, new_value: Any) -> None:
        self._require_usage(BindingFlags.SET_FIELD, "writing fields")
        self._require_target()
        self._handle.set_value(self._target, new_value)


class PropertyAccessor(_Accessor):
    @property
    def value(self) -> Any:
        self._require_usage(BindingFlags.GET_PROPERTY, "reading properties")
        self._require_target()
        return self._checked(self._handle.get_value(self._target))

    @value.setter
    def value(self, new_value: Any) -> None:
        self._require_usage(BindingFlags.SET_PROPERTY, "writing properties")
        self._require_target()
        self._handle.set_value(self._target, new_value)


class IndexerAccessor(_Accessor):
    """Indexer access with concrete index values; `index()` re-points it at other indices."""

    def __init__(self, handle: IndexerHandle, target: Any, options: BindingOptions,
                 args: Sequence[ArgumentDescriptor], expected: Any = object):
        super().__init__(handle, target, options, expected)
        self._args = list(args)

    @property
    def args(self) -> List[ArgumentDescriptor]:
        return list(self._args)

    def _index_values(self) -> List[Any]:
        return [a.value for a in self._args]

    @property
    def value(self) -> Any:
        self._require_usage(BindingFlags.GET_PROPERTY, "reading indexers")
        self._require_target()
        return self._checked(self._handle.get_value(self._target, self._index_values()))

    @value.setter
    def value(self, new_value: Any) -> None:
        self._require_usage(BindingFlags.SET_PROPERTY, "writing indexers")
        self._require_target()
        self._handle.set_value(self._target, self._index_values(), new_value)

    def index(self, *args: Any) -> "IndexerAccessor":
        return IndexerAccessor(self._handle, self._target, self._options,
                               ArgumentDescriptor.create_many(*args), self._expected)


class MethodAccessor(_Accessor):
    """A resolved method plus the arguments captured when it was resolved."""

    def __init__(self, handle: MethodHandle, target: Any, options: BindingOptions,
                 args: Sequence[ArgumentDescriptor], expected: Any = object):
        super().__init__(handle, target, options, expected)
        self._args = list(args)

    @property
    def args(self) -> List[ArgumentDescriptor]:
        return list(self._args)

    def invoke(self, *args: Any) -> Any:
        """
        Call the method. With no arguments the captured descriptors are used;
        otherwise `args` (plain values or descriptors) apply to this call only.
        By-reference descriptors see the callee's writes once this returns.
        Exceptions raised by the method itself propagate unchanged.
        """
        self._require_usage(BindingFlags.INVOKE_METHOD, "invoking methods")
        self._require_target()
        descriptors = ArgumentDescriptor.create_many(*args) if args else self._args
        values = call_values(descriptors)
        result = self._handle.invoke(self._target, values)
        write_back_all(descriptors, values)
        if self._options.has_ignore_return:
            return None
        return self._checked(result)

    __call__ = invoke


# =================================================================
# Accessor factory
# =================================================================

class AccessorFactory:
    """Typed access to the members of one class, optionally bound to an instance."""

    def __init__(self, bound_type: type, bound_instance: Any, options: BindingOptions,
                 cache: Optional[MemberCache] = None, search: Optional[MemberSearch] = None):
        self._type = bound_type
        self._instance = bound_instance
        self._options = options
        self._cache = cache if cache is not None else DEFAULT_CACHE
        self._search = search if search is not None else MemberSearch()

    @property
    def bound_type(self) -> type:
        return self._type

    @property
    def bound_instance(self) -> Any:
        return self._instance

    @property
    def options(self) -> BindingOptions:
        return self._options

    @property
    def cache(self) -> MemberCache:
        return self._cache

    def _resolve(self, kind: str, key: Hashable, lookup: Callable[[], Optional[MemberHandle]],
                 also: Optional[Callable[[MemberHandle], Iterable[Hashable]]] = None) -> MemberHandle:
        flags = self._options.flags

        def visible(handle: MemberHandle) -> bool:
            return self._search.is_visible(handle, self._type, flags)

        # Visibility flags are not part of the key; a hidden hit is searched again under ours
        handle = self._cache.resolve(self._type, kind, key, lookup, accept=visible, also=also)
        if not visible(handle):
            raise MemberNotFoundError(self._type, kind, key_label(key))
        return handle

    def _scoped(self, name: str) -> Tuple[str, Callable[[MemberHandle], List[str]]]:
        """Key for a field or property under the requested scope, plus the key of the scope found."""
        base = self._keyed(name)
        scope = self._options.flags & _SCOPE
        if scope == BindingFlags.INSTANCE:
            requested = "instance"
        elif scope == BindingFlags.STATIC:
            requested = "static"
        else:
            requested = "any"

        def found(handle: MemberHandle) -> List[str]:
            return [f"{base}#{'static' if handle.is_static else 'instance'}"]

        return f"{base}#{requested}", found

    def _keyed(self, key: str, matches_signature: bool = False) -> str:
        # Flags that change which member a lookup picks must split the cache key
        flags = self._options.flags
        if flags & BindingFlags.IGNORE_CASE:
            key = "~" + key
        if matches_signature and flags & BindingFlags.EXACT_BINDING:
            key += "!exact"
        if matches_signature and flags & BindingFlags.OPTIONAL_PARAM_BINDING:
            key += "!optional"
        return key

    def _target_for(self, handle: MemberHandle) -> Any:
        return self._type if handle.is_static else self._instance

    def field(self, name: str, expected: Any = object) -> FieldAccessor:
        flags = self._options.flags
        key, found = self._scoped(name)
        handle = self._resolve(
            MemberKind.FIELD, key,
            lambda: self._search.find_field(self._type, name, flags, self._instance),
            also=found,
        )
        return FieldAccessor(handle, self._target_for(handle), self._options, expected)

    def indexer(self, *args: Any, expected: Any = object) -> IndexerAccessor:
        return self.indexer_exact(*ArgumentDescriptor.create_many(*args), expected=expected)

    def indexer_exact(self, *descriptors: ArgumentDescriptor, expected: Any = object) -> IndexerAccessor:
        flags = self._options.flags
        key = (self._keyed(INDEXER_KEY_PREFIX + signature_key(descriptors), True),
               signature_types(descriptors))
        handle = self._resolve(
            MemberKind.INDEXER, key,
            lambda: self._search.find_indexer(self._type, descriptors, flags),
        )
        return IndexerAccessor(handle, self._instance, self._options, descriptors, expected)

    def method(self, name: str, *args: Any, returns: Any = object) -> MethodAccessor:
        """Resolve `name` against the argument types; `returns` types the result."""
        flags = self._options.flags
        descriptors = ArgumentDescriptor.create_many(*args)
        key = (self._keyed(f"{name}({signature_key(descriptors)})", True),
               signature_types(descriptors))
        handle = self._resolve(
            MemberKind.METHOD, key,
            lambda: self._search.find_method(self._type, name, descriptors, flags),
        )
        return MethodAccessor(handle, self._target_for(handle), self._options, descriptors, returns)

    def to_static(self) -> "AccessorFactory":
        opts = self._options.to_static().scoped_to(self._type)
        return opts.generate_accessor(cache=self._cache, search=self._search)

    def to_instance(self, instance_object: Any) -> "AccessorFactory":
        opts = self._options.to_instance(instance_object).scoped_to(self._type)
        return opts.generate_accessor(cache=self._cache, search=self._search)

    def __repr__(self):
        return f"AccessorFactory({self._type.__qualname__}, {self._options!r})"

    # Kept last: from here on the name shadows the builtin inside this class body
    def property(self, name: str, expected: Any = object) -> PropertyAccessor:
        flags = self._options.flags
        key, found = self._scoped(name)
        handle = self._resolve(
            MemberKind.PROPERTY, key,
            lambda: self._search.find_property(self._type, name, flags),
            also=found,
        )
        return PropertyAccessor(handle, self._target_for(handle), self._options, expected)


__all__ = [
    "AccessorFactory",
    "FieldAccessor",
    "PropertyAccessor",
    "IndexerAccessor",
    "MethodAccessor",
]
