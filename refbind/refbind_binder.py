"""Entry point for one class: construction by argument types, and binding."""

from __future__ import annotations

from typing import Any, List, Optional

from refbind.refbind_cache import DEFAULT_CACHE, MemberCache
from refbind.refbind_constants import CONSTRUCTOR_KEY_PREFIX
from refbind.refbind_errors import TypeMismatchError
from refbind.refbind_members import MemberHandle, MemberKind
from refbind.refbind_options import BindingFlags, BindingOptions
from refbind.refbind_params import (
    ArgumentDescriptor, call_values, signature_key, signature_types, write_back_all,
)
from refbind.refbind_search import MemberSearch

_ALL = BindingFlags.PUBLIC | BindingFlags.NON_PUBLIC | BindingFlags.INSTANCE | BindingFlags.STATIC


class TypeBinder:
    """Reflection entry point scoped to `bound_type`."""

    def __init__(self, bound_type: type, cache: Optional[MemberCache] = None,
                 search: Optional[MemberSearch] = None):
        if not isinstance(bound_type, type):
            raise TypeError(f"TypeBinder needs a class, not {type(bound_type).__name__}")
        self._type = bound_type
        self._cache = cache if cache is not None else DEFAULT_CACHE
        self._search = search if search is not None else MemberSearch()

    @property
    def bound_type(self) -> type:
        return self._type

    def create_instance(self, *args: Any) -> Any:
        return self.create_instance_exact(*ArgumentDescriptor.create_many(*args))

    def create_instance_exact(self, *descriptors: ArgumentDescriptor) -> Any:
        """Construct through the constructor whose parameter types match exactly."""
        key = (CONSTRUCTOR_KEY_PREFIX + signature_key(descriptors), signature_types(descriptors))
        handle = self._cache.resolve(
            self._type, MemberKind.CONSTRUCTOR, key,
            lambda: self._search.find_constructor(self._type, descriptors),
        )
        values = call_values(descriptors)
        result = handle.invoke(None, values)
        write_back_all(descriptors, values)
        if not isinstance(result, self._type):
            raise TypeMismatchError(self._type, type(result), handle.name)
        return result

    def bind(self, options: Optional[BindingOptions] = None):
        """
        Without arguments: default options scoped to this class.
        With `options`: re-scope them to this class and return an AccessorFactory.
        """
        if options is None:
            return BindingOptions(BindingFlags.DEFAULT, self._type, None)
        return options.scoped_to(self._type).generate_accessor(cache=self._cache, search=self._search)

    def all_members(self) -> List[MemberHandle]:
        return self._search.members(self._type, _ALL)

    def public_static_members(self) -> List[MemberHandle]:
        return self._search.members(self._type, BindingFlags.PUBLIC | BindingFlags.STATIC)

    def public_instance_members(self) -> List[MemberHandle]:
        return self._search.members(self._type, BindingFlags.PUBLIC | BindingFlags.INSTANCE)

    def __repr__(self):
        return f"TypeBinder({self._type.__qualname__})"


__all__ = ["TypeBinder"]
