"""
Resolved member handles.

A handle is the immutable result of one successful member search: it records
where the member was declared, what it is called, whether it is static and
public, and knows how to perform the underlying get/set/invoke. Handles are
created by `MemberSearch` and owned by `MemberCache`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Tuple

from refbind.refbind_errors import InvalidOperationError, MemberNotFoundError, TypeMismatchError
from refbind.refbind_params import check_value


class MemberKind:
    FIELD = "field"
    PROPERTY = "property"
    INDEXER = "indexer"
    METHOD = "method"
    CONSTRUCTOR = "constructor"


@dataclass(frozen=True, eq=False)
class MemberHandle:
    owner: type
    name: str
    is_static: bool
    is_public: bool

    kind = "member"

    def __repr__(self):
        scope = "static" if self.is_static else "instance"
        vis = "public" if self.is_public else "non-public"
        return f"<{type(self).__name__} {self.owner.__qualname__}.{self.name} {vis} {scope}>"

    def same_member(self, other: MemberHandle) -> bool:
        return (type(other) is type(self) and other.owner is self.owner
                and other.name == self.name and other.is_static == self.is_static)


@dataclass(frozen=True, eq=False, repr=False)
class FieldHandle(MemberHandle):
    annotation: Any = None

    kind = MemberKind.FIELD

    def get_value(self, target: Any) -> Any:
        holder = self.owner if self.is_static else target
        try:
            return getattr(holder, self.name)
        except AttributeError:
            # Declared on the class but never assigned on this instance
            raise MemberNotFoundError(self.owner, self.kind, self.name) from None

    def set_value(self, target: Any, value: Any) -> None:
        if self.annotation is not None and not check_value(value, self.annotation):
            raise TypeMismatchError(self.annotation, type(value), self.name)
        if self.is_static:
            setattr(self.owner, self.name, value)
        else:
            setattr(target, self.name, value)


@dataclass(frozen=True, eq=False, repr=False)
class PropertyHandle(MemberHandle):
    prop: property = None

    kind = MemberKind.PROPERTY

    @property
    def can_read(self) -> bool:
        return self.prop.fget is not None

    @property
    def can_write(self) -> bool:
        return self.prop.fset is not None

    def get_value(self, target: Any) -> Any:
        # Static properties live on the metaclass; the class itself is the receiver
        if not self.can_read:
            raise InvalidOperationError(self.owner, self.name, "property has no getter")
        return self.prop.__get__(target, type(target))

    def set_value(self, target: Any, value: Any) -> None:
        if not self.can_write:
            raise InvalidOperationError(self.owner, self.name, "property is read-only")
        self.prop.__set__(target, value)


@dataclass(frozen=True, eq=False, repr=False)
class IndexerHandle(MemberHandle):
    getter: Optional[Callable] = None
    setter: Optional[Callable] = None
    param_types: Tuple[Any, ...] = ()

    kind = MemberKind.INDEXER

    def same_member(self, other: MemberHandle) -> bool:
        return (super().same_member(other) and other.getter is self.getter
                and other.setter is self.setter)

    @staticmethod
    def _key(values: Sequence[Any]) -> Any:
        return values[0] if len(values) == 1 else tuple(values)

    def get_value(self, target: Any, values: Sequence[Any]) -> Any:
        if self.getter is None:
            raise InvalidOperationError(self.owner, self.name, "indexer has no getter")
        return self.getter(target, self._key(values))

    def set_value(self, target: Any, values: Sequence[Any], value: Any) -> None:
        if self.setter is None:
            raise InvalidOperationError(self.owner, self.name, "indexer is read-only")
        self.setter(target, self._key(values), value)


@dataclass(frozen=True, eq=False, repr=False)
class MethodHandle(MemberHandle):
    func: Callable = None
    # 'instance' | 'static' | 'class'
    binding: str = "instance"
    bound_type: Optional[type] = None
    param_types: Tuple[Any, ...] = field(default=())

    kind = MemberKind.METHOD

    def same_member(self, other: MemberHandle) -> bool:
        return super().same_member(other) and other.func is self.func

    def invoke(self, target: Any, values: Sequence[Any]) -> Any:
        if self.binding == "static":
            return self.func(*values)
        if self.binding == "class":
            return self.func(self.bound_type or self.owner, *values)
        return self.func(target, *values)


@dataclass(frozen=True, eq=False, repr=False)
class ConstructorHandle(MemberHandle):
    init: Optional[Callable] = None
    param_types: Tuple[Any, ...] = ()

    kind = MemberKind.CONSTRUCTOR

    def same_member(self, other: MemberHandle) -> bool:
        return (super().same_member(other) and other.init is self.init
                and other.param_types == self.param_types)

    def invoke(self, target: Any, values: Sequence[Any]) -> Any:
        cls = self.owner
        if self.init is None:
            return cls(*values)
        # A specific overload was picked; run it directly instead of re-dispatching
        obj = cls.__new__(cls)
        self.init(obj, *values)
        return obj


__all__ = [
    "MemberKind",
    "MemberHandle",
    "FieldHandle",
    "PropertyHandle",
    "IndexerHandle",
    "MethodHandle",
    "ConstructorHandle",
]
