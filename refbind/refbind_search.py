"""
Member search: the introspection primitive behind every resolution.

`MemberSearch` turns (class, name or argument signature, flags) into a member
handle using Python's own member model: class `__dict__`s walked in MRO order,
name mangling for private members, descriptors (property, staticmethod,
classmethod, slots) and `functools.singledispatchmethod` registries for
overloads. It never caches; `MemberCache` sits in front of it.
"""

from __future__ import annotations

import functools
import inspect
import types
import typing
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from refbind.refbind_constants import CONSTRUCTOR, INDEXER_GET, INDEXER_SET, LOGGER
from refbind.refbind_members import (
    ConstructorHandle, FieldHandle, IndexerHandle, MemberHandle, MethodHandle, PropertyHandle,
)
from refbind.refbind_options import BindingFlags
from refbind.refbind_params import ArgumentDescriptor, annotation_cost, dispatch_cost, match_signature

_VISIBILITY = BindingFlags.PUBLIC | BindingFlags.NON_PUBLIC
_SCOPE = BindingFlags.INSTANCE | BindingFlags.STATIC

# Overload = (function, dispatch type or None, leading parameters filled by the caller)
Overload = Tuple[Any, Optional[type], int]


# =================================================================
# Name and declaration helpers
# =================================================================

def is_public_name(name: str) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return True
    return not name.startswith("_")


def _mangled(owner: type, name: str) -> str:
    return f"_{owner.__name__.lstrip('_')}{name}"


def _candidate_names(name: str, owner: type, flags: BindingFlags) -> List[str]:
    """Attribute names under which `name` may be stored on `owner`."""
    out = [name]
    is_dunder = name.startswith("__") and name.endswith("__")
    if name.startswith("__") and not is_dunder:
        out.append(_mangled(owner, name))
    if flags & BindingFlags.NON_PUBLIC and not name.startswith("_"):
        out.append(f"_{name}")
        out.append(_mangled(owner, f"__{name}"))
    return out


def _match_name(available, candidates: Sequence[str], ignore_case: bool) -> Optional[str]:
    for c in candidates:
        if c in available:
            return c
    if not ignore_case:
        return None
    # Exact spellings won above; among case variants the first declared wins
    lowered = {}
    for k in available:
        lowered.setdefault(str(k).lower(), k)
    for c in candidates:
        hit = lowered.get(c.lower())
        if hit is not None:
            return hit
    return None


def _annotations(owner: type) -> Dict[str, Any]:
    try:
        return dict(inspect.get_annotations(owner, eval_str=True))
    except Exception:
        return dict(inspect.get_annotations(owner))


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return typing.get_origin(annotation) is typing.ClassVar or annotation is typing.ClassVar


def _field_annotation(annotation: Any) -> Optional[type]:
    """Plain-class annotations are enforced on write; anything richer is not."""
    if _is_classvar(annotation) and not isinstance(annotation, str):
        args = typing.get_args(annotation)
        annotation = args[0] if args else None
    return annotation if isinstance(annotation, type) else None


def _is_plain_value(raw: Any) -> bool:
    if isinstance(raw, (staticmethod, classmethod, property, type)):
        return False
    if inspect.isroutine(raw):
        return False
    # Any descriptor (functions, slots, singledispatchmethod, ...) is not a field
    return not hasattr(type(raw), "__get__")


def _overloads(raw: Any, receiver: int) -> List[Overload]:
    """Callable candidates behind one attribute, with how many leading params the caller fills."""
    if isinstance(raw, functools.singledispatchmethod):
        registry = raw.dispatcher.registry
        return [(fn, typ, receiver + 1) for typ, fn in registry.items()]
    return [(raw, None, receiver)]


def _best_overload(overloads: Sequence[Overload], descriptors: Sequence[ArgumentDescriptor],
                   exact: bool, optional: bool) -> Optional[Overload]:
    best = None
    best_cost = None
    for ov in overloads:
        fn, dispatch_type, skip = ov
        if dispatch_type is not None:
            if not descriptors:
                continue
            head = dispatch_cost(dispatch_type, descriptors[0], exact)
            if head is None:
                continue
            rest = match_signature(fn, descriptors[1:], exact=exact, optional=optional, skip=skip)
            cost = None if rest is None else head + rest
        else:
            cost = match_signature(fn, descriptors, exact=exact, optional=optional, skip=skip)
        if cost is None:
            continue
        # Strictly lower wins, so ties keep declaration/registration order
        if best_cost is None or cost < best_cost:
            best, best_cost = ov, cost
    return best


# =================================================================
# MemberSearch
# =================================================================

class MemberSearch:
    """Resolves members of a class under a set of binding flags."""

    # --- scoping --------------------------------------------------------

    @staticmethod
    def searchable(flags: BindingFlags) -> bool:
        return bool(flags & _VISIBILITY) and bool(flags & _SCOPE)

    @staticmethod
    def owners(cls: type, flags: BindingFlags) -> List[type]:
        if flags & BindingFlags.DECLARED_ONLY:
            return [cls]
        return [c for c in inspect.getmro(cls) if c is not object]

    @staticmethod
    def is_visible(handle: MemberHandle, cls: type, flags: BindingFlags) -> bool:
        """Would a fresh search for `handle` on `cls` under `flags` accept it?"""
        if isinstance(handle, ConstructorHandle):
            return True
        if handle.is_public and not flags & BindingFlags.PUBLIC:
            return False
        if not handle.is_public and not flags & BindingFlags.NON_PUBLIC:
            return False
        if handle.is_static:
            if not flags & BindingFlags.STATIC:
                return False
            # Inherited statics need FLATTEN_HIERARCHY
            if handle.owner is not cls and not issubclass(handle.owner, type) \
                    and not flags & BindingFlags.FLATTEN_HIERARCHY:
                return False
        elif not flags & BindingFlags.INSTANCE:
            return False
        if flags & BindingFlags.DECLARED_ONLY and handle.owner is not cls \
                and not issubclass(handle.owner, type):
            return False
        return True

    def _definitions(self, cls: type, name: str, flags: BindingFlags) -> Iterator[Tuple[type, str, Any]]:
        """First definition of `name` (or one of its stored forms) per owner, in MRO order."""
        ignore_case = bool(flags & BindingFlags.IGNORE_CASE)
        for owner in self.owners(cls, flags):
            actual = _match_name(owner.__dict__, _candidate_names(name, owner, flags), ignore_case)
            if actual is not None:
                yield owner, actual, owner.__dict__[actual]

    # --- fields -----------------------------------------------------------

    def find_field(self, cls: type, name: str, flags: BindingFlags,
                   instance: Any = None) -> Optional[FieldHandle]:
        if not self.searchable(flags):
            return None
        ignore_case = bool(flags & BindingFlags.IGNORE_CASE)
        instance_keys = ()
        if instance is not None:
            try:
                instance_keys = tuple(vars(instance))
            except TypeError:
                instance_keys = ()
        for owner in self.owners(cls, flags):
            candidates = _candidate_names(name, owner, flags)
            annotations = _annotations(owner)
            if flags & BindingFlags.INSTANCE:
                declared = [n for n, a in annotations.items() if not _is_classvar(a)]
                declared += [n for n, raw in owner.__dict__.items()
                             if isinstance(raw, types.MemberDescriptorType)]
                actual = _match_name(list(declared) + list(instance_keys), candidates, ignore_case)
                if actual is not None:
                    handle = FieldHandle(owner, actual, False, is_public_name(actual),
                                         _field_annotation(annotations.get(actual)))
                    if self.is_visible(handle, cls, flags):
                        return handle
            if flags & BindingFlags.STATIC:
                instance_only = {n for n, a in annotations.items() if not _is_classvar(a)}
                statics = [n for n, raw in owner.__dict__.items()
                           if n not in instance_only
                           and not (n.startswith("__") and n.endswith("__"))
                           and _is_plain_value(raw)]
                actual = _match_name(statics, candidates, ignore_case)
                if actual is not None:
                    handle = FieldHandle(owner, actual, True, is_public_name(actual),
                                         _field_annotation(annotations.get(actual)))
                    if self.is_visible(handle, cls, flags):
                        return handle
        return None

    # --- properties -------------------------------------------------------

    def find_property(self, cls: type, name: str, flags: BindingFlags) -> Optional[PropertyHandle]:
        if not self.searchable(flags):
            return None
        if flags & BindingFlags.INSTANCE:
            for owner, actual, raw in self._definitions(cls, name, flags):
                if isinstance(raw, property):
                    handle = PropertyHandle(owner, actual, False, is_public_name(actual), raw)
                    if self.is_visible(handle, cls, flags):
                        return handle
                break
        if flags & BindingFlags.STATIC:
            # Class-level properties are properties of the metaclass
            meta = type(cls)
            ignore_case = bool(flags & BindingFlags.IGNORE_CASE)
            for owner in inspect.getmro(meta):
                if owner is type or owner is object:
                    continue
                actual = _match_name(owner.__dict__, _candidate_names(name, owner, flags), ignore_case)
                if actual is None:
                    continue
                raw = owner.__dict__[actual]
                if isinstance(raw, property):
                    handle = PropertyHandle(owner, actual, True, is_public_name(actual), raw)
                    if self.is_visible(handle, cls, flags):
                        return handle
                break
        return None

    # --- indexers ---------------------------------------------------------

    def _dunder(self, cls: type, name: str, flags: BindingFlags) -> Optional[Tuple[type, Any]]:
        for owner in self.owners(cls, flags):
            if name in owner.__dict__:
                return owner, owner.__dict__[name]
        return None

    def find_indexer(self, cls: type, descriptors: Sequence[ArgumentDescriptor],
                     flags: BindingFlags) -> Optional[IndexerHandle]:
        if not self.searchable(flags) or not flags & BindingFlags.INSTANCE \
                or not flags & BindingFlags.PUBLIC or not descriptors:
            return None
        found = self._dunder(cls, INDEXER_GET, flags)
        if found is None:
            return None
        owner, raw = found
        exact = bool(flags & BindingFlags.EXACT_BINDING)
        getter = self._pick_index_overload(raw, descriptors, exact)
        if getter is None:
            return None
        setter = None
        found_set = self._dunder(cls, INDEXER_SET, flags)
        if found_set is not None:
            setter = self._setter_for(found_set[1], descriptors)
        return IndexerHandle(owner, INDEXER_GET, False, True, getter=getter, setter=setter,
                             param_types=tuple(d.type for d in descriptors))

    @staticmethod
    def _index_cost(fn, dispatch_type, skip, descriptors, exact) -> Optional[int]:
        if len(descriptors) == 1:
            if dispatch_type is not None:
                head = dispatch_cost(dispatch_type, descriptors[0], exact)
                if head is None:
                    return None
                rest = match_signature(fn, [], exact=exact, skip=skip)
                return None if rest is None else head
            return match_signature(fn, descriptors, exact=exact, skip=skip)
        # Several indices arrive as one tuple key: match them against tuple[...] element-wise
        if dispatch_type is not None:
            return 0 if dispatch_type is tuple or (not exact and dispatch_type is object) else None
        try:
            sig = inspect.signature(fn)
            hints = typing.get_type_hints(fn)
        except Exception:
            return None
        params = list(sig.parameters.values())
        if len(params) != skip + 1:
            return None
        ann = hints.get(params[skip].name, inspect.Parameter.empty)
        if ann is inspect.Parameter.empty or ann is Any or ann is tuple:
            return 0
        if typing.get_origin(ann) is not tuple:
            return None
        elems = typing.get_args(ann)
        if len(elems) == 2 and elems[1] is Ellipsis:
            elems = (elems[0],) * len(descriptors)
        if len(elems) != len(descriptors):
            return None
        total = 0
        for elem, desc in zip(elems, descriptors):
            cost = annotation_cost(elem, desc, exact)
            if cost is None:
                return None
            total += cost
        return total

    def _pick_index_overload(self, raw, descriptors, exact):
        best, best_cost = None, None
        for fn, dispatch_type, skip in _overloads(raw, 1):
            cost = self._index_cost(fn, dispatch_type, skip, descriptors, exact)
            if cost is not None and (best_cost is None or cost < best_cost):
                best, best_cost = fn, cost
        return best

    @staticmethod
    def _setter_for(raw, descriptors):
        if isinstance(raw, functools.singledispatchmethod):
            key_type = descriptors[0].type if len(descriptors) == 1 else tuple
            return raw.dispatcher.dispatch(key_type)
        return raw if callable(raw) else None

    # --- methods ----------------------------------------------------------

    @staticmethod
    def _method_shape(raw: Any) -> Optional[Tuple[str, Any, int]]:
        """(binding, callable, receiver params) for method-like class attributes."""
        if isinstance(raw, staticmethod):
            return "static", raw.__func__, 0
        if isinstance(raw, classmethod):
            return "class", raw.__func__, 1
        if isinstance(raw, functools.singledispatchmethod):
            return "instance", raw, 1
        if inspect.isfunction(raw):
            return "instance", raw, 1
        return None

    def find_method(self, cls: type, name: str, descriptors: Sequence[ArgumentDescriptor],
                    flags: BindingFlags) -> Optional[MethodHandle]:
        if not self.searchable(flags):
            return None
        exact = bool(flags & BindingFlags.EXACT_BINDING)
        optional = bool(flags & BindingFlags.OPTIONAL_PARAM_BINDING)
        for owner, actual, raw in self._definitions(cls, name, flags):
            shape = self._method_shape(raw)
            if shape is None:
                # A non-method definition hides any base-class method of that name
                return None
            binding, target, receiver = shape
            chosen = _best_overload(_overloads(target, receiver), descriptors, exact, optional)
            if chosen is None:
                LOGGER.debug("no overload of %s.%s accepts (%s)", owner.__qualname__, actual,
                             ", ".join(str(d.type) for d in descriptors))
                return None
            fn = chosen[0]
            handle = MethodHandle(owner, actual, binding != "instance", is_public_name(actual),
                                  func=fn, binding=binding, bound_type=cls,
                                  param_types=tuple(d.type for d in descriptors))
            if self.is_visible(handle, cls, flags):
                return handle
            return None
        return None

    # --- constructors -----------------------------------------------------

    def find_constructor(self, cls: type,
                         descriptors: Sequence[ArgumentDescriptor]) -> Optional[ConstructorHandle]:
        """Exact-signature constructor lookup; public, non-public and instance are implied."""
        init_owner = next((c for c in inspect.getmro(cls)
                           if c is not object and CONSTRUCTOR in c.__dict__), None)
        types_ = tuple(d.type for d in descriptors)
        if init_owner is None:
            new_owner = next((c for c in inspect.getmro(cls)
                              if c is not object and "__new__" in c.__dict__), None)
            if new_owner is None:
                # Only object's own constructor: no arguments accepted
                if descriptors:
                    return None
                return ConstructorHandle(cls, CONSTRUCTOR, False, True)
            raw_new = new_owner.__dict__["__new__"]
            fn = raw_new.__func__ if isinstance(raw_new, staticmethod) else raw_new
            if match_signature(fn, descriptors, exact=True, skip=1) is None:
                return None
            return ConstructorHandle(cls, CONSTRUCTOR, False, True, param_types=types_)
        raw = init_owner.__dict__[CONSTRUCTOR]
        if isinstance(raw, functools.singledispatchmethod):
            chosen = _best_overload(_overloads(raw, 1), descriptors, True, False)
            if chosen is None:
                return None
            return ConstructorHandle(cls, CONSTRUCTOR, False, True, init=chosen[0], param_types=types_)
        if match_signature(raw, descriptors, exact=True, skip=1) is None:
            return None
        return ConstructorHandle(cls, CONSTRUCTOR, False, True, param_types=types_)

    # --- enumeration ------------------------------------------------------

    def members(self, cls: type, flags: BindingFlags) -> List[MemberHandle]:
        """Every field, property and method visible on `cls` under `flags`, most-derived first."""
        if not self.searchable(flags):
            return []
        out: List[MemberHandle] = []
        seen = set()
        for owner in self.owners(cls, flags):
            annotations = _annotations(owner)
            instance_only = {n for n, a in annotations.items() if not _is_classvar(a)}
            names = list(owner.__dict__) + [n for n in annotations if n not in owner.__dict__]
            for name in names:
                if name in seen:
                    continue
                raw = owner.__dict__.get(name)
                handle = self._classify(owner, name, raw, name in instance_only, annotations)
                if handle is None:
                    continue
                seen.add(name)
                if self.is_visible(handle, cls, flags):
                    out.append(handle)
        if flags & BindingFlags.STATIC:
            for owner in inspect.getmro(type(cls)):
                if owner is type or owner is object:
                    continue
                for name, raw in owner.__dict__.items():
                    if isinstance(raw, property):
                        handle = PropertyHandle(owner, name, True, is_public_name(name), raw)
                        if self.is_visible(handle, cls, flags):
                            out.append(handle)
        return out

    def _classify(self, owner, name, raw, instance_field, annotations) -> Optional[MemberHandle]:
        public = is_public_name(name)
        if instance_field or isinstance(raw, types.MemberDescriptorType):
            return FieldHandle(owner, name, False, public, _field_annotation(annotations.get(name)))
        if isinstance(raw, property):
            return PropertyHandle(owner, name, False, public, raw)
        shape = self._method_shape(raw)
        if shape is not None:
            binding, target, _ = shape
            if isinstance(target, functools.singledispatchmethod):
                target = target.func
            return MethodHandle(owner, name, binding != "instance", public,
                                func=target, binding=binding, bound_type=owner)
        if not (name.startswith("__") and name.endswith("__")) and _is_plain_value(raw):
            return FieldHandle(owner, name, True, public, _field_annotation(annotations.get(name)))
        return None


__all__ = [
    "MemberSearch",
    "is_public_name",
]
