"""
Call arguments, by-reference cells and signature matching.

An `ArgumentDescriptor` pairs a value with the type used for overload resolution.
By-reference arguments travel to the callee as a `Ref` cell; whatever the callee
leaves in `ref.value` is copied back into the descriptor after the call.
"""

from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

# Signature ranking: an exact type match costs nothing, a wildcard costs more than
# any realistic MRO distance so typed candidates always win.
_WILDCARD_COST = 1000


class Ref(Generic[T]):
    """A mutable single-value cell standing in for a by-reference parameter."""
    __slots__ = ("value",)

    def __init__(self, value: T = None):
        self.value = value

    def __repr__(self):
        return f"Ref({self.value!r})"


def _value_type(value: Any) -> type:
    return object if value is None else type(value)


class ArgumentDescriptor:
    """One call argument: its value, its resolution type, and the by-reference marker."""
    __slots__ = ("_type", "_value", "_by_ref")

    def __init__(self, value: Any, by_ref: bool = False):
        base = _value_type(value)
        self._type = Ref[base] if by_ref else base
        self._value = value
        self._by_ref = bool(by_ref)

    @property
    def type(self):
        return self._type

    @property
    def value(self) -> Any:
        return self._value

    @property
    def is_by_reference(self) -> bool:
        return self._by_ref

    @property
    def base_type(self) -> type:
        """The value's own type, without the `Ref[...]` wrapper."""
        if self._by_ref:
            return typing.get_args(self._type)[0]
        return self._type

    @classmethod
    def create_many(cls, *values: Any) -> List["ArgumentDescriptor"]:
        return [v if isinstance(v, ArgumentDescriptor) else cls(v) for v in values]

    def to_call_value(self) -> Any:
        if self._by_ref:
            return Ref(self._value)
        return self._value

    def write_back(self, passed: Any) -> None:
        if self._by_ref and isinstance(passed, Ref):
            self._value = passed.value

    def __repr__(self):
        ref = ", by_ref=True" if self._by_ref else ""
        return f"ArgumentDescriptor({self._value!r}{ref})"


def call_values(descriptors: Sequence[ArgumentDescriptor]) -> List[Any]:
    return [d.to_call_value() for d in descriptors]


def write_back_all(descriptors: Sequence[ArgumentDescriptor], passed: Sequence[Any]) -> None:
    """Copy by-reference results back, in argument order."""
    for desc, val in zip(descriptors, passed):
        desc.write_back(val)


def type_label(t: Any) -> str:
    if typing.get_origin(t) is Ref:
        inner = typing.get_args(t)
        return f"Ref[{type_label(inner[0]) if inner else 'Any'}]"
    name = getattr(t, "__qualname__", None)
    if name is None:
        return str(t)
    module = getattr(t, "__module__", None)
    if module in (None, "builtins"):
        return name
    return f"{module}.{name}"


def signature_key(descriptors: Sequence[ArgumentDescriptor]) -> str:
    """Readable signature label; two distinct classes can still share one."""
    return ",".join(type_label(d.type) for d in descriptors)


def signature_types(descriptors: Sequence[ArgumentDescriptor]) -> Tuple[Any, ...]:
    """The argument types themselves, for keys that must tell same-named classes apart."""
    return tuple(d.type for d in descriptors)


# ---------------------------------------------------------------------------
# Annotation matching
# ---------------------------------------------------------------------------

def _mro_distance(arg_type: type, target: type) -> Optional[int]:
    try:
        mro = inspect.getmro(arg_type)
    except AttributeError:
        return None
    for i, klass in enumerate(mro):
        if klass is target:
            return i
    # Virtual subclasses (ABCs) have no MRO entry
    try:
        if issubclass(arg_type, target):
            return len(mro)
    except TypeError:
        pass
    return None


def annotation_cost(annotation: Any, desc: ArgumentDescriptor, exact: bool) -> Optional[int]:
    """Cost of passing `desc` to a parameter annotated `annotation`, or None if it can't be passed."""
    if annotation is inspect.Parameter.empty or annotation is Any:
        return _WILDCARD_COST

    origin = typing.get_origin(annotation)

    if origin is typing.Union or origin is types.UnionType:
        costs = [annotation_cost(a, desc, exact) for a in typing.get_args(annotation)]
        costs = [c for c in costs if c is not None]
        return min(costs) if costs else None

    if annotation is Ref or origin is Ref:
        if not desc.is_by_reference:
            return None
        inner = typing.get_args(annotation)
        if not inner:
            return _WILDCARD_COST
        return _type_cost(inner[0], desc.base_type, desc.value, exact)

    if desc.is_by_reference:
        return None
    return _type_cost(annotation, desc.type, desc.value, exact)


def _type_cost(annotation: Any, arg_type: type, value: Any, exact: bool) -> Optional[int]:
    if annotation is Any:
        return _WILDCARD_COST
    if value is None:
        # An absent value only fits parameters that admit it
        if annotation is object or annotation is None or annotation is type(None):
            return 0
        origin = typing.get_origin(annotation)
        if origin is typing.Union or origin is types.UnionType:
            if type(None) in typing.get_args(annotation):
                return 0
        return None
    if isinstance(annotation, str):
        # Unresolved forward reference: compare by class name
        return 0 if annotation == arg_type.__name__ else None
    if typing.get_origin(annotation) is not None:
        annotation = typing.get_origin(annotation)
    if not isinstance(annotation, type):
        return None
    if exact:
        return 0 if arg_type is annotation else None
    return _mro_distance(arg_type, annotation)


def _resolved_parameters(func) -> Optional[Tuple[List[inspect.Parameter], Optional[inspect.Parameter]]]:
    """Positional parameters (with resolved annotations) and the *args parameter, or None if unusable."""
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return None
    try:
        hints = typing.get_type_hints(func)
    except Exception:
        hints = {}
    positional = []
    var_positional = None
    for p in sig.parameters.values():
        if p.name in hints:
            p = p.replace(annotation=hints[p.name])
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional.append(p)
        elif p.kind == inspect.Parameter.VAR_POSITIONAL:
            var_positional = p
        elif p.kind == inspect.Parameter.KEYWORD_ONLY and p.default is inspect.Parameter.empty:
            # A required keyword-only parameter can never be satisfied positionally
            return None
    return positional, var_positional


def match_signature(func, descriptors: Sequence[ArgumentDescriptor], *,
                    exact: bool = False, optional: bool = False,
                    skip: int = 0) -> Optional[int]:
    """
    Score how well `descriptors` fit the positional parameters of `func`.

    Returns the total cost (lower is a better match) or None when the
    arguments cannot be passed. `skip` drops leading parameters the caller
    fills itself (the receiver of an unbound function, a dispatch argument).
    """
    resolved = _resolved_parameters(func)
    if resolved is None:
        return None
    positional, var_positional = resolved
    if skip:
        if len(positional) < skip:
            return None
        positional = positional[skip:]

    n = len(descriptors)
    required = sum(1 for p in positional if p.default is inspect.Parameter.empty)
    if n < len(positional):
        if not optional or n < required:
            return None
    elif n > len(positional) and var_positional is None:
        return None

    total = 0
    for i, desc in enumerate(descriptors):
        param = positional[i] if i < len(positional) else var_positional
        cost = annotation_cost(param.annotation, desc, exact)
        if cost is None:
            return None
        total += cost
    return total


def dispatch_cost(dispatch_type: type, desc: ArgumentDescriptor, exact: bool) -> Optional[int]:
    """Cost of sending `desc` to a single-dispatch overload registered for `dispatch_type`."""
    if desc.is_by_reference:
        return None
    return _type_cost(dispatch_type, desc.type, desc.value, exact)


def check_value(value: Any, expected: Any) -> bool:
    """Runtime check behind every typed read: does `value` fit `expected`?"""
    if expected is object or expected is Any or expected is inspect.Parameter.empty:
        return True
    if expected is None or expected is type(None):
        return value is None
    origin = typing.get_origin(expected)
    if origin is typing.Union or origin is types.UnionType:
        return any(check_value(value, a) for a in typing.get_args(expected))
    if origin is typing.Literal:
        return value in typing.get_args(expected)
    if origin is not None:
        expected = origin
    if isinstance(expected, type):
        return isinstance(value, expected)
    if isinstance(expected, str):
        return type(value).__name__ == expected
    return False


__all__ = [
    "Ref",
    "ArgumentDescriptor",
    "call_values",
    "write_back_all",
    "signature_key",
    "signature_types",
    "type_label",
    "annotation_cost",
    "match_signature",
    "dispatch_cost",
    "check_value",
]
