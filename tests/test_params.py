from typing import Any, Optional, Union

import pytest

from refbind import ArgumentDescriptor, Ref
from refbind.refbind_params import (
    annotation_cost, call_values, check_value, match_signature, signature_key, signature_types,
    type_label, write_back_all,
)


class Animal:
    pass


class Dog(Animal):
    pass


def test_descriptor_type_follows_value():
    assert ArgumentDescriptor(5).type is int
    assert ArgumentDescriptor("a").type is str
    # An absent value resolves as object
    assert ArgumentDescriptor(None).type is object


def test_by_ref_descriptor_type():
    d = ArgumentDescriptor(5, by_ref=True)
    assert d.is_by_reference
    assert d.type == Ref[int]
    assert d.base_type is int
    assert type_label(d.type) == "Ref[int]"


def test_create_many_passes_descriptors_through():
    ref = ArgumentDescriptor(1, by_ref=True)
    out = ArgumentDescriptor.create_many(ref, "x", 2.0)
    assert out[0] is ref
    assert [d.type for d in out[1:]] == [str, float]


def test_call_values_and_write_back():
    ref = ArgumentDescriptor(1, by_ref=True)
    plain = ArgumentDescriptor(2)
    values = call_values([ref, plain])
    assert isinstance(values[0], Ref)
    assert values[1] == 2
    values[0].value = 42
    write_back_all([ref, plain], values)
    assert ref.value == 42
    assert plain.value == 2


def test_signature_key():
    descs = ArgumentDescriptor.create_many(1, "a", ArgumentDescriptor(0.5, by_ref=True))
    assert signature_key(descs) == "int,str,Ref[float]"
    assert signature_key([]) == ""


def test_user_class_labels_carry_their_module():
    assert type_label(Dog) == f"{Dog.__module__}.Dog"
    assert type_label(Ref[Dog]) == f"Ref[{Dog.__module__}.Dog]"


def test_signature_types_tell_same_named_classes_apart():
    first = type("Shape", (), {})
    second = type("Shape", (), {})
    a = ArgumentDescriptor.create_many(first())
    b = ArgumentDescriptor.create_many(second())
    assert signature_key(a) == signature_key(b)
    assert signature_types(a) != signature_types(b)
    mixed = ArgumentDescriptor.create_many(1, ArgumentDescriptor(0.5, by_ref=True))
    assert signature_types(mixed) == (int, Ref[float])


def test_annotation_cost_ranks_by_distance():
    dog = ArgumentDescriptor(Dog())
    assert annotation_cost(Dog, dog, False) == 0
    assert annotation_cost(Animal, dog, False) == 1
    assert annotation_cost(Animal, dog, True) is None
    assert annotation_cost(str, dog, False) is None


def test_annotation_cost_wildcards_lose_to_types():
    d = ArgumentDescriptor(3)
    assert annotation_cost(Any, d, False) > annotation_cost(object, d, False)


def test_annotation_cost_union_and_optional():
    assert annotation_cost(Union[int, str], ArgumentDescriptor("a"), True) == 0
    assert annotation_cost(Optional[int], ArgumentDescriptor(None), False) == 0
    assert annotation_cost(int, ArgumentDescriptor(None), False) is None


def test_annotation_cost_by_ref_needs_ref_parameter():
    ref = ArgumentDescriptor(3, by_ref=True)
    assert annotation_cost(Ref[int], ref, True) == 0
    assert annotation_cost(int, ref, False) is None
    assert annotation_cost(Ref[int], ArgumentDescriptor(3), False) is None


def test_match_signature_counts_and_skip():
    def f(self, a: int, b: str = "x"):
        pass

    two = ArgumentDescriptor.create_many(1, "y")
    one = ArgumentDescriptor.create_many(1)
    assert match_signature(f, two, skip=1) == 0
    # Defaults only count with optional binding
    assert match_signature(f, one, skip=1) is None
    assert match_signature(f, one, skip=1, optional=True) == 0
    assert match_signature(f, ArgumentDescriptor.create_many(1, "y", 3), skip=1) is None


def test_match_signature_varargs_and_keyword_only():
    def variadic(*items: int):
        pass

    def kw_only(a, *, flag):
        pass

    assert match_signature(variadic, ArgumentDescriptor.create_many(1, 2, 3)) == 0
    assert match_signature(kw_only, ArgumentDescriptor.create_many(1)) is None


@pytest.mark.parametrize("value,expected,ok", [
    (1, int, True),
    (True, int, True),
    ("a", int, False),
    (None, Optional[int], True),
    (None, int, False),
    (3, Union[str, int], True),
    ([1], list[int], True),
    ("x", object, True),
    ("x", Any, True),
])
def test_check_value(value, expected, ok):
    assert check_value(value, expected) is ok
