import pytest

from refbind import BindingFlags, BindingOptions, ConfigurationError, TypeBinder, AccessorFactory
from refbind.refbind_options import USAGE_FLAGS, flag_from_name


def test_default_options_are_empty():
    opts = BindingOptions()
    assert opts.flags == BindingFlags.DEFAULT
    assert opts.has_default
    assert opts.bound_type is None
    assert opts.bound_instance is None
    assert not opts.has_public
    assert not opts.has_instance


def test_constructor_with_flags_type_and_instance():
    obj = object()
    opts = BindingOptions(BindingFlags.PUBLIC | BindingFlags.INSTANCE, object, obj)
    assert opts.has_public
    assert opts.has_instance
    assert opts.bound_type is object
    assert opts.bound_instance is obj


def test_instance_without_instance_flag_is_rejected():
    with pytest.raises(ConfigurationError):
        BindingOptions(BindingFlags.PUBLIC, object, object())


def test_fluent_setters_return_new_values():
    base = BindingOptions()
    pub = base.public
    assert base.flags == BindingFlags.DEFAULT
    assert pub.flags == BindingFlags.PUBLIC
    both = pub.non_public
    assert both.has_public and both.has_non_public
    assert not pub.has_non_public


def test_default_is_replaced_not_combined():
    # Adding a flag to DEFAULT yields exactly that flag
    assert BindingOptions().static.flags == BindingFlags.STATIC
    # Adding DEFAULT to something leaves it unchanged
    assert BindingOptions().public.default.flags == BindingFlags.PUBLIC


def test_options_are_immutable():
    opts = BindingOptions().public
    with pytest.raises(AttributeError):
        opts.extra = 1
    with pytest.raises(AttributeError):
        opts._flags = BindingFlags.STATIC


def test_flags_off_clears_flags_and_keeps_the_rest():
    opts = BindingOptions().public.non_public.static
    off = opts.flags_off(BindingFlags.NON_PUBLIC)
    assert off.has_public
    assert off.has_static
    assert not off.has_non_public


def test_flags_off_instance_drops_the_bound_instance():
    obj = object()
    opts = BindingOptions().public.set_instance(obj)
    off = opts.flags_off(BindingFlags.INSTANCE)
    assert not off.has_instance
    assert off.bound_instance is None


def test_set_instance_keeps_static():
    obj = object()
    opts = BindingOptions().public.static.set_instance(obj)
    assert opts.has_static
    assert opts.has_instance
    assert opts.bound_instance is obj


def test_to_static_from_instance():
    obj = object()
    opts = BindingOptions().public.non_public.set_instance(obj).to_static()
    assert opts.has_static
    assert not opts.has_instance
    assert opts.bound_instance is None
    assert opts.has_public and opts.has_non_public


def test_to_static_from_static_is_unchanged():
    opts = BindingOptions().public.static
    assert opts.to_static() == opts


def test_to_instance_from_static():
    obj = object()
    opts = BindingOptions().public.non_public.static.to_instance(obj)
    assert opts.has_instance
    assert not opts.has_static
    assert opts.bound_instance is obj
    assert opts.has_public and opts.has_non_public


def test_to_instance_replaces_previous_instance():
    first, second = object(), object()
    opts = BindingOptions().public.set_instance(first).to_instance(second)
    assert opts.bound_instance is second


@pytest.mark.parametrize("start", [
    BindingOptions().public,
    BindingOptions().public.static,
    BindingOptions().public.instance,
    BindingOptions().public.static.set_instance(object()),
])
def test_static_and_instance_are_mutually_exclusive_after_switching(start):
    s = start.to_static()
    assert s.has_static and not s.has_instance
    i = start.to_instance(object())
    assert i.has_instance and not i.has_static


def test_equality_uses_instance_identity():
    obj = object()
    via_static = TypeBinder(object).bind().public.non_public.static.to_instance(obj)
    direct = TypeBinder(object).bind().public.non_public.set_instance(obj)
    assert via_static == direct
    assert hash(via_static) == hash(direct)

    # Equal-valued but distinct instances do not compare equal
    a = BindingOptions().public.set_instance([1])
    b = BindingOptions().public.set_instance([1])
    assert a != b


def test_equality_uses_type_identity():
    assert BindingOptions(BindingFlags.PUBLIC, int) != BindingOptions(BindingFlags.PUBLIC, str)
    assert BindingOptions(BindingFlags.PUBLIC, int) == BindingOptions(BindingFlags.PUBLIC, int)


@pytest.mark.parametrize("first,second", [
    ("public", "non_public"),
    ("static", "flatten_hierarchy"),
    ("ignore_case", "declared_only"),
    ("instance", "exact_binding"),
    ("get_field", "ignore_return"),
])
def test_flag_order_does_not_matter(first, second):
    base = BindingOptions(bound_type=object)
    ab = getattr(getattr(base, first), second)
    ba = getattr(getattr(base, second), first)
    assert ab == ba


def test_generate_accessor_without_type_fails():
    with pytest.raises(ConfigurationError):
        BindingOptions().public.static.generate_accessor()


def test_generate_accessor_carries_type_and_options():
    opts = TypeBinder(object).bind().public.non_public
    acc = opts.generate_accessor()
    assert isinstance(acc, AccessorFactory)
    assert acc.bound_type is object
    assert acc.options == opts


def test_allows_usage():
    assert BindingOptions().public.allows_usage(BindingFlags.SET_FIELD)
    opts = BindingOptions().public.get_field
    assert opts.allows_usage(BindingFlags.GET_FIELD)
    assert not opts.allows_usage(BindingFlags.SET_FIELD)
    assert USAGE_FLAGS & BindingFlags.INVOKE_METHOD


@pytest.mark.parametrize("name", ["non_public", "NON_PUBLIC", "non-public", " non_public "])
def test_flag_from_name_spellings(name):
    assert flag_from_name(name) is BindingFlags.NON_PUBLIC


def test_flag_from_name_unknown():
    with pytest.raises(ConfigurationError, match="Unknown binding flag"):
        flag_from_name("protected")


def test_names_round_trip():
    opts = BindingOptions().public.static.flatten_hierarchy
    assert opts.flag_names() == ["static", "public", "flatten_hierarchy"]
    assert BindingOptions.from_names(opts.flag_names()) == opts
    assert BindingOptions.from_names(["public"], bound_type=int).bound_type is int


def test_repr_mentions_flags_and_type():
    text = repr(BindingOptions(BindingFlags.PUBLIC, int))
    assert "public" in text
    assert "int" in text
    assert "default" in repr(BindingOptions())
