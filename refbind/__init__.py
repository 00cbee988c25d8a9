from refbind.refbind_options import BindingFlags, BindingOptions
from refbind.refbind_params import ArgumentDescriptor, Ref
from refbind.refbind_errors import (
    BindingError, ConfigurationError, InvalidOperationError, MemberNotFoundError, TypeMismatchError,
)
from refbind.refbind_cache import DEFAULT_CACHE, MemberCache
from refbind.refbind_search import MemberSearch
from refbind.refbind_accessors import (
    AccessorFactory, FieldAccessor, IndexerAccessor, MethodAccessor, PropertyAccessor,
)
from refbind.refbind_binder import TypeBinder
from refbind.refbind_profiles import BUILTIN_PROFILES, dump_profiles, load_profiles, load_profiles_file

__version__ = "0.1.0"

__all__ = [
    "BindingFlags",
    "BindingOptions",
    "ArgumentDescriptor",
    "Ref",
    "BindingError",
    "ConfigurationError",
    "InvalidOperationError",
    "MemberNotFoundError",
    "TypeMismatchError",
    "MemberCache",
    "DEFAULT_CACHE",
    "MemberSearch",
    "AccessorFactory",
    "FieldAccessor",
    "PropertyAccessor",
    "IndexerAccessor",
    "MethodAccessor",
    "TypeBinder",
    "BUILTIN_PROFILES",
    "load_profiles",
    "load_profiles_file",
    "dump_profiles",
]
