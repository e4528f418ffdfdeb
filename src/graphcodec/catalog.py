"""Type catalog: registration, naming, members and construction.

The codec never introspects arbitrary classes on its own. Every structural
type it writes or reads is registered with a TypeCatalog, which knows:

- the wire name of the type (namespace and local name)
- the ordered list of serialized members, each optional or required
- which construction strategy the type uses (field bag or self-describing)
- how to allocate an empty instance and fill it afterwards, or how to build
  an immutable instance once its fields are known

Members are derived once per type, on first use, from an explicit ``fields=``
list, from dataclass fields, or from pydantic ``model_fields``.

Example:
    >>> from dataclasses import dataclass
    >>> from graphcodec import register
    >>>
    >>> @register
    ... @dataclass
    ... class Point:
    ...     x: int
    ...     y: int
    ...     label: str = ""
    >>>
    >>> [(m.name, m.optional) for m in default_catalog.members_of(Point)]
    [('x', False), ('y', False), ('label', True)]
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import threading
import types
import typing
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional, Protocol, Union, runtime_checkable

from pydantic import BaseModel
from pydantic_core import PydanticUndefined

from .arrays import Array
from .codec.tags import is_pod_type
from .exceptions import MissingFieldError, SchemaError, UnresolvableTypeError
from .models.scalars import INTEGER_TYPES, Char, FixedInt, Float32, Int32

logger = logging.getLogger(__name__)

MISSING: Any = dataclasses.MISSING

# Modules whose names are replaced on the wire by a short alias, in this order
BUILTIN_KNOWN_MODULES = (
    "builtins",
    "datetime",
    "decimal",
    "graphcodec.arrays",
    "graphcodec.models.scalars",
)


class Strategy(enum.Enum):
    """How an object's fields are produced and consumed."""

    FIELD_ENUMERABLE = "field_enumerable"
    SELF_DESCRIBING = "self_describing"


@runtime_checkable
class SelfDescribing(Protocol):
    """Protocol for classes that supply and consume their own field bag.

    ``get_fields`` returns ordered (name, value) pairs. ``set_fields`` is
    called on an already-allocated, empty instance once every field has been
    read, so values may refer back to the instance itself.
    """

    def get_fields(self, context: Any) -> Iterable[tuple[str, Any]]: ...

    def set_fields(self, fields: Mapping[str, Any], context: Any) -> None: ...


@dataclass(frozen=True)
class MemberSpec:
    """One serialized member of a field-enumerable type.

    Attributes:
        name: Member name used on the wire
        optional: Whether a stream may omit the member
        nullable: Whether the value is written as a present/absent nullable
        default: Value used when an optional member is absent
        default_factory: Callable producing the default (takes precedence)
        attribute: Python attribute name, if different from name
    """

    name: str
    optional: bool = False
    nullable: bool = False
    default: Any = None
    default_factory: Optional[Callable[[], Any]] = None
    attribute: Optional[str] = None

    def get(self, instance: Any) -> Any:
        return getattr(instance, self.attribute or self.name)

    def set(self, instance: Any, value: Any) -> None:
        object.__setattr__(instance, self.attribute or self.name, value)

    def default_value(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


@dataclass
class TypeInfo:
    """Registration record of a single type."""

    cls: type
    namespace: str
    name: str
    strategy: Strategy
    value_type: bool = False
    underlying: Optional[type[FixedInt]] = None
    declared_fields: Optional[tuple[Union[str, MemberSpec], ...]] = None
    optional: frozenset[str] = frozenset()
    nullable: frozenset[str] = frozenset()
    collect: Optional[Callable[[Any, Any], Iterable[tuple[str, Any]]]] = None
    restore: Optional[Callable[[Any, Mapping[str, Any], Any], None]] = None
    allocator: Optional[Callable[[type], Any]] = None
    constructor: Optional[Callable[[type, Mapping[str, Any], Any], Any]] = None
    members: Optional[tuple[MemberSpec, ...]] = field(default=None, repr=False)

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}"


def _require(fields: Mapping[str, Any], name: str, type_name: str) -> Any:
    try:
        return fields[name]
    except KeyError:
        raise MissingFieldError(type_name, name) from None


def _dict_fields(obj: dict, context: Any) -> list[tuple[str, Any]]:
    return [("keys", list(obj.keys())), ("values", list(obj.values()))]


def _dict_restore(obj: dict, fields: Mapping[str, Any], context: Any) -> None:
    keys = _require(fields, "keys", "builtins.dict")
    values = _require(fields, "values", "builtins.dict")
    obj.update(zip(keys, values))


def _items_fields(obj: Any, context: Any) -> list[tuple[str, Any]]:
    return [("items", list(obj))]


def _set_restore(obj: set, fields: Mapping[str, Any], context: Any) -> None:
    obj.update(_require(fields, "items", "builtins.set"))


def _from_items(cls: type, fields: Mapping[str, Any], context: Any) -> Any:
    return cls(_require(fields, "items", f"builtins.{cls.__name__}"))


def _empty(cls: type) -> Any:
    return cls()


def _allocate_model(cls: type[BaseModel]) -> BaseModel:
    # Same slots model_construct() fills, left empty until populate()
    obj = cls.__new__(cls)
    object.__setattr__(obj, "__dict__", {})
    object.__setattr__(obj, "__pydantic_fields_set__", set())
    object.__setattr__(obj, "__pydantic_extra__", None)
    object.__setattr__(obj, "__pydantic_private__", None)
    return obj


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError, AttributeError):
        # Unresolvable forward references; nullability must then be explicit
        return {}


def _is_nullable_value(annotation: Any) -> bool:
    """True for Optional[X] where X is a scalar (other than str) or an enum."""
    origin = typing.get_origin(annotation)
    if origin is not Union and origin is not types.UnionType:
        return False
    args = typing.get_args(annotation)
    if type(None) not in args:
        return False
    non_none = [arg for arg in args if arg is not type(None)]
    if len(non_none) != 1:
        return False
    inner = non_none[0]
    if not isinstance(inner, type):
        return False
    if issubclass(inner, enum.Enum):
        return True
    return is_pod_type(inner) and inner is not str


class TypeCatalog:
    """Registry mapping classes to wire names, members and constructors.

    A catalog is safe to share between threads: registrations and the lazy
    member derivation are serialized by a lock, and entries are never removed.
    """

    def __init__(self, include_builtins: bool = True) -> None:
        """Initialize a catalog.

        Args:
            include_builtins: Pre-register the built-in types (object, list,
                dict, set, tuple, frozenset, bytes, Array, scalar types) and
                known modules
        """
        self._lock = threading.RLock()
        self._by_type: dict[type, TypeInfo] = {}
        self._by_name: dict[tuple[str, str], type] = {}
        self._aliases: dict[str, str] = {}
        self._modules: dict[str, str] = {}
        if include_builtins:
            self._register_builtins()

    def _register_builtins(self) -> None:
        for module in BUILTIN_KNOWN_MODULES:
            self.register_known(module)

        for cls in (object, list, bytes, str, bool, float, datetime, timedelta, Decimal, Array):
            self.register(cls, fields=())
        for cls in (*INTEGER_TYPES, Float32, Char):
            self.register(cls, fields=())

        self.register(dict, get_fields=_dict_fields, set_fields=_dict_restore, allocate=_empty)
        self.register(set, get_fields=_items_fields, set_fields=_set_restore, allocate=_empty)
        self.register(tuple, get_fields=_items_fields, construct=_from_items)
        self.register(frozenset, get_fields=_items_fields, construct=_from_items)

    def register_known(self, module: Union[str, types.ModuleType]) -> str:
        """Give a module a short alias used on the wire instead of its name.

        Aliases are assigned in registration order ("`1", "`2", ...), so every
        process must register additional modules in the same order.

        Args:
            module: Module or module name

        Returns:
            The alias (existing alias if already known)
        """
        name = module if isinstance(module, str) else module.__name__
        with self._lock:
            alias = self._aliases.get(name)
            if alias is None:
                alias = f"`{len(self._aliases) + 1:x}"
                self._aliases[name] = alias
                self._modules[alias] = name
            return alias

    def register(
        self,
        cls: Optional[type] = None,
        *,
        name: Optional[str] = None,
        namespace: Optional[str] = None,
        fields: Optional[Iterable[Union[str, MemberSpec]]] = None,
        optional: Iterable[str] = (),
        nullable: Iterable[str] = (),
        value_type: bool = False,
        underlying: Optional[type[FixedInt]] = None,
        get_fields: Optional[Callable[[Any, Any], Iterable[tuple[str, Any]]]] = None,
        set_fields: Optional[Callable[[Any, Mapping[str, Any], Any], None]] = None,
        allocate: Optional[Callable[[type], Any]] = None,
        construct: Optional[Callable[[type, Mapping[str, Any], Any], Any]] = None,
    ) -> Any:
        """Register a class for serialization.

        Can be used as a plain call, as ``@catalog.register`` or as
        ``@catalog.register(...)`` with options.

        Args:
            cls: Class to register
            name: Local wire name (default: ``cls.__qualname__``)
            namespace: Wire namespace (default: ``cls.__module__``)
            fields: Explicit ordered members (names or MemberSpec)
            optional: Names of members a stream may omit
            nullable: Names of members written as present/absent nullables
            value_type: Always write instances by value, never as references
            underlying: Integer width of an enum's values (default Int32)
            get_fields: Adapter producing (name, value) pairs for an instance
            set_fields: Adapter filling an allocated instance from a field bag
            allocate: Callable creating an empty instance (default ``cls.__new__``)
            construct: Callable building a finished instance from its class, field
                bag and context. Used with get_fields instead of set_fields for
                immutable types, which cannot be allocated first and filled later.

        Returns:
            cls, or a decorator when cls is omitted

        Raises:
            SchemaError: If the registration is invalid or the name is taken
        """
        if cls is None:

            def decorator(target: type) -> type:
                return self.register(
                    target,
                    name=name,
                    namespace=namespace,
                    fields=fields,
                    optional=optional,
                    nullable=nullable,
                    value_type=value_type,
                    underlying=underlying,
                    get_fields=get_fields,
                    set_fields=set_fields,
                    allocate=allocate,
                    construct=construct,
                )

            return decorator

        if not isinstance(cls, type):
            raise SchemaError(f"Only classes can be registered, got {cls!r}")

        if issubclass(cls, enum.Enum):
            underlying = underlying or Int32
            if not (isinstance(underlying, type) and issubclass(underlying, FixedInt)):
                raise SchemaError(
                    f"Enum {cls.__qualname__}: underlying must be a fixed-width integer type"
                )
        elif underlying is not None:
            raise SchemaError(f"{cls.__qualname__}: underlying only applies to enums")

        if construct is not None:
            if get_fields is None or set_fields is not None or allocate is not None:
                raise SchemaError(
                    f"{cls.__qualname__}: construct requires get_fields and replaces"
                    " set_fields and allocate"
                )
        elif (get_fields is None) != (set_fields is None):
            raise SchemaError(
                f"{cls.__qualname__}: get_fields and set_fields must be given together"
            )

        collect = get_fields
        restore = set_fields
        strategy = Strategy.FIELD_ENUMERABLE
        if collect is not None:
            strategy = Strategy.SELF_DESCRIBING
        elif callable(getattr(cls, "get_fields", None)) and callable(
            getattr(cls, "set_fields", None)
        ):
            strategy = Strategy.SELF_DESCRIBING
            collect = lambda obj, context: obj.get_fields(context)  # noqa: E731
            restore = lambda obj, bag, context: obj.set_fields(bag, context)  # noqa: E731

        if allocate is None and issubclass(cls, BaseModel):
            allocate = _allocate_model

        info = TypeInfo(
            cls=cls,
            namespace=namespace or cls.__module__,
            name=name or cls.__qualname__,
            strategy=strategy,
            value_type=value_type,
            underlying=underlying,
            declared_fields=tuple(fields) if fields is not None else None,
            optional=frozenset(optional),
            nullable=frozenset(nullable),
            collect=collect,
            restore=restore,
            allocator=allocate,
            constructor=construct,
        )

        key = (info.namespace, info.name)
        with self._lock:
            existing = self._by_name.get(key)
            if existing is not None and existing is not cls:
                raise SchemaError(
                    f"Name {info.qualified_name} is already registered for {existing!r}"
                )
            previous = self._by_type.get(cls)
            if previous is not None:
                self._by_name.pop((previous.namespace, previous.name), None)
            self._by_type[cls] = info
            self._by_name[key] = cls

        logger.debug("Registered %r as %s (%s)", cls, info.qualified_name, strategy.value)
        return cls

    def is_registered(self, cls: type) -> bool:
        return cls in self._by_type

    def info(self, cls: type) -> TypeInfo:
        """Return the registration record of cls.

        Raises:
            SchemaError: If cls is not registered
        """
        try:
            return self._by_type[cls]
        except KeyError:
            raise SchemaError(f"Type {cls.__module__}.{cls.__qualname__} is not registered") from None

    def name_of(self, cls: type) -> tuple[str, str]:
        """Return the (namespace, local name) written for cls.

        Known modules are replaced by their short alias.
        """
        info = self.info(cls)
        return self._aliases.get(info.namespace, info.namespace), info.name

    def resolve(self, namespace: str, name: str) -> type:
        """Map a wire (namespace, local name) back to a class.

        Raises:
            UnresolvableTypeError: If no registered class has that name
        """
        module = self._modules.get(namespace, namespace)
        cls = self._by_name.get((module, name))
        if cls is None:
            raise UnresolvableTypeError(namespace, name)
        return cls

    def is_self_describing(self, cls: type) -> bool:
        return self.info(cls).strategy is Strategy.SELF_DESCRIBING

    def is_constructed(self, cls: type) -> bool:
        """True if instances are built from their fields instead of allocated first."""
        return self.info(cls).constructor is not None

    def is_value_type(self, cls: type) -> bool:
        info = self._by_type.get(cls)
        return info is not None and info.value_type

    def underlying_of(self, enum_cls: type) -> type[FixedInt]:
        """Return the integer type an enum's values are written as.

        Raises:
            SchemaError: If enum_cls is not a registered enum
        """
        info = self.info(enum_cls)
        if info.underlying is None:
            raise SchemaError(f"{info.qualified_name} is not an enum")
        return info.underlying

    def members_of(self, cls: type) -> tuple[MemberSpec, ...]:
        """Return the ordered serialized members of cls.

        Derived on first use and cached for the lifetime of the catalog.

        Raises:
            SchemaError: If members cannot be derived
        """
        info = self.info(cls)
        members = info.members
        if members is not None:
            return members
        with self._lock:
            if info.members is None:
                info.members = self._derive_members(info)
                logger.debug(
                    "Derived %d members for %s", len(info.members), info.qualified_name
                )
            return info.members

    def _derive_members(self, info: TypeInfo) -> tuple[MemberSpec, ...]:
        cls = info.cls
        if info.strategy is Strategy.SELF_DESCRIBING or issubclass(cls, enum.Enum):
            return ()

        if info.declared_fields is not None:
            members = []
            for declared in info.declared_fields:
                if isinstance(declared, MemberSpec):
                    members.append(declared)
                else:
                    members.append(
                        MemberSpec(
                            name=declared,
                            optional=declared in info.optional,
                            nullable=declared in info.nullable,
                        )
                    )
            return tuple(members)

        if dataclasses.is_dataclass(cls):
            hints = _type_hints(cls)
            members = []
            for dc_field in dataclasses.fields(cls):
                if dc_field.metadata.get("transient"):
                    continue
                has_default = (
                    dc_field.default is not MISSING or dc_field.default_factory is not MISSING
                )
                members.append(
                    MemberSpec(
                        name=dc_field.name,
                        optional=has_default or dc_field.name in info.optional,
                        nullable=dc_field.name in info.nullable
                        or _is_nullable_value(hints.get(dc_field.name)),
                        default=None if dc_field.default is MISSING else dc_field.default,
                        default_factory=(
                            None
                            if dc_field.default_factory is MISSING
                            else dc_field.default_factory
                        ),
                    )
                )
            return tuple(members)

        if issubclass(cls, BaseModel):
            members = []
            for field_name, field_info in cls.model_fields.items():
                if field_info.exclude:
                    continue
                default = field_info.default
                members.append(
                    MemberSpec(
                        name=field_name,
                        optional=not field_info.is_required() or field_name in info.optional,
                        nullable=field_name in info.nullable
                        or _is_nullable_value(field_info.annotation),
                        default=None if default is PydanticUndefined else default,
                        default_factory=field_info.default_factory,  # type: ignore[arg-type]
                    )
                )
            return tuple(members)

        raise SchemaError(
            f"Cannot derive members of {info.qualified_name}: "
            f"use a dataclass, a pydantic model, or register it with fields="
        )

    def collect_fields(self, obj: Any, context: Any = None) -> list[tuple[str, Any]]:
        """Return the field bag of a self-describing instance."""
        info = self.info(type(obj))
        if info.collect is None:
            raise SchemaError(f"{info.qualified_name} is not self-describing")
        return list(info.collect(obj, context))

    def restore_fields(self, obj: Any, fields: Mapping[str, Any], context: Any = None) -> None:
        """Fill an allocated self-describing instance from its field bag."""
        info = self.info(type(obj))
        if info.restore is None:
            raise SchemaError(f"{info.qualified_name} is not self-describing")
        info.restore(obj, fields, context)

    def construct(self, cls: type, fields: Mapping[str, Any], context: Any = None) -> Any:
        """Build a finished instance of a constructed type from its field bag."""
        info = self.info(cls)
        if info.constructor is None:
            raise SchemaError(f"{info.qualified_name} is not built from its fields")
        return info.constructor(cls, fields, context)

    def allocate(self, cls: type) -> Any:
        """Create an instance of cls without running its constructor."""
        info = self.info(cls)
        if info.allocator is not None:
            return info.allocator(cls)
        return cls.__new__(cls)

    def populate(self, obj: Any, values: Mapping[str, Any]) -> None:
        """Assign member values to an allocated instance.

        Members missing from values receive their declared default.
        """
        members = self.members_of(type(obj))
        if isinstance(obj, BaseModel):
            data = obj.__dict__
            for member in members:
                if member.name in values:
                    data[member.name] = values[member.name]
                else:
                    data[member.name] = member.default_value()
            for field_name, field_info in type(obj).model_fields.items():
                if field_name not in data and not field_info.is_required():
                    data[field_name] = field_info.get_default(call_default_factory=True)
            fields_set = {member.name for member in members if member.name in values}
            object.__setattr__(obj, "__pydantic_fields_set__", fields_set)
            return

        for member in members:
            if member.name in values:
                member.set(obj, values[member.name])
            else:
                member.set(obj, member.default_value())

        if dataclasses.is_dataclass(obj):
            # Transient fields are never on the wire; give them their defaults
            for dc_field in dataclasses.fields(obj):
                if not dc_field.metadata.get("transient"):
                    continue
                if dc_field.default_factory is not MISSING:
                    object.__setattr__(obj, dc_field.name, dc_field.default_factory())
                elif dc_field.default is not MISSING:
                    object.__setattr__(obj, dc_field.name, dc_field.default)


default_catalog = TypeCatalog()


def register(cls: Optional[type] = None, **options: Any) -> Any:
    """Register a class with the process-wide default catalog.

    See TypeCatalog.register() for the options.
    """
    return default_catalog.register(cls, **options)
