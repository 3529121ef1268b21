"""Reflective conversion between object graphs and value trees."""

import dataclasses
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .type_mapper import (
    TypeMapper,
    is_any,
    is_namedtuple,
    is_scalar_type,
    origin_class,
    type_hints,
    unwrap_optional,
)
from .type_registry import TypeRegistry, default_registry, is_type_identifier
from .types import ConstructionError, ConversionError, MemberLookupError
from .values import NULL, NameValue, ObjectValue, StringValue, Value


_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class ReflectiveConverter:
    """
    Turns object graphs into value trees and back using Python introspection.

    Serialization walks public instance fields, falling back to public
    properties, and wraps a composite in a single-pair envelope named after
    its class whenever the actual class differs from the declared one.
    Deserialization unwraps envelopes and binds constructor parameters to
    object pairs by name, falling back to a parameterless constructor plus
    member assignment.
    """

    def __init__(self, registry: Optional[TypeRegistry] = None,
                 ignore_case: bool = True,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the converter.

        Args:
            registry: Type registry for envelope identifiers (process default if None)
            ignore_case: Bind constructor parameters to pair names case-insensitively
            logger: Optional logger instance
        """
        self.registry = registry or default_registry()
        self.ignore_case = ignore_case
        self.logger = logger or logging.getLogger(__name__)
        self.mapper = TypeMapper(self, self.logger)

    def to_value(self, obj: Any, declared_type: Any = None) -> Value:
        """
        Map an object graph to a value tree.

        Args:
            obj: Root object
            declared_type: Static type of ``obj``; its own class when None

        Returns:
            Root value
        """
        if declared_type is None:
            declared_type = type(obj)
        return self.mapper.to_value(obj, declared_type)

    def from_value(self, value: Value, result_type: Any = Any) -> Any:
        """Convert a value tree into an instance of ``result_type``."""
        return self.mapper.convert(value, result_type)

    # -- object -> Value ----------------------------------------------------

    def composite_to_value(self, obj: Any, declared_type: Any) -> Value:
        actual = type(obj)
        declared = origin_class(unwrap_optional(declared_type)[0])

        if isinstance(declared, type) and not is_any(declared) and not issubclass(actual, declared):
            raise ConversionError(f"{actual.__name__} is not a {declared.__name__}", obj, declared)

        members = self.members(obj)
        if not members:
            return NULL

        body = ObjectValue(tuple(
            NameValue(StringValue.from_text(name), self.mapper.to_value(member, member_type))
            for name, member_type, member in members
        ))

        if declared is actual:
            return body

        identifier = self.registry.identify(actual)
        self.logger.debug(f"Wrapping {actual.__name__} declared as {declared!r} in a type envelope")
        return ObjectValue((NameValue(StringValue.from_text(identifier), body),))

    def members(self, obj: Any) -> List[Tuple[str, Any, Any]]:
        """
        Public members of ``obj`` as ``(name, declared type, value)``.

        Instance fields win; properties are used only when there are none.
        Field types come from constructor and class annotations.
        """
        cls = type(obj)
        hints = constructor_hints(cls)

        fields = public_fields(obj)
        if fields:
            return [(name, hints.get(name, Any), getattr(obj, name)) for name in fields]

        return [(name, type_hints(prop.fget).get("return", Any), getattr(obj, name))
                for name, prop in public_properties(cls)]

    # -- Value -> object ----------------------------------------------------

    def object_to_composite(self, value: ObjectValue, base_type: Any) -> Any:
        """
        Build an instance from object pairs.

        Raises:
            ConstructionError: If neither a constructor nor member assignment fits
            ConversionError: If an envelope names a class outside ``base_type``
        """
        base = origin_class(base_type)
        target, pairs = self._unwrap_envelope(value)

        if target is None:
            if is_any(base):
                return {pair.name.text: self.mapper.convert(pair.value, Any) for pair in pairs}
            target = base

        if not isinstance(target, type) or is_scalar_type(target):
            raise ConversionError(f"Object >> {target!r}", value, target)

        if isinstance(base, type) and not is_any(base) and not issubclass(target, base):
            raise ConversionError(f"{target.__name__} is not a {base.__name__}", value, base)

        return self.construct(target, pairs)

    def _unwrap_envelope(self, value: ObjectValue) -> Tuple[Optional[type], ObjectValue]:
        if len(value) == 1:
            pair = value.pairs[0]
            if isinstance(pair.value, ObjectValue):
                name = pair.name.text
                if is_type_identifier(name):
                    return self.registry.resolve(name), pair.value
        return None, value

    def construct(self, cls: type, pairs: ObjectValue) -> Any:
        names = pairs.names()
        candidates = constructor_candidates(cls)
        hints = constructor_hints(cls)
        unbound: List[str] = []

        for factory, parameters in candidates:
            if len(parameters) != len(pairs):
                continue
            try:
                args, kwargs = self._bind(parameters, hints, pairs)
            except MemberLookupError as e:
                self.logger.debug(f"{cls.__name__} constructor skipped, no pair for '{e.name}'")
                unbound.append(e.name)
                continue
            return self._invoke(cls, factory, args, kwargs)

        parameterless = [factory for factory, parameters in candidates if not parameters]
        if len(parameterless) == 1:
            instance = self._invoke(cls, parameterless[0], [], {})
            for pair in pairs:
                self._assign(instance, pair)
            return instance

        raise ConstructionError(
            f"No constructor {cls.__name__}({', '.join(names)}) could be found",
            cls, unbound or names,
        )

    def parameterless_constructor(self, cls: type) -> Optional[Callable[[], Any]]:
        for factory, parameters in constructor_candidates(cls):
            if not parameters:
                return factory
        return None

    def _bind(self, parameters: Sequence[inspect.Parameter], hints: Dict[str, Any],
              pairs: ObjectValue) -> Tuple[list, dict]:
        args, kwargs = [], {}
        for parameter in parameters:
            raw = pairs.get(parameter.name, ignore_case=self.ignore_case)
            converted = self.mapper.convert(raw, hints.get(parameter.name, Any))
            if parameter.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(converted)
            else:
                kwargs[parameter.name] = converted
        return args, kwargs

    def _invoke(self, cls: type, factory: Callable, args: list, kwargs: dict) -> Any:
        try:
            return factory(*args, **kwargs)
        except (TypeError, ValueError) as e:
            raise ConstructionError(f"Constructing {cls.__name__} failed: {e}",
                                    cls, list(kwargs)) from e

    def _assign(self, instance: Any, pair: NameValue) -> None:
        cls = type(instance)
        name = pair.name.text

        prop = find_property(cls, name)
        if prop is not None and prop.fset is not None:
            member_type = type_hints(prop.fget).get("return", Any) if prop.fget else Any
        elif prop is None and not name.startswith("_") and name in getattr(instance, "__dict__", {}):
            member_type = type_hints(cls).get(name, Any)
        else:
            raise ConstructionError(f"{cls.__name__}.{name} member not found", cls, [name])

        setattr(instance, name, self.mapper.convert(pair.value, member_type))


# ---------------------------------------------------------------------------
# Introspection helpers
# ---------------------------------------------------------------------------

def public_fields(obj: Any) -> List[str]:
    """Public instance field names in natural order."""
    cls = type(obj)

    if is_namedtuple(cls):
        return [name for name in cls._fields if not name.startswith("_")]
    if dataclasses.is_dataclass(obj):
        return [field.name for field in dataclasses.fields(obj) if not field.name.startswith("_")]

    names = [name for name in getattr(obj, "__dict__", {}) if not name.startswith("_")]
    for klass in reversed(cls.__mro__):
        slots = vars(klass).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        names.extend(slot for slot in slots
                     if not slot.startswith("_") and slot not in names and hasattr(obj, slot))
    return names


def public_properties(cls: type) -> List[Tuple[str, property]]:
    """Public properties, base classes first, overrides keeping the base position."""
    found: Dict[str, property] = {}
    for klass in reversed(cls.__mro__):
        for name, attr in vars(klass).items():
            if isinstance(attr, property) and not name.startswith("_"):
                found[name] = attr
    return list(found.items())


def find_property(cls: type, name: str) -> Optional[property]:
    for klass in cls.__mro__:
        attr = vars(klass).get(name)
        if attr is not None:
            return attr if isinstance(attr, property) else None
    return None


def constructor_candidates(cls: type) -> List[Tuple[Callable, List[inspect.Parameter]]]:
    """
    Constructors of ``cls`` with their bindable parameters.

    Python classes expose a single constructor, the class itself.
    """
    if cls.__init__ is object.__init__ and cls.__new__ is object.__new__:
        return [(cls, [])]

    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        return []

    parameters = [parameter for parameter in signature.parameters.values()
                  if parameter.kind not in _VARIADIC]
    return [(cls, parameters)]


def constructor_hints(cls: type) -> Dict[str, Any]:
    hints = dict(type_hints(cls.__init__)) if cls.__init__ is not object.__init__ else {}
    hints.pop("return", None)
    # Class annotations fill parameters the constructor leaves unannotated.
    for name, hint in type_hints(cls).items():
        if is_any(hints.get(name, Any)):
            hints[name] = hint
    return hints


_default_converter: Optional[ReflectiveConverter] = None


def default_converter() -> ReflectiveConverter:
    """Get the process-wide converter."""
    global _default_converter
    if _default_converter is None:
        _default_converter = ReflectiveConverter()
    return _default_converter
