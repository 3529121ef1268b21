"""Registry mapping type identifier strings to classes."""

import importlib
import logging
import sys
import threading
from typing import Dict, List, Optional

from .types import ConversionError


# Substrings every type identifier carries. Only their presence is checked,
# not the full identifier grammar.
IDENTIFIER_MARKERS = ("Version=", "Culture=", "PublicKeyToken=")

DEFAULT_VERSION = "0.0.0.0"


def is_type_identifier(text: str) -> bool:
    """Return True if ``text`` looks like a type identifier."""
    return all(marker in text for marker in IDENTIFIER_MARKERS)


class TypeRegistry:
    """
    Bidirectional mapping between classes and their identifier strings.

    Identifiers read ``"<module>.<qualname>, <module>, Version=<v>,
    Culture=neutral, PublicKeyToken=null"``. Every class that is identified
    is remembered, so classes that cannot be imported by name (for example
    ones defined inside a function) still resolve within the same process.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the registry.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger(__name__)
        self._types: Dict[str, type] = {}
        self._lock = threading.Lock()

    def identify(self, cls: type) -> str:
        """Return the identifier of ``cls`` and register it."""
        identifier = self.build_identifier(cls)
        self.register(cls, identifier)
        return identifier

    def register(self, cls: type, identifier: Optional[str] = None) -> str:
        identifier = identifier or self.build_identifier(cls)
        with self._lock:
            known = self._types.get(identifier)
            if known is None:
                self._types[identifier] = cls
                self.logger.debug(f"Registered type identifier: {identifier}")
            elif known is not cls:
                self.logger.warning(f"Type identifier {identifier} re-registered for a different class")
                self._types[identifier] = cls
        return identifier

    def resolve(self, identifier: str) -> type:
        """
        Resolve an identifier to its class.

        Raises:
            ConversionError: If the identifier names no importable class
        """
        with self._lock:
            cls = self._types.get(identifier)
        if cls is not None:
            return cls

        cls = self._import(identifier)
        self.register(cls, identifier)
        return cls

    def registered(self) -> List[str]:
        with self._lock:
            return list(self._types)

    @staticmethod
    def build_identifier(cls: type) -> str:
        module_name = cls.__module__
        module = sys.modules.get(module_name)
        package = sys.modules.get(module_name.partition(".")[0])
        version = (getattr(module, "__version__", None) or getattr(package, "__version__", None)
                   or DEFAULT_VERSION)
        return (f"{module_name}.{cls.__qualname__}, {module_name}, "
                f"Version={version}, Culture=neutral, PublicKeyToken=null")

    def _import(self, identifier: str) -> type:
        qualified, _, rest = identifier.partition(",")
        module_name = rest.split(",")[0].strip()

        if not module_name or not qualified.startswith(module_name + "."):
            raise ConversionError(f"Malformed type identifier: {identifier}", identifier, type)

        qualname = qualified[len(module_name) + 1:].strip()
        if "<locals>" in qualname:
            raise ConversionError(f"Type {qualname} is local to a function and was never registered",
                                  identifier, type)

        try:
            target = importlib.import_module(module_name)
        except ImportError as e:
            raise ConversionError(f"Cannot import module {module_name} for {identifier}: {e}",
                                  identifier, type) from e

        for part in qualname.split("."):
            try:
                target = getattr(target, part)
            except AttributeError as e:
                raise ConversionError(f"Type {qualname} not found in module {module_name}",
                                      identifier, type) from e

        if not isinstance(target, type):
            raise ConversionError(f"{identifier} does not name a class", identifier, type)

        return target


_default_registry = TypeRegistry()


def default_registry() -> TypeRegistry:
    """Get the process-wide registry."""
    return _default_registry
