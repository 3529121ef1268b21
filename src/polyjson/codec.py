"""Main codec implementation."""

import logging
from typing import Any, Optional

from .converter import ReflectiveConverter
from .error_handler import ErrorHandler
from .parser import ValueParser
from .profiler import CodecProfiler
from .type_registry import TypeRegistry
from .types import CodecError, CodecInterface, ValidationResult
from .values import NULL, Value


class JSONCodec(CodecInterface):
    """
    Main implementation of the codec interface.

    Serializes object graphs to compact text and deserializes text into
    typed object graphs, preserving the actual class of polymorphic values
    through type envelopes.
    """

    def __init__(self, logger: Optional[logging.Logger] = None,
                 registry: Optional[TypeRegistry] = None,
                 ignore_case: bool = True,
                 enable_profiling: bool = False):
        """
        Initialize the codec.

        Args:
            logger: Optional logger instance
            registry: Type registry for envelope identifiers (process default if None)
            ignore_case: Bind constructor parameters to member names case-insensitively
            enable_profiling: Record timing and memory metrics per operation
        """
        self.logger = logger or logging.getLogger(__name__)
        self.error_handler = ErrorHandler(self.logger)
        self.parser = ValueParser(self.logger)
        self.converter = ReflectiveConverter(registry, ignore_case, self.logger)
        self.profiler = CodecProfiler(self.logger) if enable_profiling else None

    @property
    def registry(self) -> TypeRegistry:
        return self.converter.registry

    def serialize(self, value: Any, declared_type: Optional[Any] = None) -> str:
        """
        Serialize an object graph into text.

        Args:
            value: Object to serialize
            declared_type: Static type of ``value``; its own class when None.
                A more derived actual class is recorded in a type envelope.

        Returns:
            Compact text

        Raises:
            ConversionError: If a value cannot be represented
        """
        if self.profiler is None:
            return self._serialize(value, declared_type)

        with self.profiler.profile_operation("serialize") as session:
            text = self._serialize(value, declared_type, session)
            session.output_size = len(text.encode("utf-8"))
            return text

    def deserialize(self, text: str, result_type: Any = Any) -> Any:
        """
        Deserialize text into an object graph.

        Args:
            text: Text produced by :meth:`serialize` or any compatible writer
            result_type: Requested result type

        Returns:
            Instance of ``result_type``, or of the class named by its envelope

        Raises:
            ParseError: If the text is malformed
            ConversionError: If the text does not fit ``result_type``
            ConstructionError: If a composite cannot be constructed
        """
        if not isinstance(text, str):
            raise TypeError(f"Expected text, got {type(text).__name__}")

        if self.profiler is None:
            return self._deserialize(text, result_type)

        with self.profiler.profile_operation("deserialize", len(text.encode("utf-8"))) as session:
            return self._deserialize(text, result_type, session)

    def to_value(self, value: Any, declared_type: Optional[Any] = None) -> Value:
        """Map an object graph to a value tree without printing it."""
        return self._guarded("to_value", lambda: self.converter.to_value(value, declared_type))

    def from_value(self, value: Value, result_type: Any = Any) -> Any:
        """Convert a value tree into an instance of ``result_type``."""
        return self._guarded("from_value", lambda: self.converter.from_value(value, result_type))

    def validate(self, text: str) -> ValidationResult:
        """Check text syntax without raising."""
        return self.error_handler.validate_input(text)

    def _serialize(self, value: Any, declared_type: Optional[Any], session=None) -> str:
        if value is None:
            return NULL.to_text()
        root = self.to_value(value, declared_type)
        if session is not None:
            session.sample()
        text = root.to_text()
        self.logger.debug(f"Serialized {type(value).__name__} to {len(text)} characters")
        return text

    def _deserialize(self, text: str, result_type: Any, session=None) -> Any:
        root = self._guarded("parse", lambda: self.parser.parse(text))
        if session is not None:
            session.sample()
        result = self.from_value(root, result_type)
        self.logger.debug(f"Deserialized {len(text)} characters to {type(result).__name__}")
        return result

    def _guarded(self, operation: str, action):
        try:
            return action()
        except CodecError as e:
            self.logger.debug(f"Codec operation {operation} aborted")
            self.error_handler.handle_codec_error(e)
            raise
