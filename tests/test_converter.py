"""Tests for the reflective converter."""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, NamedTuple, Optional, TypeVar

import numpy as np
import pytest

from polyjson.converter import (
    constructor_candidates,
    public_fields,
    public_properties,
)
from polyjson.types import ArrayType, ConstructionError, ConversionError
from polyjson.values import NULL, ObjectValue, Value

T = TypeVar("T")


class Person:
    def __init__(self, name: str, age: int):
        self.name = name
        self.age = age


class Employee(Person):
    def __init__(self, name: str, age: int, company: str):
        super().__init__(name, age)
        self.company = company


class InnerMessage:
    def __init__(self, text):
        self.text = text


class SpecialInnerMessage(InnerMessage):
    def __init__(self, text, priority):
        super().__init__(text)
        self.priority = priority


class OuterMessage:
    def __init__(self, title: str, inner: InnerMessage):
        self.title = title
        self.inner = inner


class EmptyMessage:
    pass


class RegisterModel:
    """Exposes its state through properties only."""

    def __init__(self):
        self._address = 0
        self._label = ""

    @property
    def address(self) -> int:
        return self._address

    @address.setter
    def address(self, value: int):
        self._address = value

    @property
    def label(self) -> str:
        return self._label

    @label.setter
    def label(self, value: str):
        self._label = value


class ReadOnlyModel:
    def __init__(self):
        self._value = 1

    @property
    def value(self) -> int:
        return self._value


class Settings:
    def __init__(self):
        self.retries = 3
        self.verbose = False


@dataclass
class Point:
    x: float
    y: float


@dataclass
class Shape:
    name: str
    points: List[Point]


@dataclass
class Box(Generic[T]):
    content: T


@dataclass
class Tags:
    items: Optional[List[str]]


class Pair(NamedTuple):
    left: int
    right: str


class Matrix:
    def __init__(self, cells: np.ndarray):
        self.cells = cells


class TestMembers:
    """Tests for member and constructor discovery."""

    def test_instance_fields(self):
        """Test fields of a plain instance in assignment order."""
        assert public_fields(Employee("Ann", 30, "Acme")) == ["name", "age", "company"]

    def test_dataclass_and_namedtuple_fields(self):
        """Test declared fields of dataclasses and named tuples."""
        assert public_fields(Point(1.0, 2.0)) == ["x", "y"]
        assert public_fields(Pair(1, "a")) == ["left", "right"]

    def test_private_fields_hidden(self):
        """Test underscore-prefixed fields are not members."""
        assert public_fields(RegisterModel()) == []

    def test_properties(self):
        """Test public properties in declaration order."""
        assert [name for name, _ in public_properties(RegisterModel)] == ["address", "label"]

    def test_constructor_parameters(self):
        """Test constructor parameters are discovered by name."""
        [(factory, parameters)] = constructor_candidates(Employee)

        assert factory is Employee
        assert [parameter.name for parameter in parameters] == ["name", "age", "company"]

    def test_parameterless_constructor(self):
        """Test a class without its own constructor."""
        assert constructor_candidates(EmptyMessage) == [(EmptyMessage, [])]


class TestCompositeToValue:
    """Tests for mapping composites to values."""

    def test_same_type_has_no_envelope(self, converter):
        """Test a composite declared as its own class."""
        text = converter.to_value(Person("Ann", 30)).to_text()

        assert text == '{"name":"Ann","age":30}'

    def test_derived_type_envelope(self, converter):
        """Test a derived instance declared as its base class."""
        value = converter.to_value(Employee("Ann", 30, "Acme"), Person)

        assert len(value) == 1
        envelope = value.pairs[0]
        assert envelope.name.text == converter.registry.build_identifier(Employee)
        assert envelope.value.to_text() == '{"name":"Ann","age":30,"company":"Acme"}'

    def test_unrelated_declared_type(self, converter):
        """Test a composite declared as an unrelated class."""
        with pytest.raises(ConversionError):
            converter.to_value(Point(1.0, 2.0), Person)

    def test_no_members_is_null(self, converter):
        """Test a composite without members maps to null."""
        assert converter.to_value(EmptyMessage()) is NULL

    def test_properties_used_without_fields(self, converter):
        """Test properties are read when there are no public fields."""
        model = RegisterModel()
        model.address = 16

        assert converter.to_value(model).to_text() == '{"address":16,"label":""}'

    def test_member_of_declared_class(self, converter):
        """Test members of exactly their annotated class carry no envelope."""
        text = converter.to_value(OuterMessage("hello", InnerMessage("inner"))).to_text()

        assert text == '{"title":"hello","inner":{"text":"inner"}}'

    def test_derived_member_is_enveloped(self, converter):
        """Test members of a derived class carry their class."""
        text = converter.to_value(OuterMessage("hello", SpecialInnerMessage("inner", 2))).to_text()

        identifier = converter.registry.build_identifier(SpecialInnerMessage)
        assert text == '{"title":"hello","inner":{"' + identifier + '":{"text":"inner","priority":2}}}'

    def test_unannotated_member_is_enveloped(self, converter):
        """Test composites in untyped members carry their class."""
        text = converter.to_value(Box(Point(1.0, 2.0))).to_text()

        identifier = converter.registry.build_identifier(Point)
        assert text == '{"content":{"' + identifier + '":{"x":1.0,"y":2.0}}}'

    def test_annotated_member_is_not_enveloped(self, converter):
        """Test annotated members of the declared class carry no envelope."""
        shape = Shape("line", [Point(0.0, 0.0), Point(1.0, 1.5)])

        text = converter.to_value(shape).to_text()
        assert text == '{"name":"line","points":[{"x":0.0,"y":0.0},{"x":1.0,"y":1.5}]}'

    def test_namedtuple_is_composite(self, converter):
        """Test named tuples map to objects."""
        assert converter.to_value(Pair(1, "a")).to_text() == '{"left":1,"right":"a"}'


class TestObjectToComposite:
    """Tests for building composites from values."""

    def test_constructor_binding(self, converter):
        """Test binding constructor parameters by name."""
        person = converter.from_value(Value.parse('{"age":30,"name":"Ann"}'), Person)

        assert type(person) is Person
        assert (person.name, person.age) == ("Ann", 30)

    def test_case_insensitive_binding(self, converter):
        """Test pair names match parameters regardless of case."""
        person = converter.from_value(Value.parse('{"Name":"Ann","AGE":30}'), Person)

        assert (person.name, person.age) == ("Ann", 30)

    def test_case_sensitive_binding(self):
        """Test case-sensitive binding when configured."""
        from polyjson.converter import ReflectiveConverter
        from polyjson.type_registry import TypeRegistry
        strict = ReflectiveConverter(registry=TypeRegistry(), ignore_case=False)

        with pytest.raises(ConstructionError) as exc_info:
            strict.from_value(Value.parse('{"Name":"Ann","age":30}'), Person)

        assert "name" in exc_info.value.members
        assert exc_info.value.target_type is Person

    def test_polymorphic_round_trip(self, converter):
        """Test a derived instance survives a base-typed round trip."""
        value = converter.to_value(Employee("Ann", 30, "Acme"), Person)
        result = converter.from_value(Value.parse(value.to_text()), Person)

        assert type(result) is Employee
        assert (result.name, result.age, result.company) == ("Ann", 30, "Acme")

    def test_nested_polymorphic_member(self, converter):
        """Test an enveloped member is rebuilt as its actual class."""
        message = OuterMessage("hello", SpecialInnerMessage("inner", 2))
        text = converter.to_value(message).to_text()

        result = converter.from_value(Value.parse(text), OuterMessage)
        assert result.title == "hello"
        assert type(result.inner) is SpecialInnerMessage
        assert (result.inner.text, result.inner.priority) == ("inner", 2)

    def test_envelope_outside_base_type(self, converter):
        """Test an envelope naming an unrelated class."""
        text = converter.to_value(Point(1.0, 2.0), Any).to_text()

        with pytest.raises(ConversionError):
            converter.from_value(Value.parse(text), Person)

    def test_envelope_with_any_target(self, converter):
        """Test an envelope resolves its class without a declared type."""
        text = converter.to_value(Point(1.0, 2.0), Any).to_text()

        assert converter.from_value(Value.parse(text)) == Point(1.0, 2.0)

    def test_property_assignment_fallback(self, converter):
        """Test a parameterless constructor plus writable properties."""
        model = converter.from_value(Value.parse('{"address":32,"label":"status"}'), RegisterModel)

        assert (model.address, model.label) == (32, "status")

    def test_attribute_assignment_fallback(self, converter):
        """Test a parameterless constructor plus existing attributes."""
        settings = converter.from_value(Value.parse('{"retries":5,"verbose":true}'), Settings)

        assert (settings.retries, settings.verbose) == (5, True)

    def test_read_only_property(self, converter):
        """Test a property without a setter cannot be assigned."""
        with pytest.raises(ConstructionError) as exc_info:
            converter.from_value(Value.parse('{"value":2}'), ReadOnlyModel)

        assert exc_info.value.members == ["value"]

    def test_unknown_member(self, converter):
        """Test a pair naming no member."""
        with pytest.raises(ConstructionError):
            converter.from_value(Value.parse('{"colour":"red"}'), RegisterModel)

    def test_no_matching_constructor(self, converter):
        """Test a pair count matching no constructor."""
        with pytest.raises(ConstructionError) as exc_info:
            converter.from_value(Value.parse('{"name":"Ann"}'), Person)

        assert "Person" in str(exc_info.value)

    def test_empty_message_round_trip(self, converter):
        """Test a memberless composite round-trips through null."""
        assert converter.to_value(EmptyMessage()).to_text() == "null"

        result = converter.from_value(NULL, EmptyMessage)
        assert type(result) is EmptyMessage

    def test_null_without_parameterless_constructor(self, converter):
        """Test null for a class that needs arguments."""
        assert converter.from_value(NULL, Person) is None

    def test_dataclass_with_nested_list(self, converter):
        """Test annotated members drive element conversion."""
        text = '{"name":"line","points":[{"x":0,"y":0},{"x":1,"y":1.5}]}'

        result = converter.from_value(Value.parse(text), Shape)
        assert result == Shape("line", [Point(0.0, 0.0), Point(1.0, 1.5)])
        assert isinstance(result.points[0].x, float)

    def test_generic_composite(self, converter):
        """Test a parameterized generic class."""
        box = Box[int](5)
        text = converter.to_value(box, Box[int]).to_text()

        assert text == '{"content":5}'
        assert converter.from_value(Value.parse(text), Box[int]) == box

    def test_namedtuple_round_trip(self, converter):
        """Test named tuples are rebuilt through their constructor."""
        assert converter.from_value(Value.parse('{"left":1,"right":"a"}'), Pair) == Pair(1, "a")

    def test_list_of_composites(self, converter):
        """Test an array of annotated composites."""
        points = [Point(1.0, 2.0), Point(3.0, 4.0)]
        value = converter.to_value(points, List[Point])

        assert converter.from_value(Value.parse(value.to_text()), List[Point]) == points

    def test_mapping_of_composites(self, converter):
        """Test a mapping with composite values."""
        points = {"origin": Point(0.0, 0.0)}
        value = converter.to_value(points, Dict[str, Point])

        assert value.to_text() == '{"origin":{"x":0.0,"y":0.0}}'
        assert converter.from_value(value, Dict[str, Point]) == points

    def test_untyped_object_is_mapping(self, converter):
        """Test an object without envelope and target becomes a dict."""
        assert converter.from_value(Value.parse('{"a":{"b":1}}')) == {"a": {"b": 1}}

    def test_optional_member(self, converter):
        """Test optional targets accept null."""
        assert converter.from_value(NULL, Optional[Point]) is None

    def test_object_to_scalar_target(self, converter):
        """Test objects never satisfy scalar targets."""
        with pytest.raises(ConversionError):
            converter.from_value(Value.parse('{"a":1}'), str)

    def test_matrix_member(self, converter):
        """Test a numpy member round-trips through lengths and elements."""
        matrix = Matrix(np.array([[1.0, 2.0], [3.0, 4.0]]))
        text = converter.to_value(matrix).to_text()

        assert text == '{"cells":[[2,2],[1.0,2.0,3.0,4.0]]}'
        result = converter.from_value(Value.parse(text), Matrix)
        assert result.cells.shape == (2, 2)
        assert result.cells.dtype == np.float64
        assert np.array_equal(result.cells, matrix.cells)

    def test_matrix_member_explicit_rank(self, converter):
        """Test reading lengths and elements with a declared ArrayType."""
        value = Value.parse('{"cells":[[2,2],[1.0,2.0,3.0,4.0]]}')

        assert isinstance(value, ObjectValue)
        cells = converter.from_value(value.get("cells"), ArrayType(float, 2))
        assert cells.tolist() == [[1.0, 2.0], [3.0, 4.0]]

    def test_optional_list_member_stays_empty(self, converter):
        """Test an empty optional list survives the null intermediate."""
        text = converter.to_value(Tags([])).to_text()

        assert text == '{"items":[]}'
        assert converter.from_value(Value.parse(text), Tags) == Tags([])
