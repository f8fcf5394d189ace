"""Unit tests for the type registry."""

import datetime
import decimal
import threading
from dataclasses import dataclass

import pytest

from watchable import (
    InvalidArgument,
    SerializationError,
    TypeRegistry,
    TypeResolutionError,
    default_registry,
    qualified_name,
    register_type,
)


@dataclass
class Point:
    x: int
    y: int


@dataclass
class Line:
    start: Point
    end: Point
    label: str = ""


class Temperature:
    def __init__(self, celsius):
        self.celsius = celsius

    def __eq__(self, other):
        return isinstance(other, Temperature) and other.celsius == self.celsius


@pytest.mark.unit
def test_qualified_name_uses_module_and_qualname():
    assert qualified_name(str) == "builtins.str"
    assert qualified_name(decimal.Decimal) == "decimal.Decimal"
    assert qualified_name(Point).endswith("test_registry.Point")


@pytest.mark.unit
def test_default_registry_contains_builtin_types():
    registry = default_registry()

    for name in (
        "builtins.NoneType",
        "builtins.bool",
        "builtins.int",
        "builtins.float",
        "builtins.str",
        "builtins.list",
        "builtins.tuple",
        "builtins.dict",
        "builtins.bytes",
        "decimal.Decimal",
        "datetime.datetime",
        "datetime.date",
    ):
        assert registry.is_registered(name), name


@pytest.mark.unit
def test_default_registry_is_a_singleton():
    assert default_registry() is default_registry()


@pytest.mark.unit
def test_resolve_unknown_name_raises_type_resolution_error(registry):
    with pytest.raises(TypeResolutionError) as exc_info:
        registry.resolve("no.such.Type")

    assert exc_info.value.type_name == "no.such.Type"
    assert isinstance(exc_info.value, LookupError)


@pytest.mark.unit
@pytest.mark.parametrize(
    "value",
    [
        None,
        True,
        654,
        3.133,
        "hello",
        "G",
        ["Listen", "gehen", "auch!"],
        ("a", 1),
        {"k": [1, 2]},
        {1, 2, 3},
        frozenset({"x"}),
        b"\x00\xffbytes",
        decimal.Decimal("3.14159265358979323846"),
        datetime.datetime(2024, 5, 17, 12, 30, 1),
        datetime.date(2024, 5, 17),
    ],
)
def test_builtin_descriptors_render_and_parse(registry, value):
    descriptor = registry.descriptor_for(value)
    text = descriptor.render(value)

    assert isinstance(text, str)
    parsed = registry.resolve(descriptor.name).parse(text)
    assert parsed == value
    assert type(parsed) is type(value)


@pytest.mark.unit
def test_string_renders_verbatim(registry):
    assert registry.descriptor_for("hello").render("hello") == "hello"


@pytest.mark.unit
def test_float_descriptor_accepts_integral_json(registry):
    assert registry.resolve("builtins.float").parse("4") == 4.0


@pytest.mark.unit
@pytest.mark.parametrize(
    "type_name, text",
    [
        ("builtins.int", "abc"),
        ("builtins.int", "true"),
        ("builtins.int", "1.5"),
        ("builtins.bool", "1"),
        ("builtins.list", '{"a": 1}'),
        ("builtins.NoneType", "0"),
        ("decimal.Decimal", "not a number"),
        ("datetime.date", "yesterday"),
        ("builtins.bytes", "!!!"),
    ],
)
def test_parse_failures_raise_serialization_error(registry, type_name, text):
    with pytest.raises(SerializationError):
        registry.resolve(type_name).parse(text)


@pytest.mark.unit
def test_parse_rejects_non_string_payload(registry):
    with pytest.raises(SerializationError):
        registry.resolve("builtins.int").parse(5)


@pytest.mark.unit
def test_render_failure_raises_serialization_error(registry):
    descriptor = registry.descriptor_for([object()])

    with pytest.raises(SerializationError):
        descriptor.render([object()])


@pytest.mark.unit
def test_dataclass_registration_uses_field_json(registry):
    descriptor = registry.register(Point)

    text = descriptor.render(Point(1, 2))

    assert text == '{"x":1,"y":2}'
    assert registry.resolve(qualified_name(Point)).parse(text) == Point(1, 2)


@pytest.mark.unit
def test_nested_dataclass_round_trips_with_field_types(registry):
    """Dataclass fields that are themselves dataclasses come back as instances"""
    registry.register(Line)
    line = Line(Point(1, 2), Point(3, 4), "diagonal")

    text = registry.descriptor_for(line).render(line)
    parsed = registry.resolve(qualified_name(Line)).parse(text)

    assert parsed == line
    assert isinstance(parsed.start, Point)
    assert isinstance(parsed.end, Point)


@pytest.mark.unit
def test_dataclass_parse_failure_raises_serialization_error(registry):
    registry.register(Line)

    with pytest.raises(SerializationError):
        registry.resolve(qualified_name(Line)).parse('{"start": {"x": 1}, "end": null}')


@pytest.mark.unit
@pytest.mark.parametrize(
    "value",
    [
        {1: "a"},
        {"outer": {2: "b"}},
        [("nested", "tuple")],
        ({"a"},),
        [Point(1, 2)],
    ],
)
def test_collections_that_would_change_type_are_rejected(registry, value):
    """Only JSON-native contents are accepted inside built-in collections"""
    with pytest.raises(SerializationError):
        registry.descriptor_for(value).render(value)


@pytest.mark.unit
def test_json_native_nesting_round_trips(registry):
    value = [{"name": "a", "tags": ["x", "y"]}, None, 1.5]
    descriptor = registry.descriptor_for(value)

    assert registry.resolve(descriptor.name).parse(descriptor.render(value)) == value


@pytest.mark.unit
def test_custom_serializers_and_name(registry):
    registry.register(
        Temperature,
        name="weather.Temperature",
        dump=lambda t: str(t.celsius),
        load=lambda text: Temperature(float(text)),
    )

    descriptor = registry.descriptor_for(Temperature(21.5))

    assert descriptor.name == "weather.Temperature"
    assert descriptor.render(Temperature(21.5)) == "21.5"
    assert registry.resolve("weather.Temperature").parse("21.5") == Temperature(21.5)


@pytest.mark.unit
def test_unregistered_type_encodes_but_does_not_resolve(registry):
    descriptor = registry.descriptor_for(Point(3, 4))

    assert descriptor.name == qualified_name(Point)
    assert descriptor.render(Point(3, 4)) == '{"x":3,"y":4}'
    with pytest.raises(TypeResolutionError):
        registry.resolve(descriptor.name)


@pytest.mark.unit
def test_reregistering_same_type_is_idempotent(registry):
    first = registry.register(Point)
    second = registry.register(Point)

    assert first.name == second.name
    assert second.python_type is Point
    assert registry.names().count(qualified_name(Point)) == 1


@pytest.mark.unit
def test_name_conflict_raises_invalid_argument(registry):
    registry.register(Point, name="shared.Name")

    with pytest.raises(InvalidArgument):
        registry.register(Temperature, name="shared.Name")
    assert registry.resolve("shared.Name").python_type is Point


@pytest.mark.unit
def test_register_rejects_non_class(registry):
    with pytest.raises(InvalidArgument):
        registry.register("builtins.int")


@pytest.mark.unit
def test_register_type_decorator_uses_default_registry():
    @register_type
    @dataclass
    class Size:
        width: int
        height: int

    @register_type(name="units.Temperature")
    class Temp(Temperature):
        pass

    assert Size(1, 2) == Size(1, 2)
    assert default_registry().resolve(qualified_name(Size)).python_type is Size
    assert default_registry().resolve("units.Temperature").python_type is Temp


@pytest.mark.unit
def test_private_registries_are_independent(registry):
    registry.register(Point)

    assert Point in registry
    assert Point not in TypeRegistry()
    assert not default_registry().is_registered(qualified_name(Point))


@pytest.mark.unit
def test_concurrent_lookups_during_registration(registry):
    """Readers keep resolving built-ins while another thread registers types"""
    errors = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            try:
                assert registry.resolve("builtins.int").python_type is int
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for i in range(200):
        registry.register(type(f"Generated{i}", (), {}), name=f"generated.T{i}")
    done.set()
    for thread in readers:
        thread.join()

    assert errors == []
    assert registry.is_registered("generated.T199")
