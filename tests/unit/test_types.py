import datetime
import decimal

import pytest
from crudsql.exceptions import CompileError
from crudsql.types import BindType, bind_values, coerce_value, infer_type
from crudsql.types import infer_types, resolve_types


def test_infer_type_per_runtime_type(value_dict, expected_types):
    """Every value maps to exactly one tag, derived from its runtime type"""
    for key, value in value_dict.items():
        assert infer_type(value) is expected_types[key], key


def test_bool_checked_before_int():
    assert infer_type(True) is BindType.INTEGER
    assert coerce_value(True, BindType.INTEGER) == 1
    assert coerce_value(False, BindType.INTEGER) == 0
    assert type(coerce_value(True, BindType.INTEGER)) is int


def test_binary_is_never_inferred():
    assert infer_type(b'raw') is BindType.STRING
    assert infer_type(bytearray(b'raw')) is BindType.STRING


def test_infer_types_preserves_order():
    assert infer_types([1, 'a', 2.5, None]) == (
        BindType.INTEGER, BindType.STRING, BindType.FLOAT, BindType.STRING)


def test_coerce_value_none_passes_through():
    for tag in BindType:
        assert coerce_value(None, tag) is None


def test_coerce_value_string_conversions():
    assert coerce_value(decimal.Decimal('1.50'), BindType.STRING) == '1.50'
    assert coerce_value(datetime.date(2024, 1, 2), BindType.STRING) == '2024-01-02'
    assert coerce_value(b'x', BindType.STRING) == b'x'


def test_coerce_value_binary():
    assert coerce_value('abc', BindType.BINARY) == b'abc'
    assert coerce_value(bytearray(b'abc'), BindType.BINARY) == b'abc'


def test_bind_type_parse():
    assert BindType.parse('i') is BindType.INTEGER
    assert BindType.parse('D') is BindType.FLOAT
    assert BindType.parse('string') is BindType.STRING
    assert BindType.parse(BindType.BINARY) is BindType.BINARY
    with pytest.raises(CompileError):
        BindType.parse('x')
    with pytest.raises(CompileError):
        BindType.parse(3)


def test_resolve_types_explicit_letters():
    assert resolve_types([1, 'a'], 'is') == (BindType.INTEGER, BindType.STRING)


def test_resolve_types_length_mismatch():
    with pytest.raises(CompileError, match='Expected 2 bind types'):
        resolve_types([1, 2], 'i')


def test_bind_values_explicit_types_override_inference():
    """An explicit tag wins over the runtime type"""
    assert bind_values(['42', 3], 'id') == (42, 3.0)
    assert bind_values(['blob'], [BindType.BINARY]) == (b'blob',)


def test_bind_values_inferred():
    assert bind_values([True, 1.5, 'x', None]) == (1, 1.5, 'x', None)
