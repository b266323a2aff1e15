import pytest

from httpguard.cast import Caster, CastError


def test_nil():
    assert Caster(None).is_nil()
    assert not Caster(0).is_nil()
    assert not Caster("").is_nil()


@pytest.mark.parametrize("value,expected", [
    (42, 42),
    ("42", 42),
    (" 7 ", 7),
    (b"12", 12),
    (3.0, 3),
    (True, 1),
])
def test_as_int(value, expected):
    assert Caster(value).as_int() == expected


@pytest.mark.parametrize("value", [None, "abc", 3.5, [1], b"\xff"])
def test_as_int_rejects(value):
    with pytest.raises(CastError):
        Caster(value).as_int()


def test_as_bool_strings():
    assert Caster("true").as_bool() is True
    assert Caster("Yes").as_bool() is True
    assert Caster("0").as_bool() is False
    assert Caster(b"off").as_bool() is False
    assert Caster(2).as_bool() is True

    with pytest.raises(CastError):
        Caster("maybe").as_bool()


def test_as_str_and_float():
    assert Caster(b"hello").as_str() == "hello"
    assert Caster(12).as_str() == "12"
    assert Caster("1.5").as_float() == 1.5
    assert Caster(2).as_float() == 2.0

    with pytest.raises(CastError):
        Caster({"a": 1}).as_str()


def test_safe_variants_fall_back_to_default():
    caster = Caster("not-a-number")
    assert caster.as_int_safe(5) == 5
    assert caster.as_float_safe(1.5) == 1.5
    assert caster.as_bool_safe(True) is True
    assert Caster(None).as_str_safe("fallback") == "fallback"
    assert Caster("9").as_int_safe(5) == 9


def test_cast_error_is_value_error():
    assert issubclass(CastError, ValueError)
