"""Tests for hl7spine.core.result module."""

import pytest

from hl7spine.core.errors import UnclassifiedError
from hl7spine.core.result import Err, Ok, Result, try_result_with


def half(x: int) -> Result[int]:
    return Ok(x // 2) if x % 2 == 0 else Err(ValueError("odd"))


class TestOk:
    def test_unwrap(self):
        assert Ok("hello").unwrap() == "hello"

    def test_flat_map(self):
        assert Ok(8).flat_map(half).flat_map(half).unwrap() == 2
        assert isinstance(Ok(3).flat_map(half), Err)


class TestErr:
    def test_unwrap_raises(self):
        with pytest.raises(ValueError, match="bad"):
            Err(ValueError("bad")).unwrap()

    def test_flat_map_short_circuits(self):
        calls = []
        result = Ok(3).flat_map(half).flat_map(lambda x: Ok(calls.append(x)))
        assert isinstance(result, Err)
        assert str(result.error) == "odd"
        assert calls == []


class TestTryResultWith:
    def test_success(self):
        assert try_result_with(lambda: int("21"), UnclassifiedError).unwrap() == 21

    def test_maps_error(self):
        result = try_result_with(lambda: 1 / 0, lambda e: UnclassifiedError(str(e), cause=e))
        assert isinstance(result.error, UnclassifiedError)
        assert isinstance(result.error.cause, ZeroDivisionError)
