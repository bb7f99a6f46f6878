import pytest

from forksync.core.result import Err, Ok, Result


class TestOk:
    def test_map_transforms_value(self) -> None:
        assert Ok(2).map(lambda x: x * 10) == Ok(20)

    def test_map_err_returns_self(self) -> None:
        result = Ok(2)
        assert result.map_err(str) is result

    def test_unwrap_or_ignores_default(self) -> None:
        assert Ok([1]).unwrap_or([]) == [1]

    def test_frozen(self) -> None:
        result = Ok(1)
        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]


class TestErr:
    def test_map_returns_self(self) -> None:
        result = Err("boom")
        assert result.map(lambda x: x) is result

    def test_map_err_transforms_error(self) -> None:
        assert Err("boom").map_err(str.upper) == Err("BOOM")

    def test_unwrap_or_returns_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7


def test_chained_map_then_map_err() -> None:
    def parse(text: str) -> Result[int, str]:
        return Ok(text) if text.isdigit() else Err(text)

    assert parse("12").map(int).map_err(len) == Ok(12)
    assert parse("abc").map(int).map_err(len) == Err(3)


def test_pattern_matching() -> None:
    def describe(result: Result[int, str]) -> str:
        match result:
            case Ok(value):
                return f"value {value}"
            case Err(error):
                return f"error {error}"

    assert describe(Ok(1)) == "value 1"
    assert describe(Err("x")) == "error x"
