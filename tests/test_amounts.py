import pytest

from amounts import format_cents, normalize_amount, parse_amount, to_cents


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("100", "100.00"),
        ("100.5", "100.50"),
        (" 12.34 ", "12.34"),
        (".5", "0.50"),
        ("7.", "7.00"),
        ("0", "0.00"),
    ],
)
def test_normalize_amount_uses_two_fraction_digits(raw: str, expected: str) -> None:
    assert normalize_amount(raw) == expected


@pytest.mark.parametrize(
    "raw", ["", "   ", "abc", "-1", "1e3", "1,50", "NaN", "Infinity", "10.005"]
)
def test_parse_amount_rejects_bad_input(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_amount(raw)


def test_parse_amount_rejects_non_strings() -> None:
    with pytest.raises(ValueError):
        parse_amount(12.5)  # type: ignore[arg-type]


def test_cents_round_trip_is_exact() -> None:
    assert to_cents("0.10") == 10
    assert to_cents("19.99") == 1999
    assert format_cents(sum(to_cents("0.10") for _ in range(1000))) == "100.00"
    assert format_cents(5) == "0.05"
    assert format_cents(0) == "0.00"
