from datetime import date, datetime
from decimal import Decimal
import re
import pytest
from codec import parse_amount, parse_date, parse_timestamp, render_amount, render_date, render_timestamp
from controlsum import compute_control_sum
from errors import FormatError, RandomnessError
from identifiers import new_id
from order import Transaction

def test_render_amount_fixed_two_digits():
    assert render_amount(Decimal("100")) == "100.00"
    assert render_amount(Decimal("0.1") + Decimal("0.2")) == "0.30"
    assert render_amount(Decimal("12.345")) == "12.35"
    assert render_amount(7) == "7.00"

def test_render_amount_rejects_float_and_negative():
    with pytest.raises(TypeError):
        render_amount(0.1)
    with pytest.raises(FormatError):
        render_amount(Decimal("-1.00"))
    with pytest.raises(FormatError):
        render_amount(Decimal("NaN"))

def test_render_amount_upper_bound():
    assert render_amount(Decimal("999999999999999999.99")) == "999999999999999999.99"
    assert parse_amount(render_amount(Decimal("999999999999999999.99"))) == Decimal("999999999999999999.99")
    for too_big in (Decimal("1234567890123456789"), Decimal("999999999999999999.995"), Decimal("1e30")):
        with pytest.raises(FormatError) as info:
            render_amount(too_big, field="InstdAmt")
        assert info.value.field == "InstdAmt"

def test_amount_inverse():
    for text in ("0.00", "0.01", "100.00", "50.50", "999999.99"):
        assert render_amount(parse_amount(text)) == text

@pytest.mark.parametrize("text", ["12.3.4", "", "abc", "-1.00", "1,00", " 1.00", "1e3", None])
def test_parse_amount_malformed(text):
    with pytest.raises(FormatError) as info:
        parse_amount(text, field="InstdAmt")
    assert info.value.field == "InstdAmt"
    assert info.value.value == text

def test_dates():
    assert render_date(date(2024, 5, 6)) == "2024-05-06"
    assert render_date(datetime(2024, 5, 6, 23, 59)) == "2024-05-06"
    assert parse_date("2024-05-06") == date(2024, 5, 6)
    with pytest.raises(FormatError):
        parse_date("2024-5-6")
    with pytest.raises(FormatError):
        parse_date("2024-02-30")

def test_timestamps():
    assert render_timestamp(datetime(2024, 5, 1, 10, 15, 0, 123456)) == "2024-05-01T10:15:00"
    assert parse_timestamp("2024-05-01T10:15:00") == datetime(2024, 5, 1, 10, 15)
    for bad in ("2024-05-01T10:15:00Z", "2024-05-01T10:15:00+02:00", "2024-05-01T10:15:00.5", "2024-05-01"):
        with pytest.raises(FormatError):
            parse_timestamp(bad)

def test_control_sum():
    batch = [Transaction(amount=Decimal("100.00")), Transaction(amount=Decimal("50.50"))]
    assert compute_control_sum(batch) == "150.50"
    assert compute_control_sum([]) == "0.00"
    assert compute_control_sum([Transaction(amount=Decimal("0.10"))] * 3) == "0.30"

def test_new_id_shape_and_uniqueness():
    ids = [new_id() for _ in range(10000)]
    assert all(re.fullmatch(r"[0-9a-z]{15}", i) for i in ids)
    assert len(set(ids)) == len(ids)

def test_new_id_without_entropy(monkeypatch):
    def boom(seq):
        raise OSError("no entropy")
    monkeypatch.setattr("identifiers.secrets.choice", boom)
    with pytest.raises(RandomnessError):
        new_id()
