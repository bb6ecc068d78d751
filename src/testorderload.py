import io
from decimal import Decimal
from pathlib import Path
import pandas as pd
import pytest
from errors import ConversionError
from orderload import load_transactions

DATA = Path(__file__).parent.parent / "data"

def test_load_sample_batch():
    first, second = load_transactions(DATA / "batch.csv")
    assert first.name == "John Doe"
    assert first.iban == "DE12345678901234567890"
    assert first.country == "DE"
    assert first.postal_code == "12345"
    assert first.amount == Decimal("100.00")
    assert first.mandate_id == "MANDATE-0001"
    assert second.amount == Decimal("50.50")
    assert second.currency == "EUR"
    assert second.street == ""
    assert second.mandate_id is None

def test_load_from_bytes_skips_blank_rows():
    csv = b"name,iban,currency,amount\nA,DE02370400440532013000,EUR,1.10\n,,,\nB,DE12345678901234567890,EUR,2\n"
    batch = load_transactions(csv, filename="upload.csv")
    assert [t.name for t in batch] == ["A", "B"]
    assert sum(t.amount for t in batch) == Decimal("3.10")

def test_missing_column():
    with pytest.raises(ConversionError) as info:
        load_transactions(b"name,iban,amount\nA,DE02370400440532013000,1.00\n", filename="x.csv")
    assert "currency" in str(info.value)

def test_bad_amount_names_row():
    csv = b"name,iban,currency,amount\nA,DE02370400440532013000,EUR,1.00\nB,DE12345678901234567890,EUR,ten\n"
    with pytest.raises(ConversionError) as info:
        load_transactions(csv, filename="x.csv")
    assert info.value.field == "row 3/amount"
    assert info.value.value == "ten"

def test_load_excel_workbook():
    frame = pd.DataFrame({
        "Name": ["John Doe", "Erika Mustermann"],
        "IBAN": ["DE12 3456 7890 1234 5678 90", "DE02370400440532013000"],
        "Currency": ["EUR", "eur"],
        "Amount": [12.5, "7.25"],
        "City": ["Small Town", "Koeln"],
    })
    buf = io.BytesIO()
    frame.to_excel(buf, index=False, engine="openpyxl")
    first, second = load_transactions(buf.getvalue(), filename="x.xlsx")
    assert first.amount == Decimal("12.5")
    assert first.iban == "DE12345678901234567890"
    assert first.place == "Small Town"
    assert second.amount == Decimal("7.25")
    assert second.currency == "EUR"
