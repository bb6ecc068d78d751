import io
import logging
from pathlib import Path

import pandas as pd

from codec import parse_amount
from errors import ConversionError, FormatError
from order import Transaction

REQUIRED_COLUMNS = ("name", "iban", "currency", "amount")
COLUMN_ALIASES = {
    "postcode": "postal_code",
    "zip": "postal_code",
    "town": "place",
    "city": "place",
    "remittance": "remittance_information",
    "reference": "end_to_end_id",
}


def _read_frame(source, filename=None):
    name = str(filename or (source if isinstance(source, (str, Path)) else "")).lower()
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    if name.endswith((".xlsx", ".xlsm")):
        return pd.read_excel(source, sheet_name=0, dtype=str, engine="openpyxl")
    return pd.read_csv(source, dtype=str, keep_default_na=False)


def _normalize_columns(df):
    df = df.copy()
    columns = []
    for c in df.columns:
        key = str(c).strip().lower().replace(" ", "_").replace("-", "_")
        columns.append(COLUMN_ALIASES.get(key, key))
    df.columns = columns
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ConversionError(f"missing column(s) {', '.join(missing)}", field="header")
    return df


def load_transactions(source, filename=None):
    """Read a CSV or Excel batch into Transactions, one per non-empty row.

    All cells are read as text so amounts never pass through float.
    """
    df = _normalize_columns(_read_frame(source, filename))
    transactions = []
    for idx, row in df.iterrows():
        row_dict = {k: ("" if pd.isna(v) else str(v).strip()) for k, v in row.items()}
        if not any(row_dict.values()):
            continue
        line = idx + 2
        try:
            amount = parse_amount(row_dict["amount"].replace(",", "."), field="amount")
        except FormatError as exc:
            raise ConversionError(str(exc), field=f"row {line}/amount", value=row_dict["amount"]) from exc
        transactions.append(
            Transaction(
                name=row_dict["name"],
                street=row_dict.get("street", ""),
                postal_code=row_dict.get("postal_code", ""),
                place=row_dict.get("place", ""),
                country=row_dict.get("country", "").upper(),
                iban=row_dict["iban"].replace(" ", "").upper(),
                bic=row_dict.get("bic", "").replace(" ", "").upper(),
                currency=row_dict["currency"].upper(),
                amount=amount,
                end_to_end_id=row_dict.get("end_to_end_id") or None,
                remittance_information=row_dict.get("remittance_information") or None,
                mandate_id=row_dict.get("mandate_id") or None,
            )
        )
    logging.info("loaded %d transaction(s) from %s", len(transactions), filename or (source if isinstance(source, (str, Path)) else "upload"))
    return transactions
