from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class PaymentKind(str, Enum):
    DIRECT_DEBIT = "direct_debit"
    CREDIT_TRANSFER = "credit_transfer"


def _freeze_lines(obj):
    if not isinstance(obj.address_lines, tuple):
        object.__setattr__(obj, "address_lines", tuple(obj.address_lines))


@dataclass(frozen=True)
class Party:
    name: str = ""
    street: str = ""
    postal_code: str = ""
    place: str = ""
    country: str = ""
    address_lines: Tuple[str, ...] = ()
    iban: str = ""
    bic: str = ""

    def __post_init__(self):
        _freeze_lines(self)


@dataclass(frozen=True)
class Transaction:
    """One collection or transfer line, counterparty fields flattened.

    Optional identifiers left as None fall back to the legacy reuse rules
    when the document is built.
    """

    name: str = ""
    street: str = ""
    postal_code: str = ""
    place: str = ""
    country: str = ""
    address_lines: Tuple[str, ...] = ()
    iban: str = ""
    bic: str = ""
    currency: str = "EUR"
    amount: Decimal = Decimal("0.00")
    end_to_end_id: Optional[str] = None
    instruction_id: Optional[str] = None
    remittance_information: Optional[str] = None
    mandate_id: Optional[str] = None
    mandate_signature_date: Optional[date] = None

    def __post_init__(self):
        _freeze_lines(self)

    @property
    def counterparty(self) -> Party:
        return Party(
            name=self.name,
            street=self.street,
            postal_code=self.postal_code,
            place=self.place,
            country=self.country,
            address_lines=self.address_lines,
            iban=self.iban,
            bic=self.bic,
        )


@dataclass(frozen=True)
class Order:
    # party is the creditor for direct debits, the debtor for credit transfers
    execution_date: date
    party: Party
    transactions: Tuple[Transaction, ...] = field(default_factory=tuple)
    kind: PaymentKind = PaymentKind.DIRECT_DEBIT
    creditor_scheme_id: Optional[str] = None
    batch_booking: Optional[bool] = None
    created_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.transactions, tuple):
            object.__setattr__(self, "transactions", tuple(self.transactions))
        if not isinstance(self.kind, PaymentKind):
            object.__setattr__(self, "kind", PaymentKind(self.kind))

    def to_dict(self) -> dict:
        def transaction(t: Transaction) -> dict:
            data = asdict(t)
            data["address_lines"] = list(t.address_lines)
            data["amount"] = format(t.amount, "f")
            if t.mandate_signature_date is not None:
                data["mandate_signature_date"] = t.mandate_signature_date.isoformat()
            return data

        party = asdict(self.party)
        party["address_lines"] = list(self.party.address_lines)
        return {
            "kind": self.kind.value,
            "execution_date": self.execution_date.isoformat(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "party": party,
            "creditor_scheme_id": self.creditor_scheme_id,
            "batch_booking": self.batch_booking,
            "transactions": [transaction(t) for t in self.transactions],
        }
