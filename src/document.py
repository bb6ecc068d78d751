"""Typed tree of a pain initiation message.

One model serves every supported schema version. Where the versions differ
(root element, requested date, agent BIC element, which side of the payment
sits at payment information level) the difference lives in the slot tables
at the bottom of this module, not in the node classes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple

from order import PaymentKind

NAMESPACE_PREFIX = "urn:iso:std:iso:20022:tech:xsd:"


class SchemaVersion(str, Enum):
    PAIN_001_001_03 = "pain.001.001.03"
    PAIN_008_001_02 = "pain.008.001.02"
    PAIN_008_001_08 = "pain.008.001.08"

    @property
    def namespace(self) -> str:
        return NAMESPACE_PREFIX + self.value

    @property
    def kind(self) -> PaymentKind:
        if self.value.startswith("pain.008"):
            return PaymentKind.DIRECT_DEBIT
        return PaymentKind.CREDIT_TRANSFER

    @property
    def bic_tag(self) -> str:
        return "BICFI" if self is SchemaVersion.PAIN_008_001_08 else "BIC"

    @classmethod
    def from_namespace(cls, namespace: str) -> "SchemaVersion":
        if not namespace.startswith(NAMESPACE_PREFIX):
            raise ValueError(f"not an ISO 20022 namespace: {namespace!r}")
        return cls(namespace[len(NAMESPACE_PREFIX):])

    def slots(self, node_type) -> Tuple["Slot", ...]:
        if node_type is Agent:
            return (Slot("bic", "FinInstnId/" + self.bic_tag),)
        by_kind = _KIND_SLOTS[self.kind]
        if node_type in by_kind:
            return by_kind[node_type]
        return _COMMON_SLOTS[node_type]

    def root_tag(self) -> str:
        return _ROOT_TAGS[self.kind]


@dataclass(frozen=True)
class PostalAddress:
    street_name: Optional[str] = None
    postal_code: Optional[str] = None
    town_name: Optional[str] = None
    country: Optional[str] = None
    address_lines: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.address_lines, tuple):
            object.__setattr__(self, "address_lines", tuple(self.address_lines))


@dataclass(frozen=True)
class PartyIdentification:
    name: Optional[str] = None
    postal_address: Optional[PostalAddress] = None


@dataclass(frozen=True)
class Account:
    iban: Optional[str] = None
    currency: Optional[str] = None


@dataclass(frozen=True)
class Agent:
    bic: Optional[str] = None


@dataclass(frozen=True)
class SchemeIdentification:
    identification: Optional[str] = None
    scheme_name: Optional[str] = None


@dataclass(frozen=True)
class PaymentTypeInformation:
    instruction_priority: Optional[str] = None
    service_level: Optional[str] = None
    local_instrument: Optional[str] = None
    sequence_type: Optional[str] = None


@dataclass(frozen=True)
class PaymentIdentification:
    instruction_id: Optional[str] = None
    end_to_end_id: Optional[str] = None


@dataclass(frozen=True)
class InstructedAmount:
    value: Optional[str] = None
    currency: Optional[str] = None


@dataclass(frozen=True)
class MandateRelatedInformation:
    mandate_id: Optional[str] = None
    date_of_signature: Optional[str] = None


@dataclass(frozen=True)
class TransactionInformation:
    payment_id: Optional[PaymentIdentification] = None
    instructed_amount: Optional[InstructedAmount] = None
    mandate: Optional[MandateRelatedInformation] = None
    debtor_agent: Optional[Agent] = None
    debtor: Optional[PartyIdentification] = None
    debtor_account: Optional[Account] = None
    creditor_agent: Optional[Agent] = None
    creditor: Optional[PartyIdentification] = None
    creditor_account: Optional[Account] = None
    remittance_information: Optional[str] = None


@dataclass(frozen=True)
class PaymentInformation:
    payment_information_id: Optional[str] = None
    payment_method: Optional[str] = None
    batch_booking: Optional[bool] = None
    number_of_transactions: Optional[str] = None
    control_sum: Optional[str] = None
    payment_type_information: Optional[PaymentTypeInformation] = None
    requested_date: Optional[str] = None
    creditor: Optional[PartyIdentification] = None
    creditor_account: Optional[Account] = None
    creditor_agent: Optional[Agent] = None
    debtor: Optional[PartyIdentification] = None
    debtor_account: Optional[Account] = None
    debtor_agent: Optional[Agent] = None
    charge_bearer: Optional[str] = None
    creditor_scheme_identification: Optional[SchemeIdentification] = None
    transactions: Tuple[TransactionInformation, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.transactions, tuple):
            object.__setattr__(self, "transactions", tuple(self.transactions))


@dataclass(frozen=True)
class GroupHeader:
    message_id: Optional[str] = None
    creation_date_time: Optional[str] = None
    number_of_transactions: Optional[str] = None
    control_sum: Optional[str] = None
    initiating_party: Optional[PartyIdentification] = None


@dataclass(frozen=True)
class Initiation:
    group_header: GroupHeader = field(default_factory=GroupHeader)
    payments: Tuple[PaymentInformation, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.payments, tuple):
            object.__setattr__(self, "payments", tuple(self.payments))


@dataclass(frozen=True)
class Document:
    version: SchemaVersion
    initiation: Initiation = field(default_factory=Initiation)

    def __post_init__(self):
        if not isinstance(self.version, SchemaVersion):
            object.__setattr__(self, "version", SchemaVersion(self.version))

    @property
    def xmlns(self) -> str:
        return self.version.namespace

    @property
    def kind(self) -> PaymentKind:
        return self.version.kind


class Slot(NamedTuple):
    """Maps a node attribute to an XML path relative to the node element.

    `path` segments are separated by "/"; "@Name" addresses an attribute
    and "." the element text. `node` is the child node class, `bool` for
    xs:boolean leaves and None for plain text. `many` marks repeated
    elements collected into a tuple.
    """

    attr: str
    path: str
    node: object = None
    many: bool = False


_COMMON_SLOTS: Dict[type, Tuple[Slot, ...]] = {
    PostalAddress: (
        Slot("street_name", "StrtNm"),
        Slot("postal_code", "PstCd"),
        Slot("town_name", "TwnNm"),
        Slot("country", "Ctry"),
        Slot("address_lines", "AdrLine", many=True),
    ),
    PartyIdentification: (
        Slot("name", "Nm"),
        Slot("postal_address", "PstlAdr", PostalAddress),
    ),
    Account: (
        Slot("iban", "Id/IBAN"),
        Slot("currency", "Ccy"),
    ),
    SchemeIdentification: (
        Slot("identification", "Id/PrvtId/Othr/Id"),
        Slot("scheme_name", "Id/PrvtId/Othr/SchmeNm/Prtry"),
    ),
    PaymentTypeInformation: (
        Slot("instruction_priority", "InstrPrty"),
        Slot("service_level", "SvcLvl/Cd"),
        Slot("local_instrument", "LclInstrm/Cd"),
        Slot("sequence_type", "SeqTp"),
    ),
    PaymentIdentification: (
        Slot("instruction_id", "InstrId"),
        Slot("end_to_end_id", "EndToEndId"),
    ),
    InstructedAmount: (
        Slot("currency", "@Ccy"),
        Slot("value", "."),
    ),
    MandateRelatedInformation: (
        Slot("mandate_id", "MndtId"),
        Slot("date_of_signature", "DtOfSgntr"),
    ),
    GroupHeader: (
        Slot("message_id", "MsgId"),
        Slot("creation_date_time", "CreDtTm"),
        Slot("number_of_transactions", "NbOfTxs"),
        Slot("control_sum", "CtrlSum"),
        Slot("initiating_party", "InitgPty", PartyIdentification),
    ),
    Initiation: (
        Slot("group_header", "GrpHdr", GroupHeader),
        Slot("payments", "PmtInf", PaymentInformation, many=True),
    ),
}

_ROOT_TAGS = {
    PaymentKind.DIRECT_DEBIT: "CstmrDrctDbtInitn",
    PaymentKind.CREDIT_TRANSFER: "CstmrCdtTrfInitn",
}

_KIND_SLOTS: Dict[PaymentKind, Dict[type, Tuple[Slot, ...]]] = {
    PaymentKind.DIRECT_DEBIT: {
        PaymentInformation: (
            Slot("payment_information_id", "PmtInfId"),
            Slot("payment_method", "PmtMtd"),
            Slot("batch_booking", "BtchBookg", bool),
            Slot("number_of_transactions", "NbOfTxs"),
            Slot("control_sum", "CtrlSum"),
            Slot("payment_type_information", "PmtTpInf", PaymentTypeInformation),
            Slot("requested_date", "ReqdColltnDt"),
            Slot("creditor", "Cdtr", PartyIdentification),
            Slot("creditor_account", "CdtrAcct", Account),
            Slot("creditor_agent", "CdtrAgt", Agent),
            Slot("charge_bearer", "ChrgBr"),
            Slot("creditor_scheme_identification", "CdtrSchmeId", SchemeIdentification),
            Slot("transactions", "DrctDbtTxInf", TransactionInformation, many=True),
        ),
        TransactionInformation: (
            Slot("payment_id", "PmtId", PaymentIdentification),
            Slot("instructed_amount", "InstdAmt", InstructedAmount),
            Slot("mandate", "DrctDbtTx/MndtRltdInf", MandateRelatedInformation),
            Slot("debtor_agent", "DbtrAgt", Agent),
            Slot("debtor", "Dbtr", PartyIdentification),
            Slot("debtor_account", "DbtrAcct", Account),
            Slot("remittance_information", "RmtInf/Ustrd"),
        ),
    },
    PaymentKind.CREDIT_TRANSFER: {
        PaymentInformation: (
            Slot("payment_information_id", "PmtInfId"),
            Slot("payment_method", "PmtMtd"),
            Slot("batch_booking", "BtchBookg", bool),
            Slot("number_of_transactions", "NbOfTxs"),
            Slot("control_sum", "CtrlSum"),
            Slot("payment_type_information", "PmtTpInf", PaymentTypeInformation),
            Slot("requested_date", "ReqdExctnDt"),
            Slot("debtor", "Dbtr", PartyIdentification),
            Slot("debtor_account", "DbtrAcct", Account),
            Slot("debtor_agent", "DbtrAgt", Agent),
            Slot("charge_bearer", "ChrgBr"),
            Slot("transactions", "CdtTrfTxInf", TransactionInformation, many=True),
        ),
        TransactionInformation: (
            Slot("payment_id", "PmtId", PaymentIdentification),
            Slot("instructed_amount", "Amt/InstdAmt", InstructedAmount),
            Slot("creditor_agent", "CdtrAgt", Agent),
            Slot("creditor", "Cdtr", PartyIdentification),
            Slot("creditor_account", "CdtrAcct", Account),
            Slot("remittance_information", "RmtInf/Ustrd"),
        ),
    },
}
