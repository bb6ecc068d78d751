from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from codec import parse_amount, parse_date, parse_timestamp, render_amount, render_date, render_timestamp
from config import get_config
from controlsum import compute_control_sum
from document import (
    Account,
    Agent,
    Document,
    GroupHeader,
    Initiation,
    InstructedAmount,
    MandateRelatedInformation,
    PartyIdentification,
    PaymentIdentification,
    PaymentInformation,
    PaymentTypeInformation,
    PostalAddress,
    SchemaVersion,
    SchemeIdentification,
    TransactionInformation,
)
from errors import ConversionError, FormatError, GenerationError, RandomnessError
from identifiers import new_id
from order import Order, Party, PaymentKind, Transaction

PAYMENT_METHODS = {
    PaymentKind.DIRECT_DEBIT: "DD",
    PaymentKind.CREDIT_TRANSFER: "TRF",
}


def default_version(kind: PaymentKind) -> SchemaVersion:
    versions = get_config().versions
    if kind is PaymentKind.DIRECT_DEBIT:
        return SchemaVersion(versions.direct_debit)
    return SchemaVersion(versions.credit_transfer)


def _party_block(party: Party):
    identification = PartyIdentification(
        name=party.name or None,
        postal_address=PostalAddress(
            street_name=party.street or None,
            postal_code=party.postal_code or None,
            town_name=party.place or None,
            country=party.country or None,
            address_lines=party.address_lines,
        ),
    )
    return identification, Account(iban=party.iban or None), Agent(bic=party.bic or None)


def _transaction_block(order: Order, t: Transaction, index: int) -> TransactionInformation:
    party, account, agent = _party_block(t.counterparty)
    common = dict(
        payment_id=PaymentIdentification(
            instruction_id=t.instruction_id,
            end_to_end_id=t.end_to_end_id or t.name,
        ),
        instructed_amount=InstructedAmount(
            value=render_amount(t.amount, field=f"transaction {index} amount"),
            currency=t.currency,
        ),
        remittance_information=t.remittance_information or t.name,
    )
    if order.kind is PaymentKind.DIRECT_DEBIT:
        signed = t.mandate_signature_date or order.execution_date
        return TransactionInformation(
            mandate=MandateRelatedInformation(
                mandate_id=t.mandate_id or order.party.iban,
                date_of_signature=render_date(signed),
            ),
            debtor_agent=agent,
            debtor=party,
            debtor_account=account,
            **common,
        )
    return TransactionInformation(
        creditor_agent=agent,
        creditor=party,
        creditor_account=account,
        **common,
    )


def to_document(order: Order, version: Optional[SchemaVersion] = None, now: Optional[datetime] = None) -> Document:
    version = SchemaVersion(version) if version is not None else default_version(order.kind)
    if version.kind is not order.kind:
        raise ValueError(f"{version.value} cannot carry a {order.kind.value} order")
    scheme = get_config().scheme
    direct_debit = order.kind is PaymentKind.DIRECT_DEBIT

    transactions = tuple(_transaction_block(order, t, i) for i, t in enumerate(order.transactions))
    number_of_transactions = str(len(transactions))
    control_sum = compute_control_sum(order.transactions)

    try:
        message_id = new_id()
        payment_information_id = new_id()
    except RandomnessError as exc:
        raise GenerationError(f"could not generate message identifiers: {exc}") from exc

    party, account, agent = _party_block(order.party)
    sides = (
        dict(creditor=party, creditor_account=account, creditor_agent=agent)
        if direct_debit
        else dict(debtor=party, debtor_account=account, debtor_agent=agent)
    )
    scheme_identification = None
    scheme_id = order.creditor_scheme_id or order.party.iban
    # CdtrSchmeId without Othr/Id is schema invalid, leave the block out
    if direct_debit and scheme_id:
        scheme_identification = SchemeIdentification(
            identification=scheme_id,
            scheme_name=scheme.scheme_name,
        )

    payment_information = PaymentInformation(
        payment_information_id=payment_information_id,
        payment_method=PAYMENT_METHODS[order.kind],
        batch_booking=order.batch_booking,
        number_of_transactions=number_of_transactions,
        control_sum=control_sum,
        payment_type_information=PaymentTypeInformation(
            service_level=scheme.service_level,
            local_instrument=scheme.local_instrument if direct_debit else None,
            sequence_type=scheme.sequence_type if direct_debit else None,
        ),
        requested_date=render_date(order.execution_date),
        charge_bearer=scheme.charge_bearer,
        creditor_scheme_identification=scheme_identification,
        transactions=transactions,
        **sides,
    )
    group_header = GroupHeader(
        message_id=message_id,
        creation_date_time=render_timestamp(now or datetime.now()),
        number_of_transactions=number_of_transactions,
        control_sum=control_sum,
        initiating_party=PartyIdentification(name=order.party.name or None),
    )
    return Document(version=version, initiation=Initiation(group_header=group_header, payments=(payment_information,)))


def _explicit(value, legacy):
    return None if value is None or value == legacy else value


def _flatten(identification: Optional[PartyIdentification], account: Optional[Account], agent: Optional[Agent]) -> dict:
    identification = identification or PartyIdentification()
    address = identification.postal_address or PostalAddress()
    return dict(
        name=identification.name or "",
        street=address.street_name or "",
        postal_code=address.postal_code or "",
        place=address.town_name or "",
        country=address.country or "",
        address_lines=address.address_lines,
        iban=(account or Account()).iban or "",
        bic=(agent or Agent()).bic or "",
    )


def _to_transaction(document: Document, order_party: Party, execution_date, info: TransactionInformation, index: int) -> Transaction:
    direct_debit = document.kind is PaymentKind.DIRECT_DEBIT
    if direct_debit:
        fields = _flatten(info.debtor, info.debtor_account, info.debtor_agent)
    else:
        fields = _flatten(info.creditor, info.creditor_account, info.creditor_agent)
    amount_path = "InstdAmt" if direct_debit else "Amt/InstdAmt"
    instructed = info.instructed_amount or InstructedAmount()
    try:
        amount = parse_amount(instructed.value, field=amount_path)
    except FormatError as exc:
        raise ConversionError(str(exc), field=amount_path, value=instructed.value, index=index) from exc

    payment_id = info.payment_id or PaymentIdentification()
    mandate_id = None
    signed = None
    if direct_debit and info.mandate is not None:
        mandate_id = _explicit(info.mandate.mandate_id, order_party.iban)
        if info.mandate.date_of_signature is not None:
            path = "DrctDbtTx/MndtRltdInf/DtOfSgntr"
            try:
                signed = _explicit(parse_date(info.mandate.date_of_signature, field=path), execution_date)
            except FormatError as exc:
                raise ConversionError(str(exc), field=path, value=info.mandate.date_of_signature, index=index) from exc

    return Transaction(
        currency=instructed.currency or "",
        amount=amount,
        end_to_end_id=_explicit(payment_id.end_to_end_id, fields["name"]),
        instruction_id=payment_id.instruction_id,
        remittance_information=_explicit(info.remittance_information, fields["name"]),
        mandate_id=mandate_id,
        mandate_signature_date=signed,
        **fields,
    )


def _to_order(document: Document, payment: PaymentInformation, created_at: Optional[datetime]) -> Order:
    direct_debit = document.kind is PaymentKind.DIRECT_DEBIT
    date_path = "PmtInf/ReqdColltnDt" if direct_debit else "PmtInf/ReqdExctnDt"
    try:
        execution_date = parse_date(payment.requested_date, field=date_path)
    except FormatError as exc:
        raise ConversionError(str(exc), field=date_path, value=payment.requested_date) from exc

    if direct_debit:
        party = Party(**_flatten(payment.creditor, payment.creditor_account, payment.creditor_agent))
    else:
        party = Party(**_flatten(payment.debtor, payment.debtor_account, payment.debtor_agent))

    transactions = tuple(
        _to_transaction(document, party, execution_date, info, index)
        for index, info in enumerate(payment.transactions)
    )
    scheme_id = None
    if payment.creditor_scheme_identification is not None:
        scheme_id = _explicit(payment.creditor_scheme_identification.identification, party.iban)

    return Order(
        execution_date=execution_date,
        party=party,
        transactions=transactions,
        kind=document.kind,
        creditor_scheme_id=scheme_id,
        batch_booking=payment.batch_booking,
        created_at=created_at,
    )


def to_orders(document: Document) -> Tuple[Order, ...]:
    """One Order per PmtInf block, in document order."""
    header = document.initiation.group_header
    try:
        created_at = parse_timestamp(header.creation_date_time, field="GrpHdr/CreDtTm")
    except FormatError as exc:
        raise ConversionError(str(exc), field="GrpHdr/CreDtTm", value=header.creation_date_time) from exc
    return tuple(_to_order(document, payment, created_at) for payment in document.initiation.payments)


def to_order(document: Document) -> Order:
    count = len(document.initiation.payments)
    if count != 1:
        raise ConversionError(f"document carries {count} payment blocks, convert it with to_orders", field="PmtInf")
    return to_orders(document)[0]


def _block_total(payment: PaymentInformation, problems: List[str], label: str) -> Decimal:
    total = Decimal("0")
    for index, info in enumerate(payment.transactions):
        value = (info.instructed_amount or InstructedAmount()).value
        try:
            total += parse_amount(value)
        except FormatError:
            problems.append(f"{label} transaction {index}: unreadable amount {value!r}")
    return total


def _compare(level: str, count, stated_sum, actual_count: int, actual_sum: Decimal, problems: List[str]):
    if count is not None and count != str(actual_count):
        problems.append(f"{level}/NbOfTxs states {count}, found {actual_count}")
    if stated_sum is None:
        return
    try:
        stated = parse_amount(stated_sum)
    except FormatError:
        problems.append(f"{level}/CtrlSum unreadable: {stated_sum!r}")
        return
    if stated != actual_sum:
        problems.append(f"{level}/CtrlSum states {stated_sum}, transactions sum to {actual_sum:f}")


def check_totals(document: Document) -> List[str]:
    """Compare stated NbOfTxs / CtrlSum with the transactions actually present.

    Returns one message per mismatch, an empty list when the totals agree.
    """
    header = document.initiation.group_header
    payments = document.initiation.payments
    problems: List[str] = []
    grand_count = 0
    grand_total = Decimal("0")
    for position, payment in enumerate(payments):
        level = "PmtInf" if len(payments) == 1 else f"PmtInf[{position}]"
        total = _block_total(payment, problems, level)
        _compare(level, payment.number_of_transactions, payment.control_sum, len(payment.transactions), total, problems)
        grand_count += len(payment.transactions)
        grand_total += total
    _compare("GrpHdr", header.number_of_transactions, header.control_sum, grand_count, grand_total, problems)

    for problem in problems:
        logging.warning("message %s: %s", header.message_id, problem)
    return problems
