from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
import xml.etree.ElementTree as ET
import pytest
from document import SchemaVersion
from errors import ConversionError, DocumentError, GenerationError
from order import Order, Party, PaymentKind, Transaction
from painxml import parse, render
from transform import check_totals, to_document, to_order, to_orders

DATA = Path(__file__).parent.parent / "data"
NS = {"p": "urn:iso:std:iso:20022:tech:xsd:pain.008.001.08"}
CT_NS = {"c": "urn:iso:std:iso:20022:tech:xsd:pain.001.001.03"}

JOHN = Transaction(
    name="John Doe",
    street="Main Street 1",
    postal_code="12345",
    place="Small Town",
    country="DE",
    iban="DE12345678901234567890",
    bic="GENODEF1M01",
    currency="EUR",
    amount=Decimal("100.00"),
)
JANE = Party(
    name="Jane Doe",
    street="Main Street 2",
    postal_code="54321",
    place="Big City",
    country="DE",
    iban="DE09876543210987654321",
    bic="GENODEF1M02",
)

def _order(**kwargs):
    values = dict(execution_date=date(2024, 5, 6), party=JANE, transactions=(JOHN,))
    values.update(kwargs)
    return Order(**values)

def test_to_document_direct_debit():
    doc = to_document(_order())
    header = doc.initiation.group_header
    payment = doc.initiation.payments[0]
    assert doc.xmlns == "urn:iso:std:iso:20022:tech:xsd:pain.008.001.08"
    assert header.control_sum == "100.00"
    assert payment.control_sum == "100.00"
    assert header.number_of_transactions == "1"
    assert len(payment.transactions) == 1
    assert payment.creditor.name == "Jane Doe"
    assert header.initiating_party.name == "Jane Doe"
    assert payment.payment_method == "DD"
    assert payment.requested_date == "2024-05-06"
    assert payment.payment_type_information.service_level == "SEPA"
    assert payment.payment_type_information.local_instrument == "Core"
    assert payment.payment_type_information.sequence_type == "FRST"
    assert payment.creditor_scheme_identification.identification == JANE.iban
    assert header.message_id != payment.payment_information_id
    assert len(header.message_id) == 15

    tx = payment.transactions[0]
    assert tx.payment_id.end_to_end_id == "John Doe"
    assert tx.remittance_information == "John Doe"
    assert tx.instructed_amount.value == "100.00"
    assert tx.instructed_amount.currency == "EUR"
    assert tx.mandate.mandate_id == JANE.iban
    assert tx.mandate.date_of_signature == "2024-05-06"
    assert tx.debtor_account.iban == "DE12345678901234567890"
    assert tx.debtor_agent.bic == "GENODEF1M01"

def test_explicit_fields_override_legacy_reuse():
    tx = replace(JOHN, end_to_end_id="E2E-1", remittance_information="Invoice 7", mandate_id="M-1",
                 mandate_signature_date=date(2023, 1, 2))
    doc = to_document(_order(transactions=(tx,), creditor_scheme_id="DE98ZZZ09999999999"))
    info = doc.initiation.payments[0].transactions[0]
    assert info.payment_id.end_to_end_id == "E2E-1"
    assert info.remittance_information == "Invoice 7"
    assert info.mandate.mandate_id == "M-1"
    assert info.mandate.date_of_signature == "2023-01-02"
    assert doc.initiation.payments[0].creditor_scheme_identification.identification == "DE98ZZZ09999999999"
    assert to_order(doc) == _order(transactions=(tx,), creditor_scheme_id="DE98ZZZ09999999999")

def test_creation_timestamp_uses_now():
    doc = to_document(_order(), now=datetime(2024, 5, 1, 9, 30, 15, 999))
    assert doc.initiation.group_header.creation_date_time == "2024-05-01T09:30:15"

def test_empty_order():
    doc = to_document(_order(transactions=()))
    assert doc.initiation.group_header.control_sum == "0.00"
    assert doc.initiation.group_header.number_of_transactions == "0"
    assert to_order(doc).transactions == ()

def test_round_trip_direct_debit():
    second = Transaction(name="Erika Mustermann", iban="DE02370400440532013000", bic="COBADEFFXXX",
                         currency="EUR", amount=Decimal("50.50"))
    original = _order(transactions=(JOHN, second), batch_booking=True)
    for version in (SchemaVersion.PAIN_008_001_08, SchemaVersion.PAIN_008_001_02):
        back = to_order(parse(render(to_document(original, version))))
        assert back == original
        assert back.execution_date == date(2024, 5, 6)
        assert [t.amount for t in back.transactions] == [Decimal("100.00"), Decimal("50.50")]

def test_round_trip_credit_transfer():
    original = _order(kind=PaymentKind.CREDIT_TRANSFER)
    doc = to_document(original)
    assert doc.version is SchemaVersion.PAIN_001_001_03
    payment = doc.initiation.payments[0]
    assert payment.payment_method == "TRF"
    assert payment.debtor.name == "Jane Doe"
    assert payment.creditor is None
    assert payment.creditor_scheme_identification is None
    assert payment.transactions[0].mandate is None
    assert payment.transactions[0].creditor.name == "John Doe"
    assert to_order(parse(render(doc))) == original

def test_version_must_match_kind():
    with pytest.raises(ValueError):
        to_document(_order(), SchemaVersion.PAIN_001_001_03)

def test_identifier_failure_is_generation_error(monkeypatch):
    def boom(seq):
        raise OSError("no entropy")
    monkeypatch.setattr("identifiers.secrets.choice", boom)
    with pytest.raises(GenerationError):
        to_document(_order())

def test_render_element_order_and_namespace():
    xml_bytes = render(to_document(_order()))
    root = ET.fromstring(xml_bytes)
    assert root.tag == "{urn:iso:std:iso:20022:tech:xsd:pain.008.001.08}Document"
    pmtinf = root.find("p:CstmrDrctDbtInitn/p:PmtInf", NS)
    tags = [c.tag.split("}")[-1] for c in pmtinf]
    assert tags == ["PmtInfId", "PmtMtd", "NbOfTxs", "CtrlSum", "PmtTpInf", "ReqdColltnDt", "Cdtr",
                    "CdtrAcct", "CdtrAgt", "ChrgBr", "CdtrSchmeId", "DrctDbtTxInf"]
    tx = pmtinf.find("p:DrctDbtTxInf", NS)
    assert [c.tag.split("}")[-1] for c in tx] == ["PmtId", "InstdAmt", "DrctDbtTx", "DbtrAgt", "Dbtr", "DbtrAcct", "RmtInf"]
    assert tx.find("p:InstdAmt", NS).get("Ccy") == "EUR"
    assert tx.find("p:InstdAmt", NS).text == "100.00"
    assert [c.tag.split("}")[-1] for c in tx.find("p:Dbtr/p:PstlAdr", NS)] == ["StrtNm", "PstCd", "TwnNm", "Ctry"]
    assert pmtinf.find("p:CdtrSchmeId/p:Id/p:PrvtId/p:Othr/p:SchmeNm/p:Prtry", NS).text == "SEPA"
    assert tx.find("p:DbtrAgt/p:FinInstnId/p:BICFI", NS).text == "GENODEF1M01"

def test_render_uses_bic_for_older_versions():
    xml_bytes = render(to_document(_order(), SchemaVersion.PAIN_008_001_02))
    assert b'xmlns="urn:iso:std:iso:20022:tech:xsd:pain.008.001.02"' in xml_bytes
    assert b"<BIC>GENODEF1M01</BIC>" in xml_bytes
    assert b"BICFI" not in xml_bytes

def test_render_omits_absent_optional_elements():
    bare = Transaction(name="Max", iban="DE02370400440532013000", amount=Decimal("1"))
    xml_bytes = render(to_document(_order(party=Party(name="Jane Doe", iban=JANE.iban), transactions=(bare,))))
    assert b"PstlAdr" not in xml_bytes
    assert b"BtchBookg" not in xml_bytes
    assert b"InstrId" not in xml_bytes
    assert b"<DbtrAgt>" not in xml_bytes
    assert b"<PmtMtd>DD</PmtMtd>" in xml_bytes

def test_parse_sample():
    doc = parse((DATA / "sample.xml").read_bytes())
    assert doc.version is SchemaVersion.PAIN_008_001_08
    assert doc.initiation.payments[0].payment_information_id == "Incasso SDD123"
    order = to_order(doc)
    assert order.kind is PaymentKind.DIRECT_DEBIT
    assert order.party == JANE
    assert order.execution_date == date(2024, 5, 6)
    assert order.created_at == datetime(2024, 5, 1, 10, 15)
    assert order.creditor_scheme_id == "DE98ZZZ09999999999"
    assert order.batch_booking is True
    first, second = order.transactions
    assert first.name == "John Doe"
    assert first.amount == Decimal("100.00")
    assert first.end_to_end_id == "INV-2024-001"
    assert first.remittance_information == "Invoice 2024-001"
    assert first.mandate_id == "MANDATE-0001"
    assert first.mandate_signature_date == date(2023, 11, 20)
    assert second.name == "Erika Mustermann"
    assert second.end_to_end_id is None
    assert second.remittance_information is None
    assert second.mandate_id is None
    assert second.mandate_signature_date is None
    assert second.street == ""
    assert check_totals(doc) == []

def test_parse_render_parse_is_stable():
    doc = parse((DATA / "sample.xml").read_bytes())
    assert parse(render(doc)) == doc

def test_parse_credit_transfer_sample():
    order = to_order(parse((DATA / "sample_ct.xml").read_bytes()))
    assert order.kind is PaymentKind.CREDIT_TRANSFER
    assert order.party.name == "Absender GmbH"
    assert order.party.bic == "BBBBBBBB"
    assert order.execution_date == date(2024, 6, 4)
    (tx,) = order.transactions
    assert tx.name == "Empfaenger"
    assert tx.iban == "DE00123456781234567891"
    assert tx.bic == "AAAAAAAA"
    assert tx.amount == Decimal("0.11")
    assert tx.end_to_end_id == "1234"
    assert tx.remittance_information == "TESTUEBERWEISUNG"

def test_stated_count_is_not_validated():
    doc = parse((DATA / "sample.xml").read_bytes())
    header = replace(doc.initiation.group_header, number_of_transactions="5", control_sum="1.00")
    doc = replace(doc, initiation=replace(doc.initiation, group_header=header))
    assert len(to_order(doc).transactions) == 2
    problems = check_totals(doc)
    assert "GrpHdr/NbOfTxs states 5, found 2" in problems
    assert any(p.startswith("GrpHdr/CtrlSum") for p in problems)

def test_malformed_timestamp_aborts():
    doc = to_document(_order())
    header = replace(doc.initiation.group_header, creation_date_time="2024-05-01T10:15:00Z")
    doc = replace(doc, initiation=replace(doc.initiation, group_header=header))
    with pytest.raises(ConversionError) as info:
        to_order(doc)
    assert info.value.field == "GrpHdr/CreDtTm"
    assert info.value.value == "2024-05-01T10:15:00Z"

def test_malformed_amount_names_transaction():
    xml_bytes = (DATA / "sample.xml").read_bytes().replace(b">50.50<", b">50.5.0<")
    with pytest.raises(ConversionError) as info:
        to_order(parse(xml_bytes))
    assert info.value.index == 1
    assert info.value.field == "InstdAmt"
    assert info.value.value == "50.5.0"

@pytest.mark.parametrize("payload", [
    b"<Document>",
    b"<Document/>",
    b'<Document xmlns="urn:iso:std:iso:20022:tech:xsd:pain.002.001.03"/>',
    b'<Other xmlns="urn:iso:std:iso:20022:tech:xsd:pain.008.001.08"/>',
    b'<Document xmlns="urn:iso:std:iso:20022:tech:xsd:pain.008.001.08"><CstmrDrctDbtInitn><GrpHdr/></CstmrDrctDbtInitn></Document>',
])
def test_parse_rejects_unusable_documents(payload):
    with pytest.raises(DocumentError):
        parse(payload)

def test_credit_transfer_with_several_payment_blocks():
    first = _order(kind=PaymentKind.CREDIT_TRANSFER)
    second = _order(kind=PaymentKind.CREDIT_TRANSFER, execution_date=date(2024, 5, 7),
                    party=Party(name="Absender GmbH", iban="DE00123456781234567890", bic="BBBBBBBB"))
    a, b = to_document(first), to_document(second)
    merged = replace(a, initiation=replace(a.initiation, payments=a.initiation.payments + b.initiation.payments))
    doc = parse(render(merged))
    assert len(doc.initiation.payments) == 2
    assert to_orders(doc) == (first, second)
    assert [o.execution_date for o in to_orders(doc)] == [date(2024, 5, 6), date(2024, 5, 7)]
    with pytest.raises(ConversionError) as info:
        to_order(doc)
    assert info.value.field == "PmtInf"
    problems = check_totals(doc)
    assert "GrpHdr/NbOfTxs states 1, found 2" in problems
    assert not any(p.startswith("PmtInf[") for p in problems)

def test_address_lines_are_carried():
    xml_bytes = (DATA / "sample_ct.xml").read_bytes().replace(
        b"<Nm>Empfaenger</Nm>",
        b"<Nm>Empfaenger</Nm><PstlAdr><Ctry>DE</Ctry><AdrLine>Hauptstr 1</AdrLine>"
        b"<AdrLine>10115 Berlin</AdrLine></PstlAdr>",
    )
    order = to_order(parse(xml_bytes))
    (tx,) = order.transactions
    assert tx.country == "DE"
    assert tx.street == ""
    assert tx.address_lines == ("Hauptstr 1", "10115 Berlin")
    rendered = render(to_document(order))
    address = ET.fromstring(rendered).find("c:CstmrCdtTrfInitn/c:PmtInf/c:CdtTrfTxInf/c:Cdtr/c:PstlAdr", CT_NS)
    assert [c.tag.split("}")[-1] for c in address] == ["Ctry", "AdrLine", "AdrLine"]
    assert to_order(parse(rendered)) == order

def test_padded_values_survive_round_trip():
    padded = replace(JOHN, name=" John ", street="Main Street 1 ")
    original = _order(transactions=(padded,))
    back = to_order(parse(render(to_document(original))))
    assert back.transactions[0].name == " John "
    assert back.transactions[0].street == "Main Street 1 "
    assert back == original

def test_scheme_identification_needs_an_identifier():
    order = _order(party=Party(name="Jane Doe"))
    xml_bytes = render(to_document(order))
    assert b"CdtrSchmeId" not in xml_bytes
    assert b"<Othr>" not in xml_bytes
    assert to_order(parse(xml_bytes)) == order
