from dataclasses import replace
from pathlib import Path
from fastapi.testclient import TestClient
from api import app
from painxml import parse, render

client = TestClient(app)
DATA = Path(__file__).parent.parent / "data"

ORDER = {
    "execution_date": "2024-05-06",
    "party": {"name": "Jane Doe", "iban": "DE09876543210987654321", "bic": "GENODEF1M02", "country": "DE"},
    "transactions": [
        {"name": "John Doe", "iban": "DE12345678901234567890", "bic": "GENODEF1M01", "currency": "EUR", "amount": "100.00"},
    ],
}

def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

def test_document_from_order():
    r = client.post("/document", json=ORDER)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/xml")
    assert len(r.headers["X-Message-Id"]) == 15
    assert b"<CtrlSum>100.00</CtrlSum>" in r.content
    assert b"pain.008.001.08" in r.content

def test_document_rejects_wrong_version():
    r = client.post("/document", json={**ORDER, "version": "pain.001.001.03"})
    assert r.status_code == 400

def test_document_rejects_oversized_amount():
    tx = {**ORDER["transactions"][0], "amount": "1e30"}
    r = client.post("/document", json={**ORDER, "transactions": [tx]})
    assert r.status_code == 400
    assert "integer digits" in r.json()["detail"]

def test_document_identifier_failure_is_logged_server_error(monkeypatch, caplog):
    def boom(seq):
        raise OSError("no entropy")
    monkeypatch.setattr("identifiers.secrets.choice", boom)
    r = client.post("/document", json=ORDER)
    assert r.status_code == 500
    assert "identifiers" in r.json()["detail"]
    assert any(rec.exc_info for rec in caplog.records if rec.levelname == "ERROR")

def test_order_round_trip():
    xml = client.post("/document", json={**ORDER, "kind": "credit_transfer"}).text
    r = client.post("/order", json={"xml": xml})
    assert r.status_code == 200
    body = r.json()
    assert body["kind"] == "credit_transfer"
    assert body["version"] == "pain.001.001.03"
    assert body["execution_date"] == "2024-05-06"
    assert body["party"]["name"] == "Jane Doe"
    assert body["transactions"][0]["amount"] == "100.00"
    assert body["warnings"] == []

def test_order_file():
    with (DATA / "sample.xml").open("rb") as f:
        r = client.post("/order/file", files={"file": ("sample.xml", f, "application/xml")})
    assert r.status_code == 200
    assert len(r.json()["transactions"]) == 2

def test_order_rejects_bad_xml():
    r = client.post("/order", json={"xml": "<Document><AppHdr/><Test>ok</Test></Document>"})
    assert r.status_code == 400

def test_document_from_batch_file():
    with (DATA / "batch.csv").open("rb") as f:
        r = client.post(
            "/document/file",
            files={"file": ("batch.csv", f, "text/csv")},
            data={"execution_date": "2024-05-06", "name": "Jane Doe", "iban": "DE09876543210987654321"},
        )
    assert r.status_code == 200
    assert r.content.count(b"<DrctDbtTxInf>") == 2
    assert b"<CtrlSum>150.50</CtrlSum>" in r.content

def test_order_with_several_payment_blocks():
    first = parse(client.post("/document", json={**ORDER, "kind": "credit_transfer"}).content)
    second = parse(client.post("/document", json={**ORDER, "kind": "credit_transfer", "execution_date": "2024-05-07"}).content)
    merged = replace(first, initiation=replace(first.initiation, payments=first.initiation.payments + second.initiation.payments))
    r = client.post("/order", json={"xml": render(merged).decode("utf-8")})
    assert r.status_code == 200
    body = r.json()
    assert [o["execution_date"] for o in body["orders"]] == ["2024-05-06", "2024-05-07"]
    assert body["version"] == "pain.001.001.03"
    assert "GrpHdr/NbOfTxs states 1, found 2" in body["warnings"]
