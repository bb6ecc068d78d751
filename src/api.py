import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import FastAPI, File, Form, UploadFile, Body, HTTPException
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from document import SchemaVersion
from errors import PainError
from order import Order, Party, PaymentKind, Transaction
from orderload import load_transactions
from painxml import parse, render
from transform import check_totals, to_document, to_orders
from config import get_config

config = get_config()

app = FastAPI(title="pain XML API", version="0.1.0")

class PartyIn(BaseModel):
    name: str = ""
    street: str = ""
    postal_code: str = ""
    place: str = ""
    country: str = Field("", max_length=2)
    address_lines: List[str] = Field(default_factory=list, max_length=7)
    iban: str = ""
    bic: str = ""

class TransactionIn(PartyIn):
    currency: str = Field("EUR", min_length=3, max_length=3)
    amount: Decimal = Field(..., ge=0)
    end_to_end_id: Optional[str] = None
    instruction_id: Optional[str] = None
    remittance_information: Optional[str] = None
    mandate_id: Optional[str] = None
    mandate_signature_date: Optional[date] = None

class OrderIn(BaseModel):
    kind: PaymentKind = PaymentKind.DIRECT_DEBIT
    version: Optional[SchemaVersion] = None
    execution_date: date
    party: PartyIn
    transactions: List[TransactionIn] = []
    creditor_scheme_id: Optional[str] = None
    batch_booking: Optional[bool] = None

    def to_order(self) -> Order:
        return Order(
            kind=self.kind,
            execution_date=self.execution_date,
            party=Party(**self.party.model_dump()),
            transactions=tuple(Transaction(**t.model_dump()) for t in self.transactions),
            creditor_scheme_id=self.creditor_scheme_id,
            batch_booking=self.batch_booking,
        )

class XmlRequest(BaseModel):
    xml: str

def _enforce_size(n_bytes: int):
    limit = config.api.max_request_mb * 1048576
    if n_bytes > limit:
        raise HTTPException(status_code=413, detail="payload too large")

def _xml_response(order: Order, version: Optional[SchemaVersion]) -> Response:
    document = to_document(order, version)
    return Response(
        content=render(document),
        media_type="application/xml",
        headers={"X-Message-Id": document.initiation.group_header.message_id},
    )

def _order_response(xml_bytes: bytes) -> JSONResponse:
    document = parse(xml_bytes)
    orders = to_orders(document)
    #single block documents keep the flat order shape
    if len(orders) == 1:
        result = orders[0].to_dict()
    else:
        result = {"orders": [o.to_dict() for o in orders]}
    result["version"] = document.version.value
    result["message_id"] = document.initiation.group_header.message_id
    result["warnings"] = check_totals(document)
    return JSONResponse(content=result)

@app.get("/health")
def health():
    return {"status": "ok"}

@app.post("/document")
def document(req: OrderIn = Body(...)):
    try:
        return _xml_response(req.to_order(), req.version)
    except ValueError as e:
        logging.error("order rejected", exc_info=True)
        raise HTTPException(status_code=400, detail=str(e))
    except PainError as e:
        logging.error("order could not be rendered", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/document/file")
async def document_file(
    file: UploadFile = File(...),
    execution_date: date = Form(...),
    name: str = Form(...),
    iban: str = Form(...),
    bic: str = Form(""),
    street: str = Form(""),
    postal_code: str = Form(""),
    place: str = Form(""),
    country: str = Form(""),
    kind: PaymentKind = Form(PaymentKind.DIRECT_DEBIT),
    version: Optional[SchemaVersion] = Form(None),
    creditor_scheme_id: Optional[str] = Form(None),
):
    data = await file.read()
    _enforce_size(len(data))
    try:
        order = Order(
            kind=kind,
            execution_date=execution_date,
            party=Party(name=name, street=street, postal_code=postal_code, place=place, country=country, iban=iban, bic=bic),
            transactions=tuple(load_transactions(data, filename=file.filename)),
            creditor_scheme_id=creditor_scheme_id,
        )
        return _xml_response(order, version)
    except ValueError as e:
        logging.error("batch %s rejected", file.filename, exc_info=True)
        raise HTTPException(status_code=400, detail=str(e))
    except PainError as e:
        logging.error("batch %s could not be rendered", file.filename, exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/order")
def order(req: XmlRequest = Body(...)):
    data = req.xml.encode("utf-8")
    _enforce_size(len(data))
    try:
        return _order_response(data)
    except ValueError as e:
        logging.error("document rejected", exc_info=True)
        raise HTTPException(status_code=400, detail=str(e))

@app.post("/order/file")
async def order_file(file: UploadFile = File(...)):
    xml_bytes = await file.read()
    _enforce_size(len(xml_bytes))
    try:
        return _order_response(xml_bytes)
    except ValueError as e:
        logging.error("document %s rejected", file.filename, exc_info=True)
        raise HTTPException(status_code=400, detail=str(e))
