import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from order import Order, Party, PaymentKind
from orderload import load_transactions
from painxml import parse, render
from transform import check_totals, to_document, to_orders

#Sample pain.008 file
xmlpath = Path(__file__).parent.parent / "data" / "sample.xml"

def _party_from_env():
    return Party(
        name=os.getenv("PAIN_PARTY_NAME", ""),
        street=os.getenv("PAIN_PARTY_STREET", ""),
        postal_code=os.getenv("PAIN_PARTY_POSTAL_CODE", ""),
        place=os.getenv("PAIN_PARTY_PLACE", ""),
        country=os.getenv("PAIN_PARTY_COUNTRY", ""),
        iban=os.getenv("PAIN_PARTY_IBAN", ""),
        bic=os.getenv("PAIN_PARTY_BIC", ""),
    )

def main(path):
    path = Path(path)
    if path.suffix.lower() == ".xml":
        #pain XML -> order JSON
        document = parse(path.read_bytes())
        orders = to_orders(document)
        result = orders[0].to_dict() if len(orders) == 1 else {"orders": [o.to_dict() for o in orders]}
        result["warnings"] = check_totals(document)
        payload = json.dumps(result, indent=2, ensure_ascii=False)
        print(payload)
        return result
    #CSV / XLSX batch -> pain XML, party details from the environment
    execution_date = date.fromisoformat(os.getenv("PAIN_EXECUTION_DATE", date.today().isoformat()))
    order = Order(
        kind=PaymentKind(os.getenv("PAIN_KIND", PaymentKind.DIRECT_DEBIT.value)),
        execution_date=execution_date,
        party=_party_from_env(),
        transactions=tuple(load_transactions(path)),
        creditor_scheme_id=os.getenv("PAIN_CREDITOR_SCHEME_ID") or None,
    )
    xml_bytes = render(to_document(order))
    sys.stdout.write(xml_bytes.decode("utf-8") + "\n")
    return xml_bytes

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main(sys.argv[1] if len(sys.argv) > 1 else xmlpath)
