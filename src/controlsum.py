from decimal import Decimal
from typing import Iterable

from codec import render_amount


def compute_control_sum(transactions: Iterable) -> str:
    total = Decimal("0")
    for t in transactions:
        total += t.amount
    return render_amount(total, field="CtrlSum")
