"""
Append-only record of confirmed settlement payments.

Every confirmed suggestion becomes a SettlementPayment that the balance
calculation folds in, so a payment that already happened is never suggested
again.
"""
import logging
from decimal import Decimal
from typing import Iterable, Iterator, Optional, Tuple
import datetime as dt

from errors import SettlementError
from models import SettlementPayment, SettlementSuggestion
from utils import ZERO, round2

logger = logging.getLogger(__name__)


def confirm_settlement(suggestion: SettlementSuggestion,
                       group_id: Optional[str],
                       on: Optional[dt.datetime] = None) -> SettlementPayment:
    if not group_id:
        raise SettlementError("No group selected")

    amount = round2(suggestion.amount)
    if amount <= 0:
        raise SettlementError("Payment amount must be greater than zero")

    if suggestion.payer_id == suggestion.payee_id:
        raise SettlementError("Payer and payee must be different members")

    payment = SettlementPayment(
        payer_id=suggestion.payer_id,
        payee_id=suggestion.payee_id,
        amount=amount,
        date=on or dt.datetime.now(),
        group_id=group_id,
        payer_name=suggestion.payer_name,
        payee_name=suggestion.payee_name
    )
    logger.info("Settlement confirmed in group %s: %s -> %s %s",
                group_id, payment.payer_id, payment.payee_id, payment.amount)
    return payment


class SettlementLedger:

    def __init__(self, group_id: str, entries: Iterable[SettlementPayment] = ()):
        self.group_id = group_id
        self._entries = []
        for entry in entries:
            if entry.group_id != group_id:
                raise SettlementError(
                    f"Payment {entry.id} belongs to group {entry.group_id}, not {group_id}")
            self._entries.append(entry)

    @property
    def entries(self) -> Tuple[SettlementPayment, ...]:
        return tuple(self._entries)

    def confirm(self, suggestion: SettlementSuggestion,
                on: Optional[dt.datetime] = None) -> SettlementPayment:
        payment = confirm_settlement(suggestion, self.group_id, on)
        self._entries.append(payment)
        return payment

    def total_paid_by(self, member_id: str) -> Decimal:
        return sum((e.amount for e in self._entries if e.payer_id == member_id), ZERO)

    def total_received_by(self, member_id: str) -> Decimal:
        return sum((e.amount for e in self._entries if e.payee_id == member_id), ZERO)

    def __iter__(self) -> Iterator[SettlementPayment]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
