import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from errors import EngineWarning, WarningKind
from models import (Balance, Expense, Group, Member, Settlement, SettlementPayment,
                    SettlementPlan, SettlementSuggestion)
from splitting import compute_shares
from utils import EPSILON, ZERO, is_zero, round2

logger = logging.getLogger(__name__)


def calculate_settlement(group: Group) -> Settlement:
    warnings: List[EngineWarning] = []
    balances = calculate_balances(group.members, group.expenses,
                                  group.settlement_payments, warnings)
    plan = plan_settlements(balances)
    warnings.extend(plan.warnings)

    balances = sorted(balances, key=lambda b: (-b.amount, b.member_name, b.member_id))

    return Settlement(
        balances=balances,
        suggestions=plan.suggestions,
        warnings=warnings
    )


def calculate_balances(members: Sequence[Member],
                       expenses: Sequence[Expense],
                       settlement_payments: Sequence[SettlementPayment] = (),
                       warnings: Optional[List[EngineWarning]] = None) -> List[Balance]:
    balance_map: Dict[str, Decimal] = {m.id: ZERO for m in members}
    current = set(balance_map)

    for expense in expenses:
        if expense.amount <= 0:
            continue

        if expense.payer_id in current:
            balance_map[expense.payer_id] += expense.amount

        shares = compute_shares(expense, current, warnings)
        for member_id, share in shares.items():
            balance_map[member_id] -= share

    for payment in settlement_payments:
        if payment.payer_id in current and payment.payee_id in current:
            balance_map[payment.payer_id] += payment.amount
            balance_map[payment.payee_id] -= payment.amount

    total = sum(balance_map.values(), ZERO)
    if not is_zero(total):
        message = (f"Balances sum to {round2(total)} instead of zero; a removed "
                   f"member is still referenced by an expense")
        logger.warning(message)
        if warnings is not None:
            warnings.append(EngineWarning(kind=WarningKind.DATA_CONSISTENCY,
                                          message=message))

    return [
        Balance(member_id=m.id, member_name=m.name, amount=round2(balance_map[m.id]))
        for m in members
    ]


def suggest_settlements(balances: Sequence[Balance]) -> List[SettlementSuggestion]:
    return plan_settlements(balances).suggestions


def plan_settlements(balances: Sequence[Balance]) -> SettlementPlan:
    """
    Greedy largest-first matching of debtors against creditors.

    Not a global minimum, but deterministic: equal balances are ordered by
    member id. Returns an empty plan when everything is already settled.
    """
    pending = [b for b in balances if abs(b.amount) >= EPSILON]
    if not pending:
        return SettlementPlan()

    debtors = [_Position(b) for b in pending if b.amount <= -EPSILON]
    creditors = [_Position(b) for b in pending if b.amount >= EPSILON]
    debtors.sort(key=_debtor_key)
    creditors.sort(key=_creditor_key)

    suggestions = []
    while debtors and creditors:
        debtor = debtors.pop(0)
        creditor = creditors.pop(0)

        transfer = round2(min(abs(debtor.amount), creditor.amount))
        if transfer < EPSILON:
            debtors.insert(0, debtor)
            creditors.insert(0, creditor)
            break

        suggestions.append(SettlementSuggestion(
            payer_id=debtor.member_id,
            payer_name=debtor.member_name,
            payee_id=creditor.member_id,
            payee_name=creditor.member_name,
            amount=transfer
        ))

        debtor.amount = round2(debtor.amount + transfer)
        creditor.amount = round2(creditor.amount - transfer)

        if abs(debtor.amount) >= EPSILON:
            _insert_sorted(debtors, debtor, _debtor_key)
        if creditor.amount >= EPSILON:
            _insert_sorted(creditors, creditor, _creditor_key)

    warnings = []
    residual = debtors + creditors
    if residual:
        message = "Unsettled balances remain: " + ", ".join(
            f"{p.member_name or p.member_id} {p.amount}" for p in residual)
        logger.warning(message)
        warnings.append(EngineWarning(
            kind=WarningKind.RESIDUAL_SETTLEMENT,
            message=message,
            member_ids=[p.member_id for p in residual]
        ))

    return SettlementPlan(suggestions=suggestions, warnings=warnings)


class _Position:
    """Mutable working copy of a balance while the solver runs."""

    __slots__ = ("member_id", "member_name", "amount")

    def __init__(self, balance: Balance):
        self.member_id = balance.member_id
        self.member_name = balance.member_name
        self.amount = round2(balance.amount)


def _debtor_key(p: _Position):
    return (p.amount, p.member_id)


def _creditor_key(p: _Position):
    return (-p.amount, p.member_id)


def _insert_sorted(positions: List[_Position], item: _Position, key) -> None:
    k = key(item)
    for i, p in enumerate(positions):
        if key(p) > k:
            positions.insert(i, item)
            return
    positions.append(item)
