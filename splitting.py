"""
Per-expense split calculation.

Shares are debited only from participants that are still current members of
the group. Proportional strategies reconcile rounding by giving the whole
remainder to the first included participant, so shares always sum to the
expense amount to the cent.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from errors import EngineWarning, WarningKind
from models import Expense, SplitStrategy
from utils import ZERO, is_zero, round2

logger = logging.getLogger(__name__)


def compute_shares(expense: Expense,
                   current_member_ids: Iterable[str],
                   warnings: Optional[List[EngineWarning]] = None) -> Dict[str, Decimal]:
    current = set(current_member_ids)
    participants = [pid for pid in expense.participant_ids if pid in current]
    if not participants:
        return {}

    strategy = expense.strategy
    details = expense.raw_inputs

    if strategy is SplitStrategy.EQUALLY:
        return _equal_shares(expense.amount, participants)

    if details is None:
        _warn(warnings, expense,
              f"Split details missing for {strategy.value} expense, "
              f"falling back to an equal split")
        return _equal_shares(expense.amount, participants)

    if strategy is SplitStrategy.BY_FIXED_AMOUNT:
        shares = {pid: round2(details.get(pid, ZERO)) for pid in participants}
        if len(participants) == len(expense.participant_ids):
            total = sum(shares.values(), ZERO)
            if not is_zero(total - expense.amount):
                _warn(warnings, expense,
                      f"Split amounts sum to {total} but expense total is "
                      f"{expense.amount}")
        return shares

    if strategy is SplitStrategy.BY_PERCENTAGE:
        shares = {
            pid: round2(expense.amount * details.get(pid, ZERO) / 100)
            for pid in participants
        }
        return _assign_remainder(expense.amount, shares, participants)

    if strategy is SplitStrategy.BY_SHARES:
        total = sum((details.get(pid, ZERO) for pid in participants), ZERO)
        if total <= 0:
            _warn(warnings, expense,
                  "Share weights sum to zero, falling back to an equal split")
            return _equal_shares(expense.amount, participants)
        shares = {
            pid: round2(expense.amount * details.get(pid, ZERO) / total)
            for pid in participants
        }
        return _assign_remainder(expense.amount, shares, participants)

    raise ValueError(f"Unknown split strategy: {strategy!r}")


def _equal_shares(amount: Decimal, participants: List[str]) -> Dict[str, Decimal]:
    share = round2(amount / len(participants))
    shares = {pid: share for pid in participants}
    return _assign_remainder(amount, shares, participants)


def _assign_remainder(amount: Decimal,
                      shares: Dict[str, Decimal],
                      participants: List[str]) -> Dict[str, Decimal]:
    remainder = round2(amount) - round2(sum(shares.values(), ZERO))
    if remainder != 0:
        first = participants[0]
        shares[first] = round2(shares[first] + remainder)
    return shares


def _warn(warnings: Optional[List[EngineWarning]], expense: Expense, message: str) -> None:
    logger.warning("Expense %s (%s): %s", expense.id, expense.description, message)
    if warnings is not None:
        warnings.append(EngineWarning(
            kind=WarningKind.DATA_CONSISTENCY,
            message=message,
            expense_id=expense.id,
        ))
