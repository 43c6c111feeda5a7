from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Sequence

from errors import ExpenseValidationError, ValidationErrorKind
from models import Expense, ExpenseDraft, Member, SplitStrategy
from utils import ZERO, is_zero, parse_decimal, round2

HUNDRED = Decimal("100")


def validate_expense(draft: ExpenseDraft,
                     members: Sequence[Member],
                     expense_id: Optional[str] = None) -> Expense:
    """
    Turn raw form input into an Expense, or raise ExpenseValidationError.

    Checks run in form order (description, amount, payer, participants,
    split inputs) and the first failing rule is reported.
    """
    member_map = {m.id: m for m in members}

    description = draft.description.strip()
    if not description:
        raise ExpenseValidationError(ValidationErrorKind.EMPTY_DESCRIPTION,
                                     "Description must not be empty",
                                     field="description")

    amount = _validate_amount(draft.amount)

    if not draft.payer_id or draft.payer_id not in member_map:
        raise ExpenseValidationError(ValidationErrorKind.NO_PAYER_SELECTED,
                                     "Select who paid",
                                     field="payer_id")

    participant_ids = list(dict.fromkeys(draft.participant_ids))
    if not participant_ids:
        raise ExpenseValidationError(ValidationErrorKind.NO_PARTICIPANTS_SELECTED,
                                     "Select at least one participant",
                                     field="participant_ids")

    for pid in participant_ids:
        if pid not in member_map:
            raise ExpenseValidationError(ValidationErrorKind.UNKNOWN_PARTICIPANT,
                                         f"Participant {pid} is not a member of this group",
                                         field="participant_ids",
                                         member_id=pid)

    raw_inputs = None
    if draft.strategy is not SplitStrategy.EQUALLY:
        raw_inputs = _validate_split_inputs(draft, amount,
                                            [member_map[pid] for pid in participant_ids])

    fields = dict(
        description=description,
        amount=amount,
        date=draft.date,
        payer_id=draft.payer_id,
        participant_ids=participant_ids,
        strategy=draft.strategy,
        raw_inputs=raw_inputs
    )
    if expense_id:
        fields["id"] = expense_id
    return Expense(**fields)


def _validate_amount(text: str) -> Decimal:
    try:
        value = parse_decimal(text)
    except ValueError:
        raise ExpenseValidationError(ValidationErrorKind.INVALID_AMOUNT_FORMAT,
                                     "Amount format is invalid",
                                     field="amount")

    amount = round2(value)
    if amount <= 0:
        raise ExpenseValidationError(ValidationErrorKind.NON_POSITIVE_AMOUNT,
                                     "Amount must be greater than zero",
                                     field="amount")
    return amount


def _validate_split_inputs(draft: ExpenseDraft,
                           amount: Decimal,
                           participants: List[Member]) -> Dict[str, Decimal]:
    strategy = draft.strategy
    details: Dict[str, Decimal] = {}

    for member in participants:
        text = draft.split_inputs.get(member.id, "")
        try:
            value = parse_decimal(text)
        except ValueError:
            raise ExpenseValidationError(
                ValidationErrorKind.SPLIT_INPUT_MISSING_OR_INVALID,
                f"Missing or invalid split value for {member.name}",
                field="split_inputs", member_id=member.id, member_name=member.name)

        if strategy is SplitStrategy.BY_SHARES and value <= 0:
            raise ExpenseValidationError(
                ValidationErrorKind.SPLIT_SHARES_SUM_INVALID,
                f"Shares for {member.name} must be greater than zero",
                field="split_inputs", member_id=member.id, member_name=member.name)
        if value < 0:
            raise ExpenseValidationError(
                ValidationErrorKind.NEGATIVE_SPLIT_VALUE,
                f"Split value for {member.name} must not be negative",
                field="split_inputs", member_id=member.id, member_name=member.name)

        details[member.id] = value

    try:
        input_sum = round2(sum(details.values(), ZERO))
    except InvalidOperation:
        raise ExpenseValidationError(
            ValidationErrorKind.SPLIT_INPUT_MISSING_OR_INVALID,
            "Split values are too large",
            field="split_inputs")

    if strategy is SplitStrategy.BY_FIXED_AMOUNT and not is_zero(input_sum - amount):
        raise ExpenseValidationError(
            ValidationErrorKind.SPLIT_AMOUNT_SUM_MISMATCH,
            f"Split amounts add up to {input_sum}, expense total is {amount}",
            field="split_inputs")
    if strategy is SplitStrategy.BY_PERCENTAGE and not is_zero(input_sum - HUNDRED):
        raise ExpenseValidationError(
            ValidationErrorKind.SPLIT_PERCENTAGE_SUM_MISMATCH,
            f"Percentages add up to {input_sum}%, not 100%",
            field="split_inputs")
    if strategy is SplitStrategy.BY_SHARES and input_sum <= 0:
        raise ExpenseValidationError(
            ValidationErrorKind.SPLIT_SHARES_SUM_INVALID,
            "Shares must add up to more than zero",
            field="split_inputs")

    return details
