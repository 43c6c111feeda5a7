from collections import defaultdict
from decimal import Decimal

from errors import WarningKind
from ledger import SettlementLedger
from models import Balance, Expense, Group, Member, SettlementPayment, SplitStrategy
from settlement import (calculate_balances, calculate_settlement, plan_settlements,
                        suggest_settlements)


def _members(*ids):
    return [Member(id=i, name=i) for i in ids]


def _expense(amount, payer, participants, strategy=SplitStrategy.EQUALLY, raw=None):
    return Expense(description="Expense", amount=Decimal(amount), payer_id=payer,
                   participant_ids=participants, strategy=strategy, raw_inputs=raw)


def _as_dict(balances):
    return {b.member_id: b.amount for b in balances}


def _balances(**amounts):
    return [Balance(member_id=k, member_name=k, amount=Decimal(v)) for k, v in amounts.items()]


def _apply(balances, suggestions):
    after = _as_dict(balances)
    for s in suggestions:
        after[s.payer_id] += s.amount
        after[s.payee_id] -= s.amount
    return after


def test_equal_expense_balances():
    balances = calculate_balances(_members("A", "B", "C"),
                                  [_expense("90.00", "A", ["A", "B", "C"])])

    assert _as_dict(balances) == {
        "A": Decimal("60.00"),
        "B": Decimal("-30.00"),
        "C": Decimal("-30.00"),
    }


def test_payer_outside_participants_and_uninvolved_member():
    expense = _expense("100.00", "A", ["B", "C"], SplitStrategy.BY_FIXED_AMOUNT,
                       {"B": Decimal("40.00"), "C": Decimal("60.00")})
    balances = calculate_balances(_members("A", "B", "C", "D"), [expense])

    assert _as_dict(balances) == {
        "A": Decimal("100.00"),
        "B": Decimal("-40.00"),
        "C": Decimal("-60.00"),
        "D": Decimal("0.00"),
    }


def test_balances_are_zero_sum():
    members = _members("A", "B", "C", "D")
    expenses = [
        _expense("100.00", "A", ["A", "B", "C"]),
        _expense("57.31", "B", ["A", "B", "C", "D"]),
        _expense("120.00", "C", ["A", "B", "D"], SplitStrategy.BY_SHARES,
                 {"A": 1, "B": 2, "D": 4}),
        _expense("33.33", "D", ["B", "C"], SplitStrategy.BY_PERCENTAGE,
                 {"B": Decimal("33.3"), "C": Decimal("66.7")}),
        _expense("10.00", "A", ["C", "D"], SplitStrategy.BY_FIXED_AMOUNT,
                 {"C": Decimal("2.50"), "D": Decimal("7.50")}),
    ]
    payments = [SettlementPayment(payer_id="B", payee_id="A", amount=Decimal("12.34"),
                                  group_id="g")]

    balances = calculate_balances(members, expenses, payments)
    assert sum(b.amount for b in balances) == Decimal("0")


def test_calculate_balances_is_idempotent():
    members = _members("A", "B", "C")
    expenses = [_expense("100.00", "A", ["A", "B", "C"]),
                _expense("45.67", "C", ["A", "C"])]

    assert calculate_balances(members, expenses) == calculate_balances(members, expenses)


def test_settlement_payment_reduces_balances():
    members = _members("A", "B", "C")
    expenses = [_expense("90.00", "A", ["A", "B", "C"])]
    payments = [SettlementPayment(payer_id="B", payee_id="A", amount=Decimal("30.00"),
                                  group_id="g")]

    balances = _as_dict(calculate_balances(members, expenses, payments))
    assert balances == {"A": Decimal("30.00"), "B": Decimal("0.00"), "C": Decimal("-30.00")}


def test_payment_involving_removed_member_is_ignored():
    members = _members("A", "B")
    payments = [SettlementPayment(payer_id="C", payee_id="A", amount=Decimal("30.00"),
                                  group_id="g")]

    balances = _as_dict(calculate_balances(members, [], payments))
    assert balances == {"A": Decimal("0.00"), "B": Decimal("0.00")}


def test_removed_participant_no_longer_debited():
    balances = calculate_balances(_members("A", "B"),
                                  [_expense("90.00", "A", ["A", "B", "C"])])
    assert _as_dict(balances) == {"A": Decimal("45.00"), "B": Decimal("-45.00")}


def test_removed_payer_is_reported():
    warnings = []
    balances = calculate_balances(_members("B", "C"),
                                  [_expense("90.00", "A", ["A", "B", "C"])], (), warnings)

    assert _as_dict(balances) == {"B": Decimal("-45.00"), "C": Decimal("-45.00")}
    assert [w.kind for w in warnings] == [WarningKind.DATA_CONSISTENCY]


def test_balances_follow_roster_order():
    members = [Member(id="2", name="Zoe"), Member(id="1", name="Adam")]
    balances = calculate_balances(members, [])
    assert [(b.member_id, b.member_name) for b in balances] == [("2", "Zoe"), ("1", "Adam")]


def test_solver_greedy_trace():
    balances = _balances(A="-130.00", B="150.00", C="-75.50", D="75.50", E="-20.00")
    suggestions = suggest_settlements(balances)

    assert [(s.payer_id, s.payee_id, s.amount) for s in suggestions] == [
        ("A", "B", Decimal("130.00")),
        ("C", "D", Decimal("75.50")),
        ("E", "B", Decimal("20.00")),
    ]

    paid = defaultdict(Decimal)
    received = defaultdict(Decimal)
    for s in suggestions:
        paid[s.payer_id] += s.amount
        received[s.payee_id] += s.amount
    assert paid == {"A": Decimal("130.00"), "C": Decimal("75.50"), "E": Decimal("20.00")}
    assert received == {"B": Decimal("150.00"), "D": Decimal("75.50")}

    assert all(v == 0 for v in _apply(balances, suggestions).values())


def test_solver_settles_computed_balances():
    members = _members("A", "B", "C", "D")
    expenses = [
        _expense("100.00", "A", ["A", "B", "C", "D"]),
        _expense("37.13", "B", ["A", "C"]),
        _expense("19.99", "D", ["A", "B", "C"]),
    ]
    balances = calculate_balances(members, expenses)
    suggestions = suggest_settlements(balances)

    assert suggestions
    assert all(abs(v) < Decimal("0.01") for v in _apply(balances, suggestions).values())


def test_fully_settled_returns_empty_plan():
    plan = plan_settlements(_balances(A="0.00", B="0.00"))
    assert plan.suggestions == []
    assert plan.fully_settled


def test_dust_is_treated_as_settled():
    balances = _balances(A="-0.004", B="0.004")
    assert suggest_settlements(balances) == []


def test_one_cent_debt_is_suggested():
    suggestions = suggest_settlements(_balances(A="-0.01", B="0.01"))
    assert [(s.payer_id, s.payee_id, s.amount) for s in suggestions] == [
        ("A", "B", Decimal("0.01"))]


def test_equal_balances_break_ties_by_member_id():
    suggestions = suggest_settlements(_balances(B="-10.00", A="-10.00", C="20.00"))
    assert [s.payer_id for s in suggestions] == ["A", "B"]

    suggestions = suggest_settlements(_balances(D="-20.00", Y="10.00", X="10.00"))
    assert [s.payee_id for s in suggestions] == ["X", "Y"]


def test_unbalanced_input_leaves_residual_warning():
    plan = plan_settlements(_balances(A="-10.00", B="5.00"))

    assert [(s.payer_id, s.amount) for s in plan.suggestions] == [("A", Decimal("5.00"))]
    assert len(plan.warnings) == 1
    assert plan.warnings[0].kind == WarningKind.RESIDUAL_SETTLEMENT
    assert plan.warnings[0].member_ids == ["A"]
    assert not plan.fully_settled


def test_suggestions_carry_member_names():
    balances = [Balance(member_id="1", member_name="Ann", amount=Decimal("-5.00")),
                Balance(member_id="2", member_name="Ben", amount=Decimal("5.00"))]
    suggestion = suggest_settlements(balances)[0]
    assert (suggestion.payer_name, suggestion.payee_name) == ("Ann", "Ben")


def test_confirmed_suggestions_are_not_suggested_again():
    group = Group(name="Trip", members=_members("A", "B", "C"))
    group.expenses.append(_expense("90.00", "A", ["A", "B", "C"]))

    settlement = calculate_settlement(group)
    assert len(settlement.suggestions) == 2
    assert [b.member_id for b in settlement.balances] == ["A", "B", "C"]

    ledger = SettlementLedger(group.id)
    ledger.confirm(settlement.suggestions[0])
    group.settlement_payments = list(ledger.entries)
    assert len(calculate_settlement(group).suggestions) == 1

    ledger.confirm(calculate_settlement(group).suggestions[0])
    group.settlement_payments = list(ledger.entries)
    settlement = calculate_settlement(group)

    assert settlement.fully_settled
    assert all(b.amount == 0 for b in settlement.balances)


def test_group_with_removed_payer_is_not_fully_settled():
    group = Group(name="Trip", members=_members("B", "C"))
    group.expenses.append(_expense("90.00", "A", ["A", "B", "C"]))

    settlement = calculate_settlement(group)

    assert _as_dict(settlement.balances) == {"B": Decimal("-45.00"), "C": Decimal("-45.00")}
    assert settlement.suggestions == []
    assert WarningKind.RESIDUAL_SETTLEMENT in [w.kind for w in settlement.warnings]
    assert not settlement.fully_settled


def test_empty_group_is_fully_settled():
    settlement = calculate_settlement(Group(name="Empty", members=_members("A", "B")))
    assert settlement.fully_settled
