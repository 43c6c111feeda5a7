import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel

from config import configure_logging, load_settings
from errors import ExpenseValidationError, GroupError, PersonError, SettlementError
from export import export_csv, export_pdf
from ledger import SettlementLedger
from models import ExpenseDraft, Group, Member, SettlementSuggestion
from settlement import calculate_settlement
from splitting import compute_shares
from storage import storage
from validation import validate_expense

logger = logging.getLogger(__name__)

settings = load_settings()
app = FastAPI(title="Group expense splitter")


class GroupCreate(BaseModel):
    name: str


class MemberCreate(BaseModel):
    name: str
    # re-adding a removed member by id brings their history back
    id: Optional[str] = None


class MemberRename(BaseModel):
    name: str


def _get_group(group_id: str) -> Group:
    group = storage.get_group(group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


def _validation_failed(e: ExpenseValidationError) -> HTTPException:
    return HTTPException(status_code=400, detail=e.to_dict())


def _settlement_response(group: Group) -> dict:
    settlement = calculate_settlement(group)
    return {
        "balances": settlement.balances,
        "suggestions": settlement.suggestions,
        "warnings": settlement.warnings,
        "fully_settled": settlement.fully_settled,
    }


@app.post("/groups", status_code=201)
async def create_group(payload: GroupCreate):
    if not payload.name.strip():
        raise HTTPException(status_code=400,
                            detail=str(GroupError("Group name must not be empty")))
    group = storage.create_group(Group(name=payload.name))
    logger.info("Group %s created", group.id)
    return group


@app.get("/groups")
async def list_groups():
    return storage.list_groups()


@app.get("/groups/{group_id}")
async def view_group(group_id: str):
    group = _get_group(group_id)
    return {"group": group, **_settlement_response(group)}


@app.delete("/groups/{group_id}", status_code=204)
async def delete_group(group_id: str):
    if not storage.delete_group(group_id):
        raise HTTPException(status_code=404, detail="Group not found")
    return Response(status_code=204)


@app.post("/groups/{group_id}/members", status_code=201)
async def add_member(group_id: str, payload: MemberCreate):
    group = _get_group(group_id)

    try:
        member = Member(name=payload.name) if payload.id is None \
            else Member(id=payload.id, name=payload.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(PersonError(str(e))))

    if group.find_member(member.id):
        raise HTTPException(
            status_code=400,
            detail=str(PersonError.already_member(member.name, group.name)))

    group.members.append(member)
    storage.update_group(group)
    return member


@app.patch("/groups/{group_id}/members/{member_id}")
async def rename_member(group_id: str, member_id: str, payload: MemberRename):
    group = _get_group(group_id)
    member = group.find_member(member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400,
                            detail=str(PersonError("Member name must not be empty")))

    member.name = name
    storage.update_group(group)
    return member


@app.delete("/groups/{group_id}/members/{member_id}", status_code=204)
async def remove_member(group_id: str, member_id: str):
    group = _get_group(group_id)
    if not group.find_member(member_id):
        raise HTTPException(status_code=404, detail="Member not found")

    group.members = [m for m in group.members if m.id != member_id]
    storage.update_group(group)
    return Response(status_code=204)


@app.post("/groups/{group_id}/expenses", status_code=201)
async def add_expense(group_id: str, draft: ExpenseDraft):
    group = _get_group(group_id)

    try:
        expense = validate_expense(draft, group.members)
    except ExpenseValidationError as e:
        raise _validation_failed(e)

    group.expenses.append(expense)
    storage.update_group(group)
    return expense


@app.put("/groups/{group_id}/expenses/{expense_id}")
async def edit_expense(group_id: str, expense_id: str, draft: ExpenseDraft):
    group = _get_group(group_id)
    if not group.find_expense(expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")

    try:
        expense = validate_expense(draft, group.members, expense_id=expense_id)
    except ExpenseValidationError as e:
        raise _validation_failed(e)

    group.expenses = [expense if e.id == expense_id else e for e in group.expenses]
    storage.update_group(group)
    return expense


@app.delete("/groups/{group_id}/expenses/{expense_id}", status_code=204)
async def delete_expense(group_id: str, expense_id: str):
    group = _get_group(group_id)
    if not group.find_expense(expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")

    group.expenses = [e for e in group.expenses if e.id != expense_id]
    storage.update_group(group)
    return Response(status_code=204)


@app.get("/groups/{group_id}/expenses/{expense_id}/shares")
async def expense_shares(group_id: str, expense_id: str):
    group = _get_group(group_id)
    expense = group.find_expense(expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")

    warnings = []
    shares = compute_shares(expense, group.member_ids(), warnings)
    return {"shares": {pid: str(v) for pid, v in shares.items()}, "warnings": warnings}


@app.get("/groups/{group_id}/balances")
async def group_balances(group_id: str):
    return calculate_settlement(_get_group(group_id)).balances


@app.get("/groups/{group_id}/settlements")
async def group_settlements(group_id: str):
    return _settlement_response(_get_group(group_id))


@app.post("/groups/{group_id}/settlements/confirm", status_code=201)
async def confirm_group_settlement(group_id: str, suggestion: SettlementSuggestion):
    group = _get_group(group_id)

    member_ids = set(group.member_ids())
    if suggestion.payer_id not in member_ids or suggestion.payee_id not in member_ids:
        raise HTTPException(status_code=400,
                            detail="Payer and payee must be members of the group")

    ledger = SettlementLedger(group.id, group.settlement_payments)
    try:
        payment = ledger.confirm(suggestion)
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))

    group.settlement_payments = list(ledger.entries)
    storage.update_group(group)
    return payment


@app.get("/groups/{group_id}/payments")
async def list_payments(group_id: str):
    return _get_group(group_id).settlement_payments


def _attachment_name(group: Group, extension: str) -> str:
    return f"settlement_{group.name.replace(' ', '_')}.{extension}"


@app.get("/groups/{group_id}/export/csv")
async def export_group_csv(group_id: str):
    group = _get_group(group_id)
    content = export_csv(group, calculate_settlement(group), settings.currency)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition":
            f"attachment; filename={_attachment_name(group, 'csv')}"
        })


@app.get("/groups/{group_id}/export/pdf")
async def export_group_pdf(group_id: str):
    group = _get_group(group_id)
    content = export_pdf(group, calculate_settlement(group), settings.currency)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition":
            f"attachment; filename={_attachment_name(group, 'pdf')}"
        })


if __name__ == "__main__":
    import uvicorn
    configure_logging(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)
