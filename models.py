from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Dict, List, Optional
import datetime as dt
from uuid import uuid4

from errors import EngineWarning, WarningKind
from utils import is_zero, round2


class SplitStrategy(str, Enum):
    EQUALLY = "equally"
    BY_FIXED_AMOUNT = "by_fixed_amount"
    BY_PERCENTAGE = "by_percentage"
    BY_SHARES = "by_shares"


class Member(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Member name must not be empty')
        return v.strip()


class Expense(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    description: str
    amount: Decimal
    date: dt.date = Field(default_factory=dt.date.today)
    payer_id: str
    participant_ids: List[str]
    strategy: SplitStrategy = SplitStrategy.EQUALLY
    raw_inputs: Optional[Dict[str, Decimal]] = None

    @field_validator('description')
    @classmethod
    def description_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Expense description must not be empty')
        return v.strip()

    @field_validator('amount')
    @classmethod
    def amount_positive(cls, v):
        v = round2(v)
        if v <= 0:
            raise ValueError('Amount must be greater than 0')
        return v

    @field_validator('participant_ids')
    @classmethod
    def at_least_one_participant(cls, v):
        if not v:
            raise ValueError('At least one participant is required')
        # selection order matters for the rounding remainder, keep first occurrence
        return list(dict.fromkeys(v))

    @model_validator(mode='after')
    def drop_inputs_for_equal_split(self):
        if self.strategy is SplitStrategy.EQUALLY:
            self.raw_inputs = None
        return self


class SettlementPayment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    payer_id: str
    payee_id: str
    amount: Decimal
    date: dt.datetime = Field(default_factory=dt.datetime.now)
    group_id: str
    payer_name: str = ""
    payee_name: str = ""


class Balance(BaseModel):
    member_id: str
    member_name: str = ""
    amount: Decimal


class SettlementSuggestion(BaseModel):
    payer_id: str
    payer_name: str = ""
    payee_id: str
    payee_name: str = ""
    amount: Decimal


class Group(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)
    members: List[Member] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)
    settlement_payments: List[SettlementPayment] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Group name must not be empty')
        return v.strip()

    def member_ids(self) -> List[str]:
        return [m.id for m in self.members]

    def find_member(self, member_id: str) -> Optional[Member]:
        return next((m for m in self.members if m.id == member_id), None)

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)


class ExpenseDraft(BaseModel):
    """Unvalidated expense form input, numbers still as text."""
    description: str = ""
    amount: str = ""
    date: dt.date = Field(default_factory=dt.date.today)
    payer_id: Optional[str] = None
    participant_ids: List[str] = Field(default_factory=list)
    strategy: SplitStrategy = SplitStrategy.EQUALLY
    split_inputs: Dict[str, str] = Field(default_factory=dict)

    @field_validator('amount', mode='before')
    @classmethod
    def amount_as_text(cls, v):
        return _number_as_text(v)

    @field_validator('split_inputs', mode='before')
    @classmethod
    def split_inputs_as_text(cls, v):
        if isinstance(v, dict):
            return {k: _number_as_text(x) for k, x in v.items()}
        return v


def _number_as_text(v):
    # JSON clients may send numbers; parsing happens in validation
    if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
        return str(v)
    return v


class SettlementPlan(BaseModel):
    suggestions: List[SettlementSuggestion] = Field(default_factory=list)
    warnings: List[EngineWarning] = Field(default_factory=list)

    @property
    def fully_settled(self) -> bool:
        return not self.suggestions and not self.warnings


class Settlement(BaseModel):
    balances: List[Balance]
    suggestions: List[SettlementSuggestion]
    warnings: List[EngineWarning] = Field(default_factory=list)

    @property
    def fully_settled(self) -> bool:
        if self.suggestions:
            return False
        if any(w.kind == WarningKind.RESIDUAL_SETTLEMENT for w in self.warnings):
            return False
        return all(is_zero(b.amount) for b in self.balances)
