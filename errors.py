from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


class ValidationErrorKind(str, Enum):
    EMPTY_DESCRIPTION = "empty_description"
    INVALID_AMOUNT_FORMAT = "invalid_amount_format"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    NO_PAYER_SELECTED = "no_payer_selected"
    NO_PARTICIPANTS_SELECTED = "no_participants_selected"
    UNKNOWN_PARTICIPANT = "unknown_participant"
    SPLIT_INPUT_MISSING_OR_INVALID = "split_input_missing_or_invalid"
    NEGATIVE_SPLIT_VALUE = "negative_split_value"
    SPLIT_AMOUNT_SUM_MISMATCH = "split_amount_sum_mismatch"
    SPLIT_PERCENTAGE_SUM_MISMATCH = "split_percentage_sum_mismatch"
    SPLIT_SHARES_SUM_INVALID = "split_shares_sum_invalid"


class ExpenseValidationError(ValueError):
    """Rejected expense input. Nothing is saved when this is raised."""

    def __init__(self, kind: ValidationErrorKind, message: str,
                 field: Optional[str] = None,
                 member_id: Optional[str] = None,
                 member_name: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field
        self.member_id = member_id
        self.member_name = member_name

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "field": self.field,
            "member_id": self.member_id,
            "member_name": self.member_name,
        }


class SettlementError(ValueError):
    pass


class GroupError(ValueError):
    pass


class PersonError(ValueError):

    @classmethod
    def already_member(cls, person_name: str, group_name: str) -> "PersonError":
        return cls(f"'{person_name}' is already a member of '{group_name}'")


class WarningKind(str, Enum):
    DATA_CONSISTENCY = "data_consistency"
    RESIDUAL_SETTLEMENT = "residual_settlement"


class EngineWarning(BaseModel):
    kind: WarningKind
    message: str
    expense_id: Optional[str] = None
    member_ids: List[str] = Field(default_factory=list)
