from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field
from pydantic.alias_generators import to_camel


def _to_text(value: Any) -> Any:
    """Amounts and dates arrive as numbers or strings depending on the client; store them as text."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(int(value)) if float(value).is_integer() else str(value)
    return str(value)


LooseText = Annotated[Optional[str], BeforeValidator(_to_text)]

_MODEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}


class PartDisbursementSchema(BaseModel):
    date: LooseText = None
    amount: LooseText = None

    model_config = _MODEL_CONFIG


class ApplicationFields(BaseModel):
    code: Optional[str] = None
    other_code: Optional[str] = None
    product: Optional[str] = None
    other_product: Optional[str] = None
    bank: Optional[str] = None
    other_bank: Optional[str] = None
    source_channel: Optional[str] = None
    other_source_channel: Optional[str] = None
    category: Optional[str] = None
    other_category: Optional[str] = None

    email: Optional[str] = None
    banker_name: Optional[str] = None
    sales: Optional[str] = None
    ref: Optional[str] = None
    property_type: Optional[str] = None
    property_details: Optional[str] = None

    status: Optional[str] = None
    pd_status: Optional[str] = None
    pd_remark: Optional[str] = None
    pd_date: LooseText = None
    rejected_remark: Optional[str] = None
    withdraw_remark: Optional[str] = None
    hold_remark: Optional[str] = None
    relogin_reason: Optional[str] = None

    amount: LooseText = None
    login_date: LooseText = None
    sanction_date: LooseText = None
    sanction_amount: LooseText = None
    disbursed_date: LooseText = None
    disbursed_amount: LooseText = None
    loan_number: LooseText = None
    insurance_option: Optional[str] = None
    insurance_amount: LooseText = None
    subvention_option: Optional[str] = None
    subvention_amount: LooseText = None
    part_disbursed: Optional[list[PartDisbursementSchema]] = None

    remark: Optional[str] = None
    consulting: LooseText = None
    payout: LooseText = None
    # "expenceAmount" is the spelling older clients send
    expense_amount: LooseText = Field(
        None, validation_alias=AliasChoices("expenseAmount", "expenceAmount", "expense_amount")
    )
    fees_refund_amount: LooseText = None

    roi: LooseText = None
    mkt_value: LooseText = None
    processing_fees: LooseText = None
    audit_data: Optional[dict[str, Any]] = None

    model_config = _MODEL_CONFIG


class ApplicationCreate(ApplicationFields):
    name: str
    mobile: LooseText = Field(...)


class ApplicationUpdate(ApplicationFields):
    """Partial update: only fields present in the payload are applied."""

    name: Optional[str] = None
    mobile: LooseText = None


class DecisionRequest(BaseModel):
    password: Optional[str] = None
