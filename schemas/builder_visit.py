from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from schemas.application import LooseText

_MODEL_CONFIG = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}


class ExecutiveSchema(BaseModel):
    name: str
    number: str = Field(..., description="10-digit mobile number")

    model_config = _MODEL_CONFIG

    @field_validator("number", mode="before")
    @classmethod
    def _ten_digits(cls, value):
        text = str(value or "").strip()
        if not (len(text) == 10 and text.isdigit()):
            raise ValueError("Executive number must be exactly 10 digits")
        return text


class PropertySizeSchema(BaseModel):
    """One line item of a builder visit; every field is optional."""

    size: LooseText = None
    floor: LooseText = None
    sqft: LooseText = None
    area: LooseText = None
    basic_rate: LooseText = None
    aec_auda: LooseText = None
    sellded_amount: LooseText = None
    regular_price: LooseText = None
    down_payment: LooseText = None
    maintenance: LooseText = None
    stamp_duty: LooseText = None
    registration_fee: LooseText = None
    gst_amount: LooseText = None
    total_amount: LooseText = None

    model_config = _MODEL_CONFIG


class BuilderVisitCreate(BaseModel):
    builder_name: Optional[str] = None
    builder_number: LooseText = None
    group_name: Optional[str] = None
    project_name: Optional[str] = None
    location: Optional[str] = None
    date_of_visit: LooseText = None
    business_type: Optional[str] = None
    person_met: Optional[str] = None
    office_person_details: Optional[str] = None
    office_person_number: LooseText = None
    executives: list[ExecutiveSchema] = Field(default_factory=list)
    loan_account_number: LooseText = None
    manager: Optional[str] = None

    stage_of_construction: Optional[str] = None
    development_type: Optional[str] = None
    area_type: Optional[str] = None
    total_units_blocks: LooseText = None
    total_blocks: LooseText = None
    property_sizes: list[PropertySizeSchema] = Field(default_factory=list)
    expected_completion_date: LooseText = None
    negotiable: Optional[str] = None
    financing_requirements: Optional[str] = None
    financing_details: Optional[str] = None
    resident_type: Optional[str] = None
    avg_agreement_value: LooseText = None
    market_value: LooseText = None
    nearby_projects: Optional[str] = None
    surrounding_community: Optional[str] = None
    enquiry_type: Optional[str] = None
    units_for_sale: LooseText = None
    time_limit_months: LooseText = None
    remark: Optional[str] = None
    payout: LooseText = None
    usps: list[str] = Field(default_factory=list)
    total_amenities: LooseText = None
    alloted_car_parking: LooseText = None
    clear_floor_height: LooseText = None
    clear_floor_height_retail: LooseText = None
    clear_floor_height_flats: LooseText = None
    clear_floor_height_offices: LooseText = None

    model_config = _MODEL_CONFIG


class BuilderVisitUpdate(BuilderVisitCreate):
    """Full-record edit; approval state is reset whatever changed."""

    pass


class ApprovalAction(BaseModel):
    level: int = Field(..., description="1 or 2")
    password: Optional[str] = None
    by: Optional[str] = None
    comment: Optional[str] = None

    model_config = _MODEL_CONFIG
