from sqlalchemy import JSON, Column, DateTime, String, Text, func

from database import Base


class BuilderVisit(Base):
    __tablename__ = "builder_visits"

    id = Column(String(64), primary_key=True, index=True)

    builder_name = Column(String(256), nullable=True)
    builder_number = Column(String(32), nullable=True)
    group_name = Column(String(256), nullable=True)
    project_name = Column(String(256), nullable=True, index=True)
    location = Column(String(256), nullable=True)
    date_of_visit = Column(String(32), nullable=True)
    business_type = Column(String(128), nullable=True)
    person_met = Column(String(256), nullable=True)
    office_person_details = Column(String(256), nullable=True)
    office_person_number = Column(String(32), nullable=True, index=True)
    # [{name, number}, ...]
    executives = Column(JSON, nullable=True)
    loan_account_number = Column(String(128), nullable=True)
    manager = Column(String(256), nullable=True)

    stage_of_construction = Column(String(128), nullable=True)
    development_type = Column(String(128), nullable=True)
    area_type = Column(String(128), nullable=True)
    total_units_blocks = Column(String(64), nullable=True)
    total_blocks = Column(String(64), nullable=True)
    # Line items: size, floor, sqft, rate and fee/amount fields; one export row each
    property_sizes = Column(JSON, nullable=True)
    expected_completion_date = Column(String(32), nullable=True)
    negotiable = Column(String(64), nullable=True)
    financing_requirements = Column(String(256), nullable=True)
    financing_details = Column(Text, nullable=True)
    resident_type = Column(String(128), nullable=True)
    avg_agreement_value = Column(String(64), nullable=True)
    market_value = Column(String(64), nullable=True)
    nearby_projects = Column(Text, nullable=True)
    surrounding_community = Column(Text, nullable=True)
    enquiry_type = Column(String(128), nullable=True)
    units_for_sale = Column(String(64), nullable=True)
    time_limit_months = Column(String(32), nullable=True)
    remark = Column(Text, nullable=True)
    payout = Column(String(64), nullable=True)
    usps = Column(JSON, nullable=True)
    total_amenities = Column(String(64), nullable=True)
    alloted_car_parking = Column(String(64), nullable=True)
    clear_floor_height = Column(String(32), nullable=True)
    clear_floor_height_retail = Column(String(32), nullable=True)
    clear_floor_height_flats = Column(String(32), nullable=True)
    clear_floor_height_offices = Column(String(32), nullable=True)

    # {"level1": {status, by, at, comment}, "level2": {...}}
    approval = Column(JSON, nullable=True)
    approval_status = Column(String(32), nullable=False, default="Pending", index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
