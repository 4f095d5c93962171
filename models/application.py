from sqlalchemy import JSON, Column, DateTime, String, Text, func

from database import Base


class Application(Base):
    __tablename__ = "applications"

    id = Column(String(64), primary_key=True, index=True)

    # Classification fields; each "other_*" holds free text when the value is "Other"
    code = Column(String(64), nullable=True)
    other_code = Column(String(128), nullable=True)
    product = Column(String(128), nullable=True)
    other_product = Column(String(128), nullable=True)
    bank = Column(String(128), nullable=True)
    other_bank = Column(String(128), nullable=True)
    source_channel = Column(String(128), nullable=True)
    other_source_channel = Column(String(128), nullable=True)
    category = Column(String(128), nullable=True)
    other_category = Column(String(128), nullable=True)

    name = Column(String(256), nullable=False, index=True)
    mobile = Column(String(32), nullable=False, index=True)
    email = Column(String(256), nullable=True, index=True)
    banker_name = Column(String(256), nullable=True)
    sales = Column(String(128), nullable=True, index=True)
    ref = Column(String(128), nullable=True)
    property_type = Column(String(128), nullable=True)
    property_details = Column(Text, nullable=True)

    # Workflow
    status = Column(String(64), nullable=True, index=True)
    approval_status = Column(String(64), nullable=True, default="")
    pd_status = Column(String(64), nullable=True)
    pd_remark = Column(Text, nullable=True)
    pd_date = Column(String(32), nullable=True)
    rejected_remark = Column(Text, nullable=True)
    withdraw_remark = Column(Text, nullable=True)
    hold_remark = Column(Text, nullable=True)
    relogin_reason = Column(Text, nullable=True)

    # Dates stored as YYYY-MM-DD and amounts as plain numeric strings; unparseable text kept as entered
    amount = Column(String(64), nullable=True)
    login_date = Column(String(32), nullable=True)
    sanction_date = Column(String(32), nullable=True)
    sanction_amount = Column(String(64), nullable=True)
    disbursed_date = Column(String(32), nullable=True)
    disbursed_amount = Column(String(64), nullable=True)
    loan_number = Column(String(128), nullable=True)
    insurance_option = Column(String(64), nullable=True)
    insurance_amount = Column(String(64), nullable=True)
    subvention_option = Column(String(64), nullable=True)
    subvention_amount = Column(String(64), nullable=True)
    # [{date, amount}, ...] in disbursement order
    part_disbursed = Column(JSON, nullable=True)

    # Remark family, merged into one cell on the master report
    remark = Column(Text, nullable=True)
    consulting = Column(String(64), nullable=True)
    payout = Column(String(64), nullable=True)
    expense_amount = Column(String(64), nullable=True)
    fees_refund_amount = Column(String(64), nullable=True)

    # Internal fields, never on the master report
    roi = Column(String(32), nullable=True)
    mkt_value = Column(String(64), nullable=True)
    processing_fees = Column(String(64), nullable=True)
    audit_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
