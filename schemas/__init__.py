from schemas.application import (
    ApplicationCreate,
    ApplicationUpdate,
    DecisionRequest,
    PartDisbursementSchema,
)
from schemas.builder_visit import (
    ApprovalAction,
    BuilderVisitCreate,
    BuilderVisitUpdate,
    ExecutiveSchema,
    PropertySizeSchema,
)

__all__ = [
    "ApplicationCreate",
    "ApplicationUpdate",
    "DecisionRequest",
    "PartDisbursementSchema",
    "ApprovalAction",
    "BuilderVisitCreate",
    "BuilderVisitUpdate",
    "ExecutiveSchema",
    "PropertySizeSchema",
]
