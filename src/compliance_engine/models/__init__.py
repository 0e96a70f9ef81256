"""
Domain Models

Snapshot inputs and enumerations shared by every scorer.
"""
from src.compliance_engine.models.domain import (
    ActionSeverity,
    ActionStatus,
    AuditQuestion,
    AuditResponse,
    AuditResult,
    ComplianceCategory,
    ComplianceItem,
    ComplianceStatus,
    CorrectiveAction,
    PeakPeriod,
    PriorityContext,
    RiskLevel,
    Store,
    StoreType,
    TrendDirection,
    VerificationStatus,
    normalize_category,
    normalize_severity,
)

__all__ = [
    "ActionSeverity",
    "ActionStatus",
    "AuditQuestion",
    "AuditResponse",
    "AuditResult",
    "ComplianceCategory",
    "ComplianceItem",
    "ComplianceStatus",
    "CorrectiveAction",
    "PeakPeriod",
    "PriorityContext",
    "RiskLevel",
    "Store",
    "StoreType",
    "TrendDirection",
    "VerificationStatus",
    "normalize_category",
    "normalize_severity",
]
