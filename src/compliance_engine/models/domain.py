"""
Compliance Domain Models

Pydantic models for the immutable snapshots handed to the scoring engine.
Snapshots are built by the data-access layer (or by tests) and are never
mutated by the scorers.
"""
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ComplianceStatus(str, Enum):
    """Traffic-light status of a compliance item or store."""

    GREEN = "GREEN"
    ORANGE = "ORANGE"
    RED = "RED"
    GREY = "GREY"


class ComplianceCategory(str, Enum):
    """Kind of regulatory requirement a compliance item tracks."""

    OHS_RISK_ASSESSMENT = "OHS_RISK_ASSESSMENT"
    EXTRACTION_CERT = "EXTRACTION_CERT"
    FIRE_SUPPRESSION_CERT = "FIRE_SUPPRESSION_CERT"
    FIRE_EQUIPMENT = "FIRE_EQUIPMENT"
    TRAINING = "TRAINING"
    FIRST_AID = "FIRST_AID"
    SHOP_AUDIT = "SHOP_AUDIT"


class StoreType(str, Enum):
    FB = "FB"
    RETAIL = "RETAIL"
    LUXURY = "LUXURY"
    SERVICES = "SERVICES"
    ATTRACTION = "ATTRACTION"
    POPUP = "POPUP"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class ActionSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ActionStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    ESCALATED = "ESCALATED"


class AuditResult(str, Enum):
    YES = "YES"
    NO = "NO"
    NA = "NA"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def normalize_category(value):
    """
    Map a raw category label onto ``ComplianceCategory`` when it is known.

    ``"extraction-cert"``, ``"Extraction Cert"`` and ``"EXTRACTION_CERT"`` all
    resolve to the same member. Unknown labels are returned unchanged so the
    classifier can reject them for required items.
    """
    if isinstance(value, ComplianceCategory) or not isinstance(value, str):
        return value
    key = value.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return ComplianceCategory(key)
    except ValueError:
        return value


def normalize_severity(value):
    """
    Map a raw severity label onto ``ActionSeverity``, ignoring case.

    Unknown labels are returned unchanged; they get the default due date.
    """
    if isinstance(value, ActionSeverity) or not isinstance(value, str):
        return value
    try:
        return ActionSeverity(value.strip().upper())
    except ValueError:
        return value


class Snapshot(BaseModel):
    """Base for all engine inputs: immutable, unknown keys ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore", from_attributes=True)


class ComplianceItem(Snapshot):
    """
    One trackable regulatory/safety requirement for a store.

    Attributes:
        category: Compliance category tag (unknown labels kept as raw strings)
        required: Whether the requirement applies to the store
        has_evidence: Whether any evidence has been uploaded
        expiry_date: Certificate expiry (date-only values mean midnight)
        verification_status: Verification state of the latest evidence
        title: Optional display title
    """

    category: Union[ComplianceCategory, str]
    required: bool = True
    has_evidence: bool = False
    expiry_date: Optional[Union[datetime, date]] = None
    verification_status: Optional[VerificationStatus] = None
    title: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        return normalize_category(value)


class CorrectiveAction(Snapshot):
    """Remediation task raised against a store."""

    severity: Union[ActionSeverity, str]
    status: ActionStatus = ActionStatus.OPEN
    due_date: Union[datetime, date]
    title: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value):
        return normalize_severity(value)


class Store(Snapshot):
    """
    Retail unit with its compliance items and corrective actions.

    ``recent_red_count`` and ``red_event_dates`` feed repeat-offender
    detection; either may be omitted.
    """

    id: str
    store_code: str
    name: str = ""
    zone: str
    floor: Optional[str] = None
    store_type: StoreType
    high_foot_traffic: bool = False
    compliance_items: List[ComplianceItem] = Field(default_factory=list)
    corrective_actions: List[CorrectiveAction] = Field(default_factory=list)
    recent_red_count: Optional[int] = None
    red_event_dates: List[Union[datetime, date]] = Field(default_factory=list)
    repeat_offender: bool = False
    updated_at: Optional[datetime] = None
    is_active: bool = True


class PeakPeriod(Snapshot):
    """Calendar date range (inclusive on both ends) during which priority is boosted."""

    name: str = ""
    start_date: date
    end_date: date

    def contains(self, moment: datetime) -> bool:
        day = moment.date() if isinstance(moment, datetime) else moment
        return self.start_date <= day <= self.end_date


class PriorityContext(Snapshot):
    """Inputs shared by every store in one priority-scoring run."""

    now: datetime
    peak_periods: List[PeakPeriod] = Field(default_factory=list)
    orange_threshold_days: int = 30


class AuditQuestion(Snapshot):
    """
    Audit question with its section metadata.

    ``category`` is the explicit compliance category tag for the question's
    section, attached at template ingestion time.
    """

    id: str
    text: str = ""
    section_id: str
    section_name: str = ""
    section_weight: int = Field(1, ge=1)
    critical: bool = False
    category: Optional[ComplianceCategory] = None


class AuditResponse(Snapshot):
    """Answer to one audit question; ``result`` is None while unanswered."""

    question_id: str
    result: Optional[AuditResult] = None
    notes: Optional[str] = None
    severity: Optional[Union[ActionSeverity, str]] = None

    @field_validator("result", mode="before")
    @classmethod
    def _normalize_result(cls, value):
        if isinstance(value, str) and not isinstance(value, AuditResult):
            return value.strip().upper()
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value):
        return normalize_severity(value)
