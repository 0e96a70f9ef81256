"""
Database Package

Stored compliance records and the repositories that turn them into scoring
snapshots.
"""
from src.compliance_engine.db.base import Base
from src.compliance_engine.db.session import (
    get_engine,
    get_session_factory,
    get_db_session,
    create_all_tables,
)
from src.compliance_engine.db.models import (
    StoreRecord,
    ComplianceItemRecord,
    EvidenceRecord,
    CorrectiveActionRecord,
    PeakPeriodRecord,
    AuditTemplateRecord,
    AuditSectionRecord,
    AuditQuestionRecord,
    AuditRecord,
    AuditResponseRecord,
)
from src.compliance_engine.db.repository import (
    BaseRepository,
    StoreSnapshotRepository,
    PeakPeriodRepository,
    AuditRepository,
    CorrectiveActionRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "get_engine",
    "get_session_factory",
    "get_db_session",
    "create_all_tables",
    # Models
    "StoreRecord",
    "ComplianceItemRecord",
    "EvidenceRecord",
    "CorrectiveActionRecord",
    "PeakPeriodRecord",
    "AuditTemplateRecord",
    "AuditSectionRecord",
    "AuditQuestionRecord",
    "AuditRecord",
    "AuditResponseRecord",
    # Repositories
    "BaseRepository",
    "StoreSnapshotRepository",
    "PeakPeriodRepository",
    "AuditRepository",
    "CorrectiveActionRepository",
]
