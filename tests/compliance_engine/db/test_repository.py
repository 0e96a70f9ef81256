"""
Tests for Repository Pattern

Tests snapshot loading, peak period lookup, audit inputs and corrective
action creation against an in-memory database.
"""
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.compliance_engine.db.base import Base
from src.compliance_engine.db.models import (
    AuditQuestionRecord,
    AuditRecord,
    AuditResponseRecord,
    AuditSectionRecord,
    AuditTemplateRecord,
    ComplianceItemRecord,
    CorrectiveActionRecord,
    EvidenceRecord,
    PeakPeriodRecord,
    StoreRecord,
)
from src.compliance_engine.db.repository import (
    AuditRepository,
    CorrectiveActionRepository,
    PeakPeriodRepository,
    StoreSnapshotRepository,
)
from src.compliance_engine.models.domain import (
    ActionSeverity,
    AuditResult,
    ComplianceCategory,
    StoreType,
    VerificationStatus,
)
from src.compliance_engine.scoring.audit import CorrectiveActionDraft

NOW = datetime(2025, 5, 20, 9, 0, 0)


@pytest.fixture(scope="function")
def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


def add_store(session, code, zone="Atrium", store_type="RETAIL", **kwargs):
    store = StoreRecord(
        store_code=code,
        name=f"Store {code}",
        zone=zone,
        store_type=store_type,
        updated_at=NOW - timedelta(days=1),
        **kwargs,
    )
    session.add(store)
    return store


class TestStoreSnapshotRepository:
    """Tests for StoreSnapshotRepository."""

    def test_load_active_stores_builds_snapshots(self, test_db):
        store = add_store(test_db, "FB001", store_type="FB", high_foot_traffic=True, recent_red_count=1)
        store.compliance_items.append(ComplianceItemRecord(category="EXTRACTION_CERT", required=True))
        suppression = ComplianceItemRecord(
            category="fire-suppression-cert",
            required=True,
            expiry_date=NOW + timedelta(days=90),
        )
        suppression.evidences.extend([
            EvidenceRecord(verification_status="REJECTED", created_at=NOW - timedelta(days=20)),
            EvidenceRecord(verification_status="VERIFIED", created_at=NOW - timedelta(days=2)),
        ])
        store.compliance_items.append(suppression)
        store.corrective_actions.append(
            CorrectiveActionRecord(
                title="Clean extraction hood",
                severity="CRITICAL",
                status="OPEN",
                due_date=NOW - timedelta(days=4),
            )
        )
        test_db.commit()

        snapshots = StoreSnapshotRepository().load_active_stores(test_db)

        assert len(snapshots) == 1
        snapshot = snapshots[0]
        assert snapshot.id == str(store.id)
        assert snapshot.store_type == StoreType.FB
        assert snapshot.recent_red_count == 1

        items = {item.category: item for item in snapshot.compliance_items}
        assert items[ComplianceCategory.EXTRACTION_CERT].has_evidence is False
        assert items[ComplianceCategory.FIRE_SUPPRESSION_CERT].has_evidence is True
        assert items[ComplianceCategory.FIRE_SUPPRESSION_CERT].verification_status == VerificationStatus.VERIFIED
        assert snapshot.corrective_actions[0].severity == ActionSeverity.CRITICAL

    def test_inactive_stores_are_excluded(self, test_db):
        add_store(test_db, "RT002")
        add_store(test_db, "RT001", is_active=False)
        test_db.commit()

        snapshots = StoreSnapshotRepository().load_active_stores(test_db)

        assert [s.store_code for s in snapshots] == ["RT002"]

    def test_zone_filter(self, test_db):
        add_store(test_db, "RT001", zone="Atrium")
        add_store(test_db, "RT002", zone="Boulevard")
        test_db.commit()

        snapshots = StoreSnapshotRepository().load_active_stores(test_db, zone="Boulevard")

        assert [s.store_code for s in snapshots] == ["RT002"]

    def test_invalid_rows_are_skipped(self, test_db):
        add_store(test_db, "KS001", store_type="KIOSK")
        add_store(test_db, "RT001")
        test_db.commit()

        snapshots = StoreSnapshotRepository().load_active_stores(test_db)

        assert [s.store_code for s in snapshots] == ["RT001"]


class TestPeakPeriodRepository:
    """Tests for PeakPeriodRepository."""

    def test_active_periods_on_date(self, test_db):
        test_db.add_all([
            PeakPeriodRecord(name="Festive", start_date=date(2025, 12, 1), end_date=date(2026, 1, 5)),
            PeakPeriodRecord(name="Autumn", start_date=date(2025, 5, 1), end_date=date(2025, 5, 20)),
            PeakPeriodRecord(name="Retired", start_date=date(2025, 5, 1), end_date=date(2025, 5, 31), active=False),
        ])
        test_db.commit()

        repo = PeakPeriodRepository()

        assert [p.name for p in repo.active_periods(test_db, on=date(2025, 5, 20))] == ["Autumn"]
        assert [p.name for p in repo.active_periods(test_db)] == ["Autumn", "Festive"]


class TestAuditRepository:
    """Tests for AuditRepository."""

    def test_load_audit_inputs(self, test_db):
        store = add_store(test_db, "RT001")
        template = AuditTemplateRecord(name="Monthly shop audit")
        fire = AuditSectionRecord(name="Fire Safety", weight=3, position=1, category="FIRE_EQUIPMENT")
        fire.questions.extend([
            AuditQuestionRecord(text="Extinguishers serviced?", critical=True, position=1),
            AuditQuestionRecord(text="Exits clear?", position=2),
        ])
        general = AuditSectionRecord(name="General", weight=1, position=0)
        general.questions.append(AuditQuestionRecord(text="Signage displayed?", position=1))
        template.sections.extend([fire, general])
        test_db.add(template)
        test_db.flush()

        audit = AuditRecord(store_id=store.id, template_id=template.id)
        audit.responses.append(
            AuditResponseRecord(question_id=fire.questions[0].id, result="NO", severity="CRITICAL")
        )
        test_db.add(audit)
        test_db.commit()

        loaded = AuditRepository().load_audit_inputs(test_db, audit.id)

        assert loaded is not None
        record, questions, responses = loaded
        assert record.status == "DRAFT"
        assert [q.section_name for q in questions] == ["General", "Fire Safety", "Fire Safety"]
        assert questions[1].critical is True
        assert questions[1].section_weight == 3
        assert questions[1].category == ComplianceCategory.FIRE_EQUIPMENT
        assert responses[0].question_id == questions[1].id
        assert responses[0].result == AuditResult.NO

    def test_missing_audit_returns_none(self, test_db):
        assert AuditRepository().load_audit_inputs(test_db, 999) is None


class TestCorrectiveActionRepository:
    """Tests for CorrectiveActionRepository."""

    def test_create_from_drafts(self, test_db):
        store = add_store(test_db, "RT001")
        test_db.flush()

        drafts = [
            CorrectiveActionDraft(
                question_id="1",
                title="Fire Safety: Exits clear?",
                description="Boxes blocking rear exit",
                severity=ActionSeverity.HIGH,
                due_date=NOW + timedelta(days=7),
                category=ComplianceCategory.FIRE_EQUIPMENT,
            )
        ]

        created = CorrectiveActionRepository().create_from_drafts(test_db, store.id, drafts)
        test_db.commit()

        assert len(created) == 1
        assert created[0].id is not None
        assert created[0].severity == "HIGH"
        assert created[0].status == "OPEN"
        assert created[0].category == "FIRE_EQUIPMENT"
        assert test_db.get(CorrectiveActionRecord, created[0].id).store_id == store.id
