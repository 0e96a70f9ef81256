"""
Repository Pattern for Data Access

Loads stored rows and converts them into the immutable snapshots consumed by
the scoring engine. Derived statuses and scores are never written back.
"""
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from src.compliance_engine.db.models import (
    AuditRecord,
    AuditSectionRecord,
    AuditTemplateRecord,
    ComplianceItemRecord,
    CorrectiveActionRecord,
    EvidenceRecord,
    PeakPeriodRecord,
    StoreRecord,
)
from src.compliance_engine.models.domain import (
    AuditQuestion,
    AuditResponse,
    ComplianceCategory,
    ComplianceItem,
    CorrectiveAction,
    PeakPeriod,
    Store,
    normalize_category,
)
from src.compliance_engine.scoring.audit import CorrectiveActionDraft
from src.compliance_engine.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        self.model = model

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.info("repository_created", model=self.model.__name__, id=getattr(instance, 'id', None))
        return instance


class StoreSnapshotRepository(BaseRepository):
    """Active stores with their items, latest evidence and corrective actions."""

    def __init__(self):
        super().__init__(StoreRecord)

    def load_active_stores(self, session: Session, zone: Optional[str] = None) -> List[Store]:
        """
        Load every active store as a snapshot, ordered by store code.

        Rows that cannot be represented (e.g. an unknown store type) are
        logged and skipped.

        Args:
            session: Database session
            zone: Restrict to one zone

        Returns:
            List of Store snapshots
        """
        query = (
            select(StoreRecord)
            .where(StoreRecord.only_active())
            .options(
                selectinload(StoreRecord.compliance_items).selectinload(ComplianceItemRecord.evidences),
                selectinload(StoreRecord.corrective_actions),
            )
            .order_by(StoreRecord.store_code)
        )
        if zone is not None:
            query = query.where(StoreRecord.zone == zone)

        snapshots = []
        for record in session.execute(query).scalars().all():
            try:
                snapshots.append(self.to_snapshot(record))
            except ValidationError as e:
                logger.warning(
                    "store_snapshot_invalid",
                    store_code=record.store_code,
                    error_count=e.error_count(),
                )

        logger.debug("stores_loaded", count=len(snapshots), zone=zone)
        return snapshots

    @staticmethod
    def to_snapshot(record: StoreRecord) -> Store:
        items = []
        for item in record.compliance_items:
            latest = _latest_evidence(item.evidences)
            items.append(
                ComplianceItem(
                    category=item.category,
                    title=item.title,
                    required=item.required,
                    has_evidence=latest is not None,
                    expiry_date=item.expiry_date,
                    verification_status=latest.verification_status if latest else None,
                )
            )

        actions = [
            CorrectiveAction(
                severity=action.severity,
                status=action.status,
                due_date=action.due_date,
                title=action.title,
            )
            for action in record.corrective_actions
        ]

        return Store(
            id=str(record.id),
            store_code=record.store_code,
            name=record.name,
            zone=record.zone,
            floor=record.floor,
            store_type=record.store_type,
            high_foot_traffic=record.high_foot_traffic,
            compliance_items=items,
            corrective_actions=actions,
            recent_red_count=record.recent_red_count,
            repeat_offender=record.repeat_offender,
            updated_at=record.updated_at,
            is_active=record.is_active,
        )


class PeakPeriodRepository(BaseRepository):

    def __init__(self):
        super().__init__(PeakPeriodRecord)

    def active_periods(self, session: Session, on: Optional[date] = None) -> List[PeakPeriod]:
        """Active peak periods, optionally only those covering ``on``."""
        query = select(PeakPeriodRecord).where(PeakPeriodRecord.active.is_(True))
        if on is not None:
            query = query.where(PeakPeriodRecord.start_date <= on, PeakPeriodRecord.end_date >= on)
        query = query.order_by(PeakPeriodRecord.start_date)

        return [
            PeakPeriod(name=period.name, start_date=period.start_date, end_date=period.end_date)
            for period in session.execute(query).scalars().all()
        ]


class AuditRepository(BaseRepository):

    def __init__(self):
        super().__init__(AuditRecord)

    def load_audit_inputs(
        self,
        session: Session,
        audit_id: int,
    ) -> Optional[Tuple[AuditRecord, List[AuditQuestion], List[AuditResponse]]]:
        """
        Load an audit's template questions and responses.

        Returns:
            (audit, questions, responses), or None when the audit does not exist
        """
        query = (
            select(AuditRecord)
            .where(AuditRecord.id == audit_id)
            .options(
                selectinload(AuditRecord.template)
                .selectinload(AuditTemplateRecord.sections)
                .selectinload(AuditSectionRecord.questions),
                selectinload(AuditRecord.responses),
            )
        )
        audit = session.execute(query).scalars().first()
        if audit is None:
            logger.warning("audit_not_found", audit_id=audit_id)
            return None

        questions = []
        for section in audit.template.sections:
            category = _section_category(section, audit_id)
            questions.extend(
                AuditQuestion(
                    id=str(question.id),
                    text=question.text,
                    section_id=str(section.id),
                    section_name=section.name,
                    section_weight=section.weight,
                    critical=question.critical,
                    category=category,
                )
                for question in section.questions
            )

        responses = [
            AuditResponse(
                question_id=str(response.question_id),
                result=response.result,
                notes=response.notes,
                severity=response.severity,
            )
            for response in audit.responses
        ]
        return audit, questions, responses


class CorrectiveActionRepository(BaseRepository):

    def __init__(self):
        super().__init__(CorrectiveActionRecord)

    def create_from_drafts(
        self,
        session: Session,
        store_id: int,
        drafts: Iterable[CorrectiveActionDraft],
        audit_id: Optional[int] = None,
    ) -> List[CorrectiveActionRecord]:
        """
        Persist corrective actions raised by non-compliant audit answers.

        Severity labels outside ``ActionSeverity`` are stored as given.
        """
        created = []
        for draft in drafts:
            labels = draft.to_dict()
            created.append(
                self.create(
                    session,
                    store_id=store_id,
                    audit_id=audit_id,
                    title=draft.title,
                    description=draft.description,
                    severity=labels["severity"],
                    status=labels["status"],
                    category=labels["category"],
                    due_date=draft.due_date,
                )
            )
        return created


def _latest_evidence(evidences: Iterable[EvidenceRecord]) -> Optional[EvidenceRecord]:
    return max(
        evidences,
        key=lambda evidence: (evidence.created_at or datetime.min, evidence.id or 0),
        default=None,
    )


def _section_category(section: AuditSectionRecord, audit_id: int) -> Optional[ComplianceCategory]:
    """Section category tag, or None when the stored label is not a known category."""
    if not section.category:
        return None
    category = normalize_category(section.category)
    if isinstance(category, ComplianceCategory):
        return category
    logger.warning(
        "audit_section_category_unknown",
        audit_id=audit_id,
        section_id=section.id,
        category=section.category,
    )
    return None
