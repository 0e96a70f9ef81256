"""
Service for the compliance dashboard: priority stores, risk radar, headline
stats and audit scoring, each computed from a fresh snapshot with one
evaluation time per call.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from config.settings import settings
from src.compliance_engine.db.repository import (
    AuditRepository,
    CorrectiveActionRepository,
    PeakPeriodRepository,
    StoreSnapshotRepository,
)
from src.compliance_engine.errors import InvalidInputError
from src.compliance_engine.models.domain import PriorityContext
from src.compliance_engine.scoring import (
    AuditScorer,
    PriorityScorer,
    RiskRadar,
    category_breakdown,
    draft_corrective_actions,
    rank_stores,
    summarize_portfolio,
    zone_hotspots,
)
from src.compliance_engine.scoring.audit import audit_summary, requires_escalation
from src.compliance_engine.utils.logger import get_logger

logger = get_logger(__name__)


class ComplianceDashboardService:
    def __init__(self, session: Session):
        self.session = session
        self.stores = StoreSnapshotRepository()
        self.peak_periods = PeakPeriodRepository()
        self.audits = AuditRepository()
        self.actions = CorrectiveActionRepository()
        self.priority = PriorityScorer()
        self.radar = RiskRadar()
        self.audit_scorer = AuditScorer()

    def get_priority_stores(self, now: Optional[datetime] = None, limit: Optional[int] = None) -> List[dict]:
        now = now or _utcnow()
        limit = settings.priority_store_limit if limit is None else limit
        context = PriorityContext(
            now=now,
            peak_periods=self.peak_periods.active_periods(self.session, on=now.date()),
            orange_threshold_days=settings.orange_threshold_days,
        )
        ranked = rank_stores(self.stores.load_active_stores(self.session), context, self.priority)
        logger.info("priority_stores_ranked", count=len(ranked), limit=limit)
        return [entry.to_dict() for entry in ranked[:limit]]

    def get_risk_radar(self, now: Optional[datetime] = None) -> List[dict]:
        now = now or _utcnow()
        zones = self.radar.top_zones(self.stores.load_active_stores(self.session), now)
        return [zone.to_dict() for zone in zones]

    def get_zone_drilldown(self, zone: str, now: Optional[datetime] = None) -> dict:
        now = now or _utcnow()
        stores = self.stores.load_active_stores(self.session, zone=zone)
        return self.radar.zone_drilldown(stores, zone, now).to_dict()

    def get_portfolio_stats(self, now: Optional[datetime] = None) -> dict:
        now = now or _utcnow()
        stats = summarize_portfolio(
            self.stores.load_active_stores(self.session),
            now,
            settings.orange_threshold_days,
            settings.overdue_extended_days,
        )
        return stats.to_dict()

    def get_zone_hotspots(self, now: Optional[datetime] = None) -> List[dict]:
        now = now or _utcnow()
        hotspots = zone_hotspots(
            self.stores.load_active_stores(self.session),
            now,
            settings.orange_threshold_days,
            self.peak_periods.active_periods(self.session, on=now.date()),
            self.priority,
        )
        return [zone.to_dict() for zone in hotspots]

    def get_category_breakdown(self, now: Optional[datetime] = None) -> List[dict]:
        now = now or _utcnow()
        breakdown = category_breakdown(
            self.stores.load_active_stores(self.session),
            now,
            settings.orange_threshold_days,
        )
        return [entry.to_dict() for entry in breakdown]

    def score_audit(self, audit_id: int) -> Dict:
        """Score an audit without changing it."""
        _, questions, responses = self._load_audit(audit_id)
        result = self.audit_scorer.score(questions, responses)
        payload = result.to_dict()
        payload["summary"] = audit_summary(result)
        payload["requires_escalation"] = requires_escalation(result)
        return payload

    def submit_audit(self, audit_id: int, now: Optional[datetime] = None) -> Dict:
        """
        Lock a draft audit: score it and raise one corrective action per NO answer.

        Raises:
            InvalidInputError: audit missing or already submitted
        """
        now = now or _utcnow()
        audit, questions, responses = self._load_audit(audit_id)
        if audit.status != "DRAFT":
            raise InvalidInputError("audit_id", audit_id, "audit already submitted")

        result = self.audit_scorer.score(questions, responses)
        drafts = draft_corrective_actions(questions, responses, now)
        created = self.actions.create_from_drafts(self.session, audit.store_id, drafts, audit_id=audit.id)
        audit.status = "SUBMITTED"
        self.session.flush()

        logger.info(
            "audit_submitted",
            audit_id=audit_id,
            overall_score=result.overall_score,
            risk_level=result.risk_level.value,
            corrective_actions=len(created),
        )

        payload = result.to_dict()
        payload["summary"] = audit_summary(result)
        payload["requires_escalation"] = requires_escalation(result)
        payload["corrective_action_ids"] = [action.id for action in created]
        return payload

    def _load_audit(self, audit_id: int):
        loaded = self.audits.load_audit_inputs(self.session, audit_id)
        if loaded is None:
            raise InvalidInputError("audit_id", audit_id, "audit not found")
        return loaded


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
