"""
Store Priority Scoring

Ranks stores for inspection attention from independent, additive risk factors.
"""
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from config.settings import settings
from src.compliance_engine.models.domain import (
    ActionStatus,
    ComplianceCategory,
    ComplianceStatus,
    PriorityContext,
    Store,
    StoreType,
    normalize_category,
)
from src.compliance_engine.scoring.status import (
    as_datetime,
    category_label,
    classify_item,
    days_overdue,
    require_datetime,
    require_non_negative,
    resolve_threshold,
    worst_status,
)
from src.compliance_engine.utils.logger import get_logger

logger = get_logger(__name__)

FB_CRITICAL_CATEGORIES = frozenset({
    ComplianceCategory.EXTRACTION_CERT,
    ComplianceCategory.FIRE_SUPPRESSION_CERT,
})

OPEN_ACTION_STATUSES = frozenset({ActionStatus.OPEN, ActionStatus.IN_PROGRESS})


@dataclass
class PriorityBreakdown:
    """Points contributed by each factor."""
    red_items: int = 0
    overdue_actions: int = 0
    fb_fire_critical: int = 0
    repeat_offender: int = 0
    high_foot_traffic: int = 0
    peak_period: int = 0


@dataclass
class PriorityResult:
    """
    Priority score with explanation.

    Attributes:
        score: Non-negative ranking score (higher = needs attention sooner)
        reasons: Human-readable reasons, in factor order
        breakdown: Points per factor
    """
    score: int
    reasons: List[str]
    breakdown: PriorityBreakdown = field(default_factory=PriorityBreakdown)

    def to_dict(self) -> Dict:
        return {
            "score": self.score,
            "reasons": list(self.reasons),
            "breakdown": asdict(self.breakdown),
        }


@dataclass
class RankedStore:
    """Store summary in priority order."""
    store_id: str
    store_code: str
    name: str
    zone: str
    overall_status: ComplianceStatus
    priority_score: int
    priority_reasons: List[str]

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["overall_status"] = self.overall_status.value
        return data


class PriorityScorer:
    """
    Scores stores by how urgently they need compliance attention.

    Scoring factors (all additive, none suppresses another):
    - RED compliance items: +50 each
    - Overdue open/in-progress corrective actions: +30 each, +10 more for
      each one overdue by more than a week
    - Food & beverage store with a RED extraction/suppression certificate: +25
    - Repeat offender: +20
    - High foot traffic: +15
    - Evaluation date inside a peak period: +10
    """

    RED_ITEM_WEIGHT = 50
    OVERDUE_ACTION_WEIGHT = 30
    OVERDUE_EXTENDED_WEIGHT = 10
    FB_FIRE_CRITICAL_WEIGHT = 25
    REPEAT_OFFENDER_WEIGHT = 20
    HIGH_FOOT_TRAFFIC_WEIGHT = 15
    PEAK_PERIOD_WEIGHT = 10

    def __init__(
        self,
        repeat_offender_window_days: Optional[int] = None,
        repeat_offender_min_reds: Optional[int] = None,
        overdue_extended_days: Optional[int] = None,
    ):
        if repeat_offender_window_days is None:
            repeat_offender_window_days = settings.repeat_offender_window_days
        if repeat_offender_min_reds is None:
            repeat_offender_min_reds = settings.repeat_offender_min_reds
        if overdue_extended_days is None:
            overdue_extended_days = settings.overdue_extended_days

        self.repeat_offender_window = timedelta(
            days=require_non_negative(repeat_offender_window_days, "repeat_offender_window_days")
        )
        self.repeat_offender_min_reds = require_non_negative(repeat_offender_min_reds, "repeat_offender_min_reds")
        self.overdue_extended_days = require_non_negative(overdue_extended_days, "overdue_extended_days")

    def score(self, store: Store, context: PriorityContext) -> PriorityResult:
        """
        Calculate the priority score for one store.

        Args:
            store: Store snapshot
            context: Evaluation time, peak periods and orange threshold

        Returns:
            PriorityResult with score, reasons and per-factor breakdown
        """
        now = require_datetime(context.now)
        threshold = resolve_threshold(context.orange_threshold_days)
        reasons: List[str] = []
        breakdown = PriorityBreakdown()

        red_items = [
            item for item in store.compliance_items
            if classify_item(item, now, threshold) == ComplianceStatus.RED
        ]
        if red_items:
            breakdown.red_items = self.RED_ITEM_WEIGHT * len(red_items)
            labels = ", ".join(category_label(item.category) for item in red_items)
            reasons.append(f"{len(red_items)} RED compliance item{_plural(red_items)} ({labels})")

        overdue = [
            days
            for days in (
                days_overdue(action.due_date, now)
                for action in store.corrective_actions
                if action.status in OPEN_ACTION_STATUSES
            )
            if days > 0
        ]
        if overdue:
            extended = sum(1 for days in overdue if days > self.overdue_extended_days)
            breakdown.overdue_actions = (
                self.OVERDUE_ACTION_WEIGHT * len(overdue)
                + self.OVERDUE_EXTENDED_WEIGHT * extended
            )
            reasons.append(f"{len(overdue)} overdue action{_plural(overdue)} ({max(overdue)} days)")

        if store.store_type == StoreType.FB and any(
            normalize_category(item.category) in FB_CRITICAL_CATEGORIES for item in red_items
        ):
            breakdown.fb_fire_critical = self.FB_FIRE_CRITICAL_WEIGHT
            reasons.append("F&B with fire suppression/extraction issues")

        if self.is_repeat_offender(store, now):
            breakdown.repeat_offender = self.REPEAT_OFFENDER_WEIGHT
            reasons.append("Repeat offender (multiple compliance failures)")

        if store.high_foot_traffic:
            breakdown.high_foot_traffic = self.HIGH_FOOT_TRAFFIC_WEIGHT
            reasons.append("High foot traffic zone")

        if any(period.contains(now) for period in context.peak_periods):
            breakdown.peak_period = self.PEAK_PERIOD_WEIGHT
            reasons.append("Currently in peak period")

        total = sum(asdict(breakdown).values())
        result = PriorityResult(score=total, reasons=reasons, breakdown=breakdown)

        logger.debug(
            "store_priority_scored",
            store_code=store.store_code,
            score=result.score,
            red_items=len(red_items),
            overdue_actions=len(overdue),
        )

        return result

    def is_repeat_offender(self, store: Store, now: datetime) -> bool:
        """Flagged by the caller, or enough RED events in the trailing window."""
        if store.repeat_offender:
            return True
        window_start = now - self.repeat_offender_window
        recent_events = sum(
            1 for event in store.red_event_dates
            if window_start <= as_datetime(event, now) <= now
        )
        recent = max(store.recent_red_count or 0, recent_events)
        return recent >= self.repeat_offender_min_reds


def rank_stores(
    stores: Iterable[Store],
    context: PriorityContext,
    scorer: Optional[PriorityScorer] = None,
) -> List[RankedStore]:
    """
    Score and rank stores, highest priority first.

    Ties are broken by store code ascending so repeated runs over the same
    snapshot always produce the same order.
    """
    scorer = scorer or PriorityScorer()
    threshold = resolve_threshold(context.orange_threshold_days)
    ranked = []
    for store in stores:
        result = scorer.score(store, context)
        status = worst_status(
            classify_item(item, context.now, threshold) for item in store.compliance_items
        )
        ranked.append(
            RankedStore(
                store_id=store.id,
                store_code=store.store_code,
                name=store.name,
                zone=store.zone,
                overall_status=status,
                priority_score=result.score,
                priority_reasons=result.reasons,
            )
        )

    ranked.sort(key=lambda entry: (-entry.priority_score, entry.store_code))
    return ranked


def _plural(values) -> str:
    return "s" if len(values) > 1 else ""
