"""
Portfolio-wide dashboard aggregates: headline figures, zone hotspots and
the per-category breakdown of failing items.
"""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Union

from src.compliance_engine.models.domain import (
    ComplianceCategory,
    ComplianceStatus,
    PeakPeriod,
    PriorityContext,
    Store,
    normalize_category,
)
from src.compliance_engine.scoring.priority import OPEN_ACTION_STATUSES, PriorityScorer, rank_stores
from src.compliance_engine.scoring.status import (
    classify_item,
    days_overdue,
    days_until_expiry,
    require_datetime,
    resolve_threshold,
    worst_status,
)
from src.compliance_engine.utils.rounding import round_half_up, round_percentage

EXPIRY_BUCKETS = (30, 14, 7)


@dataclass
class PortfolioStats:
    total_stores: int = 0
    green: int = 0
    orange: int = 0
    red: int = 0
    grey: int = 0
    expiring_in_30: int = 0
    expiring_in_14: int = 0
    expiring_in_7: int = 0
    overdue_actions: int = 0
    critical_overdue_actions: int = 0
    compliance_rate: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def summarize_portfolio(
    stores: Iterable[Store],
    now: datetime,
    orange_threshold_days: Optional[int] = None,
    extended_overdue_days: int = 7,
) -> PortfolioStats:
    """
    Count active stores by status, ORANGE items by how soon they expire, and
    overdue open actions.

    ``critical_overdue_actions`` counts open actions overdue by more than
    ``extended_overdue_days``. ``compliance_rate`` is the share of stores that
    are not RED, 0 for an empty portfolio.
    """
    require_datetime(now)
    threshold = resolve_threshold(orange_threshold_days)
    stats = PortfolioStats()

    for store in stores:
        if not store.is_active:
            continue
        stats.total_stores += 1

        statuses = []
        for item in store.compliance_items:
            status = classify_item(item, now, threshold)
            statuses.append(status)
            if status != ComplianceStatus.ORANGE or item.expiry_date is None:
                continue
            remaining = days_until_expiry(item.expiry_date, now)
            if remaining < 0:
                continue
            for bucket in EXPIRY_BUCKETS:
                if remaining <= bucket:
                    setattr(stats, f"expiring_in_{bucket}", getattr(stats, f"expiring_in_{bucket}") + 1)

        overall = worst_status(statuses)
        setattr(stats, overall.value.lower(), getattr(stats, overall.value.lower()) + 1)

        for action in store.corrective_actions:
            if action.status not in OPEN_ACTION_STATUSES:
                continue
            overdue = days_overdue(action.due_date, now)
            if overdue > 0:
                stats.overdue_actions += 1
            if overdue > extended_overdue_days:
                stats.critical_overdue_actions += 1

    stats.compliance_rate = round_percentage(stats.total_stores - stats.red, stats.total_stores)
    return stats


# Zone hotspot weights
HOTSPOT_RED_WEIGHT = 10
HOTSPOT_ORANGE_WEIGHT = 5


@dataclass
class ZoneHotspot:
    """Store status counts and average priority for one zone."""
    zone: str
    total: int = 0
    green: int = 0
    orange: int = 0
    red: int = 0
    grey: int = 0
    total_priority_score: int = 0

    @property
    def avg_priority_score(self) -> int:
        if not self.total:
            return 0
        return int(round_half_up(self.total_priority_score / self.total))

    @property
    def risk_score(self) -> int:
        return self.red * HOTSPOT_RED_WEIGHT + self.orange * HOTSPOT_ORANGE_WEIGHT

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["avg_priority_score"] = self.avg_priority_score
        data["risk_score"] = self.risk_score
        return data


@dataclass
class CategoryBreakdown:
    category: Union[ComplianceCategory, str]
    red: int = 0
    orange: int = 0

    def to_dict(self) -> Dict:
        category = self.category.value if isinstance(self.category, ComplianceCategory) else self.category
        return {"category": category, "red": self.red, "orange": self.orange}


def zone_hotspots(
    stores: Iterable[Store],
    now: datetime,
    orange_threshold_days: Optional[int] = None,
    peak_periods: Sequence[PeakPeriod] = (),
    scorer: Optional[PriorityScorer] = None,
) -> List[ZoneHotspot]:
    """
    Per-zone status counts for active stores, hottest zone first.

    Hotspot risk is ``red x10 + orange x5`` over store statuses; ties are
    broken by zone name.
    """
    require_datetime(now)
    context = PriorityContext(
        now=now,
        peak_periods=list(peak_periods),
        orange_threshold_days=resolve_threshold(orange_threshold_days),
    )
    active = [store for store in stores if store.is_active]

    zones: Dict[str, ZoneHotspot] = {}
    for entry in rank_stores(active, context, scorer):
        zone = zones.setdefault(entry.zone, ZoneHotspot(zone=entry.zone))
        zone.total += 1
        status = entry.overall_status.value.lower()
        setattr(zone, status, getattr(zone, status) + 1)
        zone.total_priority_score += entry.priority_score

    return sorted(zones.values(), key=lambda zone: (-zone.risk_score, zone.zone))


def category_breakdown(
    stores: Iterable[Store],
    now: datetime,
    orange_threshold_days: Optional[int] = None,
) -> List[CategoryBreakdown]:
    """RED and ORANGE item counts per category across active stores, in first-seen order."""
    require_datetime(now)
    threshold = resolve_threshold(orange_threshold_days)

    breakdown: Dict[Union[ComplianceCategory, str], CategoryBreakdown] = {}
    for store in stores:
        if not store.is_active:
            continue
        for item in store.compliance_items:
            status = classify_item(item, now, threshold)
            if status not in (ComplianceStatus.RED, ComplianceStatus.ORANGE):
                continue
            category = normalize_category(item.category)
            entry = breakdown.setdefault(category, CategoryBreakdown(category=category))
            if status == ComplianceStatus.RED:
                entry.red += 1
            else:
                entry.orange += 1

    return list(breakdown.values())
