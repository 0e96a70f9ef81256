"""
Zone Risk Radar

Aggregates store signals per zone over a time window, scores each zone and
compares it with the preceding window of equal length to report a trend.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional

from config.settings import settings
from src.compliance_engine.models.domain import (
    ActionSeverity,
    ActionStatus,
    ComplianceCategory,
    ComplianceStatus,
    Store,
    StoreType,
    TrendDirection,
    normalize_category,
)
from src.compliance_engine.scoring.status import (
    as_datetime,
    classify_item,
    require_datetime,
    require_non_negative,
    resolve_threshold,
    worst_status,
)
from src.compliance_engine.utils.logger import get_logger
from src.compliance_engine.utils.rounding import round_percentage

logger = get_logger(__name__)

RESTAURANT_CRITICAL_CATEGORIES = frozenset({
    ComplianceCategory.EXTRACTION_CERT,
    ComplianceCategory.FIRE_SUPPRESSION_CERT,
    ComplianceCategory.FIRE_EQUIPMENT,
})

# Composite zone score weights
RESTAURANT_CRITICAL_WEIGHT = 5
HIGH_FOOTFALL_RED_WEIGHT = 4
EXPIRING_SOON_WEIGHT = 4
OVERDUE_CRITICAL_ACTION_WEIGHT = 3
TOTAL_RED_WEIGHT = 2


@dataclass
class ZoneMetrics:
    """Signal counts for one zone in one window."""
    zone: str
    restaurant_criticals: int = 0
    high_footfall_reds: int = 0
    next_72_hours_risk: int = 0
    overdue_critical_actions: int = 0
    total_reds: int = 0
    store_count: int = 0

    @property
    def risk_score(self) -> int:
        return (
            self.restaurant_criticals * RESTAURANT_CRITICAL_WEIGHT
            + self.high_footfall_reds * HIGH_FOOTFALL_RED_WEIGHT
            + self.next_72_hours_risk * EXPIRING_SOON_WEIGHT
            + self.overdue_critical_actions * OVERDUE_CRITICAL_ACTION_WEIGHT
            + self.total_reds * TOTAL_RED_WEIGHT
        )

    def to_dict(self) -> Dict:
        return {
            "restaurant_criticals": self.restaurant_criticals,
            "high_footfall_reds": self.high_footfall_reds,
            "next_72_hours_risk": self.next_72_hours_risk,
            "overdue_critical_actions": self.overdue_critical_actions,
            "total_reds": self.total_reds,
            "store_count": self.store_count,
        }


@dataclass
class ZoneTrend:
    delta: int
    direction: TrendDirection
    percentage: int

    @classmethod
    def between(cls, current: int, previous: int) -> "ZoneTrend":
        delta = current - previous
        if delta > 0:
            direction = TrendDirection.UP
        elif delta < 0:
            direction = TrendDirection.DOWN
        else:
            direction = TrendDirection.STABLE
        return cls(delta=delta, direction=direction, percentage=round_percentage(delta, previous))

    def to_dict(self) -> Dict:
        return {"delta": self.delta, "direction": self.direction.value, "percentage": self.percentage}


@dataclass
class ZoneRisk:
    """Radar entry for one zone."""
    zone: str
    risk_score: int
    metrics: ZoneMetrics
    trend: ZoneTrend
    driving_factors: str

    def to_dict(self) -> Dict:
        return {
            "zone": self.zone,
            "risk_score": self.risk_score,
            "metrics": self.metrics.to_dict(),
            "trend": self.trend.to_dict(),
            "driving_factors": self.driving_factors,
        }


@dataclass
class ZoneDrilldown:
    """Store codes behind each radar metric for one zone."""
    zone: str
    restaurant_criticals: List[str] = field(default_factory=list)
    high_footfall_reds: List[str] = field(default_factory=list)
    next_72_hours_risk: List[str] = field(default_factory=list)
    overdue_critical_actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "zone": self.zone,
            "restaurant_criticals": list(self.restaurant_criticals),
            "high_footfall_reds": list(self.high_footfall_reds),
            "next_72_hours_risk": list(self.next_72_hours_risk),
            "overdue_critical_actions": list(self.overdue_critical_actions),
        }


class StoreSignals(NamedTuple):
    restaurant_critical: bool
    high_footfall_red: bool
    expiring_soon: bool
    overdue_critical_actions: int
    is_red: bool


class RiskRadar:
    """
    Ranks zones by composite risk.

    Composite score per zone:
        restaurant criticals x5 + high-footfall reds x4 + 72h expiries x4
        + overdue critical actions x3 + red stores x2
    """

    def __init__(
        self,
        orange_threshold_days: Optional[int] = None,
        expiry_horizon_hours: Optional[int] = None,
    ):
        self.orange_threshold_days = resolve_threshold(orange_threshold_days)
        horizon = settings.risk_radar_expiry_horizon_hours if expiry_horizon_hours is None else expiry_horizon_hours
        self.expiry_horizon = timedelta(hours=require_non_negative(horizon, "expiry_horizon_hours"))

    def store_signals(self, store: Store, now: datetime) -> StoreSignals:
        """Evaluate the radar signals contributed by one store at ``now``."""
        statuses = [
            (item, classify_item(item, now, self.orange_threshold_days))
            for item in store.compliance_items
        ]
        overall = worst_status(status for _, status in statuses)
        is_red = overall == ComplianceStatus.RED

        restaurant_critical = store.store_type == StoreType.FB and any(
            status == ComplianceStatus.RED
            and normalize_category(item.category) in RESTAURANT_CRITICAL_CATEGORIES
            for item, status in statuses
        )

        horizon_end = now + self.expiry_horizon
        expiring_soon = any(
            item.expiry_date is not None
            and now < as_datetime(item.expiry_date, now) <= horizon_end
            and status in (ComplianceStatus.RED, ComplianceStatus.ORANGE)
            for item, status in statuses
        )

        overdue_critical = sum(
            1 for action in store.corrective_actions
            if action.status == ActionStatus.IN_PROGRESS
            and action.severity == ActionSeverity.CRITICAL
            and as_datetime(action.due_date, now) < now
        )

        return StoreSignals(
            restaurant_critical=restaurant_critical,
            high_footfall_red=store.high_foot_traffic and is_red,
            expiring_soon=expiring_soon,
            overdue_critical_actions=overdue_critical,
            is_red=is_red,
        )

    def zone_metrics(
        self,
        stores: Iterable[Store],
        window_start: datetime,
        window_end: datetime,
        now: datetime,
        include_end: bool = True,
    ) -> Dict[str, ZoneMetrics]:
        """
        Accumulate zone metrics for active stores updated within a window.

        Args:
            stores: Store snapshots
            window_start: Inclusive window start
            window_end: Window end (inclusive unless ``include_end`` is False)
            now: Evaluation time for statuses, expiries and due dates
            include_end: Whether a store updated exactly at ``window_end`` counts
        """
        require_datetime(now)
        require_datetime(window_start, "window_start")
        require_datetime(window_end, "window_end")

        metrics: Dict[str, ZoneMetrics] = {}
        for store in stores:
            if not store.is_active or store.updated_at is None:
                continue
            updated_at = as_datetime(store.updated_at, now)
            if updated_at < window_start or updated_at > window_end:
                continue
            if not include_end and updated_at == window_end:
                continue

            signals = self.store_signals(store, now)
            zone = metrics.setdefault(store.zone, ZoneMetrics(zone=store.zone))
            zone.store_count += 1
            zone.restaurant_criticals += int(signals.restaurant_critical)
            zone.high_footfall_reds += int(signals.high_footfall_red)
            zone.next_72_hours_risk += int(signals.expiring_soon)
            zone.overdue_critical_actions += signals.overdue_critical_actions
            zone.total_reds += int(signals.is_red)

        return metrics

    def top_zones(
        self,
        stores: Iterable[Store],
        now: datetime,
        window_days: Optional[int] = None,
        top_n: Optional[int] = None,
    ) -> List[ZoneRisk]:
        """
        Highest-risk zones for the window ending at ``now``, with trend.

        The current window is ``[now - window, now]``; the previous window is
        ``[now - 2*window, now - window)``. Zones are ordered by score
        descending, then zone name ascending.
        """
        require_datetime(now)
        window_days = settings.risk_radar_window_days if window_days is None else window_days
        top_n = settings.risk_radar_top_n if top_n is None else top_n
        window = timedelta(days=require_non_negative(window_days, "window_days"))
        require_non_negative(top_n, "top_n")

        stores = list(stores)
        current_start = now - window
        current = self.zone_metrics(stores, current_start, now, now)
        previous = self.zone_metrics(stores, current_start - window, current_start, now, include_end=False)

        radar = []
        for zone_name, metrics in current.items():
            previous_metrics = previous.get(zone_name)
            previous_score = previous_metrics.risk_score if previous_metrics else 0
            radar.append(
                ZoneRisk(
                    zone=zone_name,
                    risk_score=metrics.risk_score,
                    metrics=metrics,
                    trend=ZoneTrend.between(metrics.risk_score, previous_score),
                    driving_factors=driving_factors(metrics),
                )
            )

        radar.sort(key=lambda entry: (-entry.risk_score, entry.zone))
        top = radar[: int(top_n)]

        logger.info(
            "risk_radar_computed",
            zones=len(radar),
            top_zones=[entry.zone for entry in top],
            window_days=window_days,
        )

        return top

    def zone_drilldown(self, stores: Iterable[Store], zone: str, now: datetime) -> ZoneDrilldown:
        """Store codes behind each radar metric for every active store in ``zone``."""
        require_datetime(now)
        drilldown = ZoneDrilldown(zone=zone)
        for store in sorted(stores, key=lambda s: s.store_code):
            if not store.is_active or store.zone != zone:
                continue
            signals = self.store_signals(store, now)
            if signals.restaurant_critical:
                drilldown.restaurant_criticals.append(store.store_code)
            if signals.high_footfall_red:
                drilldown.high_footfall_reds.append(store.store_code)
            if signals.expiring_soon:
                drilldown.next_72_hours_risk.append(store.store_code)
            if signals.overdue_critical_actions:
                drilldown.overdue_critical_actions.append(store.store_code)
        return drilldown


def driving_factors(metrics: ZoneMetrics) -> str:
    """Short executive description of what drives a zone's score."""
    factors = []
    if metrics.restaurant_criticals > 0:
        count = metrics.restaurant_criticals
        factors.append(f"{count} Restaurant Critical{'s' if count != 1 else ''}")
    if metrics.high_footfall_reds > 0:
        count = metrics.high_footfall_reds
        factors.append(f"{count} High-footfall Red{'s' if count != 1 else ''}")
    if metrics.next_72_hours_risk > 0:
        count = metrics.next_72_hours_risk
        factors.append(f"{count} 72h expir{'ies' if count != 1 else 'y'}")

    if not factors:
        return f"{metrics.zone}: All clear"
    return f"{metrics.zone}: {' + '.join(factors)}"
