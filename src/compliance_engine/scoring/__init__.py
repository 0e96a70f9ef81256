"""
Scoring Module

Status classification, store prioritisation, audit scoring and zone risk
radar. Every function is pure over its snapshot inputs and an explicit
evaluation time.
"""
from src.compliance_engine.scoring.status import (
    classify_item,
    classify_store,
    days_overdue,
    days_until_expiry,
)
from src.compliance_engine.scoring.priority import (
    PriorityScorer,
    PriorityResult,
    RankedStore,
    rank_stores,
)
from src.compliance_engine.scoring.audit import (
    AuditScorer,
    AuditScoreResult,
    SectionScore,
    due_date_for_severity,
    draft_corrective_actions,
)
from src.compliance_engine.scoring.risk_radar import (
    RiskRadar,
    ZoneMetrics,
    ZoneRisk,
    ZoneTrend,
)
from src.compliance_engine.scoring.portfolio import (
    CategoryBreakdown,
    PortfolioStats,
    ZoneHotspot,
    category_breakdown,
    summarize_portfolio,
    zone_hotspots,
)

__all__ = [
    "classify_item",
    "classify_store",
    "days_overdue",
    "days_until_expiry",
    "PriorityScorer",
    "PriorityResult",
    "RankedStore",
    "rank_stores",
    "AuditScorer",
    "AuditScoreResult",
    "SectionScore",
    "due_date_for_severity",
    "draft_corrective_actions",
    "RiskRadar",
    "ZoneMetrics",
    "ZoneRisk",
    "ZoneTrend",
    "PortfolioStats",
    "summarize_portfolio",
    "CategoryBreakdown",
    "ZoneHotspot",
    "category_breakdown",
    "zone_hotspots",
]
