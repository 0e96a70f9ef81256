import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.compliance_engine.errors import InvalidInputError
from src.compliance_engine.models.domain import (
    ActionSeverity,
    ActionStatus,
    ComplianceCategory,
    ComplianceItem,
    CorrectiveAction,
    Store,
    StoreType,
    TrendDirection,
    VerificationStatus,
)
from src.compliance_engine.scoring.risk_radar import (
    RiskRadar,
    ZoneMetrics,
    ZoneTrend,
    driving_factors,
)

NOW = datetime(2025, 8, 15, 12, 0, 0)


def verified(category, expires_in):
    return ComplianceItem(
        category=category,
        has_evidence=True,
        verification_status=VerificationStatus.VERIFIED,
        expiry_date=NOW + expires_in,
    )


def missing(category):
    return ComplianceItem(category=category, has_evidence=False)


def overdue_critical_action():
    return CorrectiveAction(
        severity=ActionSeverity.CRITICAL,
        status=ActionStatus.IN_PROGRESS,
        due_date=NOW - timedelta(days=2),
    )


def make_store(code, zone, updated_ago=timedelta(days=1), **overrides):
    data = {
        "id": code.lower(),
        "store_code": code,
        "name": code,
        "zone": zone,
        "store_type": StoreType.RETAIL,
        "updated_at": NOW - updated_ago,
    }
    data.update(overrides)
    return Store(**data)


def restaurant_with_issues(code, zone, **overrides):
    """Scores 10: restaurant critical, overdue critical action and a red store."""
    return make_store(
        code,
        zone,
        store_type=StoreType.FB,
        compliance_items=[missing(ComplianceCategory.EXTRACTION_CERT)],
        corrective_actions=[overdue_critical_action()],
        **overrides,
    )


@pytest.fixture
def radar():
    return RiskRadar(orange_threshold_days=30, expiry_horizon_hours=72)


class TestStoreSignals:

    def test_restaurant_critical_needs_fb_and_fire_category(self, radar):
        fb = make_store("FB1", "Atrium", store_type=StoreType.FB,
                        compliance_items=[missing(ComplianceCategory.FIRE_EQUIPMENT)])
        retail = make_store("RT1", "Atrium", compliance_items=[missing(ComplianceCategory.FIRE_EQUIPMENT)])
        fb_training = make_store("FB2", "Atrium", store_type=StoreType.FB,
                                 compliance_items=[missing(ComplianceCategory.TRAINING)])

        assert radar.store_signals(fb, NOW).restaurant_critical is True
        assert radar.store_signals(retail, NOW).restaurant_critical is False
        assert radar.store_signals(fb_training, NOW).restaurant_critical is False

    def test_high_footfall_red(self, radar):
        store = make_store("RT1", "Atrium", high_foot_traffic=True,
                           compliance_items=[missing(ComplianceCategory.FIRST_AID)])
        signals = radar.store_signals(store, NOW)

        assert signals.high_footfall_red is True
        assert signals.is_red is True

    def test_expiring_within_horizon(self, radar):
        soon = make_store("RT1", "Atrium", compliance_items=[
            verified(ComplianceCategory.FIRST_AID, timedelta(hours=48)),
        ])
        edge = make_store("RT2", "Atrium", compliance_items=[
            verified(ComplianceCategory.FIRST_AID, timedelta(hours=72)),
        ])
        later = make_store("RT3", "Atrium", compliance_items=[
            verified(ComplianceCategory.FIRST_AID, timedelta(hours=80)),
        ])
        expired = make_store("RT4", "Atrium", compliance_items=[
            verified(ComplianceCategory.FIRST_AID, timedelta(hours=-1)),
        ])

        assert radar.store_signals(soon, NOW).expiring_soon is True
        assert radar.store_signals(edge, NOW).expiring_soon is True
        assert radar.store_signals(later, NOW).expiring_soon is False
        assert radar.store_signals(expired, NOW).expiring_soon is False

    def test_not_required_items_never_expire_soon(self, radar):
        item = ComplianceItem(
            category=ComplianceCategory.FIRST_AID,
            required=False,
            has_evidence=True,
            expiry_date=NOW + timedelta(hours=10),
        )
        store = make_store("RT1", "Atrium", compliance_items=[item])
        assert radar.store_signals(store, NOW).expiring_soon is False

    def test_only_in_progress_critical_actions_count(self, radar):
        store = make_store("RT1", "Atrium", corrective_actions=[
            overdue_critical_action(),
            CorrectiveAction(severity="CRITICAL", status=ActionStatus.OPEN, due_date=NOW - timedelta(days=2)),
            CorrectiveAction(severity="HIGH", status=ActionStatus.IN_PROGRESS, due_date=NOW - timedelta(days=2)),
            CorrectiveAction(severity="CRITICAL", status=ActionStatus.IN_PROGRESS, due_date=NOW + timedelta(days=1)),
        ])
        assert radar.store_signals(store, NOW).overdue_critical_actions == 1


def test_zone_score_weights(radar):
    store = make_store(
        "FB1",
        "Atrium",
        store_type=StoreType.FB,
        high_foot_traffic=True,
        compliance_items=[
            missing(ComplianceCategory.EXTRACTION_CERT),
            verified(ComplianceCategory.FIRST_AID, timedelta(hours=24)),
        ],
        corrective_actions=[overdue_critical_action(), overdue_critical_action()],
    )
    metrics = radar.zone_metrics([store], NOW - timedelta(days=7), NOW, NOW)["Atrium"]

    assert metrics.to_dict() == {
        "restaurant_criticals": 1,
        "high_footfall_reds": 1,
        "next_72_hours_risk": 1,
        "overdue_critical_actions": 2,
        "total_reds": 1,
        "store_count": 1,
    }
    assert metrics.risk_score == 5 + 4 + 4 + 3 * 2 + 2


def test_trend_from_empty_previous_window(radar):
    zones = radar.top_zones([restaurant_with_issues("FB1", "Atrium")], NOW, window_days=7, top_n=3)

    assert len(zones) == 1
    assert zones[0].risk_score == 10
    assert zones[0].trend.to_dict() == {"delta": 10, "direction": "up", "percentage": 0}


def test_trend_against_previous_window(radar):
    current = restaurant_with_issues("FB1", "Atrium")
    previous = restaurant_with_issues("FB2", "Atrium", updated_ago=timedelta(days=10), high_foot_traffic=True)

    zone = radar.top_zones([current, previous], NOW, window_days=7)[0]

    assert zone.risk_score == 10
    assert zone.trend.delta == -4
    assert zone.trend.direction == TrendDirection.DOWN
    assert zone.trend.percentage == -29


def test_window_start_belongs_to_current_window_only(radar):
    store = restaurant_with_issues("FB1", "Atrium", updated_ago=timedelta(days=7))

    current = radar.zone_metrics([store], NOW - timedelta(days=7), NOW, NOW)
    previous = radar.zone_metrics([store], NOW - timedelta(days=14), NOW - timedelta(days=7), NOW, include_end=False)

    assert current["Atrium"].store_count == 1
    assert previous == {}


def test_top_zones_ordering_and_tie_break(radar):
    stores = [
        make_store("RT1", "Boulevard", compliance_items=[missing(ComplianceCategory.TRAINING)]),
        make_store("RT2", "Atrium", compliance_items=[missing(ComplianceCategory.TRAINING)]),
        restaurant_with_issues("FB1", "Central"),
        make_store("RT3", "Dockside"),
    ]

    zones = radar.top_zones(stores, NOW, window_days=7, top_n=3)

    assert [zone.zone for zone in zones] == ["Central", "Atrium", "Boulevard"]
    assert [zone.risk_score for zone in zones] == [10, 2, 2]


def test_top_zones_is_deterministic(radar):
    stores = [
        make_store("RT1", "Boulevard", compliance_items=[missing(ComplianceCategory.TRAINING)]),
        restaurant_with_issues("FB1", "Central"),
        make_store("RT2", "Atrium", compliance_items=[missing(ComplianceCategory.TRAINING)]),
        restaurant_with_issues("FB2", "Central", updated_ago=timedelta(days=9)),
    ]

    first = radar.top_zones(stores, NOW, window_days=7, top_n=3)
    second = radar.top_zones(stores, NOW, window_days=7, top_n=3)

    assert [zone.to_dict() for zone in first] == [zone.to_dict() for zone in second]


def test_zone_only_in_previous_window_is_left_out(radar):
    stores = [
        make_store("RT1", "Atrium", compliance_items=[missing(ComplianceCategory.TRAINING)]),
        restaurant_with_issues("FB1", "Harbour", updated_ago=timedelta(days=10)),
    ]

    zones = radar.top_zones(stores, NOW, window_days=7, top_n=3)

    assert [zone.zone for zone in zones] == ["Atrium"]


def test_stale_and_inactive_stores_are_ignored(radar):
    stores = [
        restaurant_with_issues("FB1", "Atrium", updated_ago=timedelta(days=30)),
        restaurant_with_issues("FB2", "Atrium", is_active=False),
        restaurant_with_issues("FB3", "Atrium", updated_at=None),
        make_store("RT1", "Atrium"),
    ]

    zones = radar.top_zones(stores, NOW, window_days=7)

    assert zones[0].risk_score == 0
    assert zones[0].metrics.store_count == 1
    assert zones[0].driving_factors == "Atrium: All clear"


def test_negative_window_is_rejected(radar):
    with pytest.raises(InvalidInputError):
        radar.top_zones([], NOW, window_days=-1)


def test_zone_drilldown_lists_store_codes(radar):
    stores = [
        restaurant_with_issues("FB9", "Atrium", high_foot_traffic=True),
        restaurant_with_issues("FB1", "Atrium"),
        make_store("RT1", "Atrium", compliance_items=[
            verified(ComplianceCategory.FIRE_EQUIPMENT, timedelta(hours=30)),
        ]),
        restaurant_with_issues("FB5", "Boulevard"),
    ]

    drilldown = radar.zone_drilldown(stores, "Atrium", NOW).to_dict()

    assert drilldown == {
        "zone": "Atrium",
        "restaurant_criticals": ["FB1", "FB9"],
        "high_footfall_reds": ["FB9"],
        "next_72_hours_risk": ["RT1"],
        "overdue_critical_actions": ["FB1", "FB9"],
    }


def test_driving_factors_text():
    metrics = ZoneMetrics(zone="Atrium", restaurant_criticals=2, high_footfall_reds=1, next_72_hours_risk=1)
    assert driving_factors(metrics) == "Atrium: 2 Restaurant Criticals + 1 High-footfall Red + 1 72h expiry"

    metrics = ZoneMetrics(zone="Central", next_72_hours_risk=3, overdue_critical_actions=4)
    assert driving_factors(metrics) == "Central: 3 72h expiries"


@pytest.mark.parametrize(
    "current, previous, expected",
    [
        (10, 0, (10, TrendDirection.UP, 0)),
        (5, 5, (0, TrendDirection.STABLE, 0)),
        (15, 10, (5, TrendDirection.UP, 50)),
        (0, 8, (-8, TrendDirection.DOWN, -100)),
    ],
)
def test_zone_trend_between(current, previous, expected):
    trend = ZoneTrend.between(current, previous)
    assert (trend.delta, trend.direction, trend.percentage) == expected
