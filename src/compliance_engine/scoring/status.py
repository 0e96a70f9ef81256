"""
Compliance Status Classification

Traffic-light status for individual compliance items and the worst-of
aggregate for a store. Every function takes the evaluation time explicitly so
that one scoring run never disagrees with itself about the current day.
"""
import math
from datetime import date, datetime, time, timezone
from typing import Iterable, Optional, Union

from config.settings import settings
from src.compliance_engine.errors import InvalidInputError, UnknownCategoryError
from src.compliance_engine.models.domain import (
    ComplianceCategory,
    ComplianceItem,
    ComplianceStatus,
    StoreType,
    VerificationStatus,
    normalize_category,
)

SECONDS_PER_DAY = 24 * 60 * 60

EXPIRY_TRACKED_CATEGORIES = frozenset({
    ComplianceCategory.OHS_RISK_ASSESSMENT,
    ComplianceCategory.EXTRACTION_CERT,
    ComplianceCategory.FIRE_SUPPRESSION_CERT,
    ComplianceCategory.FIRE_EQUIPMENT,
    ComplianceCategory.TRAINING,
    ComplianceCategory.FIRST_AID,
})

# Lower rank is worse
STATUS_RANK = {
    ComplianceStatus.RED: 0,
    ComplianceStatus.ORANGE: 1,
    ComplianceStatus.GREEN: 2,
    ComplianceStatus.GREY: 3,
}

CATEGORY_LABELS = {
    ComplianceCategory.OHS_RISK_ASSESSMENT: "OHS Risk Assessment",
    ComplianceCategory.EXTRACTION_CERT: "Extraction Certification",
    ComplianceCategory.FIRE_SUPPRESSION_CERT: "Fire Suppression Certification",
    ComplianceCategory.FIRE_EQUIPMENT: "Fire Equipment",
    ComplianceCategory.TRAINING: "Training",
    ComplianceCategory.FIRST_AID: "First Aid",
    ComplianceCategory.SHOP_AUDIT: "Shop Audit",
}

STORE_TYPE_LABELS = {
    StoreType.FB: "Food & Beverage",
    StoreType.RETAIL: "Retail",
    StoreType.SERVICES: "Services",
    StoreType.LUXURY: "Luxury",
    StoreType.ATTRACTION: "Attraction",
    StoreType.POPUP: "Pop-up",
}


def require_datetime(value, field: str = "now") -> datetime:
    """Reject evaluation times that are not ``datetime`` instances."""
    if not isinstance(value, datetime):
        raise InvalidInputError(field, value, "expected a datetime")
    return value


def require_non_negative(value, field: str):
    """Reject thresholds and windows that are negative, NaN or infinite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(field, value, "expected a number")
    if not math.isfinite(value) or value < 0:
        raise InvalidInputError(field, value, "must be finite and non-negative")
    return value


def resolve_threshold(orange_threshold_days: Optional[Union[int, float]]) -> Union[int, float]:
    if orange_threshold_days is None:
        orange_threshold_days = settings.orange_threshold_days
    return require_non_negative(orange_threshold_days, "orange_threshold_days")


def as_datetime(value: Union[date, datetime], reference: datetime) -> datetime:
    """
    Align a stored date or datetime with the evaluation time.

    Date-only values mean midnight. Naive values adopt the reference's
    timezone; aware values are converted to UTC when the reference is naive.
    """
    moment = value if isinstance(value, datetime) else datetime.combine(value, time.min)
    if moment.tzinfo is None and reference.tzinfo is not None:
        return moment.replace(tzinfo=reference.tzinfo)
    if moment.tzinfo is not None and reference.tzinfo is None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def days_until_expiry(expiry_date: Union[date, datetime], now: datetime) -> int:
    """Whole days until expiry, rounded up; negative once expired."""
    require_datetime(now)
    delta = as_datetime(expiry_date, now) - now
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def days_overdue(due_date: Union[date, datetime], now: datetime) -> int:
    """Whole days past the due date, rounded up; 0 when not yet due."""
    require_datetime(now)
    delta = now - as_datetime(due_date, now)
    return max(0, math.ceil(delta.total_seconds() / SECONDS_PER_DAY))


def classify_item(
    item: ComplianceItem,
    now: datetime,
    orange_threshold_days: Optional[int] = None,
) -> ComplianceStatus:
    """
    Derive the traffic-light status of a single compliance item.

    Args:
        item: Compliance item snapshot
        now: Evaluation time
        orange_threshold_days: Days before expiry at which the item turns
            ORANGE (inclusive). Defaults to ``settings.orange_threshold_days``.

    Returns:
        GREY when not required, RED for missing/rejected/expired evidence,
        ORANGE for pending verification or upcoming expiry, GREEN otherwise.

    Raises:
        UnknownCategoryError: required item with an undefined category
        InvalidInputError: ``now`` or the threshold is unusable
    """
    require_datetime(now)
    threshold = resolve_threshold(orange_threshold_days)

    if not item.required:
        return ComplianceStatus.GREY

    category = normalize_category(item.category)
    if not isinstance(category, ComplianceCategory):
        raise UnknownCategoryError(item.category)

    if not item.has_evidence:
        return ComplianceStatus.RED

    if item.verification_status == VerificationStatus.PENDING:
        return ComplianceStatus.ORANGE
    if item.verification_status == VerificationStatus.REJECTED:
        return ComplianceStatus.RED

    if category in EXPIRY_TRACKED_CATEGORIES:
        if item.expiry_date is None:
            return ComplianceStatus.RED
        remaining = days_until_expiry(item.expiry_date, now)
        if remaining < 0:
            return ComplianceStatus.RED
        if remaining <= threshold:
            return ComplianceStatus.ORANGE

    return ComplianceStatus.GREEN


def worst_status(statuses: Iterable[ComplianceStatus]) -> ComplianceStatus:
    """Worst status present; GREY only when nothing else is."""
    return min(statuses, key=STATUS_RANK.__getitem__, default=ComplianceStatus.GREY)


def classify_store(
    items: Iterable[ComplianceItem],
    now: datetime,
    orange_threshold_days: Optional[int] = None,
) -> ComplianceStatus:
    """
    Overall store status: the worst status among its items.

    A single RED item makes the whole store RED. A store without items is GREY.
    """
    threshold = resolve_threshold(orange_threshold_days)
    return worst_status(classify_item(item, now, threshold) for item in items)


def category_label(category) -> str:
    """Human-readable label for a compliance category."""
    return CATEGORY_LABELS.get(normalize_category(category), str(category))


def store_type_label(store_type) -> str:
    try:
        return STORE_TYPE_LABELS[StoreType(store_type)]
    except ValueError:
        return str(store_type)


def is_category_required_for_store_type(category, store_type) -> bool:
    """Extraction and suppression certificates only apply to food & beverage stores."""
    if StoreType(store_type) == StoreType.FB:
        return True
    return normalize_category(category) not in (
        ComplianceCategory.EXTRACTION_CERT,
        ComplianceCategory.FIRE_SUPPRESSION_CERT,
    )


def expiry_status_text(expiry_date: Optional[Union[date, datetime]], now: datetime) -> str:
    """Short description of how far away (or past) an expiry date is."""
    if expiry_date is None:
        return "No expiry date"

    days = days_until_expiry(expiry_date, now)
    if days < 0:
        return f"Expired {abs(days)} days ago"
    if days == 0:
        return "Expires today"
    if days == 1:
        return "Expires tomorrow"
    if days <= 30:
        return f"Expires in {days} days"
    return f"Expires {expiry_date:%d %b %Y}"
