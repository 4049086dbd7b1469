# src/subscription/reconciler.py
"""Status and renewal rules for subscription rows.

Every function here is pure: rows come in, new rows or values come out, and
the input is never mutated. The same functions serve the database-backed
source and the in-memory fixture source.
"""
import math
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple, Union
from subscription.schemas import SubscriptionFilters, SubscriptionPage, SubscriptionRead
from config import settings

STATUS_RANK: Dict[str, int] = {"active": 3, "pending": 2, "expired": 1, "cancelled": 0}

# Operator-driven transitions. expired and cancelled are terminal.
STATUS_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "pending": ("active", "cancelled"),
    "active": ("expired", "cancelled"),
    "expired": (),
    "cancelled": (),
}

RENEWAL_TAG_INITIAL = "initial"
RENEWAL_TAG_RENEWAL = "renewal"


def is_due_for_expiry(row: SubscriptionRead, today: date) -> bool:
    return row.status == "active" and row.end_date < today


def auto_expire(rows: Iterable[SubscriptionRead], today: date) -> List[SubscriptionRead]:
    """Return the rows with every active row whose end date has passed marked expired."""
    return [
        row.model_copy(update={"status": "expired"}) if is_due_for_expiry(row, today) else row
        for row in rows
    ]


def next_renewal_count(last_renewal_count: int) -> int:
    """Number the next row after the highest renewal_count already used, so gaps left by deletes are never reused."""
    return last_renewal_count + 1


def renewal_tag(renewal_count: int) -> str:
    return RENEWAL_TAG_INITIAL if renewal_count <= 1 else RENEWAL_TAG_RENEWAL


def can_transition(current: str, new: str) -> bool:
    if current == new:
        return True
    return new in STATUS_TRANSITIONS.get(current, ())


def should_collapse(filters: SubscriptionFilters) -> bool:
    """History and unpaid views list every row; all other views show one row per subscriber."""
    if filters.subscriber_id is not None:
        return False
    return filters.payment_status != "unpaid"


def rank_key(row: SubscriptionRead):
    """Higher sorts as more current: status rank, then end date, then creation time, then id."""
    return (STATUS_RANK.get(row.status, 0), row.end_date, row.created_at, row.id)


def pick_current(rows: Iterable[SubscriptionRead]) -> SubscriptionRead:
    return max(rows, key=rank_key)


def collapse(rows: Iterable[SubscriptionRead]) -> List[SubscriptionRead]:
    """Reduce rows to the single most current row of each subscriber."""
    current: Dict[int, SubscriptionRead] = {}
    for row in rows:
        existing = current.get(row.subscriber_id)
        if existing is None or rank_key(row) > rank_key(existing):
            current[row.subscriber_id] = row
    return list(current.values())


def expiring_window(today: date, days: Optional[int] = None) -> Tuple[date, date]:
    if days is None:
        days = settings.EXPIRING_SOON_DAYS
    return today, today + timedelta(days=days)


def _matches_search(row: SubscriptionRead, needle: str) -> bool:
    if row.subscriber is None:
        return False
    name = (row.subscriber.name or "").lower()
    email = (row.subscriber.email or "").lower()
    return needle in name or needle in email


def apply_filters(
        rows: Iterable[SubscriptionRead],
        filters: SubscriptionFilters,
        today: date
) -> List[SubscriptionRead]:
    result = list(rows)
    if filters.status:
        result = [r for r in result if r.status == filters.status]
    if filters.payment_status:
        result = [r for r in result if r.payment_status == filters.payment_status]
    if filters.subscriber_id is not None:
        result = [r for r in result if r.subscriber_id == filters.subscriber_id]
    if filters.search:
        needle = filters.search.strip().lower()
        if needle:
            result = [r for r in result if _matches_search(r, needle)]
    if filters.expiring_soon:
        start, end = expiring_window(today)
        result = [r for r in result if r.status == "active" and start <= r.end_date <= end]
    return result


def sort_rows(rows: Iterable[SubscriptionRead], expiring_soon: bool = False) -> List[SubscriptionRead]:
    if expiring_soon:
        return sorted(rows, key=lambda r: (r.end_date, r.id))
    return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)


def _positive_int(value: Union[int, str, None], default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def normalize_page(page: Union[int, str, None], limit: Union[int, str, None]) -> Tuple[int, int]:
    """Coerce page and limit to positive integers, falling back to page 1 and the default limit."""
    page = _positive_int(page, 1)
    limit = min(_positive_int(limit, settings.DEFAULT_PAGE_LIMIT), settings.MAX_PAGE_LIMIT)
    return page, limit


def paginate(rows: List[SubscriptionRead], page: Union[int, str, None], limit: Union[int, str, None]) -> SubscriptionPage:
    page, limit = normalize_page(page, limit)
    total = len(rows)
    start = (page - 1) * limit
    return SubscriptionPage(
        rows=rows[start:start + limit],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


def reconcile(
        rows: Iterable[SubscriptionRead],
        filters: SubscriptionFilters,
        today: date,
        page: Union[int, str, None] = None,
        limit: Union[int, str, None] = None
) -> SubscriptionPage:
    """Expire, collapse, filter, sort and page a snapshot of one organization's rows."""
    current = auto_expire(rows, today)
    if should_collapse(filters):
        current = collapse(current)
    current = apply_filters(current, filters, today)
    current = sort_rows(current, expiring_soon=filters.expiring_soon)
    return paginate(current, page, limit)
