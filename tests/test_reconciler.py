"""
Tests for the subscription reconciler.

Covers auto-expiry, per-subscriber collapse, filtering, sorting and paging.
"""

import itertools
from datetime import date, datetime, timedelta

import pytest

from subscription.reconciler import (
    STATUS_RANK,
    apply_filters,
    auto_expire,
    can_transition,
    collapse,
    expiring_window,
    next_renewal_count,
    normalize_page,
    paginate,
    pick_current,
    reconcile,
    renewal_tag,
    should_collapse,
    sort_rows,
)
from subscription.schemas import SubscriptionFilters
from conftest import TODAY, make_row


class TestAutoExpire:
    """Test date-driven expiry of active rows."""

    def test_row_ending_yesterday_expires(self):
        row = make_row(1, 1, end_date=TODAY - timedelta(days=1))
        assert auto_expire([row], TODAY)[0].status == "expired"

    def test_row_ending_today_stays_active(self):
        row = make_row(1, 1, end_date=TODAY)
        assert auto_expire([row], TODAY)[0].status == "active"

    def test_only_active_rows_are_touched(self):
        rows = [
            make_row(1, 1, status="pending", end_date=TODAY - timedelta(days=3)),
            make_row(2, 2, status="cancelled", end_date=TODAY - timedelta(days=3)),
            make_row(3, 3, status="expired", end_date=TODAY - timedelta(days=3)),
        ]
        assert [r.status for r in auto_expire(rows, TODAY)] == ["pending", "cancelled", "expired"]

    def test_payment_status_is_untouched(self):
        row = make_row(1, 1, end_date=TODAY - timedelta(days=1), payment_status="unpaid")
        assert auto_expire([row], TODAY)[0].payment_status == "unpaid"

    def test_input_is_not_mutated(self):
        row = make_row(1, 1, end_date=TODAY - timedelta(days=1))
        auto_expire([row], TODAY)
        assert row.status == "active"

    def test_idempotent(self):
        rows = [
            make_row(1, 1, end_date=TODAY - timedelta(days=1)),
            make_row(2, 2, end_date=TODAY),
            make_row(3, 3, status="pending", end_date=TODAY - timedelta(days=5)),
        ]
        once = auto_expire(rows, TODAY)
        twice = auto_expire(once, TODAY)
        assert [r.status for r in once] == [r.status for r in twice]


class TestRenewalCounting:
    """Test renewal numbering and audit tags."""

    def test_first_row_is_initial(self):
        assert next_renewal_count(0) == 1
        assert renewal_tag(1) == "initial"

    def test_later_rows_are_renewals(self):
        assert next_renewal_count(2) == 3
        assert renewal_tag(3) == "renewal"


class TestCollapse:
    """Test picking one current row per subscriber."""

    def test_active_beats_expired_in_any_order(self):
        expired = make_row(1, 1, status="expired", end_date=TODAY + timedelta(days=40))
        active = make_row(2, 1, status="active", end_date=TODAY + timedelta(days=5))
        assert collapse([expired, active])[0].id == 2
        assert collapse([active, expired])[0].id == 2

    def test_later_end_date_wins_on_equal_rank(self):
        january = make_row(1, 1, end_date=date(2025, 1, 10))
        february = make_row(2, 1, end_date=date(2025, 2, 1))
        assert collapse([february, january])[0].end_date == date(2025, 2, 1)
        assert collapse([january, february])[0].end_date == date(2025, 2, 1)

    def test_rank_order(self):
        rows = [
            make_row(1, 1, status="cancelled", end_date=TODAY + timedelta(days=90)),
            make_row(2, 1, status="expired", end_date=TODAY + timedelta(days=60)),
            make_row(3, 1, status="pending", end_date=TODAY + timedelta(days=30)),
        ]
        assert pick_current(rows).status == "pending"
        assert STATUS_RANK["active"] > STATUS_RANK["pending"] > STATUS_RANK["expired"] > STATUS_RANK["cancelled"]

    def test_created_at_breaks_remaining_ties(self):
        end = TODAY + timedelta(days=10)
        older = make_row(7, 1, end_date=end, created_at=datetime(2025, 1, 1, 9))
        newer = make_row(3, 1, end_date=end, created_at=datetime(2025, 1, 2, 9))
        assert collapse([newer, older])[0].id == 3
        assert collapse([older, newer])[0].id == 3

    def test_id_breaks_identical_timestamps(self):
        end = TODAY + timedelta(days=10)
        stamp = datetime(2025, 1, 1, 9)
        first = make_row(4, 1, end_date=end, created_at=stamp)
        second = make_row(5, 1, end_date=end, created_at=stamp)
        assert collapse([second, first])[0].id == 5
        assert collapse([first, second])[0].id == 5

    def test_unknown_status_ranks_lowest(self):
        odd = make_row(1, 1, status="archived", end_date=TODAY + timedelta(days=100))
        expired = make_row(2, 1, status="expired", end_date=TODAY)
        assert pick_current([odd, expired]).id == 2

    def test_one_row_per_subscriber(self):
        rows = [make_row(i, i % 4) for i in range(1, 21)]
        result = collapse(rows)
        subscriber_ids = [r.subscriber_id for r in result]
        assert len(subscriber_ids) == len(set(subscriber_ids)) == 4

    def test_deterministic_across_permutations(self):
        rows = [
            make_row(1, 1, status="expired", end_date=TODAY + timedelta(days=1)),
            make_row(2, 1, status="active", end_date=TODAY + timedelta(days=1)),
            make_row(3, 1, status="active", end_date=TODAY + timedelta(days=1)),
            make_row(4, 1, status="pending", end_date=TODAY + timedelta(days=9)),
        ]
        winners = {collapse(list(p))[0].id for p in itertools.permutations(rows)}
        assert winners == {3}


class TestShouldCollapse:
    """Test which views keep every row."""

    def test_default_view_collapses(self):
        assert should_collapse(SubscriptionFilters()) is True

    def test_history_view_does_not_collapse(self):
        assert should_collapse(SubscriptionFilters(subscriber_id=7)) is False

    def test_unpaid_view_does_not_collapse(self):
        assert should_collapse(SubscriptionFilters(payment_status="unpaid")) is False

    def test_paid_view_collapses(self):
        assert should_collapse(SubscriptionFilters(payment_status="paid")) is True


class TestFilters:
    """Test filters applied after collapse."""

    def test_status_filter_runs_after_collapse(self):
        rows = [
            make_row(1, 1, status="expired", end_date=TODAY - timedelta(days=30)),
            make_row(2, 1, status="active", end_date=TODAY + timedelta(days=30)),
        ]
        page = reconcile(rows, SubscriptionFilters(status="expired"), TODAY)
        assert page.total == 0

    def test_search_matches_name_or_email_case_insensitively(self):
        rows = [
            make_row(1, 1, name="Ahmed Hassan", email="ahmed@example.com"),
            make_row(2, 2, name="Sara Ali", email="SARA@EXAMPLE.COM"),
            make_row(3, 3, name="Omar", email="omar@example.com"),
        ]
        assert [r.id for r in apply_filters(rows, SubscriptionFilters(search="hassan"), TODAY)] == [1]
        assert [r.id for r in apply_filters(rows, SubscriptionFilters(search="sara@"), TODAY)] == [2]

    def test_blank_search_keeps_everything(self):
        rows = [make_row(1, 1), make_row(2, 2)]
        assert len(apply_filters(rows, SubscriptionFilters(search="   "), TODAY)) == 2

    def test_expiring_soon_window_is_inclusive(self):
        start, end = expiring_window(TODAY)
        assert (start, end) == (TODAY, TODAY + timedelta(days=7))
        rows = [
            make_row(1, 1, end_date=TODAY),
            make_row(2, 2, end_date=TODAY + timedelta(days=7)),
            make_row(3, 3, end_date=TODAY + timedelta(days=8)),
            make_row(4, 4, status="pending", end_date=TODAY + timedelta(days=2)),
            make_row(5, 5, end_date=TODAY - timedelta(days=1)),
        ]
        result = apply_filters(rows, SubscriptionFilters(expiring_soon=True), TODAY)
        assert sorted(r.id for r in result) == [1, 2]


class TestSorting:
    """Test the final ordering of list views."""

    def test_default_sort_is_newest_first(self):
        rows = [make_row(1, 1), make_row(3, 3), make_row(2, 2)]
        assert [r.id for r in sort_rows(rows)] == [3, 2, 1]

    def test_expiring_sort_is_soonest_first(self):
        rows = [
            make_row(1, 1, end_date=TODAY + timedelta(days=5)),
            make_row(2, 2, end_date=TODAY + timedelta(days=1)),
            make_row(3, 3, end_date=TODAY + timedelta(days=3)),
        ]
        assert [r.id for r in sort_rows(rows, expiring_soon=True)] == [2, 3, 1]


class TestPagination:
    """Test page normalization and slicing."""

    def test_twenty_five_rows_make_three_pages(self):
        rows = [make_row(i, i) for i in range(1, 26)]
        first = paginate(rows, 1, 10)
        last = paginate(rows, 3, 10)
        assert (first.total, first.total_pages, len(first.rows)) == (25, 3, 10)
        assert (last.page, len(last.rows)) == (3, 5)

    def test_page_past_the_end_is_empty(self):
        page = paginate([make_row(1, 1)], 5, 10)
        assert page.rows == []
        assert page.total == 1

    def test_empty_result_has_zero_pages(self):
        assert paginate([], 1, 10).total_pages == 0

    @pytest.mark.parametrize(
        "page, limit, expected",
        [
            (None, None, (1, 10)),
            ("abc", "xyz", (1, 10)),
            (0, -4, (1, 10)),
            ("2", "25", (2, 25)),
            (3, 5000, (3, 100)),
        ],
    )
    def test_normalize_page(self, page, limit, expected):
        assert normalize_page(page, limit) == expected


class TestStatusTransitions:
    """Test the operator-driven status machine."""

    @pytest.mark.parametrize(
        "current, new",
        [("pending", "active"), ("pending", "cancelled"), ("active", "cancelled"), ("active", "expired"), ("active", "active")],
    )
    def test_allowed(self, current, new):
        assert can_transition(current, new) is True

    @pytest.mark.parametrize(
        "current, new",
        [("expired", "active"), ("cancelled", "active"), ("cancelled", "pending"), ("active", "pending"), ("expired", "cancelled")],
    )
    def test_rejected(self, current, new):
        assert can_transition(current, new) is False


class TestReconcile:
    """Test the full list pipeline."""

    def test_expired_history_collapses_behind_current_renewal(self):
        rows = [
            make_row(1, 1, end_date=TODAY - timedelta(days=31), renewal_count=1),
            make_row(2, 1, end_date=TODAY - timedelta(days=1), renewal_count=2),
            make_row(3, 1, end_date=TODAY + timedelta(days=29), renewal_count=3),
            make_row(4, 2, end_date=TODAY - timedelta(days=2)),
        ]
        page = reconcile(rows, SubscriptionFilters(), TODAY)
        assert {r.id: r.status for r in page.rows} == {3: "active", 4: "expired"}

    def test_unpaid_view_keeps_every_unpaid_row(self):
        rows = [
            make_row(1, 1, payment_status="unpaid"),
            make_row(2, 1, payment_status="unpaid"),
            make_row(3, 1, payment_status="unpaid"),
            make_row(4, 1, payment_status="paid"),
        ]
        page = reconcile(rows, SubscriptionFilters(payment_status="unpaid"), TODAY)
        assert sorted(r.id for r in page.rows) == [1, 2, 3]

    def test_history_view_lists_all_rows_newest_first(self):
        rows = [make_row(i, 9, status="expired" if i < 3 else "active") for i in range(1, 5)]
        rows.append(make_row(5, 8))
        page = reconcile(rows, SubscriptionFilters(subscriber_id=9), TODAY)
        assert [r.id for r in page.rows] == [4, 3, 2, 1]
