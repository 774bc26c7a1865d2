"""Tests for the inventory ledger against a mocked connection."""

from datetime import date
from decimal import Decimal

import psycopg2
import pytest

from innkeep.domain.inventory import (
    InventoryLedger,
    LedgerFailure,
    Release,
    Reservation,
    check_nights,
)
from innkeep.domain.models import iter_nights
from innkeep.domain.results import Failure
from innkeep.infra.cache import inventory_tag, night_tag

from .helpers import inventory_days, mock_connection

CHECK_IN = date(2025, 3, 10)
CHECK_OUT = date(2025, 3, 13)


def _rows(available=5, total=5, stop_sell=False, min_stay=1, start=CHECK_IN, end=CHECK_OUT):
    rows = []
    for i, night in enumerate(iter_nights(start, end)):
        avail = available[i] if isinstance(available, list) else available
        rows.append((1, night, total, avail, total - avail, None, stop_sell, min_stay))
    return rows


def _ledger(cache, cur_rows=None, rowcount=3):
    conn, cur = mock_connection()
    cur.fetchall.return_value = cur_rows if cur_rows is not None else _rows()
    cur.rowcount = rowcount
    return InventoryLedger(cache, connect=lambda: conn), conn, cur


class TestCheckNights:
    def test_all_nights_ok(self):
        days = inventory_days(1, CHECK_IN, CHECK_OUT, available=2)
        assert check_nights(days, check_in=CHECK_IN, check_out=CHECK_OUT, quantity=2) is None

    def test_missing_night(self):
        days = inventory_days(1, CHECK_IN, CHECK_OUT)
        del days[1]
        failure = check_nights(days, check_in=CHECK_IN, check_out=CHECK_OUT, quantity=1)
        assert failure.reason is LedgerFailure.NO_INVENTORY_RECORD
        assert failure.meta["date"] == date(2025, 3, 11)

    def test_first_failing_night_reported(self):
        days = inventory_days(1, CHECK_IN, CHECK_OUT, available=[3, 0, 0])
        failure = check_nights(days, check_in=CHECK_IN, check_out=CHECK_OUT, quantity=1)
        assert failure.reason is LedgerFailure.INSUFFICIENT_ROOMS
        assert failure.meta == {"date": date(2025, 3, 11), "available": 0, "requested": 1}

    def test_min_stay(self):
        days = inventory_days(1, CHECK_IN, CHECK_OUT, min_stay=4)
        failure = check_nights(days, check_in=CHECK_IN, check_out=CHECK_OUT, quantity=1)
        assert failure.reason is LedgerFailure.MIN_STAY_VIOLATION


class TestReserve:
    def test_success_commits_and_invalidates(self, cache):
        ledger, conn, cur = _ledger(cache)
        cache.set("search", "stale", 60, tags=(night_tag(date(2025, 3, 11)),))
        cache.set("rows", "stale", 60, tags=(inventory_tag(1),))

        result = ledger.reserve(1, CHECK_IN, CHECK_OUT, 2)

        assert result == Reservation(1, CHECK_IN, CHECK_OUT, 2, 3)
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        assert cache.get("search") is None
        assert cache.get("rows") is None

        lock_sql = cur.execute.call_args_list[0][0][0]
        assert "FOR UPDATE" in lock_sql
        assert "ORDER BY date" in lock_sql
        update_sql, params = cur.execute.call_args_list[1][0]
        assert "available_rooms >= %s" in update_sql
        assert "stop_sell = false" in update_sql
        assert params == (2, 2, 1, CHECK_IN, CHECK_OUT, 2)

    @pytest.mark.parametrize(
        "check_out,quantity,reason",
        [
            (CHECK_IN, 1, LedgerFailure.INVALID_DATE_RANGE),
            (date(2025, 3, 9), 1, LedgerFailure.INVALID_DATE_RANGE),
            (CHECK_OUT, 0, LedgerFailure.INVALID_QUANTITY),
        ],
    )
    def test_validation_before_any_sql(self, cache, check_out, quantity, reason):
        ledger, conn, cur = _ledger(cache)
        result = ledger.reserve(1, CHECK_IN, check_out, quantity)
        assert isinstance(result, Failure)
        assert result.reason is reason
        cur.execute.assert_not_called()

    def test_stop_sell_rolls_back(self, cache):
        ledger, conn, cur = _ledger(cache, _rows(stop_sell=True))
        result = ledger.reserve(1, CHECK_IN, CHECK_OUT)
        assert result.reason is LedgerFailure.STOP_SELL_ACTIVE
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        assert cur.execute.call_count == 1

    def test_insufficient_rooms(self, cache):
        ledger, conn, _ = _ledger(cache, _rows(available=[5, 1, 5]))
        result = ledger.reserve(1, CHECK_IN, CHECK_OUT, 2)
        assert result.reason is LedgerFailure.INSUFFICIENT_ROOMS
        assert result.meta["date"] == date(2025, 3, 11)
        conn.rollback.assert_called_once()

    def test_missing_night(self, cache):
        ledger, conn, _ = _ledger(cache, _rows(end=date(2025, 3, 12)))
        result = ledger.reserve(1, CHECK_IN, CHECK_OUT)
        assert result.reason is LedgerFailure.NO_INVENTORY_RECORD
        assert result.meta == {"date": date(2025, 3, 12)}

    def test_row_count_mismatch_rolls_back(self, cache):
        ledger, conn, _ = _ledger(cache, rowcount=2)
        cache.set("search", "kept", 60, tags=(night_tag(CHECK_IN),))

        result = ledger.reserve(1, CHECK_IN, CHECK_OUT)

        assert result.reason is LedgerFailure.INSUFFICIENT_ROOMS
        assert result.meta == {"updated_nights": 2, "nights": 3}
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        assert cache.get("search") == "kept"

    def test_storage_error_is_reported_without_details(self, cache):
        ledger, conn, cur = _ledger(cache)
        cur.execute.side_effect = psycopg2.OperationalError("server closed the connection")

        result = ledger.reserve(1, CHECK_IN, CHECK_OUT)

        assert result.reason is LedgerFailure.STORAGE_ERROR
        assert result.meta == {}
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()


class TestRelease:
    def test_success(self, cache):
        ledger, conn, cur = _ledger(cache)
        result = ledger.release(1, CHECK_IN, CHECK_OUT, 1)
        assert result == Release(1, CHECK_IN, CHECK_OUT, 1, 3)
        conn.commit.assert_called_once()
        sql = cur.execute.call_args[0][0]
        assert "LEAST(available_rooms + %s, total_rooms)" in sql
        assert "GREATEST(booked_rooms - %s, 0)" in sql

    def test_missing_nights_roll_back(self, cache):
        ledger, conn, _ = _ledger(cache, rowcount=1)
        result = ledger.release(1, CHECK_IN, CHECK_OUT, 1)
        assert result.reason is LedgerFailure.NO_INVENTORY_RECORD
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_invalid_quantity(self, cache):
        ledger, _, cur = _ledger(cache)
        assert ledger.release(1, CHECK_IN, CHECK_OUT, -1).reason is LedgerFailure.INVALID_QUANTITY
        cur.execute.assert_not_called()


class TestBulkUpdate:
    def test_updates_and_invalidates_inclusive_range(self, cache):
        ledger, conn, cur = _ledger(cache, rowcount=3)
        cache.set("last", "stale", 60, tags=(night_tag(date(2025, 3, 12)),))

        updated = ledger.bulk_update(
            1, CHECK_IN, date(2025, 3, 12), {"total_rooms": 8, "price_override": Decimal("150")}
        )

        assert updated == 3
        conn.commit.assert_called_once()
        sql, params = cur.execute.call_args[0]
        assert "available_rooms = GREATEST(%s - booked_rooms, 0)" in sql
        assert "date <= %s" in sql
        assert params == (8, Decimal("150"), 8, 1, CHECK_IN, date(2025, 3, 12))
        assert cache.get("last") is None

    def test_none_clears_price_override(self, cache):
        ledger, _, cur = _ledger(cache)
        ledger.bulk_update(1, CHECK_IN, CHECK_IN, {"price_override": None})
        params = cur.execute.call_args[0][1]
        assert params[0] is None

    @pytest.mark.parametrize(
        "fields,message",
        [
            ({}, "no fields"),
            ({"available_rooms": 3}, "unknown"),
            ({"total_rooms": -1}, "total_rooms"),
            ({"min_stay": 0}, "min_stay"),
            ({"price_override": Decimal("-0.01")}, "price_override"),
        ],
    )
    def test_invalid_input(self, cache, fields, message):
        ledger, _, cur = _ledger(cache)
        with pytest.raises(ValueError, match=message):
            ledger.bulk_update(1, CHECK_IN, CHECK_OUT, fields)
        cur.execute.assert_not_called()

    def test_reversed_range(self, cache):
        ledger, _, _ = _ledger(cache)
        with pytest.raises(ValueError):
            ledger.bulk_update(1, CHECK_OUT, CHECK_IN, {"stop_sell": True})


class TestInitialize:
    def test_counts_created_rows(self, cache):
        ledger, conn, cur = _ledger(cache)
        # first night exists already
        cur.fetchone.side_effect = [None, (date(2025, 3, 11),), (date(2025, 3, 12),)]

        created = ledger.initialize(1, CHECK_IN, date(2025, 3, 12), total_rooms=4)

        assert created == 2
        conn.commit.assert_called_once()
        assert cur.execute.call_count == 3

    def test_capacity_from_physical_rooms(self, cache):
        ledger, _, cur = _ledger(cache)
        cur.fetchone.side_effect = [(6,), (CHECK_IN,)]

        created = ledger.initialize(1, CHECK_IN, CHECK_IN)

        assert created == 1
        count_sql = cur.execute.call_args_list[0][0][0]
        assert "out_of_order" in count_sql
        insert_params = cur.execute.call_args_list[1][0][1]
        assert insert_params == (1, CHECK_IN, 6, 6)


class TestReads:
    def test_get_for_range(self, cache):
        ledger, _, _ = _ledger(cache)
        days = ledger.get_for_range(1, CHECK_IN, CHECK_OUT)
        assert [d.date for d in days] == list(iter_nights(CHECK_IN, CHECK_OUT))

    def test_occupancy_percent(self, cache):
        ledger, _, _ = _ledger(cache, _rows(available=3, total=20, end=date(2025, 3, 11)))
        assert ledger.occupancy_percent(1, CHECK_IN) == Decimal("85.00")

    def test_occupancy_without_row(self, cache):
        ledger, _, _ = _ledger(cache, [])
        assert ledger.occupancy_percent(1, CHECK_IN) == Decimal("0")

    def test_min_availability(self, cache):
        ledger, _, cur = _ledger(cache)
        cur.fetchone.return_value = (1,)
        assert ledger.min_availability(1, CHECK_IN, CHECK_OUT) == 1
