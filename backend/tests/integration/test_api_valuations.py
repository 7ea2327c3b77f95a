"""Integration tests for refresh, totals and compare API."""

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from models import DailyTotal, ValuationSnapshot
from services.holdings_service import HoldingsService
from tests.fixtures import add_daily_total

DAY = date(2024, 3, 15)


def _refresh(client, account_id, day=DAY):
    return client.post(
        f"/api/accounts/{account_id}/refresh", params={"valuation_date": day.isoformat()}
    )


class TestRefresh:
    def test_refresh_records_total(self, client, db, account, holdings):
        add_daily_total(db, account, DAY - timedelta(days=1), Decimal("100000"))

        response = _refresh(client, account.id)

        assert response.status_code == 200
        data = response.json()
        # AAPL 10 x 150.25 x 80 + MSFT 2 x 380.50 x 80
        assert Decimal(data["final_total"]) == Decimal("181080")
        assert Decimal(data["previous_total"]) == Decimal("100000")
        assert Decimal(data["difference"]) == Decimal("81080")
        assert data["home_currency"] == "INR"
        assert data["valuation_date"] == DAY.isoformat()
        assert data["unavailable_symbols"] == []
        assert {v["holding_name"] for v in data["valuations"]} == {"AAPL", "MSFT"}

    def test_refresh_twice_same_day_is_idempotent(self, client, db, account, holdings):
        first = _refresh(client, account.id).json()
        second = _refresh(client, account.id).json()

        assert first["final_total"] == second["final_total"]
        assert first["difference"] == second["difference"]
        assert db.query(DailyTotal).filter_by(account_id=account.id).count() == 1
        assert db.query(ValuationSnapshot).filter_by(account_id=account.id).count() == 2

    def test_refresh_reports_unavailable_price(self, client, account, holdings, quote_provider):
        quote_provider.fail("MSFT")

        response = _refresh(client, account.id)

        assert response.status_code == 200
        data = response.json()
        assert data["unavailable_symbols"] == ["MSFT"]
        assert Decimal(data["final_total"]) == Decimal("120200")
        msft = next(v for v in data["valuations"] if v["holding_name"] == "MSFT")
        assert msft["unit_price_home"] is None
        assert msft["price_status"] == "unavailable"

    def test_refresh_rate_unavailable(self, client, db, account, holdings, rate_provider):
        rate_provider.should_fail = True

        response = _refresh(client, account.id)

        assert response.status_code == 502
        assert db.query(DailyTotal).count() == 0
        assert db.query(ValuationSnapshot).count() == 0

    def test_refresh_store_read_failure(self, client, account):
        with patch.object(
            HoldingsService, "list_holdings", side_effect=SQLAlchemyError("locked")
        ):
            response = _refresh(client, account.id)

        assert response.status_code == 503

    def test_refresh_future_date_rejected(self, client, db, account, holdings):
        add_daily_total(db, account, DAY, Decimal("1000"))

        response = _refresh(client, account.id, DAY + timedelta(days=365))

        assert response.status_code == 422
        assert "in the future" in response.json()["detail"]
        assert [t.valuation_date for t in db.query(DailyTotal).all()] == [DAY]

    def test_refresh_backfill_rebases_next_day(self, client, db, account, holdings):
        add_daily_total(db, account, DAY - timedelta(days=2), Decimal("100000"))
        add_daily_total(db, account, DAY, Decimal("200000"), Decimal("100000"))

        response = _refresh(client, account.id, DAY - timedelta(days=1))

        assert response.status_code == 200
        db.expire_all()
        later = db.query(DailyTotal).filter_by(account_id=account.id, valuation_date=DAY).one()
        assert later.difference == Decimal("18920")

    def test_refresh_unknown_account(self, client):
        response = _refresh(client, "missing")
        assert response.status_code == 404

    def test_refresh_with_no_holdings(self, client, account):
        response = _refresh(client, account.id)

        assert response.status_code == 200
        assert Decimal(response.json()["final_total"]) == Decimal("0")


class TestTotals:
    def test_latest_total(self, client, db, account):
        add_daily_total(db, account, date(2024, 1, 1), Decimal("100"))
        add_daily_total(db, account, date(2024, 1, 3), Decimal("300"), Decimal("200"))

        response = client.get(f"/api/accounts/{account.id}/totals/latest")

        assert response.status_code == 200
        data = response.json()
        assert data["valuation_date"] == "2024-01-03"
        assert Decimal(data["difference"]) == Decimal("200")

    def test_latest_total_none_recorded(self, client, account):
        response = client.get(f"/api/accounts/{account.id}/totals/latest")
        assert response.status_code == 404

    def test_list_totals_in_range(self, client, db, account):
        for day in (1, 2, 3, 4):
            add_daily_total(db, account, date(2024, 1, day), Decimal(day * 100))

        response = client.get(
            f"/api/accounts/{account.id}/totals",
            params={"start": "2024-01-02", "end": "2024-01-03"},
        )

        assert response.status_code == 200
        assert [t["valuation_date"] for t in response.json()] == ["2024-01-02", "2024-01-03"]

    def test_list_totals_inverted_range(self, client, account):
        response = client.get(
            f"/api/accounts/{account.id}/totals",
            params={"start": "2024-02-01", "end": "2024-01-01"},
        )
        assert response.status_code == 422

    def test_list_snapshots(self, client, account, holdings):
        _refresh(client, account.id)

        response = client.get(
            f"/api/accounts/{account.id}/snapshots",
            params={"valuation_date": DAY.isoformat()},
        )

        assert response.status_code == 200
        rows = response.json()
        assert [r["holding_name"] for r in rows] == ["AAPL", "MSFT"]
        assert Decimal(rows[0]["total_value_home"]) == Decimal("120200")


class TestCompare:
    def test_compare(self, client, db, account):
        add_daily_total(db, account, date(2024, 1, 1), Decimal("1000"))
        add_daily_total(db, account, date(2024, 2, 1), Decimal("1500"))

        response = client.get(
            f"/api/accounts/{account.id}/compare",
            params={"day1": "2024-01-01", "day2": "2024-02-01"},
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total1"]) == Decimal("1000")
        assert Decimal(data["total2"]) == Decimal("1500")
        assert Decimal(data["difference"]) == Decimal("500")

    def test_compare_missing_day(self, client, db, account):
        add_daily_total(db, account, date(2024, 1, 1), Decimal("1000"))
        add_daily_total(db, account, date(2024, 2, 2), Decimal("1500"))

        response = client.get(
            f"/api/accounts/{account.id}/compare",
            params={"day1": "2024-01-01", "day2": "2024-02-01"},
        )

        assert response.status_code == 404
        assert "2024-02-01" in response.json()["detail"]

    def test_compare_requires_both_days(self, client, account):
        response = client.get(
            f"/api/accounts/{account.id}/compare", params={"day1": "2024-01-01"}
        )
        assert response.status_code == 422
