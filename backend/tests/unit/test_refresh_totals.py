"""Tests for scripts/refresh_totals.py."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from models import DailyTotal
from scripts.refresh_totals import main, refresh_all

DAY = date(2024, 3, 15)


def _session_factory(db):
    return lambda: db


class TestRefreshAll:
    def test_refreshes_every_account(self, db, account, other_account, holdings, reconciliation_service, capsys):
        failures = refresh_all(
            valuation_date=DAY,
            service=reconciliation_service,
            session_factory=_session_factory(db),
        )

        assert failures == 0
        assert db.query(DailyTotal).filter_by(valuation_date=DAY).count() == 2
        out = capsys.readouterr().out
        assert "Test Account: 181080.00 INR" in out
        assert "Another Account: 0.00 INR" in out

    def test_single_account_by_name(self, db, account, other_account, reconciliation_service):
        refresh_all(
            account_name="Another Account",
            valuation_date=DAY,
            service=reconciliation_service,
            session_factory=_session_factory(db),
        )

        totals = db.query(DailyTotal).all()
        assert [t.account_id for t in totals] == [other_account.id]

    def test_lists_unavailable_symbols(self, db, account, holdings, reconciliation_service, quote_provider, capsys):
        quote_provider.fail("MSFT")

        refresh_all(
            valuation_date=DAY,
            service=reconciliation_service,
            session_factory=_session_factory(db),
        )

        assert "[no price: MSFT]" in capsys.readouterr().out

    def test_failure_counted_and_other_accounts_continue(
        self, db, account, other_account, reconciliation_service, rate_provider, capsys
    ):
        rate_provider.should_fail = True

        failures = refresh_all(
            valuation_date=DAY,
            service=reconciliation_service,
            session_factory=_session_factory(db),
        )

        assert failures == 2
        assert db.query(DailyTotal).count() == 0
        assert capsys.readouterr().out.count("FAILED") == 2

    def test_future_date_counted_as_failure(self, db, account, other_account, reconciliation_service):
        failures = refresh_all(
            valuation_date=date(2025, 3, 15),
            service=reconciliation_service,
            session_factory=_session_factory(db),
        )

        assert failures == 2
        assert db.query(DailyTotal).count() == 0

    def test_no_matching_accounts(self, db, reconciliation_service, capsys):
        failures = refresh_all(
            account_name="Nope",
            service=reconciliation_service,
            session_factory=_session_factory(db),
        )

        assert failures == 0
        assert "No matching accounts" in capsys.readouterr().out


class TestMain:
    @patch("scripts.refresh_totals.dispose_engine")
    @patch("scripts.refresh_totals.init_db")
    @patch("scripts.refresh_totals.refresh_all", return_value=0)
    def test_parses_arguments(self, mock_refresh, mock_init, mock_dispose):
        code = main(["--account", "Brokerage", "--date", "2024-03-15"])

        assert code == 0
        mock_refresh.assert_called_once_with(account_name="Brokerage", valuation_date=DAY)
        mock_init.assert_called_once()
        mock_dispose.assert_called_once()

    @patch("scripts.refresh_totals.dispose_engine")
    @patch("scripts.refresh_totals.init_db")
    @patch("scripts.refresh_totals.refresh_all", return_value=1)
    def test_exit_code_on_failure(self, mock_refresh, mock_init, mock_dispose):
        assert main([]) == 1
        mock_refresh.assert_called_once_with(account_name=None, valuation_date=None)

    @patch("scripts.refresh_totals.init_db")
    @patch("scripts.refresh_totals.refresh_all")
    def test_future_date_rejected(self, mock_refresh, mock_init, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--date", "2999-01-01"])

        assert exc.value.code == 2
        assert "in the future" in capsys.readouterr().err
        mock_refresh.assert_not_called()
        mock_init.assert_not_called()
