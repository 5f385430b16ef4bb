"""Tests for the pipeline orchestrator and the analysis session."""

import pytest

from ledger_src.core import pipeline as pipeline_module
from ledger_src.core.contracts import PositionStatus
from ledger_src.core.errors import (
    ColumnValidationError,
    EmptyFileError,
    ErrorPhase,
    ErrorType,
    NormalizationFailure,
    RowValidationError,
)
from ledger_src.core.pipeline import AnalysisSession, Pipeline, run_analysis
from tests.factories import HEADERS, make_row, sell


class TestRunAnalysis:
    def test_full_result(self, mixed_transactions) -> None:
        result = run_analysis(mixed_transactions)
        assert result.base_currency == "USD"
        assert result.row_count == 5
        assert [p.ticker for p in result.positions] == ["AAPL", "MSFT"]
        assert result.positions[0].status == PositionStatus.HOLDING
        assert result.dividends.payment_count == 1
        assert result.trading.total_transactions == 3
        assert not result.partial_data.is_partial_data

    def test_deterministic(self, mixed_transactions) -> None:
        first = run_analysis(mixed_transactions).model_dump_json()
        second = run_analysis(mixed_transactions).model_dump_json()
        assert first == second

    def test_sell_only_flagged(self) -> None:
        result = run_analysis([sell("TSLA", shares=2, total=500.0)])
        assert result.positions[0].total_shares == -2
        assert result.partial_data.affected_tickers == ["TSLA"]

    def test_empty(self) -> None:
        result = run_analysis([])
        assert result.row_count == 0
        assert result.positions == []
        assert result.trading.win_rate == 0


class TestPipeline:
    def test_run(self, sample_rows) -> None:
        progress = []
        result = Pipeline(progress_callback=lambda msg, pct: progress.append(pct)).run(HEADERS, sample_rows)
        assert result.row_count == 3
        assert result.positions[0].realized_result == 200.0
        assert progress[-1] == 1.0

    def test_missing_columns(self, sample_rows) -> None:
        with pytest.raises(ColumnValidationError):
            Pipeline().run(["Action", "Time"], sample_rows)

    def test_empty_rows(self) -> None:
        with pytest.raises(EmptyFileError):
            Pipeline().run(HEADERS, [])

    def test_invalid_rows(self) -> None:
        with pytest.raises(RowValidationError) as excinfo:
            Pipeline().run(HEADERS, [make_row(Ticker=None)])
        assert excinfo.value.errors == ["Row 1: Missing or invalid Ticker"]

    def test_unexpected_failure_wrapped(self, sample_rows, monkeypatch) -> None:
        def boom(*args, **kwargs):
            raise ZeroDivisionError("bad rate")

        monkeypatch.setattr(pipeline_module, "normalize_all_transactions", boom)
        with pytest.raises(NormalizationFailure) as excinfo:
            Pipeline().run(HEADERS, sample_rows)
        assert isinstance(excinfo.value.__cause__, ZeroDivisionError)

    def test_run_file(self, sample_csv) -> None:
        result = Pipeline().run_file(sample_csv)
        assert result.row_count == 3


class TestAnalysisSession:
    def test_successful_upload(self, sample_rows) -> None:
        session = AnalysisSession()
        result = session.handle_upload("export.csv", HEADERS, sample_rows)
        assert result is not None
        assert session.result is result
        assert session.upload_info.file_name == "export.csv"
        assert session.upload_info.row_count == 3
        assert session.base_currency == "USD"
        assert not session.show_upload
        assert len(session.transactions) == 3

    def test_failed_upload_keeps_previous_result(self, sample_rows) -> None:
        session = AnalysisSession()
        first = session.handle_upload("good.csv", HEADERS, sample_rows)
        assert session.handle_upload("bad.csv", HEADERS, [make_row(Total=None)]) is None
        assert session.result is first
        assert session.upload_info.file_name == "good.csv"
        assert session.error.phase == ErrorPhase.ROW_VALIDATION
        assert session.error.error_type == ErrorType.INVALID_ROWS
        assert session.error.item == "bad.csv"
        assert session.error.details == ["Row 1: Invalid total amount"]

    def test_normalization_failure_keeps_previous_result(self, sample_rows, monkeypatch) -> None:
        session = AnalysisSession()
        first = session.handle_upload("good.csv", HEADERS, sample_rows)

        def boom(*args, **kwargs):
            raise ValueError("broken")

        monkeypatch.setattr(pipeline_module, "normalize_all_transactions", boom)
        assert session.handle_upload("next.csv", HEADERS, sample_rows) is None
        assert session.result is first
        assert session.error.phase == ErrorPhase.NORMALIZATION

    def test_success_clears_error_and_selection(self, sample_rows) -> None:
        session = AnalysisSession()
        session.handle_upload("bad.csv", ["Action"], sample_rows)
        assert session.error is not None
        session.select_ticker("AAPL")
        session.handle_upload("good.csv", HEADERS, sample_rows)
        assert session.error is None
        assert session.selected_ticker is None

    def test_handle_file_rejected(self, tmp_path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        session = AnalysisSession()
        assert session.handle_file(path) is None
        assert session.error.error_type == ErrorType.FILE_REJECTED
        assert session.error.fix_hint

    def test_handle_file(self, sample_csv) -> None:
        session = AnalysisSession()
        assert session.handle_file(sample_csv) is not None
        assert session.upload_info.file_name == "export.csv"

    def test_navigation(self) -> None:
        session = AnalysisSession()
        session.select_ticker("AAPL")
        session.navigate("dividends")
        assert session.current_view == "dividends"
        assert session.selected_ticker is None
        session.back_to_overview()
        assert session.current_view == "portfolio"
        with pytest.raises(ValueError):
            session.navigate("settings")

    def test_upload_another_and_reset(self, sample_rows) -> None:
        session = AnalysisSession()
        session.handle_upload("good.csv", HEADERS, sample_rows)
        session.navigate("activity")
        session.upload_another()
        assert session.show_upload
        assert session.result is None
        assert session.current_view == "activity"

        session.dismiss_alert()
        session.reset()
        assert session == AnalysisSession()

    def test_to_dict(self, sample_rows) -> None:
        session = AnalysisSession()
        session.handle_upload("good.csv", HEADERS, sample_rows)
        data = session.to_dict()
        assert data["upload_info"] == {"file_name": "good.csv", "row_count": 3}
        assert data["error"] is None
