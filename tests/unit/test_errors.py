"""Tests for eg_common.errors and eg_common.response."""

from src.eg_common.errors import (
    AppError,
    AskBelowCostError,
    BidExceedsValuationError,
    InvalidActionError,
    InvalidPriceError,
    RoundNotActiveError,
    SessionFullError,
    SessionNotFoundError,
    UnknownGameTypeError,
)
from src.eg_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_custom_http_status(self) -> None:
        err = AppError(code=1004, message="Session full", http_status=409)
        assert err.http_status == 409

    def test_is_exception(self) -> None:
        err = AppError(code=1001, message="test")
        assert isinstance(err, Exception)


class TestSpecificErrors:
    def test_session_not_found(self) -> None:
        err = SessionNotFoundError("ABC123")
        assert err.code == 1001
        assert err.http_status == 404
        assert "ABC123" in err.message

    def test_session_full(self) -> None:
        err = SessionFullError("ABC123", 4)
        assert err.code == 1004
        assert err.http_status == 409

    def test_round_not_active_is_a_conflict(self) -> None:
        err = RoundNotActiveError("round-1")
        assert err.code == 2002
        assert err.http_status == 409

    def test_invalid_price_is_bad_request(self) -> None:
        err = InvalidPriceError()
        assert err.code == 4001
        assert err.http_status == 400

    def test_bid_exceeds_valuation_message(self) -> None:
        err = BidExceedsValuationError(61, 60)
        assert err.code == 4002
        assert err.http_status == 422
        assert "61" in err.message
        assert "60" in err.message

    def test_ask_below_cost(self) -> None:
        err = AskBelowCostError(29.5, 30)
        assert err.code == 4003
        assert "29.5" in err.message

    def test_invalid_action_prefix(self) -> None:
        err = InvalidActionError("bad payload")
        assert err.code == 5002
        assert err.message == "Invalid action: bad payload"

    def test_unknown_game_type(self) -> None:
        assert UnknownGameTypeError("chess").code == 5003


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": "abc"})
        assert resp.code == 0
        assert resp.success is True
        assert resp.data == {"id": "abc"}
        assert resp.error is None

    def test_error(self) -> None:
        resp = error_response(2002, "Round is not active: r1")
        assert resp.code == 2002
        assert resp.success is False
        assert resp.error == "Round is not active: r1"
        assert resp.data is None

    def test_serialization(self) -> None:
        d = success_response({"price": 45.0}).model_dump()
        assert set(d) == {"success", "data", "error", "code", "timestamp", "request_id"}

    def test_request_ids_are_unique(self) -> None:
        assert ApiResponse().request_id != ApiResponse().request_id
