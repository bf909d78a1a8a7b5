"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Session
  2xxx: Round
  3xxx: Player
  4xxx: Order (bid/ask)
  5xxx: Game engine / action payload
  9xxx: System

HTTP status doubles as the error class seen by callers:
  400/422 validation (never retried), 404 not found, 409 state conflict.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Session ---

class SessionNotFoundError(AppError):
    def __init__(self, session_ref: str) -> None:
        super().__init__(1001, f"Session not found: {session_ref}", 404)


class SessionNotWaitingError(AppError):
    def __init__(self, session_ref: str, status: str) -> None:
        super().__init__(1002, f"Session {session_ref} already started (status={status})", 409)


class SessionNotActiveError(AppError):
    def __init__(self, session_ref: str, status: str) -> None:
        super().__init__(1003, f"Session {session_ref} is not active (status={status})", 409)


class SessionFullError(AppError):
    def __init__(self, session_ref: str, market_size: int) -> None:
        super().__init__(1004, f"Session {session_ref} is full ({market_size} players)", 409)


class InvalidTransitionError(AppError):
    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(1005, f"Illegal {entity} transition: {current} -> {target}", 409)


# --- 2xxx: Round ---

class RoundNotFoundError(AppError):
    def __init__(self, round_ref: str) -> None:
        super().__init__(2001, f"Round not found: {round_ref}", 404)


class RoundNotActiveError(AppError):
    def __init__(self, round_id: str) -> None:
        super().__init__(2002, f"Round is not active: {round_id}", 409)


class RoundNotWaitingError(AppError):
    def __init__(self, round_id: str, status: str) -> None:
        super().__init__(2003, f"Round {round_id} cannot start from status {status}", 409)


class RoundAlreadyActiveError(AppError):
    def __init__(self, session_ref: str, round_number: int) -> None:
        super().__init__(
            2004, f"Session {session_ref} already has round {round_number} active", 409
        )


# --- 3xxx: Player ---

class PlayerNotFoundError(AppError):
    def __init__(self, player_id: str) -> None:
        super().__init__(3001, f"Player not found: {player_id}", 404)


class WrongRoleError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, detail, 422)


class MissingPrivateValueError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3003, detail, 422)


# --- 4xxx: Order ---

class InvalidPriceError(AppError):
    def __init__(self, detail: str = "Price must be a positive number") -> None:
        super().__init__(4001, detail, 400)


class BidExceedsValuationError(AppError):
    def __init__(self, price: float, valuation: float) -> None:
        super().__init__(
            4002, f"Bid ({price:g}) cannot exceed your valuation ({valuation:g})", 422
        )


class AskBelowCostError(AppError):
    def __init__(self, price: float, cost: float) -> None:
        super().__init__(4003, f"Ask ({price:g}) cannot be below your cost ({cost:g})", 422)


class PriceControlViolationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4004, detail, 422)


# --- 5xxx: Game engine / action ---

class GameEngineNotFoundError(AppError):
    def __init__(self, game_type: str) -> None:
        super().__init__(5001, f"No game engine registered for type {game_type!r}", 404)


class InvalidActionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5002, f"Invalid action: {detail}", 422)


class UnknownGameTypeError(AppError):
    def __init__(self, game_type: str) -> None:
        super().__init__(5003, f"Unknown game type: {game_type!r}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
