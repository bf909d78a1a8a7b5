"""Typed action payloads.

Every action a human or a bot submits is one of these models. The wire form
is camelCase (`amountSent`, `laborGood1`) with a `type` discriminator; in
Python the fields are snake_case. Clients may omit `type`: the payload is then
matched against the game's candidate models, whose field sets are disjoint.
"""

from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from src.eg_common.enums import GameType
from src.eg_common.errors import InvalidActionError


class GameAction(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    type: str

    def to_payload(self) -> dict[str, Any]:
        """Wire form, as a client would send it."""
        return self.model_dump(by_alias=True)


# --- Double auction ---

class BidAction(GameAction):
    type: Literal["bid"]
    price: float


class AskAction(GameAction):
    type: Literal["ask"]
    price: float


# --- Simultaneous ---

class PrisonerDilemmaChoice(GameAction):
    type: Literal["pd_choice"] = "pd_choice"
    choice: Literal["cooperate", "defect"]


class BeautyContestGuess(GameAction):
    type: Literal["guess"] = "guess"
    number: float = Field(ge=0)


class Contribution(GameAction):
    type: Literal["contribute"] = "contribute"
    contribution: float = Field(ge=0)


class PriceDecision(GameAction):
    type: Literal["set_price"] = "set_price"
    price: float = Field(ge=0)


class QuantityDecision(GameAction):
    type: Literal["set_quantity"] = "set_quantity"
    quantity: float = Field(ge=0)


class ProductionDecision(GameAction):
    type: Literal["set_output"] = "set_output"
    production: int = Field(ge=0)


class Extraction(GameAction):
    type: Literal["extract"] = "extract"
    extraction: float = Field(ge=0)


class StagHuntChoice(GameAction):
    type: Literal["hunt"] = "hunt"
    choice: Literal["stag", "hare"]


class DictatorGive(GameAction):
    type: Literal["give"] = "give"
    give: float = Field(ge=0)


class PenniesChoice(GameAction):
    type: Literal["pennies"] = "pennies"
    choice: Literal["heads", "tails"]


class LaborAllocation(GameAction):
    type: Literal["allocate_labor"] = "allocate_labor"
    labor_good1: int = Field(ge=0)


class SealedBid(GameAction):
    type: Literal["sealed_bid"] = "sealed_bid"
    bid: float = Field(ge=0)


# --- Sequential ---

class Offer(GameAction):
    type: Literal["offer"] = "offer"
    offer: float = Field(ge=0)


class AcceptDecision(GameAction):
    type: Literal["respond"] = "respond"
    accept: bool


class KeepProposal(GameAction):
    type: Literal["keep"] = "keep"
    keep: float = Field(ge=0)


class WageOffer(GameAction):
    type: Literal["wage_offer"] = "wage_offer"
    wage: float = Field(ge=0)


class EffortChoice(GameAction):
    type: Literal["effort"] = "effort"
    effort: int = Field(ge=0)


class ContractOffer(GameAction):
    type: Literal["contract"] = "contract"
    fixed_wage: float = Field(ge=0)
    bonus: float = Field(ge=0)


class EffortDecision(GameAction):
    type: Literal["effort_decision"] = "effort_decision"
    high_effort: bool


class TrustSend(GameAction):
    type: Literal["send"] = "send"
    amount_sent: float = Field(ge=0)


class TrustReturn(GameAction):
    type: Literal["return"] = "return"
    amount_returned: float = Field(ge=0)


class ListingPrice(GameAction):
    type: Literal["list_price"] = "list_price"
    price: float = Field(ge=0)


# --- Specialized ---

class SetProduction(GameAction):
    type: Literal["set_production"] = "set_production"
    allocation: list[float]


class StartProduction(GameAction):
    type: Literal["start_production"] = "start_production"


class FreeformAction(GameAction):
    """Games without a fixed action schema: any object, `type` optional."""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str = "action"


ACTION_MODELS: dict[GameType, tuple[type[GameAction], ...]] = {
    GameType.DOUBLE_AUCTION: (BidAction, AskAction),
    GameType.DOUBLE_AUCTION_TAX: (BidAction, AskAction),
    GameType.DOUBLE_AUCTION_PRICE_CONTROLS: (BidAction, AskAction),
    GameType.PRISONER_DILEMMA: (PrisonerDilemmaChoice,),
    GameType.BEAUTY_CONTEST: (BeautyContestGuess,),
    GameType.PUBLIC_GOODS: (Contribution,),
    GameType.BERTRAND: (PriceDecision,),
    GameType.COURNOT: (QuantityDecision,),
    GameType.NEGATIVE_EXTERNALITY: (ProductionDecision,),
    GameType.COMMON_POOL_RESOURCE: (Extraction,),
    GameType.STAG_HUNT: (StagHuntChoice,),
    GameType.DICTATOR: (DictatorGive,),
    GameType.MATCHING_PENNIES: (PenniesChoice,),
    GameType.MONOPOLY: (PriceDecision,),
    GameType.COMPARATIVE_ADVANTAGE: (LaborAllocation,),
    GameType.AUCTION: (SealedBid,),
    GameType.ULTIMATUM: (Offer, AcceptDecision),
    GameType.BARGAINING: (KeepProposal, AcceptDecision),
    GameType.GIFT_EXCHANGE: (WageOffer, EffortChoice),
    GameType.PRINCIPAL_AGENT: (ContractOffer, EffortDecision),
    GameType.TRUST_GAME: (TrustSend, TrustReturn),
    GameType.MARKET_FOR_LEMONS: (ListingPrice, AcceptDecision),
    GameType.DISCOVERY_PROCESS: (SetProduction, StartProduction),
}


def action_type_of(model: type[GameAction]) -> str:
    """The literal `type` tag a model accepts."""
    return get_args(model.model_fields["type"].annotation)[0]


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def parse_action(game_type: GameType, payload: dict[str, Any] | GameAction) -> GameAction:
    """Validate a raw payload into the game's typed action.

    Raises InvalidActionError (5002) when no model accepts it.
    """
    if isinstance(payload, GameAction):
        payload = payload.to_payload()
    if not isinstance(payload, dict):
        raise InvalidActionError("payload must be an object")

    candidates = ACTION_MODELS.get(game_type)
    if candidates is None:
        try:
            return FreeformAction.model_validate(payload)
        except ValidationError as exc:
            raise InvalidActionError(_first_error(exc)) from exc

    action_type = payload.get("type")
    if action_type is not None:
        by_type = {action_type_of(m): m for m in candidates}
        model = by_type.get(action_type)
        if model is None:
            raise InvalidActionError(f"unknown action type {action_type!r} for {game_type.value}")
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise InvalidActionError(_first_error(exc)) from exc

    errors: list[str] = []
    for model in candidates:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            errors.append(_first_error(exc))
    raise InvalidActionError("; ".join(errors))
