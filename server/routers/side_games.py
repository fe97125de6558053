"""
Side games API router.

Provides endpoints for:
- Creating skins, nassau and wolf games
- Recording hole results, presses and wolf decisions
- Closing, reopening and renaming games
- Reading snapshots, settlements and the event log

Every write carries the revision the caller last saw. A stale revision
returns 409 and the caller should re-fetch the game.
"""

import logging
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from constants import MAX_GAME_NAME_LENGTH, MAX_PLAYER_ID_LENGTH
from engines.settlement import combine_balances, simplify_debts
from errors import ConcurrencyConflict, GameNotFoundError, InvariantViolation, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/side-games", tags=["side-games"])

# Service instance (set during app startup)
_side_game_service = None


def set_side_game_service(service) -> None:
    """Set the side game service instance."""
    global _side_game_service
    _side_game_service = service


def _service():
    if _side_game_service is None:
        raise HTTPException(status_code=503, detail="Side game service unavailable")
    return _side_game_service


async def _run(coro):
    """Await a service call and translate its errors to HTTP status codes."""
    try:
        return await coro
    except GameNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConcurrencyConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvariantViolation as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


# -------------------------------------------------------------------------
# Request Models
# -------------------------------------------------------------------------

# Widths match the side_games and side_game_events columns
PlayerId = Annotated[str, Field(min_length=1, max_length=MAX_PLAYER_ID_LENGTH)]
GameName = Annotated[str, Field(max_length=MAX_GAME_NAME_LENGTH)]


class PlayerModel(BaseModel):
    """Roster entry."""
    id: PlayerId
    first_name: str = ""
    last_name: str = ""
    team_id: Optional[str] = None


class TeamModel(BaseModel):
    """Nassau side."""
    team_id: str
    member_ids: list[PlayerId]


class CreateGameRequest(BaseModel):
    """Request to create a side game."""
    game_type: Literal["skins", "nassau", "wolf"]
    name: GameName = ""
    players: list[PlayerModel]
    config: dict = Field(default_factory=dict)
    player_ids: Optional[list[PlayerId]] = None
    teams: Optional[list[TeamModel]] = None
    created_by: Optional[PlayerId] = None


class RevisionRequest(BaseModel):
    """Base for every write: the revision the caller last saw."""
    expected_revision: int
    player_id: Optional[PlayerId] = None


class RenameRequest(RevisionRequest):
    name: GameName


class SkinsHoleRequest(RevisionRequest):
    hole_number: int
    winner_id: Optional[str] = None


class NassauHoleRequest(RevisionRequest):
    hole_number: int
    team1_score: int
    team2_score: int


class PressRequest(RevisionRequest):
    nine: Literal["front", "back", "overall"]
    team: Literal["team1", "team2"]
    at_hole: int
    value: Optional[str] = None


class WolfPartnerRequest(RevisionRequest):
    hole_number: int
    wolf_id: str
    partner_id: Optional[str] = None
    is_pig: bool = False


class WolfOutcomeRequest(RevisionRequest):
    hole_number: int
    winner: Literal["wolf", "pack", "push"]


class TripSettlementRequest(BaseModel):
    """Games whose balances are folded into one set of payments."""
    game_ids: list[str]


# -------------------------------------------------------------------------
# Game Endpoints
# -------------------------------------------------------------------------

@router.post("", status_code=201)
async def create_game(request: CreateGameRequest):
    """Create a side game and return its snapshot at revision 1."""
    service = _service()
    state = await _run(service.create_game(
        game_type=request.game_type,
        name=request.name,
        players=[p.model_dump() for p in request.players],
        game_config=request.config,
        player_ids=request.player_ids,
        teams=[t.model_dump() for t in request.teams] if request.teams else None,
        created_by=request.created_by,
    ))
    return state.to_dict()


@router.get("/{game_id}")
async def get_game(game_id: str):
    """Get a game's current snapshot (standings, nines, presses, settlement)."""
    return await _run(_service().get_snapshot(game_id))


@router.get("/{game_id}/settlement")
async def get_settlement(game_id: str):
    """Get the settlement view for a game, final or in progress."""
    state = await _run(_service().get_game(game_id))
    return {
        "game_id": game_id,
        "revision": state.revision,
        "status": state.status.value,
        "settlement": state.settlement().to_dict(),
    }


@router.get("/{game_id}/events")
async def get_events(game_id: str):
    """Get the game's event log in sequence order."""
    history = await _run(_service().get_events(game_id))
    return {"game_id": game_id, "events": [e.to_dict() for e in history]}


@router.post("/{game_id}/rename")
async def rename_game(game_id: str, request: RenameRequest):
    state = await _run(_service().rename_game(game_id, request.expected_revision, request.name))
    return state.to_dict()


@router.post("/{game_id}/close")
async def close_game(game_id: str, request: RevisionRequest):
    state = await _run(_service().close_game(game_id, request.expected_revision, request.player_id))
    return state.to_dict()


@router.post("/{game_id}/reopen")
async def reopen_game(game_id: str, request: RevisionRequest):
    state = await _run(_service().reopen_game(game_id, request.expected_revision, request.player_id))
    return state.to_dict()


# -------------------------------------------------------------------------
# Scoring Endpoints
# -------------------------------------------------------------------------

@router.post("/{game_id}/skins/holes")
async def record_skins_hole(game_id: str, request: SkinsHoleRequest):
    """Record a skins hole winner; omit winner_id for a push."""
    state = await _run(_service().record_skins_hole(
        game_id,
        request.expected_revision,
        request.hole_number,
        request.winner_id,
        request.player_id,
    ))
    return state.to_dict()


@router.post("/{game_id}/nassau/holes")
async def record_nassau_hole(game_id: str, request: NassauHoleRequest):
    state = await _run(_service().record_nassau_hole(
        game_id,
        request.expected_revision,
        request.hole_number,
        request.team1_score,
        request.team2_score,
        request.player_id,
    ))
    return state.to_dict()


@router.post("/{game_id}/nassau/presses")
async def add_press(game_id: str, request: PressRequest):
    """Add a manual press (only when auto-press is off)."""
    state = await _run(_service().add_press(
        game_id,
        request.expected_revision,
        request.nine,
        request.team,
        request.at_hole,
        request.value,
        request.player_id,
    ))
    return state.to_dict()


@router.post("/{game_id}/wolf/partner")
async def choose_wolf_partner(game_id: str, request: WolfPartnerRequest):
    """Record the wolf's choice; omit partner_id to go lone wolf."""
    state = await _run(_service().choose_wolf_partner(
        game_id,
        request.expected_revision,
        request.hole_number,
        request.wolf_id,
        request.partner_id,
        request.is_pig,
        request.player_id,
    ))
    return state.to_dict()


@router.post("/{game_id}/wolf/holes")
async def record_wolf_outcome(game_id: str, request: WolfOutcomeRequest):
    state = await _run(_service().record_wolf_outcome(
        game_id,
        request.expected_revision,
        request.hole_number,
        request.winner,
        request.player_id,
    ))
    return state.to_dict()


# -------------------------------------------------------------------------
# Trip Settlement
# -------------------------------------------------------------------------

@router.post("/settle-up")
async def settle_up(request: TripSettlementRequest):
    """
    Fold several games into one list of person-to-person payments.

    Per-player balances from each game are summed, then simplified so
    each debtor pays as few people as possible.
    """
    service = _service()
    balance_sets = []
    for game_id in request.game_ids:
        state = await _run(service.get_game(game_id))
        balance_sets.append(state.settlement().balances)

    balances = combine_balances(balance_sets)
    transfers = simplify_debts(balances)
    logger.info(f"Settled {len(request.game_ids)} games into {len(transfers)} payments")
    return {
        "balances": [b.to_dict() for b in balances],
        "transfers": [t.to_dict() for t in transfers],
    }
