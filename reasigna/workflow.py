"""Operations over users, turns and reassignment requests.

Every operation loads the whole document from the store, works on the
in-memory copy and, when it changed something, writes the whole document
back. There is no locking: two concurrent writers race and the last write
wins.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from reasigna.errors import BadRequest, Conflict, NotFound, Unauthorized
from reasigna.schemas import (
    DecisionPayload,
    LoginOut,
    PublicUser,
    RequestPayload,
    Sequences,
    ShiftRequest,
    State,
    Turn,
    TurnPayload,
)
from reasigna.security import SessionClaims, SessionCodec
from reasigna.store import StateStore

logger = logging.getLogger(__name__)

DECISIONS = {"approve": "approved", "reject": "rejected"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def load_state(store: StateStore) -> State:
    return State.model_validate(store.read())


def save_state(store: StateStore, state: State) -> None:
    store.write(state.to_wire())


def _next_id(records: list[Any], last_issued: int) -> int:
    return max(_highest_id(records), last_issued) + 1


def _highest_id(records: list[Any]) -> int:
    return max((record.id for record in records), default=0)


def _sequences(state: State) -> Sequences:
    if state.sequences is None:
        state.sequences = Sequences(turns=_highest_id(state.turns), requests=_highest_id(state.requests))
    return state.sequences


def allocate_turn_id(state: State) -> int:
    sequences = _sequences(state)
    turn_id = _next_id(state.turns, sequences.turns)
    sequences.turns = turn_id
    return turn_id


def allocate_request_id(state: State) -> int:
    sequences = _sequences(state)
    request_id = _next_id(state.requests, sequences.requests)
    sequences.requests = request_id
    return request_id


def _query_text(value: Any) -> str:
    if value is None:
        return "null"
    return str(value)


def _find_turn(state: State, turn_id: int | None) -> Turn | None:
    return next((turn for turn in state.turns if turn.id == turn_id), None)


def login(store: StateStore, codec: SessionCodec, username: str | None, password: str | None) -> LoginOut:
    state = load_state(store)
    user = next(
        (u for u in state.users if u.username == username and u.password == password),
        None,
    )
    if user is None:
        logger.warning("Failed login for username %r", username)
        raise Unauthorized("Invalid credentials")
    token = codec.issue(user)
    logger.info("User %s logged in", user.id)
    return LoginOut(token=token, credential=token, user=PublicUser.from_user(user))


def get_profile(store: StateStore, claims: SessionClaims) -> PublicUser:
    state = load_state(store)
    user = next((u for u in state.users if u.id == claims.id), None)
    if user is None:
        raise NotFound("User not found")
    return PublicUser.from_user(user)


def list_users(store: StateStore) -> list[PublicUser]:
    return [PublicUser.from_user(user) for user in load_state(store).users]


def list_turns(store: StateStore, assigned_to: str | None = None) -> list[dict]:
    turns = load_state(store).turns
    if assigned_to:
        turns = [turn for turn in turns if _query_text(turn.assigned_to) == assigned_to]
    return [turn.to_wire() for turn in turns]


def create_turn(store: StateStore, payload: TurnPayload) -> dict:
    state = load_state(store)
    fields = {name: getattr(payload, name) for name in payload.model_fields_set}
    turn = Turn(id=allocate_turn_id(state), **fields)
    state.turns.append(turn)
    save_state(store, state)
    logger.info("Created turn %s", turn.id)
    return turn.to_wire()


def update_turn(store: StateStore, turn_id: int, payload: TurnPayload) -> dict:
    state = load_state(store)
    turn = _find_turn(state, turn_id)
    if turn is None:
        raise NotFound("Turn not found")
    for name in payload.model_fields_set:
        setattr(turn, name, getattr(payload, name))
    save_state(store, state)
    logger.info("Updated turn %s (%s)", turn_id, ", ".join(sorted(payload.model_fields_set)) or "no fields")
    return turn.to_wire()


def delete_turn(store: StateStore, turn_id: int) -> dict[str, bool]:
    state = load_state(store)
    sequences = _sequences(state)
    sequences.turns = max(sequences.turns, _highest_id(state.turns))
    remaining = [turn for turn in state.turns if turn.id != turn_id]
    if len(remaining) != len(state.turns):
        logger.info("Deleted turn %s", turn_id)
    state.turns = remaining
    save_state(store, state)
    return {"ok": True}


def confirm_attendance(store: StateStore, claims: SessionClaims, turn_id: int) -> dict[str, Any]:
    state = load_state(store)
    turn = _find_turn(state, turn_id)
    if turn is None or turn.assigned_to != claims.id:
        raise NotFound("Turn not found or not assigned to you")
    turn.confirmed = True
    save_state(store, state)
    logger.info("User %s confirmed attendance for turn %s", claims.id, turn_id)
    return {"ok": True, "turn": turn.to_wire()}


def submit_request(
    store: StateStore,
    claims: SessionClaims,
    payload: RequestPayload,
    clock: Callable[[], datetime] = utcnow,
) -> dict:
    state = load_state(store)
    request = ShiftRequest(
        id=allocate_request_id(state),
        turn_id=payload.turn_id,
        requester_id=claims.id,
        reason=payload.reason or "",
        swap_with=payload.swap_with or None,
        status="pending",
        created_at=clock(),
        admin_comment=None,
    )
    state.requests.append(request)
    save_state(store, state)
    logger.info("User %s submitted request %s for turn %s", claims.id, request.id, request.turn_id)
    return request.to_wire()


def list_requests(store: StateStore, claims: SessionClaims) -> list[dict]:
    requests = load_state(store).requests
    if not claims.is_admin:
        requests = [request for request in requests if request.requester_id == claims.id]
    return [request.to_wire() for request in requests]


def decide_request(
    store: StateStore,
    request_id: int,
    payload: DecisionPayload,
    clock: Callable[[], datetime] = utcnow,
) -> dict:
    state = load_state(store)
    request = next((r for r in state.requests if r.id == request_id), None)
    if request is None:
        raise NotFound("Request not found")
    if not isinstance(payload.decision, str) or payload.decision not in DECISIONS:
        raise BadRequest("Invalid decision")
    if request.status != "pending":
        raise Conflict(f"Request already {request.status}")

    request.status = DECISIONS[payload.decision]
    request.admin_comment = str(payload.comment) if payload.comment else None
    request.decided_at = clock()

    if request.status == "approved":
        turn = _find_turn(state, request.turn_id)
        if turn is not None:
            turn.assigned_to = request.swap_with or None
            logger.info("Turn %s reassigned to %s", turn.id, turn.assigned_to)

    save_state(store, state)
    logger.info("Request %s %s", request.id, request.status)
    return request.to_wire()
