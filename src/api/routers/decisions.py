from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from src.api.dependencies import get_caller_identity, get_decision_round_service
from src.api.routers.governance_http_errors import raise_governance_http_exception
from src.core.governance import (
    DecisionRound,
    DecisionRoundCreateRequest,
    DecisionRoundOutcomeUpdate,
    DecisionRoundService,
    DecisionTally,
    GovernanceError,
)
from src.core.identity import CallerIdentity

router = APIRouter(tags=["Decision Rounds"])

_DECISION_ID_PATH = Path(
    description="Decision round identifier.",
    examples=["9b2e4c61-7a0d-4f3e-8c15-2d9a6f3b7e44"],
)


@router.post(
    "/decisions",
    response_model=DecisionRound,
    status_code=status.HTTP_201_CREATED,
    summary="Open Decision Round",
    description=(
        "Returns the latest round of an open proposal (200), creating the first one when "
        "none exists (201). With `new_round` set, always appends the next round (201)."
    ),
)
def open_decision_round(
    payload: DecisionRoundCreateRequest,
    response: Response,
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[DecisionRoundService, Depends(get_decision_round_service)] = None,
) -> DecisionRound:
    try:
        if payload.new_round:
            return service.create_round(proposal_id=payload.proposal_id, caller_id=caller.id)
        decision_round, created = service.get_or_create_round(
            proposal_id=payload.proposal_id, caller_id=caller.id
        )
    except GovernanceError as exc:
        raise_governance_http_exception(exc)
    if not created:
        response.status_code = status.HTTP_200_OK
    return decision_round


@router.get(
    "/decisions",
    response_model=list[DecisionRound],
    status_code=status.HTTP_200_OK,
    summary="List Decision Rounds",
    description=(
        "Lists the rounds of one proposal, newest round first. Without `proposal_id`, lists "
        "every round newest first."
    ),
)
def list_decision_rounds(
    proposal_id: Annotated[
        Optional[str],
        Query(
            description="Restrict the listing to one proposal.",
            examples=["5f0c8a9e-3d1b-4c7e-9a2f-1b6d8e4c2a10"],
        ),
    ] = None,
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[DecisionRoundService, Depends(get_decision_round_service)] = None,
) -> list[DecisionRound]:
    try:
        return service.list_rounds(proposal_id=proposal_id)
    except GovernanceError as exc:
        raise_governance_http_exception(exc)


@router.get(
    "/decisions/{decision_id}",
    response_model=DecisionRound,
    status_code=status.HTTP_200_OK,
    summary="Get Decision Round",
)
def get_decision_round(
    decision_id: Annotated[str, _DECISION_ID_PATH],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[DecisionRoundService, Depends(get_decision_round_service)] = None,
) -> DecisionRound:
    try:
        return service.get_round(round_id=decision_id)
    except GovernanceError as exc:
        raise_governance_http_exception(exc)


@router.patch(
    "/decisions/{decision_id}",
    response_model=DecisionRound,
    status_code=status.HTTP_200_OK,
    summary="Record Decision Outcome",
    description="Updates success, percent_approval or vote_links. Proposal owner only.",
)
def update_decision_outcome(
    decision_id: Annotated[str, _DECISION_ID_PATH],
    payload: DecisionRoundOutcomeUpdate,
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[DecisionRoundService, Depends(get_decision_round_service)] = None,
) -> DecisionRound:
    try:
        return service.update_outcome(round_id=decision_id, payload=payload, caller_id=caller.id)
    except GovernanceError as exc:
        raise_governance_http_exception(exc)


@router.get(
    "/decisions/{decision_id}/tally",
    response_model=DecisionTally,
    status_code=status.HTTP_200_OK,
    summary="Tally Decision Round",
    description="Counts the votes of one round by decision value.",
)
def tally_decision_round(
    decision_id: Annotated[str, _DECISION_ID_PATH],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[DecisionRoundService, Depends(get_decision_round_service)] = None,
) -> DecisionTally:
    try:
        return service.tally(round_id=decision_id)
    except GovernanceError as exc:
        raise_governance_http_exception(exc)
