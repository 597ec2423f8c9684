from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_caller_identity, get_vote_service
from src.api.routers.governance_http_errors import raise_governance_http_exception
from src.core.governance import GovernanceError, Vote, VoteCastingService, VoteCreateRequest
from src.core.identity import CallerIdentity

router = APIRouter(tags=["Votes"])


@router.post(
    "/votes",
    response_model=Vote,
    status_code=status.HTTP_201_CREATED,
    summary="Cast Vote",
    description=(
        "Casts the caller's single vote on a decision round of an open proposal. The vote id "
        "is appended to the round's vote_links."
    ),
)
def cast_vote(
    payload: VoteCreateRequest,
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[VoteCastingService, Depends(get_vote_service)] = None,
) -> Vote:
    try:
        return service.cast_vote(
            decision_id=payload.decision_id,
            decision=payload.decision,
            caller_id=caller.id,
            caller_username=caller.username,
            voting_logic=payload.voting_logic,
            agent_vote=payload.agent_vote,
        )
    except GovernanceError as exc:
        raise_governance_http_exception(exc)


@router.get(
    "/votes",
    response_model=list[Vote],
    status_code=status.HTTP_200_OK,
    summary="List Votes",
    description="Lists the votes of one decision round, oldest first, with caster profiles.",
)
def list_votes(
    decision_id: Annotated[
        Optional[str],
        Query(
            description="Decision round whose votes are listed.",
            examples=["9b2e4c61-7a0d-4f3e-8c15-2d9a6f3b7e44"],
        ),
    ] = None,
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[VoteCastingService, Depends(get_vote_service)] = None,
) -> list[Vote]:
    try:
        return service.list_votes(decision_id=decision_id)
    except GovernanceError as exc:
        raise_governance_http_exception(exc)
