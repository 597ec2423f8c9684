from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from src.api.dependencies import get_caller_identity, get_proposal_service
from src.api.routers.governance_http_errors import raise_governance_http_exception
from src.core.governance import (
    GovernanceError,
    Proposal,
    ProposalCreateRequest,
    ProposalLifecycleService,
    ProposalUpdateRequest,
)
from src.core.identity import CallerIdentity

router = APIRouter(tags=["Proposals"])

_PROPOSAL_ID_PATH = Path(
    description="Proposal identifier.",
    examples=["5f0c8a9e-3d1b-4c7e-9a2f-1b6d8e4c2a10"],
)


@router.post(
    "/proposals",
    response_model=Proposal,
    status_code=status.HTTP_201_CREATED,
    summary="Create Proposal",
    description="Creates an open proposal owned by the authenticated caller.",
)
def create_proposal(
    payload: ProposalCreateRequest,
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[ProposalLifecycleService, Depends(get_proposal_service)] = None,
) -> Proposal:
    try:
        return service.create_proposal(
            title=payload.title,
            description=payload.description,
            owner_id=caller.id,
        )
    except GovernanceError as exc:
        raise_governance_http_exception(exc)


@router.get(
    "/proposals",
    response_model=list[Proposal],
    status_code=status.HTTP_200_OK,
    summary="List Proposals",
    description="Lists every proposal, newest first.",
)
def list_proposals(
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[ProposalLifecycleService, Depends(get_proposal_service)] = None,
) -> list[Proposal]:
    return service.list_proposals(list_filter="all", caller_id=caller.id)


@router.get(
    "/proposals/active",
    response_model=list[Proposal],
    status_code=status.HTTP_200_OK,
    summary="List Active Proposals",
    description="Lists open proposals, newest first.",
)
def list_active_proposals(
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[ProposalLifecycleService, Depends(get_proposal_service)] = None,
) -> list[Proposal]:
    return service.list_proposals(list_filter="active", caller_id=caller.id)


@router.get(
    "/proposals/me",
    response_model=list[Proposal],
    status_code=status.HTTP_200_OK,
    summary="List My Proposals",
    description="Lists proposals created by the authenticated caller, newest first.",
)
def list_my_proposals(
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[ProposalLifecycleService, Depends(get_proposal_service)] = None,
) -> list[Proposal]:
    return service.list_proposals(list_filter="mine", caller_id=caller.id)


@router.get(
    "/proposals/{proposal_id}",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    summary="Get Proposal",
)
def get_proposal(
    proposal_id: Annotated[str, _PROPOSAL_ID_PATH],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[ProposalLifecycleService, Depends(get_proposal_service)] = None,
) -> Proposal:
    try:
        return service.get_proposal(proposal_id=proposal_id)
    except GovernanceError as exc:
        raise_governance_http_exception(exc)


@router.put(
    "/proposals/{proposal_id}",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    summary="Edit Proposal",
    description="Replaces title and description of an open proposal. Owner only.",
)
def edit_proposal(
    proposal_id: Annotated[str, _PROPOSAL_ID_PATH],
    payload: ProposalUpdateRequest,
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[ProposalLifecycleService, Depends(get_proposal_service)] = None,
) -> Proposal:
    try:
        return service.edit_proposal(
            proposal_id=proposal_id,
            title=payload.title,
            description=payload.description,
            caller_id=caller.id,
        )
    except GovernanceError as exc:
        raise_governance_http_exception(exc)


@router.patch(
    "/proposals/{proposal_id}/close",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    summary="Close Proposal",
    description="Closes an open proposal. Closed proposals accept no further rounds or votes.",
)
def close_proposal(
    proposal_id: Annotated[str, _PROPOSAL_ID_PATH],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)] = None,
    service: Annotated[ProposalLifecycleService, Depends(get_proposal_service)] = None,
) -> Proposal:
    try:
        return service.close_proposal(proposal_id=proposal_id, caller_id=caller.id)
    except GovernanceError as exc:
        raise_governance_http_exception(exc)
