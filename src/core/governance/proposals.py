import logging
from datetime import datetime, timezone
from typing import Optional

from src.core.governance.errors import (
    GovernanceForbiddenError,
    GovernanceNotFoundError,
    GovernanceStateError,
    GovernanceValidationError,
)
from src.core.governance.ids import is_valid_uuid, new_record_id
from src.core.governance.models import (
    MIN_DESCRIPTION_LENGTH,
    Proposal,
    ProposalListFilter,
    ProposalRecord,
)
from src.core.governance.repository import GovernanceRepository

logger = logging.getLogger(__name__)


class ProposalLifecycleService:
    def __init__(self, *, repository: GovernanceRepository) -> None:
        self._repository = repository

    def create_proposal(self, *, title, description, owner_id: str) -> Proposal:
        _validate_content(title=title, description=description)
        now = _utc_now()
        proposal = ProposalRecord(
            id=new_record_id(),
            created_by=owner_id,
            title=title,
            description=description,
            status="open",
            created_at=now,
            updated_at=now,
        )
        self._repository.create_proposal(proposal)
        logger.info(
            "proposal.created",
            extra={"extra_fields": {"proposal_id": proposal.id, "created_by": owner_id}},
        )
        return to_proposal(proposal)

    def edit_proposal(
        self, *, proposal_id: str, title, description, caller_id: str
    ) -> Proposal:
        _validate_content(title=title, description=description)
        self._load_owned_open_proposal(proposal_id=proposal_id, caller_id=caller_id)
        proposal = self._repository.update_proposal_content(
            proposal_id=proposal_id,
            title=title,
            description=description,
            updated_at=_utc_now(),
        )
        if proposal is None:
            raise GovernanceStateError("PROPOSAL_CLOSED: this proposal is no longer active")
        logger.info("proposal.edited", extra={"extra_fields": {"proposal_id": proposal_id}})
        return to_proposal(proposal)

    def close_proposal(self, *, proposal_id: str, caller_id: str) -> Proposal:
        self._load_owned_open_proposal(proposal_id=proposal_id, caller_id=caller_id)
        proposal = self._repository.close_proposal(proposal_id=proposal_id, updated_at=_utc_now())
        if proposal is None:
            raise GovernanceStateError("PROPOSAL_CLOSED: this proposal is no longer active")
        logger.info("proposal.closed", extra={"extra_fields": {"proposal_id": proposal_id}})
        return to_proposal(proposal)

    def get_proposal(self, *, proposal_id: str) -> Proposal:
        _require_uuid(proposal_id)
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise GovernanceNotFoundError("PROPOSAL_NOT_FOUND: proposal does not exist")
        return to_proposal(proposal)

    def list_proposals(
        self, *, list_filter: ProposalListFilter, caller_id: Optional[str] = None
    ) -> list[Proposal]:
        if list_filter == "active":
            rows = self._repository.list_proposals(status="open", created_by=None)
        elif list_filter == "mine":
            if caller_id is None:
                raise GovernanceValidationError("CALLER_REQUIRED: 'mine' needs a caller id")
            rows = self._repository.list_proposals(status=None, created_by=caller_id)
        else:
            rows = self._repository.list_proposals(status=None, created_by=None)
        return [to_proposal(row) for row in rows]

    def _load_owned_open_proposal(self, *, proposal_id: str, caller_id: str) -> ProposalRecord:
        _require_uuid(proposal_id)
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise GovernanceNotFoundError("PROPOSAL_NOT_FOUND: proposal does not exist")
        if proposal.created_by != caller_id:
            raise GovernanceForbiddenError(
                "PROPOSAL_FORBIDDEN: you do not have permission to modify this proposal"
            )
        if proposal.status != "open":
            raise GovernanceStateError("PROPOSAL_CLOSED: this proposal is no longer active")
        return proposal


def to_proposal(proposal: ProposalRecord) -> Proposal:
    return Proposal(
        id=proposal.id,
        created_by=proposal.created_by,
        title=proposal.title,
        description=proposal.description,
        status=proposal.status,
        created_at=proposal.created_at.isoformat(),
        updated_at=proposal.updated_at.isoformat(),
    )


def _validate_content(*, title, description) -> None:
    if not isinstance(title, str) or not title.strip():
        raise GovernanceValidationError("TITLE_REQUIRED: title is required and must be a string")
    if not isinstance(description, str):
        raise GovernanceValidationError(
            "DESCRIPTION_REQUIRED: description is required and must be a string"
        )
    if len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        raise GovernanceValidationError(
            "DESCRIPTION_TOO_SHORT: description must be at least "
            f"{MIN_DESCRIPTION_LENGTH} characters long"
        )


def _require_uuid(proposal_id: str) -> None:
    if not is_valid_uuid(proposal_id):
        raise GovernanceValidationError("INVALID_PROPOSAL_ID: invalid proposal ID format")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
