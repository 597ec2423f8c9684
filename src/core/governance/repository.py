from datetime import datetime
from typing import Any, Optional, Protocol

from src.core.governance.models import (
    DecisionRoundAllocation,
    DecisionRoundRecord,
    ProposalRecord,
    ProposalStatus,
    UserRecord,
    VoteRecord,
)


class GovernanceRepository(Protocol):
    def ensure_user(self, user: UserRecord) -> UserRecord:
        """Insert the user on first sight, otherwise refresh its non-null username and email."""
        ...

    def get_users(self, *, user_ids: list[str]) -> dict[str, UserRecord]: ...

    def create_proposal(self, proposal: ProposalRecord) -> None: ...

    def update_proposal_content(
        self,
        *,
        proposal_id: str,
        title: str,
        description: str,
        updated_at: datetime,
    ) -> Optional[ProposalRecord]:
        """Rewrite title and description of a proposal that is still open.

        Returns None without writing when the proposal is missing or closed.
        """
        ...

    def close_proposal(
        self, *, proposal_id: str, updated_at: datetime
    ) -> Optional[ProposalRecord]:
        """Move an open proposal to closed; None when it is missing or already closed."""
        ...

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]: ...

    def list_proposals(
        self,
        *,
        status: Optional[ProposalStatus],
        created_by: Optional[str],
    ) -> list[ProposalRecord]: ...

    def allocate_round(
        self,
        *,
        proposal_id: str,
        round_id: str,
        created_at: datetime,
        reuse_latest: bool,
    ) -> Optional[DecisionRoundAllocation]:
        """Atomically pick the next decision point for an open proposal and insert the round.

        With ``reuse_latest`` the latest existing round is returned instead when one exists.
        Returns None when the proposal is missing or no longer open at allocation time.
        """
        ...

    def get_round(self, *, round_id: str) -> Optional[DecisionRoundRecord]: ...

    def list_rounds(self, *, proposal_id: Optional[str]) -> list[DecisionRoundRecord]: ...

    def update_round_outcome(
        self, *, round_id: str, changes: dict[str, Any]
    ) -> Optional[DecisionRoundRecord]:
        """Write only the given outcome columns (success, percent_approval, vote_links).

        Returns the stored round after the write, or None when it does not exist.
        """
        ...

    def find_vote(self, *, decision_id: str, user_id: str) -> Optional[VoteRecord]: ...

    def record_vote(self, vote: VoteRecord) -> bool:
        """Insert the vote and append its id to the round's vote_links in one unit.

        Returns False without writing anything when (decision_id, user_id) already voted.
        """
        ...

    def list_votes(self, *, decision_id: str) -> list[VoteRecord]: ...
