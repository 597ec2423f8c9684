import json
from contextlib import closing
from datetime import datetime
from importlib.util import find_spec
from typing import Any, Optional

from src.core.governance.models import (
    OUTCOME_COLUMNS,
    DecisionRoundAllocation,
    DecisionRoundRecord,
    ProposalRecord,
    ProposalStatus,
    UserRecord,
    VoteRecord,
)
from src.infrastructure.postgres_migrations import apply_postgres_migrations

_PROPOSAL_COLUMNS = """
    id,
    created_by,
    title,
    description,
    status,
    created_at,
    updated_at
"""

_ROUND_COLUMNS = """
    id,
    proposal_id,
    decision_point,
    success,
    percent_approval,
    vote_links,
    created_at
"""

_VOTE_COLUMNS = """
    id,
    decision_id,
    user_id,
    username,
    decision,
    voting_logic,
    created_at,
    agent_vote
"""


class PostgresGovernanceRepository:
    def __init__(self, *, dsn: str) -> None:
        if not dsn:
            raise RuntimeError("GOVERNANCE_POSTGRES_DSN_REQUIRED")
        if find_spec("psycopg") is None:
            raise RuntimeError("GOVERNANCE_POSTGRES_DRIVER_MISSING")
        self._dsn = dsn
        self._init_db()

    def ensure_user(self, user: UserRecord) -> UserRecord:
        query = """
            INSERT INTO users (id, username, email, created_at)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET
                username = COALESCE(excluded.username, users.username),
                email = COALESCE(excluded.email, users.email)
            RETURNING id, username, email, created_at
        """
        with closing(self._connect()) as connection:
            row = connection.execute(
                query,
                (user.id, user.username, user.email, user.created_at.isoformat()),
            ).fetchone()
            connection.commit()
        return _to_user(row) or user

    def get_users(self, *, user_ids: list[str]) -> dict[str, UserRecord]:
        if not user_ids:
            return {}
        query = """
            SELECT id, username, email, created_at
            FROM users
            WHERE id = ANY(%s)
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (sorted(set(user_ids)),)).fetchall()
        users = [_to_user(row) for row in rows]
        return {user.id: user for user in users if user is not None}

    def create_proposal(self, proposal: ProposalRecord) -> None:
        query = """
            INSERT INTO proposals (
                id,
                created_by,
                title,
                description,
                status,
                created_at,
                updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        with closing(self._connect()) as connection:
            connection.execute(
                query,
                (
                    proposal.id,
                    proposal.created_by,
                    proposal.title,
                    proposal.description,
                    proposal.status,
                    proposal.created_at.isoformat(),
                    proposal.updated_at.isoformat(),
                ),
            )
            connection.commit()

    def update_proposal_content(
        self,
        *,
        proposal_id: str,
        title: str,
        description: str,
        updated_at: datetime,
    ) -> Optional[ProposalRecord]:
        query = f"""
            UPDATE proposals
            SET title = %s, description = %s, updated_at = %s
            WHERE id = %s AND status = 'open'
            RETURNING {_PROPOSAL_COLUMNS}
        """
        with closing(self._connect()) as connection:
            row = connection.execute(
                query, (title, description, updated_at.isoformat(), proposal_id)
            ).fetchone()
            connection.commit()
        return _to_proposal(row)

    def close_proposal(
        self, *, proposal_id: str, updated_at: datetime
    ) -> Optional[ProposalRecord]:
        query = f"""
            UPDATE proposals
            SET status = 'closed', updated_at = %s
            WHERE id = %s AND status = 'open'
            RETURNING {_PROPOSAL_COLUMNS}
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (updated_at.isoformat(), proposal_id)).fetchone()
            connection.commit()
        return _to_proposal(row)

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        query = f"""
            SELECT {_PROPOSAL_COLUMNS}
            FROM proposals
            WHERE id = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (proposal_id,)).fetchone()
        return _to_proposal(row)

    def list_proposals(
        self,
        *,
        status: Optional[ProposalStatus],
        created_by: Optional[str],
    ) -> list[ProposalRecord]:
        where_clauses = []
        args: list[str] = []
        if status is not None:
            where_clauses.append("status = %s")
            args.append(status)
        if created_by is not None:
            where_clauses.append("created_by = %s")
            args.append(created_by)
        where_sql = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
        query = f"""
            SELECT {_PROPOSAL_COLUMNS}
            FROM proposals
            {where_sql}
            ORDER BY created_at DESC, id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, tuple(args)).fetchall()
        proposals = [_to_proposal(row) for row in rows]
        return [proposal for proposal in proposals if proposal is not None]

    def allocate_round(
        self,
        *,
        proposal_id: str,
        round_id: str,
        created_at: datetime,
        reuse_latest: bool,
    ) -> Optional[DecisionRoundAllocation]:
        lock_query = """
            SELECT status
            FROM proposals
            WHERE id = %s
            FOR UPDATE
        """
        latest_query = f"""
            SELECT {_ROUND_COLUMNS}
            FROM decision_chain
            WHERE proposal_id = %s
            ORDER BY decision_point DESC
            LIMIT 1
        """
        insert = """
            INSERT INTO decision_chain (
                id,
                proposal_id,
                decision_point,
                success,
                percent_approval,
                vote_links,
                created_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        """
        with closing(self._connect()) as connection:
            proposal_row = connection.execute(lock_query, (proposal_id,)).fetchone()
            if proposal_row is None or proposal_row["status"] != "open":
                connection.rollback()
                return None
            latest = _to_round(connection.execute(latest_query, (proposal_id,)).fetchone())
            if reuse_latest and latest is not None:
                connection.commit()
                return DecisionRoundAllocation(round=latest, created=False)

            decision_round = DecisionRoundRecord(
                id=round_id,
                proposal_id=proposal_id,
                decision_point=latest.decision_point + 1 if latest is not None else 1,
                vote_links=[],
                created_at=created_at,
            )
            connection.execute(
                insert,
                (
                    decision_round.id,
                    decision_round.proposal_id,
                    decision_round.decision_point,
                    decision_round.success,
                    decision_round.percent_approval,
                    _json_dump(decision_round.vote_links),
                    decision_round.created_at.isoformat(),
                ),
            )
            connection.commit()
        return DecisionRoundAllocation(round=decision_round, created=True)

    def get_round(self, *, round_id: str) -> Optional[DecisionRoundRecord]:
        query = f"""
            SELECT {_ROUND_COLUMNS}
            FROM decision_chain
            WHERE id = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (round_id,)).fetchone()
        return _to_round(row)

    def list_rounds(self, *, proposal_id: Optional[str]) -> list[DecisionRoundRecord]:
        if proposal_id is None:
            query = f"""
                SELECT {_ROUND_COLUMNS}
                FROM decision_chain
                ORDER BY created_at DESC, id DESC
            """
            args: tuple[str, ...] = ()
        else:
            query = f"""
                SELECT {_ROUND_COLUMNS}
                FROM decision_chain
                WHERE proposal_id = %s
                ORDER BY decision_point DESC
            """
            args = (proposal_id,)
        with closing(self._connect()) as connection:
            rows = connection.execute(query, args).fetchall()
        rounds = [_to_round(row) for row in rows]
        return [decision_round for decision_round in rounds if decision_round is not None]

    def update_round_outcome(
        self, *, round_id: str, changes: dict[str, Any]
    ) -> Optional[DecisionRoundRecord]:
        columns = [column for column in OUTCOME_COLUMNS if column in changes]
        if not columns:
            return self.get_round(round_id=round_id)
        args = [
            _json_dump(changes[column]) if column == "vote_links" else changes[column]
            for column in columns
        ]
        assignments = ", ".join(f"{column} = %s" for column in columns)
        query = f"""
            UPDATE decision_chain
            SET {assignments}
            WHERE id = %s
            RETURNING {_ROUND_COLUMNS}
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (*args, round_id)).fetchone()
            connection.commit()
        return _to_round(row)

    def find_vote(self, *, decision_id: str, user_id: str) -> Optional[VoteRecord]:
        query = f"""
            SELECT {_VOTE_COLUMNS}
            FROM votes
            WHERE decision_id = %s AND user_id = %s
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (decision_id, user_id)).fetchone()
        return _to_vote(row)

    def record_vote(self, vote: VoteRecord) -> bool:
        insert = """
            INSERT INTO votes (
                id,
                decision_id,
                user_id,
                username,
                decision,
                voting_logic,
                created_at,
                agent_vote
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (decision_id, user_id) DO NOTHING
        """
        links_query = """
            SELECT vote_links
            FROM decision_chain
            WHERE id = %s
            FOR UPDATE
        """
        update_links = """
            UPDATE decision_chain
            SET vote_links = %s
            WHERE id = %s
        """
        with closing(self._connect()) as connection:
            links_row = connection.execute(links_query, (vote.decision_id,)).fetchone()
            cursor = connection.execute(
                insert,
                (
                    vote.id,
                    vote.decision_id,
                    vote.user_id,
                    vote.username,
                    vote.decision,
                    vote.voting_logic,
                    vote.created_at.isoformat(),
                    vote.agent_vote,
                ),
            )
            if cursor.rowcount == 0:
                connection.rollback()
                return False
            if links_row is not None:
                vote_links = _load_vote_links(links_row["vote_links"])
                vote_links.append(vote.id)
                connection.execute(update_links, (_json_dump(vote_links), vote.decision_id))
            connection.commit()
        return True

    def list_votes(self, *, decision_id: str) -> list[VoteRecord]:
        query = f"""
            SELECT {_VOTE_COLUMNS}
            FROM votes
            WHERE decision_id = %s
            ORDER BY created_at ASC, id ASC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (decision_id,)).fetchall()
        votes = [_to_vote(row) for row in rows]
        return [vote for vote in votes if vote is not None]

    def _connect(self):
        psycopg, dict_row = _import_psycopg()
        return psycopg.connect(self._dsn, row_factory=dict_row)

    def _init_db(self) -> None:
        with closing(self._connect()) as connection:
            apply_postgres_migrations(connection=connection, namespace="governance")


def _import_psycopg():
    import psycopg
    from psycopg.rows import dict_row

    return psycopg, dict_row


def _json_dump(value: list[str]) -> str:
    return json.dumps(value, separators=(",", ":"))


def _load_vote_links(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [str(item) for item in json.loads(value)]


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _to_user(row) -> Optional[UserRecord]:
    if row is None:
        return None
    return UserRecord(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _to_proposal(row) -> Optional[ProposalRecord]:
    if row is None:
        return None
    return ProposalRecord(
        id=row["id"],
        created_by=row["created_by"],
        title=row["title"],
        description=row["description"],
        status=row["status"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _to_round(row) -> Optional[DecisionRoundRecord]:
    if row is None:
        return None
    return DecisionRoundRecord(
        id=row["id"],
        proposal_id=row["proposal_id"],
        decision_point=int(row["decision_point"]),
        success=row["success"],
        percent_approval=_optional_float(row["percent_approval"]),
        vote_links=_load_vote_links(row["vote_links"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _to_vote(row) -> Optional[VoteRecord]:
    if row is None:
        return None
    return VoteRecord(
        id=row["id"],
        decision_id=row["decision_id"],
        user_id=row["user_id"],
        username=row["username"],
        decision=row["decision"],
        voting_logic=row["voting_logic"],
        created_at=datetime.fromisoformat(row["created_at"]),
        agent_vote=bool(row["agent_vote"]),
    )
