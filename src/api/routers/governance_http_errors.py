from typing import NoReturn

from fastapi import HTTPException, status

from src.core.governance import (
    GovernanceForbiddenError,
    GovernanceNotFoundError,
    GovernanceStateError,
    GovernanceValidationError,
    VoteConflictError,
)


def raise_governance_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, GovernanceNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, GovernanceForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(
        exc, (GovernanceValidationError, GovernanceStateError, VoteConflictError)
    ):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc
