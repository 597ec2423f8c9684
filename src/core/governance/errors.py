class GovernanceError(Exception):
    pass


class GovernanceNotFoundError(GovernanceError):
    pass


class GovernanceValidationError(GovernanceError):
    pass


class GovernanceForbiddenError(GovernanceError):
    pass


class GovernanceStateError(GovernanceError):
    pass


class VoteConflictError(GovernanceError):
    pass
