"""
Error taxonomy for the voting engine.

Every error is raised before any state is touched, so catching one means the
call had no effect. Each class carries the HTTP status the API answers with.
"""


class QuadraticVotingError(Exception):
    status_code = 400
    default_message = "quadratic voting error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)

    @property
    def code(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return str(self)


# NotFound

class NotFoundError(QuadraticVotingError):
    status_code = 404


class SessionNotFound(NotFoundError):
    default_message = "session not found"


class ProposalNotFound(NotFoundError):
    default_message = "proposal not found"


# NotActive

class SessionNotActive(QuadraticVotingError):
    status_code = 409
    default_message = "session is not active"


# Unauthorized

class Unauthorized(QuadraticVotingError):
    status_code = 403
    default_message = "caller is not allowed to perform this action"


class AlreadyRegistered(Unauthorized):
    default_message = "voter is already registered"


class VoterNotRegistered(Unauthorized):
    default_message = "voter is not registered"


# InvalidInput

class InvalidInput(QuadraticVotingError):
    status_code = 400


class InvalidVoteCount(InvalidInput):
    default_message = "proposal ids and weights must be non-empty, of equal length and within the batch limit"


class InvalidProposalCount(InvalidInput):
    default_message = "invalid number of proposals"


class CapacityExceeded(InvalidProposalCount):
    default_message = "session proposal capacity exceeded"


class InsufficientCredits(QuadraticVotingError):
    status_code = 402
    default_message = "insufficient credits"


class InvalidSessionParameters(InvalidInput):
    default_message = "credit budget or duration out of range"


class InvalidSnapshot(InvalidInput):
    default_message = "snapshot is inconsistent"
