"""Error kinds raised by the prize engine.

Services raise ``PrizeError`` subclasses; only the HTTP layer turns a kind
into a status code.
"""

from enum import Enum


class ErrorKind(Enum):
    VALIDATION = ('ValidationError', 400)
    NOT_FOUND = ('NotFound', 404)
    UNAUTHORIZED = ('Unauthorized', 403)
    MODE_MISMATCH = ('ModeMismatch', 400)
    INCOMPLETE_GAME = ('IncompleteGame', 400)
    DUPLICATE_ANSWER = ('DuplicateAnswer', 400)
    LATE_SUBMISSION = ('LateSubmission', 400)
    DISTRIBUTION_IN_PROGRESS = ('DistributionInProgress', 409)
    ON_CHAIN_FAILURE = ('OnChainFailure', 500)
    INTERNAL = ('InternalError', 500)

    def __init__(self, label, status_code):
        self.label = label
        self.status_code = status_code


class PrizeError(Exception):
    kind = ErrorKind.INTERNAL

    def __init__(self, message, kind=None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind.label}


class ValidationError(PrizeError):
    kind = ErrorKind.VALIDATION


class NotFound(PrizeError):
    kind = ErrorKind.NOT_FOUND


class Unauthorized(PrizeError):
    kind = ErrorKind.UNAUTHORIZED


class ModeMismatch(PrizeError):
    kind = ErrorKind.MODE_MISMATCH


class IncompleteGame(PrizeError):
    kind = ErrorKind.INCOMPLETE_GAME


class DuplicateAnswer(PrizeError):
    kind = ErrorKind.DUPLICATE_ANSWER


class LateSubmission(PrizeError):
    kind = ErrorKind.LATE_SUBMISSION


class DistributionInProgress(PrizeError):
    kind = ErrorKind.DISTRIBUTION_IN_PROGRESS


class OnChainFailure(PrizeError):
    kind = ErrorKind.ON_CHAIN_FAILURE
