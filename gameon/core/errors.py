"""
Error taxonomy shared by the repository, the services and the API layer.

Every error carries a stable machine-checkable ``code`` so clients can branch
on it, plus the HTTP status the API layer answers with.
"""


class GameOnError(Exception):
    code = "gameon_error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(GameOnError, ValueError):
    code = "validation_error"
    status_code = 400


class MalformedPayoutSpecError(ValidationError):
    code = "malformed_payout_spec"


class NotFoundError(GameOnError):
    code = "not_found"
    status_code = 404


class NotAuthorizedError(GameOnError, PermissionError):
    code = "not_authorized"
    status_code = 403


class AlreadyJoinedError(GameOnError):
    code = "already_joined"
    status_code = 409


class GameFullError(GameOnError):
    code = "game_full"
    status_code = 409


class GameNotJoinableError(GameOnError):
    code = "game_not_joinable"
    status_code = 409


class InvalidStatusTransitionError(GameOnError):
    code = "invalid_status_transition"
    status_code = 409


class NotJoinedError(GameOnError):
    code = "not_joined"
    status_code = 404


class AlreadyPaidError(GameOnError):
    code = "already_paid"
    status_code = 409


class PaymentNotCompletedError(GameOnError):
    code = "payment_not_completed"
    status_code = 402


class PaymentProviderError(GameOnError):
    """The payment provider could not be reached or rejected the call.

    This is the only transient kind; retrying is left to the caller.
    """
    code = "payment_provider_error"
    status_code = 502
