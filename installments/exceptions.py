"""
Error taxonomy for the installment engine.

Validation, not-found and already-paid failures are expected outcomes that
the API returns as typed failures. ArithmeticInvariantError is an internal
assertion: seeing it means the schedule generator has a bug.
"""


class LedgerError(Exception):
    """Base class for all installment engine failures."""

    code = "ledger_error"
    http_status = 400

    def __init__(self, message, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def as_dict(self):
        return {"code": self.code, "message": self.message}


class ValidationError(LedgerError):
    code = "validation_error"
    http_status = 400


class InvalidPlanError(ValidationError):
    code = "invalid_plan"


class InvalidAmountError(ValidationError):
    code = "invalid_amount"


class NotFoundError(LedgerError):
    code = "not_found"
    http_status = 404


class AlreadyPaidError(LedgerError):
    code = "already_paid"
    http_status = 409


class LinkingConflictError(LedgerError):
    """
    Some records targeted by a link could not be claimed.

    Carries the LinkResult so callers can report the leftovers.
    """

    code = "linking_conflict"
    http_status = 409

    def __init__(self, message, result=None, **context):
        super().__init__(message, **context)
        self.result = result


class ArithmeticInvariantError(LedgerError):
    code = "arithmetic_invariant"
    http_status = 500
