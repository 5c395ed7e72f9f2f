class LedgerError(Exception):
    """Base for every error the service reports to callers.

    `kind` is the stable machine-readable tag returned in the response body,
    `status_code` the HTTP status it maps to.
    """
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return self.kind.replace("_", " ").capitalize()


class Unauthorized(LedgerError):
    kind = "unauthorized"
    status_code = 401


class Forbidden(LedgerError):
    kind = "forbidden"
    status_code = 403


class ValidationError(LedgerError):
    kind = "validation_error"
    status_code = 400


class InvalidAmount(ValidationError): ...
class InvalidCommissionPolicy(ValidationError): ...


class NotFound(LedgerError):
    kind = "not_found"
    status_code = 404


class ConflictError(LedgerError):
    kind = "conflict"
    status_code = 409


class TaskAlreadyCompleted(ConflictError):
    def default_message(self) -> str:
        return "Task already completed for this campaign"


class InsufficientBalance(LedgerError):
    kind = "insufficient_balance"
    status_code = 400


class CampaignNotActive(LedgerError):
    kind = "campaign_not_active"
    status_code = 400


class CampaignOutOfWindow(LedgerError):
    kind = "campaign_out_of_window"
    status_code = 400


class InternalError(LedgerError): ...
