"""
Error taxonomy and result type returned by the Podium services.

Business-rule failures are never raised: every service call returns a
ServiceResult whose error carries an ErrorCode. Each code belongs to one
ErrorKind so callers can tell "fix your request" from "retry later".
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    STATE_CONFLICT = "state_conflict"
    NOT_ELIGIBLE = "not_eligible"
    INFRASTRUCTURE = "infrastructure"


class ErrorCode(Enum):
    # value: (kind, default message)
    RACE_NOT_FOUND = (ErrorKind.NOT_FOUND, "Race not found")
    PREDICTION_NOT_FOUND = (ErrorKind.NOT_FOUND, "Prediction not found")
    LEAGUE_NOT_FOUND = (ErrorKind.NOT_FOUND, "League not found")
    DRIVER_NOT_FOUND = (ErrorKind.NOT_FOUND, "Driver not found")
    USER_NOT_FOUND = (ErrorKind.NOT_FOUND, "User not found")

    INVALID_TIER = (
        ErrorKind.INVALID_INPUT,
        "Invalid lock type. Use: fp1, qualifying or race",
    )
    DUPLICATE_POSITION_OR_DRIVER = (
        ErrorKind.INVALID_INPUT,
        "Each position and each driver may appear only once",
    )
    INVALID_POSITION = (ErrorKind.INVALID_INPUT, "Positions must be integers >= 1")
    EMPTY_PREDICTION = (ErrorKind.INVALID_INPUT, "Send at least one pick")
    EMPTY_RESULTS = (ErrorKind.INVALID_INPUT, "Send at least one result")
    NO_LEAGUES_SELECTED = (ErrorKind.INVALID_INPUT, "Select at least one league")
    DRIVER_INACTIVE = (
        ErrorKind.INVALID_INPUT,
        "Inactive drivers cannot be picked",
    )
    INVALID_DRIVER_ID = (ErrorKind.INVALID_INPUT, "Driver ids must be integers")
    INVALID_LEAGUE_ID = (ErrorKind.INVALID_INPUT, "League ids must be integers")

    RACE_ALREADY_COMPLETED = (ErrorKind.STATE_CONFLICT, "This race is already completed")
    RACE_ALREADY_STARTED = (
        ErrorKind.STATE_CONFLICT,
        "This race has already started. Predictions are closed.",
    )
    PREDICTION_LOCKED = (
        ErrorKind.STATE_CONFLICT,
        "Your prediction is locked and can no longer be changed",
    )
    NO_RESULTS_RECORDED = (
        ErrorKind.STATE_CONFLICT,
        "No results recorded for this race",
    )
    NO_PREDICTION_FOR_RACE = (
        ErrorKind.STATE_CONFLICT,
        "You have not made a prediction for this race yet",
    )

    NOT_ELIGIBLE = (ErrorKind.NOT_ELIGIBLE, "You are not a member of this league")
    RACE_NOT_IN_LEAGUE = (
        ErrorKind.NOT_ELIGIBLE,
        "This race is not part of the league",
    )

    STORAGE_ERROR = (
        ErrorKind.INFRASTRUCTURE,
        "Storage error, please try again later",
    )

    @property
    def kind(self):
        return self.value[0]

    @property
    def default_message(self):
        return self.value[1]


class ServiceError:
    def __init__(self, code, message=None, **details):
        self.code = code
        self.message = message or code.default_message
        self.details = details

    @property
    def kind(self):
        return self.code.kind

    def __repr__(self):
        return f"<ServiceError {self.code.name}: {self.message}>"

    def to_dict(self):
        data = {
            "code": self.code.name,
            "kind": self.kind.value,
            "message": self.message,
        }
        data.update(self.details)
        return data


class ServiceResult:
    """Outcome of a service call: either data or a ServiceError"""

    def __init__(self, success, data=None, error=None, message=None):
        self.success = success
        self.data = data
        self.error = error
        self.message = message

    @classmethod
    def ok(cls, data=None, message=None):
        return cls(True, data=data, message=message)

    @classmethod
    def fail(cls, code, message=None, **details):
        error = ServiceError(code, message, **details)
        return cls(False, error=error, message=error.message)

    def __bool__(self):
        return self.success

    def __repr__(self):
        if self.success:
            return f"<ServiceResult ok {self.message or ''}>"
        return f"<ServiceResult failed {self.error!r}>"

    @property
    def code(self):
        return self.error.code if self.error else None

    @property
    def kind(self):
        return self.error.kind if self.error else None

    def to_dict(self):
        """Response envelope for API responses"""
        payload = {"success": self.success, "message": self.message, "data": self.data}
        if self.error:
            payload["error"] = self.error.to_dict()
        return payload
