"""Error taxonomy for the relay stores and the HTTP boundary."""


class RelayError(Exception):
    """Base exception for relay errors."""
    kind = "relay_error"
    status_code = 400


class ConflictError(RelayError):
    """Operation would replace a completed exchange."""
    kind = "conflict"
    status_code = 409


class NotFoundError(RelayError):
    """Referenced pair key or recipient does not exist."""
    kind = "not_found"
    status_code = 404


class InvalidStateError(RelayError):
    """Record is not in the status the operation requires."""
    kind = "invalid_state"
    status_code = 409


class ValidationError(RelayError):
    """Missing or malformed required field."""
    kind = "validation_error"
    status_code = 422
