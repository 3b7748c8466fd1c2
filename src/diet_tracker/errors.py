"""Error taxonomy shared by services, adapters and the HTTP API."""


class DietTrackerError(Exception):
    """Base class for expected, user-facing failures."""

    kind = "internal"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        """Return the human-readable error message."""
        return str(self.args[0]) if self.args else self.default_message


class UnauthenticatedError(DietTrackerError):
    """No valid identity was presented."""

    kind = "unauthenticated"
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(DietTrackerError):
    """The record is absent or belongs to another owner."""

    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class ValidationError(DietTrackerError):
    """Malformed or missing input."""

    kind = "validation"
    status_code = 400
    default_message = "Invalid input"


class ConflictError(DietTrackerError):
    """The record changed since the caller last read it."""

    kind = "conflict"
    status_code = 409
    default_message = "Entry was modified concurrently"


class UpstreamUnavailableError(DietTrackerError):
    """An external collaborator failed, is unreachable, or is unconfigured."""

    kind = "upstream_unavailable"
    status_code = 503
    default_message = "Upstream service unavailable"


class InternalError(DietTrackerError):
    """Unexpected store or computation failure."""


ERRORS_BY_KIND: dict[str, type[DietTrackerError]] = {
    cls.kind: cls
    for cls in (
        UnauthenticatedError,
        NotFoundError,
        ValidationError,
        ConflictError,
        UpstreamUnavailableError,
        InternalError,
    )
}
