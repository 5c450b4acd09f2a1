"""Error taxonomy shared by the services and the HTTP layer."""


class PodiumError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(PodiumError):
    """Malformed or out-of-range input. Nothing was written."""

    code = "VALIDATION_ERROR"
    status_code = 400


class DuplicateVoteError(PodiumError):
    """The fingerprint already has a vote on record."""

    code = "ALREADY_VOTED"
    status_code = 409


class InternalError(PodiumError):
    """Storage or unexpected failure. Details stay in the server log."""

    code = "INTERNAL_ERROR"
    status_code = 500
