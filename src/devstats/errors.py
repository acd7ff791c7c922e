"""Exception hierarchy shared by the devstats client, pipeline and CLI."""


class DevstatsError(Exception):
    """Root of every error devstats raises on purpose."""


class ConfigurationError(DevstatsError):
    """Bad repository identifier, author list or worker count; raised before any request."""


class AuthenticationError(DevstatsError):
    """No GitHub token could be found in the environment or a .env file."""


class ApiError(DevstatsError):
    """GitHub answered in a way that fails the whole statistics run.

    ``status_code`` and ``body`` hold the offending response, when there was one.
    """

    def __init__(self, message: str, status_code: int = 0, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class FetchError(DevstatsError):
    """One pull request could not be retrieved; the pipeline skips it."""


class NotFoundError(FetchError):
    """The pull request is gone (HTTP 404/410)."""


class RequestCancelledError(DevstatsError):
    """A request or its retry backoff was abandoned because the run was cancelled."""


class DataValidationError(DevstatsError):
    """A GitHub payload lacks a field the statistics need, such as ``created_at``."""
