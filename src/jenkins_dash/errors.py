"""Error taxonomy for the Jenkins dashboard client.

Every failure a core operation can produce is one of these exceptions. They
propagate to the immediate caller untouched; only the outermost surface turns
them into display dicts via :meth:`JenkinsDashError.to_dict`.
"""

from __future__ import annotations

from typing import Any


class JenkinsDashError(Exception):
    """Base class for all client errors."""

    kind = "error"

    def __init__(
        self,
        message: str,
        *,
        job_name: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.job_name = job_name
        self.url = url

    def to_dict(self) -> dict[str, Any]:
        """Describe the failure as a flat dict suitable for display."""
        data: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.job_name is not None:
            data["job_name"] = self.job_name
        if self.url is not None:
            data["url"] = self.url
        return data


class ConfigurationError(JenkinsDashError, ValueError):
    kind = "configuration"


class NetworkError(JenkinsDashError):
    kind = "network"


class HTTPError(JenkinsDashError):
    kind = "http"

    def __init__(self, status_code: int, message: str | None = None, **context: Any) -> None:
        super().__init__(message or f"HTTP {status_code}", **context)
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class MalformedResponse(JenkinsDashError):
    kind = "malformed_response"


class ValidationError(JenkinsDashError):
    kind = "validation"


class UsageError(JenkinsDashError):
    kind = "usage"
