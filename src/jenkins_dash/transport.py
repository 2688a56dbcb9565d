"""HTTP transport: authenticated requests against the Jenkins server."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

import jenkins
import requests
from loguru import logger

from jenkins_dash.errors import (
    HTTPError,
    JenkinsDashError,
    MalformedResponse,
    NetworkError,
)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# python-jenkins folds 401/403/500 responses into a JenkinsException whose
# message carries the status code as "[403]".
_STATUS_IN_MESSAGE = re.compile(r"\[(\d{3})\]")


class JenkinsTransport:
    """Issues requests through a configured :class:`jenkins.Jenkins` client.

    The client carries the Basic-Auth credentials and the base URL; this class
    only builds URLs, sends requests and maps failures onto the error taxonomy.
    Nothing is retried.
    """

    def __init__(self, client: jenkins.Jenkins) -> None:
        self._client = client

    @property
    def base_url(self) -> str:
        return self._client.server

    def job_url(self, job_name: str, suffix: str = "") -> str:
        return f"{self.base_url}job/{quote(job_name, safe='')}/{suffix}"

    def view_url(self, view_name: str, suffix: str = "") -> str:
        return f"{self.base_url}view/{quote(view_name, safe='')}/{suffix}"

    def fetch_json(self, url: str, *, job_name: str | None = None) -> Any:
        response = self._request("GET", url, job_name=job_name)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(
                f"Response body is not valid JSON: {e}", job_name=job_name, url=url
            ) from e

    def fetch_text(self, url: str, *, job_name: str | None = None) -> str:
        return self._request("GET", url, job_name=job_name).text

    def submit_form(
        self,
        url: str,
        method: str = "POST",
        body: str | None = None,
        *,
        job_name: str | None = None,
    ) -> None:
        headers = {"Content-Type": FORM_CONTENT_TYPE} if body is not None else None
        self._request(method, url, data=body, headers=headers, job_name=job_name)

    def _request(
        self,
        method: str,
        url: str,
        *,
        data: str | None = None,
        headers: dict[str, str] | None = None,
        job_name: str | None = None,
    ) -> requests.Response:
        logger.debug(f"{method} {url}")
        try:
            return self._client.jenkins_request(
                requests.Request(method, url, data=data, headers=headers)
            )
        except (jenkins.JenkinsException, requests.exceptions.RequestException) as e:
            error = translate_error(e, job_name=job_name, url=url)
            logger.warning(f"{method} {url} failed ({error.kind}): {error.message}")
            raise error from e


def translate_error(
    exc: Exception, *, job_name: str | None = None, url: str | None = None
) -> JenkinsDashError:
    """Map a python-jenkins or requests failure onto the error taxonomy."""
    message = str(exc)
    if isinstance(exc, jenkins.NotFoundException):
        return HTTPError(404, message, job_name=job_name, url=url)
    if isinstance(exc, jenkins.TimeoutException):
        return NetworkError(message, job_name=job_name, url=url)
    if isinstance(exc, jenkins.JenkinsException):
        match = _STATUS_IN_MESSAGE.search(message)
        if match:
            return HTTPError(int(match.group(1)), message, job_name=job_name, url=url)
        return NetworkError(message, job_name=job_name, url=url)
    if isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None:
        return HTTPError(exc.response.status_code, message, job_name=job_name, url=url)
    return NetworkError(message, job_name=job_name, url=url)
