"""Read/trigger operations exposed to renderers and command surfaces."""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping

from loguru import logger

from jenkins_dash.models import (
    BUILD_HISTORY_LIMIT,
    BuildHistory,
    Job,
    build_history,
    build_jobs,
)
from jenkins_dash.parameters import (
    DEFINITION_TREE,
    ParameterDefinition,
    encode_parameters,
    parse_parameter_definitions,
    resolve_values,
)
from jenkins_dash.transport import JenkinsTransport

JOBS_TREE = (
    "jobs[name,lastCompletedBuild[result],lastBuild[executor[progress]],"
    "lastSuccessfulBuild[timestamp],lastFailedBuild[timestamp]]"
)
BUILDS_TREE = (
    "builds[number,timestamp,result,url,building,culprits[fullName]]"
    f"{{0,{BUILD_HISTORY_LIMIT}}}"
)
PARAMETERS_TREE = (
    f"property[parameterDefinitions[{DEFINITION_TREE}]],"
    f"actions[parameterDefinitions[{DEFINITION_TREE}]]"
)


class JenkinsDashboard:
    """Stateless facade over a :class:`JenkinsTransport`.

    Each method issues exactly one request and returns a fresh snapshot;
    keeping snapshots between refreshes is up to the caller.
    """

    def __init__(
        self,
        transport: JenkinsTransport,
        view: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.transport = transport
        self.view = view
        self._clock = clock

    def jobs_url(self) -> str:
        suffix = f"api/json?tree={JOBS_TREE}"
        if self.view:
            return self.transport.view_url(self.view, suffix)
        return self.transport.base_url + suffix

    def list_jobs(self) -> list[Job]:
        document = self.transport.fetch_json(self.jobs_url())
        jobs = build_jobs(document, now=self._clock())
        logger.debug(f"Fetched {len(jobs)} jobs")
        return jobs

    def get_build_history(self, job_name: str) -> BuildHistory:
        url = self.transport.job_url(job_name, f"api/json?tree={BUILDS_TREE}")
        document = self.transport.fetch_json(url, job_name=job_name)
        return build_history(job_name, document, now=self._clock())

    def get_parameter_definitions(self, job_name: str) -> list[ParameterDefinition]:
        url = self.transport.job_url(job_name, f"api/json?tree={PARAMETERS_TREE}")
        document = self.transport.fetch_json(url, job_name=job_name)
        return parse_parameter_definitions(document, job_name)

    def trigger_build(
        self, job_name: str, parameter_values: Mapping[str, Any] | None = None
    ) -> None:
        """Trigger a build of ``job_name``.

        Without values the direct build endpoint is used. With values the
        job's definitions are fetched first: a job that declares none is
        built directly, otherwise the values are validated and resolved like
        a submitted form and sent to buildWithParameters.

        Raises:
            UsageError: The values do not name exactly the defined parameters.
            ValidationError: A choice value outside the declared set.
        """
        if parameter_values is not None:
            definitions = self.get_parameter_definitions(job_name)
            if definitions or parameter_values:
                self.submit_parameters(
                    job_name,
                    resolve_values(definitions, parameter_values, job_name=job_name),
                )
                return

        url = self.transport.job_url(job_name, "build")
        self.transport.submit_form(url, "POST", job_name=job_name)
        logger.info(f"Triggered build of '{job_name}'")

    def submit_parameters(self, job_name: str, values: Mapping[str, str]) -> None:
        """Send already resolved parameter values to buildWithParameters."""
        url = self.transport.job_url(job_name, "buildWithParameters")
        self.transport.submit_form(
            url, "POST", encode_parameters(values), job_name=job_name
        )
        logger.info(f"Triggered build of '{job_name}' with parameters")

    def rebuild(self, job_name: str) -> None:
        """Re-run the job's last completed build."""
        url = self.transport.job_url(job_name, "lastCompletedBuild/rebuild/")
        self.transport.submit_form(url, "GET", job_name=job_name)
        logger.info(f"Triggered rebuild of '{job_name}'")

    def fetch_console_output(self, job_name: str, build_number: int) -> str:
        url = self.transport.job_url(job_name, f"{build_number}/consoleText")
        return self.transport.fetch_text(url, job_name=job_name)
