"""Typed display model built from Jenkins JSON documents.

Optional fields in the server's JSON become ``None`` here; only a document
that lacks the top-level shape (or a record without its identifying field)
is rejected with :class:`MalformedResponse`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jenkins_dash.errors import MalformedResponse
from jenkins_dash.status import ResultStatus, classify_result
from jenkins_dash.timefmt import format_age

BUILD_HISTORY_LIMIT = 25
NO_AUTHOR = "---"


@dataclass(frozen=True)
class Job:
    name: str
    last_result: ResultStatus | None = None
    progress: int | None = None
    last_success_age: str | None = None
    last_failure_age: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.progress is not None


@dataclass(frozen=True)
class Build:
    number: int
    author: str
    url: str
    age: str
    building: bool
    result: ResultStatus | None = None


@dataclass(frozen=True)
class BuildHistory:
    job_name: str
    builds: tuple[Build, ...] = ()
    latest_successful: int | None = None
    latest_failed: int | None = None
    latest_finished: int | None = None

    def get(self, number: int) -> Build | None:
        for build in self.builds:
            if build.number == number:
                return build
        return None


def _get(node: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a step is missing."""
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _require_list(document: Any, key: str, context: str) -> list[Any]:
    if not isinstance(document, dict) or not isinstance(document.get(key), list):
        raise MalformedResponse(f"{context}: expected a JSON object with a '{key}' list")
    return document[key]


def _age(timestamp: Any, now: float) -> str | None:
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        return None
    return format_age(timestamp, now)


def _progress(raw: Any) -> int | None:
    # Jenkins reports -1 when it has no estimate for a running build.
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not 0 <= raw <= 100:
        return None
    return int(raw)


def _result(raw: Any) -> ResultStatus | None:
    return None if raw is None else classify_result(raw)


def build_jobs(document: Any, now: float) -> list[Job]:
    """Reduce a jobs-view document to one :class:`Job` per distinct name.

    Order follows the server; a repeated name keeps its first entry.
    """
    jobs: dict[str, Job] = {}
    for entry in _require_list(document, "jobs", "jobs view"):
        name = _get(entry, "name")
        if not isinstance(name, str):
            raise MalformedResponse("jobs view: job entry without a name")
        if name in jobs:
            continue
        jobs[name] = Job(
            name=name,
            last_result=_result(_get(entry, "lastCompletedBuild", "result")),
            progress=_progress(_get(entry, "lastBuild", "executor", "progress")),
            last_success_age=_age(_get(entry, "lastSuccessfulBuild", "timestamp"), now),
            last_failure_age=_age(_get(entry, "lastFailedBuild", "timestamp"), now),
        )
    return list(jobs.values())


def _author(entry: dict[str, Any]) -> str:
    culprits = entry.get("culprits")
    if isinstance(culprits, list) and culprits:
        name = _get(culprits[0], "fullName")
        if isinstance(name, str):
            return name
    return NO_AUTHOR


def _first(builds: tuple[Build, ...], predicate) -> int | None:
    for build in builds:
        if predicate(build):
            return build.number
    return None


def build_history(
    job_name: str, document: Any, now: float, limit: int = BUILD_HISTORY_LIMIT
) -> BuildHistory:
    """Reduce a job-detail document to a :class:`BuildHistory`.

    The server lists builds newest first; that order is kept and the list is
    cut to ``limit`` entries before the latest-* pointers are derived, so every
    pointer names a build that is in ``builds``.
    """
    builds = []
    for entry in _require_list(document, "builds", f"job '{job_name}'")[:limit]:
        number = _get(entry, "number")
        if isinstance(number, bool) or not isinstance(number, int):
            raise MalformedResponse(
                f"job '{job_name}': build entry without a number", job_name=job_name
            )
        builds.append(
            Build(
                number=number,
                author=_author(entry),
                url=entry.get("url") or "",
                age=_age(entry.get("timestamp"), now) or "",
                building=bool(entry.get("building", False)),
                result=_result(entry.get("result")),
            )
        )
    ordered = tuple(builds)
    return BuildHistory(
        job_name=job_name,
        builds=ordered,
        latest_successful=_first(ordered, lambda b: b.result is ResultStatus.SUCCESS),
        latest_failed=_first(ordered, lambda b: b.result is ResultStatus.FAILURE),
        latest_finished=_first(ordered, lambda b: not b.building),
    )
