from __future__ import annotations

from enum import Enum


class ResultStatus(str, Enum):
    """Semantic category of a build result, used to pick a visual style."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ABORTED = "ABORTED"
    UNKNOWN = "UNKNOWN"


_RESULTS = {
    "SUCCESS": ResultStatus.SUCCESS,
    "FAILURE": ResultStatus.FAILURE,
    "ABORTED": ResultStatus.ABORTED,
}


def classify_result(result: str | None) -> ResultStatus:
    """Map a raw Jenkins result string onto a :class:`ResultStatus`.

    Anything unrecognized, including ``None``, is ``UNKNOWN``.
    """
    if not isinstance(result, str):
        return ResultStatus.UNKNOWN
    return _RESULTS.get(result, ResultStatus.UNKNOWN)
