"""Jenkins dashboard MCP server: browse jobs and trigger builds via MCP tools."""

from __future__ import annotations

import threading
from dataclasses import asdict
from typing import Any

from fastmcp import FastMCP
from loguru import logger

from jenkins_dash.dashboard import JenkinsDashboard
from jenkins_dash.errors import JenkinsDashError
from jenkins_dash.jenkins_client import JenkinsSettings, get_client, load_settings
from jenkins_dash.log import setup_logger
from jenkins_dash.models import BuildHistory, Job
from jenkins_dash.parameters import ParameterDefinition
from jenkins_dash.transport import JenkinsTransport
from jenkins_dash.workflow import BuildWorkflow, ParameterForm

mcp = FastMCP("Jenkins Dashboard")


def _format_error(e: JenkinsDashError) -> dict[str, Any]:
    """Format an exception into a consistent error response."""
    return {"error": True, **e.to_dict()}


def _not_confirmed(job_name: str, values: dict[str, str]) -> bool:
    return False


# Module-level singleton (lazy); tests can replace via patching.
_workflow: BuildWorkflow | None = None
_workflow_lock = threading.Lock()


def get_workflow(settings: JenkinsSettings | None = None) -> BuildWorkflow:
    """Return the process-wide workflow, creating it on first use.

    ``settings`` configures the first call only; without them the
    environment is read then. Later calls return the same workflow.
    """
    global _workflow
    with _workflow_lock:
        if _workflow is None:
            if settings is None:
                settings = load_settings()
            dashboard = JenkinsDashboard(
                JenkinsTransport(get_client(settings)), view=settings.view
            )
            _workflow = BuildWorkflow(dashboard, confirm=_not_confirmed)
        return _workflow


def _job_dict(job: Job) -> dict[str, Any]:
    data = asdict(job)
    data["last_result"] = job.last_result.value if job.last_result else None
    return data


def _history_dict(history: BuildHistory) -> dict[str, Any]:
    return {
        "job_name": history.job_name,
        "latest_successful": history.latest_successful,
        "latest_failed": history.latest_failed,
        "latest_finished": history.latest_finished,
        "builds": [
            {**asdict(b), "result": b.result.value if b.result else None}
            for b in history.builds
        ],
    }


def _definition_dict(definition: ParameterDefinition) -> dict[str, Any]:
    return {
        "name": definition.name,
        "type": definition.type.value,
        "description": definition.description,
        "default_value": definition.default_value,
        "choices": list(definition.choices),
    }


def _form_dict(form: ParameterForm) -> dict[str, Any]:
    return {
        "success": True,
        "job_name": form.job_name,
        "state": form.state.value,
        "parameters": [
            {
                **_definition_dict(form.definitions[edit.name]),
                "value": edit.current_value,
            }
            for edit in form.list_edits()
        ],
    }


# ---------------------------------------------------------------------------
# Browsing
# ---------------------------------------------------------------------------
@mcp.tool
def list_jobs() -> dict[str, Any]:
    """List the jobs of the configured view with their latest status.

    Returns:
        A dict with one entry per job: last result, progress of a running
        build (percent), and the age of the last successful and failed builds.
    """
    try:
        jobs = get_workflow().dashboard.list_jobs()
        return {
            "success": True,
            "job_count": len(jobs),
            "jobs": [_job_dict(job) for job in jobs],
        }
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def get_build_history(job_name: str) -> dict[str, Any]:
    """Get the recent builds of a Jenkins job, newest first.

    Args:
        job_name: Name of the Jenkins job.

    Returns:
        A dict with up to 25 builds plus the numbers of the latest
        successful, failed and finished builds.
    """
    try:
        history = get_workflow().dashboard.get_build_history(job_name)
        return {"success": True, **_history_dict(history)}
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def get_job_parameters(job_name: str) -> dict[str, Any]:
    """Get the parameter definitions for a Jenkins job.

    Args:
        job_name: Name of the Jenkins job.

    Returns:
        A dict containing a list of parameter definitions with name, type,
        default value, description and choices for each parameter.
    """
    try:
        definitions = get_workflow().dashboard.get_parameter_definitions(job_name)
        return {
            "success": True,
            "job_name": job_name,
            "parameter_count": len(definitions),
            "parameters": [_definition_dict(d) for d in definitions],
        }
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def get_build_log(
    job_name: str,
    build_number: int,
    start_line: int = 0,
    max_lines: int = 100,
    from_end: bool = False,
) -> dict[str, Any]:
    """Get paginated console output for a Jenkins build.

    Supports reading from the beginning or the end of the log.

    Args:
        job_name: Name of the Jenkins job.
        build_number: The build number to fetch logs for.
        start_line: Line offset. When from_end is False, this is the 0-based
            line number to start reading from. When from_end is True, this is
            the number of lines to skip from the very end.
        max_lines: Maximum number of lines to return (default 100).
        from_end: If True, read lines from the end of the log instead of the
            beginning.

    Returns:
        A dict with the log content, total line count, the actual start line
        number, and whether more lines are available.
    """
    try:
        output = get_workflow().dashboard.fetch_console_output(job_name, build_number)
    except JenkinsDashError as e:
        return _format_error(e)

    all_lines = output.splitlines()
    total_lines = len(all_lines)
    if from_end:
        end_idx = max(total_lines - start_line, 0)
        begin_idx = max(end_idx - max_lines, 0)
        has_more = begin_idx > 0
    else:
        begin_idx = min(start_line, total_lines)
        end_idx = min(begin_idx + max_lines, total_lines)
        has_more = end_idx < total_lines
    selected = all_lines[begin_idx:end_idx]

    return {
        "success": True,
        "job_name": job_name,
        "build_number": build_number,
        "log": "\n".join(selected),
        "total_lines": total_lines,
        "start_line": begin_idx,
        "lines_returned": len(selected),
        "has_more": has_more,
        "from_end": from_end,
    }


# ---------------------------------------------------------------------------
# Triggering
# ---------------------------------------------------------------------------
@mcp.tool
def trigger_build(
    job_name: str, parameters: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Trigger a Jenkins build directly, optionally with parameter values.

    Args:
        job_name: Name of the Jenkins job.
        parameters: Optional dict of build parameters (key-value pairs). When
            given, they must name every parameter the job declares; empty
            values take the declared default and booleans are sent as
            "true"/"false". A job that declares no parameters is built
            directly.
    """
    try:
        get_workflow().dashboard.trigger_build(job_name, parameters)
        return {
            "success": True,
            "job_name": job_name,
            "message": f"Job '{job_name}' has been triggered.",
        }
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def open_build_form(job_name: str, rebuild: bool = False) -> dict[str, Any]:
    """Start a build of a job, opening a parameter form when it has parameters.

    A job without parameters is triggered immediately. Otherwise a form seeded
    with the default values is opened; edit it with set_build_parameter or
    toggle_build_parameter and send it with submit_build_form.

    Args:
        job_name: Name of the Jenkins job.
        rebuild: Re-run the last completed build when the job has no
            parameters.
    """
    try:
        form = get_workflow().start(job_name, rebuild=rebuild)
        if form is None:
            return {
                "success": True,
                "job_name": job_name,
                "state": "triggered",
                "message": f"Job '{job_name}' has no parameters and has been triggered.",
            }
        return _form_dict(form)
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def rebuild_job(job_name: str) -> dict[str, Any]:
    """Re-run the last completed build of a job.

    A job without parameters is rebuilt immediately. A job with parameters
    gets a parameter form instead, exactly as open_build_form does.

    Args:
        job_name: Name of the Jenkins job.
    """
    try:
        form = get_workflow().start(job_name, rebuild=True)
        if form is None:
            return {
                "success": True,
                "job_name": job_name,
                "state": "triggered",
                "message": f"Last completed build of '{job_name}' has been rebuilt.",
            }
        return _form_dict(form)
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def set_build_parameter(job_name: str, name: str, value: str) -> dict[str, Any]:
    """Set one value in the open parameter form of a job.

    Choice parameters only accept one of their declared choices and boolean
    parameters only accept "true" or "false".
    """
    try:
        form = get_workflow().get_form(job_name)
        form.set_edit(name, value)
        return _form_dict(form)
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def toggle_build_parameter(job_name: str, name: str) -> dict[str, Any]:
    """Flip a boolean parameter in the open parameter form of a job."""
    try:
        form = get_workflow().get_form(job_name)
        form.toggle(name)
        return _form_dict(form)
    except JenkinsDashError as e:
        return _format_error(e)


@mcp.tool
def submit_build_form(job_name: str, confirm: bool = False) -> dict[str, Any]:
    """Submit the open parameter form of a job and trigger the build.

    Args:
        job_name: Name of the Jenkins job.
        confirm: Must be True to send the build request. Submitting without
            confirmation cancels the form.
    """
    try:
        workflow = get_workflow()
        values = workflow.submit(job_name, confirm=lambda job, vals: confirm)
    except JenkinsDashError as e:
        return _format_error(e)

    if values is None:
        return {
            "success": True,
            "job_name": job_name,
            "state": "cancelled",
            "message": f"Build of '{job_name}' was not confirmed; the form was closed.",
        }
    return {
        "success": True,
        "job_name": job_name,
        "state": "submitted",
        "parameters": values,
        "message": f"Job '{job_name}' has been triggered with parameters.",
    }


@mcp.tool
def cancel_build_form(job_name: str) -> dict[str, Any]:
    """Discard the open parameter form of a job without building."""
    try:
        get_workflow().cancel(job_name)
        return {"success": True, "job_name": job_name, "state": "cancelled"}
    except JenkinsDashError as e:
        return _format_error(e)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------
def main() -> None:
    settings = load_settings()
    setup_logger(settings.log_level)
    get_workflow(settings)
    logger.info(f"Serving Jenkins dashboard for {settings.url}")
    mcp.run()


if __name__ == "__main__":
    main()
