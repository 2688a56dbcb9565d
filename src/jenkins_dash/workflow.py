"""Two-step build triggering: discover parameters, edit them, submit.

A :class:`ParameterForm` is the editing surface any UI drives. It is seeded
from the job's definitions, validates edits by parameter type, and on
confirmation submits the resolved values once. :class:`BuildWorkflow` keeps at
most one open form per job.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, Sequence

from loguru import logger

from jenkins_dash.dashboard import JenkinsDashboard
from jenkins_dash.errors import UsageError
from jenkins_dash.parameters import (
    FALSE,
    TRUE,
    ParameterDefinition,
    ParameterEdit,
    ParameterType,
    check_value,
    coerce_boolean,
    resolve_values,
)

ConfirmHook = Callable[[str, dict[str, str]], bool]


class FormState(str, Enum):
    OPEN = "open"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


class ParameterForm:
    def __init__(
        self,
        job_name: str,
        definitions: Sequence[ParameterDefinition],
        submit: Callable[[dict[str, str]], None],
        confirm: ConfirmHook,
    ) -> None:
        self.job_name = job_name
        self.definitions = {d.name: d for d in definitions}
        self.state = FormState.OPEN
        self._submit = submit
        self._confirm = confirm
        self._values: dict[str, str] = {
            d.name: d.default_value or "" for d in definitions
        }

    @property
    def is_open(self) -> bool:
        return self.state is FormState.OPEN

    def list_edits(self) -> list[ParameterEdit]:
        self._check_open()
        return [ParameterEdit(name, value) for name, value in self._values.items()]

    def set_edit(self, name: str, value: str) -> None:
        """Replace one parameter's value.

        Raises:
            UsageError: The form is closed or ``name`` is not a parameter.
            ValidationError: The value is not allowed for the parameter's
                type; the previous value is kept.
        """
        definition = self._definition(name)
        self._values[name] = check_value(definition, value, job_name=self.job_name)

    def toggle(self, name: str) -> str:
        definition = self._definition(name)
        if definition.type is not ParameterType.BOOLEAN:
            raise UsageError(
                f"Parameter '{name}' is not a boolean", job_name=self.job_name
            )
        current = coerce_boolean(self._values[name] or definition.default_value or "")
        self._values[name] = FALSE if current == TRUE else TRUE
        return self._values[name]

    def submission_values(self) -> dict[str, str]:
        """Resolve the edits into the values that will be sent."""
        self._check_open()
        return resolve_values(
            self.definitions.values(), self._values, job_name=self.job_name
        )

    def confirm_and_submit(
        self, confirm: ConfirmHook | None = None
    ) -> dict[str, str] | None:
        """Ask for confirmation, then submit.

        ``confirm`` overrides the hook the form was opened with.

        Returns the values sent with the build request, or None when the
        confirmation was declined. The form is closed either way, and also
        when the request itself fails (the error is re-raised).
        """
        values = self.submission_values()
        if not (confirm or self._confirm)(self.job_name, dict(values)):
            logger.info(f"Build of '{self.job_name}' not confirmed")
            self.cancel()
            return None
        self._close(FormState.SUBMITTED)
        self._submit(values)
        return values

    def cancel(self) -> None:
        self._check_open()
        self._close(FormState.CANCELLED)

    def _close(self, state: FormState) -> None:
        self.state = state
        self._values = {}

    def _check_open(self) -> None:
        if not self.is_open:
            raise UsageError(
                f"Parameter form for '{self.job_name}' is {self.state.value}",
                job_name=self.job_name,
            )

    def _definition(self, name: str) -> ParameterDefinition:
        self._check_open()
        try:
            return self.definitions[name]
        except KeyError:
            raise UsageError(
                f"Job '{self.job_name}' has no parameter '{name}'",
                job_name=self.job_name,
            ) from None


class BuildWorkflow:
    """Starts builds and tracks the open parameter form of each job."""

    def __init__(self, dashboard: JenkinsDashboard, confirm: ConfirmHook) -> None:
        self.dashboard = dashboard
        self._confirm = confirm
        self._forms: dict[str, ParameterForm] = {}
        self._lock = threading.Lock()

    def start(self, job_name: str, rebuild: bool = False) -> ParameterForm | None:
        """Begin a build of ``job_name``.

        A job without parameters is triggered right away and None is
        returned. Otherwise a form seeded with the defaults is opened,
        replacing any form already open for the job.
        """
        definitions = self.dashboard.get_parameter_definitions(job_name)
        if not definitions:
            if rebuild:
                self.dashboard.rebuild(job_name)
            else:
                self.dashboard.trigger_build(job_name)
            return None

        form = ParameterForm(
            job_name,
            definitions,
            submit=lambda values: self.dashboard.submit_parameters(job_name, values),
            confirm=self._confirm,
        )
        with self._lock:
            previous = self._forms.get(job_name)
            if previous is not None and previous.is_open:
                logger.info(f"Replacing open parameter form for '{job_name}'")
                previous.cancel()
            self._forms[job_name] = form
        return form

    def get_form(self, job_name: str) -> ParameterForm:
        """Return the open form for ``job_name``.

        Raises:
            UsageError: No form is open for the job.
        """
        with self._lock:
            form = self._forms.get(job_name)
            if form is None or not form.is_open:
                self._forms.pop(job_name, None)
                raise UsageError(
                    f"No parameter form is open for '{job_name}'", job_name=job_name
                )
            return form

    def submit(
        self, job_name: str, confirm: ConfirmHook | None = None
    ) -> dict[str, str] | None:
        form = self.get_form(job_name)
        try:
            return form.confirm_and_submit(confirm)
        finally:
            self._discard(job_name, form)

    def cancel(self, job_name: str) -> None:
        form = self.get_form(job_name)
        form.cancel()
        self._discard(job_name, form)

    def _discard(self, job_name: str, form: ParameterForm) -> None:
        with self._lock:
            if self._forms.get(job_name) is form:
                del self._forms[job_name]
