"""Tests for the parameter form state machine and the build workflow."""

from __future__ import annotations

from unittest.mock import MagicMock

import jenkins
import pytest

from conftest import BASE_URL, json_response, sent_requests
from jenkins_dash.errors import HTTPError, NetworkError, UsageError, ValidationError
from jenkins_dash.parameters import ParameterEdit, decode_parameters
from jenkins_dash.workflow import BuildWorkflow, FormState

PARAMETERS = {
    "property": [
        {
            "parameterDefinitions": [
                {
                    "name": "BRANCH",
                    "type": "StringParameterDefinition",
                    "defaultParameterValue": {"value": "main"},
                },
                {"name": "DRY_RUN", "type": "BooleanParameterDefinition"},
                {
                    "name": "ENV",
                    "type": "ChoiceParameterDefinition",
                    "choices": ["staging", "production"],
                    "defaultParameterValue": {"value": "staging"},
                },
                {"name": "NOTES", "type": "TextParameterDefinition"},
            ]
        }
    ]
}


def _serve(mock_client, definitions):
    """Answer parameter discovery with ``definitions``, anything else with 200."""

    def handler(request, *args, **kwargs):
        if "api/json" in request.url:
            return json_response(definitions)
        return MagicMock()

    mock_client.jenkins_request.side_effect = handler


@pytest.fixture
def confirm():
    return MagicMock(return_value=True)


@pytest.fixture
def workflow(dashboard, confirm):
    return BuildWorkflow(dashboard, confirm=confirm)


@pytest.fixture
def form(workflow, mock_client):
    _serve(mock_client, PARAMETERS)
    return workflow.start("deploy")


# ---------------------------------------------------------------------------
# BuildWorkflow.start
# ---------------------------------------------------------------------------
class TestStart:
    def test_no_parameters_triggers_directly(self, workflow, mock_client):
        _serve(mock_client, {"property": []})

        assert workflow.start("simple") is None

        discovery, trigger = sent_requests(mock_client)
        assert discovery.method == "GET"
        assert trigger.method == "POST"
        assert trigger.url == BASE_URL + "job/simple/build"

    def test_no_parameters_rebuild(self, workflow, mock_client):
        _serve(mock_client, {})

        assert workflow.start("simple", rebuild=True) is None

        _, trigger = sent_requests(mock_client)
        assert trigger.url == BASE_URL + "job/simple/lastCompletedBuild/rebuild/"

    def test_form_seeded_with_defaults(self, form, mock_client):
        assert form.state is FormState.OPEN
        assert form.list_edits() == [
            ParameterEdit("BRANCH", "main"),
            ParameterEdit("DRY_RUN", ""),
            ParameterEdit("ENV", "staging"),
            ParameterEdit("NOTES", ""),
        ]
        # discovery only; nothing is sent until the form is submitted
        assert len(sent_requests(mock_client)) == 1

    def test_discovery_failure_propagates(self, workflow, mock_client):
        mock_client.jenkins_request.side_effect = jenkins.NotFoundException("gone")

        with pytest.raises(HTTPError):
            workflow.start("missing")

        assert mock_client.jenkins_request.call_count == 1

    def test_restart_replaces_open_form(self, workflow, form):
        replacement = workflow.start("deploy")

        assert form.state is FormState.CANCELLED
        assert workflow.get_form("deploy") is replacement


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------
class TestEditing:
    def test_set_string(self, form):
        form.set_edit("BRANCH", "feature/login")

        assert ParameterEdit("BRANCH", "feature/login") in form.list_edits()

    def test_set_valid_choice(self, form):
        form.set_edit("ENV", "production")

        assert ParameterEdit("ENV", "production") in form.list_edits()

    def test_invalid_choice_keeps_previous_value(self, form):
        with pytest.raises(ValidationError):
            form.set_edit("ENV", "qa")

        assert ParameterEdit("ENV", "staging") in form.list_edits()

    def test_boolean_is_normalized(self, form):
        form.set_edit("DRY_RUN", "TRUE")

        assert ParameterEdit("DRY_RUN", "true") in form.list_edits()

    def test_boolean_rejects_other_text(self, form):
        with pytest.raises(ValidationError):
            form.set_edit("DRY_RUN", "yes")

    def test_toggle_boolean(self, form):
        assert form.toggle("DRY_RUN") == "true"
        assert form.toggle("DRY_RUN") == "false"

    def test_toggle_non_boolean(self, form):
        with pytest.raises(UsageError):
            form.toggle("BRANCH")

    def test_unknown_parameter(self, form):
        with pytest.raises(UsageError):
            form.set_edit("BRANCHH", "main")


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------
class TestSubmission:
    def test_submission_values(self, form):
        form.set_edit("BRANCH", "")

        assert form.submission_values() == {
            "BRANCH": "main",
            "DRY_RUN": "false",
            "ENV": "staging",
            "NOTES": "",
        }

    def test_confirm_and_submit(self, workflow, form, mock_client, confirm):
        form.set_edit("NOTES", "release candidate & hotfix")
        form.toggle("DRY_RUN")

        sent = workflow.submit("deploy")

        assert sent == {
            "BRANCH": "main",
            "DRY_RUN": "true",
            "ENV": "staging",
            "NOTES": "release candidate & hotfix",
        }

        confirm.assert_called_once_with("deploy", sent)
        # discovery, then the submission; no second discovery
        discovery, request = sent_requests(mock_client)
        assert request.method == "POST"
        assert request.url == BASE_URL + "job/deploy/buildWithParameters"
        assert decode_parameters(request.data) == sent
        assert form.state is FormState.SUBMITTED

    def test_declined_confirmation_cancels(self, workflow, form, mock_client, confirm):
        confirm.return_value = False

        assert workflow.submit("deploy") is None

        assert form.state is FormState.CANCELLED
        assert len(sent_requests(mock_client)) == 1

    def test_confirm_override(self, form, mock_client, confirm):
        assert form.confirm_and_submit(lambda job, values: False) is None

        confirm.assert_not_called()
        assert form.state is FormState.CANCELLED

    def test_submit_failure_still_closes_form(self, workflow, form, mock_client):
        mock_client.jenkins_request.side_effect = jenkins.TimeoutException("timed out")

        with pytest.raises(NetworkError):
            workflow.submit("deploy")

        assert form.state is FormState.SUBMITTED
        with pytest.raises(UsageError):
            workflow.get_form("deploy")

    def test_closed_form_rejects_edits(self, workflow, form):
        workflow.submit("deploy")

        with pytest.raises(UsageError):
            form.set_edit("BRANCH", "dev")
        with pytest.raises(UsageError):
            form.list_edits()
        with pytest.raises(UsageError):
            form.confirm_and_submit()

    def test_missing_edit_is_usage_error(self, form):
        del form._values["ENV"]

        with pytest.raises(UsageError):
            form.submission_values()

    def test_cancel(self, workflow, form, mock_client):
        workflow.cancel("deploy")

        assert form.state is FormState.CANCELLED
        assert len(sent_requests(mock_client)) == 1
        with pytest.raises(UsageError):
            workflow.cancel("deploy")
