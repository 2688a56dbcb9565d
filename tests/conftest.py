"""Shared fixtures: every Jenkins request goes to a mocked client."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import jenkins
import pytest

from jenkins_dash.dashboard import JenkinsDashboard
from jenkins_dash.transport import JenkinsTransport

BASE_URL = "http://j/"
NOW = 1_700_000_000.0


def json_response(payload: Any) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    response.text = ""
    return response


def text_response(text: str) -> MagicMock:
    response = MagicMock()
    response.text = text
    return response


def sent_requests(client: MagicMock) -> list:
    """The requests.Request objects passed to jenkins_request, in order."""
    return [call.args[0] for call in client.jenkins_request.call_args_list]


@pytest.fixture
def mock_client():
    """Return a MagicMock standing in for jenkins.Jenkins."""
    client = MagicMock(spec=jenkins.Jenkins)
    client.server = BASE_URL
    return client


@pytest.fixture
def transport(mock_client):
    return JenkinsTransport(mock_client)


@pytest.fixture
def dashboard(transport):
    return JenkinsDashboard(transport, clock=lambda: NOW)
