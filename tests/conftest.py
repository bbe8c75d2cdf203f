"""Shared fixtures for sparqlkit tests."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

ENDPOINT = "http://example.org/sparql"


def make_response(payload=None, *, text=None, status_code=200):
    """Build a fake ``requests`` response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = status_code < 400
    resp.text = text if text is not None else json.dumps(payload)
    if payload is not None:
        resp.json.return_value = payload
    else:
        resp.json.side_effect = ValueError("Expecting value")
    return resp


def select_payload(var, values):
    """SPARQL JSON results binding *var* to each URI in *values*."""
    return {
        "head": {"vars": [var]},
        "results": {
            "bindings": [{var: {"type": "uri", "value": value}} for value in values],
        },
    }


@pytest.fixture()
def mock_session():
    """Patch ``requests.Session`` and return the session instance."""
    with patch("sparqlkit.sparql_helper.requests.Session") as mock_session_cls:
        session = MagicMock()
        mock_session_cls.return_value = session
        yield session


@pytest.fixture()
def no_sleep():
    """Skip retry backoff delays."""
    with patch("sparqlkit.sparql_helper.time.sleep") as sleep:
        yield sleep
