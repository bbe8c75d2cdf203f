"""Client configuration loaded from environment variables."""

from __future__ import annotations

import os


class Config:
    """Default settings for talking to SPARQL endpoints."""

    # Endpoint used by the CLI when --endpoint is omitted
    ENDPOINT = os.getenv("SPARQLKIT_ENDPOINT", "")

    # HTTP method tried first ("GET" falls back to POST when needed)
    METHOD = os.getenv("SPARQLKIT_METHOD", "GET").upper()

    # Request timeout in seconds
    TIMEOUT = float(os.getenv("SPARQLKIT_TIMEOUT", "60"))

    # Attempts before a transient failure is raised
    MAX_RETRIES = int(os.getenv("SPARQLKIT_MAX_RETRIES", "3"))

    # Rows fetched per request by SparqlHelper.select_paged
    PAGE_SIZE = int(os.getenv("SPARQLKIT_PAGE_SIZE", "1000"))
