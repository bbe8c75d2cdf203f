"""
SPARQL Helper - send built queries to an endpoint.

One :class:`SparqlHelper` wraps one endpoint and a ``requests`` session.
Each attempt sends the query with GET and moves to a form-encoded POST
when the endpoint refuses GET (HTTP 405 or an HTML error page). After
that switch every later request uses POST. Connection problems, timeouts,
throttling and 5xx answers are retried according to a :class:`RetryPolicy`.

Usage:
    from sparqlkit.query import select
    from sparqlkit.sparql_helper import SparqlHelper

    query = select("s").where(("?s", "a", "?type")).limit(10)

    with SparqlHelper("https://sparql.example.org/") as helper:
        results = helper.run(query)
        for page in helper.select_paged(query.limit(5000), page_size=1000):
            ...
"""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Optional, Union

import requests

from sparqlkit.config import Config
from sparqlkit.query import Query, QueryForm

logger = logging.getLogger(__name__)

QueryText = Union[Query, str]

RESULTS_ACCEPT = "application/sparql-results+json"
TRANSIENT_STATUS = frozenset({429, 500, 502, 503, 504})


class EndpointError(Exception):
    """The endpoint could not answer a query."""


class QueryError(EndpointError):
    """The query was refused: rejected by the endpoint or not runnable here."""


class _TransientFailure(Exception):
    """A failure worth another attempt."""


@dataclass
class RetryPolicy:
    """How many attempts a query gets and how long to wait between them."""

    attempts: int = 3
    backoff: float = 1.0
    max_backoff: float = 30.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt* (counted from 1)."""
        return min(self.backoff * 2 ** (attempt - 1), self.max_backoff)


def _looks_like_html(response: requests.Response) -> bool:
    head = (response.text or "").lstrip()[:15].lower()
    return head.startswith(("<!doctype", "<html"))


class SparqlHelper:
    """
    Client for one SPARQL endpoint.

    Attributes:
        endpoint_url: The SPARQL endpoint URL
        use_post: Whether queries go out as POST; set automatically once
            the endpoint refuses GET
        retry: Retry policy for transient failures
        timeout: Request timeout in seconds

    Example:
        >>> helper = SparqlHelper("https://sparql.swisslipids.org/")
        >>> helper.ask(ask().where(("?s", "?p", "?o")))
        True
    """

    USER_AGENT = "sparqlkit/0.1 (SPARQL client)"

    def __init__(
        self,
        endpoint_url: str,
        *,
        use_post: bool = False,
        retry: Optional[RetryPolicy] = None,
        timeout: float = 60.0,
    ) -> None:
        if not endpoint_url:
            raise ValueError("An endpoint URL is required")

        self.endpoint_url = endpoint_url.rstrip("/")
        self.use_post = use_post
        self.retry = retry or RetryPolicy()
        self.timeout = timeout
        self._session = requests.Session()

    @classmethod
    def from_config(
        cls, endpoint_url: Optional[str] = None, config: type[Config] = Config
    ) -> SparqlHelper:
        """Create a helper using the defaults in *config*."""
        return cls(
            endpoint_url or config.ENDPOINT,
            use_post=config.METHOD == "POST",
            retry=RetryPolicy(attempts=config.MAX_RETRIES),
            timeout=config.TIMEOUT,
        )

    # ========== Query forms ==========

    def run(self, query: Query) -> Any:
        """
        Execute a built query according to its form.

        Returns:
            ``bool`` for ASK queries, the SPARQL JSON results dict for SELECT

        Raises:
            QueryError: For forms other than ASK and SELECT
        """
        if query.form is QueryForm.ASK:
            return self.ask(query)
        if query.form is QueryForm.SELECT:
            return self.select(query)
        raise QueryError(f"Cannot run {query.keyword} queries")

    def select(self, query: QueryText) -> dict[str, Any]:
        """Execute a SELECT query and return the SPARQL JSON results."""
        return self._results(_text(query))

    def ask(self, query: QueryText) -> bool:
        """Execute an ASK query."""
        return bool(self._results(_text(query)).get("boolean", False))

    def get_bindings(self, query: QueryText) -> list[dict[str, str]]:
        """
        Execute a SELECT query and return plain ``{variable: value}`` rows.

        Example:
            >>> for row in helper.get_bindings(select("s").where(("?s", "?p", "?o"))):
            ...     print(row["s"])
        """
        bindings = self.select(query).get("results", {}).get("bindings", [])
        return [
            {var: val.get("value", "") for var, val in binding.items()}
            for binding in bindings
        ]

    def select_paged(
        self,
        query: Query,
        page_size: int = Config.PAGE_SIZE,
        max_total_results: Optional[int] = None,
        delay_between_pages: float = 0.0,
    ) -> Iterator[list[dict[str, Any]]]:
        """
        Execute a SELECT query one OFFSET/LIMIT page at a time.

        Paging starts at the query's own OFFSET, and the query's own LIMIT
        caps the total unless *max_total_results* is given. *query* itself
        is not modified.

        Yields:
            The bindings of each page
        """
        if query.form is not QueryForm.SELECT:
            raise QueryError(f"Paging needs a SELECT query, got {query.keyword}")
        if page_size <= 0:
            raise ValueError("page_size must be positive")

        page = copy.deepcopy(query)
        next_offset = query.options.get("offset") or 0
        if max_total_results is None:
            max_total_results = query.options.get("limit")
        fetched = 0

        while max_total_results is None or fetched < max_total_results:
            size = page_size
            if max_total_results is not None:
                size = min(page_size, max_total_results - fetched)

            page.slice(next_offset, size)
            logger.debug(f"Fetching page at offset {next_offset} (size {size})")
            bindings = self.select(page).get("results", {}).get("bindings", [])
            if not bindings:
                break

            yield bindings

            fetched += len(bindings)
            next_offset += len(bindings)
            if len(bindings) < size:
                break
            if delay_between_pages > 0:
                time.sleep(delay_between_pages)

    # ========== Transport ==========

    def _results(self, text: str) -> dict[str, Any]:
        """Send *text*, retrying transient failures as the policy allows."""
        attempt = 1
        while True:
            try:
                return self._send(text)
            except _TransientFailure as e:
                if attempt >= self.retry.attempts:
                    raise EndpointError(
                        f"{self.endpoint_url} failed {attempt} time(s), last error: {e}"
                    ) from e
                delay = self.retry.delay(attempt)
                logger.warning(f"Attempt {attempt} on {self.endpoint_url} failed ({e}); retrying in {delay:.1f}s")
                time.sleep(delay)
                attempt += 1

    def _send(self, text: str) -> dict[str, Any]:
        """One attempt; a refused GET is repeated as POST within the same attempt."""
        if not self.use_post:
            response = self._request("GET", text)
            if response.status_code != 405 and not _looks_like_html(response):
                return self._decode(response)
            logger.info(f"{self.endpoint_url} refused GET, switching to POST")
            self.use_post = True
        return self._decode(self._request("POST", text))

    def _request(self, method: str, text: str) -> requests.Response:
        headers = {"Accept": RESULTS_ACCEPT, "User-Agent": self.USER_AGENT}
        logger.debug(f"{method} {self.endpoint_url}: {text}")
        try:
            if method == "GET":
                return self._session.get(
                    self.endpoint_url, params={"query": text}, headers=headers, timeout=self.timeout
                )
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            return self._session.post(
                self.endpoint_url, data={"query": text}, headers=headers, timeout=self.timeout
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise _TransientFailure(str(e)) from e

    def _decode(self, response: requests.Response) -> dict[str, Any]:
        status = response.status_code
        if status in TRANSIENT_STATUS:
            raise _TransientFailure(f"HTTP {status}")
        if status == 400:
            raise QueryError(f"{self.endpoint_url} rejected the query: {response.text[:200]}")
        if status >= 400:
            raise EndpointError(f"HTTP {status} from {self.endpoint_url}")
        if _looks_like_html(response):
            raise EndpointError(f"{self.endpoint_url} answered with an HTML page")
        try:
            return response.json()
        except ValueError as e:
            raise _TransientFailure(f"unreadable results: {e}") from e

    def close(self) -> None:
        """Close the underlying requests session."""
        self._session.close()

    def __enter__(self) -> SparqlHelper:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SparqlHelper({self.endpoint_url!r}, use_post={self.use_post})"


def _text(query: QueryText) -> str:
    return query.render() if isinstance(query, Query) else query
