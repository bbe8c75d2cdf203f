"""Typed answers for executed queries.

:func:`execute_query` runs a built :class:`~sparqlkit.query.Query` with a
:class:`~sparqlkit.sparql_helper.SparqlHelper` and records the outcome in a
:class:`QueryResult`:

* ASK queries fill ``boolean``.
* SELECT queries fill ``variables`` and ``solutions``, one dict of
  :class:`ResultCell` per solution, read straight from the SPARQL 1.1
  JSON results format (``xml:lang`` included).
* Endpoint failures fill ``error`` instead of raising.
"""

from __future__ import annotations

import time
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from sparqlkit.query import Query, QueryForm
from sparqlkit.sparql_helper import EndpointError, SparqlHelper

__all__ = [
    "QueryResult",
    "ResultCell",
    "execute_query",
    "read_solutions",
]


class ResultCell(BaseModel):
    """One bound value of a solution."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: Literal["uri", "literal", "bnode"]
    value: str
    lang: Optional[str] = Field(None, alias="xml:lang")
    datatype: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def fold_typed_literal(cls, v: Any) -> Any:
        # SPARQL 1.0 era endpoints still send "typed-literal"
        return "literal" if v == "typed-literal" else v


class QueryResult(BaseModel):
    """What happened when a query was executed."""

    query: str
    endpoint: str
    form: str
    variables: list[str] = Field(default_factory=list)
    solutions: list[dict[str, ResultCell]] = Field(default_factory=list)
    boolean: Optional[bool] = None
    elapsed_ms: int = 0
    error: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.solutions)


def read_solutions(payload: dict[str, Any]) -> tuple[list[str], list[dict[str, ResultCell]]]:
    """Read the ``head.vars`` and typed bindings of a SELECT answer."""
    variables = list(payload.get("head", {}).get("vars", []))
    solutions = [
        {name: ResultCell.model_validate(cell) for name, cell in binding.items()}
        for binding in payload.get("results", {}).get("bindings", [])
    ]
    return variables, solutions


def execute_query(query: Query, helper: SparqlHelper) -> QueryResult:
    """Run *query* through *helper* and describe the outcome.

    Failures raised by the helper (:class:`EndpointError` and its
    subclasses) are reported in ``QueryResult.error``.
    """
    result = QueryResult(query=query.render(), endpoint=helper.endpoint_url, form=query.keyword)
    started = time.perf_counter()

    try:
        answer = helper.run(query)
    except EndpointError as exc:
        result.error = str(exc)
    else:
        if query.form is QueryForm.ASK:
            result.boolean = answer
        else:
            result.variables, result.solutions = read_solutions(answer)

    result.elapsed_ms = int((time.perf_counter() - started) * 1000)
    return result
