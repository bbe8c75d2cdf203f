"""SPARQL query builder.

Builds ASK and SELECT queries through a fluent API and renders them to
the SPARQL text a triple store expects.

Usage:
    from sparqlkit.query import ask, select

    ask().where(("?s", "?p", "?o")).render()
    # 'ASK WHERE { ?s ?p ?o . }'

    (
        select("name")
        .where(("?x", "<http://xmlns.com/foaf/0.1/name>", "?name"))
        .order("name")
        .limit(10)
        .render()
    )
    # 'SELECT ?name WHERE { ?x <http://xmlns.com/foaf/0.1/name> ?name . }
    #  ORDER BY ?name LIMIT 10'

Every mutator changes the query in place and returns it, so calls chain.
Rendering never changes the query.
"""

from __future__ import annotations

import logging
import re
import sys
from enum import Enum
from typing import Any, Callable, Optional, Union

from rdflib.term import Variable

from sparqlkit.pattern import Pattern

logger = logging.getLogger(__name__)

__all__ = [
    "Query",
    "QueryForm",
    "ask",
    "select",
]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class QueryForm(str, Enum):
    """Supported SPARQL query forms."""

    ASK = "ask"
    SELECT = "select"

    @classmethod
    def parse(cls, form: Any) -> Union[QueryForm, str]:
        """Normalize *form* (enum member, ``"ASK"``, ``"select"``, ...).

        Names of other forms are kept as lowercase strings; they render
        as their upper-cased keyword without any SELECT projection.
        """
        if isinstance(form, cls):
            return form
        name = str(form).strip().lower()
        try:
            return cls(name)
        except ValueError:
            logger.debug(f"Unsupported query form {name!r} kept as-is")
            return name


def _keyword(form: Union[QueryForm, str]) -> str:
    return (form.value if isinstance(form, QueryForm) else form).upper()


def _variable_name(var: Any) -> str:
    if isinstance(var, Variable):
        return str(var)
    name = str(var)
    if name[:1] in ("?", "$"):
        name = name[1:]
    return name


def _to_int(value: Any) -> int:
    """Best-effort integer conversion for OFFSET/LIMIT values.

    Numbers truncate toward zero, strings use their leading integer
    (``"12abc"`` gives 12) and anything unreadable gives 0.
    """
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (OverflowError, ValueError):
            # inf and nan
            return 0
    if isinstance(value, (str, bytes)):
        text = value.decode(errors="replace") if isinstance(value, bytes) else value
        match = _LEADING_INT.match(text)
        return int(match.group(1)) if match else 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class Query:
    """A mutable ASK or SELECT query.

    Attributes:
        form: The query form
        variables: Projected variables keyed by name, in projection order
        patterns: Triple patterns of the WHERE block, in insertion order
        options: Result modifiers (``distinct``, ``reduced``, ``order_by``,
            ``offset``, ``limit``)
    """

    def __init__(
        self,
        form: Any = QueryForm.ASK,
        options: Optional[dict[str, Any]] = None,
        init: Optional[Callable[[Query], Any]] = None,
    ) -> None:
        """
        Create a query.

        Args:
            form: ``QueryForm`` member or a form name in any case
            options: Initial modifiers; the mapping is copied
            init: Called with the new query to configure it further
        """
        self.form = QueryForm.parse(form)
        self.variables: dict[str, Variable] = {}
        self.patterns: list[Pattern] = []
        self.options: dict[str, Any] = dict(options or {})

        # keep the integer invariant for modifiers passed in up front
        self.slice(self.options.pop("offset", None), self.options.pop("limit", None))

        if init is not None:
            init(self)

    # ========== Form ==========

    def ask(self) -> Query:
        """Turn this query into an ASK query."""
        self.form = QueryForm.ASK
        return self

    def select(self, *variables: Any) -> Query:
        """
        Turn this query into a SELECT query projecting *variables*.

        Replaces any previously projected variables. With no arguments the
        query projects ``*``.
        """
        self.form = QueryForm.SELECT
        self.variables = {}
        for var in variables:
            name = _variable_name(var)
            self.variables[name] = Variable(name)
        return self

    # ========== Graph patterns ==========

    def where(self, *patterns: Any) -> Query:
        """
        Append triple patterns to the WHERE block.

        Each argument is a :class:`Pattern` or anything
        :meth:`Pattern.coerce` accepts, e.g. ``("?s", "a", "?type")``.

        Raises:
            PatternShapeError: If an argument is not triple-shaped
        """
        self.patterns.extend(Pattern.coerce(pattern) for pattern in patterns)
        return self

    # ========== Solution modifiers ==========

    def order(self, *variables: Any) -> Query:
        """Sort solutions by *variables*, replacing any previous ordering."""
        self.options["order_by"] = [_variable_name(var) for var in variables]
        return self

    order_by = order

    def distinct(self, state: bool = True) -> Query:
        """Toggle the DISTINCT modifier."""
        self.options["distinct"] = state
        self._check_projection_modifiers()
        return self

    def reduced(self, state: bool = True) -> Query:
        """Toggle the REDUCED modifier."""
        self.options["reduced"] = state
        self._check_projection_modifiers()
        return self

    def offset(self, start: Any) -> Query:
        return self.slice(start, None)

    def limit(self, length: Any) -> Query:
        return self.slice(None, length)

    def slice(self, start: Any, length: Any) -> Query:
        """
        Set OFFSET and/or LIMIT.

        ``None`` and ``False`` leave the corresponding modifier as it is.
        """
        if start is not None and start is not False:
            self.options["offset"] = _to_int(start)
        if length is not None and length is not False:
            self.options["limit"] = _to_int(length)
        return self

    def _check_projection_modifiers(self) -> None:
        if self.options.get("distinct") and self.options.get("reduced"):
            logger.warning("Both DISTINCT and REDUCED are set; endpoints may reject the query")

    # ========== Execution ==========

    def execute(self, helper: Any) -> Any:
        """Run this query through a :class:`~sparqlkit.sparql_helper.SparqlHelper`."""
        return helper.run(self)

    # ========== Rendering ==========

    @property
    def keyword(self) -> str:
        """The upper-cased form keyword, e.g. ``SELECT``."""
        return _keyword(self.form)

    def render(self) -> str:
        """Return the SPARQL text of this query."""
        buffer = [self.keyword]

        if self.form is QueryForm.SELECT:
            if self.options.get("distinct"):
                buffer.append("DISTINCT")
            if self.options.get("reduced"):
                buffer.append("REDUCED")
            if self.variables:
                buffer.append(" ".join(var.n3() for var in self.variables.values()))
            else:
                buffer.append("*")

        buffer.append("WHERE {")
        buffer.extend(str(pattern) for pattern in self.patterns)
        buffer.append("}")

        order_by = self.options.get("order_by")
        if order_by:
            buffer.append("ORDER BY")
            buffer.extend(f"?{name}" for name in order_by)

        if self.options.get("offset") is not None:
            buffer.append(f"OFFSET {self.options['offset']}")
        if self.options.get("limit") is not None:
            buffer.append(f"LIMIT {self.options['limit']}")

        return " ".join(buffer)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        cls = type(self)
        return f"<{cls.__module__}.{cls.__qualname__}:{id(self):#x}({self.render()})>"

    def dump(self) -> None:
        """Write the debug representation of this query to stderr."""
        print(repr(self), file=sys.stderr)


def ask(**options: Any) -> Query:
    """Start an ASK query."""
    return Query(QueryForm.ASK, options)


def select(*variables: Any, **options: Any) -> Query:
    """Start a SELECT query projecting *variables*."""
    return Query(QueryForm.SELECT, options).select(*variables)
