"""sparqlkit: a builder and serializer for SPARQL ASK/SELECT queries.

Main modules:
- query: Query model with fluent mutators and SPARQL rendering
- pattern: Triple patterns built from rdflib terms
- sparql_helper: SparqlHelper client for running queries against an endpoint
- results: Pydantic result models and execute_query
"""

from .pattern import Pattern, PatternShapeError, to_term
from .query import Query, QueryForm, ask, select

# Import version information
from .version import VERSION

__all__ = [
    "VERSION",
    "Pattern",
    "PatternShapeError",
    "Query",
    "QueryForm",
    "ask",
    "select",
    "to_term",
]
