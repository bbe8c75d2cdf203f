"""Triple patterns for the WHERE block of a query.

A :class:`Pattern` is a ``(subject, predicate, object)`` template built
from rdflib terms.  Plain Python values are coerced with :func:`to_term`:

* ``"?name"`` / ``"$name"``  → :class:`rdflib.term.Variable`
* ``"<http://...>"``         → :class:`rdflib.term.URIRef`
* ``"_:b0"``                 → :class:`rdflib.term.BNode`
* ``"a"`` (predicate only)   → ``rdf:type``
* ``None``                   → a fresh :class:`rdflib.term.BNode`
* anything else              → :class:`rdflib.term.Literal`

Rendering is delegated to each term's ``n3()``, so a pattern of three
variables prints as ``?s ?p ?o .``.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from rdflib.namespace import RDF
from rdflib.term import BNode, Literal, Node, URIRef, Variable

__all__ = [
    "Pattern",
    "PatternShapeError",
    "to_term",
]

VARIABLE_SIGILS = ("?", "$")


class PatternShapeError(ValueError):
    """Raised when a value cannot be read as a (subject, predicate, object) triple."""


def to_term(value: Any, predicate: bool = False) -> Node:
    """Coerce *value* into an rdflib term.

    Args:
        value: An rdflib node, a string in one of the short forms listed
            in the module docstring, ``None`` or any literal value
        predicate: Whether the term sits in predicate position, where
            ``"a"`` abbreviates ``rdf:type``

    Returns:
        The rdflib term for *value*
    """
    if isinstance(value, Node):
        return value
    if value is None:
        return BNode()
    if isinstance(value, str):
        text = value.strip()
        if len(text) > 1 and text[0] in VARIABLE_SIGILS:
            return Variable(text[1:])
        if text.startswith("<") and text.endswith(">"):
            return URIRef(text[1:-1])
        if text.startswith("_:") and len(text) > 2:
            return BNode(text[2:])
        if predicate and text == "a":
            return RDF.type
        if len(text) > 1 and text.startswith('"') and text.endswith('"'):
            return Literal(text[1:-1])
        return Literal(value)
    return Literal(value)


@dataclass(frozen=True)
class Pattern:
    """A single triple pattern."""

    subject: Node
    predicate: Node
    object: Node

    def __post_init__(self) -> None:
        object.__setattr__(self, "subject", to_term(self.subject))
        object.__setattr__(self, "predicate", to_term(self.predicate, predicate=True))
        object.__setattr__(self, "object", to_term(self.object))

    @classmethod
    def coerce(cls, value: Any) -> Pattern:
        """Read *value* as a pattern.

        Accepts an existing :class:`Pattern`, a mapping with ``subject``,
        ``predicate`` and ``object`` keys, a whitespace-separated string
        such as ``"?s a <http://example.org/Thing>"``, or any iterable of
        exactly three components.

        Raises:
            PatternShapeError: If *value* does not have a triple shape
        """
        if isinstance(value, Pattern):
            return value

        if isinstance(value, Mapping):
            try:
                return cls(value["subject"], value["predicate"], value["object"])
            except KeyError as e:
                raise PatternShapeError(f"Pattern mapping is missing {e}") from e

        if isinstance(value, str):
            try:
                components: list[Any] = shlex.split(value)
            except ValueError as e:
                raise PatternShapeError(f"Cannot split pattern {value!r}: {e}") from e
        elif isinstance(value, Iterable):
            components = list(value)
        else:
            raise PatternShapeError(
                f"Cannot build a pattern from {type(value).__name__}: {value!r}"
            )

        if len(components) != 3:
            raise PatternShapeError(
                f"A pattern needs exactly 3 components, got {len(components)}: {value!r}"
            )
        return cls(*components)

    @property
    def variables(self) -> list[str]:
        """Names of the variable components, in position order."""
        return [str(term) for term in self if isinstance(term, Variable)]

    def __iter__(self):
        return iter((self.subject, self.predicate, self.object))

    def __str__(self) -> str:
        return f"{self.subject.n3()} {self.predicate.n3()} {self.object.n3()} ."
