"""Tests for the Query builder and its SPARQL rendering."""

from __future__ import annotations

import logging
import re

import pytest
from rdflib.term import Variable

from sparqlkit import Pattern, PatternShapeError, Query, QueryForm, ask, select


class TestConstruction:
    """Test factories and the Query constructor."""

    def test_ask_factory(self):
        query = ask()
        assert query.form is QueryForm.ASK
        assert query.variables == {}
        assert query.patterns == []

    def test_select_factory_splits_variables_and_options(self):
        query = select("a", "b", distinct=True)
        assert query.form is QueryForm.SELECT
        assert list(query.variables) == ["a", "b"]
        assert query.options["distinct"] is True

    def test_form_is_normalized(self):
        assert Query("SELECT").form is QueryForm.SELECT
        assert Query(" Ask ").form is QueryForm.ASK
        assert Query(QueryForm.SELECT).form is QueryForm.SELECT

    def test_unknown_form_kept(self):
        query = Query(" Construct ")
        assert query.form == "construct"
        assert query.keyword == "CONSTRUCT"
        assert query.render() == "CONSTRUCT WHERE { }"

    def test_options_are_copied(self):
        options = {"distinct": True}
        query = Query("select", options)
        query.distinct(False)
        assert options == {"distinct": True}

    def test_offset_and_limit_options_are_coerced(self):
        query = Query("select", {"offset": "5", "limit": 2.7})
        assert query.options["offset"] == 5
        assert query.options["limit"] == 2

    def test_init_callback_receives_instance(self):
        seen = []

        query = Query("ask", init=lambda q: seen.append(q.where(("?s", "?p", "?o"))))

        assert seen == [query]
        assert query.render() == "ASK WHERE { ?s ?p ?o . }"


class TestMutators:
    """Test that mutators configure state and chain."""

    def test_mutators_return_same_instance(self):
        query = select()
        assert query.where(("?s", "?p", "?o")) is query
        assert query.order("s") is query
        assert query.distinct() is query
        assert query.reduced(False) is query
        assert query.offset(1) is query
        assert query.limit(1) is query
        assert query.slice(None, None) is query
        assert query.ask() is query
        assert query.select("s") is query

    def test_select_replaces_variables(self):
        query = select("a", "b").select("c")
        assert query.variables == {"c": Variable("c")}

    def test_select_accepts_sigils_and_variables(self):
        query = select("?a", "$b", Variable("c"))
        assert list(query.variables) == ["a", "b", "c"]

    def test_ask_keeps_other_state(self):
        query = select("a").distinct().ask()
        assert query.form is QueryForm.ASK
        assert list(query.variables) == ["a"]
        assert query.options["distinct"] is True

    def test_where_appends_without_dedup(self):
        query = ask().where(("?s", "?p", "?o")).where(("?s", "?p", "?o"))
        assert len(query.patterns) == 2
        assert all(isinstance(p, Pattern) for p in query.patterns)

    def test_where_rejects_bad_arity(self):
        with pytest.raises(PatternShapeError):
            ask().where(("?s", "?p"))

    def test_order_replaces_previous(self):
        query = select().order("a", "b").order("c")
        assert query.options["order_by"] == ["c"]

    def test_order_by_alias(self):
        assert select().order_by("?x").options["order_by"] == ["x"]

    def test_slice_leaves_absent_values(self):
        query = select().slice(10, 5).slice(None, 20)
        assert query.options["offset"] == 10
        assert query.options["limit"] == 20

    def test_false_leaves_offset_and_limit(self):
        query = select().offset(5).limit(3).offset(False).limit(False)
        assert query.options["offset"] == 5
        assert query.options["limit"] == 3
        assert query.slice(False, False).render() == "SELECT * WHERE { } OFFSET 5 LIMIT 3"

    @pytest.mark.parametrize(
        "value, expected",
        [(7, 7), (3.9, 3), (-2.5, -2), ("12", 12), ("12abc", 12), ("abc", 0), (object(), 0),
         (b"42", 42), (b"\xff", 0), (float("inf"), 0), (float("-inf"), 0), (float("nan"), 0)],
    )
    def test_offset_lenient_coercion(self, value, expected):
        assert select().offset(value).options["offset"] == expected

    def test_distinct_and_reduced_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="sparqlkit.query"):
            select().distinct().reduced()
        assert "DISTINCT and REDUCED" in caplog.text


class TestRender:
    """Test the token order of rendered queries."""

    def test_ask(self):
        assert ask().where(("?s", "?p", "?o")).render() == "ASK WHERE { ?s ?p ?o . }"

    def test_select_with_order_and_limit(self):
        query = select("name").where(("?x", "?name", "?name")).order("name").limit(10)
        assert query.render() == (
            "SELECT ?name WHERE { ?x ?name ?name . } ORDER BY ?name LIMIT 10"
        )

    def test_select_star_when_no_variables(self):
        assert select().render() == "SELECT * WHERE { }"

    def test_projection_order_is_argument_order(self):
        query = select("b", "a").order("a").distinct()
        assert query.render() == "SELECT DISTINCT ?b ?a WHERE { } ORDER BY ?a"

    def test_distinct_and_reduced_both_rendered(self):
        assert select().distinct().reduced().render() == "SELECT DISTINCT REDUCED * WHERE { }"

    def test_disabled_flags_not_rendered(self):
        assert select().distinct(False).reduced(False).render() == "SELECT * WHERE { }"

    def test_offset_only(self):
        assert select().offset(10).render() == "SELECT * WHERE { } OFFSET 10"

    def test_limit_only(self):
        assert select().limit(5).render() == "SELECT * WHERE { } LIMIT 5"

    def test_offset_before_limit(self):
        query = select().limit(5).offset(10)
        assert query.render() == "SELECT * WHERE { } OFFSET 10 LIMIT 5"

    def test_offset_zero_rendered(self):
        assert select().offset(0).render() == "SELECT * WHERE { } OFFSET 0"

    def test_empty_order_not_rendered(self):
        assert select().order().render() == "SELECT * WHERE { }"

    def test_order_between_where_and_slice(self):
        query = select("s").limit(1).offset(2).order("s", "o").where(("?s", "?p", "?o"))
        assert query.render() == (
            "SELECT ?s WHERE { ?s ?p ?o . } ORDER BY ?s ?o OFFSET 2 LIMIT 1"
        )

    def test_ask_ignores_select_modifiers(self):
        query = select("a").distinct().reduced().ask().where(("?a", "?p", "?o"))
        assert query.render() == "ASK WHERE { ?a ?p ?o . }"

    def test_ask_keeps_slice_and_order(self):
        query = ask().where(("?s", "?p", "?o")).order("s").limit(1)
        assert query.render() == "ASK WHERE { ?s ?p ?o . } ORDER BY ?s LIMIT 1"

    def test_patterns_in_append_order(self):
        query = ask().where(("?b", "?p", "?o"), ("?a", "?p", "?o")).where(("?b", "?p", "?o"))
        assert query.render() == (
            "ASK WHERE { ?b ?p ?o . ?a ?p ?o . ?b ?p ?o . }"
        )

    def test_iris_and_rdf_type(self):
        query = select("s").where(("?s", "a", "<http://example.org/Person>"))
        assert query.render() == (
            "SELECT ?s WHERE { ?s <http://www.w3.org/1999/02/22-rdf-syntax-ns#type> "
            "<http://example.org/Person> . }"
        )

    def test_render_is_idempotent(self):
        query = select("s").where(("?s", "?p", "?o")).distinct().offset(3).limit(4)
        first = query.render()
        assert query.render() == first
        assert str(query) == first


class TestDebugRendering:
    """Test repr and dump."""

    def test_repr(self):
        query = ask()
        assert re.fullmatch(
            r"<sparqlkit\.query\.Query:0x[0-9a-f]+\(ASK WHERE \{ \}\)>", repr(query)
        )

    def test_dump_writes_to_stderr(self, capsys):
        query = select("x")
        query.dump()
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.strip() == repr(query)


class TestExecute:
    """Test delegation to a helper."""

    def test_execute_delegates_to_run(self):
        class FakeHelper:
            def run(self, query):
                return query.render()

        assert ask().execute(FakeHelper()) == "ASK WHERE { }"
