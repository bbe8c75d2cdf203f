"""Command line interface for :mod:`sparqlkit`."""

import json
from typing import Any, Callable, Optional

import click

from .config import Config
from .pattern import PatternShapeError
from .query import Query, QueryForm
from .results import execute_query
from .sparql_helper import RetryPolicy, SparqlHelper

__all__ = [
    "main",
]


def query_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the query-building options shared by all commands."""
    options = [
        click.option(
            "--form",
            type=click.Choice([form.value for form in QueryForm], case_sensitive=False),
            default=QueryForm.SELECT.value,
            show_default=True,
            help="Query form",
        ),
        click.option("--var", "variables", multiple=True, help="Projected variable (repeatable)"),
        click.option(
            "--where",
            "patterns",
            multiple=True,
            help='Triple pattern such as "?s a <http://example.org/C>" (repeatable)',
        ),
        click.option("--distinct", is_flag=True, help="Add DISTINCT"),
        click.option("--reduced", is_flag=True, help="Add REDUCED"),
        click.option("--order", "order_by", multiple=True, help="ORDER BY variable (repeatable)"),
        click.option("--offset", type=int, help="OFFSET"),
        click.option("--limit", type=int, help="LIMIT"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_query(
    form: str,
    variables: tuple[str, ...],
    patterns: tuple[str, ...],
    distinct: bool,
    reduced: bool,
    order_by: tuple[str, ...],
    offset: Optional[int],
    limit: Optional[int],
) -> Query:
    """Build a :class:`Query` from command line options."""
    query = Query(form)
    if query.form is QueryForm.SELECT:
        query.select(*variables)
    query.where(*patterns)
    if distinct:
        query.distinct()
    if reduced:
        query.reduced()
    if order_by:
        query.order(*order_by)
    return query.slice(offset, limit)


@click.group()
@click.version_option(package_name="sparqlkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """sparqlkit - build SPARQL ASK/SELECT queries and run them."""
    import logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )
        logging.getLogger("sparqlkit").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s", force=True)


@main.command()
@query_options
def render(**kwargs: Any) -> None:
    r"""Print the SPARQL text of a query.

    Example:
      sparqlkit render --var name --where "?x <http://xmlns.com/foaf/0.1/name> ?name" \
                       --order name --limit 10
    """
    try:
        query = build_query(**kwargs)
    except PatternShapeError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    click.echo(query.render())


@main.command()
@query_options
@click.option(
    "--endpoint",
    default=Config.ENDPOINT or None,
    required=not Config.ENDPOINT,
    help="SPARQL endpoint URL (default: $SPARQLKIT_ENDPOINT)",
)
@click.option(
    "--method",
    type=click.Choice(["GET", "POST"], case_sensitive=False),
    default=Config.METHOD,
    show_default=True,
    help="HTTP method tried first",
)
@click.option("--timeout", type=float, default=Config.TIMEOUT, show_default=True, help="Timeout in seconds")
@click.option(
    "--max-retries",
    type=click.IntRange(min=1),
    default=Config.MAX_RETRIES,
    show_default=True,
    help="Attempts before giving up on transient failures",
)
def run(endpoint: str, method: str, timeout: float, max_retries: int, **kwargs: Any) -> None:
    r"""Build a query, run it against an endpoint and print the result as JSON.

    Example:
      sparqlkit run --endpoint https://query.wikidata.org/sparql \
                    --where "?s ?p ?o" --limit 5
    """
    try:
        query = build_query(**kwargs)
    except PatternShapeError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    helper = SparqlHelper(
        endpoint,
        use_post=method.upper() == "POST",
        retry=RetryPolicy(attempts=max_retries),
        timeout=timeout,
    )
    with helper:
        result = execute_query(query, helper)
    click.echo(json.dumps(result.model_dump(mode="json"), indent=2))

    if result.error is not None:
        click.echo(f"Error: {result.error}", err=True)
        raise click.Abort()


if __name__ == "__main__":
    main()
