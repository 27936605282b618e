"""reqman CLI - manage API collections and send requests."""

import contextlib

import click

from reqman import __version__
from reqman.models import Method

TOOL_HELP = """\
reqman — Personal API request manager.

Keeps named collections of endpoints (a base URL, default headers and saved
requests) in a local JSON file, and sends saved or ad-hoc requests.

\b
COMMANDS
────────
  Manage:     reqman man list | col | endpoint | update | delete | copy
  Direct:     reqman req METHOD URL [options]
  Saved:      reqman run COLLECTION ENDPOINT [options]
  Inspect:    reqman url COLLECTION ENDPOINT

\b
COLLECTIONS
───────────
  reqman man col api https://api.example.com -H "Content-Type: application/json"
  reqman man endpoint api users /users
  reqman man endpoint api create /users -m POST -b '{"name": ":?"}'
  reqman run api users

  Endpoint headers override collection headers with the same name
  (exact, case-sensitive match). Base URL and path are joined with a
  single '/'.

\b
PLACEHOLDERS
────────────
  Write :? anywhere in a URL, header value or body to be asked for the
  value when the request is sent:

  \b
  reqman man endpoint api user /users/:? -H "Authorization: :?"
  reqman run api user
    Missing data at position 30 - https://api.example.com/users/:?. ...
    Header value for key 'Authorization' is missing data. ...

  Markers are filled one at a time, URL first, then headers, then body.
  They are sent literally with -s/--stream or when stdin is piped.
  Without an interactive terminal a marker is an error.

\b
BODIES
──────
  Priority: piped stdin > -s/--stream > saved or -b body.

  \b
  echo '{"a": 1}' | reqman run api create    # stdin replaces saved body
  reqman req post URL -s < photo.jpg         # raw bytes, raw output
  reqman req post URL < photo.jpg            # binary stdin → multipart 'file' (file.jpg)

  An endpoint saved without -b has no body; -b "" saves an empty body.
  `man update -b ""` empties a body, `--clear-body` removes it.

\b
OUTPUT
──────
  JSON responses are pretty-printed, anything else is printed as-is.
  -v/--verbose adds STATUS, TIME and response HEADERS, and echoes the
  request. -s/--stream writes the raw response bytes as they arrive.
  HTTP error statuses are printed normally and exit 0.

\b
FILES
─────
  Collections file:
    1. -f/--file flag
    2. $REQMAN_JSON
    3. data_file in config (relative to the config file)
    4. ~/.reqman/collections.json

  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .reqman.yaml / .reqman.yml / reqman.yaml / reqman.yml in CWD
    3. ~/.reqman/config.yaml (global)

  \b
  defaults:
    data_file: collections.json
    env_file: .env                  # load .env file
    timeout: 30                     # seconds, default: no timeout
    follow_redirects: true
"""


def _parse_header_option(ctx, param, value):
    """click callback: -H 'KEY:VALUE' tuples → ordered dict."""
    from reqman.core import parse_headers

    try:
        return parse_headers(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def header_option(help_text):
    return click.option(
        "-H",
        "--header",
        "headers",
        multiple=True,
        metavar="KEY:VALUE",
        callback=_parse_header_option,
        help=help_text,
    )


def request_options(f):
    """Flags shared by `req` and `run`."""
    f = click.option(
        "--timeout",
        type=float,
        default=None,
        help="Request timeout in seconds. Default: config, else none.",
    )(f)
    f = click.option(
        "-v",
        "--verbose",
        is_flag=True,
        default=False,
        help="Echo the request and show response status, time and headers.",
    )(f)
    f = click.option(
        "-s",
        "--stream",
        is_flag=True,
        default=False,
        help="Send the body as raw bytes, print the response raw. No prompts.",
    )(f)
    return f


METHOD_CHOICE = click.Choice([m.value for m in Method], case_sensitive=False)


@click.group(help=TOOL_HELP, context_settings={"max_content_width": 88})
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .reqman.yaml in CWD, then ~/.reqman/config.yaml.",
)
@click.option(
    "-f",
    "--file",
    "data_file",
    default=None,
    help="Collections file. Default: $REQMAN_JSON, config data_file, "
    "then ~/.reqman/collections.json.",
)
@click.version_option(__version__, prog_name="reqman")
@click.pass_context
def main(ctx, config_file, data_file):
    """Manage API collections and send requests."""
    from reqman.core import (
        load_config,
        load_env,
        resolve_config_path,
        resolve_store_path,
        transport_settings,
    )

    config = load_config(resolve_config_path(config_file))
    defaults = config.get("defaults", {})
    env = load_env(defaults.get("env_file"), config.get("_config_dir") or ".")

    ctx.obj = {
        "store_path": resolve_store_path(data_file, config, env),
        "transport": transport_settings(config, env),
    }


# ── Requests ─────────────────────────────────────────────────────────────


@main.command("req")
@click.argument("method", type=METHOD_CHOICE)
@click.argument("url")
@header_option("HTTP header as 'KEY:VALUE'. Repeatable.")
@click.option("-b", "--body", default=None, help="Request body string.")
@request_options
@click.pass_obj
def req_cmd(obj, method, url, headers, body, stream, verbose, timeout):
    """Send an ad-hoc request."""
    from reqman.request import assemble_ad_hoc

    request = assemble_ad_hoc(method, url, headers, body)
    _send(obj, request, stream=stream, verbose=verbose, timeout=timeout)


@main.command("run")
@click.argument("collection")
@click.argument("endpoint")
@request_options
@click.pass_obj
def run_cmd(obj, collection, endpoint, stream, verbose, timeout):
    """Send a saved endpoint of a collection."""
    from reqman.core import load_store
    from reqman.request import assemble_saved

    collections = load_store(obj["store_path"])
    request = assemble_saved(collections, collection, endpoint)
    _send(obj, request, stream=stream, verbose=verbose, timeout=timeout)


@main.command("url")
@click.argument("collection")
@click.argument("endpoint")
@click.pass_obj
def url_cmd(obj, collection, endpoint):
    """Print the `req` command line equivalent to a saved endpoint."""
    from reqman.core import load_store
    from reqman.placeholders import find_placeholders
    from reqman.request import assemble_saved, to_command_line

    collections = load_store(obj["store_path"])
    request = assemble_saved(collections, collection, endpoint)
    click.echo(to_command_line(request))
    pending = find_placeholders(request)
    if pending:
        click.echo(f"{len(pending)} placeholder(s) will be prompted for.", err=True)


def _send(obj, request, stream, verbose, timeout):
    """Resolve, execute and render one request."""
    from reqman.executor import execute_request
    from reqman.placeholders import Environment, TerminalPrompt
    from reqman.render import format_output, format_request
    from reqman.request import build_request

    env = Environment()
    piped = env.read_piped()
    request = build_request(
        request,
        piped=piped,
        stream=stream,
        prompt=TerminalPrompt(env),
    )

    if verbose and not stream:
        click.echo(format_request(request))
        click.echo()

    transport = dict(obj["transport"])
    if timeout is not None:
        transport["timeout"] = timeout

    if stream:
        execute_request(request, on_chunk=_write_chunk, **transport)
        return

    response = execute_request(request, **transport)
    click.echo(format_output(response, verbose=verbose))


def _write_chunk(chunk: bytes):
    """Raw response bytes straight to stdout; click.echo flushes each write."""
    click.echo(chunk, nl=False)


# ── Management ───────────────────────────────────────────────────────────


@main.group("man")
def man():
    """Manage collections and endpoints."""


@man.command("list")
@click.option("-c", "--col", "col_name", default=None, help="Only this collection.")
@click.option("-e", "--endpoint", "ep_name", default=None, help="Only this endpoint.")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Collections only.")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Include endpoint headers and bodies.",
)
@click.pass_obj
def man_list(obj, col_name, ep_name, quiet, verbose):
    """List collections and endpoints."""
    from reqman.core import get_collection, load_store
    from reqman.errors import ReqmanError

    collections = load_store(obj["store_path"])
    if not collections:
        raise ReqmanError("No collections found.")
    if col_name:
        selected = [get_collection(collections, col_name)]
    else:
        selected = list(collections.values())

    for col in selected:
        click.echo(f"[{col.name}] - {col.url}")
        if quiet:
            continue
        if col.headers:
            click.echo("  Headers:")
            for key, value in col.headers.items():
                click.echo(f"  {key}: {value}")
        for ep in col.endpoints.values():
            if ep_name and ep.name != ep_name:
                continue
            body_len = len(ep.body) if ep.body is not None else 0
            click.echo(
                f"  [{ep.name}] {ep.method} - {ep.path} - "
                f"{len(ep.headers)} - {body_len}"
            )
            if not verbose:
                continue
            if ep.headers:
                click.echo("    Headers:")
                for key, value in ep.headers.items():
                    click.echo(f"    {key}: {value}")
            if ep.body is not None:
                click.echo("    Body:")
                click.echo(f"    {ep.body}")


@man.command("col")
@click.argument("name")
@click.argument("url")
@header_option("Default header as 'KEY:VALUE'. Repeatable. Empty value removes.")
@click.pass_obj
def man_col(obj, name, url, headers):
    """Add a collection, or update URL and headers of an existing one."""
    from reqman.core import add_collection

    with _store(obj) as collections:
        add_collection(collections, name, url, headers)
    click.echo("Collection added successfully!")


@man.command("endpoint")
@click.argument("collection")
@click.argument("name")
@click.argument("path")
@click.option("-m", "--method", type=METHOD_CHOICE, default="GET", show_default=True)
@header_option("Endpoint header as 'KEY:VALUE'. Repeatable.")
@click.option(
    "-b",
    "--body",
    default=None,
    help="Saved body. Omit for no body; -b '' saves an empty body.",
)
@click.pass_obj
def man_endpoint(obj, collection, name, path, method, headers, body):
    """Add an endpoint to a collection (replaces one with the same name)."""
    from reqman.core import add_endpoint

    with _store(obj) as collections:
        add_endpoint(
            collections,
            collection,
            name,
            path,
            method=Method.parse(method),
            headers=headers,
            body=body,
        )
    click.echo("Endpoint added successfully!")


@man.command("update")
@click.argument("collection")
@click.option("-e", "--endpoint", default=None, help="Update this endpoint instead.")
@click.option("-u", "--url", default=None, help="New base URL, or endpoint path with -e.")
@header_option("Header as 'KEY:VALUE'. Repeatable. Empty value removes the header.")
@click.option("-b", "--body", default=None, help="New endpoint body ('' = empty body).")
@click.option(
    "--clear-body",
    is_flag=True,
    default=False,
    help="Remove the endpoint body entirely.",
)
@click.pass_obj
def man_update(obj, collection, endpoint, url, headers, body, clear_body):
    """Update a collection or endpoint."""
    from reqman.core import update_collection, update_endpoint

    if not endpoint and (body is not None or clear_body):
        raise click.UsageError("-b/--body and --clear-body need -e/--endpoint.")
    if body is not None and clear_body:
        raise click.UsageError("-b/--body and --clear-body are mutually exclusive.")

    with _store(obj) as collections:
        if endpoint:
            update_endpoint(
                collections,
                collection,
                endpoint,
                path=url,
                headers=headers,
                body=body,
                clear_body=clear_body,
            )
        else:
            update_collection(collections, collection, url=url, headers=headers)
    click.echo("Collection updated successfully!")


@man.command("delete")
@click.argument("collection")
@click.option("-e", "--endpoint", default=None, help="Delete this endpoint only.")
@click.option("-y", "--yes", is_flag=True, default=False, help="Skip confirmation.")
@click.pass_obj
def man_delete(obj, collection, endpoint, yes):
    """Delete a collection (with all its endpoints) or one endpoint."""
    from reqman.core import delete_collection, delete_endpoint

    kind = "endpoint" if endpoint else "collection"
    click.echo(f"Deleting {kind} '{endpoint or collection}'")
    if not yes:
        click.confirm(f"Are you sure you want to delete this {kind}?", abort=True)

    with _store(obj) as collections:
        if endpoint:
            delete_endpoint(collections, collection, endpoint)
        else:
            delete_collection(collections, collection)
    click.echo(f"{kind.capitalize()} deleted successfully!")


@man.command("copy")
@click.argument("collection")
@click.argument("new_name")
@click.option("-e", "--endpoint", default=None, help="Copy this endpoint.")
@click.option(
    "-c",
    "--to-col",
    is_flag=True,
    default=False,
    help="Copy the endpoint into collection NEW_NAME, keeping its name.",
)
@click.pass_obj
def man_copy(obj, collection, new_name, endpoint, to_col):
    """Copy a collection, or an endpoint within or across collections."""
    from reqman.core import copy_collection, copy_endpoint

    if to_col and not endpoint:
        raise click.UsageError("-c/--to-col needs -e/--endpoint.")

    with _store(obj) as collections:
        if endpoint:
            copy_endpoint(collections, collection, endpoint, new_name, to_collection=to_col)
        else:
            copy_collection(collections, collection, new_name)
    click.echo("Copy command successful!")


@contextlib.contextmanager
def _store(obj):
    """Load the collections, yield them for mutation, save on a clean exit."""
    from reqman.core import load_store, save_store

    path = obj["store_path"]
    collections = load_store(path)
    yield collections
    save_store(path, collections)
