"""
DataBasin CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- Pretty formatting for human output
- JSON output for piping/automation
"""

import argparse
import asyncio
import csv
import inspect
import json
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from databasin_cli import __version__
from databasin_cli.core.auth import (
    TOKEN_FILENAME,
    delete_token,
    format_token_expiration,
    get_default_token_path,
    get_token_source,
    is_token_expired,
    load_token,
    save_token,
    token_subject,
)
from databasin_cli.core.config import (
    OUTPUT_FORMATS,
    CliConfig,
    get_config_path,
    load_config,
    update_config_file,
)
from databasin_cli.core.efficiency import TokenEfficiencyOptions
from databasin_cli.core.errors import CLIError, ValidationError
from databasin_cli.core.logging import setup_logging
from databasin_cli.core.types import Resource
from databasin_cli.sdk import DataBasinClient

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (LLM/machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: CLIError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    # Header
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line)
    print("-" * len(header_line))

    # Rows
    for row in rows:
        print("  ".join(str(v if v is not None else "")[:w].ljust(w) for v, w in zip(row, widths)))


def csv_output(headers: list[str], rows: list[list[Any]]) -> None:
    """Print rows as CSV."""
    writer = csv.writer(sys.stdout, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows([["" if v is None else v for v in r] for r in rows])


def list_output(
    result: Any,
    headers: list[str],
    row: Any,
    widths: list[int],
    empty_message: str,
    config: CliConfig,
) -> None:
    """
    Print a listing in the configured output format.

    Reshaped payloads (count, fields, limit) are always printed as JSON.
    Typed results follow config.output_format:
    - json: {"data", "total_count"}
    - csv: header row plus one row per item
    - table: a table of at most config.default_limit rows on a TTY, JSON
      when piped
    """
    if not isinstance(result, list) or not all(isinstance(item, Resource) for item in result):
        success_output(result)
        return

    fmt = config.output_format
    if fmt == "csv":
        csv_output(headers, [row(item) for item in result])
    elif fmt == "table" and is_tty():
        if not result:
            print(empty_message)
            return
        shown = result[: config.default_limit]
        table_output(headers, [row(item) for item in shown], widths)
        if len(result) > len(shown):
            print(f"\n... {len(result) - len(shown)} more (use --limit, --format json or --format csv)")
    else:
        success_output({"data": [item.to_dict() for item in result], "total_count": len(result)})


def read_json_arg(value: str, option: str) -> Any:
    """Parse a JSON option value, or stdin when the value is '-'."""
    try:
        if value == "-":
            return json.load(sys.stdin)
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {option}: {e}", option) from e


def parse_params(pairs: list[str] | None) -> dict[str, str]:
    """Turn ['k=v', ...] into a dict."""
    params: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValidationError(f"Invalid --param {pair!r}", "param", ["Use the form key=value"])
        params[key] = value
    return params


def efficiency_from_args(args: argparse.Namespace) -> TokenEfficiencyOptions | None:
    """Efficiency options from --count/--fields/--limit, None if none were given."""
    options = TokenEfficiencyOptions(
        count=getattr(args, "count", False),
        fields=getattr(args, "fields", None),
        limit=getattr(args, "limit", None),
    )
    return options if options.active else None


async def resolve_project(client: DataBasinClient, args: argparse.Namespace) -> str:
    """Project from --project or the configured default, numeric IDs resolved."""
    project = getattr(args, "project", None) or client.config.default_project
    if not project:
        raise ValidationError(
            "Project ID is required",
            "project",
            ["Pass --project <id> or set DATABASIN_DEFAULT_PROJECT"],
        )
    return await client.resolve_project_id(project)


# =============================================================================
# Auth Commands
# =============================================================================


async def cmd_auth_login(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Save an API token."""
    try:
        token = sys.stdin.read().strip() if args.token == "-" else args.token.strip()
        if not token:
            raise ValidationError("Token is empty", "token")

        path = save_token(token, Path.cwd() / TOKEN_FILENAME if args.local else None)
        client.api.clear_token()
        success_output(
            {
                "success": True,
                "path": str(path),
                "expires": format_token_expiration(token),
                "expired": is_token_expired(token),
            }
        )
    except CLIError as e:
        error_output(e)


async def cmd_auth_logout(_client: DataBasinClient, args: argparse.Namespace) -> None:
    """Delete the saved token."""
    try:
        path = Path.cwd() / TOKEN_FILENAME if args.local else get_default_token_path()
        removed = delete_token(path)
        success_output(
            {
                "success": True,
                "path": str(path),
                "message": "Token removed" if removed else "No token file to remove",
            }
        )
    except CLIError as e:
        error_output(e)


async def cmd_auth_status(_client: DataBasinClient, _args: argparse.Namespace) -> None:
    """Show where the token comes from and when it expires (no network)."""
    try:
        source = get_token_source()
        if source is None:
            success_output({"authenticated": False, "message": "No token found. Run: databasin auth login"})
            return

        token = load_token()
        success_output(
            {
                "authenticated": True,
                "source": source,
                "subject": token_subject(token),
                "expires": format_token_expiration(token),
                "expired": is_token_expired(token),
            }
        )
    except CLIError as e:
        error_output(e)


async def cmd_auth_verify(client: DataBasinClient, _args: argparse.Namespace) -> None:
    """Check the token against the API."""
    try:
        user = await client.projects.current_user()
        success_output(
            {
                "authenticated": True,
                "id": user.id,
                "email": user.email,
                "name": user.full_name,
            }
        )
    except CLIError as e:
        error_output(e)


# =============================================================================
# Project Commands
# =============================================================================


async def cmd_projects_list(client: DataBasinClient, args: argparse.Namespace) -> None:
    """List accessible projects."""
    try:
        result = await client.projects.list(efficiency_from_args(args))
        list_output(
            result,
            ["ID", "Internal ID", "Name", "Organization"],
            lambda p: [p.id, p.internal_id, p.name, p.organization_name],
            [8, 12, 40, 30],
            "No projects found.",
            client.config,
        )
    except CLIError as e:
        error_output(e)


async def cmd_projects_get(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Get a project by ID."""
    try:
        project = await client.projects.get(args.project_id)
        success_output(project.to_dict())
    except CLIError as e:
        error_output(e)


async def cmd_projects_users(client: DataBasinClient, args: argparse.Namespace) -> None:
    """List project members."""
    try:
        result = await client.projects.users(args.project_id, efficiency_from_args(args))
        list_output(
            result,
            ["ID", "Email", "Name"],
            lambda u: [u.id, u.email, u.full_name],
            [8, 40, 30],
            "No users found.",
            client.config,
        )
    except CLIError as e:
        error_output(e)


async def cmd_projects_stats(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Show project statistics."""
    try:
        success_output(await client.projects.stats(args.project_id))
    except CLIError as e:
        error_output(e)


# =============================================================================
# Connector Commands
# =============================================================================


async def cmd_connectors_list(client: DataBasinClient, args: argparse.Namespace) -> None:
    """List connectors (count only unless --full, --fields or --limit)."""
    try:
        project = getattr(args, "project", None) or client.config.default_project
        project_id = await client.resolve_project_id(project) if project else None

        options = efficiency_from_args(args)
        if options is None and args.full:
            options = TokenEfficiencyOptions()

        result = await client.connectors.list(project_id, options)
        list_output(
            result,
            ["ID", "Name", "Type", "Subtype", "Status"],
            lambda c: [c.connector_id, c.name, c.connector_type, c.sub_type, c.status],
            [10, 40, 15, 15, 10],
            "No connectors found.",
            client.config,
        )
    except CLIError as e:
        error_output(e)


async def cmd_connectors_get(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Get a connector by ID."""
    try:
        connector = await client.connectors.get(args.connector_id)
        success_output(connector.to_dict())
    except CLIError as e:
        error_output(e)


async def cmd_connectors_test(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Test a connector's connection."""
    try:
        success_output(await client.connectors.test(args.connector_id))
    except CLIError as e:
        error_output(e)


# =============================================================================
# Pipeline Commands
# =============================================================================


async def cmd_pipelines_list(client: DataBasinClient, args: argparse.Namespace) -> None:
    """List pipelines in a project."""
    try:
        project_id = await resolve_project(client, args)
        result = await client.pipelines.list(project_id, efficiency_from_args(args), status=args.status)
        list_output(
            result,
            ["ID", "Name", "Status", "Enabled"],
            lambda p: [p.pipeline_id, p.name, p.status, p.enabled],
            [10, 45, 10, 8],
            "No pipelines found.",
            client.config,
        )
    except CLIError as e:
        error_output(e)


async def cmd_pipelines_get(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Get a pipeline by ID."""
    try:
        pipeline = await client.pipelines.get(args.pipeline_id)
        success_output(pipeline.to_dict())
    except CLIError as e:
        error_output(e)


async def cmd_pipelines_run(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Trigger a pipeline run."""
    try:
        result = await client.pipelines.run(args.pipeline_id)
        success_output(result.to_dict())
    except CLIError as e:
        error_output(e)


# =============================================================================
# Automation Commands
# =============================================================================


async def cmd_automations_list(client: DataBasinClient, args: argparse.Namespace) -> None:
    """List automations in a project."""
    try:
        project_id = await resolve_project(client, args)
        result = await client.automations.list(
            project_id,
            efficiency_from_args(args),
            active=True if args.active else None,
        )
        list_output(
            result,
            ["ID", "Name", "Schedule", "Active", "Running"],
            lambda a: [a.automation_id, a.name, a.schedule, a.is_active, a.currently_running],
            [10, 40, 15, 7, 7],
            "No automations found.",
            client.config,
        )
    except CLIError as e:
        error_output(e)


async def cmd_automations_get(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Get an automation by ID."""
    try:
        automation = await client.automations.get(args.automation_id)
        success_output(automation.to_dict())
    except CLIError as e:
        error_output(e)


async def cmd_automations_run(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Trigger an automation run."""
    try:
        result = await client.automations.run(args.automation_id)
        success_output(result.to_dict())
    except CLIError as e:
        error_output(e)


async def cmd_automations_stop(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Stop a running automation."""
    try:
        result = await client.automations.stop(args.automation_id)
        success_output(result.to_dict())
    except CLIError as e:
        error_output(e)


# =============================================================================
# Config Commands
# =============================================================================


async def cmd_config_show(client: DataBasinClient, _args: argparse.Namespace) -> None:
    """Show the merged configuration (defaults, file, env, flags)."""
    json_output({"path": str(get_config_path()), **client.config.to_dict()}, pretty=True)


async def cmd_config_set(_client: DataBasinClient, args: argparse.Namespace) -> None:
    """Store one option in the config file."""
    try:
        stored = update_config_file(args.key.replace("-", "_"), args.value)
        success_output(
            {
                "success": True,
                "path": str(get_config_path()),
                "config": stored.to_dict(),
            }
        )
    except CLIError as e:
        error_output(e)


# =============================================================================
# Raw API, Cache and Ping
# =============================================================================


async def cmd_api(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Make a raw API call."""
    try:
        body = read_json_arg(args.data, "--data") if args.data else None
        params = parse_params(args.param) or None

        if args.method == "GET":
            result = await client.api.get(args.path, efficiency_from_args(args), params=params)
        else:
            result = await client.api.request(args.method, args.path, body, params=params)
        json_output(result, pretty=not args.compact)
    except CLIError as e:
        error_output(e)


async def cmd_cache_status(client: DataBasinClient, _args: argparse.Namespace) -> None:
    """Show cache contents."""
    stats = client.cache.get_stats()
    if is_tty():
        print(f"Cache directory: {stats.cache_dir or '(memory only)'}")
        print(f"Entries: {stats.total_entries} ({stats.expired_entries} expired), {stats.total_size_bytes} bytes")
        if stats.entries:
            print()
            table_output(
                ["Key", "Age (s)", "TTL (s)", "Expired", "Size"],
                [[e.key, f"{e.age:.0f}", f"{e.ttl:.0f}", e.expired, e.size_bytes] for e in stats.entries],
                [30, 10, 10, 8, 10],
            )
    else:
        success_output(
            {
                "cache_dir": stats.cache_dir,
                "total_entries": stats.total_entries,
                "expired_entries": stats.expired_entries,
                "total_size_bytes": stats.total_size_bytes,
                "entries": [vars(e) for e in stats.entries],
            }
        )


async def cmd_cache_clear(client: DataBasinClient, args: argparse.Namespace) -> None:
    """Clear one key, expired entries, or everything."""
    if args.key:
        client.cache.delete(args.key)
        success_output({"success": True, "message": f"Cleared cache entry {args.key}"})
    elif args.expired:
        cleared = client.cache.clear_expired()
        success_output({"success": True, "cleared": cleared})
    else:
        client.cache.clear()
        success_output({"success": True, "message": "Cache cleared"})


async def cmd_ping(client: DataBasinClient, _args: argparse.Namespace) -> None:
    """Check API connectivity."""
    ok = await client.api.ping()
    json_output({"success": ok, "api_url": client.api.base_url})
    if not ok:
        sys.exit(1)


# =============================================================================
# Main CLI
# =============================================================================


def add_efficiency_args(parser: argparse.ArgumentParser) -> None:
    """Add --count/--fields/--limit to a listing command."""
    parser.add_argument("--count", action="store_true", help="Return only the number of results")
    parser.add_argument("--fields", help="Comma-separated list of fields to return")
    parser.add_argument("--limit", "-l", type=int, help="Limit number of results")


def add_project_arg(parser: argparse.ArgumentParser, help_text: str) -> None:
    # SUPPRESS keeps a global --project from being overwritten by the default.
    parser.add_argument("--project", "-p", default=argparse.SUPPRESS, help=help_text)


def create_parser() -> argparse.ArgumentParser:  # noqa: PLR0915
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="databasin",
        description="DataBasin CLI - Command-line interface for the DataBasin API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output Modes:
  TTY (human):  Pretty tables
  Pipe (LLM):   JSON
  --format json|csv (or output_format in config) overrides both

Examples:
  databasin auth login --token <jwt>
  databasin projects list --count
  databasin connectors list -p N1r8Do --full --fields connectorID,connectorName
  databasin pipelines run 123
  databasin config set default_project N1r8Do
  databasin api GET /api/my/projects --limit 5 | jq '.[].name'
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--api-url", help="API base URL (overrides DATABASIN_API_URL)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("--debug", action="store_true", default=None, help="Log requests to stderr")
    parser.add_argument("--format", "-f", choices=OUTPUT_FORMATS, help="Output format for listings (default: table)")
    parser.add_argument("--project", "-p", help="Default project ID (numeric or internal)")
    parser.add_argument("--retries", type=int, default=0, help="Retries on network failure (default: 0)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Auth ==========
    auth = subparsers.add_parser("auth", help="Manage authentication")
    auth.set_defaults(func=lambda _c, _a: auth.print_help())
    auth_sub = auth.add_subparsers(dest="subcommand")

    a_login = auth_sub.add_parser("login", help="Save an API token")
    a_login.add_argument("--token", "-t", required=True, help="JWT token (or - for stdin)")
    a_login.add_argument("--local", action="store_true", help=f"Save to ./{TOKEN_FILENAME} instead of ~/.databasin")
    a_login.set_defaults(func=cmd_auth_login)

    a_logout = auth_sub.add_parser("logout", help="Delete the saved token")
    a_logout.add_argument("--local", action="store_true", help=f"Delete ./{TOKEN_FILENAME}")
    a_logout.set_defaults(func=cmd_auth_logout)

    a_status = auth_sub.add_parser("status", help="Show token source and expiry")
    a_status.set_defaults(func=cmd_auth_status)

    a_verify = auth_sub.add_parser("verify", help="Verify the token against the API")
    a_verify.set_defaults(func=cmd_auth_verify)

    # ========== Projects ==========
    projects = subparsers.add_parser("projects", help="List and inspect projects")
    projects.set_defaults(func=lambda _c, _a: projects.print_help())
    projects_sub = projects.add_subparsers(dest="subcommand")

    p_list = projects_sub.add_parser("list", help="List projects")
    add_efficiency_args(p_list)
    p_list.set_defaults(func=cmd_projects_list)

    p_get = projects_sub.add_parser("get", help="Get project details")
    p_get.add_argument("project_id", help="Project ID")
    p_get.set_defaults(func=cmd_projects_get)

    p_users = projects_sub.add_parser("users", help="List project members")
    p_users.add_argument("project_id", help="Project ID")
    add_efficiency_args(p_users)
    p_users.set_defaults(func=cmd_projects_users)

    p_stats = projects_sub.add_parser("stats", help="Show project statistics")
    p_stats.add_argument("project_id", help="Project ID")
    p_stats.set_defaults(func=cmd_projects_stats)

    # ========== Connectors ==========
    connectors = subparsers.add_parser("connectors", help="List and test connectors")
    connectors.set_defaults(func=lambda _c, _a: connectors.print_help())
    connectors_sub = connectors.add_subparsers(dest="subcommand")

    c_list = connectors_sub.add_parser("list", help="List connectors (count by default)")
    add_project_arg(c_list, "Filter by project ID")
    c_list.add_argument("--full", action="store_true", help="Fetch full connector objects")
    add_efficiency_args(c_list)
    c_list.set_defaults(func=cmd_connectors_list)

    c_get = connectors_sub.add_parser("get", help="Get connector details")
    c_get.add_argument("connector_id", help="Connector ID")
    c_get.set_defaults(func=cmd_connectors_get)

    c_test = connectors_sub.add_parser("test", help="Test a connector's connection")
    c_test.add_argument("connector_id", help="Connector ID")
    c_test.set_defaults(func=cmd_connectors_test)

    # ========== Pipelines ==========
    pipelines = subparsers.add_parser("pipelines", help="List and run pipelines")
    pipelines.set_defaults(func=lambda _c, _a: pipelines.print_help())
    pipelines_sub = pipelines.add_subparsers(dest="subcommand")

    pl_list = pipelines_sub.add_parser("list", help="List pipelines in a project")
    add_project_arg(pl_list, "Project ID (required)")
    pl_list.add_argument(
        "--status",
        choices=["active", "inactive", "running", "error", "pending"],
        help="Filter by status",
    )
    add_efficiency_args(pl_list)
    pl_list.set_defaults(func=cmd_pipelines_list)

    pl_get = pipelines_sub.add_parser("get", help="Get pipeline details")
    pl_get.add_argument("pipeline_id", help="Pipeline ID")
    pl_get.set_defaults(func=cmd_pipelines_get)

    pl_run = pipelines_sub.add_parser("run", help="Run a pipeline now")
    pl_run.add_argument("pipeline_id", help="Pipeline ID")
    pl_run.set_defaults(func=cmd_pipelines_run)

    # ========== Automations ==========
    automations = subparsers.add_parser("automations", help="List, run and stop automations")
    automations.set_defaults(func=lambda _c, _a: automations.print_help())
    automations_sub = automations.add_subparsers(dest="subcommand")

    au_list = automations_sub.add_parser("list", help="List automations in a project")
    add_project_arg(au_list, "Project ID (required)")
    au_list.add_argument("--active", action="store_true", help="Only active automations")
    add_efficiency_args(au_list)
    au_list.set_defaults(func=cmd_automations_list)

    au_get = automations_sub.add_parser("get", help="Get automation details")
    au_get.add_argument("automation_id", help="Automation ID")
    au_get.set_defaults(func=cmd_automations_get)

    au_run = automations_sub.add_parser("run", help="Run an automation now")
    au_run.add_argument("automation_id", help="Automation ID")
    au_run.set_defaults(func=cmd_automations_run)

    au_stop = automations_sub.add_parser("stop", help="Stop a running automation")
    au_stop.add_argument("automation_id", help="Automation ID")
    au_stop.set_defaults(func=cmd_automations_stop)

    # ========== Raw API ==========
    api = subparsers.add_parser("api", help="Make a raw API call")
    api.add_argument("method", type=str.upper, choices=["GET", "POST", "PUT", "DELETE"], help="HTTP method")
    api.add_argument("path", help="Endpoint path (e.g. /api/connector)")
    api.add_argument("--data", "-d", help="JSON request body (or - for stdin)")
    api.add_argument("--param", action="append", metavar="KEY=VALUE", help="Query parameter (repeatable)")
    api.add_argument("--compact", action="store_true", help="Compact JSON output")
    add_efficiency_args(api)
    api.set_defaults(func=cmd_api)

    # ========== Cache ==========
    cache = subparsers.add_parser("cache", help="Inspect and clear the local cache")
    cache.set_defaults(func=lambda _c, _a: cache.print_help())
    cache_sub = cache.add_subparsers(dest="subcommand")

    ca_status = cache_sub.add_parser("status", help="Show cache entries")
    ca_status.set_defaults(func=cmd_cache_status)

    ca_clear = cache_sub.add_parser("clear", help="Clear the cache")
    ca_clear.add_argument("key", nargs="?", help="Clear only this key")
    ca_clear.add_argument("--expired", action="store_true", help="Clear only expired entries")
    ca_clear.set_defaults(func=cmd_cache_clear)

    # ========== Config ==========
    config = subparsers.add_parser("config", help="Show or change CLI configuration")
    config.set_defaults(func=cmd_config_show)
    config_sub = config.add_subparsers(dest="subcommand")

    cf_show = config_sub.add_parser("show", help="Show the merged configuration")
    cf_show.set_defaults(func=cmd_config_show)

    cf_set = config_sub.add_parser("set", help="Store an option in the config file")
    cf_set.add_argument("key", help="Option name (e.g. default_project, timeout, output_format)")
    cf_set.add_argument("value", help="New value (timeout and cache_ttl in seconds)")
    cf_set.set_defaults(func=cmd_config_set)

    # ========== Ping ==========
    ping = subparsers.add_parser("ping", help="Check API connectivity")
    ping.set_defaults(func=cmd_ping)

    return parser


async def run_command(args: argparse.Namespace) -> None:
    """Build the client from config and flags, then dispatch."""
    config = load_config(
        api_url=args.api_url,
        timeout=args.timeout,
        debug=args.debug,
        output_format=args.format,
    )
    setup_logging(config.debug)

    async with DataBasinClient(config, retries=args.retries) as client:
        # Group parsers print help synchronously; commands are coroutines.
        result = args.func(client, args)
        if inspect.isawaitable(result):
            await result


def main() -> None:
    """Main CLI entry point."""
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    try:
        asyncio.run(run_command(args))
    except CLIError as e:
        error_output(e)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
