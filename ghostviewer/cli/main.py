"""Main CLI entrypoint for Ghost Viewer."""

import json
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Any, List, Optional

import click

from ..config import Settings
from ..errors import GhostViewerError, StateUnavailable
from ..export import export_orphans, orphans_filename
from ..identity import resource_display_id, simple_type
from ..metadata import infer_metadata
from ..models import TreeNode
from ..reconcile import filter_orphans, group_orphans, orphan_types, scan
from ..search import PROVIDER_FILTERS, available_types, matched_urns
from ..state import read_declared_state
from ..tagging import fetch_tagged_resources
from ..tree import TreeMode, build_forest


@click.group()
@click.option('--json', 'output_json', is_flag=True, help='Output machine-readable JSON')
@click.option('--state', 'state_path', help='State file path or s3://bucket/key[:region]')
@click.option('--log-level', default=None, help='Logging level (default: GHOST_VIEWER_LOG_LEVEL or INFO)')
@click.pass_context
def main(ctx, output_json, state_path, log_level):
    """Ghost Viewer - explore IaC state and hunt orphaned AWS resources."""
    settings = Settings.from_env()
    if state_path:
        settings.state_path = state_path
    if log_level:
        settings.log_level = log_level.upper()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    ctx.ensure_object(dict)
    ctx.obj['json'] = output_json
    ctx.obj['settings'] = settings


def _json_output(data: Any) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=2))


def _human_output(message: str) -> None:
    """Output human-readable message."""
    if not click.get_current_context().obj.get('json', False):
        click.echo(message)


def _fail(error: GhostViewerError) -> None:
    """Report an error and exit non-zero."""
    if click.get_current_context().obj.get('json', False):
        _json_output({'error': error.to_detail()})
    else:
        click.echo(f"Error: {error}", err=True)
        if error.hint:
            click.echo(f"Hint: {error.hint}", err=True)
    sys.exit(1)


def _tree_lines(root: TreeNode, depth: int = 0) -> List[str]:
    """Indented lines for a subtree, visible descendants only."""
    lines = []
    stack = [(root, depth)]
    while stack:
        node, level = stack.pop()
        marker = "*" if node.is_match else " "
        lines.append(f"{'  ' * level}{marker} {simple_type(node.resource.type)}  {resource_display_id(node.resource)}")
        stack.extend((child, level + 1) for child in reversed(node.children) if child.is_visible)
    return lines


@main.command()
@click.option('--port', type=int, default=None, help='Port to listen on (default: 3001)')
@click.option('--host', default='127.0.0.1', help='Interface to bind')
@click.option('--open', 'open_browser', is_flag=True, help='Open the API docs in a browser')
@click.pass_context
def serve(ctx, port, host, open_browser):
    """Start the API server."""
    import uvicorn

    from ..api.app import create_app

    settings: Settings = ctx.obj['settings']
    port = port or settings.port
    _human_output(f"Ghost Viewer running on http://{host}:{port}")
    _human_output(f"State: {settings.state_path or 'Not found (set it via POST /api/config)'}")

    if open_browser:
        webbrowser.open(f"http://{host}:{port}/docs")

    uvicorn.run(create_app(settings), host=host, port=port)


@main.command()
@click.option('--mode', type=click.Choice([m.value for m in TreeMode]), default=TreeMode.CATEGORIZED.value,
              help='Tree arrangement')
@click.option('--query', '-q', default='', help='Search text')
@click.option('--provider', multiple=True, type=click.Choice(PROVIDER_FILTERS),
              help='Provider family filter (repeatable)')
@click.option('--type', 'types', multiple=True, help='Simple type filter (repeatable)')
@click.pass_context
def tree(ctx, mode, query, provider, types):
    """Print the resource tree from state."""
    settings: Settings = ctx.obj['settings']
    try:
        state = read_declared_state(settings.state_path)
    except StateUnavailable as e:
        _fail(e)

    matched = matched_urns(state.resources, query, provider, types)
    groups = build_forest(state.resources, matched, mode)

    if ctx.obj['json']:
        _json_output({
            'metadata': infer_metadata(state).to_dict(),
            'matched': len(matched),
            'types': available_types(state.resources, query, provider, types),
            'groups': [group.to_dict() for group in groups],
        })
        return

    metadata = infer_metadata(state)
    click.echo(f"App: {metadata.app}  Stage: {metadata.stage}  Region: {metadata.region}  Account: {metadata.account}")
    click.echo(f"{len(matched)} of {len(state.resources)} resources matched")
    for group in groups:
        click.echo(f"\n{group.type_name} ({len(group.nodes)})")
        for node in group.nodes:
            for line in _tree_lines(node, depth=1):
                click.echo(line)


@main.command('scan')
@click.option('--app', 'app_name', required=True, help="sst:app tag value ('*' for any)")
@click.option('--stage', required=True, help="sst:stage tag value ('*' for any)")
@click.option('--region', default=None, help='AWS region (default: GHOST_VIEWER_REGION or us-west-2)')
@click.option('--query', '-q', default='', help='Only show orphans whose type, name or ARN match')
@click.option('--type', 'types', multiple=True, help='Service type filter, e.g. s3 (repeatable)')
@click.option('--export', 'export_path', type=click.Path(dir_okay=True, writable=True),
              help='Write the shown orphans to a JSON file (a directory gets the conventional filename)')
@click.pass_context
def scan_cmd(ctx, app_name, stage, region, query, types, export_path: Optional[str]):
    """Find tagged AWS resources that the state file does not track."""
    settings: Settings = ctx.obj['settings']
    region = region or settings.region

    try:
        result = scan(
            app_name,
            stage,
            region,
            lambda: read_declared_state(settings.state_path),
            fetch_tagged_resources,
        )
    except GhostViewerError as e:
        _fail(e)

    shown = filter_orphans(result.orphans, query, types)

    if export_path:
        target = Path(export_path)
        if target.is_dir():
            target = target / orphans_filename(app_name, stage)
        target.write_text(export_orphans(shown))
        _human_output(f"Exported {len(shown)} orphans to {target}")

    if ctx.obj['json']:
        data = result.to_dict()
        data['orphans'] = [orphan.to_dict() for orphan in shown]
        data['types'] = orphan_types(result.orphans, types)
        _json_output(data)
        return

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    click.echo(f"Found {result.total_found} tagged resources, {result.managed_count} managed ids, "
               f"{len(result.orphans)} orphans")
    if len(shown) != len(result.orphans):
        click.echo(f"{len(shown)} orphans match the filters")
    for type_name, orphans in group_orphans(shown):
        click.echo(f"\n{type_name} ({len(orphans)})")
        for orphan in orphans:
            click.echo(f"  {orphan.name}  {orphan.arn}")


if __name__ == '__main__':
    main()
