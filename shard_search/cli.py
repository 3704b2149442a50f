"""
Command Line Interface for the sharded search system
"""
import asyncio
import json
import sys
from typing import Optional
import aiohttp
import click
from pydantic import ValidationError
from shard_search.core.config import Config, ShardConfig, CoordinatorConfig, ShardAddress
from shard_search.core.coordinator import SearchCoordinator
from shard_search.core.models import AggregateResult
from shard_search.core.node import ShardNode
from shard_search.search.engine import SearchEngine, SearchError
from shard_search.search.patterns import MATCHERS
from shard_search.storage.loader import DocumentLoadError, split_dataset
from shard_search.utils.helpers import format_count
from shard_search.utils.logger import setup_logging


EXIT_WORDS = {'quit', 'exit', 'sair'}


def _load_config(ctx) -> Config:
    config_file = ctx.obj.get('config_file')
    if not config_file:
        return Config()
    try:
        return Config.load_from_file(config_file)
    except (OSError, ValueError, ValidationError) as e:
        raise click.ClickException(f"Cannot load configuration from {config_file}: {e}")


async def _serve(server):
    """Run a shard or coordinator until interrupted, always releasing its socket"""
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def _run_server(server, name: str):
    try:
        asyncio.run(_serve(server))
    except KeyboardInterrupt:
        click.echo(f"\nShutting down {name}...")
    except DocumentLoadError as e:
        raise click.ClickException(f"{name} failed to load documents: {e}")
    except OSError as e:
        raise click.ClickException(f"{name} failed to start: {e}")


def _print_result(result: AggregateResult):
    click.echo("\n========== SEARCH RESULTS ==========")
    click.echo(f"Total results: {result.total}")

    if result.shards:
        click.echo("Shards: " + ", ".join(f"{sid} ({status})" for sid, status in result.shards.items()))

    if not result.results:
        click.echo("No documents matched the search term.")
        return

    for i, hit in enumerate(result.results, 1):
        click.echo(f"\n--- Result {i} ---")
        click.echo(f"Title: {hit.title}")
        click.echo(f"Label: {hit.label}")
        click.echo(f"Abstract: {hit.abstract}")
        click.echo(f"Shard: {hit.shard}")

    click.echo("\n====================================")


async def _search_once(engine: SearchEngine, term: str) -> Optional[AggregateResult]:
    try:
        return await engine.search(term)
    except asyncio.TimeoutError:
        click.echo("Timeout: the search took too long. Try again.", err=True)
    except aiohttp.ClientConnectionError:
        click.echo(
            f"Error: cannot connect to the coordinator at {engine.coordinator_url}. Is it running?",
            err=True
        )
    except (aiohttp.ClientError, SearchError) as e:
        click.echo(f"Search error: {e}", err=True)
    return None


@click.group()
@click.option('--config', '-c', help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', help='Also write logs to this file')
@click.pass_context
def cli(ctx, config, verbose, log_file):
    """Sharded exact-match search CLI"""
    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config

    loaded = _load_config(ctx)
    ctx.obj['config'] = loaded

    setup_logging(
        'DEBUG' if verbose else loaded.logging.level,
        log_file or loaded.logging.file,
        loaded.logging.format
    )


@cli.command()
@click.option('--shard-id', help='Unique shard identifier')
@click.option('--host', help='Host to bind to')
@click.option('--port', type=int, help='Port to bind to')
@click.option('--data-file', type=click.Path(dir_okay=False), help='JSON file with the shard documents')
@click.option('--algorithm', type=click.Choice(sorted(MATCHERS)), help='Match algorithm')
@click.pass_context
def start_shard(ctx, shard_id, host, port, data_file, algorithm):
    """Start a shard worker"""
    main_config: Config = ctx.obj['config']
    base = main_config.shard.model_dump() if main_config.shard else {}

    overrides = {
        'shard_id': shard_id,
        'host': host,
        'port': port,
        'data_file': data_file,
        'algorithm': algorithm,
    }
    base.update({key: value for key, value in overrides.items() if value is not None})

    try:
        config = ShardConfig(**base)
    except ValidationError as e:
        raise click.UsageError(f"Invalid shard configuration: {e}")

    node = ShardNode(config, search_config=main_config.search)

    click.echo(f"Starting shard '{config.shard_id}' on {config.host}:{config.port}")
    click.echo(f"Data file: {config.data_file}")
    _run_server(node, f"shard '{config.shard_id}'")


@cli.command()
@click.option('--host', help='Host to bind to')
@click.option('--port', type=int, help='Port to bind to')
@click.option('--shard', 'shards', multiple=True,
              help='Shard address as id@host:port (can be specified multiple times)')
@click.option('--timeout', type=float, help='Per-shard timeout in seconds')
@click.pass_context
def start_coordinator(ctx, host, port, shards, timeout):
    """Start the search coordinator"""
    main_config: Config = ctx.obj['config']
    base = main_config.coordinator.model_dump() if main_config.coordinator else {}

    try:
        if shards:
            base['shards'] = [ShardAddress.parse(value) for value in shards]
        overrides = {'host': host, 'port': port, 'search_timeout': timeout}
        base.update({key: value for key, value in overrides.items() if value is not None})
        config = CoordinatorConfig(**base)
    except (ValueError, ValidationError) as e:
        raise click.UsageError(f"Invalid coordinator configuration: {e}")

    coordinator = SearchCoordinator(config)

    click.echo(f"Starting search coordinator on {config.host}:{config.port}")
    for shard in config.shards:
        click.echo(f"  Shard {shard.shard_id}: {shard.url}")
    _run_server(coordinator, "coordinator")


@cli.command()
@click.argument('term')
@click.option('--coordinator', default='http://localhost:8080', help='Coordinator URL')
@click.option('--output', '-o', help='Output file for results (JSON format)')
def search(term, coordinator, output):
    """Search every shard for TERM"""
    if not term.strip():
        raise click.UsageError("Search term cannot be empty")

    engine = SearchEngine(coordinator)
    result = asyncio.run(_search_once(engine, term))
    if result is None:
        sys.exit(1)

    _print_result(result)

    if output:
        with open(output, 'w', encoding='utf-8') as f:
            json.dump(result.model_dump(), f, ensure_ascii=False, indent=2)
        click.echo(f"Results saved to {output}")


@cli.command()
@click.option('--coordinator', default='http://localhost:8080', help='Coordinator URL')
def interactive(coordinator):
    """Read search terms from the console until 'quit'"""
    engine = SearchEngine(coordinator)

    click.echo("=== Distributed Search Client ===")
    click.echo("Type 'quit' to exit\n")

    while True:
        try:
            term = click.prompt("Search term", default='', show_default=False).strip()
        except (EOFError, click.Abort):
            click.echo()
            break

        if term.lower() in EXIT_WORDS:
            click.echo("Closing client...")
            break

        if not term:
            click.echo("Please enter a valid search term.\n")
            continue

        result = asyncio.run(_search_once(engine, term))
        if result is not None:
            _print_result(result)
        click.echo()


@cli.command()
@click.option('--coordinator', default='http://localhost:8080', help='Coordinator URL')
def status(coordinator):
    """Get status of the coordinator and its shards"""
    async def get_status():
        engine = SearchEngine(coordinator)
        return await engine.get_coordinator_status(), await engine.get_shards()

    try:
        coord_status, shards = asyncio.run(get_status())
    except (aiohttp.ClientError, asyncio.TimeoutError, SearchError) as e:
        click.echo(f"Status error: {e}", err=True)
        sys.exit(1)

    click.echo("Coordinator Status:")
    click.echo(f"  Status: {coord_status.get('status', 'unknown')}")
    click.echo(f"  Searches handled: {coord_status.get('searches_handled', 0)}")
    click.echo(f"  Shard timeout: {coord_status.get('search_timeout')} seconds")

    shard_list = shards.get('shards', [])
    click.echo(f"\nShards ({len(shard_list)}):")
    for shard in shard_list:
        click.echo(f"  {shard['shard_id']} ({shard['host']}:{shard['port']})")


@cli.command()
@click.option('--output', '-o', default='search_config.json', help='Output configuration file')
def init_config(output):
    """Initialize a configuration file with default settings"""
    config = Config(
        coordinator=CoordinatorConfig(),
        shard=ShardConfig(
            shard_id="shard-b",
            port=8081,
            data_file="shard_b.json"
        )
    )

    config.save_to_file(output)
    click.echo(f"Configuration file created: {output}")
    click.echo("Edit the file to customize settings, then use:")
    click.echo(f"  shard-search -c {output} start-shard")
    click.echo(f"  shard-search -c {output} start-coordinator")


@cli.command('split-dataset')
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--shards', '-n', default=2, type=click.IntRange(min=1), help='Number of shard files')
@click.option('--output-dir', '-d', default='.', help='Directory for the shard files')
@click.option('--prefix', default='shard', help='File name prefix')
def split_dataset_cmd(input_file, shards, output_dir, prefix):
    """Partition a JSON dataset into one data file per shard"""
    try:
        written = split_dataset(input_file, shards, output_dir, prefix)
    except DocumentLoadError as e:
        raise click.ClickException(str(e))

    click.echo(f"Wrote {format_count(len(written), 'shard file')}:")
    for path in written:
        click.echo(f"  {path}")


def main():
    """Main entry point"""
    cli()


if __name__ == '__main__':
    main()
