"""
agentic-memory CLI

Operational commands: backend status, capability detection, retention sweeps.
"""

import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any, Optional

import click

from agentic_memory import __version__
from agentic_memory.config.environments import Environment, get_current_environment, set_current_environment
from agentic_memory.config.logging import configure_logging
from agentic_memory.config.settings import MemoryConfig
from agentic_memory.core.module import MemoryModule


def _load_config(config_path: Optional[str], env: Optional[str]) -> MemoryConfig:
    if env:
        set_current_environment(Environment(env))
    if config_path:
        return MemoryConfig.from_yaml(config_path)
    return MemoryConfig.from_environment(get_current_environment())


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.version_option(version=__version__, prog_name='agentic-memory')
@click.option('--config', 'config_path', type=click.Path(exists=True), help='YAML memory configuration')
@click.option('--env', type=click.Choice([e.value for e in Environment]), help='Environment (test/prod)')
@click.option('--log-level', default='WARNING', show_default=True, help='Log level')
@click.pass_context
def cli(ctx, config_path, env, log_level):
    """Agentic memory: vector + graph memory for agent workflows."""
    configure_logging(log_level)
    ctx.obj = {"config_path": config_path, "env": env}


def _module(ctx, **kwargs) -> MemoryModule:
    config = _load_config(ctx.obj["config_path"], ctx.obj["env"])
    return MemoryModule(config, use_embeddings=False, **kwargs)


@cli.command('status')
@click.pass_context
def status(ctx):
    """Print one status record per backend as JSON."""
    async def run():
        module = _module(ctx)
        try:
            await module.start()
            return await module.get_providers_status()
        finally:
            await module.close()

    statuses = asyncio.run(run())
    _echo_json([s.to_dict() for s in statuses])
    if not any(s.healthy for s in statuses):
        sys.exit(1)


@cli.command('detect')
@click.pass_context
def detect(ctx):
    """Print the capability snapshot (providers, recommended config, features) as JSON."""
    async def run():
        module = _module(ctx)
        try:
            return await module.start()
        finally:
            await module.close()

    _echo_json(asyncio.run(run()).to_dict())


@cli.command('cleanup')
@click.option('--dry-run', is_flag=True, help='Show what would be evicted without deleting')
@click.pass_context
def cleanup(ctx, dry_run):
    """Run one retention sweep with the configured policy."""
    async def run():
        module = _module(ctx)
        try:
            await module.start()
            orchestrator = module.orchestrator
            if dry_run:
                preview = await orchestrator.preview_cleanup()
                return {
                    "dry_run": True,
                    "scanned": preview.total_scanned,
                    "would_remove": len(preview.ids),
                    "by_reason": preview.by_reason,
                    "affected_threads": preview.affected_threads,
                }
            return asdict(await orchestrator.cleanup())
        finally:
            await module.close()

    try:
        _echo_json(asyncio.run(run()))
    except Exception as e:
        click.echo(f"Error running cleanup: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    cli()
