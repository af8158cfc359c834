"""Command line entry point: run a script with interception enabled.

Usage:
    codeshim run --config codeshim.yaml app.py [ARGS]...
    codeshim check --config codeshim.yaml
"""

from __future__ import annotations

import logging
import runpy
import sys
from pathlib import Path

import click

from codeshim._config import (
    InterceptConfig,
    build_registry,
    load_intercept_config,
)
from codeshim._errors import CodeshimError
from codeshim._interceptor import Interceptor
from codeshim._protocol import FileProtocol

log = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _load(config_path: Path | None) -> InterceptConfig:
    if config_path is None:
        return InterceptConfig()
    try:
        return load_intercept_config(config_path)
    except CodeshimError as e:
        raise click.ClickException(f"{config_path}: {e}") from e


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="CODESHIM_LOG_LEVEL",
    help="Logging level for codeshim diagnostics.",
)
def main(log_level: str) -> None:
    """Rewrite source code as it is loaded, without touching it on disk."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False}
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML config naming the transformers to register.",
)
@click.option(
    "--root",
    "roots",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Only rewrite imported modules under this directory (repeatable).",
)
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(
    config_path: Path | None,
    roots: tuple[Path, ...],
    script: Path,
    args: tuple[str, ...],
) -> None:
    """Execute SCRIPT as __main__ with its source (and imports) rewritten.

    Imported modules are rewritten only under --root, the config's
    import_roots, or, failing both, the script's own directory.
    """
    config = _load(config_path)
    try:
        registry = build_registry(config)
    except CodeshimError as e:
        raise click.ClickException(str(e)) from e

    import_roots = roots or config.import_roots or (script.resolve().parent,)
    protocol = FileProtocol(import_roots=import_roots, import_hook=config.import_hook)
    interceptor = Interceptor(registry, protocol)
    log.info("running %s with transformers %s", script, registry.names())

    saved_argv = sys.argv
    sys.argv = [str(script), *args]
    try:
        with interceptor:
            runpy.run_path(str(script), run_name="__main__")
    except CodeshimError as e:
        raise click.ClickException(str(e)) from e
    finally:
        sys.argv = saved_argv


@main.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML config to validate.",
)
def check(config_path: Path) -> None:
    """Validate a config and list the transformers it registers, in order."""
    config = _load(config_path)
    try:
        registry = build_registry(config)
    except CodeshimError as e:
        raise click.ClickException(str(e)) from e

    for transformer in registry.all():
        click.echo(f"{transformer.name}\t{type(transformer).__name__}")
    if len(registry) < len(config.transformers):
        click.echo(
            f"note: {len(config.transformers) - len(registry)} entries replaced "
            "an earlier transformer of the same name",
            err=True,
        )
    roots = ", ".join(config.import_roots) or "(script directory)"
    click.echo(f"import roots: {roots}")


if __name__ == "__main__":
    main()
