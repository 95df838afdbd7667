# src/devnetctl/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from devnetctl.config.loader import load_settings
from devnetctl.errors import DevnetError
from devnetctl.infra.terraform import TerraformRunner
from devnetctl.logging.log import init_logging
from devnetctl.observers.dispatcher import EventBus
from devnetctl.observers.events import RunSummary
from devnetctl.observers.jsonfile import JsonFileObserver
from devnetctl.observers.logger import LoggerObserver
from devnetctl.pipeline.sequencer import DevnetPipeline
from devnetctl.remote.executor import RemoteExecutor


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Devnet provisioning CLI")


@app.callback()
def main() -> None:
    """Provision and bring up a multi-node devnet."""


# ------------------------------------------------------------------------------
# Start command
# ------------------------------------------------------------------------------

@app.command()
def start(
    env_file: Optional[Path] = typer.Option(
        None,
        "--env-file",
        help="dotenv file to load (default: ./.env)",
    ),
    debug: bool = typer.Option(False, "--debug"),
):
    """
    Apply terraform, install and configure every instance, clean up any
    previous devnet and run the matic-cli setup on the host node.
    """
    logger, run_id, log_path = init_logging(verbose=debug)

    typer.echo("")
    typer.secho("Devnet Start", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo("")

    try:
        settings = load_settings(env_file=env_file)
        logger.info(
            "devnet=%s mode=%s live_network=%s",
            settings.devnet_id, settings.mode.value, settings.live_network,
        )

        bus = EventBus(
            observers=[
                LoggerObserver(logger),
                JsonFileObserver(log_path.with_suffix(".jsonl")),
                # outcome of every start against this devnet
                JsonFileObserver(settings.deployment_dir / "runs.jsonl", only=[RunSummary]),
            ]
        )

        pipeline = DevnetPipeline(
            settings,
            executor=RemoteExecutor(pkey_path=settings.pem_file),
            terraform=TerraformRunner(settings.deployment_dir, env=settings.process_env()),
            bus=bus,
            run_id=run_id,
        )
        pipeline.run()
    except DevnetError as exc:
        typer.secho(f"\nDevnet start failed: {exc}", fg=typer.colors.RED, err=True)
        typer.echo(f"See {log_path} for the full trace.", err=True)
        raise typer.Exit(code=1)

    typer.secho("\nDevnet started", fg=typer.colors.GREEN, bold=True)


if __name__ == "__main__":
    app()
