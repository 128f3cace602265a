#!/usr/bin/env python3
"""
ThinkGate - Main CLI Entry Point

Command-line interface for replaying recorded executor observations
through the action gate and iteration controller.
"""

import json
import logging
import sys
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

import click

from thinkgate import __version__
from thinkgate.config import get_config
from thinkgate.errors import ThinkGateError
from thinkgate.session import ThinkGateSession, build_session, load_observations
from thinkgate.tools.formatting import format_thinking_result, pct

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def parse_param(raw: str) -> Tuple[str, Any]:
    """Parse ``key=value``; values are read as JSON when possible."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise click.BadParameter(f"expected key=value, got {raw!r}", param_hint="--param")
    try:
        return key.strip(), json.loads(value)
    except json.JSONDecodeError:
        return key.strip(), value


def prepare_session(
    task: str,
    evidence: Optional[str],
    max_iterations: Optional[int] = None,
    pacing: Optional[float] = None,
) -> ThinkGateSession:
    config = get_config()
    if max_iterations is not None:
        config = replace(config, default_max_iterations=max_iterations)
    if pacing is not None:
        config = replace(config, pacing_delay_seconds=pacing)

    session = build_session(config=config)
    session.initialize(task)

    if evidence:
        report = session.replay(load_observations(evidence))
        logger.info(f"[CLI] {report.recorded} recorded, {report.reused} reused from {evidence}")
    return session


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    ThinkGate - Evidence-gated reasoning loop.

    Replays recorded action results through the evidence store and
    drives the EXPLORE -> THINK -> EXECUTE loop to a decision.
    """
    pass


@cli.command()
@click.argument("task", type=str)
@click.option(
    "--evidence",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON list of recorded observations ({action, params, result})"
)
@click.option(
    "--max-iterations",
    type=click.IntRange(min=0),
    default=None,
    help="Iteration budget (default: THINKGATE_MAX_ITERATIONS or 5)"
)
@click.option(
    "--pacing",
    type=click.FloatRange(min=0.0),
    default=None,
    help="Seconds to pause between iterations (default: 0)"
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def run(task: str, evidence: str, max_iterations: Optional[int], pacing: Optional[float], as_json: bool, verbose: bool):
    """
    Replay EVIDENCE for TASK and run the thinking loop.
    """
    configure_logging(verbose)

    try:
        session = prepare_session(task, evidence, max_iterations, pacing)
        result = session.think(max_iterations)
    except ThinkGateError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        payload: Dict[str, Any] = result.to_dict()
        payload["summary"] = session.store.generate_summary().to_dict()
        payload["phase"] = session.store.current_phase.value
        click.echo(json.dumps(payload, indent=2, default=str))
        return

    summary = session.store.generate_summary()
    click.echo("🧠 ThinkGate")
    click.echo(f"   Task: {task}")
    click.echo(f"   Evidence: {summary.total_entries} entries, {pct(summary.confidence_score)} confidence")
    click.echo(f"   Phase: {session.store.current_phase.value}")
    click.echo()
    click.echo(format_thinking_result(result))

    if result.decision and result.decision.action_plan:
        click.echo("### Action Plan:")
        for index, step in enumerate(result.decision.action_plan, 1):
            click.echo(f"{index}. {step}")


@cli.command()
@click.argument("function", type=str)
@click.option(
    "--evidence",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON list of recorded observations to replay first"
)
@click.option("--task", default="", help="Task description used to initialize the session")
@click.option("--param", "params", multiple=True, help="Operation argument as key=value (repeatable)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def call(function: str, evidence: Optional[str], task: str, params: Tuple[str, ...], verbose: bool):
    """
    Run one named reasoning operation and print its output.
    """
    configure_logging(verbose)
    arguments = dict(parse_param(p) for p in params)

    try:
        session = prepare_session(task, evidence)
    except ThinkGateError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)

    output = session.handler.execute(function, arguments)
    click.echo(output)
    if output.startswith("Error"):
        sys.exit(1)


@cli.command()
def functions():
    """
    List the available reasoning operations.
    """
    session = build_session()
    for name in session.handler.available_functions():
        click.echo(name)


if __name__ == "__main__":
    cli()
