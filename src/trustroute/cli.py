"""CLI entry point for trustroute."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from trustroute import __version__
from trustroute._logging import configure_logging
from trustroute.config import Settings, load_settings

if TYPE_CHECKING:
    from trustroute.bootstrap import BootstrapResult

console = Console()

_existing_file = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.group()
@click.version_option(version=__version__, prog_name="trustroute")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a JSON config file",
)
@click.option("--verbose", is_flag=True, help="Log component events to stderr")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """trustroute: capability discovery and trust-gated delegation."""
    configure_logging("INFO" if verbose else "WARNING")
    ctx.obj = load_settings(config_path)


def _bootstrap_files(settings: Settings, paths: tuple[Path, ...]) -> list[BootstrapResult]:
    from trustroute.bootstrap import CapabilityBootstrap, FileSource

    pipeline = CapabilityBootstrap(settings.detection, settings.confidence)
    return pipeline.bootstrap_batch(FileSource(path) for path in paths)


@main.command()
@click.argument("paths", nargs=-1, required=True, type=_existing_file)
@click.option("--json", "as_json", is_flag=True, help="Emit manifests as JSON")
@click.pass_obj
def bootstrap(settings: Settings, paths: tuple[Path, ...], as_json: bool) -> None:
    """Build capability manifests from agent definition files."""
    results = _bootstrap_files(settings, paths)

    if as_json:
        payload = [
            {
                "agent_id": r.agent_id,
                "agent_name": r.manifest.agent_name,
                "overall_confidence": r.manifest.overall_confidence,
                "specializations": sorted(r.manifest.specializations),
                "capabilities": {
                    c.capability_id: c.confidence_level for c in r.manifest.capabilities
                },
                "warnings": r.warnings,
                "suggestions": r.suggestions,
            }
            for r in results
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    table = Table(title="Bootstrapped Agents")
    table.add_column("Agent ID", style="cyan")
    table.add_column("Capabilities")
    table.add_column("Confidence", style="green")
    table.add_column("Specializations", max_width=40)

    for r in results:
        table.add_row(
            r.agent_id,
            str(len(r.manifest.capabilities)),
            f"{r.manifest.overall_confidence or 0.0:.2f}",
            ", ".join(sorted(r.manifest.specializations)) or "-",
        )
    console.print(table)

    for r in results:
        for suggestion in r.suggestions:
            console.print(f"[dim]{r.agent_id}:[/dim] {suggestion}")

    failed = len(paths) - len(results)
    if failed:
        console.print(f"[yellow]{failed} source(s) could not be bootstrapped[/yellow]")


@main.command()
@click.argument("capabilities", nargs=-1, required=True)
@click.option(
    "--agent", "agent_paths", multiple=True, required=True, type=_existing_file,
    help="Agent definition file (repeatable)",
)
@click.option("--confidence-weight", type=click.FloatRange(0.0, 1.0), default=None)
@click.pass_obj
def rank(
    settings: Settings,
    capabilities: tuple[str, ...],
    agent_paths: tuple[Path, ...],
    confidence_weight: float | None,
) -> None:
    """Rank agents for a set of required capabilities."""
    from trustroute.registry import CapabilityRegistry

    registry = CapabilityRegistry(settings.ranking)
    registry.register_manifests([r.manifest for r in _bootstrap_files(settings, agent_paths)])
    ranked = registry.rank_agents(list(capabilities), confidence_weight=confidence_weight)

    if not ranked:
        console.print(f"[dim]No agent offers any of: {', '.join(capabilities)}[/dim]")
        return

    table = Table(title=f"Ranking for {', '.join(capabilities)}")
    table.add_column("#", style="dim")
    table.add_column("Agent ID", style="cyan")
    table.add_column("Score", style="bold")
    table.add_column("Match")
    table.add_column("Overall")

    for position, row in enumerate(ranked, start=1):
        table.add_row(
            str(position),
            row.agent_id,
            f"{row.score:.3f}",
            f"{row.match_score:.3f}",
            f"{row.overall_confidence:.2f}",
        )
    console.print(table)


@main.command()
@click.argument("from_agent")
@click.argument("to_agent")
@click.option("--depth", type=int, default=1, help="Delegation depth")
@click.option("--value", type=float, default=0.0, help="Estimated value at stake")
@click.option("--critical", is_flag=True, help="Touches critical systems")
@click.option("--external", is_flag=True, help="Delegates outside the organization")
@click.option("--chain", multiple=True, help="Agent in the delegation chain (repeatable)")
@click.pass_obj
def firebreak(
    settings: Settings,
    from_agent: str,
    to_agent: str,
    depth: int,
    value: float,
    critical: bool,
    external: bool,
    chain: tuple[str, ...],
) -> None:
    """Check liability firebreaks for a proposed delegation."""
    from trustroute.safety import FirebreakContext, LiabilityFirebreakEnforcer

    enforcer = LiabilityFirebreakEnforcer(settings.escalation)
    result = enforcer.enforce_firebreaks(
        from_agent,
        to_agent,
        FirebreakContext(
            delegation_depth=depth,
            estimated_value=value,
            involves_critical_systems=critical,
            is_external_delegation=external,
            chain_agents=list(chain),
        ),
    )

    if result.firebreaks_passed:
        console.print(f"[green]PASSED[/green] {from_agent} → {to_agent}")
    else:
        console.print(f"[red]BLOCKED[/red] {from_agent} → {to_agent}")
        for name in result.blocking_firebreaks:
            console.print(f"  • {name}")
    console.print(f"  Liability:          {result.liability_level.value}")
    console.print(f"  Required authority: {result.required_authority.value}")
    console.print(f"  Chain length:       {result.chain_length}")
    if result.manual_override_available:
        console.print("  [yellow]Manual override available[/yellow]")


@main.command()
@click.option(
    "--import", "import_path", type=_existing_file, default=None,
    help="Exported flag configuration (JSON) to evaluate",
)
@click.option("--user", "user_id", default=None)
@click.option("--env", "environment", default=None)
@click.option("--tenant", "tenant_id", default=None)
@click.pass_obj
def flags(
    settings: Settings,
    import_path: Path | None,
    user_id: str | None,
    environment: str | None,
    tenant_id: str | None,
) -> None:
    """Evaluate all feature flags for a context."""
    from trustroute.errors import FlagConfigError
    from trustroute.flags import FeatureFlagManager, FlagContext

    manager = FeatureFlagManager(settings.flag_overrides)
    if import_path is not None:
        try:
            with import_path.open("r") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise FlagConfigError("flag configuration must be a JSON object")
            manager.import_config(data)
        except (json.JSONDecodeError, FlagConfigError) as exc:
            raise click.BadParameter(str(exc), param_hint="'--import'") from exc

    context = FlagContext(environment=environment, tenant_id=tenant_id, user_id=user_id)
    table = Table(title="Feature Flags")
    table.add_column("Flag", style="cyan")
    table.add_column("Enabled")
    table.add_column("Reason", max_width=60)

    for name, evaluation in manager.get_all_flags(context).items():
        table.add_row(
            name,
            "[green]yes[/green]" if evaluation.enabled else "[red]no[/red]",
            evaluation.reason,
        )
    console.print(table)


if __name__ == "__main__":
    main()
