"""vtms CLI — collision risk and suspicious activity monitoring.

Commands:
  replay    — run detection over a recorded AIS track (CSV)
  simulate  — run detection over synthetic traffic, tick by tick
  monitor   — run the live tickers against synthetic traffic for a while
  config    — show effective thresholds
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vtms.config import settings

app = typer.Typer(
    name="vtms",
    help="Collision risk and suspicious activity monitoring for AIS traffic.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

_LEVEL_STYLE = {"critical": "bold red", "danger": "red", "warning": "yellow", "info": "dim"}
_SEVERITY_STYLE = {"critical": "bold red", "high": "red", "medium": "yellow", "low": "dim"}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    logging.basicConfig(
        level=(log_level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("replay")
def replay(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="AIS track CSV"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON"),
):
    """Replay a recorded track through all detectors."""
    from vtms.modules.activity_detection import ActivityOrchestrator
    from vtms.modules.normalize import load_replay_csv
    from vtms.modules.vessel_store import InMemoryVesselStore

    try:
        ticks = load_replay_csv(csv_path)
    except ValueError as e:
        console.print(f"[red]Cannot read {csv_path}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not ticks:
        console.print("[yellow]No usable records in file.[/yellow]")
        raise typer.Exit(0)

    store = InMemoryVesselStore()
    orchestrator = ActivityOrchestrator(source=store)
    last_tick = None
    for timestamp, snapshots in ticks:
        for snapshot in snapshots:
            store.upsert(snapshot)
        store.cleanup_old_vessels(settings.VESSEL_STALE_MINUTES, now=timestamp)
        last_tick = orchestrator.run_detection(now=timestamp)

    if as_json:
        _print_json(orchestrator, store, last_tick)
        return

    console.print(
        f"Replayed [cyan]{len(ticks)}[/cyan] ticks "
        f"({ticks[0][0].isoformat()} → {ticks[-1][0].isoformat()}), "
        f"{len(store)} vessels at end"
    )
    _print_results(orchestrator)


@app.command("simulate")
def simulate(
    ticks: int = typer.Option(60, "--ticks", min=1, help="Number of detection ticks"),
    interval: float = typer.Option(30.0, "--interval", min=1.0, help="Simulated seconds per tick"),
    vessels: Optional[int] = typer.Option(None, "--vessels", min=0, help="Override SIMULATION_VESSELS"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for reproducible runs"),
):
    """Run detection over synthetic traffic on a simulated clock."""
    from vtms.modules.activity_detection import ActivityOrchestrator
    from vtms.modules.simulation import AISSimulation
    from vtms.modules.vessel_store import InMemoryVesselStore

    store = InMemoryVesselStore()
    simulation = AISSimulation(store, vessel_count=vessels, seed=seed)
    orchestrator = ActivityOrchestrator(source=store)

    clock = datetime.now(timezone.utc)
    with console.status("[bold]Simulating traffic..."):
        for _ in range(ticks):
            clock += timedelta(seconds=interval)
            simulation.step(interval, now=clock)
            orchestrator.run_detection(now=clock)

    console.print(
        f"Simulated [cyan]{len(simulation.vessels)}[/cyan] vessels for "
        f"{ticks} ticks of {interval:g}s"
    )
    _print_results(orchestrator)


@app.command("monitor")
def monitor(
    duration: str = typer.Option("1m", "--duration", help="How long to run (e.g. 30s, 5m, 1h)"),
    vessels: Optional[int] = typer.Option(None, "--vessels", min=0, help="Override SIMULATION_VESSELS"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for reproducible runs"),
):
    """Run the periodic tickers in real time against synthetic traffic."""
    import asyncio

    from vtms.modules.activity_detection import ActivityOrchestrator
    from vtms.modules.simulation import AISSimulation
    from vtms.modules.ticker import MonitorService, PeriodicTask
    from vtms.modules.vessel_store import InMemoryVesselStore

    store = InMemoryVesselStore()
    simulation = AISSimulation(store, vessel_count=vessels, seed=seed)
    orchestrator = ActivityOrchestrator(source=store)
    service = MonitorService(orchestrator, store=store)
    feed_interval = settings.COLLISION_INTERVAL_SECONDS
    feed = PeriodicTask("simulation-feed", feed_interval, lambda: simulation.step(feed_interval))

    async def _run() -> None:
        feed.start()
        service.start()
        try:
            await asyncio.sleep(_parse_duration(duration))
        finally:
            await service.stop()
            await feed.stop()

    console.print(f"Monitoring {len(simulation.vessels)} simulated vessels for {duration}...")
    asyncio.run(_run())
    _print_results(orchestrator)


@app.command("config")
def show_config():
    """Show the effective detection thresholds."""
    table = Table(title="Detection settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", justify="right")
    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _print_results(orchestrator) -> None:
    alerts = orchestrator.collision.get_active_alerts()
    if alerts:
        table = Table(title=f"Active collision alerts ({len(alerts)})")
        table.add_column("Vessels", style="cyan")
        table.add_column("Level")
        table.add_column("Distance (nm)", justify="right")
        table.add_column("CPA (nm)", justify="right")
        table.add_column("TCPA (min)", justify="right")
        for alert in sorted(alerts, key=lambda a: a.proximity.distance_nm):
            style = _LEVEL_STYLE.get(alert.level.value, "")
            table.add_row(
                " / ".join(alert.vessels),
                f"[{style}]{alert.level.value}[/{style}]",
                f"{alert.proximity.distance_nm:.2f}",
                f"{alert.proximity.cpa_nm:.2f}",
                f"{alert.proximity.tcpa_min:.1f}",
            )
        console.print(table)
    else:
        console.print("[green]No active collision alerts.[/green]")

    activities = orchestrator.manager.get_all()
    if activities:
        table = Table(title=f"Suspicious activities ({len(activities)})")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        table.add_column("Severity")
        table.add_column("Vessels")
        table.add_column("State")
        for activity in sorted(activities, key=lambda a: -a.severity.rank):
            style = _SEVERITY_STYLE.get(activity.severity.value, "")
            table.add_row(
                activity.id,
                activity.type.value,
                f"[{style}]{activity.severity.value}[/{style}]",
                ", ".join(activity.vessels),
                activity.state.value,
            )
        console.print(table)
    else:
        console.print("[green]No suspicious activities.[/green]")

    stats = orchestrator.get_statistics()
    console.print(
        f"\n[bold]Rendezvous[/bold]: {stats['rendezvous']['completed']} completed, "
        f"{stats['rendezvous']['active']} active   "
        f"[bold]Loitering[/bold]: {stats['loitering']['completed']} completed, "
        f"{stats['loitering']['active']} active"
    )


def _print_json(orchestrator, store, last_tick) -> None:
    from vtms.schemas.activity import ActivityDetectionResultRead, SuspiciousActivityRead
    from vtms.schemas.collision import CollisionAlertRead
    from vtms.schemas.loitering import LoiteringEventRead
    from vtms.schemas.rendezvous import RendezvousEventRead
    from vtms.schemas.vessel import VesselSnapshotRead

    payload = {
        "collision_alerts": [
            CollisionAlertRead.model_validate(a).model_dump(mode="json")
            for a in orchestrator.collision.get_all_alerts()
        ],
        "activities": [
            SuspiciousActivityRead.model_validate(a).model_dump(mode="json")
            for a in orchestrator.manager.get_all()
        ],
        "rendezvous": [
            RendezvousEventRead.model_validate(e).model_dump(mode="json")
            for e in [
                *orchestrator.rendezvous.get_completed_rendezvous(),
                *orchestrator.rendezvous.get_active_rendezvous(),
            ]
        ],
        "loitering": [
            LoiteringEventRead.model_validate(e).model_dump(mode="json")
            for e in [
                *orchestrator.loitering.get_completed_loitering(),
                *orchestrator.loitering.get_active_loitering(),
            ]
        ],
        "vessels": [VesselSnapshotRead.model_validate(v).model_dump(mode="json") for v in store.get_all_vessels()],
        "last_tick": ActivityDetectionResultRead.model_validate(last_tick).model_dump(mode="json"),
    }
    typer.echo(json.dumps(payload, indent=2))


def _parse_duration(s: str) -> int:
    """Parse duration string (30s, 5m, 1h) to seconds."""
    s = s.strip().lower()
    if s.endswith("s"):
        return int(s[:-1])
    if s.endswith("m"):
        return int(s[:-1]) * 60
    if s.endswith("h"):
        return int(s[:-1]) * 3600
    try:
        return int(s)
    except ValueError:
        return 60
