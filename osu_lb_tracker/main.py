"""osu! leaderboard spot tracker: CLI entry point."""

import argparse
import asyncio
import os
import sys
from pathlib import Path

import httpx
from rich.progress import Progress, SpinnerColumn, TextColumn

from osu_lb_tracker import console
from osu_lb_tracker.models import Gamemode, Settings, UserStats
from osu_lb_tracker.sources import OsuClient, fetch_score_rank, fetch_total_lb_count
from osu_lb_tracker.store import DEFAULT_STORE_PATH, CounterStore, JsonFileStore
from osu_lb_tracker.tracker import LeaderboardSpotTracker, reset_tracking


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track osu! top 50 / top 8 leaderboard spots")
    parser.add_argument(
        "--store",
        type=str,
        default=str(DEFAULT_STORE_PATH),
        help=f"JSON file holding settings and tracker state (default: {DEFAULT_STORE_PATH})",
    )
    parser.add_argument("--client-id", type=str, default=os.environ.get("OSU_CLIENT_ID"), help="osu! OAuth client id")
    parser.add_argument(
        "--client-secret",
        type=str,
        default=os.environ.get("OSU_CLIENT_SECRET"),
        help="osu! OAuth client secret",
    )
    parser.add_argument("--user-id", type=str, default=None, help="osu! user id to track")
    parser.add_argument(
        "--gamemode",
        choices=[m.value for m in Gamemode],
        default=None,
        help="Ruleset to track (default: osu)",
    )
    parser.add_argument("--interval", type=float, default=60, help="Seconds between polls (default: 60)")
    parser.add_argument("--once", action="store_true", help="Poll a single time and exit")
    parser.add_argument("--reset", action="store_true", help="Start a new tracking session")
    return parser.parse_args(argv)


def merge_settings(store: CounterStore, args: argparse.Namespace) -> Settings | None:
    """Apply settings given on the command line over the stored ones."""
    stored = dict(store.get("settings") or {})
    overrides = {
        "client_id": args.client_id,
        "client_secret": args.client_secret,
        "user_id": args.user_id,
        "gamemode": args.gamemode,
    }
    changed = {k: v for k, v in overrides.items() if v is not None and stored.get(k) != v}
    if changed:
        stored.update(changed)
        store.set("settings", stored)
        # A different account or app invalidates the cached token.
        if "client_id" in changed or "client_secret" in changed:
            store.set("access_token", None)
    return Settings.from_store(store)


def print_user(user: UserStats, score_rank: dict | None) -> None:
    rank = f"#{user.global_rank:,}" if user.global_rank else "-"
    console.print(
        f"[bold]{user.username}[/bold] ({user.gamemode.value}) · {user.pp:,.0f}pp · {rank} · "
        f"{user.accuracy:.2f}% · SS {user.count_ss} S {user.count_s} A {user.count_a}"
    )
    if score_rank and score_rank.get("rank"):
        console.print(f"[dim]Ranked score rank #{score_rank['rank']:,}[/dim]")


async def poll(
    tracker: LeaderboardSpotTracker,
    osu: OsuClient,
    client: httpx.AsyncClient,
    settings: Settings,
) -> tuple[int, int] | None:
    """Run one polling cycle: profile, score rank and leaderboard spots."""
    user = await osu.get_user()
    if user is not None:
        score_rank = await fetch_score_rank(client, settings.user_id, settings.gamemode)
        print_user(user, score_rank)

    spots = await tracker.track()
    if spots is None:
        console.print("[yellow]No activity available, skipping this cycle.[/yellow]")
        return None

    top50, top8 = spots
    snap = tracker.snapshot()
    console.print(
        f"[green]Top 50s: {top50} (+{snap.top50_count}) · Top 8s: {top8} (+{snap.top8_count})[/green]"
    )
    return spots


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    store = JsonFileStore(Path(args.store).expanduser())

    settings = merge_settings(store, args)
    if settings is None:
        console.print(
            "[red]Missing settings: pass --client-id, --client-secret and --user-id "
            "(or set OSU_CLIENT_ID / OSU_CLIENT_SECRET).[/red]"
        )
        return 1

    if args.reset:
        reset_tracking(store)
        console.print("[dim]Tracker state cleared, starting a new session.[/dim]")

    async with httpx.AsyncClient(timeout=30) as client:
        osu = OsuClient(client, store)

        async def baseline(rank_max: int) -> int:
            username = store.get("username")
            if not username:
                user = await osu.get_user()
                username = user.username if user else None
            return await fetch_total_lb_count(client, username, rank_max, settings.gamemode)

        tracker = LeaderboardSpotTracker(store, osu.get_user_activity, baseline)

        failed = False
        cycle = 0
        while True:
            cycle += 1
            with Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]Polling osu! API..."),
                TextColumn(f"cycle {cycle}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task("poll", total=None)
                try:
                    await poll(tracker, osu, client, settings)
                    failed = False
                except Exception as e:
                    console.print(f"[red]Polling cycle {cycle} failed: {e!r}[/red]")
                    failed = True

            if args.once:
                break
            await asyncio.sleep(args.interval)

    return 1 if failed else 0


def cli():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


if __name__ == "__main__":
    cli()
