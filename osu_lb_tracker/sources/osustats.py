"""osustats lifetime leaderboard count lookup."""

import httpx

from osu_lb_tracker import console
from osu_lb_tracker.models import Gamemode
from osu_lb_tracker.sources.http import request_with_retry

OSUSTATS_SCORES_API = "https://osustats.ppy.sh/api/getScores"


async def fetch_total_lb_count(
    client: httpx.AsyncClient,
    username: str | None,
    rank_max: int,
    gamemode: Gamemode = Gamemode.OSU,
) -> int:
    """Count the user's leaderboard scores ranked 1..rank_max. Returns 0 on failure."""
    if not username:
        console.print("[yellow]No username known yet, cannot look up leaderboard totals.[/yellow]")
        return 0

    try:
        resp = await request_with_retry(
            client,
            "POST",
            OSUSTATS_SCORES_API,
            data={
                "u1": username,
                "gamemode": gamemode.ruleset_id,
                "rankMin": 1,
                "rankMax": rank_max,
            },
        )
        resp.raise_for_status()
        result = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        console.print(f"[red]Failed to fetch top {rank_max} count for {username}: {e}[/red]")
        return 0

    # Response is [scores, total_count, ...]
    if isinstance(result, list) and len(result) >= 2 and isinstance(result[1], int):
        return result[1]
    return 0
