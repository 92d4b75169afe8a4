"""score.respektive.pw ranked score rank lookup."""

import httpx

from osu_lb_tracker import console
from osu_lb_tracker.models import Gamemode
from osu_lb_tracker.sources.http import request_with_retry

RESPEKTIVE_USER_API = "https://score.respektive.pw/u"


async def fetch_score_rank(client: httpx.AsyncClient, user_id: str, gamemode: Gamemode = Gamemode.OSU) -> dict | None:
    try:
        resp = await request_with_retry(
            client,
            "GET",
            f"{RESPEKTIVE_USER_API}/{user_id}",
            params={"mode": gamemode.value},
        )
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        console.print(f"[red]Failed to fetch score rank for {user_id}: {e}[/red]")
        return None

    if isinstance(data, list) and data:
        return data[0]
    return None
