"""osu! API v2 client: client-credentials token, user profile, recent activity."""

import time
from collections.abc import Callable

import httpx

from osu_lb_tracker import console
from osu_lb_tracker.models import AccessToken, ActivityRecord, Settings, UserStats
from osu_lb_tracker.sources.http import request_with_retry
from osu_lb_tracker.store import CounterStore

OSU_TOKEN_URL = "https://osu.ppy.sh/oauth/token"
OSU_API = "https://osu.ppy.sh/api/v2"
OSU_API_VERSION = "20220707"
ACTIVITY_LIMIT = 100
# Refresh a little before the server-side expiry.
TOKEN_EXPIRY_MARGIN = 60


class OsuClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        store: CounterStore,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.store = store
        self.clock = clock

    @property
    def settings(self) -> Settings | None:
        return Settings.from_store(self.store)

    def invalidate_token(self) -> None:
        self.store.set("access_token", None)

    async def get_access_token(self) -> str | None:
        """Return a cached bearer token, requesting a new one when expired."""
        settings = self.settings
        if settings is None:
            return None

        now = self.clock()
        cached = AccessToken.from_store(self.store.get("access_token"))
        if cached and cached.is_valid(now, TOKEN_EXPIRY_MARGIN):
            return cached.access_token

        try:
            resp = await request_with_retry(
                self.client,
                "POST",
                OSU_TOKEN_URL,
                json={
                    "client_id": settings.client_id,
                    "client_secret": settings.client_secret,
                    "grant_type": "client_credentials",
                    "scope": "public",
                },
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            data = resp.json()
            token = AccessToken(
                access_token=data["access_token"],
                expires_in=int(data["expires_in"]),
                expires_on=now + int(data["expires_in"]),
            )
        except (httpx.HTTPError, KeyError, ValueError) as e:
            console.print(f"[red]Failed to get osu! access token: {e}[/red]")
            return None

        self.store.set("access_token", token.to_store())
        return token.access_token

    async def _api_get(self, path: str, params: dict | None = None, retry_auth: bool = True) -> httpx.Response | None:
        access_token = await self.get_access_token()
        if not access_token:
            return None

        resp = await request_with_retry(
            self.client,
            "GET",
            f"{OSU_API}{path}",
            params=params,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {access_token}",
                "x-api-version": OSU_API_VERSION,
            },
        )
        if resp.status_code == 401 and retry_auth:
            console.print("[yellow]osu! token rejected, requesting a new one[/yellow]")
            self.invalidate_token()
            return await self._api_get(path, params, retry_auth=False)
        resp.raise_for_status()
        return resp

    async def get_user(self) -> UserStats | None:
        """Fetch the configured user's profile and remember the username."""
        settings = self.settings
        if settings is None:
            return None

        try:
            resp = await self._api_get(f"/users/{settings.user_id}/{settings.gamemode.value}")
            if resp is None:
                return None
            user = UserStats.from_api(resp.json(), settings.gamemode)
        except (httpx.HTTPError, KeyError, ValueError, TypeError, AttributeError) as e:
            console.print(f"[red]Failed to fetch osu! user {settings.user_id}: {e}[/red]")
            return None

        self.store.set("username", user.username)
        return user

    async def get_user_activity(self) -> list[ActivityRecord] | None:
        """Fetch the configured user's recent activity feed, newest first."""
        settings = self.settings
        if settings is None:
            return None

        try:
            resp = await self._api_get(
                f"/users/{settings.user_id}/recent_activity",
                params={"legacy_only": 0, "limit": ACTIVITY_LIMIT},
            )
            if resp is None:
                return None
            events = resp.json()
            if not isinstance(events, list):
                raise ValueError("recent_activity did not return a list")
            skipped = sum(1 for e in events if not isinstance(e, dict))
            if skipped:
                console.print(f"[yellow]Skipping {skipped} malformed activity entries.[/yellow]")
            return [ActivityRecord.from_api(e) for e in events if isinstance(e, dict)]
        except (httpx.HTTPError, KeyError, ValueError, TypeError, AttributeError) as e:
            console.print(f"[red]Failed to fetch recent activity for {settings.user_id}: {e}[/red]")
            return None
