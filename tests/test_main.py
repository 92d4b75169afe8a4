"""Tests for the CLI entry point."""

import pytest
import httpx

from osu_lb_tracker.main import main, merge_settings, parse_args
from osu_lb_tracker.store import JsonFileStore, MemoryStore


def _rank_event(title: str, rank: int) -> dict:
    return {"type": "rank", "rank": rank, "mode": "osu", "beatmap": {"title": title, "url": "/b/1"}}


@pytest.fixture
def api(monkeypatch):
    """Fake osu!, osustats and respektive APIs behind httpx.AsyncClient."""
    monkeypatch.delenv("OSU_CLIENT_ID", raising=False)
    monkeypatch.delenv("OSU_CLIENT_SECRET", raising=False)

    state = {"activity": [], "totals": {"50": 100, "8": 20}}

    async def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "osustats.ppy.sh":
            rank_max = request.content.decode().split("rankMax=")[1]
            return httpx.Response(200, json=[[], state["totals"][rank_max]])
        if host == "score.respektive.pw":
            return httpx.Response(200, json=[{"rank": 4321}])
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 86400})
        if request.url.path.endswith("/recent_activity"):
            return httpx.Response(200, json=state["activity"])
        return httpx.Response(200, json={"id": 2, "username": "peppy", "statistics": {"pp": 1.0}})

    _OrigClient = httpx.AsyncClient

    def _mock_client(**kw):
        kw.pop("transport", None)
        return _OrigClient(transport=httpx.MockTransport(handler), **kw)

    monkeypatch.setattr(httpx, "AsyncClient", _mock_client)
    return state


CREDS = ["--client-id", "123", "--client-secret", "shh", "--user-id", "2"]


@pytest.mark.asyncio
async def test_missing_settings_exits_with_error(tmp_path, api):
    assert await main(["--store", str(tmp_path / "s.json"), "--once"]) == 1


@pytest.mark.asyncio
async def test_two_polls_end_to_end(tmp_path, api):
    path = tmp_path / "s.json"
    api["activity"] = [_rank_event("Song A", 30), _rank_event("Song A", 10), _rank_event("Song B", 5)]

    assert await main(["--store", str(path), "--once", *CREDS]) == 0

    store = JsonFileStore(path)
    assert store.get("username") == "peppy"
    assert store.get("top50s_spots") == {"Song A": 10, "Song B": 5}
    assert store.get("top8s_spots") == {"Song B": 5}
    assert store.get("Total_top50s_count") == 100
    assert store.get("Total_top8s_count") == 20
    assert store.get("runCount") == 1

    # Settings were saved, so the second run needs no credentials
    api["activity"] = [_rank_event("Song C", 8)] + api["activity"]
    assert await main(["--store", str(path), "--once"]) == 0

    store = JsonFileStore(path)
    assert store.get("top50s_count") == 1
    assert store.get("top8s_count") == 1
    assert store.get("runCount") == 2


@pytest.mark.asyncio
async def test_reset_flag_starts_new_session(tmp_path, api):
    path = tmp_path / "s.json"
    api["activity"] = [_rank_event("Song A", 3)]
    await main(["--store", str(path), "--once", *CREDS])
    api["activity"] = [_rank_event("Song B", 3)]
    await main(["--store", str(path), "--once"])
    assert JsonFileStore(path).get("top8s_count") == 1

    api["totals"] = {"50": 102, "8": 22}
    await main(["--store", str(path), "--once", "--reset"])

    store = JsonFileStore(path)
    assert store.get("runCount") == 1
    assert store.get("top8s_count") == 0
    assert store.get("Total_top8s_count") == 22
    assert store.get("top50s_spots") == {"Song B": 3}


def test_merge_settings_overrides_and_drops_token(monkeypatch):
    monkeypatch.delenv("OSU_CLIENT_ID", raising=False)
    monkeypatch.delenv("OSU_CLIENT_SECRET", raising=False)
    store = MemoryStore(
        {
            "settings": {"client_id": "old", "client_secret": "shh", "user_id": "2"},
            "access_token": {"access_token": "tok", "expires_in": 1, "expires_on": 1},
        }
    )

    settings = merge_settings(store, parse_args(["--client-id", "new", "--gamemode", "mania"]))

    assert settings.client_id == "new"
    assert settings.user_id == "2"
    assert settings.gamemode.value == "mania"
    assert store.get("access_token") is None


def test_merge_settings_unchanged_writes_nothing(monkeypatch):
    monkeypatch.delenv("OSU_CLIENT_ID", raising=False)
    monkeypatch.delenv("OSU_CLIENT_SECRET", raising=False)
    store = MemoryStore({"settings": {"client_id": "a", "client_secret": "b", "user_id": "2"}})

    assert merge_settings(store, parse_args(["--user-id", "2"])) is not None
    assert store.writes == []


def test_credentials_from_environment(monkeypatch):
    monkeypatch.setenv("OSU_CLIENT_ID", "env-id")
    monkeypatch.setenv("OSU_CLIENT_SECRET", "env-secret")
    args = parse_args(["--user-id", "7"])
    assert args.client_id == "env-id"
    assert args.client_secret == "env-secret"


@pytest.mark.asyncio
async def test_failed_cycle_keeps_polling(tmp_path, api, monkeypatch):
    import osu_lb_tracker.main as main_mod

    calls = 0

    async def track(self):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("unexpected payload")
        return (5, 1)

    class StopPolling(Exception):
        pass

    sleeps: list[float] = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 2:
            raise StopPolling

    monkeypatch.setattr(main_mod.LeaderboardSpotTracker, "track", track)
    monkeypatch.setattr(main_mod.asyncio, "sleep", fake_sleep)

    with pytest.raises(StopPolling):
        await main(["--store", str(tmp_path / "s.json"), "--interval", "5", *CREDS])

    assert calls == 2
    assert sleeps == [5.0, 5.0]


@pytest.mark.asyncio
async def test_failed_single_cycle_exits_with_error(tmp_path, api, monkeypatch):
    import osu_lb_tracker.main as main_mod

    async def track(self):
        raise RuntimeError("unexpected payload")

    monkeypatch.setattr(main_mod.LeaderboardSpotTracker, "track", track)

    assert await main(["--store", str(tmp_path / "s.json"), "--once", *CREDS]) == 1
