"""Typed data model for osu! API payloads and tracker settings."""

from dataclasses import dataclass
from enum import Enum


class Gamemode(str, Enum):
    OSU = "osu"
    TAIKO = "taiko"
    FRUITS = "fruits"
    MANIA = "mania"

    @property
    def ruleset_id(self) -> int:
        """Numeric ruleset id used by osustats."""
        return RULESET_IDS[self]


RULESET_IDS = {
    Gamemode.OSU: 0,
    Gamemode.TAIKO: 1,
    Gamemode.FRUITS: 2,
    Gamemode.MANIA: 3,
}

TOP50_RANK = 50
TOP8_RANK = 8


@dataclass
class Settings:
    client_id: str
    client_secret: str
    user_id: str
    gamemode: Gamemode = Gamemode.OSU

    @classmethod
    def from_store(cls, store) -> "Settings | None":
        data = store.get("settings")
        if not data:
            return None
        try:
            return cls(
                client_id=str(data["client_id"]),
                client_secret=str(data["client_secret"]),
                user_id=str(data["user_id"]),
                gamemode=Gamemode(data.get("gamemode") or Gamemode.OSU.value),
            )
        except (KeyError, ValueError):
            return None

    def to_store(self) -> dict:
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "user_id": self.user_id,
            "gamemode": self.gamemode.value,
        }


@dataclass
class AccessToken:
    access_token: str
    expires_in: int
    expires_on: float

    def is_valid(self, now: float, margin: float = 0) -> bool:
        return now < self.expires_on - margin

    @classmethod
    def from_store(cls, data: dict | None) -> "AccessToken | None":
        if not data or "access_token" not in data:
            return None
        return cls(
            access_token=data["access_token"],
            expires_in=int(data.get("expires_in", 0)),
            expires_on=float(data.get("expires_on", 0)),
        )

    def to_store(self) -> dict:
        return {
            "access_token": self.access_token,
            "expires_in": self.expires_in,
            "expires_on": self.expires_on,
        }


@dataclass
class ActivityRecord:
    type: str
    rank: int | None = None
    beatmap_title: str | None = None
    beatmap_url: str | None = None
    mode: str | None = None
    created_at: str | None = None

    @property
    def is_rank(self) -> bool:
        return self.type == "rank" and self.rank is not None and self.beatmap_title is not None

    @classmethod
    def from_api(cls, event: dict) -> "ActivityRecord":
        """Build from one entry of the osu! ``recent_activity`` endpoint."""
        beatmap = event.get("beatmap")
        if not isinstance(beatmap, dict):
            beatmap = {}
        rank = event.get("rank")
        return cls(
            type=event.get("type", ""),
            rank=int(rank) if rank is not None else None,
            beatmap_title=beatmap.get("title"),
            beatmap_url=beatmap.get("url"),
            mode=event.get("mode"),
            created_at=event.get("created_at"),
        )


@dataclass
class UserStats:
    user_id: int
    username: str
    gamemode: Gamemode
    pp: float = 0.0
    global_rank: int | None = None
    country_rank: int | None = None
    accuracy: float = 0.0
    play_count: int = 0
    ranked_score: int = 0
    count_ss: int = 0
    count_s: int = 0
    count_a: int = 0

    @classmethod
    def from_api(cls, user: dict, gamemode: Gamemode) -> "UserStats":
        """Build from the osu! ``users/{id}/{mode}`` payload."""
        stats = user.get("statistics") or {}
        grades = stats.get("grade_counts") or {}
        return cls(
            user_id=user["id"],
            username=user["username"],
            gamemode=gamemode,
            pp=stats.get("pp") or 0.0,
            global_rank=stats.get("global_rank"),
            country_rank=stats.get("country_rank"),
            accuracy=stats.get("hit_accuracy") or 0.0,
            play_count=stats.get("play_count") or 0,
            ranked_score=stats.get("ranked_score") or 0,
            count_ss=(grades.get("ss") or 0) + (grades.get("ssh") or 0),
            count_s=(grades.get("s") or 0) + (grades.get("sh") or 0),
            count_a=grades.get("a") or 0,
        )
