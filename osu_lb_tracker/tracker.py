"""Incremental leaderboard spot tracking.

Folds "rank achieved" events from the recent-activity feed into two best-rank
mappings (top 50 and top 8), counts distinct titles newly entering each map
during the session, and adds a lifetime baseline fetched once when tracking
starts.
"""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from osu_lb_tracker import console
from osu_lb_tracker.models import TOP8_RANK, TOP50_RANK, ActivityRecord
from osu_lb_tracker.store import CounterStore

TOP50_SPOTS_KEY = "top50s_spots"
TOP50_COUNT_KEY = "top50s_count"
TOP8_SPOTS_KEY = "top8s_spots"
TOP8_COUNT_KEY = "top8s_count"
RUN_COUNT_KEY = "runCount"
TOTAL_TOP50_KEY = "Total_top50s_count"
TOTAL_TOP8_KEY = "Total_top8s_count"

TRACKER_KEYS = (
    TOP50_SPOTS_KEY,
    TOP50_COUNT_KEY,
    TOP8_SPOTS_KEY,
    TOP8_COUNT_KEY,
    RUN_COUNT_KEY,
    TOTAL_TOP50_KEY,
    TOTAL_TOP8_KEY,
)

ActivitySource = Callable[[], Awaitable[list[ActivityRecord] | None]]
BaselineFetcher = Callable[[int], Awaitable[int]]


class TrackerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    TRACKING = "tracking"


@dataclass
class TrackerSnapshot:
    top50_spots: dict[str, int] = field(default_factory=dict)
    top8_spots: dict[str, int] = field(default_factory=dict)
    top50_count: int = 0
    top8_count: int = 0
    total_top50: int = 0
    total_top8: int = 0
    run_count: int = 0

    @classmethod
    def load(cls, store: CounterStore) -> "TrackerSnapshot":
        return cls(
            top50_spots=dict(store.get(TOP50_SPOTS_KEY) or {}),
            top8_spots=dict(store.get(TOP8_SPOTS_KEY) or {}),
            top50_count=store.get(TOP50_COUNT_KEY) or 0,
            top8_count=store.get(TOP8_COUNT_KEY) or 0,
            total_top50=store.get(TOTAL_TOP50_KEY) or 0,
            total_top8=store.get(TOTAL_TOP8_KEY) or 0,
            run_count=store.get(RUN_COUNT_KEY) or 0,
        )

    @property
    def totals(self) -> tuple[int, int]:
        return self.top50_count + self.total_top50, self.top8_count + self.total_top8


def fold_rank_events(
    activities: Iterable[ActivityRecord],
    top50_spots: dict[str, int],
    top8_spots: dict[str, int],
) -> tuple[int, int]:
    """Merge rank events into the best-rank maps in place.

    Returns how many titles were newly added to the top 50 and top 8 maps.
    """
    new_top50 = 0
    new_top8 = 0

    for activity in activities:
        if not activity.is_rank:
            continue

        title = activity.beatmap_title
        rank = activity.rank

        if title not in top50_spots:
            if rank > TOP50_RANK:
                continue
            top50_spots[title] = rank
            new_top50 += 1
            if rank <= TOP8_RANK:
                top8_spots[title] = rank
                new_top8 += 1
        elif rank < top50_spots[title]:
            top50_spots[title] = rank
            if title in top8_spots:
                top8_spots[title] = rank
            elif rank <= TOP8_RANK:
                top8_spots[title] = rank
                new_top8 += 1

    return new_top50, new_top8


class LeaderboardSpotTracker:
    """Tracks top 50 / top 8 leaderboard spots across polling cycles.

    Only one ``track()`` call may run at a time against a given store.
    """

    def __init__(
        self,
        store: CounterStore,
        activity_source: ActivitySource,
        baseline_fetcher: BaselineFetcher,
    ):
        self.store = store
        self.activity_source = activity_source
        self.baseline_fetcher = baseline_fetcher

    @property
    def state(self) -> TrackerState:
        if (self.store.get(RUN_COUNT_KEY) or 0) > 0:
            return TrackerState.TRACKING
        return TrackerState.UNINITIALIZED

    def snapshot(self) -> TrackerSnapshot:
        return TrackerSnapshot.load(self.store)

    async def track(self) -> tuple[int, int] | None:
        """Run one polling cycle and return ``(top50_total, top8_total)``.

        Returns None, leaving the store untouched, when no activity could be
        fetched.
        """
        snap = TrackerSnapshot.load(self.store)

        activities = await self.activity_source()
        if activities is None:
            return None

        new_top50, new_top8 = fold_rank_events(activities, snap.top50_spots, snap.top8_spots)

        baseline = None
        if snap.run_count == 0:
            # Fetched before any write so a failure here leaves the store untouched.
            baseline = (
                await self.baseline_fetcher(TOP50_RANK),
                await self.baseline_fetcher(TOP8_RANK),
            )

        if baseline is None:
            self.store.set(TOP50_COUNT_KEY, snap.top50_count + new_top50)
            self.store.set(TOP8_COUNT_KEY, snap.top8_count + new_top8)
        else:
            # First cycle: the feed backlog becomes part of the baseline.
            if new_top50 or new_top8:
                console.print(
                    f"[dim]First run: {new_top50} top 50 and {new_top8} top 8 spots "
                    "from the activity backlog are not counted this session.[/dim]"
                )
            self.store.set(TOP50_COUNT_KEY, 0)
            self.store.set(TOP8_COUNT_KEY, 0)
            self.store.set(TOTAL_TOP50_KEY, baseline[0])
            self.store.set(TOTAL_TOP8_KEY, baseline[1])

        self.store.set(RUN_COUNT_KEY, snap.run_count + 1)
        self.store.set(TOP50_SPOTS_KEY, snap.top50_spots)
        self.store.set(TOP8_SPOTS_KEY, snap.top8_spots)

        return self.snapshot().totals


def reset_tracking(store: CounterStore) -> None:
    """Clear all tracker state so the next cycle starts a new session."""
    for key in TRACKER_KEYS:
        store.set(key, None)
