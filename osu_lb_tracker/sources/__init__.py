"""API clients used by the tracker."""

from osu_lb_tracker.sources.osu import OsuClient
from osu_lb_tracker.sources.osustats import fetch_total_lb_count
from osu_lb_tracker.sources.respektive import fetch_score_rank

__all__ = ["OsuClient", "fetch_total_lb_count", "fetch_score_rank"]
