"""osu! leaderboard spot tracker package."""

from rich.console import Console

console = Console()
