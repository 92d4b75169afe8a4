"""Persistent key-value stores backing the tracker state."""

import json
from pathlib import Path
from typing import Any, Protocol

from osu_lb_tracker import console

DEFAULT_STORE_PATH = Path.home() / ".osu-lb-tracker.json"


class CounterStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryStore:
    """In-process store. Records every key written, in order."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.data: dict[str, Any] = dict(data or {})
        self.writes: list[str] = []

    def get(self, key: str, default: Any = None) -> Any:
        value = self.data.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.writes.append(key)


class JsonFileStore:
    """JSON object on disk, rewritten in full on every ``set``."""

    def __init__(self, path: Path = DEFAULT_STORE_PATH):
        self.path = Path(path)
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            self._data = {}
            if self.path.exists():
                try:
                    loaded = json.loads(self.path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as e:
                    console.print(f"[red]Could not read store {self.path}: {e}[/red]")
                else:
                    if isinstance(loaded, dict):
                        self._data = loaded
                    else:
                        console.print(f"[red]Ignoring store {self.path}: not a JSON object[/red]")
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        value = self._load().get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)
