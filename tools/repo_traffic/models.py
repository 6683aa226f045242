"""Data model for repository traffic statistics."""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class TrafficKind(str, Enum):
    """Traffic endpoints. The value is the URL path segment."""

    VIEWS = "views"
    CLONES = "clones"


@dataclass(frozen=True)
class TrafficCount:
    """Total and distinct-actor event counts over the platform's 14-day window."""

    count: int
    uniques: int

    @classmethod
    def from_api(cls, body: Any) -> "TrafficCount":
        """
        Build a TrafficCount from a traffic/views or traffic/clones response body.

        Raises:
            ValueError: If the body is not an object with integer count and uniques
        """
        if not isinstance(body, dict):
            raise ValueError(f"Expected a JSON object, got {type(body).__name__}")

        values = {}
        for key in ("count", "uniques"):
            value = body.get(key)
            # bool is an int subclass but never a valid count
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Missing or non-integer '{key}' in traffic response")
            values[key] = value

        return cls(count=values["count"], uniques=values["uniques"])

    def __add__(self, other: "TrafficCount") -> "TrafficCount":
        return TrafficCount(self.count + other.count, self.uniques + other.uniques)


@dataclass(frozen=True)
class RepositoryRecord:
    """Joined views and clones for one repository."""

    name: str
    views: TrafficCount
    clones: TrafficCount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "views": self.views.count,
            "unique_views": self.views.uniques,
            "clones": self.clones.count,
            "unique_clones": self.clones.uniques,
        }


class TrafficMap:
    """
    Repository name to TrafficCount mapping, safe for concurrent writers.

    Every read and write holds an internal lock. A name may be written only
    once per map; one run performs exactly one fetch per repository and kind.
    """

    def __init__(self, kind: TrafficKind):
        self.kind = kind
        self._lock = threading.Lock()
        self._data: Dict[str, TrafficCount] = {}

    def put(self, name: str, traffic: TrafficCount) -> None:
        """
        Insert the traffic count for a repository.

        Raises:
            KeyError: If the repository already has an entry
        """
        with self._lock:
            if name in self._data:
                raise KeyError(f"{self.kind.value} already recorded for {name}")
            self._data[name] = traffic

    def get(self, name: str) -> Optional[TrafficCount]:
        with self._lock:
            return self._data.get(name)

    def as_dict(self) -> Dict[str, TrafficCount]:
        """Snapshot of the current entries."""
        with self._lock:
            return dict(self._data)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.as_dict()))

    def __repr__(self) -> str:
        return f"TrafficMap({self.kind.value}, {len(self)} entries)"


@dataclass
class TrafficReport:
    """Outcome of a full run for one account."""

    account: str
    records: List[RepositoryRecord] = field(default_factory=list)
    failures: List[Any] = field(default_factory=list)  # TrafficFetchError
    skipped: List[str] = field(default_factory=list)

    @property
    def total_views(self) -> TrafficCount:
        return sum((r.views for r in self.records), TrafficCount(0, 0))

    @property
    def total_clones(self) -> TrafficCount:
        return sum((r.clones for r in self.records), TrafficCount(0, 0))
