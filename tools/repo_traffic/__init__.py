"""Repo Traffic - Views and clones for an account's public, non-fork repositories."""

from .fetcher import FetchError, ListError, RepoTrafficFetcher, TrafficFetchError, join_records
from .models import RepositoryRecord, TrafficCount, TrafficKind, TrafficMap, TrafficReport

__all__ = [
    "FetchError",
    "ListError",
    "RepoTrafficFetcher",
    "RepositoryRecord",
    "TrafficCount",
    "TrafficFetchError",
    "TrafficKind",
    "TrafficMap",
    "TrafficReport",
    "join_records",
]
