"""Core traffic fetching logic: list repositories, fan out traffic requests, join results."""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from shared.logger import get_logger

from .models import RepositoryRecord, TrafficCount, TrafficKind, TrafficMap, TrafficReport

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 10.0


class FetchError(Exception):
    """A GitHub API call failed or returned something unusable."""

    def __init__(self, stage: str, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.stage = stage
        self.status = status
        self.message = message


class ListError(FetchError):
    """Listing the account's repositories failed. Fatal for the whole run."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__("list", message, status)


class TrafficFetchError(FetchError):
    """A views or clones request for one repository failed."""

    def __init__(self, repo: str, kind: TrafficKind, message: str, status: Optional[int] = None):
        super().__init__(kind.value, message, status)
        self.repo = repo
        self.kind = kind

    def to_dict(self) -> Dict[str, object]:
        return {
            "repo": self.repo,
            "stage": self.stage,
            "status": self.status,
            "message": self.message,
        }


@dataclass
class TrafficResult:
    """Outcome of one traffic request. Exactly one of traffic and error is set."""

    repo: str
    kind: TrafficKind
    traffic: Optional[TrafficCount] = None
    error: Optional[TrafficFetchError] = None


class RepoTrafficFetcher:
    """
    Collect traffic statistics for an account's public, non-fork repositories.

    Uses GitHub API v3 (REST). Only the first page of the repository list is
    read; accounts with more repositories than one page holds get a truncated
    list.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_concurrency: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            base_url: API root URL
            timeout: Per-request timeout in seconds
            max_concurrency: Upper bound on in-flight traffic requests (unbounded if None)
            transport: httpx transport override, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self.transport = transport

        self.headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "repo-traffic",
        }

    @classmethod
    def from_config(
        cls,
        config,
        max_concurrency: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "RepoTrafficFetcher":
        """Build a fetcher from a TrafficConfig."""
        return cls(
            base_url=config.base_url,
            timeout=config.timeout,
            max_concurrency=max_concurrency,
            transport=transport,
        )

    def _client(self) -> httpx.Client:
        return httpx.Client(headers=self.headers, timeout=self.timeout, transport=self.transport)

    def _async_client(self, token: str) -> httpx.AsyncClient:
        headers = dict(self.headers)
        headers["Authorization"] = f"Token {token}"
        return httpx.AsyncClient(headers=headers, timeout=self.timeout, transport=self.transport)

    def list_public_repos(self, account: str) -> List[str]:
        """
        List the names of an account's public repositories that are not forks.

        The request is unauthenticated. Names are returned in API order.

        Args:
            account: GitHub user name

        Returns:
            Repository names

        Raises:
            ListError: On a network error, a non-200 status or a malformed body
        """
        url = f"{self.base_url}/users/{account}/repos"
        logger.info(f"Listing repositories for {account}")

        try:
            with self._client() as client:
                response = client.get(url)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.error(f"Network error listing repositories: {e}")
            raise ListError(f"Network error listing repositories for {account}: {e}") from e

        if response.status_code != 200:
            logger.error(f"Listing repositories returned HTTP {response.status_code}")
            raise ListError(
                f"Listing repositories for {account} returned HTTP {response.status_code}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ListError(f"Invalid JSON in repository list: {e}", status=response.status_code) from e

        if not isinstance(data, list):
            raise ListError(
                f"Expected a JSON array of repositories, got {type(data).__name__}",
                status=response.status_code,
            )

        repos = []
        for entry in data:
            if (
                not isinstance(entry, dict)
                or not isinstance(entry.get("name"), str)
                or not isinstance(entry.get("fork"), bool)
            ):
                raise ListError(f"Malformed repository entry: {entry!r}", status=response.status_code)

            if entry["fork"]:
                logger.debug(f"Skipping fork {entry['name']}")
                continue
            repos.append(entry["name"])

        return repos

    async def _request_traffic(
        self,
        client: httpx.AsyncClient,
        account: str,
        repo: str,
        kind: TrafficKind,
    ) -> TrafficResult:
        url = f"{self.base_url}/repos/{account}/{repo}/traffic/{kind.value}"
        logger.debug(f"GET {url}")

        try:
            response = await client.get(url)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            return self._failure(repo, kind, f"request failed: {e}")

        if response.status_code != 200:
            return self._failure(repo, kind, f"HTTP {response.status_code}", status=response.status_code)

        try:
            traffic = TrafficCount.from_api(response.json())
        except ValueError as e:
            return self._failure(repo, kind, f"malformed response: {e}", status=response.status_code)

        return TrafficResult(repo=repo, kind=kind, traffic=traffic)

    def _failure(
        self,
        repo: str,
        kind: TrafficKind,
        reason: str,
        status: Optional[int] = None,
    ) -> TrafficResult:
        err = TrafficFetchError(repo, kind, f"Failed to fetch {kind.value} for {repo}: {reason}", status)
        logger.warning(err.message)
        return TrafficResult(repo=repo, kind=kind, error=err)

    async def _fetch_into(
        self,
        client: httpx.AsyncClient,
        account: str,
        repo: str,
        target: TrafficMap,
        semaphore: Optional[asyncio.Semaphore],
    ) -> TrafficResult:
        if semaphore is None:
            result = await self._request_traffic(client, account, repo, target.kind)
        else:
            async with semaphore:
                result = await self._request_traffic(client, account, repo, target.kind)

        if result.traffic is not None:
            target.put(repo, result.traffic)
        return result

    async def fetch_traffic_async(
        self,
        account: str,
        token: str,
        repos: Sequence[str],
    ) -> Tuple[TrafficMap, TrafficMap, List[TrafficFetchError]]:
        """
        Fetch views and clones for every repository concurrently.

        All requests are started at once (subject to max_concurrency) and
        awaited together. A failed request is logged and leaves its repository
        out of the corresponding map; it never aborts the others.

        Args:
            account: Repository owner
            token: Personal access token with push access to the repositories
            repos: Repository names

        Returns:
            Tuple of (views map, clones map, failures)
        """
        views = TrafficMap(TrafficKind.VIEWS)
        clones = TrafficMap(TrafficKind.CLONES)

        unique_repos = list(dict.fromkeys(repos))
        if not unique_repos:
            return views, clones, []

        logger.info(f"Fetching traffic for {len(unique_repos)} repositories")
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async with self._async_client(token) as client:
            results = await asyncio.gather(
                *(
                    self._fetch_into(client, account, repo, target, semaphore)
                    for repo in unique_repos
                    for target in (views, clones)
                )
            )

        failures = [r.error for r in results if r.error is not None]
        logger.info(
            f"Traffic fetch complete: {len(results) - len(failures)} succeeded, {len(failures)} failed"
        )
        return views, clones, failures

    def fetch_traffic_with_failures(
        self,
        account: str,
        token: str,
        repos: Sequence[str],
    ) -> Tuple[TrafficMap, TrafficMap, List[TrafficFetchError]]:
        """Blocking wrapper around fetch_traffic_async."""
        return asyncio.run(self.fetch_traffic_async(account, token, repos))

    def fetch_traffic(
        self,
        account: str,
        token: str,
        repos: Sequence[str],
    ) -> Tuple[TrafficMap, TrafficMap]:
        """
        Fetch views and clones for every repository.

        Returns:
            Tuple of (views map, clones map)
        """
        views, clones, _ = self.fetch_traffic_with_failures(account, token, repos)
        return views, clones

    def collect(self, account: str, token: str) -> TrafficReport:
        """
        Run the whole pipeline for an account: list, fetch, join.

        Raises:
            ListError: If the repository list cannot be fetched
        """
        repos = self.list_public_repos(account)
        logger.info(f"Found {len(repos)} public non-fork repositories for {account}")

        views, clones, failures = self.fetch_traffic_with_failures(account, token, repos)

        report = TrafficReport(account=account, failures=failures)
        report.records = join_records(repos, views, clones, skipped=report.skipped)
        return report


def join_records(
    repos: Sequence[str],
    views: TrafficMap,
    clones: TrafficMap,
    skipped: Optional[List[str]] = None,
) -> List[RepositoryRecord]:
    """
    Join the views and clones maps into records, in the order of repos.

    A repository missing from either map is left out and logged.

    Args:
        repos: Repository names in output order
        views: Views map
        clones: Clones map
        skipped: If given, names left out are appended here

    Returns:
        List of RepositoryRecord
    """
    records = []
    for name in dict.fromkeys(repos):
        view_count = views.get(name)
        clone_count = clones.get(name)

        if view_count is None or clone_count is None:
            missing = [
                kind.value
                for kind, value in ((TrafficKind.VIEWS, view_count), (TrafficKind.CLONES, clone_count))
                if value is None
            ]
            logger.warning(f"Skipping {name}: no {' or '.join(missing)} data")
            if skipped is not None:
                skipped.append(name)
            continue

        records.append(RepositoryRecord(name=name, views=view_count, clones=clone_count))

    return records
