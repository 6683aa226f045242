"""Shared fixtures: a fake GitHub API on an httpx mock transport."""

from typing import Any, Dict, List, Tuple

import httpx
import pytest

from tools.repo_traffic.fetcher import RepoTrafficFetcher

BASE_URL = "https://api.test"


class FakeGitHub:
    """
    Route table for httpx.MockTransport.

    Routes map a URL path to (status, body). A body that is an exception
    instance is raised instead of answering; a str body is sent as raw text.
    """

    def __init__(self):
        self.routes: Dict[str, Tuple[int, Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, path: str, status: int = 200, body: Any = None) -> None:
        self.routes[path] = (status, body)

    def repos(self, account: str, entries: List[Dict[str, Any]], status: int = 200) -> None:
        self.add(f"/users/{account}/repos", status, entries)

    def traffic(self, account: str, repo: str, kind: str, count: int = 0, uniques: int = 0, status: int = 200):
        body = {"count": count, "uniques": uniques, kind: []} if status == 200 else {"message": "error"}
        self.add(f"/repos/{account}/{repo}/traffic/{kind}", status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get(request.url.path, (404, {"message": "Not Found"}))
        if isinstance(body, Exception):
            raise body
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def traffic_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if "/traffic/" in r.url.path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def fetcher(github):
    return RepoTrafficFetcher(base_url=BASE_URL, transport=github.transport)
