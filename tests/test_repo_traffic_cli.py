"""Tests for the repo-traffic command."""

import json

import pytest
from click.testing import CliRunner

from tools.repo_traffic import cli
from tools.repo_traffic.fetcher import RepoTrafficFetcher


@pytest.fixture(autouse=True)
def fake_api(monkeypatch, tmp_path, github):
    """Point every fetcher the CLI builds at the fake API."""
    monkeypatch.delenv("GITHUB_USERNAME", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.chdir(tmp_path)

    github.fetchers = []
    build = RepoTrafficFetcher.from_config.__func__

    def from_config(cls, config, max_concurrency=None):
        fetcher = build(cls, config, max_concurrency=max_concurrency, transport=github.transport)
        github.fetchers.append(fetcher)
        return fetcher

    monkeypatch.setattr(RepoTrafficFetcher, "from_config", classmethod(from_config))
    return github


@pytest.fixture
def alice(github):
    github.repos(
        "alice",
        [
            {"name": "a", "fork": False},
            {"name": "b", "fork": True},
            {"name": "c", "fork": False},
        ],
    )
    github.traffic("alice", "a", "views", 1234, 56)
    github.traffic("alice", "a", "clones", 7, 3)
    github.traffic("alice", "c", "views", 10, 4)
    github.traffic("alice", "c", "clones", 2, 1)
    return github


def run(*args):
    return CliRunner().invoke(cli.main, list(args))


class TestReportTable:
    """Test the rich table output."""

    def test_table(self, alice):
        """Test a full run renders every column and row."""
        result = run("--account", "alice", "--token", "secret")

        assert result.exit_code == 0, result.output
        for header in ("Name", "Views", "Unique Views", "Clones", "Unique Clones"):
            assert header in result.output
        assert "1,234" in result.output
        assert "Traffic report completed!" in result.output

    def test_token_sent_from_environment(self, alice, monkeypatch):
        """Test credentials from the environment."""
        monkeypatch.setenv("GITHUB_USERNAME", "alice")
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")

        result = run()

        assert result.exit_code == 0, result.output
        assert {r.headers["authorization"] for r in alice.traffic_requests()} == {"Token env-token"}

    def test_config_file(self, alice, tmp_path):
        """Test credentials from a config file."""
        path = tmp_path / "creds.toml"
        path.write_text('account = "alice"\ntoken = "file-token"\n')

        result = run("--config", str(path))

        assert result.exit_code == 0, result.output
        assert len(alice.traffic_requests()) == 4

    def test_partial_failure_still_succeeds(self, alice):
        """Test that a failed views call leaves the repository out but exits 0."""
        alice.traffic("alice", "c", "views", status=403)

        result = run("--account", "alice", "--token", "secret")

        assert result.exit_code == 0, result.output
        assert "Left out 1 repositories: c" in result.output

    def test_nothing_to_show(self, github):
        """Test an account with only forks."""
        github.repos("alice", [{"name": "b", "fork": True}])

        result = run("--account", "alice", "--token", "secret")

        assert result.exit_code == 0
        assert "No repositories with complete traffic data" in result.output
        assert github.traffic_requests() == []


class TestSettings:
    """Test that command-line settings reach the fetcher."""

    def test_timeout_and_concurrency(self, alice):
        """Test --timeout and --max-concurrency wiring."""
        result = run("--account", "alice", "--token", "secret", "--timeout", "2.5", "--max-concurrency", "3")

        assert result.exit_code == 0, result.output
        fetcher = alice.fetchers[0]
        assert fetcher.timeout == 2.5
        assert fetcher.max_concurrency == 3

    def test_timeout_from_config_file(self, alice, tmp_path):
        """Test a timeout read from the config file."""
        path = tmp_path / "creds.yaml"
        path.write_text("account: alice\ntoken: secret\ntimeout: 4\n")

        result = run("--config", str(path))

        assert result.exit_code == 0, result.output
        assert alice.fetchers[0].timeout == 4

    def test_negative_timeout_rejected(self, alice):
        """Test that a negative --timeout fails before any request."""
        result = run("--account", "alice", "--token", "secret", "--timeout=-5")

        assert result.exit_code == 1
        assert "Invalid timeout" in result.output
        assert alice.requests == []


class TestJsonOutput:
    """Test JSON output."""

    def test_json(self, alice):
        """Test the JSON document shape."""
        alice.traffic("alice", "c", "clones", status=500)

        result = run("--account", "alice", "--token", "secret", "--output", "json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["account"] == "alice"
        assert data["repositories"] == [
            {"name": "a", "views": 1234, "unique_views": 56, "clones": 7, "unique_clones": 3}
        ]
        assert data["skipped"] == ["c"]
        assert data["failures"][0]["repo"] == "c"
        assert data["failures"][0]["stage"] == "clones"
        assert data["failures"][0]["status"] == 500


class TestExitCodes:
    """Test failures that abort the run."""

    def test_list_error(self, github):
        """Test that a failed repository list exits non-zero without fetching traffic."""
        github.repos("alice", [], status=404)

        result = run("--account", "alice", "--token", "secret")

        assert result.exit_code == 1
        assert "HTTP 404" in result.output
        assert github.traffic_requests() == []

    def test_missing_credentials(self):
        """Test running without any credentials."""
        result = run()

        assert result.exit_code == 1
        assert "Missing account and token" in result.output

    def test_invalid_config_file(self, tmp_path):
        """Test a config file that fails validation."""
        path = tmp_path / "creds.json"
        path.write_text(json.dumps({"account": "alice", "token": "x", "timeout": -1}))

        result = run("--config", str(path))

        assert result.exit_code == 1
        assert "Invalid config" in result.output

    def test_max_concurrency_must_be_positive(self):
        """Test option validation by click."""
        result = run("--account", "alice", "--token", "secret", "--max-concurrency", "0")
        assert result.exit_code == 2
