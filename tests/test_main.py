import json

import pytest

from ghwatch.main import _resolve_log_level, build_app_config, build_arg_parser, main
from ghwatch.models import RemoteItem, TargetKind
from ghwatch.state.sqlite_store import SqliteStateStore


@pytest.fixture()
def repos_file(tmp_path):  # noqa: ANN001, ANN201
    path = tmp_path / "repos.json"
    path.write_text(json.dumps({"repos": [{"repo": "a/b", "targets": ["release", "issue"]}]}), encoding="utf-8")
    return path


@pytest.fixture()
def patched_github(monkeypatch: pytest.MonkeyPatch, fake_source):  # noqa: ANN001, ANN201
    fake_source.token = "t"
    monkeypatch.setattr("ghwatch.runner.GitHubClient", lambda **_kwargs: fake_source)
    return fake_source


def test_once_runs_a_single_cycle(repos_file, tmp_path, patched_github) -> None:  # noqa: ANN001
    patched_github.items[TargetKind.RELEASE] = RemoteItem(key="v1.0.0", html_url="u", title="t", body="")
    db = tmp_path / "state.db"

    rc = main(["--once", "--config", str(repos_file), "--db", str(db)])

    assert rc == 0
    assert SqliteStateStore(str(db)).read("a", "b", TargetKind.RELEASE) == "v1.0.0"
    assert sorted(c[0] for c in patched_github.calls) == ["issue", "release"]


def test_once_with_unreadable_config_fails(tmp_path, patched_github) -> None:  # noqa: ANN001, ARG001
    rc = main(["--once", "--config", str(tmp_path / "missing.json"), "--db", str(tmp_path / "state.db")])
    assert rc == 1


def test_missing_config_is_a_usage_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GHWATCH_CONFIG", raising=False)
    assert main(["--once"]) == 2


def test_invalid_interval_is_a_usage_error(repos_file) -> None:  # noqa: ANN001
    assert main(["--once", "--config", str(repos_file), "--interval", "soon"]) == 2


def test_webhook_without_env_is_a_usage_error(monkeypatch: pytest.MonkeyPatch, repos_file, tmp_path) -> None:  # noqa: ANN001
    monkeypatch.delenv("GHWATCH_WEBHOOK_URL", raising=False)
    rc = main(["--once", "--config", str(repos_file), "--db", str(tmp_path / "s.db"), "--notifiers", "console,webhook"])
    assert rc == 2


def test_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GHWATCH_CONFIG", "https://config.example.com/repos.toml")
    monkeypatch.setenv("GHWATCH_INTERVAL", "1h")
    monkeypatch.setenv("GHWATCH_NOTIFIERS", "Console, webhook")

    config = build_app_config(build_arg_parser().parse_args([]))

    assert config.config_location == "https://config.example.com/repos.toml"
    assert config.interval_seconds == 3600
    assert config.notifiers == ("console", "webhook")
    assert config.workers == 10
    assert config.queue_size == 1000


def test_resolve_log_level() -> None:
    assert _resolve_log_level(None) == 20
    assert _resolve_log_level("debug") == 10
    assert _resolve_log_level("nonsense") == 20
