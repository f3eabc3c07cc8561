from __future__ import annotations

import json
import logging
import os
import re
import tomllib
import urllib.error
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from .errors import ConfigLoadError
from .http_utils import HttpClient
from .models import RepositoryTarget, TargetKind

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 600.0


def _require_dict(value: Any, *, where: str) -> Mapping[str, Any]:
    if not isinstance(value, dict):
        raise ConfigLoadError(f"Expected object at {where}, got {type(value).__name__}")
    return value


def _get_str(d: Mapping[str, Any], key: str, default: str | None = None) -> str | None:
    v = d.get(key, default)
    if v is None:
        return None
    return str(v).strip()


def _get_str_list(d: Mapping[str, Any], key: str, default: list[str]) -> list[str]:
    v = d.get(key, default)
    if v is None:
        return list(default)
    if isinstance(v, str):
        return [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(v, list):
        return [str(x) for x in v]
    return list(default)


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")


def parse_interval(value: str | float | int) -> float:
    """
    解析轮询间隔，返回秒数。

    支持：
    - 纯数字（秒）：300、"300"、"2.5"
    - 带单位并可组合：500ms、30s、10m、1h30m
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid interval: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip().lower()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for m in _DURATION_PART.finditer(text):
                if m.start() != pos:
                    break
                n = float(m.group(1))
                unit = m.group(2)
                seconds += {"ms": n / 1000, "s": n, "m": n * 60, "h": n * 3600}[unit]
                pos = m.end()
            if pos == 0 or pos != len(text):
                raise ValueError(f"invalid interval: {value!r}") from None
    if not 0 < seconds < float("inf"):
        raise ValueError(f"interval must be positive and finite: {value!r}")
    return seconds


@dataclass(frozen=True, slots=True)
class RepoConfig:
    """
    一个被监控的仓库及其 targets。

    targets 已去重并保持配置中的顺序。
    """

    owner: str
    name: str
    targets: tuple[TargetKind, ...]

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def iter_targets(self) -> Iterator[RepositoryTarget]:
        for kind in self.targets:
            yield RepositoryTarget(owner=self.owner, name=self.name, kind=kind)


@dataclass(frozen=True, slots=True)
class WatchConfig:
    repos: tuple[RepoConfig, ...]

    def iter_targets(self) -> Iterator[RepositoryTarget]:
        for repo in self.repos:
            yield from repo.iter_targets()


def _parse_targets(values: list[str], *, where: str) -> tuple[TargetKind, ...]:
    kinds: list[TargetKind] = []
    for v in values:
        try:
            kind = TargetKind.parse(v)
        except ValueError:
            logger.warning("unknown target ignored: where=%s target=%r", where, v)
            continue
        if kind not in kinds:
            kinds.append(kind)
    return tuple(kinds)


def _parse_repo(entry: Any, *, where: str) -> RepoConfig:
    d = _require_dict(entry, where=where)
    owner = _get_str(d, "owner")
    name = _get_str(d, "name")
    full = _get_str(d, "repo")
    if full and not (owner or name):
        owner, _, name = full.partition("/")
    if not owner or not name:
        raise ConfigLoadError(f"Missing owner/name at {where}")
    return RepoConfig(
        owner=owner,
        name=name,
        targets=_parse_targets(_get_str_list(d, "targets", []), where=f"{where}.targets"),
    )


def parse_watch_config(raw: Any) -> WatchConfig:
    """
    顶层结构（JSON 示意，TOML 同构，用 [[repos]]）：
    {
      "repos": [
        {"owner": "golang", "name": "go", "targets": ["release", "tag"]},
        {"repo": "python/cpython", "targets": ["commit", "issue", "pull_request"]}
      ]
    }
    """
    root = _require_dict(raw, where="$")
    repos_raw = root.get("repos", [])
    if not isinstance(repos_raw, list):
        raise ConfigLoadError(f"Expected list at $.repos, got {type(repos_raw).__name__}")
    return WatchConfig(repos=tuple(_parse_repo(r, where=f"$.repos[{i}]") for i, r in enumerate(repos_raw)))


def _decode(data: bytes, *, toml: bool, where: str) -> Any:
    try:
        text = data.decode("utf-8")
        if toml:
            return tomllib.loads(text)
        return json.loads(text)
    except (UnicodeDecodeError, ValueError) as e:
        raise ConfigLoadError(f"Invalid config content at {where}: {e}") from e


@dataclass(slots=True)
class ConfigLoader:
    """
    仓库配置加载器，每个 tick 调用一次 load()。

    location 支持：
    - 本地路径、file:// 路径（支持 ~ 展开）
    - http:// / https:// URL（非 2xx 视为加载失败）

    格式按 .toml 后缀或 Content-Type 选择 TOML，否则按 JSON 解析。
    任何失败都抛 ConfigLoadError。
    """

    location: str
    http: HttpClient

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    def load(self) -> WatchConfig:
        if self.is_remote:
            data, toml = self._fetch()
        else:
            data, toml = self._read_file()
        return parse_watch_config(_decode(data, toml=toml, where=self.location))

    def _fetch(self) -> tuple[bytes, bool]:
        try:
            resp = self.http.get(self.location)
        except urllib.error.HTTPError as e:
            raise ConfigLoadError(f"could not read url: {self.location}: status={e.code}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise ConfigLoadError(f"could not read url: {self.location}: {e}") from e
        if not resp.ok:
            raise ConfigLoadError(f"could not read url: {self.location}: status={resp.status}")
        content_type = (resp.header("Content-Type") or "").lower()
        toml = "toml" in content_type or self.location.split("?", 1)[0].endswith(".toml")
        return resp.body, toml

    def _read_file(self) -> tuple[bytes, bool]:
        path = self.location
        if path.startswith("file://"):
            path = path[len("file://") :]
        path = os.path.expanduser(path)
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ConfigLoadError(f"could not read file: {path}: {e}") from e
        return data, path.endswith(".toml")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """
    进程级配置（来自命令行参数与环境变量，运行期间不变）。

    config_location:
      - 仓库配置位置（本地路径或 URL），每个 tick 重新读取
    interval_seconds:
      - 两次检查之间的间隔
    sqlite_path:
      - 状态库路径（marker 与 owner 头像缓存）
    workers / queue_size:
      - 并发检查的线程数与任务队列容量
    notifiers:
      - 启用的通知渠道：console / webhook
    token_env / webhook_url_env:
      - GitHub Token 与 webhook URL 所在的环境变量名，secret 不落盘
    """

    config_location: str
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    sqlite_path: str = ""
    workers: int = 10
    queue_size: int = 1000
    notifiers: tuple[str, ...] = ("console",)
    token_env: str | None = "GITHUB_TOKEN"
    webhook_url_env: str | None = "GHWATCH_WEBHOOK_URL"
    verbose_console: bool = False

    def resolve_env(self, env_name: str | None) -> str | None:
        if not env_name:
            return None
        return os.environ.get(env_name) or None
