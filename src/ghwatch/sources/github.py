from __future__ import annotations

import logging
import urllib.error
from dataclasses import dataclass
from typing import Any, Iterator, Mapping
from urllib.parse import quote

from ..errors import FetchError, NotFoundError
from ..http_utils import HttpClient, HttpResponse, parse_link_header, with_query_params
from ..models import RemoteItem

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
GITHUB_WEB = "https://github.com"
# latest_issue / latest_pull_request 在 issues 列表中最多翻的页数
DEFAULT_MAX_SCAN_PAGES = 10


def _avatar_of(item: Mapping[str, Any], field: str = "author") -> str:
    who = item.get(field)
    if isinstance(who, dict):
        return str(who.get("avatar_url") or "")
    return ""


@dataclass(slots=True)
class GitHubClient:
    """
    GitHub REST v3 客户端：只实现“某个仓库最新一条 X”这几个查询。

    - 404 / 空列表 -> NotFoundError
    - 其他 HTTP/网络/解析错误 -> FetchError
    - issues 接口同时返回 issue 与 PR（PR 带 pull_request 字段），
      latest_issue / latest_pull_request 会按需翻页筛选，最多 max_scan_pages 页（None 为不限）
    """

    http: HttpClient
    token: str | None = None
    api_base: str = GITHUB_API
    per_page: int = 30
    max_scan_pages: int | None = DEFAULT_MAX_SCAN_PAGES

    def _headers(self) -> Mapping[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _repo_url(self, owner: str, name: str, path: str) -> str:
        return f"{self.api_base}/repos/{quote(owner, safe='')}/{quote(name, safe='')}/{path}"

    def _get(self, url: str) -> tuple[Any, HttpResponse]:
        try:
            resp = self.http.get(url, headers=self._headers())
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise NotFoundError(f"not found: {url}") from e
            raise FetchError(f"GitHub API error: status={e.code} url={url}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise FetchError(f"GitHub API request failed: url={url}: {e}") from e
        try:
            return resp.json(), resp
        except (ValueError, UnicodeDecodeError) as e:
            raise FetchError(f"GitHub API invalid JSON: url={resp.url}") from e

    def _get_object(self, url: str) -> Mapping[str, Any]:
        data, resp = self._get(url)
        if not isinstance(data, dict):
            raise FetchError(f"GitHub API expected object, got {type(data).__name__}: {resp.url}")
        return data

    def _first_item(self, url: str) -> Mapping[str, Any]:
        data, resp = self._get(url)
        if not isinstance(data, list):
            raise FetchError(f"GitHub API expected list, got {type(data).__name__}: {resp.url}")
        for it in data:
            if isinstance(it, dict):
                return it
        raise NotFoundError(f"empty list: {url}")

    def _iter_pages(self, url: str) -> Iterator[list[Mapping[str, Any]]]:
        next_url: str | None = url
        pages = 0
        while next_url:
            data, resp = self._get(next_url)
            if not isinstance(data, list):
                raise FetchError(f"GitHub API expected list, got {type(data).__name__}: {resp.url}")
            yield [x for x in data if isinstance(x, dict)]
            pages += 1
            link = resp.header("Link")
            next_url = parse_link_header(link).get("next") if link else None
            if next_url and self.max_scan_pages is not None and pages >= self.max_scan_pages:
                logger.info("page scan stopped at limit: url=%s pages=%d next=%s", url, pages, next_url)
                return

    def _scan_issues(self, owner: str, name: str, *, want_pull_request: bool) -> Mapping[str, Any]:
        url = with_query_params(
            self._repo_url(owner, name, "issues"),
            {
                "state": "all",
                "sort": "created",
                "direction": "desc",
                "per_page": str(self.per_page),
            },
        )
        pages = 0
        for items in self._iter_pages(url):
            pages += 1
            for it in items:
                if ("pull_request" in it) == want_pull_request:
                    return it
        kind = "pull request" if want_pull_request else "issue"
        logger.debug("issue scan exhausted: repo=%s/%s kind=%s pages=%d", owner, name, kind, pages)
        raise NotFoundError(f"no {kind} found in {owner}/{name}")

    def latest_release(self, owner: str, name: str) -> RemoteItem:
        release = self._get_object(self._repo_url(owner, name, "releases/latest"))
        tag_name = str(release.get("tag_name") or "")
        return RemoteItem(
            key=tag_name,
            html_url=str(release.get("html_url") or ""),
            title=str(release.get("name") or tag_name),
            body=str(release.get("body") or ""),
            author_avatar=_avatar_of(release),
        )

    def latest_commit(self, owner: str, name: str) -> RemoteItem:
        url = with_query_params(self._repo_url(owner, name, "commits"), {"per_page": "1"})
        commit = self._first_item(url)
        sha = str(commit.get("sha") or "")
        detail = commit.get("commit")
        message = str(detail.get("message") or "") if isinstance(detail, dict) else ""
        return RemoteItem(
            key=sha,
            html_url=str(commit.get("html_url") or ""),
            title=sha,
            body=message,
            author_avatar=_avatar_of(commit),
        )

    def latest_issue(self, owner: str, name: str) -> RemoteItem:
        issue = self._scan_issues(owner, name, want_pull_request=False)
        return RemoteItem(
            key=_issue_id(issue),
            html_url=str(issue.get("html_url") or ""),
            title=str(issue.get("title") or ""),
            body=str(issue.get("body") or ""),
            author_avatar=_avatar_of(issue, "user"),
        )

    def latest_pull_request(self, owner: str, name: str) -> RemoteItem:
        pr = self._scan_issues(owner, name, want_pull_request=True)
        links = pr.get("pull_request")
        html_url = str(links.get("html_url") or "") if isinstance(links, dict) else ""
        return RemoteItem(
            key=_issue_id(pr),
            html_url=html_url or str(pr.get("html_url") or ""),
            title=str(pr.get("title") or ""),
            body=str(pr.get("body") or ""),
            author_avatar=_avatar_of(pr, "user"),
        )

    def latest_tag(self, owner: str, name: str) -> RemoteItem:
        url = with_query_params(self._repo_url(owner, name, "tags"), {"per_page": "1"})
        tag = self._first_item(url)
        tag_name = str(tag.get("name") or "")
        return RemoteItem(
            key=tag_name,
            html_url=f"{GITHUB_WEB}/{owner}/{name}/tags",
            title=tag_name,
            body="",
        )

    def owner_avatar_url(self, owner: str) -> str:
        user = self._get_object(f"{self.api_base}/users/{quote(owner, safe='')}")
        return str(user.get("avatar_url") or "")


def _issue_id(item: Mapping[str, Any]) -> int:
    raw = item.get("id")
    if isinstance(raw, bool) or not isinstance(raw, (int, str)):
        raise FetchError(f"GitHub issue without numeric id: {item.get('url')!r}")
    try:
        return int(raw)
    except ValueError as e:
        raise FetchError(f"GitHub issue id is not numeric: {raw!r}") from e
