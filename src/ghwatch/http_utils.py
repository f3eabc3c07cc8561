from __future__ import annotations

import json
import random
import ssl
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Mapping

_RETRY_STATUSES = (429, 500, 502, 503, 504)


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    url: str
    headers: Mapping[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        lowered = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lowered:
                return v
        return None

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


class HttpClient:
    """
    轻量 HTTP 客户端（仅依赖标准库），供 GitHub 客户端、远程配置加载与 webhook 通知共用。

    策略：
    - GET 对 429/5xx 与网络错误做有限次指数退避重试
    - POST（webhook）不重试，失败直接抛出，由通知层决定如何处理
    - 统一超时、User-Agent、SSL context
    - 4xx（含 404）原样抛出 urllib.error.HTTPError，调用方据 e.code 区分
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 20.0,
        user_agent: str = "ghwatch/0",
        max_retries: int = 3,
        base_backoff_seconds: float = 0.8,
        verify_ssl: bool = True,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent
        self._max_retries = max_retries
        self._base_backoff_seconds = base_backoff_seconds
        self._ssl_context = ssl.create_default_context() if verify_ssl else ssl._create_unverified_context()

    def get(self, url: str, *, headers: Mapping[str, str] | None = None) -> HttpResponse:
        request_headers = self._headers(headers)

        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                return self._open(urllib.request.Request(url=url, headers=request_headers, method="GET"))
            except urllib.error.HTTPError as e:
                last_error = e
                if e.code not in _RETRY_STATUSES or attempt >= self._max_retries:
                    raise
            except (urllib.error.URLError, TimeoutError) as e:
                last_error = e
                if attempt >= self._max_retries:
                    raise

            backoff = self._base_backoff_seconds * (2**attempt)
            jitter = random.random() * 0.25 * backoff
            time.sleep(backoff + jitter)

        assert last_error is not None
        raise last_error

    def post_json(self, url: str, payload: Any, *, headers: Mapping[str, str] | None = None) -> HttpResponse:
        request_headers = self._headers(headers)
        request_headers.setdefault("Content-Type", "application/json; charset=utf-8")
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        return self._open(urllib.request.Request(url=url, data=data, headers=request_headers, method="POST"))

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        request_headers = {"User-Agent": self._user_agent}
        if extra:
            request_headers.update(dict(extra))
        return request_headers

    def _open(self, req: urllib.request.Request) -> HttpResponse:
        with urllib.request.urlopen(req, timeout=self._timeout_seconds, context=self._ssl_context) as resp:  # noqa: S310
            return HttpResponse(
                status=getattr(resp, "status", 200),
                url=resp.geturl(),
                headers={k: v for k, v in resp.headers.items()},
                body=resp.read(),
            )


def parse_link_header(link_value: str) -> dict[str, str]:
    """
    解析 RFC5988 Link 头，返回 rel -> url 映射（GitHub 分页使用）。

    示例：
    <https://...>; rel="next", <https://...>; rel="last"
    """
    result: dict[str, str] = {}
    for part in link_value.split(","):
        part = part.strip()
        if not part.startswith("<") or ">;" not in part:
            continue
        url = part[1 : part.index(">")]
        rel = None
        for p in part[part.index(">") + 1 :].split(";"):
            p = p.strip()
            if p.startswith("rel="):
                rel = p.split("=", 1)[1].strip().strip('"')
        if rel:
            result[rel] = url
    return result


def with_query_params(url: str, params: Mapping[str, str]) -> str:
    parsed = urllib.parse.urlparse(url)
    q = dict(urllib.parse.parse_qsl(parsed.query, keep_blank_values=True))
    q.update({k: v for k, v in params.items() if v is not None})
    return urllib.parse.urlunparse(parsed._replace(query=urllib.parse.urlencode(q)))
