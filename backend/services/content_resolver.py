# backend/services/content_resolver.py
"""
Fetch the text of a third-party interview post.

One fetcher per supported source; each validates the URL shape for its site
and returns a ResolvedContent(title, content). Every failure surfaces as
FetchError so the ingestion path can reject the request without creating
anything.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from core.config import settings
from core.exceptions import FetchError
from db.models import InterviewSource

log = logging.getLogger(__name__)

LEETCODE_GRAPHQL_URL = "https://leetcode.com/graphql/"
LEETCODE_QUERY = """
query discussPostDetail($topicId: ID!) {
  ugcArticleDiscussionArticle(topicId: $topicId) {
    title
    slug
    content
  }
}
"""

_LEETCODE_PATH = re.compile(r"^/discuss/post/(\d+)(/.*)?$")
_GFG_PATH = re.compile(r"^/interview-experiences/([\w-]+)/?$")
_REDDIT_PATH = re.compile(r"^/r/[\w-]+/comments/\w+")


@dataclass
class ResolvedContent:
    title: str
    content: str
    url: str = ""


class ContentResolver(Protocol):
    def fetch(self, url: str, source: InterviewSource, user_agent: Optional[str] = None) -> ResolvedContent: ...


def clean_text(text: str) -> str:
    """Collapse runs of blanks and drop empty lines."""
    text = re.sub(r"[ \t]+", " ", text or "")
    lines = [ln.strip() for ln in text.splitlines()]
    return "\n".join(ln for ln in lines if ln)


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["script", "style", "nav", "header", "footer"]):
        tag.decompose()
    return clean_text(soup.get_text("\n"))


def _parse(url: str, hosts: set[str]):
    try:
        u = urlparse((url or "").strip())
    except ValueError as e:
        raise FetchError(f"invalid url: {e}") from e
    if u.scheme not in ("http", "https"):
        raise FetchError("url must be http(s)")
    if (u.hostname or "").lower() not in hosts:
        raise FetchError(f"url host must be one of {sorted(hosts)}, got {u.hostname}")
    return u


class HttpContentResolver:
    def __init__(self, client: Optional[httpx.Client] = None, timeout: Optional[float] = None):
        self._client = client
        self.timeout = timeout or settings.fetch_timeout_seconds
        self._fetchers: Dict[InterviewSource, Callable[[httpx.Client, str, str], ResolvedContent]] = {
            InterviewSource.leetcode: self._leetcode,
            InterviewSource.reddit: self._reddit,
            InterviewSource.gfg: self._gfg,
        }

    def fetch(self, url: str, source: InterviewSource, user_agent: Optional[str] = None) -> ResolvedContent:
        source = InterviewSource(source)
        fetcher = self._fetchers.get(source)
        if fetcher is None:
            raise FetchError(f"source '{source.value}' does not support fetching")
        ua = user_agent or settings.fetch_user_agent

        client = self._client or httpx.Client(timeout=self.timeout, follow_redirects=True)
        try:
            res = fetcher(client, url, ua)
        except httpx.HTTPStatusError as e:
            raise FetchError(f"unexpected status {e.response.status_code} from {source.value}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"http error: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise FetchError(f"unexpected response shape from {source.value}: {e}") from e
        finally:
            if self._client is None:
                client.close()

        if not res.content:
            raise FetchError(f"no content found at {url}")
        log.info("fetched post", extra={"source": source.value, "chars": len(res.content)})
        return res

    def _leetcode(self, client: httpx.Client, url: str, ua: str) -> ResolvedContent:
        u = _parse(url, {"leetcode.com", "www.leetcode.com"})
        m = _LEETCODE_PATH.match(u.path)
        if not m:
            raise FetchError("url path is not a discuss post (expected /discuss/post/<id>/...)")
        topic_id = m.group(1)

        r = client.post(
            LEETCODE_GRAPHQL_URL,
            json={
                "query": LEETCODE_QUERY,
                "variables": {"topicId": topic_id},
                "operationName": "discussPostDetail",
            },
            headers={
                "User-Agent": ua,
                "Cookie": f"csrftoken={settings.leetcode_csrf_token}",
                "Referer": "https://leetcode.com",
            },
        )
        r.raise_for_status()
        article = r.json()["data"]["ugcArticleDiscussionArticle"]
        if not article:
            raise FetchError(f"leetcode post {topic_id} not found")

        canonical = f"https://leetcode.com/discuss/post/{topic_id}/"
        if article.get("slug"):
            canonical += article["slug"].strip("/")
        return ResolvedContent(
            title=(article.get("title") or "").strip(),
            content=html_to_text(article.get("content") or ""),
            url=canonical,
        )

    def _reddit(self, client: httpx.Client, url: str, ua: str) -> ResolvedContent:
        u = _parse(url, {"reddit.com", "www.reddit.com", "old.reddit.com"})
        if not _REDDIT_PATH.match(u.path):
            raise FetchError("url path is not a reddit post (expected /r/<sub>/comments/<id>/...)")
        path = u.path if u.path.endswith("/") else u.path + "/"

        r = client.get(f"https://www.reddit.com{path}.json", headers={"User-Agent": ua})
        r.raise_for_status()
        post = r.json()[0]["data"]["children"][0]["data"]
        return ResolvedContent(
            title=(post.get("title") or "").strip(),
            content=clean_text(post.get("selftext") or ""),
            url="https://reddit.com" + (post.get("permalink") or path),
        )

    def _gfg(self, client: httpx.Client, url: str, ua: str) -> ResolvedContent:
        u = _parse(url, {"geeksforgeeks.org", "www.geeksforgeeks.org"})
        m = _GFG_PATH.match(u.path)
        if not m:
            raise FetchError("url path is not a geeksforgeeks interview experience url")
        clean_url = f"https://{u.hostname}/interview-experiences/{m.group(1)}/"

        r = client.get(clean_url, headers={"User-Agent": ua})
        r.raise_for_status()
        soup = BeautifulSoup(r.text, "html.parser")

        h1 = soup.select_one("h1.entry-title") or soup.find("h1")
        title = h1.get_text(strip=True) if h1 else ""

        article = soup.select_one("div.article--viewer_content, div.entry-content, article .content")
        parts = []
        if article is not None:
            for tag in article(["script", "style", "nav", "header", "footer"]):
                tag.decompose()
            for el in article.select("p, h2, h3, h4, ul, ol, pre"):
                txt = clean_text(el.get_text("\n"))
                if txt:
                    parts.append(txt)
        return ResolvedContent(title=title, content="\n\n".join(parts), url=clean_url)


def get_content_resolver() -> ContentResolver:
    return HttpContentResolver()
