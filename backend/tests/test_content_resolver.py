# backend/tests/test_content_resolver.py
import json

import httpx
import pytest

from core.exceptions import FetchError
from db.models import InterviewSource
from services.content_resolver import HttpContentResolver, clean_text, html_to_text


def _resolver(handler):
    return HttpContentResolver(client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_clean_text_and_html_to_text():
    assert clean_text("  a \t  b \n\n\n  c  ") == "a b\nc"
    html = "<div><script>x()</script><p>Round 1</p><p>Two   sum</p></div>"
    assert html_to_text(html) == "Round 1\nTwo sum"


def test_leetcode_post():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        seen["ua"] = request.headers["user-agent"]
        return httpx.Response(
            200,
            json={
                "data": {
                    "ugcArticleDiscussionArticle": {
                        "title": "Amazon SDE2 | Offer",
                        "slug": "amazon-sde2-offer",
                        "content": "<p>OA: 2 problems</p><p>Onsite: LRU cache</p>",
                    }
                }
            },
        )

    res = _resolver(handler).fetch(
        "https://leetcode.com/discuss/post/6543210/amazon-sde2-offer/", InterviewSource.leetcode, "ua-test"
    )
    assert res.title == "Amazon SDE2 | Offer"
    assert res.content == "OA: 2 problems\nOnsite: LRU cache"
    assert res.url == "https://leetcode.com/discuss/post/6543210/amazon-sde2-offer"
    assert seen["url"] == "https://leetcode.com/graphql/"
    assert seen["body"]["variables"] == {"topicId": "6543210"}
    assert seen["ua"] == "ua-test"


def test_reddit_post():
    def handler(request):
        assert request.url.path == "/r/cscareerquestions/comments/abc123/my_google_loop/.json"
        listing = {"data": {"children": [{"data": {
            "title": "My Google loop",
            "selftext": "Phone screen\n\n\nOnsite x4",
            "permalink": "/r/cscareerquestions/comments/abc123/my_google_loop/",
        }}]}}
        return httpx.Response(200, json=[listing, {}])

    res = _resolver(handler).fetch(
        "https://www.reddit.com/r/cscareerquestions/comments/abc123/my_google_loop", InterviewSource.reddit
    )
    assert res.title == "My Google loop"
    assert res.content == "Phone screen\nOnsite x4"


def test_gfg_post():
    page = """
    <html><body>
      <h1>Microsoft Interview Experience</h1>
      <div class="article--viewer_content">
        <p>Round 1: arrays</p>
        <script>track()</script>
        <h3>Round 2</h3>
        <p>Design a cache</p>
      </div>
    </body></html>
    """

    def handler(request):
        assert str(request.url) == "https://www.geeksforgeeks.org/interview-experiences/microsoft-sde-1/"
        return httpx.Response(200, text=page)

    res = _resolver(handler).fetch(
        "https://www.geeksforgeeks.org/interview-experiences/microsoft-sde-1", InterviewSource.gfg
    )
    assert res.title == "Microsoft Interview Experience"
    assert res.content == "Round 1: arrays\n\nRound 2\n\nDesign a cache"


@pytest.mark.parametrize(
    "url,source",
    [
        ("https://example.com/discuss/post/1/", InterviewSource.leetcode),
        ("ftp://leetcode.com/discuss/post/1/", InterviewSource.leetcode),
        ("https://leetcode.com/problems/two-sum/", InterviewSource.leetcode),
        ("https://reddit.com/r/python/", InterviewSource.reddit),
        ("https://www.geeksforgeeks.org/some-article/", InterviewSource.gfg),
        ("I went to Google", InterviewSource.personal),
    ],
)
def test_rejects_bad_urls_without_network(url, source):
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(FetchError):
        _resolver(handler).fetch(url, source)


def test_http_errors_become_fetch_errors():
    with pytest.raises(FetchError) as exc:
        _resolver(lambda request: httpx.Response(503)).fetch(
            "https://reddit.com/r/x/comments/abc", InterviewSource.reddit
        )
    assert "503" in exc.value.message

    def offline(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(FetchError):
        _resolver(offline).fetch("https://reddit.com/r/x/comments/abc", InterviewSource.reddit)


def test_empty_content_is_an_error():
    listing = {"data": {"children": [{"data": {"title": "link post", "selftext": ""}}]}}
    with pytest.raises(FetchError):
        _resolver(lambda request: httpx.Response(200, json=[listing])).fetch(
            "https://reddit.com/r/x/comments/abc", InterviewSource.reddit
        )


def test_unexpected_shape_is_an_error():
    with pytest.raises(FetchError):
        _resolver(lambda request: httpx.Response(200, json={"data": {}})).fetch(
            "https://leetcode.com/discuss/post/42/", InterviewSource.leetcode
        )
