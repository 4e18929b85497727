"""Tests for live URL page checks."""

import httpx

from ui_code_audit.live import check_html, check_urls

GOOD_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><title>Home</title></head>
<body>
<img src="/logo.png" alt="Acme">
<img src="/divider.png" role="presentation">
<label for="email">Email</label><input id="email" type="email">
<label>Name <input type="text" name="name"></label>
<input type="submit" value="Send">
</body>
</html>
"""

BAD_PAGE = """<html>
<head><title> </title></head>
<body>
<img src="/hero.jpg">
<input type="text" name="q">
<textarea></textarea>
</body>
</html>
"""


class TestCheckHtml:
    """Test page-level checks."""

    def test_clean_page(self):
        assert check_html("https://example.com", GOOD_PAGE) == []

    def test_problems(self):
        findings = check_html("https://example.com/bad", BAD_PAGE)
        assert [f.type for f in findings] == [
            "missing_lang",
            "missing_title",
            "missing_alt",
            "missing_form_label",
            "missing_form_label",
        ]
        assert all(f.url == "https://example.com/bad" and f.file is None for f in findings)
        assert findings[2].message == "Image missing alt attribute: /hero.jpg"
        assert findings[3].message == "Form control missing label: <input> q"
        assert findings[0].wcag == "3.1.1"


class TestCheckUrls:
    """Test fetching with a mocked transport."""

    async def test_fetch_and_skip_failures(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/bad":
                return httpx.Response(200, text=BAD_PAGE)
            if request.url.path == "/good":
                return httpx.Response(200, text=GOOD_PAGE)
            return httpx.Response(404, text="missing")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            findings = await check_urls(
                ["https://site.test/good", "https://site.test/gone", "https://site.test/bad"],
                client=client,
                attempts=1,
            )

        assert {f.url for f in findings} == {"https://site.test/bad"}
        assert len(findings) == 5

    async def test_retries_transient_errors(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, text=GOOD_PAGE)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            findings = await check_urls(["https://site.test/"], client=client, attempts=2, base_delay=0)

        assert findings == []
        assert calls == 2

    async def test_no_urls(self):
        assert await check_urls([]) == []
