"""Tests for HTML rendering of highlighted snippets and listings."""

from snipbin.snippets.render import render_highlighted, render_listing


def test_render_highlighted_escapes() -> None:
    """Content and language are HTML-escaped."""
    page = render_highlighted(b"<script>x</script>", 'py"><b>')
    assert "&lt;script&gt;x&lt;/script&gt;" in page
    assert 'class="language-py&quot;&gt;&lt;b&gt;"' in page
    assert "hljs.highlightAll()" in page


def test_render_highlighted_invalid_utf8() -> None:
    """Undecodable bytes are replaced instead of failing."""
    assert "\ufffd" in render_highlighted(b"\xff", "text")


def test_render_listing_user() -> None:
    """User listing links every id, newest first."""
    page = render_listing("alice", ["a", "b"], "http://host")
    assert "Pastes from alice" in page
    assert page.index('href="http://host/b"') < page.index('href="http://host/a"')


def test_render_listing_anonymous_empty() -> None:
    """Anonymous listing without ids says so."""
    page = render_listing("", [], "http://host")
    assert "Anonymous Pastes" in page
    assert "No pastes" in page
