"""HTML pages: syntax-highlighted snippet view and per-user listings."""

import html
from typing import List

_HIGHLIGHT_PAGE = """<!DOCTYPE html>
<html>
<head>
    <link rel="stylesheet" href="/static/tomorrow-night-bright.min.css">
    <script src="/static/highlight.min.js"></script>
    <style>
        body {{ margin: 0; padding: 0; background-color: #000; color: #fff; }}
        pre {{ margin: 0; padding: 0; }}
        ::selection {{ background-color: white; color: black; }}
        @font-face {{
            font-family: 'Source Code Pro';
            font-style: normal;
            font-weight: 400;
            src: url('/static/source-code-pro-v23-latin-regular.woff2') format('woff2');
        }}
        code {{ font-family: 'Source Code Pro', monospace; }}
    </style>
</head>
<body>
    <pre><code class="language-{language}">{content}</code></pre>
    <script>hljs.highlightAll();</script>
</body>
</html>"""


def render_highlighted(content: bytes, language: str) -> str:
    """Page showing content highlighted as language (both escaped)."""
    return _HIGHLIGHT_PAGE.format(
        language=html.escape(language),
        content=html.escape(content.decode("utf-8", errors="replace")),
    )


def render_listing(username: str, ids: List[str], base_url: str) -> str:
    """Page linking the given snippet ids; empty username = anonymous snippets."""
    if username:
        title = f"Pastes from {html.escape(username)}"
    else:
        title = f"Last {len(ids)} Anonymous Pastes"
    if ids:
        items = "".join(
            f'<li><a href="{html.escape(base_url)}/{html.escape(i)}">{html.escape(i)}</a></li>'
            for i in reversed(ids)
        )
        body = f"<ul>{items}</ul>"
    else:
        body = "<p>No pastes</p>"
    return f"<html><body><h1>{title}</h1>{body}</body></html>"
