"""Tests for the markdown renderer."""

import re

import pytest

from libbychat.render.markdown import (
    STAGES,
    convert_code,
    convert_headings,
    convert_tables,
    escape_html,
    pipeline,
    render,
    safe_url,
)

LINK_ATTRS = 'target="_blank" rel="noopener noreferrer"'
TABLE_OPEN = '<table class="table table-sm table-striped table-bordered">'


class TestEscaping:

    def test_five_characters(self):
        assert escape_html("<b>&'\"") == "&lt;b&gt;&amp;&#39;&quot;"

    def test_no_raw_markup_survives(self):
        assert render("<script>alert('x')</script>") == (
            "&lt;script&gt;alert(&#39;x&#39;)&lt;/script&gt;"
        )

    def test_empty(self):
        assert render("") == ""


class TestEmphasis:

    def test_bold_and_italic(self):
        assert render("**bold** and *italic*") == "<strong>bold</strong> and <em>italic</em>"

    def test_bullets_are_not_italic(self):
        assert render("* one\n* two") == "* one<br>* two"

    def test_unclosed_bold_stays_literal(self):
        assert render("**almost") == "**almost"

    def test_not_applied_inside_code(self):
        assert render("`**x**`") == "<code>**x**</code>"


class TestHeadings:

    def test_levels(self):
        assert render("# One\n## Two\n### Three\n#### Four") == (
            "<h1>One</h1><br><h2>Two</h2><br><h3>Three</h3><br>#### Four"
        )

    def test_requires_space(self):
        assert convert_headings("#tag") == "#tag"

    def test_level_three_not_taken_by_level_one(self):
        assert convert_headings("### x") == "<h3>x</h3>"


class TestCode:

    def test_fence_with_language(self):
        assert render("```python\nx = 1 < 2\n```") == (
            '<pre><code class="language-python">x = 1 &lt; 2\n</code></pre>'
        )

    def test_fence_without_language(self):
        assert render("```\na *b* c\n```") == "<pre><code>\na *b* c\n</code></pre>"

    def test_inline_code(self):
        assert render("run `ls -l` now") == "run <code>ls -l</code> now"

    def test_unclosed_fence_is_plain_text(self):
        assert render("```py\nprint(1)") == "```py<br>print(1)"

    def test_inline_inside_fence_untouched(self):
        assert convert_code("```\nuse `x`\n```") == "<pre><code>\nuse `x`\n</code></pre>"


class TestLinks:

    def test_https_link(self):
        assert render("[docs](https://example.com/a?x=1&y=2)") == (
            f'<a href="https://example.com/a?x=1&amp;y=2" {LINK_ATTRS}>docs</a>'
        )

    def test_javascript_link_is_neutralized(self):
        out = render("[click](javascript:alert(1))")
        assert out.startswith(f'<a href="#" {LINK_ATTRS}>click</a>')
        assert "javascript" not in out

    def test_relative_link_uses_origin(self):
        assert render("[home](/index.html)") == (
            f'<a href="http://localhost:9123/index.html" {LINK_ATTRS}>home</a>'
        )
        out = render("[home](/index.html)", origin="https://lqos.example")
        assert 'href="https://lqos.example/index.html"' in out

    def test_emphasis_cannot_reach_into_href(self):
        out = render("[x](http://a.com/*y*)")
        assert 'href="http://a.com/%2Ay%2A"' in out
        assert "<em>" not in out

    def test_unfinished_link_stays_literal(self):
        assert render("[a](http://x") == "[a](http://x"

    @pytest.mark.parametrize("url", [
        "javascript:alert(1)",
        "data:text/html,hi",
        "mailto:a@b.c",
        "ftp://host/file",
        "http://",
        "http://[::1",
        "http://a:99999/",
        "http://a:port/",
    ])
    def test_safe_url_rejects(self, url):
        assert safe_url(url) == "#"

    def test_safe_url_allows_http(self):
        assert safe_url("HTTP://Example.com/x") == "HTTP://Example.com/x"
        assert safe_url("//cdn.example/x", "https://h") == "https://cdn.example/x"

    def test_safe_url_same_scheme_without_slashes_is_relative(self):
        assert safe_url("http:foo") == "http://localhost:9123/foo"
        assert safe_url("https:docs", "https://lqos.example") == "https://lqos.example/docs"


class TestTables:

    def test_table(self):
        raw = "| a | b |\n|---|:---:|\n| 1 | 2 |\n| 3 | 4 |\nafter"
        assert render(raw) == (
            TABLE_OPEN
            + "<thead><tr><th>a</th><th>b</th></tr></thead>"
            + "<tbody><tr><td>1</td><td>2</td></tr><tr><td>3</td><td>4</td></tr></tbody>"
            + "</table><br>after"
        )

    def test_header_without_separator_yet(self):
        assert render("| a | b |") == "| a | b |"
        assert render("| a | b |\n|--") == "| a | b |<br>|--"

    def test_table_without_body(self):
        out = convert_tables("| a | b |\n| --- | --- |")
        assert out == TABLE_OPEN + "<thead><tr><th>a</th><th>b</th></tr></thead><tbody></tbody></table>"

    def test_cells_get_inline_formatting(self):
        out = render("| k | v |\n|---|---|\n| **x** | `y` |")
        assert "<td><strong>x</strong></td><td><code>y</code></td>" in out

    def test_crlf_normalized(self):
        assert convert_tables("a\r\nb") == "a\nb"


def test_line_breaks():
    assert render("a\r\nb\nc") == "a<br>b<br>c"


def test_stage_order():
    stages = pipeline()
    assert len(stages) == 7
    assert stages[0] is escape_html
    assert stages[1] is convert_tables
    assert STAGES[3] is convert_code


def test_render_is_repeatable():
    raw = "# T\n| a | b |\n|---|---|\n| 1 | 2 |\n**b** *i* `c` [l](/x)\n```\ncode\n```"
    assert render(raw) == render(raw)


_GENERATED_TAG = re.compile(
    r"</?(?:table|thead|tbody|tr|th|td|h[1-3]|pre|code|a|strong|em|br)\b[^>]*>"
)


@pytest.mark.parametrize("raw", [
    "a < b && c > d",
    "<img src=x onerror=alert(1)>",
    "**<b>** *<i>* `<code>` [<x>](http://e.com/?a=<b>&c)",
    "| <a> | & |\n|---|---|\n| > | < |",
    "```\n</code></pre><script>\n```",
    "# <h1>\n[x](javascript:&lt;)",
])
def test_no_unescaped_markup_outside_generated_tags(raw):
    text = _GENERATED_TAG.sub("", render(raw))
    assert "<" not in text
    assert ">" not in text
    assert re.sub(r"&(?:amp|lt|gt|quot|#39);", "", text).count("&") == 0


@pytest.mark.parametrize("cut", range(0, 60, 3))
def test_truncated_markdown_never_raises(cut):
    raw = "## Head\n| a | b |\n|---|---|\n| 1 | 2 |\n```py\nx\n``` [l](http://h/x) **b**"
    assert isinstance(render(raw[:cut]), str)
