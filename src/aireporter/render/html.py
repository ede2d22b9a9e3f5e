from __future__ import annotations

import html as html_lib
import re

import markdown

DEFAULT_ACCENT_COLOR = "#4ade80"

_CODE_BLOCK_RE = re.compile(r'(?is)<pre><code(?: class="([^"]*)")?>(.*?)</code></pre>')
_LANGUAGE_CLASS_RE = re.compile(r"(?:language|lang)-([\w+#.-]+)")
_HEX_COLOR_RE = re.compile(r"#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})")


def markdown_to_html(markdown_text: str) -> str:
    return markdown.markdown(markdown_text or "", extensions=["extra", "tables", "fenced_code"])


def wrap_code_blocks(body_html: str) -> str:
    """Put every ``<pre><code>`` block under a header naming its language."""

    def replace(match: re.Match[str]) -> str:
        lang_match = _LANGUAGE_CLASS_RE.search(match.group(1) or "")
        lang = lang_match.group(1).lower() if lang_match else "text"
        label = html_lib.escape(lang.upper())
        safe_lang = html_lib.escape(lang, quote=True)
        # Markdown already escaped the code body.
        return (
            '<div class="code-block-wrapper">'
            f'<div class="code-header"><span class="code-label">{label}</span></div>'
            f'<pre><code class="language-{safe_lang}">{match.group(2)}</code></pre>'
            "</div>"
        )

    return _CODE_BLOCK_RE.sub(replace, body_html or "")


def normalize_accent_color(value: str | None) -> str:
    match = _HEX_COLOR_RE.fullmatch((value or "").strip())
    if not match:
        return DEFAULT_ACCENT_COLOR
    digits = match.group(1).lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


def _report_css(accent: str) -> str:
    return (
        "* { margin: 0; padding: 0; }\n"
        "body { font-family: sans-serif; font-size: 9pt; line-height: 1.6; color: #e0e0e0; "
        "background-color: #0d0d0d; }\n"
        "h1 { font-size: 22pt; font-weight: bold; color: #ffffff; margin-bottom: 18pt; "
        "padding-bottom: 10pt; border-bottom: 2px solid #333333; }\n"
        "h2 { font-size: 15pt; font-weight: bold; color: #ffffff; margin-top: 24pt; "
        "margin-bottom: 12pt; padding-bottom: 6pt; border-bottom: 1px solid #2a2a2a; }\n"
        "h3 { font-size: 12pt; font-weight: bold; color: #f0f0f0; margin-top: 18pt; margin-bottom: 8pt; }\n"
        "h4 { font-size: 10.5pt; font-weight: bold; color: #d0d0d0; margin-top: 12pt; margin-bottom: 6pt; }\n"
        "p { margin-bottom: 9pt; color: #c0c0c0; }\n"
        "ul, ol { margin-left: 20pt; margin-bottom: 12pt; }\n"
        "li { margin-bottom: 4pt; color: #b8b8b8; }\n"
        "a { color: #60a5fa; text-decoration: none; }\n"
        "table { width: 100%; border-collapse: collapse; margin: 14pt 0; font-size: 8.5pt; }\n"
        "th, td { border: 1px solid #333333; padding: 6pt 8pt; text-align: left; }\n"
        "th { background-color: #1a1a1a; color: #ffffff; }\n"
        f"strong {{ color: {accent}; }}\n"
        "code { font-family: monospace; }\n"
        ".code-block-wrapper { margin: 12pt 0; border: 1px solid #2a2a2a; }\n"
        ".code-header { padding: 4pt 8pt; background-color: #161616; border-bottom: 1px solid #2a2a2a; }\n"
        f".code-label {{ font-size: 7pt; font-weight: bold; color: {accent}; }}\n"
        "pre { padding: 8pt; white-space: pre-wrap; font-size: 8pt; background-color: #111111; color: #d4d4d4; }\n"
        "img { max-width: 100%; margin: 12pt 0; }\n"
        f"blockquote {{ border-left: 4px solid {accent}; padding-left: 10pt; color: #a0a0a0; }}\n"
        "hr { border: none; border-top: 1px solid #2a2a2a; margin: 18pt 0; }\n"
    )


def render_report_html(markdown_text: str, *, accent_color: str | None = None, title: str = "Security Report") -> str:
    """Full HTML document for a report whose image references are already resolved."""
    accent = normalize_accent_color(accent_color)
    body_html = wrap_code_blocks(markdown_to_html(markdown_text))
    safe_title = html_lib.escape(title or "Security Report")
    return (
        "<!doctype html>\n"
        "<html lang=\"en\">\n"
        "<head>\n"
        "  <meta charset=\"utf-8\" />\n"
        f"  <title>{safe_title}</title>\n"
        f"  <style>\n{_report_css(accent)}  </style>\n"
        "</head>\n"
        "<body>\n"
        f"{body_html}\n"
        "</body>\n"
        "</html>\n"
    )
