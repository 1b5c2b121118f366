"""Research report → Confluence storage format (XHTML).

Rules run in a fixed order so later rules never re-match earlier output:

    1. escape  & < > " '
    2. **bold**          → <strong>
    3. *italic*          → <em>
    4. # / ## / ###      → <h1> / <h2> / <h3>
    5. bullet lines      → one <ul>;  numbered lines → one <ol>
    6. [text](url)       → <a href="url">
    7. --- lines         → <hr/>
    8. remaining blocks  → <p> (block-level output passes through)

Block-level output (headings, lists, rules) is fenced with blank lines so
step 8 never wraps a block element inside a paragraph.

The converted body is framed by an info macro banner and a note macro
footer. Both carry their headline in the macro ``title`` parameter, so every
<strong> in the page comes from the report itself.
"""

from __future__ import annotations

import html
import json
import re
from typing import Any

import structlog

from tofu.models.schemas import EntityType, entity_emoji, entity_label
from tofu.utils.clock import today_str

logger = structlog.get_logger().bind(component="research.formatter")

EMPTY_REPORT = "No research content available."

_BOLD = re.compile(r"\*\*([^*\n]+?)\*\*")
# Single-star span on one line; a "* " bullet marker never opens one
_ITALIC = re.compile(r"(?<![*\w])\*(?![\s*])([^*\n]+?)(?<!\s)\*(?![*\w])")
_HEADINGS = (
    (re.compile(r"^### (.+)$", re.MULTILINE), "h3"),
    (re.compile(r"^## (.+)$", re.MULTILINE), "h2"),
    (re.compile(r"^# (.+)$", re.MULTILINE), "h1"),
)
_BULLET_LINE = re.compile(r"^[-•*] +")
_BULLET_RUN = re.compile(r"(?:^[-•*] +.+(?:\n|$))+", re.MULTILINE)
_NUMBERED_LINE = re.compile(r"^\d+\. +")
_NUMBERED_RUN = re.compile(r"(?:^\d+\. +.+(?:\n|$))+", re.MULTILINE)
_LINK = re.compile(r"\[([^\]\n]+)\]\(([^)\s]+)\)")
_RULE = re.compile(r"^-{3,}[ \t]*$", re.MULTILINE)
_BLOCK_BREAK = re.compile(r"\n{2,}")

_BLOCK_TAGS = ("<h1>", "<h2>", "<h3>", "<ul>", "<ol>", "<hr/>")


def _list_replacer(tag: str, marker: re.Pattern[str]):
    def replace(match: re.Match[str]) -> str:
        items = [
            f"<li>{marker.sub('', line).strip()}</li>"
            for line in match.group(0).split("\n")
            if line.strip()
        ]
        return f"\n\n<{tag}>\n" + "\n".join(items) + f"\n</{tag}>\n\n"

    return replace


def convert_markdown(text: str) -> str:
    """Convert markdown-ish report text to storage-format XHTML."""
    content = html.escape(text.replace("\r\n", "\n"), quote=True)

    content = _BOLD.sub(r"<strong>\1</strong>", content)
    content = _ITALIC.sub(r"<em>\1</em>", content)

    for pattern, tag in _HEADINGS:
        content = pattern.sub(rf"\n\n<{tag}>\1</{tag}>\n\n", content)

    content = _BULLET_RUN.sub(_list_replacer("ul", _BULLET_LINE), content)
    content = _NUMBERED_RUN.sub(_list_replacer("ol", _NUMBERED_LINE), content)

    content = _LINK.sub(r'<a href="\2">\1</a>', content)
    content = _RULE.sub("\n\n<hr/>\n\n", content)

    blocks: list[str] = []
    for block in _BLOCK_BREAK.split(content):
        block = block.strip()
        if not block:
            continue
        if block.startswith(_BLOCK_TAGS):
            blocks.append(block)
        else:
            blocks.append("<p>" + block.replace("\n", "<br/>") + "</p>")
    return "\n\n".join(blocks)


def _coerce_report(report: Any) -> str:
    if isinstance(report, str) and report.strip():
        return report
    if report and not isinstance(report, str):
        logger.warning("formatter_non_string_report", type=type(report).__name__)
        return json.dumps(report, indent=2, default=str)
    return EMPTY_REPORT


def to_publishable_markup(
    report: Any,
    subject: str,
    entity_type: EntityType,
    *,
    generated_on: str | None = None,
) -> str:
    """Full page body: banner, ``Research: {subject}`` heading, report, footer."""
    name = html.escape(subject, quote=True)
    emoji = entity_emoji(entity_type)
    label = entity_label(entity_type)
    generated_on = generated_on or today_str()

    banner = (
        '<ac:structured-macro ac:name="info">\n'
        f'  <ac:parameter ac:name="title">{emoji} {label} Lead Research</ac:parameter>\n'
        "  <ac:rich-text-body>\n"
        f"    <p>This page contains AI-generated research about {name}.</p>\n"
        f"    <p><em>Generated by Tofu on {generated_on}</em></p>\n"
        "  </ac:rich-text-body>\n"
        "</ac:structured-macro>\n"
        f"<h1>Research: {name}</h1>\n"
    )
    footer = (
        "\n<hr/>\n"
        '<ac:structured-macro ac:name="note">\n'
        '  <ac:parameter ac:name="title">About this research</ac:parameter>\n'
        "  <ac:rich-text-body>\n"
        "    <p>This research was generated using Exa AI's research capabilities. "
        "The information should be verified before taking action.</p>\n"
        "  </ac:rich-text-body>\n"
        "</ac:structured-macro>\n"
    )
    return banner + convert_markdown(_coerce_report(report)) + footer
