"""Atlassian Document Format builders for lead issues and research comments."""

from __future__ import annotations

from typing import Any

from tofu.models.schemas import EntityType, entity_emoji, entity_label
from tofu.utils.clock import today_str

# Characters of background detail kept in an issue description
DETAILS_LIMIT = 3000


def _text(text: str, *marks: dict[str, Any]) -> dict[str, Any]:
    node: dict[str, Any] = {"type": "text", "text": text}
    if marks:
        node["marks"] = list(marks)
    return node


def _paragraph(*content: dict[str, Any]) -> dict[str, Any]:
    return {"type": "paragraph", "content": list(content)}


def _doc(content: list[dict[str, Any]]) -> dict[str, Any]:
    return {"type": "doc", "version": 1, "content": content}


STRONG = {"type": "strong"}
EM = {"type": "em"}


def _link(href: str) -> dict[str, Any]:
    return {"type": "link", "attrs": {"href": href}}


def lead_description(
    name: str,
    entity_type: EntityType,
    summary: str,
    details: str | None = None,
    source_url: str | None = None,
    *,
    added_on: str | None = None,
) -> dict[str, Any]:
    """Issue description for a new lead."""
    content = [
        _paragraph(_text(f"{entity_emoji(entity_type)} {entity_label(entity_type)} Lead", STRONG)),
        _paragraph(_text("Summary: ", STRONG), _text(summary or f"Lead information for {name}")),
    ]
    if details and details.strip():
        content.append(
            {
                "type": "heading",
                "attrs": {"level": 3},
                "content": [_text("Background Information")],
            }
        )
        content.append(_paragraph(_text(details[:DETAILS_LIMIT])))
    if source_url:
        content.append(_paragraph(_text("Source: ", STRONG), _text(source_url, _link(source_url))))
    content.append(_paragraph(_text(f"Added via Tofu on {added_on or today_str()}", EM)))
    return _doc(content)


def research_comment(
    page_url: str,
    page_title: str,
    subject: str,
    entity_type: EntityType,
) -> dict[str, Any]:
    """Success panel linking an issue to its research page."""
    return _doc(
        [
            {
                "type": "panel",
                "attrs": {"panelType": "success"},
                "content": [
                    _paragraph(_text(f"{entity_emoji(entity_type)} Deep Research Complete", STRONG)),
                    _paragraph(
                        _text("A comprehensive research page has been created for "),
                        _text(subject, STRONG),
                        _text("."),
                    ),
                    _paragraph(_text("📄 "), _text(page_title, _link(page_url))),
                ],
            }
        ]
    )
