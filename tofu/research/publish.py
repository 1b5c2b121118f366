"""Publishing research reports as Confluence pages."""

from __future__ import annotations

import structlog

from tofu.errors import NoPublishLocationError
from tofu.models.schemas import EntityType
from tofu.research.formatter import to_publishable_markup
from tofu.tools.confluence_client import ConfluenceClient, CreatedPage

logger = structlog.get_logger().bind(component="research.publish")


async def resolve_space_key(
    confluence: ConfluenceClient,
    *candidates: str | None,
) -> str:
    """First non-empty candidate, else the default space, else the first listed space.

    Raises:
        NoPublishLocationError: nothing to publish into.
    """
    for key in candidates:
        if key:
            return key

    default = await confluence.get_default_space_key()
    if default:
        logger.info("publish_default_space", space=default)
        return default

    spaces = await confluence.list_spaces()
    if spaces:
        logger.info("publish_first_space", space=spaces[0].key)
        return spaces[0].key

    raise NoPublishLocationError(
        "No Confluence spaces available. Create a space or set confluenceSpaceKey in the Tofu settings."
    )


async def publish_report(
    confluence: ConfluenceClient,
    space_key: str,
    title: str,
    report: str,
    subject: str,
    entity_type: EntityType,
) -> CreatedPage:
    body = to_publishable_markup(report, subject, entity_type)
    return await confluence.create_page(space_key, title, body, format="storage")
