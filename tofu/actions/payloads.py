"""Action payloads — one model per action, tagged by ``action``.

Raw payloads come from the agent runtime or the CLI as plain dicts with
camelCase keys. ``parse_payload`` picks the model by tag, validates, and
turns the first validation error into the message the user should see.
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import ConfigDict, Field, ValidationError

from tofu.errors import InvalidPayloadError
from tofu.models.schemas import CamelModel, EntityType

_ENTITY_TYPE_MESSAGE = 'Please specify whether you want to research a "person" or a "company".'


class JiraContext(CamelModel):
    project_key: str | None = None
    project_id: str | None = None


class ActionContext(CamelModel):
    """Invocation context supplied by the host product."""

    model_config = ConfigDict(extra="ignore")

    cloud_id: str | None = None
    module_key: str | None = None
    user_id: str | None = None
    jira: JiraContext | None = None


class _Payload(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    # field alias → message shown when that field fails validation
    field_messages: ClassVar[dict[str, str]] = {}

    context: ActionContext = Field(default_factory=ActionContext)


class SearchPeoplePayload(_Payload):
    action: Literal["search-people"] = "search-people"
    query: str = Field(min_length=1)
    num_results: int | None = Field(default=None, ge=1, le=100)

    field_messages: ClassVar[dict[str, str]] = {
        "query": (
            "Please provide a search query describing the type of people you want to find. "
            'For example: "Senior React developers in San Francisco" or '
            '"Marketing executives at Fortune 500 companies"'
        ),
        "numResults": "The number of results must be between 1 and 100.",
    }


class SearchCompaniesPayload(_Payload):
    action: Literal["search-companies"] = "search-companies"
    query: str = Field(min_length=1)
    num_results: int | None = Field(default=None, ge=1, le=100)

    field_messages: ClassVar[dict[str, str]] = {
        "query": (
            "Please provide a search query describing the type of companies you want to find. "
            'For example: "AI startups in healthcare" or "Series B fintech companies in Europe"'
        ),
        "numResults": "The number of results must be between 1 and 100.",
    }


class DeepResearchPayload(_Payload):
    action: Literal["deep-research"] = "deep-research"
    query: str = Field(min_length=1)
    entity_type: EntityType

    field_messages: ClassVar[dict[str, str]] = {
        "query": "Please provide the name of the person or company you want to research.",
        "entityType": _ENTITY_TYPE_MESSAGE,
    }


class DeepResearchAsyncPayload(_Payload):
    action: Literal["deep-research-async"] = "deep-research-async"
    query: str = Field(min_length=1)
    entity_type: EntityType
    space_key: str | None = None
    issue_key: str | None = None

    field_messages: ClassVar[dict[str, str]] = DeepResearchPayload.field_messages


class ResearchStatusPayload(_Payload):
    action: Literal["research-status"] = "research-status"
    research_id: str = Field(min_length=1)

    field_messages: ClassVar[dict[str, str]] = {
        "researchId": "Please provide the research ID you were given when the research started.",
    }


class AddToBoardPayload(_Payload):
    action: Literal["add-to-board"] = "add-to-board"
    name: str = Field(min_length=1)
    entity_type: EntityType
    summary: str = Field(min_length=1)
    details: str | None = None
    source_url: str | None = None
    project_key: str | None = None

    field_messages: ClassVar[dict[str, str]] = {
        "name": "Please provide the name of the person or company to add to the board.",
        "entityType": 'Please specify whether this is a "person" or "company" lead.',
        "summary": "Please provide a brief summary or description of this lead.",
    }


class IssueDeepResearchPayload(_Payload):
    action: Literal["issue-deep-research"] = "issue-deep-research"
    issue_key: str = Field(min_length=1)

    field_messages: ClassVar[dict[str, str]] = {
        "issueKey": "Could not determine which issue to research. Please try again.",
    }


ActionPayload = Annotated[
    Union[
        SearchPeoplePayload,
        SearchCompaniesPayload,
        DeepResearchPayload,
        DeepResearchAsyncPayload,
        ResearchStatusPayload,
        AddToBoardPayload,
        IssueDeepResearchPayload,
    ],
    Field(discriminator="action"),
]

PAYLOAD_MODELS: dict[str, type[_Payload]] = {
    model.model_fields["action"].default: model
    for model in (
        SearchPeoplePayload,
        SearchCompaniesPayload,
        DeepResearchPayload,
        DeepResearchAsyncPayload,
        ResearchStatusPayload,
        AddToBoardPayload,
        IssueDeepResearchPayload,
    )
}


def parse_payload(raw: Any) -> ActionPayload:
    """Validate *raw* against the model its ``action`` tag names.

    Raises:
        InvalidPayloadError: unknown tag or invalid fields; the message is
                             meant for the end user.
    """
    if not isinstance(raw, dict):
        raise InvalidPayloadError("Action payload must be an object.")

    action = raw.get("action")
    model = PAYLOAD_MODELS.get(action) if isinstance(action, str) else None
    if model is None:
        known = ", ".join(sorted(PAYLOAD_MODELS))
        raise InvalidPayloadError(f"Unknown action {action!r}. Expected one of: {known}.")

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first["loc"] else ""
        message = model.field_messages.get(field) or f"Invalid value for {field or 'payload'}: {first['msg']}"
        raise InvalidPayloadError(message) from exc
