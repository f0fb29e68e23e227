"""
Structured output protocol.

Forces the model's reply into a caller-supplied schema.  The request is annotated with a
``json_schema`` response format; replies that fail to parse or validate trigger a corrective user
message and another attempt, up to ``max_retries`` attempts in total.
"""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Union,
)

from pydantic import BaseModel

from runmesh.client.base import ChatClient
from runmesh.core.errors import (
    SchemaValidationFailed,
    StructuredOutputInvalid,
)
from runmesh.core.schema import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    text_from_content,
)
from runmesh.core.validation import (
    assert_valid,
    to_json_schema,
)

logger = logging.getLogger(__name__)

SCHEMA_TITLE = "StructuredOutput"
RESPONSE_FORMAT_NAME = "structured_output"


class StructuredResult(BaseModel):
    """A validated value, the raw text it came from and the zero-based attempt that produced it."""

    value: Any
    raw: str
    retries: int = 0


def build_json_schema(schema: Any) -> Dict[str, Any]:
    """JSON-Schema document advertised for *schema*."""
    return to_json_schema(schema, SCHEMA_TITLE)


def extract_content(response: ChatResponse) -> str:
    """
    Text content of the first choice.

    Raises
    ------
    SchemaValidationFailed
        If the first choice carries no text content.
    """
    message = response.message
    text = text_from_content(message.content) if message is not None else None
    if text is None:
        raise SchemaValidationFailed("Response did not include text content")
    return text


def parse_structured_output(response: ChatResponse, schema: Any) -> StructuredResult:
    """
    Parse and validate a single response against *schema*.

    Raises
    ------
    StructuredOutputInvalid
        Wrapping the JSON decode error or schema violation.
    """
    try:
        text = extract_content(response)
        value = assert_valid(schema, json.loads(text))
    except json.JSONDecodeError as exc:
        raise StructuredOutputInvalid("Unable to parse structured output", 1, exc) from exc
    except SchemaValidationFailed as exc:
        cause = exc.cause or exc
        raise StructuredOutputInvalid("Unable to parse structured output", 1, cause) from cause
    return StructuredResult(value=value, raw=text, retries=0)


def corrective_message(json_schema: Dict[str, Any]) -> ChatMessage:
    """User turn asking the model to retry with strictly valid JSON."""
    content = "\n".join(
        [
            "The previous response was not valid JSON for the requested schema.",
            "Please return strictly valid JSON only.",
            "Schema expectation:",
            json.dumps(json_schema),
        ]
    )
    return ChatMessage(role="user", content=content)


async def generate_structured_output(
    client: ChatClient,
    request: Union[ChatRequest, Dict[str, Any]],
    schema: Any,
    max_retries: int = 1,
) -> StructuredResult:
    """
    Ask the model for schema-constrained output, retrying with corrective instructions.

    Parameters
    ----------
    client:
        Chat client used for every attempt.
    request:
        Base request; its messages are copied, never mutated.
    schema:
        Target schema (typically a pydantic model class).
    max_retries:
        Total number of attempts, so ``1`` means a single attempt.

    Returns
    -------
    StructuredResult
        ``retries`` is the zero-based index of the successful attempt.

    Raises
    ------
    ValueError
        If *max_retries* is not positive.
    StructuredOutputInvalid
        After the last attempt fails; the last parse/validation error is the cause.
    """
    if max_retries <= 0:
        raise ValueError(f"max_retries must be a positive number of attempts, got {max_retries}")

    if not isinstance(request, ChatRequest):
        request = ChatRequest.model_validate(request)
    messages: List[ChatMessage] = list(request.messages)
    last_error: BaseException | None = None

    for attempt in range(max_retries):
        json_schema = build_json_schema(schema)
        attempt_request = request.model_copy(
            update={
                "messages": list(messages),
                "response_format": {
                    "type": "json_schema",
                    "json_schema": {"name": RESPONSE_FORMAT_NAME, "schema": json_schema},
                },
            }
        )
        response = await client.respond(attempt_request)

        try:
            result = parse_structured_output(response, schema)
        except StructuredOutputInvalid as exc:
            last_error = exc.cause
            logger.warning(
                "Structured output attempt %d/%d invalid: %s", attempt + 1, max_retries, exc.cause
            )
            if attempt + 1 < max_retries:
                messages.append(corrective_message(json_schema))
            continue

        logger.debug("Structured output valid after %d retries", attempt)
        return result.model_copy(update={"retries": attempt})

    raise StructuredOutputInvalid(
        f"Unable to parse structured output after {max_retries} attempts", max_retries, last_error
    )
