"""Sample OpenAPI document used to seed a new API model."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml

from .utils import write_if_absent

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.3"

_ERROR_RESPONSES = (
    (500, "An internal failure at the fault of the server", "InternalFailureErrorResponseContent"),
    (400, "An error at the fault of the client sending invalid input", "BadRequestErrorResponseContent"),
    (403, "An error due to the client not being authorized to access the resource", "NotAuthorizedErrorResponseContent"),
)


def _message_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {"message": {"type": "string"}},
        "required": ["message"],
    }


def _json_response(description: str, schema_name: str) -> Dict[str, Any]:
    return {
        "description": description,
        "content": {"application/json": {"schema": {"$ref": f"#/components/schemas/{schema_name}"}}},
    }


def sample_openapi_document(title: str, handler_language: Optional[str] = None) -> Dict[str, Any]:
    operation: Dict[str, Any] = {"operationId": "sayHello"}
    if handler_language:
        operation["x-handler"] = {"language": handler_language}
    operation["parameters"] = [
        {"in": "query", "name": "name", "schema": {"type": "string"}, "required": True},
    ]
    responses = {200: _json_response("Successful response", "SayHelloResponseContent")}
    schemas = {"SayHelloResponseContent": _message_schema()}
    for status, description, schema_name in _ERROR_RESPONSES:
        responses[status] = _json_response(description, schema_name)
        schemas[schema_name] = _message_schema()
    operation["responses"] = responses

    return {
        "openapi": OPENAPI_VERSION,
        "info": {"version": "1.0.0", "title": title},
        "paths": {"/hello": {"get": operation}},
        "components": {"schemas": schemas},
    }


def render_sample_openapi(title: str, handler_languages: Sequence[str] = ()) -> str:
    first_language = handler_languages[0] if handler_languages else None
    document = sample_openapi_document(title, first_language)
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)


def write_sample_openapi(path: str | Path, title: str, handler_languages: Sequence[str] = ()) -> bool:
    """Write the sample specification unless ``path`` already exists.

    Returns True when the file was written, False when an existing file was left alone.
    """

    written = write_if_absent(path, render_sample_openapi(title, handler_languages))
    if written:
        logger.info("Wrote sample OpenAPI specification to %s", path)
    else:
        logger.debug("Keeping existing OpenAPI specification at %s", path)
    return written
