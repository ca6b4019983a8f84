"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- A shared ``RateLimitError`` schema and a documented 429 response on every
  operation guarded by a rate limit gate

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {"name": "Rate Limit", "description": "Greeting and quota introspection endpoints."},
    {"name": "Users", "description": "Mock user listing (general + api tiers)."},
    {"name": "Auth", "description": "Mock login and registration (strict tiers)."},
    {"name": "Health", "description": "Liveness checks."},
]

RATE_LIMIT_ERROR_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "success": {"type": "boolean", "enum": [False]},
        "error": {
            "type": "object",
            "properties": {
                "message": {"type": "string"},
                "type": {
                    "type": "string",
                    "enum": [
                        "RATE_LIMIT_EXCEEDED",
                        "STRICT_RATE_LIMIT_EXCEEDED",
                        "API_RATE_LIMIT_EXCEEDED",
                        "ACCOUNT_CREATION_LIMIT_EXCEEDED",
                    ],
                },
            },
            "required": ["message", "type"],
        },
    },
    "required": ["success", "error"],
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 documentation.

    Every operation is rate limited by the app-wide general tier, so every
    operation gets the 429 response.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        component_schemas = components.setdefault("schemas", {})
        component_schemas.setdefault("RateLimitError", RATE_LIMIT_ERROR_SCHEMA)

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                responses = method_obj.setdefault("responses", {})
                responses.setdefault(
                    "429",
                    {
                        "description": "Rate limit exceeded",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/RateLimitError"}
                            }
                        },
                    },
                )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
