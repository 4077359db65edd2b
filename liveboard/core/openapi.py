"""OpenAPI customization utilities.

Enriches the generated schema with:
- Tags metadata for every router
- Documentation of the identity headers the rate limiter consumes on the
  write endpoints

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from liveboard.core.rate_limit import FORWARDED_FOR_HEADER, USER_ID_HEADER

RATE_LIMITED_PATHS = ("/api/questions/new", "/actions/like", "/actions/delete")

TAGS_METADATA = [
    {"name": "Questions", "description": "Create and list questions."},
    {"name": "Actions", "description": "Like and delete questions."},
    {"name": "Stream", "description": "Server-sent event stream of question changes."},
    {"name": "Auth", "description": "Login stub issuing a session cookie."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]


def _identity_parameters() -> list[Dict[str, Any]]:
    return [
        {
            "name": USER_ID_HEADER,
            "in": "header",
            "required": False,
            "schema": {"type": "string"},
            "description": "Authenticated user id; preferred rate limit identity.",
        },
        {
            "name": FORWARDED_FOR_HEADER,
            "in": "header",
            "required": False,
            "schema": {"type": "string"},
            "description": "Proxy chain; the first address is used when no user id is sent.",
        },
    ]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and identity headers."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path in RATE_LIMITED_PATHS:
            operation = paths.get(path, {}).get("post")
            if not isinstance(operation, dict):
                continue
            params = operation.setdefault("parameters", [])
            known = {(p.get("name"), p.get("in")) for p in params}
            for param in _identity_parameters():
                if (param["name"], "header") not in known:
                    params.append(param)
            operation.setdefault("responses", {}).setdefault(
                "429", {"description": "Rate limit exceeded; see Retry-After."}
            )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
