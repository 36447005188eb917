"""API handlers for exclusion rules.

Endpoints:
    GET /api/exclusions - List rules (optionally for one scope)
    DELETE /api/exclusions?confirm=true - Delete every rule
    POST /api/exclusions - Add a rule
    POST /api/exclusions/check - Test a path against the rules
    POST /api/exclusions/import - Import serialized rules
    GET /api/exclusions/export - Download every rule
    GET /api/exclusions/{rule_id} - Get one rule
    PUT /api/exclusions/{rule_id} - Update a rule
    DELETE /api/exclusions/{rule_id} - Remove a rule

Every mutation invalidates cached scans the change could affect.
"""

from __future__ import annotations

import logging

from aiohttp import web

from umd.exclusions import (
    GLOBAL_SCOPE,
    ExclusionRuleNotFoundError,
    ExclusionService,
    InvalidExclusionRuleError,
)
from umd.server.api.errors import (
    CONFIRMATION_REQUIRED,
    api_error,
    domain_error,
    rule_not_found,
)
from umd.server.api.models import (
    ExclusionCheck,
    ExclusionCreate,
    ExclusionImport,
    ExclusionUpdate,
    parse_body,
)
from umd.server.middleware import (
    EXCLUSIONS_ALLOWED_PARAMS,
    EXCLUSIONS_CLEAR_ALLOWED_PARAMS,
    validate_query_params,
)

logger = logging.getLogger(__name__)


def _service(request: web.Request) -> ExclusionService:
    return request.app["exclusions"]


@validate_query_params(EXCLUSIONS_ALLOWED_PARAMS)
async def exclusions_list_handler(request: web.Request) -> web.Response:
    """Handle GET /api/exclusions.

    Query parameters:
        scope: Return global rules plus the rules of this scope only.
    """
    service = _service(request)
    scope = request.query.get("scope")
    rules = service.get_rules_for_scope(scope) if scope else service.get_all_rules()
    return web.json_response(
        {"rules": [r.to_dict() for r in rules], "total": len(rules)}
    )


async def exclusion_get_handler(request: web.Request) -> web.Response:
    """Handle GET /api/exclusions/{rule_id}."""
    rule_id = request.match_info["rule_id"]
    rule = _service(request).get_rule(rule_id)
    if rule is None:
        return rule_not_found(rule_id)
    return web.json_response(rule.to_dict())


async def exclusion_create_handler(request: web.Request) -> web.Response:
    """Handle POST /api/exclusions - add a rule (201)."""
    body = await parse_body(request, ExclusionCreate)
    if isinstance(body, web.Response):
        return body

    try:
        rule = _service(request).add_rule(body.pattern, body.type, body.scope)
    except InvalidExclusionRuleError as e:
        return domain_error(e)

    cache = request.app["scan_cache"]
    if rule.is_global:
        cache.clear_all()
    else:
        cache.invalidate(rule.scope)
    return web.json_response(rule.to_dict(), status=201)


async def exclusion_update_handler(request: web.Request) -> web.Response:
    """Handle PUT /api/exclusions/{rule_id}."""
    body = await parse_body(request, ExclusionUpdate)
    if isinstance(body, web.Response):
        return body

    try:
        rule = _service(request).update_rule(
            request.match_info["rule_id"],
            pattern=body.pattern,
            rule_type=body.type,
            scope=body.scope,
        )
    except ExclusionRuleNotFoundError as e:
        return rule_not_found(e.rule_id)
    except InvalidExclusionRuleError as e:
        return domain_error(e)

    request.app["scan_cache"].clear_all()
    return web.json_response(rule.to_dict())


async def exclusion_delete_handler(request: web.Request) -> web.Response:
    """Handle DELETE /api/exclusions/{rule_id}."""
    rule_id = request.match_info["rule_id"]
    if not _service(request).remove_rule(rule_id):
        return rule_not_found(rule_id)
    request.app["scan_cache"].clear_all()
    return web.json_response(
        {
            "success": True,
            "message": "Exclusion rule removed. Item will appear in future scans.",
        }
    )


async def exclusion_check_handler(request: web.Request) -> web.Response:
    """Handle POST /api/exclusions/check - report the rule matching a path."""
    body = await parse_body(request, ExclusionCheck)
    if isinstance(body, web.Response):
        return body

    match = _service(request).get_match(body.path, body.scope)
    payload: dict[str, object] = {
        "path": body.path,
        "scope": body.scope or GLOBAL_SCOPE,
        "excluded": match is not None,
    }
    if match is not None:
        payload.update(match.to_dict())
    return web.json_response(payload)


async def exclusions_import_handler(request: web.Request) -> web.Response:
    """Handle POST /api/exclusions/import.

    Body: ``{"rules": [...], "replace": false}``. Invalid entries and ids
    that already exist are skipped.
    """
    body = await parse_body(request, ExclusionImport)
    if isinstance(body, web.Response):
        return body

    service = _service(request)
    imported, skipped = service.import_rules(body.rules, replace=body.replace)
    request.app["scan_cache"].clear_all()
    return web.json_response(
        {
            "success": True,
            "imported": imported,
            "skipped": skipped,
            "total": len(service.get_all_rules()),
        }
    )


async def exclusions_export_handler(request: web.Request) -> web.Response:
    """Handle GET /api/exclusions/export - rules as a downloadable file."""
    response = web.json_response(_service(request).export_rules())
    response.headers["Content-Disposition"] = 'attachment; filename="exclusions.json"'
    return response


@validate_query_params(EXCLUSIONS_CLEAR_ALLOWED_PARAMS)
async def exclusions_clear_handler(request: web.Request) -> web.Response:
    """Handle DELETE /api/exclusions - requires ``?confirm=true``."""
    if request.query.get("confirm") != "true":
        return api_error(
            "Add ?confirm=true to confirm clearing all exclusion rules",
            code=CONFIRMATION_REQUIRED,
        )
    removed = _service(request).clear_all()
    request.app["scan_cache"].clear_all()
    return web.json_response(
        {
            "success": True,
            "message": "All exclusion rules cleared",
            "removed": removed,
        }
    )


def get_exclusion_routes() -> list[tuple[str, str, object]]:
    """Return exclusion route definitions as (method, path_suffix, handler) tuples.

    Fixed paths come before ``{rule_id}`` so they are never read as ids.
    """
    return [
        ("GET", "/exclusions", exclusions_list_handler),
        ("POST", "/exclusions", exclusion_create_handler),
        ("DELETE", "/exclusions", exclusions_clear_handler),
        ("POST", "/exclusions/check", exclusion_check_handler),
        ("POST", "/exclusions/import", exclusions_import_handler),
        ("GET", "/exclusions/export", exclusions_export_handler),
        ("GET", "/exclusions/{rule_id}", exclusion_get_handler),
        ("PUT", "/exclusions/{rule_id}", exclusion_update_handler),
        ("DELETE", "/exclusions/{rule_id}", exclusion_delete_handler),
    ]
