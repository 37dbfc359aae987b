"""HTTP-style event handler for the compliance service.

Accepts API-gateway style events::

    {
        "httpMethod": "POST",
        "path": "/check",
        "body": "{\\"tenantId\\": \\"t-1\\", ...}",
        "queryStringParameters": {"verdict": "denied"},
    }

and returns ``{"statusCode", "headers", "body"}`` with a JSON body. Routes:

==========  ======================  ==========================
Method      Path                    Service call
==========  ======================  ==========================
POST        /check                  ``check_payload``
GET         /policies               ``policies``
GET         /geo-restrictions       ``geo_restrictions``
GET         /sector-modes           ``sector_modes``
GET         /checks                 ``checks``
GET         /checks/{id}            ``get_check``
GET         /stats                  ``stats``
POST        /approve                ``approve``
==========  ======================  ==========================

Errors map to 400 (invalid request), 404 (unknown check or route),
409 (already resolved), 422 (configuration conflict) and 503 (audit
write deferred; the resolution was not applied and may be retried).
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Optional

from sovereign_compliance.errors import (
    AlreadyResolved,
    AuditWriteDeferred,
    CheckNotFound,
    ConfigurationError,
    InvalidRequest,
)
from sovereign_compliance.schemas import (
    ApprovalPayload,
    CheckModel,
    GeoRestrictionModel,
    PolicyModel,
    SectorModeConfigModel,
    StatsModel,
    parse_payload,
)
from sovereign_compliance.service import ComplianceService

logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}

# Query parameter -> AuditLog.query keyword.
_QUERY_FILTERS = {
    "tenantId": "tenant_id",
    "tenant_id": "tenant_id",
    "verdict": "verdict",
    "result": "verdict",
    "sectorMode": "sector_mode",
    "sector_mode": "sector_mode",
    "operation": "operation",
    "since": "since",
    "until": "until",
}

Route = Callable[[ComplianceService, dict[str, Any], "re.Match[str]"], Any]


def _response(status: int, payload: Any) -> dict[str, Any]:
    return {"statusCode": status, "headers": dict(_JSON_HEADERS), "body": json.dumps(payload)}


def _error(status: int, kind: str, message: str) -> dict[str, Any]:
    return _response(status, {"error": kind, "message": message})


def _body(event: dict[str, Any]) -> Any:
    raw = event.get("body")
    if raw is None or raw == "":
        return {}
    if isinstance(raw, (dict, list)):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidRequest(f"Request body is not valid JSON: {exc}") from exc


def _int_param(params: dict[str, Any], name: str, default: Optional[int]) -> Optional[int]:
    value = params.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"Query parameter {name!r} must be an integer, got {value!r}") from exc


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _post_check(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    check = service.check_payload(_body(event))
    return CheckModel.from_record(check).to_payload()


def _get_policies(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    return [PolicyModel.from_record(p).to_payload() for p in service.policies()]


def _get_restrictions(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    return [GeoRestrictionModel.from_record(r).to_payload() for r in service.geo_restrictions()]


def _get_sector_modes(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    return [SectorModeConfigModel.from_record(c).to_payload() for c in service.sector_modes()]


def _get_checks(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    params = event.get("queryStringParameters") or {}
    filters: dict[str, Any] = {
        keyword: params[name] for name, keyword in _QUERY_FILTERS.items() if params.get(name)
    }
    filters["offset"] = _int_param(params, "offset", 0)
    filters["limit"] = _int_param(params, "limit", None)
    return [CheckModel.from_record(c).to_payload() for c in service.checks(**filters)]


def _get_check(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    return CheckModel.from_record(service.get_check(match.group("check_id"))).to_payload()


def _get_stats(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    return StatsModel.from_record(service.stats()).to_payload()


def _post_approve(service: ComplianceService, event: dict[str, Any], match: Any) -> Any:
    payload = parse_payload(ApprovalPayload, _body(event))
    check = service.approve(
        payload.check_id, payload.decision, approver=payload.approver, note=payload.note
    )
    return CheckModel.from_record(check).to_payload()


_ROUTES: list[tuple[str, "re.Pattern[str]", Route]] = [
    ("POST", re.compile(r"^/check$"), _post_check),
    ("GET", re.compile(r"^/policies$"), _get_policies),
    ("GET", re.compile(r"^/geo-restrictions$"), _get_restrictions),
    ("GET", re.compile(r"^/sector-modes$"), _get_sector_modes),
    ("GET", re.compile(r"^/checks$"), _get_checks),
    ("GET", re.compile(r"^/checks/(?P<check_id>[^/]+)$"), _get_check),
    ("GET", re.compile(r"^/stats$"), _get_stats),
    ("POST", re.compile(r"^/approve$"), _post_approve),
]


def handle(event: dict[str, Any], service: ComplianceService) -> dict[str, Any]:
    """Route one event to the service and build the response.

    Parameters
    ----------
    event:
        API-gateway style event with ``httpMethod``, ``path``, ``body`` and
        ``queryStringParameters``.
    service:
        The service to dispatch to.

    Returns
    -------
    dict[str, Any]
        ``statusCode``, ``headers`` and JSON ``body``.
    """
    method = str(event.get("httpMethod", "GET")).upper()
    path = str(event.get("path", "/")).rstrip("/") or "/"

    for route_method, pattern, route in _ROUTES:
        match = pattern.match(path)
        if match is None or route_method != method:
            continue
        try:
            return _response(200, route(service, event, match))
        except InvalidRequest as exc:
            return _error(400, "invalid_request", str(exc))
        except CheckNotFound as exc:
            return _error(404, "not_found", str(exc))
        except AlreadyResolved as exc:
            return _error(409, "already_resolved", str(exc))
        except ConfigurationError as exc:
            return _error(422, "configuration_error", str(exc))
        except AuditWriteDeferred as exc:
            return _error(503, "audit_deferred", str(exc))

    logger.debug("No route for %s %s", method, path)
    return _error(404, "not_found", f"No route for {method} {path}")


__all__ = [
    "handle",
]
