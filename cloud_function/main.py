"""
Google Cloud Function entry point for the Managed Instance Group Adapter.

This module provides HTTP endpoints for:
- /create: Create a managed instance group from a JSON configuration
- /read: Read a group back as configuration
- /update: Apply configuration changes to a group
- /delete: Delete a group
- /import: Import an existing group by {project}/{zone}/{name}
- /health: Health check endpoint

Ambient settings come from the request body or environment variables
(GCP_PROJECT_ID, GCP_REGION, GCP_ZONE, OPERATION_TIMEOUT, POLL_INTERVAL).
"""

import logging
import os
import re
import sys
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple

import functions_framework
from flask import Request

# Adapter modules are bundled in ./src when deployed, ../src in a checkout
_HERE = os.path.dirname(os.path.abspath(__file__))
SRC_DIR = os.path.join(_HERE, "src")
if not os.path.isdir(SRC_DIR):
    SRC_DIR = os.path.join(os.path.dirname(_HERE), "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from clients import ComputeRestClient
from config import ProviderConfig
from errors import AdapterError, ApiError, ConfigurationError, OperationError
from instance_group_manager import InstanceGroupManagerResource
from log_utils import setup_logging
from models import InstanceGroupManager
from resource_id import PROJECT_REGEX, InstanceGroupManagerId

# Cloud Functions: JSON lines on stdout, no log file (read-only filesystem)
setup_logging(
    verbose=os.environ.get("LOG_LEVEL", "").upper() == "DEBUG",
    log_file=None,
    structured=True,
)
logger = logging.getLogger(__name__)


# =============================================================================
# Security and Validation
# =============================================================================


def validate_request(func: Callable) -> Callable:
    """
    Decorator to validate incoming requests.

    Checks:
    - Content-Type for POST requests
    """

    @wraps(func)
    def wrapper(request: Request) -> Tuple[Dict[str, Any], int]:
        if request.method == "POST":
            content_type = request.headers.get("Content-Type", "")
            if "application/json" not in content_type:
                return create_response(
                    success=False,
                    error="Invalid content type",
                    message="Content-Type must be application/json",
                    status_code=415,
                )

        return func(request)

    return wrapper


def sanitize_input(value: str, max_length: int = 256) -> str:
    """Sanitize string input to prevent injection attacks."""
    if not value:
        return ""
    sanitized = "".join(c for c in value if c.isprintable())
    return sanitized[:max_length]


def validate_project_id(project_id: str) -> bool:
    """Validate GCP project ID format (IDs, project numbers, domain-scoped IDs)."""
    return bool(re.match(r"^" + PROJECT_REGEX + r"$", project_id))


def validate_location(location: str) -> bool:
    """Validate GCP zone or region format."""
    # region (us-central1) or zone (us-central1-b)
    pattern = r"^[a-z]+-[a-z]+\d+(-[a-z])?$"
    return bool(re.match(pattern, location))


# =============================================================================
# Configuration Loading
# =============================================================================


def get_config_from_request(request: Request) -> ProviderConfig:
    """
    Build provider configuration from request body and environment variables.

    Priority: Request body > Environment variables > Defaults
    """
    request_json = request.get_json(silent=True) or {}
    config = ProviderConfig.from_env()

    project_id = sanitize_input(request_json.get("project_id", ""))
    if project_id:
        config.project_id = project_id
    if config.project_id and not validate_project_id(config.project_id):
        raise ValueError(f"Invalid project_id format: {config.project_id}")

    for key in ("region", "zone"):
        value = sanitize_input(request_json.get(key, ""))
        if value:
            setattr(config, key, value)
        current = getattr(config, key)
        if current and not validate_location(current):
            raise ValueError(f"Invalid {key} format: {current}")

    if request_json.get("timeout") is not None:
        # Cap at 9 hours (Cloud Function max)
        timeout = min(int(request_json["timeout"]), 9 * 60 * 60)
        config.create_timeout = timeout
        config.update_timeout = timeout
        config.delete_timeout = timeout
    if request_json.get("poll_interval") is not None:
        config.poll_interval = max(int(request_json["poll_interval"]), 1)

    return config


def get_resource(config: ProviderConfig) -> InstanceGroupManagerResource:
    """Build the adapter with application default credentials."""
    return InstanceGroupManagerResource(ComputeRestClient(), config)


def _request_id(request: Request) -> str:
    request_json = request.get_json(silent=True) or {}
    id_ = request_json.get("id") or request.args.get("id", "")
    id_ = sanitize_input(id_)
    if not id_:
        raise ValueError("id is required ({project}/{zone}/{name} or {name})")
    return id_


def _request_config(request: Request) -> InstanceGroupManager:
    request_json = request.get_json(silent=True) or {}
    document = request_json.get("config")
    if not isinstance(document, dict):
        raise ValueError("config is required and must be an object")
    try:
        return InstanceGroupManager.from_dict(document)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid config document: {e}") from e


def _lookup(resource: InstanceGroupManagerResource, id_: str) -> InstanceGroupManager:
    igm_id = InstanceGroupManagerId.decode(id_)
    return resource.read(InstanceGroupManager(name=igm_id.name, id=id_))


# =============================================================================
# Response Helpers
# =============================================================================


def create_response(
    success: bool,
    data: Optional[Dict] = None,
    error: Optional[str] = None,
    message: Optional[str] = None,
    status_code: int = 200,
) -> Tuple[Dict[str, Any], int]:
    """Create a standardized API response."""
    response = {
        "success": success,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if data:
        response["data"] = data
    if error:
        response["error"] = error
    if message:
        response["message"] = message

    return response, status_code


def not_found_response(id_: str) -> Tuple[Dict[str, Any], int]:
    return create_response(
        success=False,
        error="Not Found",
        message=f"Instance Group Manager {id_!r} does not exist",
        status_code=404,
    )


def method_not_allowed(expected: str) -> Tuple[Dict[str, Any], int]:
    return create_response(
        success=False,
        error="Method Not Allowed",
        message=f"Use {expected} for this endpoint",
        status_code=405,
    )


# =============================================================================
# HTTP Endpoint Handlers
# =============================================================================


@functions_framework.http
def main(request: Request) -> Tuple[Dict[str, Any], int]:
    """
    Main entry point for Cloud Function.

    Routes requests based on path:
    - POST /create, /update, /delete, /import
    - GET /read
    - GET /health
    - GET /: API info
    """
    path = request.path.rstrip("/")

    routes = {
        "": handle_info,
        "/": handle_info,
        "/create": handle_create,
        "/read": handle_read,
        "/update": handle_update,
        "/delete": handle_delete,
        "/import": handle_import,
        "/health": handle_health,
    }

    handler = routes.get(path)
    if not handler:
        return create_response(
            success=False,
            error="Not Found",
            message=f"Unknown endpoint: {path}",
            status_code=404,
        )

    try:
        return handler(request)
    except (ValueError, ConfigurationError) as e:
        logger.error(f"Validation error: {e}")
        return create_response(
            success=False,
            error="Validation Error",
            message=str(e),
            status_code=400,
        )
    except (ApiError, OperationError) as e:
        logger.error(f"Compute Engine error: {e}")
        return create_response(
            success=False,
            error="Upstream Error",
            message=str(e),
            status_code=502,
        )
    except AdapterError as e:
        logger.error(f"Adapter error: {e}")
        return create_response(
            success=False,
            error="Adapter Error",
            message=str(e),
            status_code=500,
        )
    except Exception as e:
        logger.exception(f"Internal error: {e}")
        return create_response(
            success=False,
            error="Internal Server Error",
            message="An unexpected error occurred. Check Cloud Function logs for details.",
            status_code=500,
        )


def handle_info(request: Request) -> Tuple[Dict[str, Any], int]:
    """Handle API info request."""
    return create_response(
        success=True,
        data={
            "service": "Managed Instance Group Adapter",
            "version": os.environ.get("APP_VERSION", "1.0.0"),
            "endpoints": {
                "POST /create": "Create a managed instance group",
                "GET /read": "Read a managed instance group",
                "POST /update": "Update a managed instance group",
                "POST /delete": "Delete a managed instance group",
                "POST /import": "Import a managed instance group",
                "GET /health": "Health check",
            },
        },
    )


@validate_request
def handle_create(request: Request) -> Tuple[Dict[str, Any], int]:
    """
    Handle create request.

    Request body:
    {
        "project_id": "my-project",  // or use GCP_PROJECT_ID env var
        "zone": "europe-west2-a",  // or use GCP_ZONE env var
        "config": {"name": "web", "base_instance_name": "web", "version": [...]}
    }
    """
    if request.method != "POST":
        return method_not_allowed("POST")

    config = get_config_from_request(request)
    igm = _request_config(request)
    logger.info(f"Creating group {igm.name}: project={config.project_id}, zone={config.zone}")

    igm = get_resource(config).create(igm)
    return create_response(
        success=True, data=igm.to_dict(), message="Create completed", status_code=201
    )


def handle_read(request: Request) -> Tuple[Dict[str, Any], int]:
    """
    Handle read request.

    Query parameters or JSON body:
    - id: {project}/{zone}/{name} or {name}
    """
    config = get_config_from_request(request)
    id_ = _request_id(request)

    igm = _lookup(get_resource(config), id_)
    if not igm.id:
        return not_found_response(id_)
    return create_response(success=True, data=igm.to_dict())


@validate_request
def handle_update(request: Request) -> Tuple[Dict[str, Any], int]:
    """
    Handle update request.

    Request body:
    {
        "id": "my-project/europe-west2-a/web",
        "config": {...}  // full desired configuration
    }
    """
    if request.method != "POST":
        return method_not_allowed("POST")

    config = get_config_from_request(request)
    id_ = _request_id(request)
    desired = _request_config(request)

    resource = get_resource(config)
    current = _lookup(resource, id_)
    if not current.id:
        return not_found_response(id_)

    igm = resource.update(current, desired)
    return create_response(success=True, data=igm.to_dict(), message="Update completed")


@validate_request
def handle_delete(request: Request) -> Tuple[Dict[str, Any], int]:
    """
    Handle delete request.

    Request body:
    {
        "id": "my-project/europe-west2-a/web",
        "timeout": 1800  // optional, seconds to wait for instances to drain
    }
    """
    if request.method != "POST":
        return method_not_allowed("POST")

    config = get_config_from_request(request)
    id_ = _request_id(request)

    resource = get_resource(config)
    current = _lookup(resource, id_)
    if not current.id:
        return not_found_response(id_)

    resource.delete(current)
    return create_response(
        success=True, data={"id": id_, "deleted": True}, message="Delete completed"
    )


@validate_request
def handle_import(request: Request) -> Tuple[Dict[str, Any], int]:
    """
    Handle import request.

    Request body:
    {
        "id": "my-project/europe-west2-a/web"
    }
    """
    if request.method != "POST":
        return method_not_allowed("POST")

    config = get_config_from_request(request)
    id_ = _request_id(request)

    resource = get_resource(config)
    igm = resource.read(resource.import_state(id_))
    if not igm.id:
        return not_found_response(id_)
    return create_response(success=True, data=igm.to_dict(), message="Import completed")


def handle_health(request: Request) -> Tuple[Dict[str, Any], int]:
    """Handle health check request."""
    return create_response(
        success=True,
        data={"status": "healthy"},
    )
