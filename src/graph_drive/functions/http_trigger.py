"""HTTP trigger blueprint: health check and drive item listing endpoints."""

import json
import logging

import azure.functions as func

from graph_drive import __version__
from graph_drive.config import load_config
from graph_drive.graph.query import QueryOptions
from graph_drive.orchestration.drives import drive_operations_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _json_response(body: object, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(json.dumps(body), status_code=status_code, mimetype="application/json")


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint. Returns service status and version."""
    logger.info("[health_check] health check requested")

    try:
        return _json_response({"status": "ok", "version": __version__})

    except Exception:
        logger.error("[health_check] health check failed", exc_info=True)
        return _json_response({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="items", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def list_items(req: func.HttpRequest) -> func.HttpResponse:
    """List the children of a folder.

    Query parameters:
        path: Folder id or path (default: drive root).
        drive: Drive id or route (default: the configured user's drive).
        search: Free-text search term.
        include: Name pattern, ``tok*`` or ``*tok``.
        foldersOnly: "true" to return folders only.

    Missing folders and unsupported queries answer with an empty list; the
    reason is logged.
    """
    logger.info("[list_items] item listing requested")

    try:
        config = load_config()
        operations = drive_operations_from_config(config)
        options = QueryOptions(
            search=req.params.get("search") or None,
            include=req.params.get("include") or None,
        )
        items = operations.list_children(
            req.params.get("path") or None,
            req.params.get("drive") or None,
            options,
            only_folders=req.params.get("foldersOnly", "").lower() in _TRUE_VALUES,
        )
        results = [
            {
                "id": item.item_id,
                "driveId": item.drive_id,
                "name": item.name,
                "path": item.path,
                "isFolder": item.is_folder,
                "size": item.size,
            }
            for item in items
        ]
        logger.info("[list_items] listing complete; item_count:%d", len(results))
        return _json_response({"status": "ok", "count": len(results), "items": results})

    except Exception:
        logger.error("[list_items] item listing failed", exc_info=True)
        return _json_response({"status": "error", "message": "Internal server error"}, 500)
