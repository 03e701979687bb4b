"""FastAPI application serving state trees and orphan scans."""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .. import __version__
from ..config import Settings
from ..console_links import aws_console_link
from ..errors import CredentialFailure, GhostViewerError, ScanError, StateUnavailable
from ..export import export_orphans, orphans_filename
from ..identity import handler_name, resource_display_id, simple_type
from ..metadata import infer_metadata
from ..models import ObservedResource, ScanResult
from ..reconcile import filter_orphans, orphan_types, scan
from ..search import available_types, filter_resources, matched_urns
from ..state import read_declared_state, state_exists
from ..tagging import fetch_tagged_resources
from ..tree import TreeMode, build_forest

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, str, str], Sequence[ObservedResource]]

ERROR_STATUS = {
    StateUnavailable: 404,
    CredentialFailure: 401,
    ScanError: 502,
}


# Pydantic models
class ConfigUpdate(BaseModel):
    stateFile: Optional[str] = None


class ConfigResponse(BaseModel):
    stateFile: str
    projectRoot: str
    exists: bool


class ScanRequest(BaseModel):
    appName: str = ""
    stage: str = ""
    region: str = ""
    query: str = ""
    types: List[str] = []


class OrphanModel(BaseModel):
    arn: str
    type: str
    tags: Dict[str, str]
    name: str


class ScanResponse(BaseModel):
    totalFound: int
    managedCount: int
    orphans: List[OrphanModel]
    warnings: List[str] = []
    types: List[str] = []


def create_app(settings: Optional[Settings] = None, fetch: Fetcher = fetch_tagged_resources) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Runtime settings, read from the environment when omitted
        fetch: Tag query used by scans

    Returns:
        Configured FastAPI app
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Ghost Viewer API",
        description="Infrastructure state explorer and orphaned resource hunter",
        version=__version__,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def load_state():
        return read_declared_state(app.state.settings.state_path)

    def run_scan(request: ScanRequest) -> ScanResult:
        if not request.appName or not request.stage or not request.region:
            raise HTTPException(
                status_code=400,
                detail={
                    "code": "missing_params",
                    "message": "Missing required params: appName, stage, region",
                    "hint": "Use '*' to match any app or stage",
                },
            )
        return scan(request.appName, request.stage, request.region, load_state, fetch)

    @app.exception_handler(GhostViewerError)
    async def ghost_viewer_error_handler(request: Request, exc: GhostViewerError):
        """Map domain errors to HTTP error details."""
        status = ERROR_STATUS.get(type(exc), 500)
        return JSONResponse(status_code=status, content={"detail": exc.to_detail()})

    @app.get("/api/health")
    async def health():
        """Health check endpoint."""
        return {"message": "Ghost Viewer API is running", "version": __version__}

    @app.get("/api/config", response_model=ConfigResponse)
    def get_config():
        current = app.state.settings
        return ConfigResponse(
            stateFile=current.state_path,
            projectRoot=str(current.project_root),
            exists=state_exists(current.state_path),
        )

    @app.post("/api/config", response_model=ConfigResponse)
    def update_config(update: ConfigUpdate):
        """Point the server at a different state file for this session."""
        current = app.state.settings
        if update.stateFile:
            current.state_path = update.stateFile
            logger.info(f"State file set to {update.stateFile}")
        return ConfigResponse(
            stateFile=current.state_path,
            projectRoot=str(current.project_root),
            exists=state_exists(current.state_path),
        )

    @app.get("/api/state")
    def get_state():
        state = load_state()
        return {
            "resources": [r.to_dict() for r in state.resources],
            "stack": state.stack,
            "metadata": infer_metadata(state).to_dict(),
        }

    @app.get("/api/resources")
    def list_resources(
        q: str = "",
        provider: List[str] = Query(default=[]),
        types: List[str] = Query(default=[], alias="type"),
    ):
        """Flat filtered resource list for the list view."""
        state = load_state()
        items: List[Dict[str, Any]] = []
        for resource in filter_resources(state.resources, q, provider, types):
            items.append({
                "resource": resource.to_dict(),
                "displayId": resource_display_id(resource),
                "simpleType": simple_type(resource.type),
                "handler": handler_name(resource),
                "consoleLink": aws_console_link(resource),
            })
        return {
            "total": len(state.resources),
            "matched": len(items),
            "types": available_types(state.resources, q, provider, types),
            "items": items,
        }

    @app.get("/api/tree")
    def get_tree(
        mode: str = "categorized",
        q: str = "",
        provider: List[str] = Query(default=[]),
        types: List[str] = Query(default=[], alias="type"),
    ):
        """Grouped resource forest for the tree and categorized views."""
        try:
            tree_mode = TreeMode(mode)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail={
                    "code": "invalid_mode",
                    "message": f"Unknown tree mode: {mode}",
                    "hint": f"Use one of: {', '.join(m.value for m in TreeMode)}",
                },
            )

        state = load_state()
        matched = matched_urns(state.resources, q, provider, types)
        groups = build_forest(state.resources, matched, tree_mode)
        return {
            "mode": tree_mode.value,
            "matched": len(matched),
            "types": available_types(state.resources, q, provider, types),
            "groups": [group.to_dict() for group in groups],
        }

    @app.post("/api/scan", response_model=ScanResponse)
    def scan_endpoint(request: ScanRequest):
        """Find tagged resources that the state file does not track."""
        result = run_scan(request)
        data = result.to_dict()
        data["orphans"] = [o.to_dict() for o in filter_orphans(result.orphans, request.query, request.types)]
        data["types"] = orphan_types(result.orphans, request.types)
        return data

    @app.post("/api/scan/export")
    def export_endpoint(request: ScanRequest):
        """Run a scan and return the filtered orphans as a JSON download."""
        result = run_scan(request)
        orphans = filter_orphans(result.orphans, request.query, request.types)
        filename = orphans_filename(request.appName, request.stage)
        return Response(
            content=export_orphans(orphans),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="127.0.0.1", port=settings.port)
