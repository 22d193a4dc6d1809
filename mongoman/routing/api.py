"""
HTTP API for the console.

Mounted under ``/api``. Backup and export routes answer with downloadable
files; query and aggregate routes accept either the visual builder state or
raw text and return the documents together with the compiled filter/pipeline.

Malformed input answers 400. Driver failures answer 500 with a message naming
the action that failed.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ..backup.engine import (
    backup_database,
    backup_filename,
    export_collection,
    export_filename,
    import_documents,
    load_bundle,
    parse_import_file,
    restore_database,
    serialize_bundle,
)
from ..codecs.ejson import serialize_document, serialize_documents
from ..codecs.tabular import to_csv
from ..config import ConsoleConfig
from ..constants import LOGIC_AND
from ..core.connection import ConnectionManager
from ..database.browser import DatabaseBrowser
from ..dependencies import get_browser, get_config, get_connection
from ..exceptions import (
    BundleValidationError,
    MongomanError,
    QueryBuildError,
    RestoreError,
)
from ..observability import clear_correlation_id, get_metrics_collector, set_correlation_id
from ..query.builder import Condition, ConditionGroup, build_query, parse_filter_text
from ..query.builder import render_raw_query
from ..query.pipeline import PipelineStage, build_pipeline, parse_raw_pipeline, stage_catalog

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

CORRELATION_HEADER = "X-Correlation-ID"


# ============================================================================
# REQUEST MODELS
# ============================================================================


class ConditionModel(BaseModel):
    field: str = ""
    operator: str = "$eq"
    value: str = ""


class ConditionGroupModel(BaseModel):
    logic: Literal["$and", "$or"] = LOGIC_AND
    conditions: list[ConditionModel] = Field(default_factory=list)


class QueryRequest(BaseModel):
    """Either ``groups`` from the visual builder or ``raw`` filter text."""

    groups: list[ConditionGroupModel] | None = None
    raw: str | None = None
    skip: int = Field(default=0, ge=0)
    limit: int | None = Field(default=None, ge=1)

    def compile(self) -> dict[str, Any]:
        if self.raw is not None:
            return parse_filter_text(self.raw)
        groups = [
            ConditionGroup(
                logic=group.logic,
                conditions=[
                    Condition(field=c.field, operator=c.operator, value=c.value)
                    for c in group.conditions
                ],
            )
            for group in self.groups or []
        ]
        return build_query(groups)


class StageModel(BaseModel):
    type: str
    body: str = "{}"
    enabled: bool = True


class AggregateRequest(BaseModel):
    """Either ``stages`` from the visual builder or ``raw`` pipeline text."""

    stages: list[StageModel] | None = None
    raw: str | None = None

    def compile(self) -> list[Any]:
        if self.raw is not None:
            return parse_raw_pipeline(self.raw)
        return build_pipeline(
            [
                PipelineStage(stage_type=s.type, body=s.body, enabled=s.enabled)
                for s in self.stages or []
            ]
        )


# ============================================================================
# HELPERS
# ============================================================================


def _http_error(error: MongomanError, action: str) -> HTTPException:
    """Map a domain error onto an HTTP error."""
    if isinstance(error, (QueryBuildError, BundleValidationError)):
        detail: dict[str, Any] = {"error": error.message}
        if isinstance(error, BundleValidationError) and error.error_paths:
            detail["errorPaths"] = error.error_paths
        return HTTPException(400, detail=detail)

    logger.error(f"Failed to {action}: {error}")
    detail = {"error": f"Failed to {action}"}
    if isinstance(error, RestoreError) and error.results:
        detail["results"] = error.results
    return HTTPException(500, detail=detail)


def _download(content: str, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# BACKUP / RESTORE
# ============================================================================


@router.get("/backup/{db_name}")
async def backup(
    db_name: str,
    connection: ConnectionManager = Depends(get_connection),
    config: ConsoleConfig = Depends(get_config),
):
    try:
        bundle = await backup_database(connection, db_name, mode=config.ejson_mode)
    except MongomanError as e:
        raise _http_error(e, "backup database") from e
    return _download(serialize_bundle(bundle), backup_filename(db_name), "application/json")


@router.post("/restore/{db_name}")
async def restore(
    db_name: str,
    request: Request,
    connection: ConnectionManager = Depends(get_connection),
    config: ConsoleConfig = Depends(get_config),
):
    """Restore the JSON bundle sent as the request body."""
    try:
        bundle = load_bundle(await request.body())
        results = await restore_database(connection, db_name, bundle, mode=config.ejson_mode)
    except MongomanError as e:
        raise _http_error(e, "restore database") from e
    return {"success": True, "results": results}


# ============================================================================
# EXPORT / IMPORT
# ============================================================================


@router.get("/export/{db_name}/{collection_name}")
async def export_json(
    db_name: str,
    collection_name: str,
    connection: ConnectionManager = Depends(get_connection),
    config: ConsoleConfig = Depends(get_config),
):
    try:
        documents = await export_collection(
            connection, db_name, collection_name, mode=config.ejson_mode
        )
    except MongomanError as e:
        raise _http_error(e, "export collection") from e
    return _download(
        json.dumps(documents, indent=2),
        export_filename(collection_name, "json"),
        "application/json",
    )


@router.get("/export/{db_name}/{collection_name}/csv")
async def export_csv(
    db_name: str,
    collection_name: str,
    connection: ConnectionManager = Depends(get_connection),
    config: ConsoleConfig = Depends(get_config),
):
    try:
        documents = await export_collection(
            connection, db_name, collection_name, mode=config.ejson_mode
        )
    except MongomanError as e:
        raise _http_error(e, "export collection") from e
    return _download(to_csv(documents), export_filename(collection_name, "csv"), "text/csv")


@router.post("/import/{db_name}/{collection_name}")
async def import_file(
    db_name: str,
    collection_name: str,
    request: Request,
    filename: str = "import.json",
    connection: ConnectionManager = Depends(get_connection),
    config: ConsoleConfig = Depends(get_config),
):
    """
    Import the request body into a collection.

    ``filename`` decides the format: ``.csv`` is read as CSV, anything else
    as JSON.
    """
    try:
        text = (await request.body()).decode("utf-8")
        documents = parse_import_file(filename, text)
        return await import_documents(
            connection, db_name, collection_name, documents, mode=config.ejson_mode
        )
    except UnicodeDecodeError as e:
        raise HTTPException(400, detail={"error": "Import file must be UTF-8 text"}) from e
    except MongomanError as e:
        raise _http_error(e, "import file") from e


# ============================================================================
# QUERY / AGGREGATE
# ============================================================================


@router.post("/query/{db_name}/{collection_name}")
async def query(
    db_name: str,
    collection_name: str,
    body: QueryRequest,
    browser: DatabaseBrowser = Depends(get_browser),
    config: ConsoleConfig = Depends(get_config),
):
    try:
        compiled = body.compile()
        page = await browser.find_documents(
            db_name, collection_name, compiled, skip=body.skip, limit=body.limit
        )
    except MongomanError as e:
        raise _http_error(e, "query documents") from e
    return {
        **page.to_dict(config.ejson_mode),
        "query": serialize_document(compiled, config.ejson_mode),
        "rawQuery": render_raw_query(compiled),
    }


@router.post("/aggregate/{db_name}/{collection_name}")
async def aggregate(
    db_name: str,
    collection_name: str,
    body: AggregateRequest,
    browser: DatabaseBrowser = Depends(get_browser),
    config: ConsoleConfig = Depends(get_config),
):
    try:
        pipeline = body.compile()
        results = await browser.run_aggregation(db_name, collection_name, pipeline)
    except MongomanError as e:
        raise _http_error(e, "run aggregation") from e
    return {
        "pipeline": pipeline,
        "results": serialize_documents(results, config.ejson_mode),
    }


@router.get("/stages")
async def stages():
    """Stage verbs for the pipeline editor."""
    return stage_catalog()


# ============================================================================
# METRICS
# ============================================================================


@router.get("/metrics")
async def metrics():
    return get_metrics_collector().get_summary()


# ============================================================================
# APPLICATION
# ============================================================================


def create_app(config: ConsoleConfig | None = None) -> FastAPI:
    """
    Build the console app.

    The ConnectionManager is created and initialised when the app starts and
    closed when it stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        connection = ConnectionManager(config or ConsoleConfig())
        await connection.initialize()
        app.state.connection = connection
        try:
            yield
        finally:
            await connection.shutdown()
            app.state.connection = None

    app = FastAPI(title="MONGOMAN", description="MongoDB management console", lifespan=lifespan)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    app.include_router(router)
    return app
