from fastapi import APIRouter, UploadFile, File, HTTPException, Header, Request, Query
from fastapi.responses import PlainTextResponse
from typing import Optional

from api.routes.common import (
    command_response,
    get_editor,
    get_logger,
    get_request_id,
    get_session_storage,
    http_error,
    log_command,
    state_model,
)
from api.schemas import (
    ActiveCadenceRequest,
    ChartResponse,
    ChartSeriesModel,
    CommandResponse,
    ConfigRequest,
    GridResponse,
    OpacityRequest,
    TableCreatedResponse,
    TableState,
    ValidationIssueModel,
    ValidationResponse,
)
from core.errors import PowerTableError
from core.ptab_format import check_upload_filename, decode_upload, table_to_frame
from services.editor_service import TableEditor
from services.serialization import df_to_records, to_jsonable


router = APIRouter()


MAX_UPLOAD_BYTES = 5_000_000


@router.post("/tables", response_model=TableCreatedResponse)
async def create_table(request: Request):
    """Opens an empty editing session"""
    storage = get_session_storage(request)
    table_id = storage.create()
    editor = storage.get(table_id)
    get_logger(request).info(
        "table_created",
        extra={"request_id": get_request_id(request), "table_id": table_id},
    )
    return TableCreatedResponse(id=table_id, state=state_model(editor))


@router.post("/tables/load", response_model=TableCreatedResponse)
async def load_table(
    request: Request,
    file: UploadFile = File(...),
    max_size: int = Header(MAX_UPLOAD_BYTES),
):
    """Loads a .ptab file into a new editing session"""
    logger = get_logger(request)
    request_id = get_request_id(request)

    logger.info(
        "upload_request_received",
        extra={"request_id": request_id, "upload_filename": file.filename},
    )
    try:
        filename = check_upload_filename(file.filename)
    except PowerTableError as e:
        raise http_error(e)

    data = await file.read()
    if len(data) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Max size: {max_size / (1024 * 1024):.1f}MB",
        )

    storage = get_session_storage(request)
    editor = TableEditor(settings=storage.settings)
    try:
        result = editor.load(decode_upload(data), filename=filename)
    except PowerTableError as e:
        logger.warning(
            "upload_parse_failed",
            extra={"request_id": request_id, "upload_filename": filename, "error": str(e)},
        )
        raise http_error(e)

    table_id = storage.create(editor)
    logger.info(
        "upload_success",
        extra={
            "request_id": request_id,
            "table_id": table_id,
            "points": editor.table.point_count(),
        },
    )
    return TableCreatedResponse(id=table_id, state=state_model(editor), issues=result.details["issues"])


@router.get("/tables/{table_id}", response_model=TableState)
async def get_table_state(request: Request, table_id: str):
    return state_model(get_editor(request, table_id))


@router.delete("/tables/{table_id}")
async def delete_table(request: Request, table_id: str):
    if not get_session_storage(request).delete(table_id):
        raise HTTPException(status_code=404, detail=f"Table {table_id} not found")
    return {"id": table_id, "deleted": True}


@router.get("/tables/{table_id}/grid", response_model=GridResponse)
async def get_grid(request: Request, table_id: str):
    """Table as rows of cadence -> power cells (null for gaps)"""
    editor = get_editor(request, table_id)
    frame = table_to_frame(editor.table)
    frame.columns = [str(c) for c in frame.columns]
    return GridResponse(
        cadences=editor.table.cadences(),
        powers=editor.table.all_powers_used(),
        rows=df_to_records(frame, index_name="cadence"),
    )


@router.get("/tables/{table_id}/series", response_model=ChartResponse)
async def get_chart_series(request: Request, table_id: str):
    editor = get_editor(request, table_id)
    return ChartResponse(
        max_resistance=editor.table.max_resistance,
        series=[ChartSeriesModel(**to_jsonable(s)) for s in editor.chart_series()],
    )


@router.get("/tables/{table_id}/validation", response_model=ValidationResponse)
async def get_validation(request: Request, table_id: str):
    report = get_editor(request, table_id).validate()
    return ValidationResponse(
        ok=report.ok,
        issues=[
            ValidationIssueModel(code=i.code, message=i.message, details=to_jsonable(i.details))
            for i in report.issues
        ],
    )


@router.get("/tables/{table_id}/export", response_class=PlainTextResponse)
async def export_table(
    request: Request,
    table_id: str,
    filename: Optional[str] = Query(None, description="File name, .ptab is appended"),
):
    editor = get_editor(request, table_id)
    try:
        content = editor.serialize()
    except PowerTableError as e:
        raise http_error(e)
    name = editor.export_filename(filename)
    get_logger(request).info(
        "table_exported",
        extra={"request_id": get_request_id(request), "table_id": table_id, "export_filename": name},
    )
    return PlainTextResponse(
        content,
        headers={"Content-Disposition": f'attachment; filename="{name}"'},
    )


@router.put("/tables/{table_id}/config", response_model=CommandResponse)
async def update_config(request: Request, table_id: str, body: ConfigRequest):
    editor = get_editor(request, table_id)
    try:
        result = editor.set_config(
            max_resistance=body.max_resistance,
            storage_multiplier=body.storage_multiplier,
        )
    except PowerTableError as e:
        raise http_error(e)
    log_command(request, "config_updated", table_id, result)
    return command_response(editor, result)


@router.put("/tables/{table_id}/active-cadence", response_model=CommandResponse)
async def set_active_cadence(request: Request, table_id: str, body: ActiveCadenceRequest):
    editor = get_editor(request, table_id)
    try:
        result = editor.set_active_cadence(body.cadence)
    except PowerTableError as e:
        raise http_error(e)
    return command_response(editor, result)


@router.post("/tables/{table_id}/original/toggle", response_model=CommandResponse)
async def toggle_original(request: Request, table_id: str):
    editor = get_editor(request, table_id)
    try:
        result = editor.toggle_original()
    except PowerTableError as e:
        raise http_error(e)
    return command_response(editor, result)


@router.put("/tables/{table_id}/original/opacity", response_model=CommandResponse)
async def set_original_opacity(request: Request, table_id: str, body: OpacityRequest):
    editor = get_editor(request, table_id)
    try:
        result = editor.set_original_opacity(body.percent)
    except PowerTableError as e:
        raise http_error(e)
    return command_response(editor, result)
