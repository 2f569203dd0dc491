from fastapi import APIRouter, HTTPException, Request

from api.routes.common import command_response, get_editor, http_error, log_command
from api.schemas import (
    ChartPositionRequest,
    CommandResponse,
    DragPreviewResponse,
    DragRequest,
    PointRequest,
    ResistanceRequest,
)
from core.errors import PowerTableError


router = APIRouter()


@router.post("/tables/{table_id}/points", response_model=CommandResponse)
async def add_point(request: Request, table_id: str, body: PointRequest):
    """Adds a point (and the pitch-spaced points needed to reach it)"""
    editor = get_editor(request, table_id)
    try:
        result = editor.add_point(body.cadence, body.power, body.resistance)
    except PowerTableError as e:
        raise http_error(e)
    log_command(request, "point_added", table_id, result)
    return command_response(editor, result)


@router.post("/tables/{table_id}/points/near", response_model=CommandResponse)
async def add_point_near(request: Request, table_id: str, body: ChartPositionRequest):
    """Chart click: adds on the active line at the closest power column"""
    editor = get_editor(request, table_id)
    try:
        result = editor.add_point_near(body.power, body.resistance)
    except PowerTableError as e:
        raise http_error(e)
    log_command(request, "point_added", table_id, result)
    return command_response(editor, result)


@router.put("/tables/{table_id}/points/{cadence}/{power}", response_model=CommandResponse)
async def edit_point(request: Request, table_id: str, cadence: int, power: int, body: ResistanceRequest):
    editor = get_editor(request, table_id)
    try:
        result = editor.edit_point(cadence, power, body.resistance)
    except PowerTableError as e:
        raise http_error(e)
    log_command(request, "point_edited", table_id, result)
    return command_response(editor, result)


@router.delete("/tables/{table_id}/points/{cadence}/{power}", response_model=CommandResponse)
async def delete_point(request: Request, table_id: str, cadence: int, power: int):
    editor = get_editor(request, table_id)
    try:
        result = editor.delete_point(cadence, power)
    except PowerTableError as e:
        raise http_error(e)
    log_command(request, "point_deleted", table_id, result)
    return command_response(editor, result)


def _require_drag_target(body: DragRequest) -> tuple[int, float]:
    if body.power is None or body.resistance is None:
        raise HTTPException(status_code=400, detail="power and resistance are required")
    return body.power, body.resistance


@router.post("/tables/{table_id}/drag/start", response_model=CommandResponse)
async def drag_start(request: Request, table_id: str, body: DragRequest):
    editor = get_editor(request, table_id)
    try:
        result = editor.drag_start(body.cadence)
    except PowerTableError as e:
        raise http_error(e)
    return command_response(editor, result)


@router.post("/tables/{table_id}/drag/move", response_model=DragPreviewResponse)
async def drag_move(request: Request, table_id: str, body: DragRequest):
    """Constrained preview value for a dragged point (no mutation)"""
    editor = get_editor(request, table_id)
    power, resistance = _require_drag_target(body)
    try:
        safe = editor.drag_move(body.cadence, power, resistance)
    except PowerTableError as e:
        raise http_error(e)
    return DragPreviewResponse(cadence=body.cadence, power=power, resistance=safe)


@router.post("/tables/{table_id}/drag/end", response_model=CommandResponse)
async def drag_end(request: Request, table_id: str, body: DragRequest):
    editor = get_editor(request, table_id)
    power, resistance = _require_drag_target(body)
    try:
        result = editor.drag_end(body.cadence, power, resistance)
    except PowerTableError as e:
        raise http_error(e)
    log_command(request, "point_dragged", table_id, result)
    return command_response(editor, result)
