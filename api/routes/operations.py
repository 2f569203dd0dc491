from typing import Callable

from fastapi import APIRouter, Request

from api.routes.common import command_response, get_editor, http_error, log_command
from api.schemas import CommandResponse
from core.errors import PowerTableError
from services.editor_service import TableEditor
from services.models import CommandResult


router = APIRouter()


def _run(request: Request, table_id: str, event: str, command: Callable[[TableEditor], CommandResult]):
    editor = get_editor(request, table_id)
    try:
        result = command(editor)
    except PowerTableError as e:
        raise http_error(e)
    log_command(request, event, table_id, result)
    return command_response(editor, result)


@router.post("/tables/{table_id}/smart-fill", response_model=CommandResponse)
async def smart_fill(request: Request, table_id: str):
    """Completes every line at every power column already in use"""
    return _run(request, table_id, "smart_fill", TableEditor.smart_fill)


@router.post("/tables/{table_id}/resolve-conflicts", response_model=CommandResponse)
async def resolve_conflicts(request: Request, table_id: str):
    """Repairs monotonicity issues and line crossings"""
    return _run(request, table_id, "resolve_conflicts", TableEditor.resolve_conflicts)


@router.post("/tables/{table_id}/smart-smooth", response_model=CommandResponse)
async def smart_smooth(request: Request, table_id: str):
    """Evenly spaces cadence lines, then smooths each line"""
    return _run(request, table_id, "smart_smooth", TableEditor.smart_smooth)


@router.post("/tables/{table_id}/undo", response_model=CommandResponse)
async def undo(request: Request, table_id: str):
    return _run(request, table_id, "undo", TableEditor.undo)


@router.post("/tables/{table_id}/redo", response_model=CommandResponse)
async def redo(request: Request, table_id: str):
    return _run(request, table_id, "redo", TableEditor.redo)
