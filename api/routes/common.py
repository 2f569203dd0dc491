import logging
from dataclasses import asdict

from fastapi import HTTPException, Request

from api.schemas import CommandResponse, TableState
from core.errors import (
    InsufficientDataError,
    InvalidValueError,
    NoActiveCadenceError,
    ParseError,
    PointExistsError,
    PointNotFoundError,
    PowerTableError,
)
from services.editor_service import TableEditor
from services.models import CommandResult
from services.serialization import to_jsonable
from storage.session_store import SessionStorage


_STATUS_BY_ERROR: list[tuple[type, int]] = [
    (PointNotFoundError, 404),
    (PointExistsError, 409),
    (InsufficientDataError, 422),
    (ParseError, 400),
    (InvalidValueError, 400),
    (NoActiveCadenceError, 400),
]


def get_logger(request: Request) -> logging.Logger:
    return request.app.state.logger


def get_request_id(request: Request) -> str:
    return getattr(getattr(request, "state", None), "request_id", "-")


def get_session_storage(request: Request) -> SessionStorage:
    return request.app.state.storage


def get_editor(request: Request, table_id: str) -> TableEditor:
    try:
        return get_session_storage(request).get(table_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Table {table_id} not found")


def http_error(error: PowerTableError) -> HTTPException:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


def state_model(editor: TableEditor) -> TableState:
    return TableState(**asdict(editor.state()))


def command_response(editor: TableEditor, result: CommandResult) -> CommandResponse:
    return CommandResponse(
        message=result.message,
        changed=result.changed,
        warnings=result.warning_messages,
        details=to_jsonable(result.details),
        state=state_model(editor),
    )


def log_command(request: Request, event: str, table_id: str, result: CommandResult) -> None:
    get_logger(request).info(
        event,
        extra={
            "request_id": get_request_id(request),
            "table_id": table_id,
            "changed": result.changed,
            "warnings": len(result.warnings),
        },
    )
