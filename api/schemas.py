from pydantic import BaseModel, Field
from typing import Optional, List, Any, Dict


# 1. POST /tables, POST /tables/load - Response
class HistoryInfo(BaseModel):
    position: int
    size: int
    can_undo: bool
    can_redo: bool


class TableState(BaseModel):
    filename: Optional[str] = None
    cadences: List[int]
    power_columns: List[int]
    point_count: int
    max_resistance: int
    storage_multiplier: int
    active_cadence: Optional[int] = None
    show_original: bool
    original_opacity: int
    history: HistoryInfo


class TableCreatedResponse(BaseModel):
    id: str = Field(..., description="Unique editing session UUID")
    state: TableState
    issues: List[str] = []


# 2. Command responses
class CommandResponse(BaseModel):
    message: str
    changed: bool
    warnings: List[str] = []
    details: Dict[str, Any] = {}
    state: TableState


class DragPreviewResponse(BaseModel):
    cadence: int
    power: int
    resistance: int


# 3. GET /tables/{id}/series - Response
class ChartPointModel(BaseModel):
    power: int
    resistance: int


class ChartSeriesModel(BaseModel):
    cadence: int
    label: str
    color: str
    points: List[ChartPointModel]
    active: bool = False
    original: bool = False
    opacity: float = 1.0


class ChartResponse(BaseModel):
    max_resistance: int
    series: List[ChartSeriesModel]


# 4. GET /tables/{id}/grid - Response
class GridResponse(BaseModel):
    cadences: List[int]
    powers: List[int]
    rows: List[Dict[str, Optional[int]]]


# 5. GET /tables/{id}/validation - Response
class ValidationIssueModel(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ValidationResponse(BaseModel):
    ok: bool
    issues: List[ValidationIssueModel]


# API Request models
class PointRequest(BaseModel):
    cadence: int = Field(..., gt=0, description="Line cadence (RPM)")
    power: int = Field(..., gt=0, description="Power column (W)")
    resistance: int = Field(..., description="Resistance in memory units")


class ResistanceRequest(BaseModel):
    resistance: int


class ChartPositionRequest(BaseModel):
    power: float = Field(..., description="Chart x position (W)")
    resistance: float = Field(..., description="Chart y position")


class DragRequest(BaseModel):
    cadence: int = Field(..., gt=0)
    power: Optional[int] = Field(None, gt=0)
    resistance: Optional[float] = None


class ConfigRequest(BaseModel):
    max_resistance: Optional[int] = None
    storage_multiplier: Optional[int] = None


class ActiveCadenceRequest(BaseModel):
    cadence: Optional[int] = None


class OpacityRequest(BaseModel):
    percent: float
