"""Analyse request/response models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .render_request import DataRow, Geography


class MessageLevel(str, Enum):
    """Severity of a message shown to the user."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class Message(BaseModel):
    """A message to be displayed to the user."""

    level: MessageLevel
    text: str


class AnalyseRequest(BaseModel):
    """A csv file to be checked against a topology and classified."""

    geography: Geography
    csv: str
    id_index: int = Field(..., ge=0, description="Zero-based index of the id column")
    value_index: int = Field(..., ge=0, description="Zero-based index of the value column")
    has_header_row: bool = False


class AnalyseResponse(BaseModel):
    """Parsed csv data plus the natural breaks for every class count."""

    data: list[DataRow] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    breaks: list[list[float]] = Field(
        default_factory=list,
        description="One list of breaks per class count, index 0 = 2 classes .. index 9 = 11 classes",
    )
    best_fit_class_count: int = 0
    min_value: Optional[float] = None
    max_value: Optional[float] = None
