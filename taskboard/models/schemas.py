from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Literal, Optional

Priority = Literal["P1", "P2", "P3"]


class ExtractRequest(BaseModel):
    # Optional so a missing transcript is answered with 400, not a 422
    transcript: Optional[str] = None


class ExtractResponse(BaseModel):
    tasks: List[Any]


class ErrorResponse(BaseModel):
    error: str
    tasks: Optional[List[Any]] = None


class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    description: str
    assignee: str = "Unassigned"
    due_date: str = Field(default="No deadline", alias="dueDate")
    priority: Priority = "P3"
    completed: bool = False

    def to_storage_dict(self) -> dict:
        return self.model_dump(by_alias=True)
