"""Pydantic schemas for the step configuration admin surface."""

from pydantic import BaseModel

from app.services.components import ComponentType


class AssignmentIn(BaseModel):
    component_type: ComponentType
    page_number: int


class AssignmentOut(BaseModel):
    component_type: str
    label: str
    description: str
    page_number: int


class PagePreview(BaseModel):
    page_number: int
    components: list[str]           # labels, in render order
    is_empty: bool


class StepConfigOut(BaseModel):
    version: int
    pages: list[int]
    assignments: list[AssignmentOut]
    preview: list[PagePreview]
    persisted: bool = True


class StepConfigUpdate(BaseModel):
    assignments: list[AssignmentIn]
    expected_version: int | None = None


class ComponentPageUpdate(BaseModel):
    page_number: int
    expected_version: int | None = None
