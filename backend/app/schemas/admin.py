"""Pydantic schemas for the read-only subject data viewer."""

from pydantic import BaseModel


class SubjectRow(BaseModel):
    id: str
    email: str
    status_label: str
    current_step: int
    completed: bool
    about_me: str
    address: str
    birthdate: str
    created: str
    updated: str


class SubjectList(BaseModel):
    total: int
    subjects: list[SubjectRow]
