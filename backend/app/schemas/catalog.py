"""
Semester / Subject / Teacher — Pydantic Request/Response Schemas
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Semesters
# ---------------------------------------------------------------------------

class SemesterCreate(BaseModel):
    name_cs:     str = Field(..., min_length=1, max_length=100)
    name_en:     str = Field(..., min_length=1, max_length=100)
    order_index: int = 0


class SemesterUpdate(BaseModel):
    name_cs:     str | None = Field(None, min_length=1, max_length=100)
    name_en:     str | None = Field(None, min_length=1, max_length=100)
    order_index: int | None = None


class SemesterOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id:          UUID
    name_cs:     str
    name_en:     str
    order_index: int
    created_at:  datetime
    updated_at:  datetime


# ---------------------------------------------------------------------------
# Teachers
# ---------------------------------------------------------------------------

class TeacherIn(BaseModel):
    teacher_name: str = Field(..., min_length=1, max_length=200)
    topic_cs:     str | None = None


class TeacherOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id:           UUID
    subject_id:   UUID
    teacher_name: str
    topic_cs:     str | None


# ---------------------------------------------------------------------------
# Subjects
# ---------------------------------------------------------------------------

class SubjectCreate(BaseModel):
    semester_id:    UUID
    name_cs:        str = Field(..., min_length=1, max_length=200)
    name_en:        str = Field(..., min_length=1, max_length=200)
    code:           str = Field(..., min_length=1, max_length=10)
    description_cs: str | None = None
    description_en: str | None = None
    credits:        int | None = Field(None, ge=0)
    teachers:       list[TeacherIn] = Field(default_factory=list)


class SubjectUpdate(BaseModel):
    """Partial update. A non-null teachers list replaces the current one."""
    semester_id:    UUID | None = None
    name_cs:        str | None = Field(None, min_length=1, max_length=200)
    name_en:        str | None = Field(None, min_length=1, max_length=200)
    code:           str | None = Field(None, min_length=1, max_length=10)
    description_cs: str | None = None
    description_en: str | None = None
    credits:        int | None = Field(None, ge=0)
    teachers:       list[TeacherIn] | None = None


class SubjectSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id:          UUID
    semester_id: UUID
    name_cs:     str
    name_en:     str
    code:        str


class SubjectOut(SubjectSummary):
    description_cs: str | None
    description_en: str | None
    credits:        int | None
    created_at:     datetime
    updated_at:     datetime
    is_favorite:    bool = False


class SubjectDetail(SubjectOut):
    semester: SemesterOut | None = None
    teachers: list[TeacherOut] = Field(default_factory=list)


class SemesterDetail(SemesterOut):
    subjects: list[SubjectSummary] = Field(default_factory=list)
