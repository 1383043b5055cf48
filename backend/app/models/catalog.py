"""
SQLAlchemy ORM Models — Semesters, Subjects & Teachers

Ownership:
    Semester 1──* Subject   (delete refused while subjects exist)
    Subject  1──* SubjectTeacher, DocumentCategory, Document, Question, Comment
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin


class Semester(TimestampMixin, Base):
    __tablename__ = "semesters"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name_cs: Mapped[str] = mapped_column(String(100), nullable=False)
    name_en: Mapped[str] = mapped_column(String(100), nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    subjects: Mapped[list["Subject"]] = relationship(
        back_populates="semester",
        order_by="Subject.name_cs",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Semester id={self.id} name_cs={self.name_cs!r}>"


class Subject(TimestampMixin, Base):
    __tablename__ = "subjects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    semester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("semesters.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name_cs: Mapped[str] = mapped_column(String(200), nullable=False)
    name_en: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(
        String(10),
        unique=True,
        nullable=False,
        comment="Short course code, e.g. KIV/PPA1",
    )
    description_cs: Mapped[str | None] = mapped_column(Text)
    description_en: Mapped[str | None] = mapped_column(Text)
    credits: Mapped[int | None] = mapped_column(Integer)

    semester: Mapped[Semester] = relationship(back_populates="subjects")
    teachers: Mapped[list["SubjectTeacher"]] = relationship(
        back_populates="subject",
        order_by="SubjectTeacher.teacher_name",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Subject id={self.id} code={self.code!r}>"


class SubjectTeacher(TimestampMixin, Base):
    """A teacher listed on a subject. Ratings are attached to this row."""

    __tablename__ = "subject_teachers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_name: Mapped[str] = mapped_column(String(200), nullable=False)
    topic_cs: Mapped[str | None] = mapped_column(Text)

    subject: Mapped[Subject] = relationship(back_populates="teachers")

    def __repr__(self) -> str:
        return f"<SubjectTeacher id={self.id} name={self.teacher_name!r}>"
