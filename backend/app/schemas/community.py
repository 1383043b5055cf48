"""
Q&A, Comments & Teacher Ratings — Pydantic Request/Response Schemas

Author rendering:
  - Non-anonymous posts expose the author's public view (id, email, name, role).
  - Anonymous posts show "Anonymous Student" and never the email; the id stays
    so the author's own client can offer a delete button.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.errors import bad_request, forbidden, not_found
from app.models.community import Answer, Comment, Question
from app.schemas.common import UserPublic
from app.schemas.documents import DocumentOut


# ---------------------------------------------------------------------------
# Questions & Answers
# ---------------------------------------------------------------------------

class QuestionCreate(BaseModel):
    content:      str = Field(..., min_length=1, max_length=10_000)
    is_anonymous: bool = False


class AnswerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id:          UUID
    question_id: UUID
    user_id:     UUID
    content:     str
    created_at:  datetime
    user:        UserPublic | None = None
    document:    DocumentOut | None = None

    @classmethod
    def of(cls, answer: Answer) -> "AnswerOut":
        return cls(
            id=answer.id,
            question_id=answer.question_id,
            user_id=answer.user_id,
            content=answer.content,
            created_at=answer.created_at,
            user=UserPublic.of(answer.user),
            document=DocumentOut.model_validate(answer.document) if answer.document else None,
        )


class QuestionOut(BaseModel):
    id:           UUID
    subject_id:   UUID
    user_id:      UUID
    content:      str
    is_anonymous: bool
    created_at:   datetime
    user:         UserPublic | None = None
    answers:      list[AnswerOut] = Field(default_factory=list)

    @classmethod
    def of(cls, question: Question, *, with_answers: bool = True) -> "QuestionOut":
        return cls(
            id=question.id,
            subject_id=question.subject_id,
            user_id=question.user_id,
            content=question.content,
            is_anonymous=question.is_anonymous,
            created_at=question.created_at,
            user=UserPublic.of(question.user, anonymous=question.is_anonymous),
            answers=[AnswerOut.of(a) for a in question.answers] if with_answers else [],
        )


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

class CommentCreate(BaseModel):
    content:      str = Field(..., min_length=1, max_length=5_000)
    is_anonymous: bool = False


class CommentOut(BaseModel):
    id:           UUID
    subject_id:   UUID
    user_id:      UUID
    content:      str
    is_anonymous: bool
    created_at:   datetime
    user:         UserPublic | None = None

    @classmethod
    def of(cls, comment: Comment) -> "CommentOut":
        return cls(
            id=comment.id,
            subject_id=comment.subject_id,
            user_id=comment.user_id,
            content=comment.content,
            is_anonymous=comment.is_anonymous,
            created_at=comment.created_at,
            user=UserPublic.of(comment.user, anonymous=comment.is_anonymous),
        )


# ---------------------------------------------------------------------------
# Teacher ratings
# ---------------------------------------------------------------------------

class RatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)


class RatingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id:         UUID
    teacher_id: UUID
    user_id:    UUID
    rating:     int
    created_at: datetime
    updated_at: datetime


class RatingSummary(BaseModel):
    teacher_id:          UUID
    average_rating:      float
    total_ratings:       int
    user_rating:         int | None = None
    rating_distribution: dict[str, int]


# ---------------------------------------------------------------------------
# Error factories
# ---------------------------------------------------------------------------

class CommunityErrors:

    @staticmethod
    def question_not_found():
        return not_found("Question")

    @staticmethod
    def comment_not_found():
        return not_found("Comment")

    @staticmethod
    def teacher_not_found():
        return not_found("Teacher")

    @staticmethod
    def rating_not_found():
        return not_found("Rating")

    @staticmethod
    def empty_content():
        return bad_request("Content is required")

    @staticmethod
    def not_author():
        return forbidden("Only the author or an admin can delete this")
