"""
Q&A API Router

  POST   /subjects/{subject_id}/questions    ask (optionally anonymous)
  GET    /subjects/{subject_id}/questions    newest first, answers oldest first
  DELETE /questions/{question_id}            author or admin, answers cascade
  POST   /questions/{question_id}/answers    multipart: content + optional file

Answer attachments are two-phase:
  1. the file goes through the normal upload pipeline (type "other")
  2. the answer row is created
  3. the document's answer_id is back-filled
If step 2 fails the document from step 1 stays in place, unlinked.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.auth.dependencies import DB, CurrentUser, Extractor, Publisher, Storage
from app.auth.rbac import can_modify
from app.core.errors import internal
from app.models.catalog import Subject
from app.models.community import Answer, Question
from app.models.documents import DocumentType
from app.schemas.common import ErrorResponse, envelope
from app.schemas.community import AnswerOut, CommunityErrors, QuestionCreate, QuestionOut
from app.schemas.documents import DocumentErrors
from app.services.ingestion import IngestionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Q&A"])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _question_options():
    return (
        selectinload(Question.user),
        selectinload(Question.answers).selectinload(Answer.user),
        selectinload(Question.answers).selectinload(Answer.document),
    )


@router.post(
    "/subjects/{subject_id}/questions",
    status_code=status.HTTP_201_CREATED,
    summary="Ask a question about a subject",
    responses=_ERRORS,
)
async def create_question(
    subject_id: UUID,
    body:       QuestionCreate,
    db:         DB,
    user:       CurrentUser,
) -> JSONResponse:
    if await db.get(Subject, subject_id) is None:
        raise DocumentErrors.subject_not_found()
    if not body.content.strip():
        raise CommunityErrors.empty_content()

    question = Question(
        subject_id=subject_id,
        user_id=user.user_id,
        content=body.content.strip(),
        is_anonymous=body.is_anonymous,
    )
    db.add(question)
    await db.commit()
    logger.info("Question created | id=%s subject=%s anonymous=%s", question.id, subject_id, question.is_anonymous)

    result = await db.execute(
        select(Question)
        .where(Question.id == question.id)
        .options(*_question_options())
        .execution_options(populate_existing=True)
    )
    return envelope(QuestionOut.of(result.scalars().one()), status_code=status.HTTP_201_CREATED)


@router.get("/subjects/{subject_id}/questions", summary="Questions of a subject", responses=_ERRORS)
async def list_questions(subject_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    result = await db.execute(
        select(Question)
        .where(Question.subject_id == subject_id)
        .options(*_question_options())
        .order_by(Question.created_at.desc())
    )
    return envelope([QuestionOut.of(q) for q in result.scalars().all()])


@router.delete("/questions/{question_id}", summary="Delete a question", responses=_ERRORS)
async def delete_question(question_id: UUID, db: DB, user: CurrentUser) -> JSONResponse:
    question = await db.get(Question, question_id)
    if question is None:
        raise CommunityErrors.question_not_found()
    if not can_modify(user, question.user_id):
        raise CommunityErrors.not_author()

    await db.delete(question)
    await db.commit()
    logger.info("Question deleted | id=%s user=%s", question_id, user.user_id)
    return envelope()


@router.post(
    "/questions/{question_id}/answers",
    status_code=status.HTTP_201_CREATED,
    summary="Answer a question, optionally attaching a file",
    responses=_ERRORS,
)
async def create_answer(
    question_id: UUID,
    db:          DB,
    user:        CurrentUser,
    storage:     Storage,
    extractor:   Extractor,
    publisher:   Publisher,
    content:     str = Form(..., description="Answer text"),
    file:        Optional[UploadFile] = File(None, description="Optional attachment (max 50 MB)"),
) -> JSONResponse:
    question = await db.get(Question, question_id)
    if question is None:
        raise CommunityErrors.question_not_found()
    if not content.strip():
        raise CommunityErrors.empty_content()

    ingestion = IngestionService(
        db=db,
        storage=storage,
        extractor=extractor,
        publisher=publisher,
        user=user,
    )

    # ---- Phase 1: the attachment --------------------------------------
    document = None
    if file is not None and file.filename:
        document = await ingestion.ingest(
            subject_id=question.subject_id,
            file=file,
            doc_type=DocumentType.OTHER,
        )

    # ---- Phase 2: the answer ------------------------------------------
    doc_id = document.id if document is not None else None
    answer = Answer(question_id=question_id, user_id=user.user_id, content=content.strip())
    try:
        db.add(answer)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        if doc_id is not None:
            logger.error(
                "Answer insert failed, attachment left unlinked | question=%s doc=%s",
                question_id, doc_id,
            )
        else:
            logger.exception("Answer insert failed | question=%s", question_id)
        raise internal("Failed to create answer")

    # ---- Phase 3: back-fill the link ----------------------------------
    if document is not None:
        await ingestion.attach_to_answer(document, answer.id)

    logger.info("Answer created | id=%s question=%s doc=%s", answer.id, question_id, doc_id)

    result = await db.execute(
        select(Answer)
        .where(Answer.id == answer.id)
        .options(selectinload(Answer.user), selectinload(Answer.document))
        .execution_options(populate_existing=True)
    )
    return envelope(AnswerOut.of(result.scalars().one()), status_code=status.HTTP_201_CREATED)
