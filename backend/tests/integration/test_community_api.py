"""
Integration Tests — Q&A, Comments, Teacher Ratings, Activity Feed
══════════════════════════════════════════════════════════════════
Coverage:
  ✅ Questions: create / list newest first / anonymous author masked
  ✅ Answers: text only and with an attached file (document linked)
  ✅ Answer insert failure: 500, attachment kept unlinked
  ✅ Delete: author or admin only
  ✅ Comments: create / list / delete
  ✅ Ratings: 201 on first rating, 200 on re-rating, summary + distribution
  ✅ Activities: newest first with user and subject

How to run
──────────
  pytest -m "integration and community" -v
"""

from __future__ import annotations

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import ActivityType
from app.models.catalog import SubjectTeacher
from app.models.community import Answer
from app.models.documents import Document
from app.services.activity import ActivityService


@pytest.fixture
async def teacher(db_session, subject):
    result = await db_session.execute(select(SubjectTeacher).where(SubjectTeacher.subject_id == subject.id))
    return result.scalar_one()


# ─────────────────────────────────────────────────────────────────────────────
# Questions & answers
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.integration
@pytest.mark.community
class TestQuestionsApi:

    async def test_anonymous_question(self, async_client, subject, student_id):
        resp = await async_client.post(
            f"/api/v1/subjects/{subject.id}/questions",
            json={"content": "  Kdy je zápočet?  ", "is_anonymous": True},
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["content"] == "Kdy je zápočet?"
        assert data["user"]["display_name"] == "Anonymous Student"
        assert data["user"]["id"] == str(student_id)
        assert data["user"]["email"] is None
        assert data["answers"] == []

    async def test_blank_content(self, async_client, subject):
        resp = await async_client.post(
            f"/api/v1/subjects/{subject.id}/questions",
            json={"content": "   "},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Content is required"

    async def test_unknown_subject(self, async_client, users):
        resp = await async_client.post(
            f"/api/v1/subjects/{uuid.uuid4()}/questions",
            json={"content": "?"},
        )
        assert resp.status_code == 404

    async def test_list_newest_first_with_answers(self, async_client, subject):
        first = (await async_client.post(
            f"/api/v1/subjects/{subject.id}/questions", json={"content": "První"}
        )).json()["data"]
        second = (await async_client.post(
            f"/api/v1/subjects/{subject.id}/questions", json={"content": "Druhá"}
        )).json()["data"]

        answer = await async_client.post(
            f"/api/v1/questions/{first['id']}/answers",
            data={"content": "Odpověď"},
        )
        assert answer.status_code == 201
        assert answer.json()["data"]["document"] is None

        resp = await async_client.get(f"/api/v1/subjects/{subject.id}/questions")

        items = resp.json()["data"]
        assert [q["id"] for q in items] == [second["id"], first["id"]]
        assert [a["content"] for a in items[1]["answers"]] == ["Odpověď"]
        assert items[1]["user"]["display_name"] == "Jana Student"

    async def test_answer_with_attachment(self, async_client, subject, mock_storage, session_factory):
        question = (await async_client.post(
            f"/api/v1/subjects/{subject.id}/questions", json={"content": "Máte zadání?"}
        )).json()["data"]

        resp = await async_client.post(
            f"/api/v1/questions/{question['id']}/answers",
            data={"content": "Tady"},
            files={"file": ("zadani.pdf", b"%PDF-1.4 zadani", "application/pdf")},
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["document"]["original_name"] == "zadani.pdf"
        assert data["document"]["answer_id"] == data["id"]
        assert data["document"]["type"] == "other"
        mock_storage.put_object.assert_awaited_once()

        async with session_factory() as session:
            doc = await session.get(Document, uuid.UUID(data["document"]["id"]))
        assert doc.answer_id == uuid.UUID(data["id"])
        assert doc.subject_id == subject.id

    async def test_answer_failure_leaves_attachment(self, async_client, subject, mock_storage, session_factory):
        question = (await async_client.post(
            f"/api/v1/subjects/{subject.id}/questions", json={"content": "Kde jsou skripta?"}
        )).json()["data"]

        real_commit = AsyncSession.commit

        async def _commit(session):
            if any(isinstance(obj, Answer) for obj in session.new):
                raise SQLAlchemyError("answers table locked")
            await real_commit(session)

        with patch.object(AsyncSession, "commit", _commit):
            resp = await async_client.post(
                f"/api/v1/questions/{question['id']}/answers",
                data={"content": "Tady"},
                files={"file": ("skripta.pdf", b"%PDF-1.4 skripta", "application/pdf")},
            )

        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "Failed to create answer"},
        }
        mock_storage.delete_object.assert_not_awaited()

        async with session_factory() as session:
            docs = (
                await session.execute(select(Document).where(Document.original_name == "skripta.pdf"))
            ).scalars().all()
            answers = (await session.execute(select(Answer))).scalars().all()
        assert len(docs) == 1
        assert docs[0].answer_id is None
        assert answers == []

    async def test_answer_unknown_question(self, async_client, users):
        resp = await async_client.post(
            f"/api/v1/questions/{uuid.uuid4()}/answers",
            data={"content": "x"},
        )
        assert resp.status_code == 404

    async def test_delete_by_stranger_and_admin(self, async_client, login_as, other_student_payload,
                                                admin_payload, subject):
        question = (await async_client.post(
            f"/api/v1/subjects/{subject.id}/questions", json={"content": "Smazat?"}
        )).json()["data"]

        login_as(other_student_payload)
        refused = await async_client.delete(f"/api/v1/questions/{question['id']}")
        assert refused.status_code == 403

        login_as(admin_payload)
        deleted = await async_client.delete(f"/api/v1/questions/{question['id']}")
        assert deleted.status_code == 200

        listed = await async_client.get(f"/api/v1/subjects/{subject.id}/questions")
        assert listed.json()["data"] == []


# ─────────────────────────────────────────────────────────────────────────────
# Comments
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.integration
@pytest.mark.community
class TestCommentsApi:

    async def test_create_list_delete(self, async_client, subject):
        created = await async_client.post(
            f"/api/v1/subjects/{subject.id}/comments",
            json={"content": "Skvělý předmět"},
        )
        assert created.status_code == 201
        comment = created.json()["data"]
        assert comment["user"]["display_name"] == "Jana Student"

        listed = await async_client.get(f"/api/v1/subjects/{subject.id}/comments")
        assert [c["id"] for c in listed.json()["data"]] == [comment["id"]]

        deleted = await async_client.delete(f"/api/v1/comments/{comment['id']}")
        assert deleted.status_code == 200

        missing = await async_client.delete(f"/api/v1/comments/{comment['id']}")
        assert missing.status_code == 404

    async def test_anonymous_comment(self, async_client, subject):
        resp = await async_client.post(
            f"/api/v1/subjects/{subject.id}/comments",
            json={"content": "Těžké cvičení", "is_anonymous": True},
        )
        assert resp.json()["data"]["user"]["display_name"] == "Anonymous Student"

    async def test_stranger_cannot_delete(self, async_client, login_as, other_student_payload, subject):
        comment = (await async_client.post(
            f"/api/v1/subjects/{subject.id}/comments", json={"content": "Můj"}
        )).json()["data"]

        login_as(other_student_payload)
        resp = await async_client.delete(f"/api/v1/comments/{comment['id']}")
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Only the author or an admin can delete this"


# ─────────────────────────────────────────────────────────────────────────────
# Teacher ratings
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.integration
@pytest.mark.community
class TestRatingsApi:

    async def test_rate_then_rerate(self, async_client, teacher):
        first = await async_client.post(f"/api/v1/teachers/{teacher.id}/rating", json={"rating": 4})
        assert first.status_code == 201
        assert first.json()["data"]["rating"] == 4

        again = await async_client.post(f"/api/v1/teachers/{teacher.id}/rating", json={"rating": 2})
        assert again.status_code == 200
        assert again.json()["data"]["id"] == first.json()["data"]["id"]
        assert again.json()["data"]["rating"] == 2

    async def test_summary(self, async_client, login_as, other_student_payload, student_payload, teacher):
        await async_client.post(f"/api/v1/teachers/{teacher.id}/rating", json={"rating": 5})
        login_as(other_student_payload)
        await async_client.post(f"/api/v1/teachers/{teacher.id}/rating", json={"rating": 2})

        login_as(student_payload)
        resp = await async_client.get(f"/api/v1/teachers/{teacher.id}/ratings")

        data = resp.json()["data"]
        assert data["total_ratings"] == 2
        assert data["average_rating"] == 3.5
        assert data["user_rating"] == 5
        assert data["rating_distribution"] == {"1": 0, "2": 1, "3": 0, "4": 0, "5": 1}

    async def test_summary_without_ratings(self, async_client, teacher):
        data = (await async_client.get(f"/api/v1/teachers/{teacher.id}/ratings")).json()["data"]
        assert data["total_ratings"] == 0
        assert data["average_rating"] == 0.0
        assert data["user_rating"] is None

    async def test_out_of_range(self, async_client, teacher):
        resp = await async_client.post(f"/api/v1/teachers/{teacher.id}/rating", json={"rating": 6})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_teacher(self, async_client, users):
        resp = await async_client.post(f"/api/v1/teachers/{uuid.uuid4()}/rating", json={"rating": 3})
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Teacher not found"

    async def test_delete_rating(self, async_client, teacher):
        missing = await async_client.delete(f"/api/v1/teachers/{teacher.id}/rating")
        assert missing.status_code == 404

        await async_client.post(f"/api/v1/teachers/{teacher.id}/rating", json={"rating": 3})
        deleted = await async_client.delete(f"/api/v1/teachers/{teacher.id}/rating")
        assert deleted.status_code == 200

        data = (await async_client.get(f"/api/v1/teachers/{teacher.id}/ratings")).json()["data"]
        assert data["total_ratings"] == 0


# ─────────────────────────────────────────────────────────────────────────────
# Activity feed
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.integration
@pytest.mark.community
class TestActivitiesApi:

    async def test_recent_activity(self, async_client, session_factory, subject, student_id):
        service = ActivityService(session_factory)
        await service.record(
            user_id=student_id,
            activity_type=ActivityType.DOCUMENT_UPLOADED,
            subject_id=subject.id,
            document_id=uuid.uuid4(),
            details={"original_name": "skripta.pdf", "mime_type": "application/pdf"},
        )

        resp = await async_client.get("/api/v1/activities", params={"limit": 5})

        items = resp.json()["data"]
        assert len(items) == 1
        assert items[0]["activity_type"] == "document_uploaded"
        assert items[0]["metadata"]["original_name"] == "skripta.pdf"
        assert items[0]["subject"]["code"] == "KIV/PPA1"
        assert items[0]["user"]["id"] == str(student_id)
        assert items[0]["document"] is None
