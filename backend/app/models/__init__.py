"""Importing this package registers every table on Base.metadata."""

from app.models.base import Base
from app.models.users import User, user_favorite_documents, user_favorite_subjects
from app.models.catalog import Semester, Subject, SubjectTeacher
from app.models.documents import Document, DocumentCategory, DocumentType
from app.models.community import Answer, Comment, Question, TeacherRating
from app.models.activity import Activity, ActivityType

__all__ = [
    "Base",
    "User", "user_favorite_subjects", "user_favorite_documents",
    "Semester", "Subject", "SubjectTeacher",
    "Document", "DocumentCategory", "DocumentType",
    "Question", "Answer", "Comment", "TeacherRating",
    "Activity", "ActivityType",
]
