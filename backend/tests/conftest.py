"""
Shared fixtures: a fresh mongomock database per test, the people involved
in a quiz and a subject owned by the teacher.
"""
from datetime import datetime, timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import quiz_engine
from auth import create_access_token
from main import app
from schemas import Principal, QuizCreateRequest

NOW = datetime(2026, 3, 2, 10, 0)

SAMPLE_QUESTIONS = [
    {"questionText": "2 + 2 = ?", "options": ["3", "4", "5"], "correctAnswer": 1, "marks": 5},
    {"questionText": "Capital of France?", "options": ["Paris", "Rome"], "correctAnswer": 0, "marks": 3},
]


@pytest.fixture
def db():
    mock_db = mongomock.MongoClient()["quiz_test"]
    database.set_db(mock_db)
    yield mock_db
    database.set_db(None)


@pytest.fixture
def teacher() -> Principal:
    return Principal(uid="teacher-1", email="teacher@university.com", role="teacher")


@pytest.fixture
def other_teacher() -> Principal:
    return Principal(uid="teacher-2", email="other@university.com", role="teacher")


@pytest.fixture
def student() -> Principal:
    return Principal(uid="student-1", email="student@university.com", role="student")


@pytest.fixture
def second_student() -> Principal:
    return Principal(uid="student-2", email="student2@university.com", role="student")


@pytest.fixture
def admin() -> Principal:
    return Principal(uid="admin-1", email="admin@university.com", role="admin")


@pytest.fixture
def users(db):
    db["user"].insert_many([
        {"uid": "admin-1", "role": "admin", "email": "admin@university.com", "name": "Admin User"},
        {"uid": "teacher-1", "role": "teacher", "email": "teacher@university.com", "name": "Teacher User"},
        {"uid": "teacher-2", "role": "teacher", "email": "other@university.com", "name": "Other Teacher"},
        {
            "uid": "student-1", "role": "student", "email": "student@university.com", "name": "Student User",
            "department": "CSE", "semester": 3, "enrollmentNumber": "ENR001",
        },
        {
            "uid": "student-2", "role": "student", "email": "student2@university.com", "name": "Second Student",
            "department": "CSE", "semester": 3, "enrollmentNumber": "ENR002",
        },
    ])


@pytest.fixture
def subject_id(db, users) -> str:
    return database.create_document("subject", {
        "name": "Data Structures",
        "code": "CS301",
        "teacher": "teacher-1",
        "department": "CSE",
        "semester": 3,
    })


def quiz_payload(subject_id: str, start: datetime, end: datetime, **overrides) -> dict:
    payload = {
        "title": "Weekly quiz",
        "description": "Chapter 1",
        "subjectId": subject_id,
        "questions": SAMPLE_QUESTIONS,
        "duration": 30,
        "startDate": start,
        "endDate": end,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_quiz(subject_id, teacher):
    """Create a quiz open around NOW unless told otherwise."""

    def _make(start: datetime = NOW - timedelta(hours=1), end: datetime = NOW + timedelta(hours=1), **overrides):
        payload = QuizCreateRequest(**quiz_payload(subject_id, start, end, **overrides))
        return quiz_engine.create_quiz(teacher, payload, now=NOW)

    return _make


@pytest.fixture
def client(db) -> TestClient:
    return TestClient(app)


def auth_headers(user: Principal) -> dict:
    token = create_access_token({"sub": user.uid, "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}
