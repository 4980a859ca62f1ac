"""
Quiz lifecycle and grading.

A quiz is an aggregate: its attempts are embedded in the quiz document and
are only added or completed through ``database.push_attempt`` and
``database.complete_attempt``, both conditional single-document updates.
An attempt moves absent -> in-progress -> completed and never back.

Only the start action is gated by the availability window. Submission is
accepted at any time while the attempt is in progress.
"""

from typing import Any, Dict, Iterable, List, Optional
from datetime import datetime

import database
from errors import (
    AlreadyAttemptedError,
    ForbiddenError,
    NoActiveAttemptError,
    NotFoundError,
    QuizNotAvailableError,
)
from logging_config import get_logger
from schemas import AnswerIn, Principal, QuizCreateRequest, User, to_naive_utc

logger = get_logger("quiz_engine")

IN_PROGRESS = "in-progress"
COMPLETED = "completed"


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.utcnow()


def _strip_question(question: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "questionText": question.get("questionText"),
        "options": question.get("options", []),
        "marks": question.get("marks"),
    }


def public_quiz(doc: Dict[str, Any], hide_answers: bool) -> Dict[str, Any]:
    """Serialise a stored quiz; students never see answers or other attempts."""
    quiz = {**doc, "_id": str(doc["_id"])}
    if hide_answers:
        quiz["questions"] = [_strip_question(q) for q in doc.get("questions", [])]
        quiz.pop("attempts", None)
    return quiz


def _populate_teachers(quizzes: List[Dict[str, Any]]) -> None:
    users = database.find_users([q["teacher"] for q in quizzes])
    for quiz in quizzes:
        user = users.get(quiz["teacher"], {})
        quiz["teacher"] = {"uid": quiz["teacher"], "name": user.get("name")}


def create_quiz(user: Principal, payload: QuizCreateRequest, now: Optional[datetime] = None) -> Dict[str, Any]:
    subject = database.find_subject(payload.subjectId)
    if not subject:
        raise NotFoundError("Subject", payload.subjectId)

    if subject.get("teacher") != user.uid:
        logger.warning(f"Teacher {user.uid} tried to create a quiz for subject {payload.subjectId}")
        raise ForbiddenError("Not authorized to create quizzes for this subject")

    created = to_naive_utc(_now(now))
    doc = {
        "title": payload.title,
        "description": payload.description,
        "subject": str(subject["_id"]),
        "teacher": user.uid,
        "questions": [q.model_dump() for q in payload.questions],
        "totalMarks": payload.total_marks,
        "duration": payload.duration,
        "startDate": payload.startDate,
        "endDate": payload.endDate,
        "attempts": [],
        "isActive": True,
        "createdAt": created,
        "updatedAt": created,
    }
    quiz_id = database.insert_quiz(doc)
    logger.info(f"Quiz {quiz_id} created for subject {doc['subject']} ({doc['totalMarks']} marks)")
    return public_quiz({**doc, "_id": quiz_id}, hide_answers=False)


def list_quizzes_for_subject(subject_id: str, user: Principal, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    quizzes = database.find_quizzes(
        {"subject": subject_id, "isActive": True, "endDate": {"$gte": _now(now)}},
        sort=[("startDate", 1)],
    )
    hide = user.role == "student"
    quizzes = [public_quiz(q, hide_answers=hide) for q in quizzes]
    _populate_teachers(quizzes)
    return quizzes


def list_quizzes_for_student(user: Principal) -> List[Dict[str, Any]]:
    doc = database.find_user(user.uid)
    if not doc:
        raise NotFoundError("User", user.uid)
    student = User(**doc)
    if not student.department:
        return []

    subjects = database.find_subjects({"department": student.department, "semester": student.semester})
    by_id = {s["_id"]: s for s in subjects}
    if not by_id:
        return []

    quizzes = database.find_quizzes(
        {"subject": {"$in": list(by_id)}, "isActive": True},
        sort=[("createdAt", -1)],
    )
    quizzes = [public_quiz(q, hide_answers=True) for q in quizzes]
    for quiz in quizzes:
        subject = by_id[quiz["subject"]]
        quiz["subject"] = {"_id": subject["_id"], "name": subject.get("name"), "code": subject.get("code")}
    _populate_teachers(quizzes)
    return quizzes


def _get_quiz(quiz_id: str) -> Dict[str, Any]:
    quiz = database.find_quiz(quiz_id)
    if not quiz:
        raise NotFoundError("Quiz", quiz_id)
    return quiz


def start_quiz(quiz_id: str, user: Principal, now: Optional[datetime] = None) -> Dict[str, Any]:
    quiz = _get_quiz(quiz_id)

    now = _now(now)
    if now < quiz["startDate"] or now > quiz["endDate"]:
        logger.warning(f"Student {user.uid} tried to start quiz {quiz_id} outside its window")
        raise QuizNotAvailableError(quiz_id)

    if any(a.get("student") == user.uid for a in quiz.get("attempts", [])):
        raise AlreadyAttemptedError(quiz_id)

    attempt = {
        "student": user.uid,
        "answers": [],
        "score": None,
        "percentage": None,
        "startedAt": to_naive_utc(now),
        "submittedAt": None,
        "status": IN_PROGRESS,
    }
    # The read above may be stale; the conditional push is what decides.
    if not database.push_attempt(quiz_id, attempt):
        raise AlreadyAttemptedError(quiz_id)

    logger.info(f"Student {user.uid} started quiz {quiz_id}")
    return public_quiz(quiz, hide_answers=True)


def score_answers(questions: List[Dict[str, Any]], answers: Iterable[AnswerIn]) -> int:
    """Sum the marks of every correctly answered entry.

    Unknown question indices are skipped and repeated entries for the same
    question each count.
    """
    score = 0
    for answer in answers:
        if not 0 <= answer.questionIndex < len(questions):
            continue
        question = questions[answer.questionIndex]
        if question.get("correctAnswer") == answer.selectedOption:
            score += question.get("marks", 0)
    return score


def submit_quiz(
    quiz_id: str,
    user: Principal,
    answers: List[AnswerIn],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    quiz = _get_quiz(quiz_id)

    index = next(
        (
            i for i, a in enumerate(quiz.get("attempts", []))
            if a.get("student") == user.uid and a.get("status") == IN_PROGRESS
        ),
        None,
    )
    if index is None:
        raise NoActiveAttemptError(quiz_id)

    score = score_answers(quiz.get("questions", []), answers)
    total_marks = quiz["totalMarks"]
    percentage = (score / total_marks) * 100

    completed = database.complete_attempt(quiz_id, index, user.uid, {
        "answers": [a.model_dump() for a in answers],
        "score": score,
        "percentage": percentage,
        "submittedAt": to_naive_utc(_now(now)),
        "status": COMPLETED,
    })
    if not completed:
        raise NoActiveAttemptError(quiz_id)

    logger.info(f"Student {user.uid} submitted quiz {quiz_id}: {score}/{total_marks}")
    return {
        "message": "Quiz submitted successfully",
        "score": score,
        "totalMarks": total_marks,
        "percentage": percentage,
    }


def get_quiz_results(quiz_id: str, user: Principal) -> Dict[str, Any]:
    quiz = _get_quiz(quiz_id)

    if quiz.get("teacher") != user.uid and user.role != "admin":
        raise ForbiddenError()

    completed = [a for a in quiz.get("attempts", []) if a.get("status") == COMPLETED]
    students = database.find_users([a["student"] for a in completed])
    results = []
    for attempt in completed:
        student = students.get(attempt["student"], {})
        results.append({
            "student": {
                "uid": attempt["student"],
                "name": student.get("name"),
                "enrollmentNumber": student.get("enrollmentNumber"),
            },
            "score": attempt["score"],
            "percentage": attempt["percentage"],
            "submittedAt": attempt.get("submittedAt"),
        })

    return {
        "quizTitle": quiz["title"],
        "totalMarks": quiz["totalMarks"],
        "totalStudents": len(results),
        "results": results,
    }
