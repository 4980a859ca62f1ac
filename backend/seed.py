"""
Reset the demo accounts and give the teacher a subject to build quizzes for.

    python seed.py
"""

import config
import database
from auth import hash_password
from logging_config import logger
from schemas import User

DEMO_USERS = [
    (
        User(uid=config.SEED_ADMIN_UID, role="admin", email=config.SEED_ADMIN_EMAIL, name="Admin User"),
        config.SEED_ADMIN_PASSWORD,
    ),
    (User(uid="teacher-1", role="teacher", email="teacher@university.com", name="Teacher User"), "teacher123"),
    (
        User(
            uid="student-1",
            role="student",
            email="student@university.com",
            name="Student User",
            department="CSE",
            semester=3,
            enrollmentNumber="ENR001",
        ),
        "student123",
    ),
]


def seed_database() -> str:
    db = database.get_db()
    db[database.USER].delete_many({})
    for user, password in DEMO_USERS:
        database.create_document(database.USER, {**user.model_dump(), "password": hash_password(password)})

    db[database.SUBJECT].delete_many({"code": "CS301"})
    subject_id = database.create_document(database.SUBJECT, {
        "name": "Data Structures",
        "code": "CS301",
        "teacher": "teacher-1",
        "department": "CSE",
        "semester": 3,
    })
    return subject_id


if __name__ == "__main__":
    subject_id = seed_database()
    logger.info("Test users created successfully")
    for user, password in DEMO_USERS:
        logger.info(f"{user.role.title()}: {user.email} / {password}")
    logger.info(f"Subject CS301: {subject_id}")
