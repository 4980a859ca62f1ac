from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime
from bson import ObjectId
from pymongo import ASCENDING, MongoClient

import config

QUIZ = "quiz"
SUBJECT = "subject"
USER = "user"

_client: Optional[MongoClient] = None
_db = None


def get_db():
    global _client, _db
    if _db is None:
        _client = MongoClient(config.DATABASE_URL)
        _db = _client[config.DATABASE_NAME]
    return _db


def set_db(db) -> None:
    """Point every helper at ``db`` (a pymongo or compatible database)."""
    global _db
    _db = db


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def create_document(collection_name: str, data: Dict[str, Any]) -> str:
    db = get_db()
    now = datetime.utcnow()
    data.setdefault("createdAt", now)
    data.setdefault("updatedAt", now)
    result = db[collection_name].insert_one(data)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Dict[str, Any] | None = None,
    limit: int = 100,
    sort: Sequence[Tuple[str, int]] | None = None,
    projection: Dict[str, Any] | None = None,
) -> List[Dict[str, Any]]:
    db = get_db()
    filter_dict = filter_dict or {}
    cursor = db[collection_name].find(filter_dict, projection)
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return [
        {**doc, "_id": str(doc.get("_id"))}
        for doc in cursor
    ]


def ensure_indexes() -> None:
    db = get_db()
    db[QUIZ].create_index([("subject", ASCENDING), ("endDate", ASCENDING)])
    db[SUBJECT].create_index([("department", ASCENDING), ("semester", ASCENDING)])
    db[USER].create_index("uid", unique=True)


# Quiz aggregate. Attempts live inside the quiz document and are only ever
# changed through the conditional updates below, never by rewriting the
# whole document.

def insert_quiz(doc: Dict[str, Any]) -> str:
    return create_document(QUIZ, doc)


def find_quiz(quiz_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(quiz_id)
    if oid is None:
        return None
    return get_db()[QUIZ].find_one({"_id": oid})


def find_quizzes(filter_dict: Dict[str, Any], sort: Sequence[Tuple[str, int]]) -> List[Dict[str, Any]]:
    return get_documents(QUIZ, filter_dict, limit=0, sort=sort)


def push_attempt(quiz_id: str, attempt: Dict[str, Any]) -> bool:
    """Append ``attempt`` unless the student already has one on this quiz."""
    result = get_db()[QUIZ].update_one(
        {"_id": to_object_id(quiz_id), "attempts.student": {"$ne": attempt["student"]}},
        {"$push": {"attempts": attempt}, "$set": {"updatedAt": datetime.utcnow()}},
    )
    return result.modified_count == 1


def complete_attempt(quiz_id: str, index: int, student: str, fields: Dict[str, Any]) -> bool:
    """Apply ``fields`` to attempt ``index`` if it is still the student's in-progress attempt."""
    prefix = f"attempts.{index}"
    update = {f"{prefix}.{key}": value for key, value in fields.items()}
    update["updatedAt"] = datetime.utcnow()
    result = get_db()[QUIZ].update_one(
        {
            "_id": to_object_id(quiz_id),
            f"{prefix}.student": student,
            f"{prefix}.status": "in-progress",
        },
        {"$set": update},
    )
    return result.modified_count == 1


# Read-only collaborators

def find_subject(subject_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(subject_id)
    if oid is None:
        return None
    return get_db()[SUBJECT].find_one({"_id": oid})


def find_subjects(filter_dict: Dict[str, Any]) -> List[Dict[str, Any]]:
    return get_documents(SUBJECT, filter_dict, limit=0)


def find_user(uid: str) -> Optional[Dict[str, Any]]:
    return get_db()[USER].find_one({"uid": uid}, {"password": 0})


def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return get_db()[USER].find_one({"email": email})


def find_users(uids: List[str]) -> Dict[str, Dict[str, Any]]:
    if not uids:
        return {}
    cursor = get_db()[USER].find({"uid": {"$in": list(set(uids))}}, {"password": 0, "_id": 0})
    return {user["uid"]: user for user in cursor}
