from contextlib import asynccontextmanager
from typing import List
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import config
import database
import quiz_engine
from auth import create_access_token, get_current_user, hash_password, role_required, verify_password
from database import get_db
from errors import QuizAppError
from logging_config import generate_request_id, logger, set_request_id
from schemas import (
    LoginRequest,
    Principal,
    QuizCreateRequest,
    QuizResults,
    SubmitRequest,
    SubmitResult,
    Token,
)


def seed_super_admin():
    db = get_db()
    existing = db["user"].find_one({"uid": config.SEED_ADMIN_UID})
    if not existing:
        db["user"].insert_one({
            "uid": config.SEED_ADMIN_UID,
            "role": "admin",
            "email": config.SEED_ADMIN_EMAIL,
            "name": "Super Admin",
            "password": hash_password(config.SEED_ADMIN_PASSWORD),
        })
        logger.info(f"Seeded admin account {config.SEED_ADMIN_EMAIL}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting quiz backend ({config.ENVIRONMENT})")
    try:
        database.ensure_indexes()
        seed_super_admin()
    except PyMongoError as e:
        logger.error(f"Database not ready at startup: {e}")
    yield
    logger.info("Shutting down quiz backend")


app = FastAPI(title="Quiz Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    set_request_id(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(QuizAppError)
async def quiz_error_handler(request: Request, exc: QuizAppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Server error", "message": str(exc)},
    )


@app.get("/")
async def root():
    return {"message": "Backend OK", "time": datetime.utcnow().isoformat()}


@app.get("/test")
def test():
    db = get_db()
    return {
        "backend": "FastAPI",
        "database": "MongoDB",
        "database_url": "env:DATABASE_URL",
        "database_name": db.name,
        "connection_status": "connected",
        "collections": _list_collections(db),
    }


def _list_collections(db) -> List[str]:
    try:
        return db.list_collection_names()
    except PyMongoError as e:
        logger.warning(f"Could not list collections: {e}")
        return []


@app.post("/auth/login", response_model=Token)
def login(payload: LoginRequest):
    user = database.find_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token({
        "sub": user["uid"],
        "email": user["email"],
        "role": user["role"],
    })
    return Token(access_token=token)


@app.post("/quizzes", status_code=201)
def create_quiz(data: QuizCreateRequest, user: Principal = Depends(role_required("teacher"))):
    return quiz_engine.create_quiz(user, data)


@app.get("/quizzes/student")
def student_quizzes(user: Principal = Depends(role_required("student"))):
    return quiz_engine.list_quizzes_for_student(user)


@app.get("/quizzes/subject/{subject_id}")
def subject_quizzes(subject_id: str, user: Principal = Depends(get_current_user)):
    return quiz_engine.list_quizzes_for_subject(subject_id, user)


@app.post("/quizzes/{quiz_id}/start")
def start_quiz(quiz_id: str, user: Principal = Depends(role_required("student"))):
    return quiz_engine.start_quiz(quiz_id, user)


@app.post("/quizzes/{quiz_id}/submit", response_model=SubmitResult)
def submit_quiz(quiz_id: str, data: SubmitRequest, user: Principal = Depends(role_required("student"))):
    return quiz_engine.submit_quiz(quiz_id, user, data.answers)


@app.get("/quizzes/{quiz_id}/results", response_model=QuizResults)
def quiz_results(quiz_id: str, user: Principal = Depends(role_required("teacher", "admin"))):
    return quiz_engine.get_quiz_results(quiz_id, user)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT)
