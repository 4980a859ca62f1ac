"""
Exceptions raised by the quiz engine.

Each error carries the HTTP status it maps to, so the API layer can turn any
``QuizAppError`` into a response with a single handler:

    try:
        quiz_engine.start_quiz(quiz_id, user)
    except AlreadyAttemptedError:
        ...
"""

from typing import Any, Dict, Optional


class QuizAppError(Exception):
    """Base exception for all business-rule failures"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class NotFoundError(QuizAppError):
    """Quiz or subject does not exist"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class ForbiddenError(QuizAppError):
    """Role or ownership mismatch"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="FORBIDDEN")


class QuizNotAvailableError(QuizAppError):
    status_code = 400

    def __init__(self, quiz_id: str):
        super().__init__(
            "Quiz is not available at this time",
            code="QUIZ_NOT_AVAILABLE",
            details={"quiz_id": quiz_id}
        )


class AlreadyAttemptedError(QuizAppError):
    status_code = 400

    def __init__(self, quiz_id: str):
        super().__init__(
            "You have already attempted this quiz",
            code="ALREADY_ATTEMPTED",
            details={"quiz_id": quiz_id}
        )


class NoActiveAttemptError(QuizAppError):
    status_code = 400

    def __init__(self, quiz_id: str):
        super().__init__(
            "No active quiz attempt found",
            code="NO_ACTIVE_ATTEMPT",
            details={"quiz_id": quiz_id}
        )
