"""
Unit Tests for token handling and role checks
"""
from datetime import timedelta

import pytest
from fastapi import HTTPException

from auth import (
    create_access_token,
    get_current_user,
    hash_password,
    require_role,
    role_required,
    verify_password,
)
from errors import ForbiddenError
from schemas import Principal


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("student123")

        assert hashed != "student123"
        assert verify_password("student123", hashed)
        assert not verify_password("wrong", hashed)

    def test_empty_hash_never_verifies(self):
        assert not verify_password("anything", "")


class TestGetCurrentUser:

    def test_valid_token(self):
        token = create_access_token({"sub": "student-1", "email": "s@university.com", "role": "student"})

        user = get_current_user(f"Bearer {token}")

        assert user == Principal(uid="student-1", email="s@university.com", role="student")

    def test_expired_token(self):
        token = create_access_token({"sub": "student-1", "role": "student"}, expires_delta=timedelta(minutes=-5))

        with pytest.raises(HTTPException) as exc:
            get_current_user(f"Bearer {token}")
        assert exc.value.status_code == 401

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer"])
    def test_missing_or_malformed_header(self, header):
        with pytest.raises(HTTPException) as exc:
            get_current_user(header)
        assert exc.value.status_code == 401

    def test_unknown_role(self):
        token = create_access_token({"sub": "x", "role": "superuser"})

        with pytest.raises(HTTPException):
            get_current_user(f"Bearer {token}")


class TestRequireRole:

    def test_allowed_role_returns_principal(self):
        teacher = Principal(uid="teacher-1", role="teacher")

        assert require_role(teacher, "teacher", "admin") is teacher

    def test_disallowed_role(self):
        student = Principal(uid="student-1", role="student")

        with pytest.raises(ForbiddenError):
            require_role(student, "teacher", "admin")

    def test_dependency_wraps_require_role(self):
        dependency = role_required("admin")

        with pytest.raises(ForbiddenError):
            dependency(Principal(uid="teacher-1", role="teacher"))
