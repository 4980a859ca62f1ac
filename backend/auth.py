from typing import Any, Dict, Optional
from datetime import datetime, timedelta
from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext

import config
from errors import ForbiddenError
from schemas import Principal

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def get_current_user(authorization: Optional[str] = Header(None)) -> Principal:
    if not authorization:
        raise HTTPException(status_code=401, detail="Not authenticated")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Invalid authentication scheme")
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("sub")
    role = payload.get("role")
    if user_id is None or role not in ("admin", "teacher", "student"):
        raise HTTPException(status_code=401, detail="Invalid token")
    return Principal(uid=user_id, email=payload.get("email"), role=role)


def require_role(principal: Principal, *roles: str) -> Principal:
    """Return ``principal`` unchanged if it holds one of ``roles``."""
    if principal.role not in roles:
        raise ForbiddenError(f"Role '{principal.role}' is not allowed to perform this action")
    return principal


def role_required(*roles: str):
    """Dependency form of :func:`require_role` for route declarations."""

    def dependency(user: Principal = Depends(get_current_user)) -> Principal:
        return require_role(user, *roles)

    return dependency
