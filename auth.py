"""
Bearer-token authentication.

Tokens are JWTs carrying either `userId` or `adminId` + `type`. Issuing a
token stores it in `auth_tokens` against the identity, replacing whatever was
there, so only the most recent token of an identity is ever accepted. Logout
and deactivation delete the row.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

import config
from database import Database, get_database, utcnow
from errors import Forbidden, Unauthorized
from models import STATUS_ACTIVE, Admin, AdminType, AuthToken, User

logger = logging.getLogger(__name__)

SUBJECT_USER = "user"
SUBJECT_ADMIN = "admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    kind: str
    id: int
    type: Optional[str] = None
    token: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return self.kind == SUBJECT_ADMIN and self.type == AdminType.SUPER_ADMIN.value


# Helper functions for auth

def verify_password(plain_password, hashed_password):
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    # jti keeps two tokens issued in the same second distinct
    to_encode.update({"exp": expire, "iat": now, "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid or expired token")


def _store_token(session: Session, subject_type: str, subject_id: int, token: str) -> None:
    row = session.scalars(
        select(AuthToken).where(AuthToken.subject_type == subject_type, AuthToken.subject_id == subject_id)
    ).first()
    if row is None:
        session.add(AuthToken(subject_type=subject_type, subject_id=subject_id, token=token, issued_at=utcnow()))
    else:
        row.token = token
        row.issued_at = utcnow()
    session.flush()


def issue_user_token(session: Session, user: User) -> str:
    token = create_access_token({"userId": user.id, "email": user.email})
    _store_token(session, SUBJECT_USER, user.id, token)
    return token


def issue_admin_token(session: Session, admin: Admin) -> str:
    admin_type = admin.type.value if isinstance(admin.type, AdminType) else admin.type
    token = create_access_token({"adminId": admin.id, "type": admin_type})
    _store_token(session, SUBJECT_ADMIN, admin.id, token)
    return token


def revoke_token(session: Session, subject_type: str, subject_id: int) -> None:
    session.execute(
        delete(AuthToken).where(AuthToken.subject_type == subject_type, AuthToken.subject_id == subject_id)
    )
    logger.info("Revoked token for %s %s", subject_type, subject_id)


def _is_current(session: Session, subject_type: str, subject_id: int, token: str) -> bool:
    row = session.scalars(
        select(AuthToken).where(AuthToken.subject_type == subject_type, AuthToken.subject_id == subject_id)
    ).first()
    return row is not None and row.token == token


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthorized("Token not provided or invalid")
    return credentials.credentials


# ---------- Dependencies ----------

def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_database),
) -> Identity:
    token = _bearer_token(credentials)
    payload = decode_access_token(token)
    user_id = payload.get("userId")
    if not user_id:
        raise Unauthorized("Invalid token type")

    with db.transaction() as session:
        user = session.get(User, user_id)
        if user is None or user.status != STATUS_ACTIVE or not _is_current(session, SUBJECT_USER, user.id, token):
            raise Unauthorized("Token not found or user inactive")
    return Identity(kind=SUBJECT_USER, id=user_id, token=token)


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_database),
) -> Identity:
    token = _bearer_token(credentials)
    payload = decode_access_token(token)
    admin_id = payload.get("adminId")
    if not admin_id:
        raise Forbidden("Admin access required")

    with db.transaction() as session:
        admin = session.get(Admin, admin_id)
        if admin is None or admin.status != STATUS_ACTIVE or not _is_current(session, SUBJECT_ADMIN, admin.id, token):
            raise Unauthorized("Token not found or admin inactive")
        admin_type = admin.type.value if isinstance(admin.type, AdminType) else admin.type
    return Identity(kind=SUBJECT_ADMIN, id=admin_id, type=admin_type, token=token)


def require_super_admin(identity: Identity = Depends(require_admin)) -> Identity:
    if not identity.is_super_admin:
        raise Forbidden("Super admin access required")
    return identity
