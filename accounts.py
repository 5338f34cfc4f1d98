"""
Users and admins: lookups, duplicate checks, status changes and deletion.

Email and phone uniqueness is enforced here with pre-check queries, not by
the database. Deactivating or deleting an account also drops its stored
token, so the holder is signed out at once.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

import config
from auth import SUBJECT_ADMIN, SUBJECT_USER, get_password_hash, revoke_token
from errors import AlreadyExists, Forbidden, NotFound, ValidationFailed
from models import STATUS_ACTIVE, STATUS_INACTIVE, Admin, AdminType, Order, User

logger = logging.getLogger(__name__)


# ---------- Users ----------

def find_user(session: Session, phone: Optional[str] = None, email: Optional[str] = None) -> Optional[User]:
    if phone:
        return session.scalars(select(User).where(User.phone == phone)).first()
    if email:
        return session.scalars(select(User).where(User.email == email)).first()
    return None


def ensure_unique_user(
    session: Session, email: Optional[str] = None, phone: Optional[str] = None, exclude_id: Optional[int] = None
) -> None:
    def taken(column, value):
        stmt = select(User.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return session.scalars(stmt).first() is not None

    if email and taken(User.email, email):
        raise AlreadyExists("Email already registered")
    if phone and taken(User.phone, phone):
        raise AlreadyExists("Phone number already registered")


def get_user(session: Session, user_id: int) -> User:
    user = session.scalars(
        select(User).options(selectinload(User.addresses), selectinload(User.creator)).where(User.id == user_id)
    ).first()
    if user is None:
        raise NotFound("User")
    return user


def list_users(
    session: Session,
    offset: int,
    limit: int,
    status: Optional[int] = None,
    search: Optional[str] = None,
) -> Tuple[List[User], int]:
    conditions = []
    if status is not None:
        conditions.append(User.status == status)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    total = session.scalar(select(func.count(User.id)).where(*conditions))
    stmt = select(User).where(*conditions).order_by(User.id.desc()).offset(offset).limit(limit)
    return list(session.scalars(stmt)), total


def create_user(session: Session, fields: Dict[str, Any], created_by: Optional[int] = None) -> User:
    fields = dict(fields)
    ensure_unique_user(session, email=fields.get("email"), phone=fields.get("phone"))
    password = fields.pop("password", None)
    user = User(status=STATUS_ACTIVE, created_by=created_by, **fields)
    if password:
        user.password_hash = get_password_hash(password)
    session.add(user)
    session.flush()
    logger.info("User %s created (created_by=%s)", user.id, created_by)
    return user


def update_user(session: Session, user: User, changes: Dict[str, Any]) -> User:
    if not changes:
        raise ValidationFailed("No fields to update")
    changes = dict(changes)
    ensure_unique_user(session, email=changes.get("email"), phone=changes.get("phone"), exclude_id=user.id)
    password = changes.pop("password", None)
    if password:
        user.password_hash = get_password_hash(password)
    for key, value in changes.items():
        setattr(user, key, value)
    session.flush()
    return user


def set_user_status(session: Session, user_id: int, status: int) -> User:
    user = get_user(session, user_id)
    user.status = status
    if status == STATUS_INACTIVE:
        revoke_token(session, SUBJECT_USER, user.id)
    session.flush()
    logger.info("User %s status set to %s", user.id, status)
    return user


def delete_user(session: Session, user_id: int) -> None:
    user = get_user(session, user_id)
    has_orders = session.scalar(select(func.count(Order.id)).where(Order.user_id == user_id))
    if has_orders:
        raise ValidationFailed("Cannot delete a user who has orders")
    revoke_token(session, SUBJECT_USER, user.id)
    session.delete(user)
    session.flush()
    logger.info("User %s deleted", user_id)


# ---------- Admins ----------

def find_admin(session: Session, phone: Optional[str] = None, email: Optional[str] = None) -> Optional[Admin]:
    if phone:
        return session.scalars(select(Admin).where(Admin.phone == phone)).first()
    if email:
        return session.scalars(select(Admin).where(Admin.email == email)).first()
    return None


def ensure_unique_admin(
    session: Session, email: Optional[str] = None, phone: Optional[str] = None, exclude_id: Optional[int] = None
) -> None:
    def taken(column, value):
        stmt = select(Admin.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(Admin.id != exclude_id)
        return session.scalars(stmt).first() is not None

    if email and taken(Admin.email, email):
        raise AlreadyExists("Email already registered")
    if phone and taken(Admin.phone, phone):
        raise AlreadyExists("Phone number already registered")


def get_admin(session: Session, admin_id: int) -> Admin:
    admin = session.get(Admin, admin_id)
    if admin is None:
        raise NotFound("Admin")
    return admin


def list_admins(
    session: Session,
    offset: int,
    limit: int,
    admin_type: Optional[AdminType] = None,
    status: Optional[int] = None,
) -> Tuple[List[Admin], int]:
    conditions = []
    if admin_type is not None:
        conditions.append(Admin.type == admin_type)
    if status is not None:
        conditions.append(Admin.status == status)

    total = session.scalar(select(func.count(Admin.id)).where(*conditions))
    stmt = select(Admin).where(*conditions).order_by(Admin.id.desc()).offset(offset).limit(limit)
    return list(session.scalars(stmt)), total


def create_admin(session: Session, fields: Dict[str, Any], created_by: Optional[int] = None) -> Admin:
    fields = dict(fields)
    ensure_unique_admin(session, email=fields.get("email"), phone=fields.get("phone"))
    password = fields.pop("password")
    admin = Admin(status=STATUS_ACTIVE, created_by=created_by, password_hash=get_password_hash(password), **fields)
    session.add(admin)
    session.flush()
    logger.info("Admin %s created as %s (created_by=%s)", admin.id, admin.type.value, created_by)
    return admin


def update_admin(session: Session, admin: Admin, changes: Dict[str, Any]) -> Admin:
    if not changes:
        raise ValidationFailed("No fields to update")
    if admin.is_super and changes.get("type") not in (None, AdminType.SUPER_ADMIN):
        raise Forbidden("Cannot downgrade a super admin")
    ensure_unique_admin(session, email=changes.get("email"), phone=changes.get("phone"), exclude_id=admin.id)
    for key, value in changes.items():
        setattr(admin, key, value)
    session.flush()
    return admin


def set_admin_status(session: Session, admin_id: int, status: int) -> Admin:
    admin = get_admin(session, admin_id)
    if admin.is_super and status == STATUS_INACTIVE:
        raise Forbidden("Cannot deactivate a super admin")
    admin.status = status
    if status == STATUS_INACTIVE:
        revoke_token(session, SUBJECT_ADMIN, admin.id)
    session.flush()
    logger.info("Admin %s status set to %s", admin.id, status)
    return admin


def delete_admin(session: Session, admin_id: int) -> None:
    admin = get_admin(session, admin_id)
    if admin.is_super:
        raise Forbidden("Cannot delete a super admin")
    revoke_token(session, SUBJECT_ADMIN, admin.id)
    session.delete(admin)
    session.flush()
    logger.info("Admin %s deleted", admin_id)


def seed_super_admin(session: Session) -> Optional[Admin]:
    """Create the bootstrap super admin from the environment when none exists yet."""
    if not (config.SUPER_ADMIN_EMAIL and config.SUPER_ADMIN_PASSWORD):
        return None
    exists = session.scalars(select(Admin.id).where(Admin.type == AdminType.SUPER_ADMIN)).first()
    if exists is not None:
        return None
    admin = create_admin(
        session,
        {
            "name": "Super Admin",
            "email": config.SUPER_ADMIN_EMAIL,
            "phone": config.SUPER_ADMIN_PHONE,
            "password": config.SUPER_ADMIN_PASSWORD,
            "type": AdminType.SUPER_ADMIN,
        },
    )
    logger.info("Seeded super admin %s", admin.email)
    return admin
