from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from errors import NotFound, ValidationFailed
from models import Address, User


def get_address(session: Session, address_id: int, user_id: Optional[int] = None) -> Address:
    """Fetch an address; with `user_id` it must also belong to that user."""
    stmt = select(Address).where(Address.id == address_id)
    if user_id is not None:
        stmt = stmt.where(Address.user_id == user_id)
    address = session.scalars(stmt.options(selectinload(Address.user))).first()
    if address is None:
        raise NotFound("Address")
    return address


def list_addresses(
    session: Session,
    offset: int,
    limit: int,
    user_id: Optional[int] = None,
    search: Optional[str] = None,
) -> Tuple[List[Address], int]:
    conditions = []
    if user_id is not None:
        conditions.append(Address.user_id == user_id)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                Address.area.ilike(pattern),
                Address.city.ilike(pattern),
                Address.district.ilike(pattern),
                Address.state.ilike(pattern),
            )
        )

    total = session.scalar(select(func.count(Address.id)).where(*conditions))
    stmt = (
        select(Address)
        .options(selectinload(Address.user))
        .where(*conditions)
        .order_by(Address.created_at.desc(), Address.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(session.scalars(stmt)), total


def create_address(session: Session, user_id: int, fields: Dict[str, Any]) -> Address:
    if session.get(User, user_id) is None:
        raise NotFound("User")
    address = Address(user_id=user_id, **fields)
    session.add(address)
    session.flush()
    return address


def update_address(session: Session, address: Address, changes: Dict[str, Any]) -> Address:
    if not changes:
        raise ValidationFailed("No fields to update")
    for key, value in changes.items():
        setattr(address, key, value)
    session.flush()
    return address


def delete_address(session: Session, address: Address) -> None:
    session.delete(address)
    session.flush()
