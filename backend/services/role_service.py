"""
Role service — who may see and change what.

Resolution order for a user's role:
    1. user_roles.role
    2. profiles.role (legacy column)
    3. "parent"
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Profile, UserRole
from domain.enums import Role
from domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


async def resolve_role(db: AsyncSession, user_id: str) -> str:
    result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    role = result.scalar_one_or_none()
    if role:
        return role

    result = await db.execute(select(Profile.role).where(Profile.id == user_id))
    profile_role = result.scalar_one_or_none()
    return profile_role or Role.PARENT.value


async def list_users(db: AsyncSession) -> list[dict]:
    """Profiles joined with their resolved role."""
    profiles = (await db.execute(select(Profile).order_by(Profile.created_at))).scalars().all()
    roles = {
        r.user_id: r.role
        for r in (await db.execute(select(UserRole))).scalars().all()
    }
    return [
        {
            "id": p.id,
            "full_name": p.full_name,
            "email": p.email,
            "created_at": p.created_at.isoformat() if p.created_at else None,
            "role": roles.get(p.id) or p.role or Role.PARENT.value,
        }
        for p in profiles
    ]


async def update_user_role(db: AsyncSession, *, user_id: str, role: str) -> str:
    """Upsert user_roles and mirror the value onto profiles.role."""
    try:
        new_role = Role(role).value
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"Unknown role '{role}' (expected one of: {allowed})", field="role")

    profile = (await db.execute(select(Profile).where(Profile.id == user_id))).scalar_one_or_none()
    if profile is None:
        raise NotFoundError("User", user_id)

    row = (await db.execute(select(UserRole).where(UserRole.user_id == user_id))).scalar_one_or_none()
    if row is None:
        db.add(UserRole(user_id=user_id, role=new_role))
    else:
        row.role = new_role
    profile.role = new_role

    await db.commit()
    logger.info(f"Role for user {user_id[:8]}... set to {new_role}")
    return new_role
