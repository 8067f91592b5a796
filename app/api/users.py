from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import List

from app.db.session import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserRoleUpdate, UserOut
from app.core.security import get_current_user, hash_password
from app.core.auth_utils import permission_required, check_not_found
from app.core.enums import Permission
from app.core.response_builders import build_user_response

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut)
async def read_me(current_user=Depends(get_current_user)):
    return build_user_response(current_user)


@router.get("/", response_model=List[UserOut])
async def list_users(
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_USERS))
):
    res = await db.execute(select(User).order_by(User.username))
    return [build_user_response(user) for user in res.scalars().all()]


@router.post("/", response_model=UserOut, status_code=201)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_USERS))
):
    res = await db.execute(select(User).where(User.username == payload.username))
    if res.scalars().first():
        raise HTTPException(status_code=400, detail="Username already taken")

    user = User(
        username=payload.username,
        password_hash=hash_password(payload.password),
        full_name=payload.full_name,
        role=payload.role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return build_user_response(user)


@router.put("/{user_id}/role", response_model=UserOut)
async def update_user_role(
    user_id: int,
    payload: UserRoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(permission_required(Permission.MANAGE_USERS))
):
    res = await db.execute(select(User).where(User.id == user_id))
    user = res.scalars().first()
    check_not_found(user, "User", user_id)

    user.role = payload.role
    await db.commit()
    await db.refresh(user)
    return build_user_response(user)
