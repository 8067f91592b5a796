"""Authentication and authorization utilities"""
from fastapi import Depends, HTTPException
from typing import Optional
from app.core.enums import UserRole, Permission
from app.core.security import get_current_user
from app.services.quote_workflow import is_permitted


def require_permission(current_user, permission: Permission) -> None:

    if not is_permitted(current_user.role, permission):
        raise HTTPException(
            status_code=403,
            detail=f"Forbidden: role '{current_user.role}' may not {permission}"
        )


def permission_required(permission: Permission):
    """Dependency form of require_permission, returning the current user."""

    async def dependency(current_user=Depends(get_current_user)):
        require_permission(current_user, permission)
        return current_user

    return dependency


def filter_by_user(query, model, current_user):

    if current_user.role == UserRole.QUOTE_CREATOR:
        return query.where(model.created_by == int(current_user.id))
    return query


def check_ownership(item, current_user, resource_name: str = "Resource") -> None:

    if current_user.role == UserRole.QUOTE_CREATOR and item.created_by != int(current_user.id):
        raise HTTPException(
            status_code=403,
            detail=f"Forbidden: You can only access your own {resource_name}s"
        )


def check_not_found(item, resource_name: str = "Resource", resource_id: Optional[int] = None) -> None:

    if not item:
        if resource_id:
            raise HTTPException(
                status_code=404,
                detail=f"{resource_name} with id {resource_id} not found"
            )
        raise HTTPException(status_code=404, detail=f"{resource_name} not found")
