from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from app.api.dependencies import get_user_service
from app.schemas.user import Pagination, UserListResponse
from app.services.user_directory import total_pages
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def user_form(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    skills: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    hourly_rate: Optional[str] = Form(None),
) -> dict:
    """Raw multipart fields; validation happens in the service pipeline"""
    return {
        "name": name,
        "email": email,
        "phone": phone,
        "skills": skills,
        "bio": bio,
        "hourly_rate": hourly_rate,
    }


def registration_form(raw: dict = Depends(user_form), password: Optional[str] = Form(None)) -> dict:
    return {**raw, "password": password}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    raw: dict = Depends(registration_form),
    profile_picture: Optional[UploadFile] = File(None),
    service: UserService = Depends(get_user_service),
):
    """Register a new user with an optional profile picture"""
    user = await service.register(raw, profile_picture)
    return {
        "success": True,
        "message": "User registered successfully! Welcome to Student Freelancer Workplace! 🎉",
        "data": service.to_response(user).model_dump(mode="json"),
    }


@router.get("")
@router.get("/", include_in_schema=False)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = Query(""),
    service: UserService = Depends(get_user_service),
):
    """List users newest first, optionally filtered by name, email or skills"""
    users, total = await service.list(page=page, limit=limit, search=search.strip())
    payload = UserListResponse(
        users=[service.to_response(user) for user in users],
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages(total, limit),
            total_users=total,
            limit=limit,
        ),
    )
    return {
        "success": True,
        "message": "Users retrieved successfully",
        "data": payload.model_dump(mode="json"),
    }


@router.get("/{user_id}")
async def get_user(user_id: int, service: UserService = Depends(get_user_service)):
    user = await service.get(user_id)
    return {
        "success": True,
        "message": "User retrieved successfully",
        "data": service.to_response(user).model_dump(mode="json"),
    }


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    raw: dict = Depends(user_form),
    profile_picture: Optional[UploadFile] = File(None),
    service: UserService = Depends(get_user_service),
):
    """Replace a user's fields; a new picture supersedes the old one"""
    user = await service.update(user_id, raw, profile_picture)
    return {
        "success": True,
        "message": "User updated successfully",
        "data": service.to_response(user).model_dump(mode="json"),
    }


@router.delete("/{user_id}")
async def delete_user(user_id: int, service: UserService = Depends(get_user_service)):
    await service.delete(user_id)
    return {"success": True, "message": "User deleted successfully"}
