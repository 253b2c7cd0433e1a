from fastapi import APIRouter, Depends
from app.api.dependencies import get_token_claims, get_user_service
from app.core.security import TokenClaims, issue_token
from app.schemas.user import LoginRequest, ProfileFields
from app.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(credentials: LoginRequest, service: UserService = Depends(get_user_service)):
    """Exchange email and password for an access token"""
    user = await service.authenticate(credentials.email, credentials.password)
    # Token carries both id and email; it stays valid until expiry
    token = issue_token(user.id, user.email)
    return {
        "success": True,
        "message": "Login successful! Welcome back! 🎉",
        "data": {
            "user": service.to_response(user).model_dump(mode="json"),
            "token": token,
        },
    }


@router.get("/profile")
async def get_profile(
    claims: TokenClaims = Depends(get_token_claims),
    service: UserService = Depends(get_user_service),
):
    """Get the caller's own profile"""
    user = await service.get(claims.user_id)
    return {
        "success": True,
        "message": "Profile retrieved successfully",
        "data": service.to_response(user).model_dump(mode="json"),
    }


@router.put("/profile")
async def update_profile(
    profile: ProfileFields,
    claims: TokenClaims = Depends(get_token_claims),
    service: UserService = Depends(get_user_service),
):
    """Update the caller's own profile (email cannot be changed here)"""
    user = await service.update_profile(claims.user_id, profile)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": service.to_response(user).model_dump(mode="json"),
    }


@router.post("/verify-email/request")
async def request_email_verification(
    claims: TokenClaims = Depends(get_token_claims),
    service: UserService = Depends(get_user_service),
):
    """Issue a fresh verification token and email the link to the caller"""
    await service.request_verification(claims.user_id)
    return {
        "success": True,
        "message": "Verification email requested. Please check your inbox.",
    }


@router.post("/logout")
async def logout():
    # Tokens are stateless; logging out means the client discards its copy
    return {
        "success": True,
        "message": "Logout successful. Please remove the token from your client.",
    }
