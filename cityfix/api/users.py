"""
User API endpoints: registration, login/logout and the caller's profile

The token travels only in an HttpOnly cookie; it is never part of a body.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from cityfix.core.config import config
from cityfix.core.errors import ErrorResponseModel
from cityfix.core.logger import logger
from cityfix.dependencies.auth import require_identity
from cityfix.dependencies.services import get_client_ip, get_user_service
from cityfix.schemas.user import LoginRequest, RegisterRequest, UpdateUserRequest, UserResponse
from cityfix.security.identity import Identity
from cityfix.services.user import UserService

router = APIRouter()


def set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.jwt_cookie_name,
        value=token,
        max_age=config.jwt_expiration,
        path="/",
        httponly=True,
        secure=config.jwt_cookie_secure,
        samesite="strict",
    )


def clear_token_cookie(response: Response) -> None:
    response.delete_cookie(
        key=config.jwt_cookie_name,
        path="/",
        httponly=True,
        secure=config.jwt_cookie_secure,
        samesite="strict",
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponseModel}},
)
async def register(
    request: RegisterRequest,
    ip_address: Optional[str] = Depends(get_client_ip),
    service: UserService = Depends(get_user_service),
):
    user = await service.register(request, ip_address)
    return UserResponse.from_user(user)


@router.post(
    "/login",
    response_model=UserResponse,
    responses={400: {"model": ErrorResponseModel}},
)
async def login(
    request: LoginRequest,
    response: Response,
    ip_address: Optional[str] = Depends(get_client_ip),
    service: UserService = Depends(get_user_service),
):
    """Verify credentials and set the auth cookie"""
    user, token = await service.login(request, ip_address)
    set_token_cookie(response, token)
    return UserResponse.from_user(user)


@router.post("/logout")
async def logout(response: Response):
    logger.info("User logout request")
    clear_token_cookie(response)
    return {"message": "Logged out successfully"}


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponseModel}, 404: {"model": ErrorResponseModel}},
)
async def get_current_user(
    identity: Identity = Depends(require_identity),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(await service.get_user(identity.user_id))


@router.put(
    "/me",
    response_model=UserResponse,
    responses={
        400: {"model": ErrorResponseModel},
        401: {"model": ErrorResponseModel},
        404: {"model": ErrorResponseModel},
    },
)
async def update_current_user(
    request: UpdateUserRequest,
    identity: Identity = Depends(require_identity),
    ip_address: Optional[str] = Depends(get_client_ip),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_user(identity.user_id, request, ip_address)
    return UserResponse.from_user(user)
