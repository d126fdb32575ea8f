"""Auth router - Registration, OTP verification, login, logout and passwords"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from ...auth import get_current_account, get_session_token
from ...config import Settings, get_settings
from ...database import get_db
from ...models import Account
from ...rate_limiter import (
    rate_limit_login,
    rate_limit_password_reset,
    rate_limit_register,
    rate_limit_verify,
)
from ...schemas import MessageResponse
from ...shared.request_context import RequestMeta, get_request_meta
from ..accounts.schemas import AccountEnvelope, AccountResponse
from .schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginInfo,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    ResendOtpRequest,
    ResetPasswordRequest,
    ResetPasswordWithTokenRequest,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from .service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency injection for AuthService"""
    return AuthService(db)


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


# ============================================================================
# REGISTRATION & LOGIN
# ============================================================================


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    _: None = Depends(rate_limit_register),
    service: AuthService = Depends(get_auth_service),
):
    result = await service.register(data)
    return RegisterResponse(
        message="Registration successful. Please verify your email with the OTP sent.",
        **result,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    _: None = Depends(rate_limit_login),
    service: AuthService = Depends(get_auth_service),
):
    result = await service.login(data)
    return LoginResponse(message="OTP sent to your email. Please verify to continue.", **result)


@router.post("/verify-otp", response_model=VerifyOtpResponse)
async def verify_otp(
    data: VerifyOtpRequest,
    response: Response,
    meta: RequestMeta = Depends(get_request_meta),
    _: None = Depends(rate_limit_verify),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    result = await service.verify_code(data, meta)

    body = VerifyOtpResponse(message=result.message)
    if result.account is not None:
        body.data = AccountResponse.from_account(result.account)
    if result.token:
        _set_session_cookie(response, result.token, settings)
        body.token = result.token
        body.loginInfo = LoginInfo(
            previousLogin=result.previous_login,
            previousDeviceLoggedOut=result.previous_device_logged_out,
        )
    return body


@router.post("/resend-otp", response_model=MessageResponse)
async def resend_otp(
    data: ResendOtpRequest,
    _: None = Depends(rate_limit_verify),
    service: AuthService = Depends(get_auth_service),
):
    await service.resend_code(data)
    return MessageResponse(message="A new OTP has been sent to your email")


# ============================================================================
# PASSWORDS
# ============================================================================


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    _: None = Depends(rate_limit_password_reset),
    service: AuthService = Depends(get_auth_service),
):
    await service.forgot_password(data)
    return MessageResponse(message="Password reset instructions have been sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    _: None = Depends(rate_limit_password_reset),
    service: AuthService = Depends(get_auth_service),
):
    await service.reset_password(data)
    return MessageResponse(message="Password reset successful. Please login with your new password.")


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password_with_token(
    token: str,
    data: ResetPasswordWithTokenRequest,
    _: None = Depends(rate_limit_password_reset),
    service: AuthService = Depends(get_auth_service),
):
    await service.reset_password_with_token(token, data)
    return MessageResponse(message="Password reset successful. Please login with your new password.")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    request: Request,
    account: Account = Depends(get_current_account),
    service: AuthService = Depends(get_auth_service),
):
    await service.change_password(account, data, get_session_token(request))
    return MessageResponse(message="Password changed successfully")


# ============================================================================
# SESSION
# ============================================================================


@router.get("/me", response_model=AccountEnvelope)
async def me(account: Account = Depends(get_current_account)):
    return AccountEnvelope(data=AccountResponse.from_account(account))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    account: Account = Depends(get_current_account),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    service.logout(account, get_session_token(request))
    response.delete_cookie(settings.cookie_name, path="/")
    return MessageResponse(message="Logged out successfully")
