"""HTTP route definitions for the credential service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from ..domain.contracts import RegisterAccountInput, ResetPasswordInput, ResetTokenRequestInput
from ..domain.errors import DomainError, ErrorKind
from ..domain.service import AccountService
from ..metrics import record_outcome

router = APIRouter(prefix="/auth", tags=["auth"])

ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.validation: status.HTTP_400_BAD_REQUEST,
    ErrorKind.conflict: status.HTTP_400_BAD_REQUEST,
    ErrorKind.not_found: status.HTTP_404_NOT_FOUND,
    ErrorKind.invalid_or_expired_token: status.HTTP_400_BAD_REQUEST,
    ErrorKind.store: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class RegisterRequest(BaseModel):
    """Payload accepted when registering an account."""

    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(BaseModel):
    """Payload naming the account that wants a reset token."""

    email: str | None = None


class ResetPasswordRequest(BaseModel):
    """Replacement password submitted together with a reset token."""

    model_config = ConfigDict(populate_by_name=True)

    new_password: str | None = Field(default=None, alias="newPassword")


class MessageResponse(BaseModel):
    message: str


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Register a new account."""
    result = service.register(RegisterAccountInput(email=payload.email, password=payload.password))
    if not result.ok:
        raise _http_error("register", result.error)
    record_outcome("register", "success")
    return MessageResponse(message="User registered successfully")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Issue a password reset token; the token is delivered out of band."""
    result = service.issue_reset_token(ResetTokenRequestInput(email=payload.email))
    if not result.ok:
        raise _http_error("forgot_password", result.error)
    record_outcome("forgot_password", "success")
    return MessageResponse(message="Password reset link sent to your email")


@router.post("/reset-password/{token}", response_model=MessageResponse)
def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Redeem a reset token and replace the account password."""
    result = service.redeem_reset_token(
        ResetPasswordInput(token=token, new_password=payload.new_password)
    )
    if not result.ok:
        raise _http_error("reset_password", result.error)
    record_outcome("reset_password", "success")
    return MessageResponse(message="Password successfully reset")


def _http_error(operation: str, error: DomainError) -> HTTPException:
    record_outcome(operation, error.kind.value)
    return HTTPException(status_code=ERROR_STATUS[error.kind], detail=error.message)
