# backend/app/routers/auth.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, get_settings
from ..clock import get_now
from ..config import Settings
from ..db import get_db
from ..domain.errors import Unauthenticated
from ..middleware.csrf import issue_csrf_token
from ..schemas import (
    AccountOut,
    AckOut,
    CsrfTokenOut,
    EmailIn,
    ResetPasswordIn,
    SigninIn,
    SigninOut,
    SignupIn,
    SignupOut,
)
from ..services import auth_service, token_service
from ..services.credential_store import CredentialStore
from ..services.mailer import Mailer, get_mailer

router = APIRouter(tags=["auth"])


def _set_auth_cookie(response: Response, token: str, cfg: Settings) -> None:
    response.set_cookie(
        cfg.jwt_cookie_name,
        token,
        httponly=True,
        secure=bool(cfg.jwt_cookie_secure),
        samesite=str(cfg.jwt_cookie_samesite),
        max_age=int(cfg.jwt_exp_minutes) * 60,
        path="/",
    )


@router.post("/users", response_model=SignupOut, status_code=201)
def signup(
    payload: SignupIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    mailer: Mailer = Depends(get_mailer),
    cfg: Settings = Depends(get_settings),
):
    account = auth_service.register_account(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        is_host=payload.is_host,
        mailer=mailer,
        now=now,
        cfg=cfg,
    )
    message = (
        "Account created."
        if account.email_verified
        else "Account created. Please check your email to verify your account."
    )
    return SignupOut(account=AccountOut.model_validate(account), message=message)


@router.post("/signin", response_model=SigninOut)
def signin(
    payload: SigninIn,
    response: Response,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cfg: Settings = Depends(get_settings),
):
    result = auth_service.authenticate(db, email=payload.email, password=payload.password, now=now, cfg=cfg)
    _set_auth_cookie(response, result.access_token, cfg)
    return SigninOut(
        access_token=result.access_token,
        expires_at=result.expires_at,
        account=AccountOut.model_validate(result.account),
    )


@router.post("/signout", response_model=AckOut)
def signout(response: Response, cfg: Settings = Depends(get_settings)):
    response.delete_cookie(cfg.jwt_cookie_name, path="/")
    response.delete_cookie(cfg.csrf_cookie_name, path="/")
    return AckOut(message="Signed out")


@router.get("/me", response_model=AccountOut)
def me(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    account = CredentialStore(db).find_by_id(p.account_id)
    if account is None:
        raise Unauthenticated("Unknown account")
    return AccountOut.model_validate(account)


# -------------------------
# Email verification
# -------------------------
@router.get("/verify-email/{token}", response_model=AckOut)
def verify_email(token: str, db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    token_service.verify_email(db, token=token, now=now)
    return AckOut(message="Email verified. You can now sign in.")


@router.post("/resend-verification", response_model=AckOut)
def resend_verification(
    payload: EmailIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    mailer: Mailer = Depends(get_mailer),
    cfg: Settings = Depends(get_settings),
):
    msg = token_service.resend_verification(db, email=payload.email, mailer=mailer, now=now, cfg=cfg)
    return AckOut(message=msg)


# -------------------------
# Password reset
# -------------------------
@router.post("/forgot-password", response_model=AckOut)
def forgot_password(
    payload: EmailIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    mailer: Mailer = Depends(get_mailer),
    cfg: Settings = Depends(get_settings),
):
    msg = token_service.request_password_reset(db, email=payload.email, mailer=mailer, now=now, cfg=cfg)
    return AckOut(message=msg)


@router.post("/reset-password", response_model=AckOut)
def reset_password(
    payload: ResetPasswordIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    cfg: Settings = Depends(get_settings),
):
    token_service.reset_password(db, token=payload.token, new_password=payload.new_password, now=now, cfg=cfg)
    return AckOut(message="Password updated. You can now sign in.")


# -------------------------
# CSRF
# -------------------------
@router.get("/csrf-token", response_model=CsrfTokenOut)
def csrf_token(request: Request, response: Response, cfg: Settings = Depends(get_settings)):
    token = issue_csrf_token(cfg, request.cookies.get(cfg.jwt_cookie_name))
    # readable by the frontend so it can echo it back in the header
    response.set_cookie(
        cfg.csrf_cookie_name,
        token,
        httponly=False,
        secure=bool(cfg.jwt_cookie_secure),
        samesite=str(cfg.jwt_cookie_samesite),
        path="/",
    )
    return CsrfTokenOut(csrf_token=token)
