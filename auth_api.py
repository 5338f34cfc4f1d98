"""Registration, login and OTP routes for shoppers."""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import delete, func, select

from accounts import create_user, find_user, get_user
from auth import (
    SUBJECT_USER,
    Identity,
    get_password_hash,
    issue_user_token,
    require_admin,
    require_user,
    revoke_token,
    verify_password,
)
from database import Database, get_database, utcnow
from errors import AlreadyExists, Forbidden, NotFound, Unauthorized, ValidationFailed
from models import STATUS_ACTIVE, Otp
from otp import (
    PURPOSE_PASSWORD_RESET,
    PURPOSE_REGISTRATION,
    create_and_store_otp,
    latest_confirmed_otp,
    send_otp_email,
    verify_otp,
)
from pagination import PageParams, page_params, paginated
from schemas import (
    LoginRequest,
    OtpOut,
    OtpSendRequest,
    OtpVerifyRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SetPasswordRequest,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _user_by_phone(session, phone):
    user = find_user(session, phone=phone)
    if user is None:
        raise NotFound("User")
    return user


# Registration
@router.post("/auth/register", status_code=201)
def register(payload: RegisterRequest, background_tasks: BackgroundTasks, db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = create_user(session, payload.model_dump())
        otp = create_and_store_otp(session, user.phone, user_id=user.id, email=user.email, name=user.name)
        code = otp.code
        body = {
            "success": True,
            "message": "Registration successful. Please verify the OTP sent to your email.",
            "data": UserOut.model_validate(user),
        }
    background_tasks.add_task(send_otp_email, code, payload.email, PURPOSE_REGISTRATION)
    return body


@router.post("/auth/verify-otp")
def verify_registration(payload: OtpVerifyRequest, db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = _user_by_phone(session, payload.phone)
        verify_otp(session, payload.phone, payload.otp, user_id=user.id)
        user.temp_token = True
        token = issue_user_token(session, user)
        return {
            "success": True,
            "message": "OTP verified successfully",
            "token": token,
            "data": UserOut.model_validate(user),
        }


@router.post("/auth/set-password")
def set_password(payload: SetPasswordRequest, db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = _user_by_phone(session, payload.phone)
        if user.password_hash:
            raise AlreadyExists("Password already set")
        if not user.temp_token:
            raise Forbidden("Phone number not verified")
        user.password_hash = get_password_hash(payload.password)
        user.temp_token = False
        token = issue_user_token(session, user)
        return {"success": True, "message": "Password set successfully", "token": token}


@router.post("/auth/login")
def login(payload: LoginRequest, db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = find_user(session, phone=payload.phone, email=payload.email)
        if user is None:
            raise Unauthorized("Invalid credentials")
        if user.status != STATUS_ACTIVE:
            raise Unauthorized("Account is inactive")
        if not user.password_hash:
            raise Unauthorized("Password not set. Please complete registration")
        if not verify_password(payload.password, user.password_hash):
            raise Unauthorized("Invalid credentials")
        token = issue_user_token(session, user)
        logger.info("User %s logged in", user.id)
        return {
            "success": True,
            "message": "Login successful",
            "token": token,
            "data": UserOut.model_validate(user),
        }


@router.post("/auth/logout")
def logout(identity: Identity = Depends(require_user), db: Database = Depends(get_database)):
    with db.transaction() as session:
        revoke_token(session, SUBJECT_USER, identity.id)
    return {"success": True, "message": "Logged out successfully"}


# Password reset by OTP
@router.post("/otp/send")
def send_reset_otp(payload: OtpSendRequest, background_tasks: BackgroundTasks, db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = find_user(session, phone=payload.phone) or find_user(session, email=payload.email)
        if user is None:
            raise NotFound("User")
        if user.phone != payload.phone or user.email != payload.email:
            raise ValidationFailed("Phone number and email do not match our records")
        otp = create_and_store_otp(session, user.phone, user_id=user.id, email=user.email, name=user.name)
        code, expires_at = otp.code, otp.expires_at
    background_tasks.add_task(send_otp_email, code, payload.email, PURPOSE_PASSWORD_RESET)
    return {"success": True, "message": "OTP sent successfully", "expiresAt": expires_at}


@router.post("/otp/verify")
def verify_reset_otp(payload: OtpVerifyRequest, db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = _user_by_phone(session, payload.phone)
        verify_otp(session, payload.phone, payload.otp, user_id=user.id)
    return {"success": True, "message": "OTP verified successfully"}


@router.post("/otp/reset_password")
def reset_password(payload: ResetPasswordRequest, db: Database = Depends(get_database)):
    with db.transaction() as session:
        user = _user_by_phone(session, payload.phone)
        otp = latest_confirmed_otp(session, payload.phone, user.id)
        if otp is None:
            raise ValidationFailed("OTP not verified or expired")
        user.password_hash = get_password_hash(payload.new_password)
        # one reset per confirmed code
        otp.expires_at = utcnow()
        revoke_token(session, SUBJECT_USER, user.id)
        logger.info("Password reset for user %s", user.id)
    return {"success": True, "message": "Password reset successfully"}


@router.get("/otp/status/{user_id}")
def otp_status(user_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        get_user(session, user_id)
        latest = session.scalars(
            select(Otp).where(Otp.user_id == user_id).order_by(Otp.created_at.desc(), Otp.id.desc())
        ).first()
        active = latest is not None and not latest.verified and latest.expires_at > utcnow()
        return {
            "success": True,
            "data": {
                "userId": user_id,
                "hasActiveOtp": active,
                "latest": OtpOut.model_validate(latest) if latest else None,
            },
        }


@router.get("/otp/history/{user_id}")
def otp_history(
    user_id: int,
    page: PageParams = Depends(page_params()),
    admin: Identity = Depends(require_admin),
    db: Database = Depends(get_database),
):
    with db.transaction() as session:
        get_user(session, user_id)
        total = session.scalar(select(func.count(Otp.id)).where(Otp.user_id == user_id))
        rows = session.scalars(
            select(Otp)
            .where(Otp.user_id == user_id)
            .order_by(Otp.created_at.desc(), Otp.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return paginated([OtpOut.model_validate(row) for row in rows], total, page)


@router.delete("/otp/clear/{user_id}")
def clear_otps(user_id: int, admin: Identity = Depends(require_admin), db: Database = Depends(get_database)):
    with db.transaction() as session:
        get_user(session, user_id)
        result = session.execute(delete(Otp).where(Otp.user_id == user_id))
        cleared = result.rowcount
    logger.info("Admin %s cleared %s OTPs of user %s", admin.id, cleared, user_id)
    return {"success": True, "message": f"Cleared {cleared} OTP records"}
