"""
One-time passcodes.

At most one live code exists per phone: issuing a new code first marks every
earlier unverified code as verified (superseded). A code passes `verify_otp`
only while it is unverified and unexpired. Delivery by email is fire-and-forget
and never fails issuance.
"""
import logging
import secrets
import smtplib
from datetime import timedelta
from email.message import EmailMessage
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

import config
from database import utcnow
from errors import ValidationFailed
from models import Otp

logger = logging.getLogger(__name__)

PURPOSE_REGISTRATION = "registration"
PURPOSE_PASSWORD_RESET = "password_reset"


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def create_and_store_otp(
    session: Session,
    phone: str,
    user_id: Optional[int] = None,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expiry_minutes: Optional[int] = None,
) -> Otp:
    if expiry_minutes is None:
        expiry_minutes = config.OTP_EXPIRY_MINUTES

    conditions = [Otp.phone == phone, Otp.verified.is_(False)]
    if user_id is not None:
        conditions.append(Otp.user_id == user_id)
    session.execute(update(Otp).where(*conditions).values(verified=True, updated_at=utcnow()))

    otp = Otp(
        phone=phone,
        user_id=user_id,
        email=email,
        name=name,
        code=generate_otp(),
        verified=False,
        expires_at=utcnow() + timedelta(minutes=expiry_minutes),
    )
    session.add(otp)
    session.flush()
    logger.info("OTP issued for phone %s (expires %s)", phone, otp.expires_at.isoformat())
    return otp


def verify_otp(session: Session, phone: str, code: str, user_id: Optional[int] = None) -> Otp:
    stmt = select(Otp).where(
        Otp.phone == phone,
        Otp.code == code,
        Otp.verified.is_(False),
        Otp.expires_at > utcnow(),
    )
    if user_id is not None:
        stmt = stmt.where(Otp.user_id == user_id)
    otp = session.scalars(stmt.order_by(Otp.created_at.desc(), Otp.id.desc())).first()
    if otp is None:
        raise ValidationFailed("Invalid or expired OTP")

    otp.verified = True
    otp.confirmed_at = utcnow()
    session.flush()
    return otp


def latest_confirmed_otp(session: Session, phone: str, user_id: int) -> Optional[Otp]:
    return session.scalars(
        select(Otp)
        .where(
            Otp.phone == phone,
            Otp.user_id == user_id,
            Otp.confirmed_at.is_not(None),
            Otp.expires_at > utcnow(),
        )
        .order_by(Otp.created_at.desc(), Otp.id.desc())
    ).first()


def _compose(code: str, email: str, purpose: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = config.MAIL_FROM
    msg["To"] = email
    minutes = config.OTP_EXPIRY_MINUTES
    if purpose == PURPOSE_REGISTRATION:
        msg["Subject"] = "Complete your registration - OTP Verification"
        text = f"Your OTP code is: {code}. Please use this code to complete your registration."
    else:
        msg["Subject"] = "Your password reset OTP"
        text = f"Your OTP code is: {code}. Please use this code to reset your password."
    msg.set_content(f"{text} The OTP is valid only for {minutes} minutes.")
    return msg


def send_otp_email(code: str, email: Optional[str], purpose: str = PURPOSE_REGISTRATION) -> bool:
    """Deliver a code by email. Runs as a background task; errors are logged, never raised."""
    if not email:
        logger.warning("OTP not sent: no email address on record")
        return False
    if not config.SMTP_HOST:
        logger.info("[OTP NOT SENT] SMTP not configured; OTP for %s is %s", email, code)
        return False
    try:
        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=10) as smtp:
            smtp.starttls()
            if config.SMTP_USER:
                smtp.login(config.SMTP_USER, config.SMTP_PASSWORD or "")
            smtp.send_message(_compose(code, email, purpose))
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send OTP email to %s", email)
        return False
    logger.info("[OTP SENT] email=%s purpose=%s", email, purpose)
    return True
