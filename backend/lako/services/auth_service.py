# Overview: Service-layer operations for identity; registration, login and email verification.

"""
Identity Service

SECURITY NOTES:
- Usernames are case-normalized (lower-cased) before every lookup and write
- Login failures use one error for "no such user" and "wrong password", and
  both paths pay for a bcrypt comparison (see credentials.burn_password_check)
- Registration inserts the user and its primary email in one transaction;
  the confirmation mail is queued only after commit and a queueing problem
  never fails the registration
- Email.verified only transitions False -> True
- Unverified users may still sign in and create invoices
"""

from __future__ import annotations

import logging
import secrets

from sqlalchemy.exc import IntegrityError

from ..config import Settings
from ..enums import Role
from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Email, User
from ..time_utils import utcnow
from ..validation import is_valid_email
from .concurrency import atomic, lock_for_update
from .credentials import burn_password_check, hash_password, verify_password, verify_token
from .mail_service import EmailDispatcher, confirmation_email

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 5
MIN_PASSWORD_LENGTH = 8


def normalize_username(username: str) -> str:
    if not isinstance(username, str):
        return ""
    return username.strip().lower()


def generate_verification_token() -> str:
    return secrets.token_urlsafe(32)


def validate_registration(username: str, email: str, password1: str, password2: str | None = None) -> None:
    """Edge validation for the public registration form."""
    if not isinstance(username, str) or len(username.strip()) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"username must be at least {MIN_USERNAME_LENGTH} characters")
    if not isinstance(email, str) or not is_valid_email(email.strip()):
        raise ValidationError("email must be a valid email address")
    if not isinstance(password1, str) or len(password1) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password2 is not None and password1 != password2:
        raise ValidationError("passwords do not match")


def register_user(
    *,
    username: str,
    email: str,
    password: str,
    settings: Settings,
    mailer: EmailDispatcher | None = None,
    role: Role = Role.CUSTOMER,
) -> User:
    """
    Create a user and its primary (unverified) email in one transaction.

    Raises:
        ValidationError: bad username/email/password
        ConflictError: username already taken
    """
    validate_registration(username, email, password)

    username = normalize_username(username)
    address = email.strip().lower()

    if db.session.query(User.id).filter(User.username == username).first():
        raise ConflictError("Username already exists")

    password_hash = hash_password(password, settings.bcrypt_rounds)
    token = generate_verification_token()

    try:
        with atomic():
            user = User(
                role=role,
                username=username,
                hashed_password=password_hash,
                profile_name=username,
            )
            db.session.add(user)
            db.session.flush()

            db.session.add(Email(
                user_id=user.id,
                address=address,
                verification_token=token,
                verified=False,
                is_primary=True,
                token_generated_at=utcnow(),
            ))
    except IntegrityError:
        # Lost a race with a concurrent registration of the same username
        raise ConflictError("Username already exists")

    logger.info("Registered user %s (id=%s)", username, user.id)
    _queue_confirmation(mailer, settings, address, username, token)
    return user


def authenticate(username: str, password: str, settings: Settings) -> User:
    """
    Verify credentials and stamp last_sign_in_at.

    Raises AuthenticationError with the same message whether the username is
    unknown or the password is wrong.
    """
    username = normalize_username(username)
    password = password or ""

    user = db.session.query(User).filter(User.username == username).first() if username else None

    if user is None:
        burn_password_check(password, settings.bcrypt_rounds)
        logger.info("Failed login for unknown username")
        raise AuthenticationError("invalid username or password")

    if not verify_password(password, user.hashed_password):
        logger.info("Failed login for user id=%s", user.id)
        raise AuthenticationError("invalid username or password")

    user.last_sign_in_at = utcnow()
    db.session.commit()
    return user


def resolve_current_user(token: str, settings: Settings) -> int:
    """Map a bearer token to a user id that still exists."""
    user_id = verify_token(token, settings.jwt_secret_key)
    if db.session.query(User.id).filter(User.id == user_id).first() is None:
        raise AuthenticationError("invalid token")
    return user_id


def find_user(user_id: int) -> User:
    user = db.session.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def confirm_email(token: str) -> bool:
    """
    Mark the email holding `token` as verified.

    Idempotent: a token that was already used keeps returning True.
    Returns False when no email carries the token.
    """
    if not token:
        return False

    with atomic():
        email = lock_for_update(
            db.session.query(Email).filter(Email.verification_token == token)
        ).first()
        if email is None:
            return False
        if not email.verified:
            email.verified = True
            logger.info("Verified email id=%s for user id=%s", email.id, email.user_id)
    return True


def regenerate_and_resend_token(
    *,
    requester_id: int,
    target_user_id: int,
    settings: Settings,
    mailer: EmailDispatcher | None = None,
) -> bool:
    """
    Replace the primary email's token and queue a new confirmation mail.

    Only the user themselves may do this; any other requester gets an
    AuthenticationError. verified is left untouched.
    """
    if requester_id != target_user_id:
        logger.warning("User id=%s tried to resend token for user id=%s", requester_id, target_user_id)
        raise AuthenticationError("current user does not match requested user")

    token = generate_verification_token()

    with atomic():
        user = find_user(target_user_id)
        email = lock_for_update(
            db.session.query(Email)
            .filter(Email.user_id == user.id)
            .order_by(Email.is_primary.desc(), Email.id.asc())
        ).first()
        if email is None:
            raise NotFoundError("Email belonging to user not found")

        email.verification_token = token
        email.token_generated_at = utcnow()
        address = email.address
        username = user.username

    _queue_confirmation(mailer, settings, address, username, token)
    return True


def add_email(
    *,
    user_id: int,
    address: str,
    settings: Settings,
    mailer: EmailDispatcher | None = None,
) -> Email:
    """Attach an extra, non-primary email and send it a confirmation link."""
    if not isinstance(address, str) or not is_valid_email(address.strip()):
        raise ValidationError("email must be a valid email address")
    address = address.strip().lower()

    user = find_user(user_id)
    if any(e.address == address for e in user.emails):
        raise ConflictError("Email already attached to this account")

    token = generate_verification_token()
    with atomic():
        email = Email(
            user_id=user.id,
            address=address,
            verification_token=token,
            verified=False,
            is_primary=False,
            token_generated_at=utcnow(),
        )
        db.session.add(email)

    _queue_confirmation(mailer, settings, address, user.username, token)
    return email


def _queue_confirmation(
    mailer: EmailDispatcher | None,
    settings: Settings,
    address: str,
    username: str,
    token: str,
) -> None:
    if mailer is None:
        return
    try:
        mailer.enqueue(confirmation_email(address, username, token, settings.mail))
    except Exception:
        logger.exception("Failed to queue confirmation email for %s", address)
