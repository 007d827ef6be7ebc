"""
Auth Service — account registration, credential checks and session tokens.
"""

import logging
import re
from flask_jwt_extended import create_access_token
from sqlalchemy.exc import IntegrityError

from transitpass.extensions import db
from transitpass.models import User
from transitpass.errors import ValidationError, ConflictError, AuthError

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$')
# bcrypt only hashes the first 72 bytes and newer releases refuse longer input
PASSWORD_MAX_BYTES = 72


def issue_user_token(user):
    claims = {
        'scope': 'user',
        'email': user.email,
        'phoneNumber': user.phone_number,
    }
    return create_access_token(identity=str(user.id), additional_claims=claims)


def register_user(name, email, password):
    name = name.strip() if name else name
    email = email.strip().lower() if email else email
    if not name or not email or not password:
        raise ValidationError("All fields are required.")

    if not EMAIL_REGEX.match(email):
        raise ValidationError("Invalid email format.")

    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes.")

    if User.query.filter_by(email=email).first():
        raise ConflictError("Email already registered.")

    user = User(name=name, email=email)
    user.set_password(password)

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as e:
        # a concurrent registration won the unique constraint
        db.session.rollback()
        raise ConflictError("Email already registered.") from e

    logger.info(f"New user {email} registered")
    return user, issue_user_token(user)


def authenticate_user(email, password):
    """Unknown email and wrong password fail identically."""
    if not email or not password:
        raise ValidationError("Email and password are required.")

    user = User.query.filter_by(email=email.strip().lower()).first()
    if not user or not user.check_password(password):
        logger.warning(f"Failed login attempt for {email}")
        raise AuthError("Invalid credentials.")

    logger.info(f"User {user.email} logged in")
    return user, issue_user_token(user)


def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        # token outlived its account
        raise AuthError("Invalid token.")
    return user


def ensure_phone_available(user_id, phone_number):
    owner = User.query.filter_by(phone_number=phone_number).first()
    if owner and owner.id != user_id:
        raise ConflictError("Phone number already registered to another account.")


def attach_phone_number(user_id, phone_number):
    user = get_user(user_id)
    if user.phone_number == phone_number:
        return user

    ensure_phone_available(user.id, phone_number)
    user.phone_number = phone_number
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError("Phone number already registered to another account.") from e

    logger.info(f"Phone number {phone_number} linked to user {user.email}")
    return user
