import uuid
from functools import wraps
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity

from transitpass.errors import AuthError


def _user_scoped():
    return get_jwt().get('scope') == 'user'


def user_required(fn):
    """Require a bearer token issued by /register or /login."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if not _user_scoped():
            raise AuthError("A user session token is required.")
        return fn(*args, **kwargs)
    return wrapper


def current_user_id():
    try:
        return uuid.UUID(get_jwt_identity())
    except (TypeError, ValueError) as e:
        raise AuthError("Invalid token.") from e


def optional_user_id():
    """User id from an optional bearer token, or None when absent or phone-scoped."""
    verify_jwt_in_request(optional=True)
    if get_jwt_identity() is None or not _user_scoped():
        return None
    return current_user_id()
