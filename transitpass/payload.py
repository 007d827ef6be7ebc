from flask import request

from transitpass.errors import ValidationError


def json_body():
    """The request's JSON object, {} when there is none. Arrays and scalars are a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def text_field(data, name, strip=True, numeric_ok=False):
    """
    A string field from the body, or None when absent.
    numeric_ok lets plain integers through as their decimal text (OTP codes).
    """
    value = data.get(name)
    if value is None:
        return None
    if numeric_ok and isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string.")
    return value.strip() if strip else value
