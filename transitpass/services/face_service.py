"""
Face Service — store a user's reference photo and run the boarding face check.
"""

import base64
import binascii
import logging
import os
import re
from flask import current_app

from transitpass.extensions import db
from transitpass.errors import ValidationError, InternalFault
from transitpass.services.auth_service import get_user
from transitpass.services.face_matcher import decode_image

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r'^data:image/[\w.+-]+;base64,')


def decode_image_payload(payload):
    """Base64 (optionally data-URL prefixed) -> raw image bytes OpenCV can read."""
    if not payload or not isinstance(payload, str):
        raise ValidationError("Image is required.")

    encoded = DATA_URL_PREFIX.sub('', payload.strip(), count=1)
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Image must be base64 encoded.") from e

    max_mb = current_app.config['IMG_MAX_MB']
    if len(raw) > max_mb * 1024 * 1024:
        raise ValidationError(f"Image exceeds {max_mb}MB.")

    if decode_image(raw) is None:
        raise ValidationError("Invalid image payload.")
    return raw


def face_image_path(user_id):
    return os.path.join(current_app.config['FACE_UPLOAD_DIR'], f"face-{user_id}.jpg")


def register_face(user_id, image):
    raw = decode_image_payload(image)
    user = get_user(user_id)

    path = face_image_path(user.id)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(raw)
    except OSError as e:
        raise InternalFault("Failed to register face.") from e

    user.face_image_path = path
    db.session.commit()
    logger.info(f"Face registered for user {user.email}")
    return user


def faces_match(live_image, reference_path):
    matcher = current_app.extensions['face_matcher']
    return matcher.match(live_image, reference_path)
