"""
OTP Service — issue and consume one-time codes bound to a phone number.
"""

import logging
import re
import secrets
from flask import current_app
from flask_jwt_extended import create_access_token

from transitpass.errors import ValidationError, NotFoundError

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^\+[1-9]\d{7,14}$')
OTP_LENGTH = 6


def is_valid_phone_number(phone_number):
    return bool(phone_number) and PHONE_PATTERN.match(phone_number) is not None


def generate_otp():
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def _store():
    return current_app.extensions['otp_store']


def send_otp(phone_number):
    """
    Deliver a fresh code and keep it for OTP_TTL_SECONDS.
    The code is only stored once the SMS provider has accepted it.
    """
    if not is_valid_phone_number(phone_number):
        raise ValidationError("Valid phone number with country code is required (e.g., +91XXXXXXXXXX)")

    otp = generate_otp()
    sender = current_app.extensions['sms_sender']
    sender.send(phone_number, f"Your OTP code is: {otp}")

    store = _store()
    store.purge_expired()
    store.put(phone_number, otp, current_app.config['OTP_TTL_SECONDS'])
    logger.info(f"OTP issued for {phone_number}")
    return otp


def verify_otp(phone_number, otp):
    if not phone_number or not otp:
        raise ValidationError("Phone number and OTP are required.")

    found, matched = _store().compare_and_delete(phone_number, str(otp).strip())
    if not found:
        raise NotFoundError("OTP expired or not requested.")
    if not matched:
        logger.warning(f"Wrong OTP submitted for {phone_number}")
        raise ValidationError("Invalid OTP.")

    logger.info(f"OTP verified for {phone_number}")
    return create_access_token(identity=phone_number, additional_claims={'scope': 'phone'})
