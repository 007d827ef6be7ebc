"""
Configuration — read from the environment (.env is loaded first).
Required keys are checked at startup by create_app().
"""

import os
from datetime import timedelta
from dotenv import load_dotenv

from transitpass.errors import ConfigurationError

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


class Config:
    APP_ENV = os.environ.get('APP_ENV', 'development')

    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.environ.get('TWILIO_PHONE_NUMBER')

    OTP_TTL_SECONDS = 5 * 60
    TICKET_LIFETIME = timedelta(hours=24)

    FACE_UPLOAD_DIR = os.environ.get('FACE_UPLOAD_DIR', os.path.join(BASE_DIR, 'uploads'))
    FACE_DETECTOR_MODEL = os.environ.get(
        'FACE_DETECTOR_MODEL', os.path.join(BASE_DIR, 'models', 'face_detection_yunet_2023mar.onnx'))
    FACE_RECOGNIZER_MODEL = os.environ.get(
        'FACE_RECOGNIZER_MODEL', os.path.join(BASE_DIR, 'models', 'face_recognition_sface_2021dec.onnx'))
    FACE_MATCH_THRESHOLD = float(os.environ.get('FACE_MATCH_THRESHOLD', '0.6'))
    IMG_MAX_MB = int(os.environ.get('IMG_MAX_MB', '5'))
    # base64 inflates an image by 4/3; the rest of the JSON body gets 64 KB
    MAX_CONTENT_LENGTH = (IMG_MAX_MB * 1024 * 1024 * 4) // 3 + 64 * 1024

    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_TIMEZONE = os.environ.get('LOG_TIMEZONE', 'UTC')

    REQUIRED_KEYS = (
        'JWT_SECRET_KEY',
        'SQLALCHEMY_DATABASE_URI',
        'TWILIO_ACCOUNT_SID',
        'TWILIO_AUTH_TOKEN',
        'TWILIO_PHONE_NUMBER',
    )

    @classmethod
    def validate(cls, config):
        """Raise ConfigurationError listing every required key that is unset."""
        missing = [key for key in cls.REQUIRED_KEYS if not config.get(key)]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


class TestingConfig(Config):
    TESTING = True
    APP_ENV = 'testing'
    JWT_SECRET_KEY = 'test-secret-key-with-enough-length-for-hs256'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    TWILIO_ACCOUNT_SID = 'ACtest'
    TWILIO_AUTH_TOKEN = 'test-token'
    TWILIO_PHONE_NUMBER = '+15005550006'
    LOG_LEVEL = 'WARNING'
