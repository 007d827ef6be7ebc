"""
Transit pass service — Flask application
Accounts, phone OTP, QR ticket issuance and face-checked boarding.
"""

import logging
import os
import click
from datetime import datetime, timezone
from flask import Flask, jsonify
from flasgger import Swagger
from flask_cors import CORS

from transitpass.extensions import db, jwt
from transitpass.config import Config
from transitpass.errors import register_error_handlers, error_response
from transitpass.logging_config import setup_logging
from transitpass.services.otp_store import OtpStore
from transitpass.services.sms import TwilioSmsSender
from transitpass.services.face_matcher import FaceMatcher, OpenCVDescriptorExtractor
import transitpass.models  # noqa: F401  (register models before create_all)

logger = logging.getLogger(__name__)


def _register_jwt_callbacks():
    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response('Access denied. No token provided.', 401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_response('Invalid token.', 400)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response('Invalid token.', 400)


def _build_face_matcher(config):
    for key in ('FACE_DETECTOR_MODEL', 'FACE_RECOGNIZER_MODEL'):
        if not os.path.isfile(config[key]):
            logger.warning(f"{key} not found at {config[key]}; face checks will fail closed")
    extractor = OpenCVDescriptorExtractor(config['FACE_DETECTOR_MODEL'], config['FACE_RECOGNIZER_MODEL'])
    return FaceMatcher(extractor, threshold=config['FACE_MATCH_THRESHOLD'])


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    setup_logging(app.config['LOG_LEVEL'], app.config['LOG_TIMEZONE'])
    Config.validate(app.config)

    # Initialize Extensions
    db.init_app(app)
    jwt.init_app(app)
    _register_jwt_callbacks()
    CORS(app, origins=app.config['CORS_ORIGINS'])

    app.extensions['otp_store'] = OtpStore()
    app.extensions['sms_sender'] = TwilioSmsSender(
        app.config['TWILIO_ACCOUNT_SID'],
        app.config['TWILIO_AUTH_TOKEN'],
        app.config['TWILIO_PHONE_NUMBER'],
    )
    app.extensions['face_matcher'] = _build_face_matcher(app.config)

    swagger_template = {
        "info": {
            "title": "Transit Pass API",
            "description": "Accounts, phone OTP, QR tickets and face-verified boarding",
            "version": "1.0.0",
        },
        "securityDefinitions": {
            "Bearer": {"type": "apiKey", "name": "Authorization", "in": "header"}
        },
    }
    Swagger(app, template=swagger_template)

    # Register Blueprints
    from transitpass.routes.auth import auth_bp
    app.register_blueprint(auth_bp)

    from transitpass.routes.otp import otp_bp
    app.register_blueprint(otp_bp)

    from transitpass.routes.face import face_bp
    app.register_blueprint(face_bp)

    from transitpass.routes.tickets import tickets_bp
    app.register_blueprint(tickets_bp)

    register_error_handlers(app)

    @app.route('/health')
    def health():
        try:
            db.session.execute(db.text('SELECT 1'))
            return jsonify({
                "success": True,
                "message": "healthy",
                "service": "transitpass",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }), 200
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            db.session.rollback()
            return jsonify({"success": False, "message": "unhealthy", "service": "transitpass"}), 503

    @app.cli.command('purge-tickets')
    def purge_tickets_command():
        """Delete tickets whose 24h lifetime has elapsed."""
        from transitpass.services.ticket_service import purge_expired_tickets
        deleted = purge_expired_tickets()
        click.echo(f"Purged {deleted} expired ticket(s)")

    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', '3000')))
