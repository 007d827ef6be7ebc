from flask import Blueprint, jsonify, current_app
from transitpass.payload import json_body, text_field
from transitpass.decorators import optional_user_id
from transitpass.services.otp_service import send_otp, verify_otp
from transitpass.services.auth_service import attach_phone_number, ensure_phone_available

otp_bp = Blueprint('otp', __name__)


@otp_bp.route('/send-otp', methods=['POST'])
def send_otp_route():
    """
    Send a one-time code to a phone number
    ---
    tags:
      - OTP
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - phoneNumber
          properties:
            phoneNumber:
              type: string
              example: "+911234567890"
    responses:
      200:
        description: OTP sent (the code is echoed outside production)
      400:
        description: Phone number missing or without country code
      500:
        description: SMS provider error
    """
    data = json_body()
    otp = send_otp(text_field(data, 'phoneNumber'))

    body = {'success': True, 'message': 'OTP sent successfully!'}
    if current_app.config['APP_ENV'] != 'production':
        body['otp'] = otp
    return jsonify(body), 200


@otp_bp.route('/verify-otp', methods=['POST'])
def verify_otp_route():
    """
    Verify a one-time code
    ---
    tags:
      - OTP
    description: >
      Consumes the code and returns a phone-scoped token. When called with a
      user session token the phone number is also linked to that account.
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - phoneNumber
            - otp
          properties:
            phoneNumber:
              type: string
            otp:
              type: string
    responses:
      200:
        description: OTP verified
      400:
        description: Missing fields or wrong code
      404:
        description: No live code for this number
      409:
        description: Phone number belongs to another account
    """
    data = json_body()
    user_id = optional_user_id()
    phone_number = text_field(data, 'phoneNumber')
    if user_id is not None and phone_number:
        # check before the code is consumed
        ensure_phone_available(user_id, phone_number)

    token = verify_otp(phone_number, text_field(data, 'otp', numeric_ok=True))
    if user_id is not None:
        attach_phone_number(user_id, phone_number)

    return jsonify({
        'success': True,
        'message': 'OTP verified successfully!',
        'token': token
    }), 200
