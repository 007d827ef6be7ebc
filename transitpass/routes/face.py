from flask import Blueprint, jsonify
from transitpass.payload import json_body, text_field
from transitpass.decorators import user_required, current_user_id
from transitpass.services.face_service import register_face

face_bp = Blueprint('face', __name__)


@face_bp.route('/register-face', methods=['POST'])
@user_required
def register_face_route():
    """
    Register (or replace) the user's reference face photo
    ---
    tags:
      - Face
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - image
          properties:
            image:
              type: string
              description: base64 JPEG/PNG, optionally data-URL prefixed
    responses:
      200:
        description: Face registered
      400:
        description: Missing or undecodable image
      401:
        description: Missing token
    """
    data = json_body()
    register_face(current_user_id(), text_field(data, 'image'))
    return jsonify({'success': True, 'message': 'Face registered successfully'}), 200
