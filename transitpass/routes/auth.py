from flask import Blueprint, jsonify
from transitpass.payload import json_body, text_field
from transitpass.services.auth_service import register_user, authenticate_user

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    Register a new user
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - name
            - email
            - password
          properties:
            name:
              type: string
            email:
              type: string
            password:
              type: string
    responses:
      201:
        description: User registered, session token returned
      400:
        description: Missing or malformed fields
      409:
        description: Email already registered
    """
    data = json_body()
    user, token = register_user(
        text_field(data, 'name'),
        text_field(data, 'email'),
        text_field(data, 'password', strip=False),
    )

    return jsonify({
        'success': True,
        'message': 'User registered successfully',
        'token': token,
        'user': user.to_dict()
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Authenticate user and return a session token
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - email
            - password
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful
      401:
        description: Invalid credentials
    """
    data = json_body()
    user, token = authenticate_user(text_field(data, 'email'), text_field(data, 'password', strip=False))

    return jsonify({
        'success': True,
        'message': 'Login successful',
        'token': token,
        'user': user.to_dict(include_phone=True)
    }), 200
