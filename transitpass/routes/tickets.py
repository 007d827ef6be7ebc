from flask import Blueprint, jsonify
from transitpass.payload import json_body, text_field
from transitpass.decorators import user_required, current_user_id
from transitpass.services.ticket_service import (
    create_ticket,
    get_ticket,
    list_tickets,
    verify_ticket,
)

tickets_bp = Blueprint('tickets', __name__)


# --- POST /create-ticket ------------------------------------------------
@tickets_bp.route('/create-ticket', methods=['POST'])
@user_required
def create_ticket_route():
    """
    Issue a ticket with a QR code
    ---
    tags:
      - Tickets
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - source
            - destination
            - phoneNumber
            - bookingDate
          properties:
            source:
              type: string
            destination:
              type: string
            phoneNumber:
              type: string
            bookingDate:
              type: string
              format: date
    responses:
      201:
        description: Ticket created
      400:
        description: Missing fields
    """
    data = json_body()
    ticket = create_ticket(
        user_id=current_user_id(),
        source=text_field(data, 'source'),
        destination=text_field(data, 'destination'),
        phone_number=text_field(data, 'phoneNumber'),
        booking_date=text_field(data, 'bookingDate'),
    )
    return jsonify({
        'success': True,
        'message': 'Ticket created successfully',
        'ticket': ticket.to_dict()
    }), 201


# --- POST /verify-ticket ------------------------------------------------
# Boarding check: scanned QR + live photo. active -> used on success.
@tickets_bp.route('/verify-ticket', methods=['POST'])
@user_required
def verify_ticket_route():
    """
    Verify a ticket at boarding with a face check
    ---
    tags:
      - Tickets
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - qrData
            - faceImage
          properties:
            qrData:
              type: string
            faceImage:
              type: string
    responses:
      200:
        description: Ticket verified and consumed
      400:
        description: Missing fields or no registered face
      403:
        description: Face verification failed
      404:
        description: Ticket not found or doesn't belong to user
      409:
        description: Ticket already used or expired
    """
    data = json_body()
    ticket = verify_ticket(current_user_id(), text_field(data, 'qrData'), text_field(data, 'faceImage'))
    return jsonify({
        'success': True,
        'message': 'Ticket verified successfully',
        'ticketId': ticket.ticket_id,
        'status': ticket.status
    }), 200


# --- GET /ticket/<ticket_id> --------------------------------------------
@tickets_bp.route('/ticket/<ticket_id>', methods=['GET'])
@user_required
def get_ticket_route(ticket_id):
    """
    Get one of the caller's tickets
    ---
    tags:
      - Tickets
    security:
      - Bearer: []
    parameters:
      - in: path
        name: ticket_id
        required: true
        type: string
    responses:
      200:
        description: Ticket document
      404:
        description: Ticket not found
    """
    ticket = get_ticket(current_user_id(), ticket_id)
    return jsonify({'success': True, 'message': 'Ticket found.', 'ticket': ticket.to_dict()}), 200


# --- GET /tickets -------------------------------------------------------
@tickets_bp.route('/tickets', methods=['GET'])
@user_required
def list_tickets_route():
    """
    List the caller's tickets, newest first
    ---
    tags:
      - Tickets
    security:
      - Bearer: []
    responses:
      200:
        description: List of tickets
    """
    tickets = list_tickets(current_user_id())
    return jsonify({
        'success': True,
        'message': f'{len(tickets)} ticket(s) found.',
        'tickets': [t.to_dict() for t in tickets]
    }), 200
