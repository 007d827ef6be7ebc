"""
Ticket Service — issue tickets, read them back, and consume them at boarding.

Ticket ids are derived from the wall clock (TKT- + base-36 milliseconds).
Two tickets issued in the same millisecond collide; the unique constraint
on ticket_id rejects the second one with a ConflictError.
"""

import logging
import string
from datetime import date, datetime, timezone
from flask import current_app
from sqlalchemy.exc import IntegrityError

from transitpass.extensions import db
from transitpass.models import Ticket, TicketStatus
from transitpass.errors import (
    ValidationError, NotFoundError, ConflictError, PreconditionError, ForbiddenError,
)
from transitpass.services.auth_service import get_user
from transitpass.services.face_service import decode_image_payload, faces_match
from transitpass.services.qr import make_qr_data_url

logger = logging.getLogger(__name__)

TICKET_PREFIX = "TKT-"
_BASE36 = string.digits + string.ascii_uppercase


def to_base36(number):
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_ticket_id(now=None):
    now = now or datetime.now(timezone.utc)
    return TICKET_PREFIX + to_base36(int(now.timestamp() * 1000))


def parse_booking_date(value):
    if isinstance(value, date):
        return value
    try:
        # accept plain dates and full ISO timestamps
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValidationError("bookingDate must be an ISO date (YYYY-MM-DD).") from e


def create_ticket(user_id, source, destination, phone_number, booking_date, now=None):
    if not source or not destination or not phone_number or not booking_date:
        raise ValidationError(
            "All fields are required (source, destination, phoneNumber, bookingDate).")

    booking_date = parse_booking_date(booking_date)
    get_user(user_id)
    now = now or datetime.now(timezone.utc)

    ticket_id = generate_ticket_id(now)
    # ticketId keeps the encoded payload unique per ticket, even for identical trips
    trip = {
        'ticketId': ticket_id,
        'userId': str(user_id),
        'source': source,
        'destination': destination,
        'phoneNumber': phone_number,
        'bookingDate': booking_date.isoformat(),
        'createdAt': now.isoformat(),
    }

    ticket = Ticket(
        ticket_id=ticket_id,
        user_id=user_id,
        source=source,
        destination=destination,
        phone_number=phone_number,
        booking_date=booking_date,
        qr_code=make_qr_data_url(trip),
        status=TicketStatus.ACTIVE,
        created_at=now,
        expires_at=now + current_app.config['TICKET_LIFETIME'],
    )
    db.session.add(ticket)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError("Ticket id collision, please retry.") from e

    logger.info(f"Ticket {ticket.ticket_id} issued to user {user_id}: {source} -> {destination}")
    return ticket


def expire_if_due(ticket, now=None):
    """Move an active ticket past its expiry to expired. Returns True if it did."""
    if ticket.status != TicketStatus.ACTIVE or not ticket.is_past_expiry(now):
        return False
    updated = (
        Ticket.query
        .filter_by(id=ticket.id, status=TicketStatus.ACTIVE)
        .update({'status': TicketStatus.EXPIRED}, synchronize_session=False)
    )
    db.session.commit()
    db.session.refresh(ticket)
    if updated:
        logger.info(f"Ticket {ticket.ticket_id} expired")
    return bool(updated)


def get_ticket(user_id, ticket_id, now=None):
    ticket = Ticket.query.filter_by(ticket_id=ticket_id, user_id=user_id).first()
    if not ticket:
        raise NotFoundError("Ticket not found.")
    expire_if_due(ticket, now)
    return ticket


def list_tickets(user_id, now=None):
    tickets = (
        Ticket.query
        .filter_by(user_id=user_id)
        .order_by(Ticket.created_at.desc())
        .all()
    )
    for ticket in tickets:
        expire_if_due(ticket, now)
    return tickets


def verify_ticket(user_id, qr_data, face_image, now=None):
    """
    Consume a ticket at boarding.

    Status is checked before the face comparison, so replaying a used or
    expired ticket never reaches the matcher. The final active -> used
    write is conditional on the row still being active.
    """
    if not qr_data or not face_image:
        raise ValidationError("qrData and faceImage are required.")

    ticket = Ticket.query.filter_by(qr_code=qr_data, user_id=user_id).first()
    if not ticket:
        raise NotFoundError("Ticket not found or doesn't belong to user")

    if expire_if_due(ticket, now) or ticket.status == TicketStatus.EXPIRED:
        raise ConflictError("Ticket has expired.")
    if not ticket.can_transition(TicketStatus.USED):
        raise ConflictError("Ticket has already been used.")

    user = get_user(user_id)
    if not user.face_image_path:
        raise PreconditionError("User face not registered")

    live_image = decode_image_payload(face_image)
    result = faces_match(live_image, user.face_image_path)
    if not result.verified:
        logger.warning(f"Face check failed for ticket {ticket.ticket_id}: {result.reason or result.distance}")
        raise ForbiddenError("Face verification failed")

    now = now or datetime.now(timezone.utc)
    updated = (
        Ticket.query
        .filter_by(id=ticket.id, status=TicketStatus.ACTIVE)
        .update({'status': TicketStatus.USED, 'used_at': now}, synchronize_session=False)
    )
    db.session.commit()
    if not updated:
        raise ConflictError("Ticket has already been used.")

    db.session.refresh(ticket)
    logger.info(f"Ticket {ticket.ticket_id} verified and consumed")
    return ticket


def purge_expired_tickets(now=None):
    """Delete tickets whose lifetime has elapsed, whatever their status."""
    now = now or datetime.now(timezone.utc)
    deleted = (
        Ticket.query
        .filter(Ticket.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    logger.info(f"Purged {deleted} expired tickets")
    return deleted
