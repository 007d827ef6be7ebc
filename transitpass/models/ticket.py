"""
Ticket Model
Status: active | used | expired
active -> used     (face-verified boarding)
active -> expired  (lifetime elapsed)
used and expired are terminal.
"""

import uuid
from datetime import datetime, timezone
from transitpass.extensions import db


class TicketStatus:
    ACTIVE = 'active'
    USED = 'used'
    EXPIRED = 'expired'

    ALL = (ACTIVE, USED, EXPIRED)


VALID_TRANSITIONS = {
    TicketStatus.ACTIVE: {TicketStatus.USED, TicketStatus.EXPIRED},
    TicketStatus.USED: set(),
    TicketStatus.EXPIRED: set(),
}


def as_utc(value):
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Ticket(db.Model):
    __tablename__ = 'tickets'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id = db.Column(db.String(32), unique=True, nullable=False)
    user_id = db.Column(db.Uuid, db.ForeignKey('users.id'), nullable=False, index=True)
    source = db.Column(db.String(255), nullable=False)
    destination = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(20), nullable=False)
    qr_code = db.Column(db.Text, nullable=False)
    status = db.Column(
        db.Enum(*TicketStatus.ALL, name='ticket_status'),
        nullable=False,
        default=TicketStatus.ACTIVE
    )
    booking_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def is_past_expiry(self, now=None):
        now = now or datetime.now(timezone.utc)
        return now >= as_utc(self.expires_at)

    def can_transition(self, new_status):
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def to_dict(self):
        used_at = as_utc(self.used_at)
        return {
            'ticketId': self.ticket_id,
            'userId': str(self.user_id),
            'source': self.source,
            'destination': self.destination,
            'phoneNumber': self.phone_number,
            'bookingDate': self.booking_date.isoformat(),
            'qrCode': self.qr_code,
            'status': self.status,
            'createdAt': as_utc(self.created_at).isoformat(),
            'expiresAt': as_utc(self.expires_at).isoformat(),
            'usedAt': used_at.isoformat() if used_at else None,
        }
