from transitpass.models.user import User
from transitpass.models.ticket import Ticket, TicketStatus, VALID_TRANSITIONS

__all__ = ['User', 'Ticket', 'TicketStatus', 'VALID_TRANSITIONS']
