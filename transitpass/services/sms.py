"""SMS delivery for one-time codes."""

import logging
import requests
from twilio.rest import Client
from twilio.base.exceptions import TwilioException

from transitpass.errors import DeliveryError

logger = logging.getLogger(__name__)


class SmsSender:
    def send(self, phone_number, body):
        raise NotImplementedError


class TwilioSmsSender(SmsSender):
    def __init__(self, account_sid, auth_token, from_number):
        self.client = Client(account_sid, auth_token)
        self.from_number = from_number

    def send(self, phone_number, body):
        try:
            message = self.client.messages.create(
                body=body,
                from_=self.from_number,
                to=phone_number
            )
        except (TwilioException, requests.RequestException) as e:
            raise DeliveryError() from e
        logger.info(f"SMS queued for {phone_number} (sid={message.sid})")
        return message.sid
