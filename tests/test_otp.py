import unittest
import requests
from flask_jwt_extended import decode_token
from twilio.base.exceptions import TwilioRestException
from unittest import mock

from tests.support import AppTestCase
from transitpass.errors import DeliveryError
from transitpass.models import User
from transitpass.services.otp_store import OtpStore
from transitpass.services.sms import TwilioSmsSender


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestOtpStore(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = OtpStore(clock=self.clock)

    def test_entry_expires_after_ttl(self):
        self.store.put('+15550001111', '123456', ttl=300)
        self.clock.now += 299
        self.assertEqual(self.store.get('+15550001111'), '123456')
        self.clock.now += 1
        self.assertIsNone(self.store.get('+15550001111'))
        self.assertEqual(len(self.store), 0)

    def test_put_overwrites_live_entry(self):
        self.store.put('+15550001111', '111111', ttl=300)
        self.store.put('+15550001111', '222222', ttl=300)
        self.assertEqual(self.store.get('+15550001111'), '222222')

    def test_pop_is_single_use(self):
        self.store.put('k', 'v', ttl=10)
        self.assertEqual(self.store.pop('k'), 'v')
        self.assertIsNone(self.store.pop('k'))

    def test_compare_and_delete_keeps_entry_on_mismatch(self):
        self.store.put('k', '123456', ttl=10)
        self.assertEqual(self.store.compare_and_delete('k', '000000'), (True, False))
        self.assertEqual(self.store.compare_and_delete('k', '123456'), (True, True))
        self.assertEqual(self.store.compare_and_delete('k', '123456'), (False, False))

    def test_purge_expired(self):
        self.store.put('a', '1', ttl=10)
        self.store.put('b', '2', ttl=100)
        self.clock.now += 50
        self.assertEqual(self.store.purge_expired(), 1)
        self.assertEqual(len(self.store), 1)
        self.assertTrue(self.store.delete('b'))
        self.assertFalse(self.store.delete('b'))


class TestOtpRoutes(AppTestCase):
    phone = "+911234567891"

    def test_send_and_verify(self):
        resp = self.client.post('/send-otp', json={"phoneNumber": self.phone})
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertTrue(data['success'])
        code = data['otp']
        self.assertEqual(len(code), 6)
        self.assertTrue(code.isdigit())
        self.assertEqual(self.sms.sent[-1][0], self.phone)
        self.assertEqual(self.sms.last_code(), code)

        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": "000000" if code != "000000" else "111111"})
        self.assertEqual(resp.status_code, 400)

        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": code})
        self.assertEqual(resp.status_code, 200)
        token = resp.get_json()['token']
        with self.app.app_context():
            claims = decode_token(token)
        self.assertEqual(claims['sub'], self.phone)
        self.assertEqual(claims['scope'], 'phone')

        # single use
        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": code})
        self.assertEqual(resp.status_code, 404)

    def test_code_expires_after_five_minutes(self):
        clock = FakeClock()
        self.app.extensions['otp_store'] = OtpStore(clock=clock)
        code = self.client.post('/send-otp', json={"phoneNumber": self.phone}).get_json()['otp']
        clock.now += 5 * 60
        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": code})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.get_json()['message'], 'OTP expired or not requested.')

    def test_new_request_replaces_previous_code(self):
        first = self.client.post('/send-otp', json={"phoneNumber": self.phone}).get_json()['otp']
        second = self.client.post('/send-otp', json={"phoneNumber": self.phone}).get_json()['otp']
        if first != second:
            resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": first})
            self.assertEqual(resp.status_code, 400)
        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": second})
        self.assertEqual(resp.status_code, 200)

    def test_rejects_number_without_country_code(self):
        for number in ("911234567891", "", "+12", "+91 12345 67891"):
            resp = self.client.post('/send-otp', json={"phoneNumber": number})
            self.assertEqual(resp.status_code, 400, number)
        self.assertEqual(self.sms.sent, [])

    def test_non_string_phone_number_is_rejected(self):
        resp = self.client.post('/send-otp', json={"phoneNumber": 911234567891})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['message'], 'phoneNumber must be a string.')
        resp = self.client.post('/verify-otp', json={"phoneNumber": ["+911234567891"], "otp": "123456"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.sms.sent, [])

    def test_numeric_otp_is_accepted(self):
        with mock.patch('transitpass.services.otp_service.generate_otp', return_value='482913'):
            self.client.post('/send-otp', json={"phoneNumber": self.phone})
        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": 482913})
        self.assertEqual(resp.status_code, 200)

    def test_array_body_is_rejected(self):
        resp = self.client.post('/send-otp', json=[self.phone])
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['message'], 'Request body must be a JSON object.')

    def test_delivery_failure_stores_nothing(self):
        self.sms.fail_with = DeliveryError()
        resp = self.client.post('/send-otp', json={"phoneNumber": self.phone})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.get_json()['message'], 'Error sending OTP.')
        self.assertEqual(len(self.app.extensions['otp_store']), 0)

    def test_otp_hidden_in_production(self):
        self.app.config['APP_ENV'] = 'production'
        resp = self.client.post('/send-otp', json={"phoneNumber": self.phone})
        self.assertEqual(resp.status_code, 200)
        self.assertNotIn('otp', resp.get_json())

    def test_verify_requires_fields(self):
        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone})
        self.assertEqual(resp.status_code, 400)

    def test_verify_with_session_links_phone_to_user(self):
        headers = self.auth_headers()
        code = self.client.post('/send-otp', json={"phoneNumber": self.phone}).get_json()['otp']
        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": code}, headers=headers)
        self.assertEqual(resp.status_code, 200)

        login = self.login().get_json()
        self.assertEqual(login['user']['phoneNumber'], self.phone)

    def test_phone_owned_by_other_user_conflicts_and_keeps_code(self):
        headers_a = self.auth_headers()
        code = self.client.post('/send-otp', json={"phoneNumber": self.phone}).get_json()['otp']
        self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": code}, headers=headers_a)

        headers_b = self.auth_headers(email="b@x.com", name="B")
        code = self.client.post('/send-otp', json={"phoneNumber": self.phone}).get_json()['otp']
        resp = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": code}, headers=headers_b)
        self.assertEqual(resp.status_code, 409)
        self.assertIsNotNone(self.app.extensions['otp_store'].get(self.phone))
        with self.app.app_context():
            self.assertEqual(User.query.filter_by(phone_number=self.phone).one().email, 'a@x.com')

    def test_phone_token_cannot_create_tickets(self):
        code = self.client.post('/send-otp', json={"phoneNumber": self.phone}).get_json()['otp']
        token = self.client.post('/verify-otp', json={"phoneNumber": self.phone, "otp": code}).get_json()['token']
        resp = self.create_ticket({"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 401)


class TestTwilioSmsSender(unittest.TestCase):
    def setUp(self):
        self.sender = TwilioSmsSender('ACtest', 'token', '+15005550006')
        self.sender.client = mock.Mock()

    def test_provider_error_becomes_delivery_error(self):
        self.sender.client.messages.create.side_effect = TwilioRestException(400, '/Messages', 'bad number')
        with self.assertRaises(DeliveryError):
            self.sender.send('+911234567891', 'Your OTP code is: 123456')

    def test_network_error_becomes_delivery_error(self):
        self.sender.client.messages.create.side_effect = requests.ConnectionError('down')
        with self.assertRaises(DeliveryError):
            self.sender.send('+911234567891', 'Your OTP code is: 123456')

    def test_returns_message_sid(self):
        self.sender.client.messages.create.return_value = mock.Mock(sid='SM123')
        self.assertEqual(self.sender.send('+911234567891', 'hello'), 'SM123')
        self.sender.client.messages.create.assert_called_once_with(
            body='hello', from_='+15005550006', to='+911234567891')


if __name__ == '__main__':
    unittest.main()
