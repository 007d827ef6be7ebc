import base64
import shutil
import tempfile
import unittest

import cv2
import numpy as np

from transitpass.app import create_app
from transitpass.config import TestingConfig
from transitpass.extensions import db
from transitpass.services.face_matcher import DescriptorExtractor, FaceMatcher
from transitpass.services.sms import SmsSender


class FakeSmsSender(SmsSender):
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, phone_number, body):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((phone_number, body))
        return "SM-fake"

    def last_code(self):
        return self.sent[-1][1].rsplit(' ', 1)[-1]


class FakeExtractor(DescriptorExtractor):
    """
    Descriptor = first pixel's blue channel / 100 on axis 0.
    A pixel value of 0 stands for "no face found".
    """

    def __init__(self):
        self.calls = 0

    def extract_descriptor(self, bgr):
        self.calls += 1
        value = int(bgr[0, 0, 0])
        if value == 0:
            return None
        vec = np.zeros(128, dtype=np.float32)
        vec[0] = value / 100.0
        return vec


def solid_png(value, size=16):
    img = np.full((size, size, 3), value, dtype=np.uint8)
    ok, buf = cv2.imencode('.png', img)
    assert ok
    return buf.tobytes()


def image_b64(value, data_url=False):
    encoded = base64.b64encode(solid_png(value)).decode('ascii')
    return f"data:image/png;base64,{encoded}" if data_url else encoded


class AppTestCase(unittest.TestCase):
    config_class = TestingConfig

    def setUp(self):
        self.upload_dir = tempfile.mkdtemp()
        self.app = create_app(self.config_class)
        self.app.config['FACE_UPLOAD_DIR'] = self.upload_dir

        self.sms = FakeSmsSender()
        self.extractor = FakeExtractor()
        self.app.extensions['sms_sender'] = self.sms
        self.app.extensions['face_matcher'] = FaceMatcher(self.extractor, threshold=0.6)

        self.client = self.app.test_client()

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
        shutil.rmtree(self.upload_dir, ignore_errors=True)

    # --- helpers -------------------------------------------------------
    def register(self, name="A", email="a@x.com", password="secret123"):
        return self.client.post('/register', json={
            "name": name,
            "email": email,
            "password": password
        })

    def login(self, email="a@x.com", password="secret123"):
        return self.client.post('/login', json={"email": email, "password": password})

    def auth_headers(self, email="a@x.com", password="secret123", name="A"):
        resp = self.register(name=name, email=email, password=password)
        self.assertEqual(resp.status_code, 201, resp.get_json())
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}

    def create_ticket(self, headers, **overrides):
        body = {
            "source": "X",
            "destination": "Y",
            "phoneNumber": "+911234567890",
            "bookingDate": "2025-01-01"
        }
        body.update(overrides)
        return self.client.post('/create-ticket', json=body, headers=headers)
