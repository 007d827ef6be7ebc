import base64
import io
import json
import qrcode


def make_qr_data_url(payload):
    """Encode payload as JSON inside a QR code and return it as a PNG data URL."""
    qr_img = qrcode.make(json.dumps(payload, sort_keys=True))
    buf = io.BytesIO()
    qr_img.save(buf)
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode('ascii')
