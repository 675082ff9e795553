"""
QR labels for blood unit bags.
"""
import base64
import json
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_H


def unit_label_payload(unit: dict) -> dict:
    return {
        "unit_id": unit["id"],
        "batch_id": unit.get("batch_id"),
        "blood_type": unit.get("blood_type"),
        "quantity_ml": unit.get("quantity_ml"),
        "collection_date": unit.get("collection_date"),
        "expiry_date": unit.get("expiry_date"),
    }


def generate_qr_base64(data) -> str:
    """Render `data` (str, or anything JSON-serialisable) as a base64 PNG QR code."""
    if not isinstance(data, str):
        data = json.dumps(data, sort_keys=True)

    qr = qrcode.QRCode(version=None, error_correction=ERROR_CORRECT_H, box_size=10, border=1)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()
