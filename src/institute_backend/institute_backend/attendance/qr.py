from __future__ import annotations

import json
from typing import Any, Optional

from ..core.exceptions import ValidationError


def parse_qr_payload(payload: Any, key: str) -> str:
    """Extract the subject identifier a scanned code carries.

    Accepts a JSON object ({"staffId": ...} / {"studentId": ...}) or a bare id.
    """

    if payload is None:
        raise ValidationError("QR data is required")
    if isinstance(payload, dict):
        value: Optional[Any] = payload.get(key)
    else:
        raw = str(payload).strip()
        if not raw:
            raise ValidationError("QR data is required")
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = raw
        value = decoded.get(key) if isinstance(decoded, dict) else decoded

    if value is None or isinstance(value, (dict, list, bool)) or not str(value).strip():
        raise ValidationError("Invalid QR code")
    return str(value).strip()
