"""QR payload formats.

Two shapes reach the dashboard:
- data URI wrapping base64 PNG bytes, as returned by the gateway;
- a QR-image-service URL whose data parameter is an opaque JSON blob
  {sessionId, clientId, timestamp, server}, for simulated sessions.
"""

import json
from urllib.parse import urlencode

QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"
_PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def png_data_uri(base64_png: str | None) -> str | None:
    """Wrap gateway base64 as a data URI. Already-wrapped values pass through."""
    if not base64_png:
        return None
    if base64_png.startswith("data:"):
        return base64_png
    return f"{_PNG_DATA_URI_PREFIX}{base64_png}"


def session_qr_blob(*, session_id: str, client_id: str, timestamp_ms: int, server: str) -> str:
    return json.dumps(
        {
            "sessionId": session_id,
            "clientId": client_id,
            "timestamp": timestamp_ms,
            "server": server,
        },
        separators=(",", ":"),
    )


def qr_service_url(data: str, size: int = 300) -> str:
    """URL rendering data as a PNG QR code."""
    params = {
        "size": f"{size}x{size}",
        "format": "png",
        "data": data,
        "bgcolor": "ffffff",
        "color": "000000",
        "margin": 10,
        "qzone": 1,
        "ecc": "M",
    }
    return f"{QR_SERVICE_URL}?{urlencode(params)}"
