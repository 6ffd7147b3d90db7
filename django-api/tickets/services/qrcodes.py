"""QR images for ticket codes.

The image encodes the bare ticket code, which is the simplest payload the
check-in validator accepts.
"""

from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from tickets.domain import TicketCode

BOX_SIZE = 8
BORDER = 4


def render_ticket_qr(code: TicketCode) -> bytes:
    """Return a PNG of the QR code for ``code``."""
    image = qrcode.make(
        code.value, error_correction=ERROR_CORRECT_M, box_size=BOX_SIZE, border=BORDER
    )
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()
