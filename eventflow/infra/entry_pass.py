import io
import logging

import segno

from ..core.models import Participant, entry_pass_payload

logger = logging.getLogger(__name__)

QR_ERROR_LEVEL = "m"
QR_SCALE = 8
QR_BORDER = 4


def make_entry_pass_qr(participant: Participant) -> segno.QRCode:
    return segno.make_qr(entry_pass_payload(participant), error=QR_ERROR_LEVEL)


def render_entry_pass_png(participant: Participant) -> bytes:
    """
    Renders the entry pass as a PNG QR code.

    The code holds the entry token and nothing else, so the image can be
    printed, saved or shown on a phone at the door.
    """
    buffer = io.BytesIO()
    make_entry_pass_qr(participant).save(buffer, kind="png", scale=QR_SCALE, border=QR_BORDER)
    logger.debug(f"Entry pass image rendered: participant_id={participant.id}")
    return buffer.getvalue()
