import logging
import os
import threading
import time
from datetime import timedelta
from io import BytesIO
from typing import List, Optional

import qrcode
from qrcode import constants
from qrcode.exceptions import DataOverflowError

from src.config import settings
from src.exceptions import EncodingError

logger = logging.getLogger(__name__)

TICKET_PAYLOAD_PREFIX = "BOOKING:"
MAX_PAYLOAD_LENGTH = 512


def ticket_payload(booking_id: str) -> str:
    """QR payload for a booking ticket"""
    return f"{TICKET_PAYLOAD_PREFIX}{booking_id}"


def parse_ticket_payload(payload: str) -> Optional[str]:
    """Return the booking ID in a scanned payload, or None if it is not a ticket"""
    if not payload or not payload.startswith(TICKET_PAYLOAD_PREFIX):
        return None
    booking_id = payload[len(TICKET_PAYLOAD_PREFIX):].strip()
    return booking_id or None


def artifact_filename(booking_id: str) -> str:
    return f"qr-{booking_id}.png"


class TicketArtifactGenerator:
    """Encodes ticket payloads into PNG QR codes"""

    def __init__(self, box_size: int = 10, border: int = 4):
        self.box_size = box_size
        self.border = border

    def generate(self, payload: str) -> bytes:
        if not isinstance(payload, str) or not payload:
            raise EncodingError("Payload must be a non-empty string")
        if len(payload) > MAX_PAYLOAD_LENGTH:
            raise EncodingError(f"Payload longer than {MAX_PAYLOAD_LENGTH} characters")
        if not payload.isprintable():
            raise EncodingError("Payload contains non-printable characters")

        qr = qrcode.QRCode(
            version=None,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )

        try:
            qr.add_data(payload)
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as e:
            raise EncodingError(f"Payload cannot be encoded: {e}") from e

        image = qr.make_image(fill_color="black", back_color="white")
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()


class ArtifactStore:
    """Ticket images kept in a private directory, one file per booking"""

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory or settings.QR_CODE_DIR
        os.makedirs(self.directory, exist_ok=True)

    def path_for(self, filename: str) -> str:
        # Only plain filenames produced by artifact_filename are accepted
        if os.path.basename(filename) != filename or filename in ("", ".", ".."):
            raise ValueError("Invalid artifact name")
        return os.path.join(self.directory, filename)

    def save(self, booking_id: str, image: bytes) -> str:
        filename = artifact_filename(booking_id)
        tmp_path = self.path_for(filename) + ".tmp"
        with open(tmp_path, "wb") as f:
            f.write(image)
        os.replace(tmp_path, self.path_for(filename))
        return filename

    def exists(self, filename: Optional[str]) -> bool:
        return bool(filename) and os.path.isfile(self.path_for(filename))

    def read(self, filename: str) -> Optional[bytes]:
        try:
            with open(self.path_for(filename), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def sweep(self, max_age: timedelta, now: Optional[float] = None) -> List[str]:
        """Delete artifact files older than max_age. Errors are logged, never raised."""
        cutoff = (now if now is not None else time.time()) - max_age.total_seconds()
        removed = []

        try:
            entries = list(os.scandir(self.directory))
        except OSError as e:
            logger.error("Artifact sweep could not list %s: %s", self.directory, e)
            return removed

        for entry in entries:
            try:
                if entry.is_file() and entry.stat().st_mtime < cutoff:
                    os.unlink(entry.path)
                    removed.append(entry.name)
            except OSError as e:
                logger.warning("Artifact sweep could not remove %s: %s", entry.name, e)

        if removed:
            logger.info("Artifact sweep removed %d file(s)", len(removed))
        return removed


class ArtifactSweeper:
    """Periodic artifact cleanup with an explicit start/stop lifecycle"""

    def __init__(self, store: ArtifactStore, retention: timedelta, interval: timedelta):
        self.store = store
        self.retention = retention
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="artifact-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self):
        while not self._stop_event.is_set():
            try:
                self.store.sweep(self.retention)
            except Exception:
                logger.exception("Artifact sweep failed")
            self._stop_event.wait(self.interval.total_seconds())
