from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pos_app.services.pos.errors import (
    CameraBusy,
    CameraError,
    CameraNotFound,
    CameraPermissionDenied,
    CameraUnsupported,
    POSError,
)


logger = logging.getLogger(__name__)


# -------------------------------------------------
# Scan events & duplicate suppression
# -------------------------------------------------
@dataclass(frozen=True)
class ScanEvent:
    code: str
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ScanGuard:
    """
    Drops decoder callbacks that would double-add one physical code.

    A code is rejected while another scan is being processed, or when it
    equals the previous accepted code of the same scan session. Scans that
    end with `finish(accepted=False)` are forgotten.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._processing = False
        self._last: Optional[ScanEvent] = None
        self._previous: Optional[ScanEvent] = None

    @property
    def last_event(self) -> Optional[ScanEvent]:
        return self._last

    @property
    def processing(self) -> bool:
        return self._processing

    def begin(self, code: str) -> Optional[ScanEvent]:
        with self._lock:
            if self._processing:
                return None
            if self._last is not None and self._last.code == code:
                return None
            self._processing = True
            self._previous = self._last
            self._last = ScanEvent(code)
            return self._last

    def finish(self, accepted: bool = True) -> None:
        with self._lock:
            self._processing = False
            if not accepted:
                # A failed scan may be retried with the same code
                self._last = self._previous

    def reset(self) -> None:
        with self._lock:
            self._processing = False
            self._last = None
            self._previous = None


# -------------------------------------------------
# Camera failures
# -------------------------------------------------
_CAMERA_ERRORS = {
    "NotAllowedError": CameraPermissionDenied,
    "PermissionDeniedError": CameraPermissionDenied,
    "NotFoundError": CameraNotFound,
    "DevicesNotFoundError": CameraNotFound,
    "NotReadableError": CameraBusy,
    "TrackStartError": CameraBusy,
    "NotSupportedError": CameraUnsupported,
    "UnsupportedError": CameraUnsupported,
}


def classify_camera_error(name: Optional[str], message: Optional[str] = None) -> CameraError:
    """
    Map a camera/media error name (as browsers report them) to the
    user-facing category.
    """
    error_cls = _CAMERA_ERRORS.get((name or "").strip())
    if error_cls is not None:
        return error_cls()
    return CameraError(message or None)


# -------------------------------------------------
# Decoder adapter
# -------------------------------------------------
@dataclass
class ScanConfig:
    fps: int = 10
    qrbox_width: int = 250
    qrbox_height: int = 150
    aspect_ratio: float = 1.0
    disable_flip: bool = False

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["qrbox"] = {
            "width": data.pop("qrbox_width"),
            "height": data.pop("qrbox_height"),
        }
        return data


class BarcodeDecoder(ABC):
    """
    Continuous camera decoder. `start` must return once the stream runs and
    deliver every decoded frame through `on_decode`.
    """

    @abstractmethod
    def start(
        self,
        camera_facing: str,
        config: Dict[str, Any],
        on_decode: Callable[[str], None],
        on_decode_error: Callable[[Any], None],
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        raise NotImplementedError


class ScannerSession:
    """
    Scoped camera acquisition feeding a cart controller.

        with ScannerSession(decoder, controller):
            ...  # decodes go to controller.scan_and_add_by_barcode

    The camera is released on every exit path. With `stop_on_scan` the
    stream also stops right after the first accepted code.
    """

    def __init__(
        self,
        decoder: Optional[BarcodeDecoder],
        controller: Any,
        probe: Optional[Callable[[], None]] = None,
        config: Optional[ScanConfig] = None,
        camera_facing: str = "environment",
        stop_on_scan: bool = True,
    ) -> None:
        self.decoder = decoder
        self.controller = controller
        self.probe = probe
        self.config = config or ScanConfig()
        self.camera_facing = camera_facing
        self.stop_on_scan = stop_on_scan
        self._lock = threading.Lock()
        self._started = False
        self._streaming = False

    @property
    def streaming(self) -> bool:
        return self._streaming

    def __enter__(self) -> "ScannerSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def open(self) -> None:
        if self.decoder is None:
            raise CameraUnsupported()

        self.controller.begin_scan_session()

        try:
            if self.probe is not None:
                self.probe()

            with self._lock:
                self._started = True
                self._streaming = True

            self.decoder.start(
                self.camera_facing,
                self.config.as_dict(),
                self._on_decode,
                self._on_decode_error,
            )
        except CameraError:
            self.close()
            raise
        except Exception as e:
            self.close()
            raise classify_camera_error(getattr(e, "name", type(e).__name__), str(e)) from e

    def close(self) -> None:
        self._release()
        self.controller.end_scan_session()

    def _release(self) -> None:
        with self._lock:
            started = self._started
            self._started = False
            self._streaming = False

        if not started:
            return

        try:
            self.decoder.stop()
        except Exception:
            logger.exception("Camera stop failed")

    def _on_decode(self, decoded_text: str) -> None:
        if not self._streaming:
            return

        code = (decoded_text or "").strip()
        if not code:
            return

        if self.stop_on_scan:
            self._release()

        try:
            self.controller.scan_and_add_by_barcode(code)
        except POSError as e:
            self.controller.notify_error(e)

    def _on_decode_error(self, error: Any) -> None:
        # Frames without a readable code
        return None
