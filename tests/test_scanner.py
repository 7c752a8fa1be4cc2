import pytest

from conftest import api_error, make_product
from pos_app.services.pos.errors import (
    CameraBusy,
    CameraError,
    CameraNotFound,
    CameraPermissionDenied,
    CameraUnsupported,
    ProductInactive,
    ProductLookupFailed,
    ProductNotFound,
)
from pos_app.services.pos.scanner import (
    BarcodeDecoder,
    ScanConfig,
    ScanGuard,
    ScannerSession,
    classify_camera_error,
)


class _MediaError(Exception):
    def __init__(self, name):
        super().__init__(name)
        self.name = name


class _FakeDecoder(BarcodeDecoder):
    def __init__(self, start_error=None):
        self.start_error = start_error
        self.started = []
        self.stops = 0
        self.on_decode = None

    def start(self, camera_facing, config, on_decode, on_decode_error):
        self.started.append((camera_facing, config))
        if self.start_error is not None:
            raise self.start_error
        self.on_decode = on_decode

    def stop(self):
        self.stops += 1

    def fire(self, text):
        self.on_decode(text)


# -------------------------------------------------
# controller scan path
# -------------------------------------------------
def test_duplicate_decode_during_processing_is_suppressed(controller, catalog, p1):
    inner_results = []
    lookup = catalog.find_by_barcode

    def slow_lookup(code):
        # Decoder fires again before the first add completes
        inner_results.append(controller.scan_and_add_by_barcode(code))
        return lookup(code)

    controller._find_by_barcode = slow_lookup

    line = controller.scan_and_add_by_barcode(p1.barcode)

    assert inner_results == [None]
    assert line.quantity == 1
    assert len(controller.lines) == 1


def test_same_code_suppressed_until_new_scan_session(controller, p1):
    controller.begin_scan_session()
    assert controller.scan_and_add_by_barcode(p1.barcode).quantity == 1
    assert controller.scan_and_add_by_barcode(p1.barcode) is None

    controller.end_scan_session()
    controller.begin_scan_session()
    assert controller.scan_and_add_by_barcode(p1.barcode).quantity == 2


def test_scan_unknown_code(controller, catalog):
    with pytest.raises(ProductNotFound) as ex:
        controller.scan_and_add_by_barcode("000")

    assert ex.value.message == "Producto con código 000 no encontrado"
    assert controller.lines == []
    assert not controller.scan_guard.processing


def test_scan_inactive_product(controller, catalog):
    product = make_product(id=3, name="Vodka", barcode="333", active=False)
    catalog.by_barcode[product.barcode] = product

    with pytest.raises(ProductInactive) as ex:
        controller.scan_and_add_by_barcode("333")

    assert ex.value.message == 'El producto "Vodka" no está activo'
    assert controller.lines == []


def test_scan_lookup_failure(controller, catalog):
    catalog.error = api_error("timeout", 504)

    with pytest.raises(ProductLookupFailed):
        controller.scan_and_add_by_barcode("7501001")

    assert not controller.scan_guard.processing


def test_failed_scan_can_be_retried_with_same_code(controller, catalog, p1):
    catalog.error = api_error("timeout", 504)

    with pytest.raises(ProductLookupFailed):
        controller.scan_and_add_by_barcode(p1.barcode)

    catalog.error = None
    line = controller.scan_and_add_by_barcode(p1.barcode)

    assert line.quantity == 1
    assert catalog.lookups == [p1.barcode, p1.barcode]


def test_failed_scan_keeps_previous_code_suppressed(controller, p1):
    controller.scan_and_add_by_barcode(p1.barcode)

    with pytest.raises(ProductNotFound):
        controller.scan_and_add_by_barcode("000")
    with pytest.raises(ProductNotFound):
        controller.scan_and_add_by_barcode("000")

    assert controller.scan_and_add_by_barcode(p1.barcode) is None
    assert controller.lines[0].quantity == 1


def test_scan_guard_rules():
    guard = ScanGuard()

    event = guard.begin("A")
    assert event.code == "A"
    assert guard.begin("B") is None

    guard.finish()
    assert guard.begin("A") is None
    assert guard.begin("B").code == "B"

    guard.finish()
    assert guard.begin("C").code == "C"
    guard.finish(accepted=False)
    assert guard.last_event.code == "B"
    assert guard.begin("C").code == "C"

    guard.finish()
    guard.reset()
    assert guard.begin("B") is not None


# -------------------------------------------------
# scanner session
# -------------------------------------------------
def test_session_adds_scanned_product_and_releases_camera(controller, p1):
    decoder = _FakeDecoder()

    with ScannerSession(decoder, controller) as session:
        assert session.streaming
        decoder.fire(p1.barcode)
        decoder.fire(p1.barcode)
        assert not session.streaming

    assert decoder.started[0][0] == "environment"
    assert decoder.started[0][1]["fps"] == 10
    assert decoder.stops == 1
    assert len(controller.lines) == 1
    assert controller.lines[0].quantity == 1


def test_continuous_session_suppresses_repeated_frames(controller, p1):
    decoder = _FakeDecoder()

    with ScannerSession(decoder, controller, stop_on_scan=False):
        for _ in range(10):
            decoder.fire(p1.barcode)

    assert controller.lines[0].quantity == 1
    assert decoder.stops == 1


def test_session_releases_camera_when_body_raises(controller):
    decoder = _FakeDecoder()

    with pytest.raises(RuntimeError):
        with ScannerSession(decoder, controller):
            raise RuntimeError("view closed")

    assert decoder.stops == 1


def test_session_turns_scan_errors_into_notifications(controller):
    decoder = _FakeDecoder()
    controller.drain_notifications()

    with ScannerSession(decoder, controller):
        decoder.fire("404")

    notes = controller.drain_notifications()
    assert [(n.variant, n.message) for n in notes] == [
        ("warning", "Producto con código 404 no encontrado"),
    ]


def test_permission_probe_failure_never_starts_camera(controller):
    decoder = _FakeDecoder()

    def probe():
        raise _MediaError("NotAllowedError")

    with pytest.raises(CameraPermissionDenied):
        ScannerSession(decoder, controller, probe=probe).open()

    assert decoder.started == []
    assert decoder.stops == 0


def test_start_failure_still_releases_camera(controller):
    decoder = _FakeDecoder(start_error=_MediaError("NotReadableError"))

    with pytest.raises(CameraBusy):
        with ScannerSession(decoder, controller):
            pass

    assert decoder.stops == 1


def test_decoder_port_requires_start_and_stop():
    class _StartOnly(BarcodeDecoder):
        def start(self, camera_facing, config, on_decode, on_decode_error):
            pass

    with pytest.raises(TypeError):
        _StartOnly()


def test_missing_decoder_is_unsupported(controller):
    with pytest.raises(CameraUnsupported):
        ScannerSession(None, controller).open()


@pytest.mark.parametrize(
    "name, expected",
    [
        ("NotAllowedError", CameraPermissionDenied),
        ("PermissionDeniedError", CameraPermissionDenied),
        ("NotFoundError", CameraNotFound),
        ("DevicesNotFoundError", CameraNotFound),
        ("NotReadableError", CameraBusy),
        ("TrackStartError", CameraBusy),
        ("NotSupportedError", CameraUnsupported),
    ],
)
def test_classify_camera_error(name, expected):
    assert type(classify_camera_error(name)) is expected


def test_classify_unknown_camera_error_keeps_message():
    error = classify_camera_error("OverconstrainedError", "facingMode no disponible")

    assert type(error) is CameraError
    assert error.message == "facingMode no disponible"
    assert classify_camera_error(None).message == "No se pudo acceder a la cámara."


def test_scan_config_shape():
    assert ScanConfig().as_dict() == {
        "fps": 10,
        "qrbox": {"width": 250, "height": 150},
        "aspect_ratio": 1.0,
        "disable_flip": False,
    }
