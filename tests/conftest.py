import io
import logging
import pytest
import yaml
from pathlib import Path
from PIL import Image
from webpbatch.config.models import ConversionConfig
from webpbatch.domain.errors import EncodeStatus
from webpbatch.infrastructure.event_bus import EventBus

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config():
    """Returns a small ConversionConfig suitable for fast tests."""
    return ConversionConfig(
        quality=80,
        lossless=False,
        method=0,
        max_depth=8,
        use_initial_if_smaller=False,
        threads=2,
        debug=False,
    )

@pytest.fixture
def config_yaml_path(tmp_path):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "webpbatch.yaml"

    content = {
        'conversion': {
            'quality': 75,
            'lossless': 0,
            'method': 4,
            'max_depth': 3,
            'use_initial_if_smaller': 1,
            'threads': 2,
            'debug': False,
        },
        'log_path': None,
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

@pytest.fixture
def recorded_events(event_bus):
    """Subscribes to every event and returns the list they are appended to."""
    from webpbatch.domain.events import Event

    events = []
    event_bus.subscribe(Event, events.append)
    return events

# ============================================================================
# Image Fixtures
# ============================================================================

def write_png(path: Path, size=(16, 16), color=(200, 30, 30), mode="RGB") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path, format="PNG")
    return path

def png_bytes(size=(8, 8), color=(10, 20, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()

@pytest.fixture
def make_png():
    """Factory writing a solid-color PNG to the given path."""
    return write_png

# ============================================================================
# Fake native encoder
# ============================================================================

class FakeBackend:
    """Native encoder stand-in that returns a fixed payload and records frees."""

    def __init__(self, payload: bytes = b"RIFF-fake-webp", status: EncodeStatus = EncodeStatus.OK, valid: bool = True):
        self.payload = payload
        self.status = status
        self.valid = valid
        self.validated = []
        self.encoded = 0
        self.freed = []

    def validate(self, settings):
        self.validated.append(settings)
        return self.valid

    def encode(self, pixels, settings):
        self.encoded += 1
        return self.status, bytearray(self.payload)

    def buffer(self, handle):
        return memoryview(handle)

    def free(self, handle):
        self.freed.append(handle)

@pytest.fixture
def fake_backend():
    return FakeBackend()

@pytest.fixture(autouse=True)
def reset_logging():
    """setup_logging() reconfigures the root logger; undo it after each test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)

@pytest.fixture
def backend_factory():
    """Returns the FakeBackend class for tests that need custom payloads or statuses."""
    return FakeBackend

@pytest.fixture
def make_png_bytes():
    """Factory returning encoded PNG bytes."""
    return png_bytes
