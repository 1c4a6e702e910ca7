"""
Shared test fixtures for whis-desktop.

These fixtures isolate tests from the desktop:
- file system (settings file, IPC socket)
- environment variables (API key, session type)
- audio device, OpenAI and clipboard (fake kit)
"""

import sys
from pathlib import Path

import pytest

# Add project root to the Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Fake kit for the recording controller
# =============================================================================


class FakeRecorder:
    """Stands in for AudioRecorder, records the calls it receives."""

    def __init__(self, result=None, start_error=None, stop_error=None):
        from audio.recording import AudioResult

        self.result = result or AudioResult(data=b"flac-bytes")
        self.start_error = start_error
        self.stop_error = stop_error
        self.started = False
        self.stopped = False

    def start_recording(self):
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    def stop_and_save(self):
        self.stopped = True
        if self.stop_error is not None:
            raise self.stop_error
        return self.result


class FakeTranscriber:
    def __init__(self, text="Hello world", error=None):
        self.text = text
        self.error = error
        self.calls = []
        self.chunk_calls = []

    def transcribe(self, api_key, data):
        self.calls.append((api_key, data))
        if self.error is not None:
            raise self.error
        return self.text

    async def transcribe_chunks(self, api_key, chunks):
        self.chunk_calls.append((api_key, chunks))
        if self.error is not None:
            raise self.error
        return self.text


class FakeClipboard:
    def __init__(self):
        self.copied = []

    def __call__(self, text):
        self.copied.append(text)


@pytest.fixture
def fake_kit():
    """Recorder factory, transcriber and clipboard fakes.

    Usage:
        kit = fake_kit
        controller = RecordingController(state, kit.recorder_factory, kit.transcriber, kit.clipboard)
    """

    class Kit:
        def __init__(self):
            self.recorders = []
            self.recorder_kwargs = {}
            self.transcriber = FakeTranscriber()
            self.clipboard = FakeClipboard()

        def recorder_factory(self):
            recorder = FakeRecorder(**self.recorder_kwargs)
            self.recorders.append(recorder)
            return recorder

    return Kit()


# =============================================================================
# Environment & isolation fixtures
# =============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Removes session and credential variables, and stops .env loading."""
    for key in (
        "OPENAI_API_KEY",
        "WHIS_DEBUG",
        "XDG_SESSION_TYPE",
        "WAYLAND_DISPLAY",
        "XDG_CURRENT_DESKTOP",
        "DESKTOP_SESSION",
    ):
        monkeypatch.delenv(key, raising=False)

    import whis_desktop

    monkeypatch.setattr(whis_desktop, "load_environment", lambda: None)
    monkeypatch.setattr(whis_desktop, "setup_logging", lambda debug=False: None)


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    """Points the settings file at a temporary directory."""
    import utils.settings

    path = tmp_path / "whis" / "settings.json"
    monkeypatch.setattr(utils.settings, "SETTINGS_FILE", path)
    return path


@pytest.fixture
def runtime_dir(tmp_path, monkeypatch):
    """Isolated XDG_RUNTIME_DIR so tests never touch a running instance."""
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def state():
    from utils.settings import Settings
    from utils.state import AppState

    return AppState(Settings(shortcut="Ctrl+Shift+R", openai_api_key="sk-test"))
