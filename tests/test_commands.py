"""Tests for commands.py – caller-facing operations."""

from concurrent.futures import Future
from unittest.mock import MagicMock, Mock, patch

import pytest

import commands
from commands import DesktopCommands, validate_api_key
from utils.errors import InvalidShortcut, MissingCredential, UnsupportedProtocolVersion
from utils.settings import Settings
from utils.state import AppState


def _done(value=None, error=None):
    future = Future()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)
    return future


@pytest.fixture
def app_state():
    return AppState(Settings(shortcut="Ctrl+Shift+R", openai_api_key="sk-old"))


@pytest.fixture
def shortcuts():
    manager = MagicMock()
    manager.update.return_value = False
    return manager


@pytest.fixture
def dispatcher():
    d = Mock()
    d.submit.side_effect = lambda coro: (coro.close(), _done("Super+K"))[1]
    return d


@pytest.fixture
def desktop(app_state, dispatcher, shortcuts):
    return DesktopCommands(app_state, dispatcher, shortcuts)


class TestValidateApiKey:
    def test_empty_is_valid(self):
        assert validate_api_key("") is True

    def test_openai_format(self):
        assert validate_api_key("sk-abc123") is True

    def test_wrong_format(self):
        with pytest.raises(MissingCredential) as exc_info:
            validate_api_key("abc123")
        assert "sk-" in str(exc_info.value)


class TestShortcutOperations:
    def test_backend_info_delegates(self, desktop, shortcuts):
        assert desktop.get_backend_info() is shortcuts.backend_info.return_value

    def test_update_shortcut_canonicalizes(self, desktop, shortcuts, app_state):
        assert desktop.update_shortcut("alt+f5") is False
        shortcuts.update.assert_called_once_with("Alt+F5")
        assert app_state.settings.shortcut == "Alt+F5"

    def test_update_shortcut_reports_restart(self, desktop, shortcuts):
        shortcuts.update.return_value = True
        assert desktop.update_shortcut("Ctrl+Alt+M") is True

    def test_invalid_shortcut_changes_nothing(self, desktop, shortcuts, app_state):
        with pytest.raises(InvalidShortcut):
            desktop.update_shortcut("Ctrl+")
        shortcuts.update.assert_not_called()
        assert app_state.settings.shortcut == "Ctrl+Shift+R"

    def test_configure_shortcut_returns_binding(self, desktop):
        assert desktop.configure_shortcut() == "Super+K"

    def test_configure_shortcut_surfaces_version_error(self, desktop, dispatcher):
        dispatcher.submit.side_effect = lambda coro: (
            coro.close(),
            _done(error=UnsupportedProtocolVersion(1, 2)),
        )[1]
        with pytest.raises(UnsupportedProtocolVersion):
            desktop.configure_shortcut()

    def test_configure_with_trigger(self, desktop, shortcuts):
        assert desktop.configure_shortcut_with_trigger("Super+K") == "Super+K"
        shortcuts.configure_with_trigger.assert_called_once_with("Super+K")


class TestPortalCache:
    def test_cached_value(self, desktop, app_state):
        app_state.portal_shortcut = "Ctrl+Alt+M"
        with patch("commands.portal.read_portal_shortcut_from_dconf") as mock_dconf:
            assert desktop.read_cached_portal_shortcut() == "Ctrl+Alt+M"
        mock_dconf.assert_not_called()

    def test_falls_back_to_dconf(self, desktop):
        with patch(
            "commands.portal.read_portal_shortcut_from_dconf", return_value="Super+W"
        ):
            assert desktop.read_cached_portal_shortcut() == "Super+W"

    def test_nothing_known(self, desktop):
        with patch("commands.portal.read_portal_shortcut_from_dconf", return_value=None):
            assert desktop.read_cached_portal_shortcut() is None

    def test_bind_error(self, desktop, app_state):
        assert desktop.portal_bind_error() is None
        app_state.portal_bind_error = "already bound"
        assert desktop.portal_bind_error() == "already bound"


class TestSaveSettings:
    def test_unchanged_shortcut_needs_no_restart(self, desktop, shortcuts, settings_file):
        needs_restart = desktop.save_settings(
            Settings(shortcut="Ctrl+Shift+R", openai_api_key="sk-old")
        )
        assert needs_restart is False
        shortcuts.update.assert_not_called()
        assert settings_file.exists()

    def test_changed_shortcut_is_applied(self, desktop, shortcuts, settings_file):
        shortcuts.update.return_value = True
        needs_restart = desktop.save_settings(
            Settings(shortcut="Alt+F5", openai_api_key="sk-old")
        )
        assert needs_restart is True
        shortcuts.update.assert_called_once_with("Alt+F5")
        assert Settings.load().shortcut == "Alt+F5"

    def test_shortcut_stored_in_canonical_form(
        self, desktop, shortcuts, app_state, settings_file
    ):
        desktop.save_settings(Settings(shortcut="alt+shift+f5", openai_api_key="sk-old"))
        assert Settings.load().shortcut == "Alt+Shift+F5"
        assert app_state.settings.shortcut == "Alt+Shift+F5"
        shortcuts.update.assert_called_once_with("Alt+Shift+F5")

    def test_case_only_difference_is_no_change(self, desktop, shortcuts, settings_file):
        assert desktop.save_settings(Settings(shortcut="ctrl+shift+r")) is False
        shortcuts.update.assert_not_called()
        assert Settings.load().shortcut == "Ctrl+Shift+R"

    def test_changed_key_clears_cache(self, desktop, app_state, settings_file):
        app_state.api_key = "sk-old"
        desktop.save_settings(Settings(shortcut="Ctrl+Shift+R", openai_api_key="sk-new"))
        assert app_state.api_key is None
        assert app_state.settings.openai_api_key == "sk-new"

    def test_unchanged_key_keeps_cache(self, desktop, app_state, settings_file):
        app_state.api_key = "sk-old"
        desktop.save_settings(Settings(shortcut="Ctrl+Shift+R", openai_api_key="sk-old"))
        assert app_state.api_key == "sk-old"

    def test_invalid_key_not_saved(self, desktop, settings_file):
        with pytest.raises(MissingCredential):
            desktop.save_settings(Settings(openai_api_key="nope"))
        assert not settings_file.exists()

    def test_invalid_shortcut_not_saved(self, desktop, settings_file):
        with pytest.raises(InvalidShortcut):
            desktop.save_settings(Settings(shortcut="Ctrl+"))
        assert not settings_file.exists()


class TestStatus:
    def test_status_delegates_to_controller(self, desktop, dispatcher):
        dispatcher.controller.status.return_value = {"state": "idle", "config_valid": True}
        assert desktop.get_status() == {"state": "idle", "config_valid": True}


class TestModuleCommands:
    def test_send_toggle(self):
        with patch("commands.ipc.send_toggle") as mock_send:
            commands.send_toggle()
        mock_send.assert_called_once_with()

    def test_reset_shortcut(self):
        with patch("commands.portal.reset_portal_shortcuts") as mock_reset:
            commands.reset_shortcut()
        mock_reset.assert_called_once_with()

    def test_toggle_command(self, monkeypatch, tmp_path):
        from whis_platform import environment

        monkeypatch.setattr(environment, "FLATPAK_INFO_FILE", tmp_path / "none")
        assert commands.get_toggle_command() == "whis-desktop --toggle"
