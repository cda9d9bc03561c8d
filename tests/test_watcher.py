"""Tests for vaultlinker.watcher — _VaultEventHandler and watch()."""

from __future__ import annotations

import signal
from unittest.mock import MagicMock, patch

import pytest

from vaultlinker.config import Config
from vaultlinker.watcher import _VaultEventHandler, watch


@pytest.fixture
def watcher_config(tmp_path):
    vault = tmp_path / "vault"
    vault.mkdir()
    return Config(vault_path=vault, ignore_folders=["Templates"])


def _event(path, *, is_directory=False, event_type="modified", dest_path=""):
    event = MagicMock()
    event.is_directory = is_directory
    event.event_type = event_type
    event.src_path = str(path)
    event.dest_path = str(dest_path) if dest_path else ""
    return event


class TestVaultEventHandler:
    def test_directory_ignored(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        handler.on_any_event(_event(watcher_config.vault_path / "sub", is_directory=True))
        assert handler._timer is None

    def test_non_markdown_ignored(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        handler.on_any_event(_event(watcher_config.vault_path / "image.png"))
        assert handler._timer is None

    def test_report_folder_ignored(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        handler.on_any_event(_event(watcher_config.report_path))
        assert handler._timer is None

    def test_ignored_folder(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        handler.on_any_event(_event(watcher_config.vault_path / "Templates" / "t.md"))
        assert handler._timer is None

    def test_opened_event_ignored(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        handler.on_any_event(_event(watcher_config.vault_path / "n.md", event_type="opened"))
        assert handler._timer is None

    def test_note_change_schedules_run(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        with patch("vaultlinker.watcher.threading.Timer") as MockTimer:
            mock_timer = MagicMock()
            MockTimer.return_value = mock_timer
            handler.on_any_event(_event(watcher_config.vault_path / "n.md"))
            MockTimer.assert_called_once()
            mock_timer.start.assert_called_once()

    def test_move_into_vault_schedules_run(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        event = _event(
            watcher_config.vault_path / "n.tmp",
            event_type="moved",
            dest_path=watcher_config.vault_path / "n.md",
        )
        with patch("vaultlinker.watcher.threading.Timer") as MockTimer:
            handler.on_any_event(event)
            MockTimer.assert_called_once()

    def test_schedule_cancels_previous_timer(self, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        event = _event(watcher_config.vault_path / "n.md")
        with patch("vaultlinker.watcher.threading.Timer") as MockTimer:
            first_timer = MagicMock()
            second_timer = MagicMock()
            MockTimer.side_effect = [first_timer, second_timer]
            handler.on_any_event(event)
            handler.on_any_event(event)
            first_timer.cancel.assert_called_once()
            second_timer.start.assert_called_once()

    @patch("vaultlinker.watcher.run_back_populate")
    def test_do_run_calls_engine(self, mock_run, watcher_config):
        handler = _VaultEventHandler(watcher_config, dry_run=True)
        handler._do_run()
        mock_run.assert_called_once_with(watcher_config, dry_run=True)

    @patch("vaultlinker.watcher.run_back_populate", side_effect=Exception("boom"))
    def test_do_run_exception_logged(self, mock_run, watcher_config):
        handler = _VaultEventHandler(watcher_config)
        handler._do_run()


class TestWatch:
    @patch("vaultlinker.watcher.run_back_populate")
    def test_vault_not_exists(self, mock_run, tmp_path):
        cfg = Config(vault_path=tmp_path / "missing")
        with pytest.raises(SystemExit):
            watch(cfg)
        mock_run.assert_not_called()

    @patch("vaultlinker.watcher.time.sleep")
    @patch("vaultlinker.watcher.signal.signal")
    @patch("vaultlinker.watcher.Observer")
    @patch("vaultlinker.watcher.run_back_populate")
    def test_initial_run_and_recursive_schedule(self, mock_run, MockObserver, mock_signal, mock_sleep, watcher_config):
        mock_sleep.side_effect = SystemExit
        mock_obs = MagicMock()
        MockObserver.return_value = mock_obs
        with pytest.raises(SystemExit):
            watch(watcher_config)
        mock_run.assert_called_once_with(watcher_config, dry_run=False)
        assert mock_obs.schedule.call_args.kwargs["recursive"] is True
        mock_obs.start.assert_called_once()
        mock_obs.stop.assert_called_once()
        mock_obs.join.assert_called_once()

    @patch("vaultlinker.watcher.time.sleep")
    @patch("vaultlinker.watcher.signal.signal")
    @patch("vaultlinker.watcher.Observer")
    @patch("vaultlinker.watcher.run_back_populate")
    def test_signal_handlers_registered(self, mock_run, MockObserver, mock_signal, mock_sleep, watcher_config):
        mock_sleep.side_effect = SystemExit
        MockObserver.return_value = MagicMock()
        with pytest.raises(SystemExit):
            watch(watcher_config)
        sig_calls = [c[0][0] for c in mock_signal.call_args_list]
        assert signal.SIGINT in sig_calls
        assert signal.SIGTERM in sig_calls

    @patch("vaultlinker.watcher.time.sleep")
    @patch("vaultlinker.watcher.signal.signal")
    @patch("vaultlinker.watcher.Observer")
    @patch("vaultlinker.watcher.run_back_populate")
    def test_shutdown_handler_stops_loop(self, mock_run, MockObserver, mock_signal, mock_sleep, watcher_config):
        handlers = {}
        mock_signal.side_effect = lambda signum, handler: handlers.setdefault(signum, handler)
        mock_obs = MagicMock()
        MockObserver.return_value = mock_obs
        mock_sleep.side_effect = lambda _: handlers[signal.SIGTERM](signal.SIGTERM, None)

        watch(watcher_config, dry_run=True)

        mock_run.assert_called_once_with(watcher_config, dry_run=True)
        mock_obs.stop.assert_called_once()
