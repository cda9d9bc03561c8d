"""Watchdog-based daemon that re-runs back-populate when notes change."""

from __future__ import annotations

import logging
import signal
import threading
import time
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import Config
from .engine import run_back_populate

log = logging.getLogger(__name__)

_DEBOUNCE_SECONDS = 2.0


class _VaultEventHandler(FileSystemEventHandler):
    """Watches the vault for changes to markdown notes."""

    def __init__(self, config: Config, *, dry_run: bool = False):
        super().__init__()
        self._config = config
        self._dry_run = dry_run
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def is_relevant(self, path: str) -> bool:
        p = Path(path)
        if p.suffix != ".md":
            return False
        # Our own report and notes in ignored folders must not retrigger a run.
        return not any(p.is_relative_to(folder) for folder in self._config.ignored_dirs)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("created", "modified", "moved", "deleted"):
            return
        paths = [str(event.src_path), str(getattr(event, "dest_path", "") or "")]
        if not any(p and self.is_relevant(p) for p in paths):
            return

        log.debug("Note changed (%s), scheduling run in %.1fs", event.src_path, _DEBOUNCE_SECONDS)
        self._schedule_run()

    def _schedule_run(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(_DEBOUNCE_SECONDS, self._do_run)
            self._timer.daemon = True
            self._timer.start()

    def _do_run(self) -> None:
        try:
            run_back_populate(self._config, dry_run=self._dry_run)
        except Exception:
            log.error("Back-populate failed", exc_info=True)


def watch(config: Config, *, dry_run: bool = False) -> None:
    """Watch the vault and back-populate on change. Blocks until interrupted."""
    vault_path = config.vault_path

    if not vault_path.is_dir():
        log.error("Vault directory does not exist: %s", vault_path)
        raise SystemExit(1)

    log.info("Running initial back-populate...")
    run_back_populate(config, dry_run=dry_run)

    handler = _VaultEventHandler(config, dry_run=dry_run)
    observer = Observer()
    observer.schedule(handler, str(vault_path), recursive=True)

    stop_event = threading.Event()

    def _shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        log.info("Received %s, shutting down...", sig_name)
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    observer.start()
    log.info("Watching %s for changes (Ctrl+C to stop)", vault_path)

    try:
        while not stop_event.is_set():
            time.sleep(1)
    finally:
        observer.stop()
        observer.join()
        log.info("Watcher stopped")
