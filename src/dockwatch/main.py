"""
Bootstrap and orchestration for dockwatch.

Three activities run in parallel and share nothing but the StateManager:
  - Sampler thread: polls the engine every `sampler.interval` seconds
  - InputHandler thread: blocks on the terminal for key events
  - Render loop (main thread): redraws from a Model snapshot on every
    display tick when the state version changed

Shutdown:
  One threading.Event. The quit key, SIGTERM and Ctrl-C set it; the render
  loop notices within one display tick, then the worker threads are stopped
  and joined. curses.wrapper restores the terminal on every exit path,
  including crashes.
"""

import curses
import logging
import logging.handlers
import os
import signal
import sys
import threading
from typing import Optional

from . import get_log_path
from .backend import DockerBackend
from .config import config_manager
from .input_handler import CursesKeyReader, InputHandler, KeyMap
from .sampler import Sampler
from .state import StateManager
from .ui import Screen, init_colors

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Log to a rotating file; the terminal belongs to curses."""
    cfg = config_manager.get_config().logging
    max_bytes = int(cfg.max_size_mb) * 1024 * 1024
    custom_path = config_manager.get_custom_log_path()
    handler = None
    fallback_reason = None
    if custom_path:
        path = os.path.expanduser(str(custom_path))
        try:
            os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
            handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=int(cfg.backup_count))
        except OSError as e:
            fallback_reason = f"Cannot log to {path}: {e}"
    if handler is None:
        handler = logging.handlers.RotatingFileHandler(
            get_log_path(), maxBytes=max_bytes, backupCount=int(cfg.backup_count)
        )
    handler.setFormatter(logging.Formatter('%(asctime)s - %(threadName)s - %(levelname)s - %(name)s - %(message)s'))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    level = getattr(logging, config_manager.get_log_level(), None)
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)
    if fallback_reason:
        logger.warning(f"{fallback_reason}, using {handler.baseFilename}")


def stop_workers(shutdown: threading.Event, *workers: threading.Thread, timeout: float = 2.0) -> bool:
    """Signal shutdown and wait for every worker to acknowledge. Returns True if all did."""
    shutdown.set()
    clean = True
    for worker in workers:
        if not worker.is_alive():
            continue
        worker.join(timeout)
        if worker.is_alive():
            logger.warning(f"Worker {worker.name} did not stop within {timeout}s")
            clean = False
    return clean


def main(stdscr, shutdown: Optional[threading.Event] = None) -> None:
    logger.info("Main started")
    if shutdown is None:
        shutdown = threading.Event()
    config = config_manager.get_config()
    screen_lock = threading.Lock()

    try:
        curses.curs_set(0)
    except curses.error:
        pass
    init_colors()

    backend = DockerBackend(base_url=config.engine.base_url, timeout=config.sampler.stats_timeout)
    state_mgr = StateManager()
    sampler = Sampler(
        state_mgr,
        backend,
        interval=config.sampler.interval,
        max_in_flight=config.sampler.max_in_flight,
        shutdown=shutdown,
    )
    tick = config_manager.get_refresh_interval() / 1000.0
    input_handler = InputHandler(
        state_mgr,
        shutdown,
        CursesKeyReader(stdscr, screen_lock),
        keymap=KeyMap.from_config(config.keybindings),
        tick=tick,
    )
    screen = Screen(stdscr)

    sampler.start()
    input_handler.start()
    logger.info("Sampler and input handler started")

    last_version = -1
    last_size = None
    try:
        while not shutdown.is_set():
            with screen_lock:
                size = stdscr.getmaxyx()
            version = state_mgr.get_version()
            if version != last_version or size != last_size:
                model = state_mgr.snapshot()
                with screen_lock:
                    screen.render(model)
                last_version = model.version
                last_size = size
            shutdown.wait(tick)
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt caught, exiting...")
    finally:
        join_timeout = config.sampler.interval + config.sampler.stats_timeout + 1.0
        stop_workers(shutdown, sampler, input_handler, timeout=join_timeout)
        backend.close()
        logger.info("Main stopped")


def run() -> int:
    setup_logging()
    # Esc closes the detail view; curses waits a full second for escape sequences by default
    os.environ.setdefault('ESCDELAY', '25')
    shutdown = threading.Event()

    def _on_sigterm(signum, frame):
        logger.info("SIGTERM received")
        shutdown.set()

    signal.signal(signal.SIGTERM, _on_sigterm)
    try:
        curses.wrapper(main, shutdown)
    except KeyboardInterrupt:
        pass
    except curses.error as e:
        logger.critical(f"Terminal setup failed: {e}", exc_info=True)
        print(f"dockwatch: terminal error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.critical(f"Critical error: {e}", exc_info=True)
        print(f"dockwatch: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
