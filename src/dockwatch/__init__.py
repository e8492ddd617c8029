"""
dockwatch - a live terminal dashboard for local Docker containers.

Samples CPU and memory usage plus the lifecycle state of every container on
the local engine and shows them as an auto-refreshing, keyboard-navigable
list with a detail panel.

Main Components:
  - backend.py: Docker engine adapter (list containers, one-shot stats)
  - sampler.py: Periodic poll worker with bounded stats fan-out
  - state.py: Thread-safe state store (merge / snapshot / selection)
  - input_handler.py: Key events -> navigation intents
  - ui.py: Curses rendering of model snapshots
  - main.py: Bootstrap, orchestration and shutdown

Usage:
  python -m dockwatch

Dependencies:
  - docker>=7.0.0
  - PyYAML
  - Python 3.10+
  - curses (built-in, not available on Windows natively)
"""

import os
from pathlib import Path

__version__ = "0.1.0"


def get_log_path() -> str:
    """
    Get the log file path following XDG Base Directory spec.

    Returns XDG_DATA_HOME/dockwatch/logs/dockwatch.log with fallback to /tmp.
    Creates directory if it doesn't exist.
    """
    xdg_data_home = os.environ.get('XDG_DATA_HOME')
    if not xdg_data_home:
        xdg_data_home = Path.home() / '.local' / 'share'
    else:
        xdg_data_home = Path(xdg_data_home)

    log_dir = xdg_data_home / 'dockwatch' / 'logs'

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return str(log_dir / 'dockwatch.log')
    except (PermissionError, OSError):
        return '/tmp/dockwatch.log'
