"""
Keyboard input: raw key codes -> navigation intents on the state store.

The input thread blocks waiting for the next key (select() on stdin, no
spinning) and applies at most one narrow mutator call per key:

  up / k      -> move_selection(-1)
  down / j    -> move_selection(+1)
  enter       -> toggle the detail view
  escape      -> close the detail view and clear the selection
  q           -> set the global shutdown event

curses is not thread-safe, so the reader only touches the screen while
holding the same lock the render loop draws under, and never while blocked.
"""

import curses
import enum
import logging
import select
import sys
import threading
from typing import Callable, Dict, Iterable, List, Optional

from .state import StateManager

logger = logging.getLogger(__name__)


class KeyIntent(enum.Enum):
    UP = "up"
    DOWN = "down"
    TOGGLE_DETAIL = "enter"
    BACK = "back"
    QUIT = "quit"


# Named keys accepted in the keybindings config
NAMED_KEYS: Dict[str, List[int]] = {
    "up": [curses.KEY_UP],
    "down": [curses.KEY_DOWN],
    "enter": [curses.KEY_ENTER, 10, 13],
    "escape": [27],
    "space": [ord(' ')],
    "tab": [9],
}


def key_codes(binding: str) -> List[int]:
    """Translate one keybinding string ("q", "up", "enter") into curses key codes."""
    binding = binding.strip()
    if not binding:
        return []
    named = NAMED_KEYS.get(binding.lower())
    if named is not None:
        return list(named)
    if len(binding) == 1:
        codes = [ord(binding)]
        if binding.isalpha():
            codes.append(ord(binding.swapcase()))
        return codes
    logger.warning(f"Unknown key binding: {binding!r}")
    return []


class KeyMap:
    def __init__(self, quit: str = "q", up: str = "up", down: str = "down",
                 enter: str = "enter", back: str = "escape"):
        self._codes: Dict[int, KeyIntent] = {}
        # vi aliases first so explicit bindings win on conflict
        self._bind("k", KeyIntent.UP)
        self._bind("j", KeyIntent.DOWN)
        self._bind(up, KeyIntent.UP)
        self._bind(down, KeyIntent.DOWN)
        self._bind(enter, KeyIntent.TOGGLE_DETAIL)
        self._bind(back, KeyIntent.BACK)
        self._bind(quit, KeyIntent.QUIT)

    @classmethod
    def from_config(cls, keybindings) -> "KeyMap":
        return cls(quit=keybindings.quit, up=keybindings.up, down=keybindings.down,
                   enter=keybindings.enter, back=keybindings.back)

    def _bind(self, binding: str, intent: KeyIntent) -> None:
        for code in key_codes(binding):
            self._codes[code] = intent

    def resolve(self, code: int) -> Optional[KeyIntent]:
        return self._codes.get(code)


class CursesKeyReader:
    """Blocking key source for the input thread."""

    def __init__(self, stdscr, screen_lock: threading.Lock, stream=None):
        self.stdscr = stdscr
        self.screen_lock = screen_lock
        self.stream = stream if stream is not None else sys.stdin

    def __call__(self, timeout: float) -> List[int]:
        ready, _, _ = select.select([self.stream], [], [], timeout)
        if not ready:
            return []
        keys = []
        with self.screen_lock:
            self.stdscr.nodelay(True)
            while True:
                key = self.stdscr.getch()
                if key == curses.ERR:
                    break
                keys.append(key)
        return keys


class InputHandler(threading.Thread):
    """
    Input thread. read_keys(timeout) must block for at most `timeout` seconds
    and return the key codes that arrived (possibly none); the timeout only
    bounds how long a shutdown triggered elsewhere goes unnoticed.
    """

    def __init__(self, state_manager: StateManager, shutdown: threading.Event,
                 read_keys: Callable[[float], Iterable[int]], keymap: Optional[KeyMap] = None,
                 tick: float = 0.1):
        super().__init__(name="input", daemon=True)
        self.state_manager = state_manager
        self.shutdown = shutdown
        self.read_keys = read_keys
        self.keymap = keymap or KeyMap()
        self.tick = tick

    def run(self) -> None:
        logger.info("Input handler started")
        while not self.shutdown.is_set():
            try:
                for key in self.read_keys(self.tick):
                    self.handle_key(key)
                    if self.shutdown.is_set():
                        break
            except Exception as e:
                logger.error(f"Error reading input: {e}", exc_info=True)
                self.shutdown.wait(self.tick)
        logger.info("Input handler stopped")

    def handle_key(self, key: int) -> Optional[KeyIntent]:
        intent = self.keymap.resolve(key)
        if intent is None:
            return None

        if intent is KeyIntent.UP:
            self.state_manager.move_selection(-1)
        elif intent is KeyIntent.DOWN:
            self.state_manager.move_selection(1)
        elif intent is KeyIntent.TOGGLE_DETAIL:
            self.state_manager.toggle_detail_view()
        elif intent is KeyIntent.BACK:
            self.state_manager.close_detail_view()
            self.state_manager.select_none()
        elif intent is KeyIntent.QUIT:
            logger.info("Quit requested")
            self.shutdown.set()
        return intent
