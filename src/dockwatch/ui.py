"""
Curses rendering of Model snapshots.

The renderer never talks to the state store or the engine: it receives a
frozen Model per frame and draws it. Layout:

  row 0      title bar
  row 1      fleet summary + connection badge
  middle     container list (left / full width) and detail panel (right,
             only when the detail view is open)
  last row   key help, or the last engine error

Color Pairs (initialized in init_colors):
  1: White (default text)
  2: Green (running / ok)
  3: Red (exited, dead / unreachable)
  4: Cyan (headers/borders)
  6: Yellow (other states / degraded)
  7: Black on cyan (title, selection)
"""

import curses
import logging
import time
from typing import Optional, Tuple

from .model import ConnectionStatus, ContainerSnapshot, Model
from .stats import format_bytes, format_created, format_percent, summarize

logger = logging.getLogger(__name__)

# Column width constants
COL_STATUS = 11
COL_CPU = 8
COL_MEM_PCT = 8
COL_MEMORY = 11

MIN_HEIGHT = 10
MIN_WIDTH = 40


def init_colors():
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(1, curses.COLOR_WHITE, -1)    # Default
    curses.init_pair(2, curses.COLOR_GREEN, -1)    # Running / OK
    curses.init_pair(3, curses.COLOR_RED, -1)      # Exited / Unreachable
    curses.init_pair(4, curses.COLOR_CYAN, -1)     # Highlight / Borders
    curses.init_pair(5, curses.COLOR_MAGENTA, -1)  # Column headers
    curses.init_pair(6, curses.COLOR_YELLOW, -1)   # Transitional / Degraded
    curses.init_pair(7, curses.COLOR_BLACK, curses.COLOR_CYAN)  # Inverse Highlight


def status_color(status: str) -> int:
    if status == "running":
        return curses.color_pair(2)
    if status in ("exited", "dead"):
        return curses.color_pair(3)
    return curses.color_pair(6)


def connection_color(status: ConnectionStatus) -> int:
    if status == ConnectionStatus.OK:
        return curses.color_pair(2)
    if status == ConnectionStatus.DEGRADED:
        return curses.color_pair(6)
    return curses.color_pair(3)


def list_offset(selected_index: Optional[int], visible_rows: int) -> int:
    """First row to draw so the selection stays on screen."""
    if selected_index is None or visible_rows <= 0 or selected_index < visible_rows:
        return 0
    return selected_index - visible_rows + 1


def _name_width(term_width: int) -> int:
    fixed = COL_STATUS + COL_CPU + COL_MEM_PCT + COL_MEMORY + 8
    return max(10, term_width - fixed)


def format_header(term_width: int) -> str:
    w_name = _name_width(term_width)
    return (f"  {'NAME':<{w_name}} {'STATUS':<{COL_STATUS}} {'CPU':<{COL_CPU}} "
            f"{'MEM %':<{COL_MEM_PCT}} {'MEM':<{COL_MEMORY}}")


def format_row(container: ContainerSnapshot, term_width: int) -> str:
    w_name = _name_width(term_width)
    return (f"  {container.name[:w_name - 1]:<{w_name}} {container.status[:COL_STATUS - 1]:<{COL_STATUS}} "
            f"{format_percent(container.cpu_percent):<{COL_CPU}} "
            f"{format_percent(container.mem_percent):<{COL_MEM_PCT}} "
            f"{format_bytes(container.mem_usage_bytes):<{COL_MEMORY}}")


def detail_lines(container: ContainerSnapshot) -> list:
    if container.mem_limit_bytes > 0:
        memory = (f"{format_bytes(container.mem_usage_bytes)} / {format_bytes(container.mem_limit_bytes)}"
                  f" ({format_percent(container.mem_percent)})")
    else:
        memory = f"{format_bytes(container.mem_usage_bytes)} (no limit)"
    updated = time.strftime("%H:%M:%S", time.localtime(container.last_updated)) if container.last_updated else "never"
    cpu = format_percent(container.cpu_percent)
    if container.online_cpus > 0:
        # Aggregate over cores, so the ceiling is online_cpus * 100%
        cpu += f" of {container.online_cpus * 100}% ({container.online_cpus} CPUs)"
    return [
        f"  Name:     {container.name}",
        f"  ID:       {container.id[:12]}",
        f"  Image:    {container.image}",
        f"  Status:   {container.status}",
        f"  Created:  {format_created(container.created)}",
        f"  CPU:      {cpu}",
        f"  Memory:   {memory}",
        f"  Updated:  {updated}",
    ]


def draw_header(stdscr, width: int, model: Model):
    title = " dockwatch "
    stdscr.attron(curses.color_pair(7) | curses.A_BOLD)
    stdscr.addstr(0, 0, title.center(width)[:width - 1])
    stdscr.attroff(curses.color_pair(7) | curses.A_BOLD)

    summary = summarize(model.containers)
    text = (f" {summary['total']} containers | {summary['running']} running | "
            f"{summary['paused']} paused | {summary['stopped']} stopped | "
            f"CPU {summary['total_cpu']:.1f}% | MEM {format_bytes(summary['total_memory'])}")
    badge = f" [{model.connection_status.value.upper()}] "

    stdscr.move(1, 0)
    stdscr.clrtoeol()
    stdscr.addstr(1, 0, text[:max(0, width - len(badge) - 1)], curses.A_DIM)
    if width > len(badge) + 1:
        stdscr.addstr(1, width - len(badge) - 1, badge, connection_color(model.connection_status) | curses.A_BOLD)
    stdscr.noutrefresh()


def draw_list(win, model: Model):
    h, w = win.getmaxyx()
    win.erase()
    win.box()
    win.addstr(0, 2, " Containers (up/down to navigate) "[:w - 4], curses.A_BOLD | curses.color_pair(4))
    win.addstr(1, 1, format_header(w)[:w - 2], curses.color_pair(5) | curses.A_BOLD)

    start_y = 2
    max_items = h - 3
    if not model.containers:
        if max_items > 0:
            win.addstr(start_y, 3, "No containers"[:w - 4], curses.A_DIM)
        win.noutrefresh()
        return

    offset = list_offset(model.selected_index, max_items)
    for i, container in enumerate(model.containers[offset:offset + max_items]):
        is_selected = (offset + i == model.selected_index)
        row_style = curses.color_pair(7) if is_selected else curses.A_NORMAL
        win.addstr(start_y + i, 1, " * ", status_color(container.status) | (curses.A_REVERSE if is_selected else 0))
        win.addstr(start_y + i, 4, format_row(container, w - 3)[:w - 5].ljust(w - 5), row_style)
    win.noutrefresh()


def draw_details(win, model: Model):
    h, w = win.getmaxyx()
    win.erase()
    win.attron(curses.color_pair(4))
    win.box()
    win.addstr(0, 2, " Container Details "[:w - 4], curses.A_BOLD)
    win.attroff(curses.color_pair(4))

    container = model.selected
    lines = detail_lines(container) if container else ["  No container selected"]
    for y, line in enumerate(lines, start=1):
        if y >= h - 1:
            break
        win.addstr(y, 1, line[:w - 3])
    win.noutrefresh()


def draw_footer(stdscr, width: int, height: int, model: Model):
    bar_y = height - 1
    stdscr.move(bar_y, 0)
    stdscr.clrtoeol()
    if model.last_error:
        stdscr.addstr(bar_y, 0, f" {model.last_error} "[:width - 1], connection_color(model.connection_status) | curses.A_BOLD)
    else:
        help_txt = " q: Quit | up/down: Navigate | Enter: Details | Esc: Clear selection "
        stdscr.addstr(bar_y, 0, help_txt[:width - 1], curses.A_DIM)
    stdscr.noutrefresh()


class Screen:
    """Owns the curses sub-windows and redraws them from a Model."""

    def __init__(self, stdscr):
        self.stdscr = stdscr
        self.list_win = None
        self.detail_win = None
        self._layout: Optional[Tuple[int, int, bool]] = None

    def _relayout(self, h: int, w: int, detail_open: bool) -> None:
        self.stdscr.clear()
        self.list_win = None
        self.detail_win = None
        body_h = h - 3
        if detail_open:
            list_w = w // 2
            self.list_win = curses.newwin(body_h, list_w, 2, 0)
            self.detail_win = curses.newwin(body_h, w - list_w, 2, list_w)
        else:
            self.list_win = curses.newwin(body_h, w, 2, 0)
        self._layout = (h, w, detail_open)

    def render(self, model: Model) -> None:
        h, w = self.stdscr.getmaxyx()
        if h < MIN_HEIGHT or w < MIN_WIDTH:
            self.stdscr.erase()
            self.stdscr.addstr(0, 0, "Terminal too small!"[:max(0, w - 1)])
            self.stdscr.noutrefresh()
            self._layout = None
            curses.doupdate()
            return

        if self._layout != (h, w, model.detail_view_open):
            self._relayout(h, w, model.detail_view_open)

        try:
            draw_header(self.stdscr, w, model)
            draw_footer(self.stdscr, w, h, model)
            draw_list(self.list_win, model)
            if self.detail_win is not None:
                draw_details(self.detail_win, model)
        except curses.error as e:
            # Terminal shrank between getmaxyx() and drawing; next frame relayouts
            logger.debug(f"Render error: {e}")
            self._layout = None
        curses.doupdate()
