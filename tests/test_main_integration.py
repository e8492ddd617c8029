import threading

import pytest
from unittest.mock import MagicMock

import dockwatch.main as app_main


@pytest.fixture
def curses_env(mocker):
    mocker.patch('curses.curs_set')
    mocker.patch('curses.start_color')
    mocker.patch('curses.use_default_colors')
    mocker.patch('curses.init_pair')
    mocker.patch('curses.color_pair', return_value=0)
    mocker.patch('curses.doupdate')
    stdscr = MagicMock()
    stdscr.getmaxyx.return_value = (24, 80)
    return stdscr


def test_main_renders_then_stops_workers(mocker, curses_env):
    mocker.patch('dockwatch.main.DockerBackend')
    sampler = MagicMock()
    sampler.is_alive.return_value = False
    mocker.patch('dockwatch.main.Sampler', return_value=sampler)
    input_handler = MagicMock()
    input_handler.is_alive.return_value = False
    mocker.patch('dockwatch.main.InputHandler', return_value=input_handler)

    shutdown = threading.Event()
    screen = MagicMock()
    screen.render.side_effect = lambda model: shutdown.set()
    mocker.patch('dockwatch.main.Screen', return_value=screen)

    app_main.main(curses_env, shutdown)

    sampler.start.assert_called_once()
    input_handler.start.assert_called_once()
    screen.render.assert_called_once()
    assert shutdown.is_set()


def test_main_shuts_down_on_render_crash(mocker, curses_env):
    backend = MagicMock()
    mocker.patch('dockwatch.main.DockerBackend', return_value=backend)
    mocker.patch('dockwatch.main.Sampler', return_value=MagicMock(is_alive=MagicMock(return_value=False)))
    mocker.patch('dockwatch.main.InputHandler', return_value=MagicMock(is_alive=MagicMock(return_value=False)))
    screen = MagicMock()
    screen.render.side_effect = RuntimeError("draw failed")
    mocker.patch('dockwatch.main.Screen', return_value=screen)

    shutdown = threading.Event()
    with pytest.raises(RuntimeError):
        app_main.main(curses_env, shutdown)

    assert shutdown.is_set()
    backend.close.assert_called_once()


def test_main_end_to_end_with_real_threads(mocker, curses_env):
    backend = MagicMock()
    backend.list_containers.return_value = []
    mocker.patch('dockwatch.main.DockerBackend', return_value=backend)
    # Input: one quit key, then nothing
    keys = [[ord('q')]]

    def fake_reader(stdscr, lock):
        def read_keys(timeout):
            return keys.pop(0) if keys else []
        return read_keys

    mocker.patch('dockwatch.main.CursesKeyReader', side_effect=fake_reader)
    mocker.patch('dockwatch.main.Screen', return_value=MagicMock())

    shutdown = threading.Event()
    app_main.main(curses_env, shutdown)

    assert shutdown.is_set()
    backend.close.assert_called_once()


def test_stop_workers_reports_stuck_worker():
    shutdown = threading.Event()
    stuck = MagicMock()
    stuck.is_alive.return_value = True
    stuck.name = "stuck"
    assert app_main.stop_workers(shutdown, stuck, timeout=0.01) is False
    assert shutdown.is_set()
    stuck.join.assert_called_once_with(0.01)


def test_run_reports_terminal_failure(mocker, capsys):
    mocker.patch('dockwatch.main.setup_logging')
    mocker.patch('dockwatch.main.signal.signal')
    import curses
    mocker.patch('dockwatch.main.curses.wrapper', side_effect=curses.error("setupterm failed"))

    assert app_main.run() == 1
    assert "terminal error" in capsys.readouterr().err


@pytest.fixture
def root_logger():
    import logging
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_setup_logging_creates_missing_log_directory(mocker, tmp_path, root_logger):
    path = tmp_path / "nested" / "logs" / "dockwatch.log"
    mocker.patch.object(app_main.config_manager, 'get_custom_log_path', return_value=str(path))

    app_main.setup_logging()

    assert path.parent.is_dir()
    assert root_logger.handlers[0].baseFilename == str(path)


def test_setup_logging_falls_back_when_path_unusable(mocker, tmp_path, root_logger):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    mocker.patch.object(app_main.config_manager, 'get_custom_log_path',
                        return_value=str(blocker / "dockwatch.log"))
    fallback = tmp_path / "fallback.log"
    mocker.patch('dockwatch.main.get_log_path', return_value=str(fallback))

    app_main.setup_logging()

    assert root_logger.handlers[0].baseFilename == str(fallback)
