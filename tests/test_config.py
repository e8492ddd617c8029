import yaml

from dockwatch.config import ConfigManager, SamplerConfig
from dockwatch.input_handler import KeyIntent, KeyMap


def write_config(tmp_path, data):
    (tmp_path / "config.yaml").write_text(yaml.safe_dump(data))


def test_creates_default_file(tmp_path):
    cm = ConfigManager(config_dir=tmp_path)
    assert (tmp_path / "config.yaml").exists()
    config = cm.get_config()
    assert config.sampler.interval == 1.0
    assert config.sampler.stats_timeout < config.sampler.interval
    assert config.keybindings.quit == "q"

    saved = yaml.safe_load((tmp_path / "config.yaml").read_text())
    assert saved["sampler"]["max_in_flight"] == 4
    assert saved["ui"]["color_theme"]["accent"] == "cyan"


def test_user_values_merged_over_defaults(tmp_path):
    write_config(tmp_path, {
        "sampler": {"interval": 2.5, "max_in_flight": 8},
        "engine": {"base_url": "unix:///run/user/1000/docker.sock"},
        "ui": {"refresh_interval": 250, "color_theme": {"accent": "magenta"}},
        "keybindings": {"quit": "x"},
        "logging": {"level": "debug"},
    })
    cm = ConfigManager(config_dir=tmp_path)
    config = cm.get_config()

    assert config.sampler.interval == 2.5
    assert config.sampler.max_in_flight == 8
    assert config.sampler.stats_timeout == SamplerConfig().stats_timeout
    assert config.engine.base_url == "unix:///run/user/1000/docker.sock"
    assert cm.get_refresh_interval() == 250
    assert config.ui.color_theme.accent == "magenta"
    assert cm.get_key_binding("quit") == "x"
    assert cm.get_key_binding("up") == "up"
    assert cm.get_log_level() == "DEBUG"


def test_stats_timeout_clamped_below_interval(tmp_path):
    write_config(tmp_path, {"sampler": {"interval": 1.0, "stats_timeout": 5.0}})
    config = ConfigManager(config_dir=tmp_path).get_config()
    assert config.sampler.stats_timeout == 0.8


def test_invalid_sampler_values_fall_back(tmp_path):
    write_config(tmp_path, {"sampler": {"interval": -1, "max_in_flight": 0}})
    config = ConfigManager(config_dir=tmp_path).get_config()
    assert config.sampler.interval == 1.0
    assert config.sampler.max_in_flight == 4


def test_non_numeric_sampler_values_fall_back(tmp_path):
    write_config(tmp_path, {"sampler": {"interval": "fast"}})
    config = ConfigManager(config_dir=tmp_path).get_config()
    assert config.sampler == SamplerConfig()


def test_non_string_keybindings_coerced_or_replaced(tmp_path):
    write_config(tmp_path, {"keybindings": {"up": 1, "down": None, "quit": ["q", "x"]}})
    config = ConfigManager(config_dir=tmp_path).get_config()
    assert config.keybindings.up == "1"
    assert config.keybindings.down == "down"
    assert config.keybindings.quit == "q"

    keymap = KeyMap.from_config(config.keybindings)
    assert keymap.resolve(ord("1")) is KeyIntent.UP
    assert keymap.resolve(ord("q")) is KeyIntent.QUIT


def test_broken_yaml_uses_defaults(tmp_path):
    (tmp_path / "config.yaml").write_text("sampler: [unclosed")
    config = ConfigManager(config_dir=tmp_path).get_config()
    assert config.sampler.interval == 1.0


def test_non_mapping_yaml_uses_defaults(tmp_path):
    (tmp_path / "config.yaml").write_text("- just\n- a list\n")
    config = ConfigManager(config_dir=tmp_path).get_config()
    assert config.keybindings.quit == "q"


def test_unknown_keys_ignored(tmp_path):
    write_config(tmp_path, {"sampler": {"bogus": 1}, "nonsense": {"a": 1}})
    config = ConfigManager(config_dir=tmp_path).get_config()
    assert not hasattr(config.sampler, "bogus")


def test_env_override_of_config_dir(tmp_path, monkeypatch):
    from dockwatch.config import default_config_dir
    monkeypatch.setenv("DOCKWATCH_CONFIG_DIR", str(tmp_path / "elsewhere"))
    assert default_config_dir() == tmp_path / "elsewhere"
