import os

import pytest
import yaml

from tawba.core.config import DEFAULT_CONFIG, Config


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def test_default_config_file_is_created(tmp_path):
    config_file = tmp_path / "conf" / "config.yaml"

    config = Config(str(config_file))

    assert config_file.exists()
    assert yaml.safe_load(config_file.read_text()) == DEFAULT_CONFIG
    assert config.section("api")["port"] == 8765
    assert config.section("missing") == {}


def test_user_values_layer_over_defaults(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"api": {"port": 9000}, "prayer_times": {"lat": 21.4}}))

    config = Config(str(config_file))

    assert config.section("api") == {"enabled": True, "host": "127.0.0.1", "port": 9000}
    assert config.section("prayer_times")["lat"] == 21.4
    assert config.section("prayer_times")["backend"] == "aladhan"
    assert DEFAULT_CONFIG["api"]["port"] == 8765


def test_paths_are_expanded(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"database": {"path": "~/tawba-test.db"}}))

    config = Config(str(config_file))

    assert config.section("database")["path"] == os.path.expanduser("~/tawba-test.db")


def test_env_file_values_are_substituted(tmp_path, monkeypatch):
    monkeypatch.delenv("TAWBA_TEST_LAT", raising=False)
    (tmp_path / ".env").write_text("# location\nTAWBA_TEST_LAT='24.7'\n")
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"prayer_times": {"lat": "${TAWBA_TEST_LAT}", "lon": "$UNSET_TAWBA_VAR"}}))

    try:
        config = Config(str(config_file))
        assert config.section("prayer_times")["lat"] == "24.7"
        assert config.section("prayer_times")["lon"] == "$UNSET_TAWBA_VAR"
    finally:
        os.environ.pop("TAWBA_TEST_LAT", None)


def test_reload_notifies_callbacks(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"logging": {"level": "INFO"}}))
    config = Config(str(config_file))
    seen = []
    config.register_change_callback(seen.append)

    config_file.write_text(yaml.safe_dump({"logging": {"level": "DEBUG"}}))
    config.reload()

    assert config.section("logging")["level"] == "DEBUG"
    assert seen == [config.data]


def test_invalid_file_keeps_previous_configuration(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"api": {"port": 9100}}))
    config = Config(str(config_file))

    config_file.write_text("- just\n- a list\n")
    config.reload()

    assert config.section("api")["port"] == 9100
