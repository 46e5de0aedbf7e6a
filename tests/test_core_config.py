"""Tests for configuration loading."""

import pytest

from syncshell.core.config import (
    Config,
    ServerConfig,
    create_default_config,
    get_config_path,
    get_log_file_path,
    get_socket_path,
    load_config,
)


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Isolated XDG directories and working directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("SYNCSHELL_SOCKET_PATH", raising=False)
    monkeypatch.delenv("SYNCSHELL_LOG_LEVEL", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path / "config" / "syncshell"


def write_config(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_creates_default_file(self, config_home):
        config = load_config()
        assert (config_home / "config.toml").exists()
        assert config == Config()

    def test_default_file_parses_to_defaults(self, config_home):
        path = write_config(config_home / "config.toml", create_default_config())
        assert load_config(path) == Config()

    def test_local_config_takes_precedence(self, config_home, tmp_path):
        write_config(tmp_path / "config.toml", "[logging]\nlevel = 'debug'\n")
        assert get_config_path() == tmp_path / "config.toml"
        assert load_config().logging.level == "DEBUG"

    def test_server_and_folders(self, config_home, tmp_path):
        path = write_config(
            config_home / "config.toml",
            f"""
[server]
socket_path = "{tmp_path}/s.sock"
max_line_bytes = 1024

[[folders]]
alias = "docs"
path = "{tmp_path}/docs"

[[folders]]
alias = "no-path"

[watch]
enabled = false
debounce_ms = 10
""",
        )
        config = load_config(path)
        assert config.server.socket_path == f"{tmp_path}/s.sock"
        assert config.server.max_line_bytes == 1024
        assert config.server.write_timeout_seconds == 5.0
        assert [(f.alias, f.path) for f in config.folders] == [("docs", f"{tmp_path}/docs")]
        assert not config.watch.enabled
        assert config.watch.debounce_ms == 10

    def test_invalid_server_values_fall_back(self, config_home):
        path = write_config(
            config_home / "config.toml",
            "[server]\nmax_line_bytes = 0\napp_name = 'other'\n",
        )
        assert load_config(path).server == ServerConfig()

    def test_folders_table_instead_of_array(self, config_home):
        """A [folders] table is ignored instead of crashing the load."""
        path = write_config(
            config_home / "config.toml",
            "[folders]\nalias = 'docs'\npath = '/sync/docs'\n",
        )
        assert load_config(path).folders == []

    def test_mistyped_values_fall_back(self, config_home):
        path = write_config(
            config_home / "config.toml",
            """
[server]
max_line_bytes = "big"
write_timeout_seconds = 2.5

[[folders]]
alias = 7
path = "/sync/docs"

[watch]
debounce_ms = "soon"

[logging]
level = 3
console_output = "yes"
""",
        )
        config = load_config(path)
        assert config.server.max_line_bytes == 65536
        assert config.server.write_timeout_seconds == 2.5
        assert config.folders == []
        assert config.watch.debounce_ms == 250
        assert config.logging.level == "INFO"
        assert config.logging.console_output is False

    def test_section_that_is_not_a_table(self, config_home):
        path = write_config(config_home / "config.toml", "server = 5\nwatch = 'on'\n")
        assert load_config(path) == Config()

    def test_broken_toml_uses_defaults(self, config_home):
        path = write_config(config_home / "config.toml", "[server\nnot toml")
        assert load_config(path) == Config()

    def test_env_overrides(self, config_home, monkeypatch):
        path = write_config(config_home / "config.toml", "[logging]\nlevel = 'INFO'\n")
        monkeypatch.setenv("SYNCSHELL_SOCKET_PATH", "/tmp/override.sock")
        monkeypatch.setenv("SYNCSHELL_LOG_LEVEL", "debug")

        config = load_config(path)

        assert config.server.socket_path == "/tmp/override.sock"
        assert config.logging.level == "DEBUG"

    def test_dotenv_in_config_dir(self, config_home, monkeypatch):
        # Registers the variable for removal once the test ends
        monkeypatch.setenv("SYNCSHELL_LOG_LEVEL", "unused")
        monkeypatch.delenv("SYNCSHELL_LOG_LEVEL")
        write_config(config_home / ".env", "SYNCSHELL_LOG_LEVEL=warning\n")

        assert load_config().logging.level == "WARNING"


class TestPaths:
    """Tests for derived paths."""

    def test_explicit_socket_path(self):
        assert get_socket_path(ServerConfig(socket_path="/tmp/x.sock")) == "/tmp/x.sock"

    def test_socket_in_runtime_dir(self, monkeypatch):
        monkeypatch.setattr("sys.platform", "linux")
        monkeypatch.setenv("XDG_RUNTIME_DIR", "/run/user/1000")
        assert get_socket_path(ServerConfig(app_name="brand")) == "/run/user/1000/brand/socket"

    def test_socket_without_runtime_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr("sys.platform", "linux")
        monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_socket_path(ServerConfig()) == f"{tmp_path}/.local/share/syncshell/socket"

    def test_named_pipe_on_windows(self, monkeypatch):
        monkeypatch.setattr("sys.platform", "win32")
        assert get_socket_path(ServerConfig(app_name="brand")) == "\\\\.\\pipe\\brand"

    def test_log_file(self, config_home, tmp_path):
        assert get_log_file_path(Config()) == tmp_path / "data" / "syncshell" / "syncshell.log"
