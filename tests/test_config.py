"""Tests for configuration loading and validation."""

import os

import pytest

from lint_overlay.config import OverlayConfig, load_config
from lint_overlay.exceptions import ConfigurationError, InvalidConfigError, InvalidPathError


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """No user or project config files, no LINT_OVERLAY_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("LINT_OVERLAY_"):
            monkeypatch.delenv(key)
    return tmp_path


class TestOverlayConfig:
    def test_defaults(self):
        config = OverlayConfig()
        assert config.root_dir == "src"
        assert config.extensions == [".js", ".jsx", ".ts", ".tsx"]
        assert config.eslint is True
        assert config.ts is False
        assert config.port == 5174

    def test_extensions_get_leading_dot(self):
        assert OverlayConfig(extensions=["ts", ".tsx"]).extensions == [".ts", ".tsx"]

    def test_root_dir_trailing_slash_stripped(self):
        assert OverlayConfig(root_dir="app/").root_dir == "app"

    def test_scope_dir(self, tmp_path):
        config = OverlayConfig(project_root=str(tmp_path), root_dir="lib")
        assert config.scope_dir == tmp_path.resolve() / "lib"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"port": 0},
            {"port": 70000},
            {"queue_size": 0},
            {"ping_interval": 0},
            {"shutdown_timeout": -1},
            {"lint_timeout": -0.5},
            {"extensions": []},
            {"root_dir": "/abs/src"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(InvalidConfigError):
            OverlayConfig(**kwargs)


class TestLoadConfig:
    def test_overrides_win(self):
        config = load_config(ts=True, port=6000)
        assert config.ts is True
        assert config.port == 6000

    def test_none_overrides_ignored(self):
        assert load_config(ts=None, port=None).port == 5174

    def test_project_file(self, isolated_env):
        (isolated_env / "lint-overlay.toml").write_text('root_dir = "app"\nts = true\n')
        config = load_config()
        assert config.root_dir == "app"
        assert config.ts is True

    def test_table_form(self, isolated_env):
        (isolated_env / "lint-overlay.toml").write_text('[lint-overlay]\nport = 7000\n')
        assert load_config().port == 7000

    def test_explicit_file_beats_project_file(self, isolated_env):
        (isolated_env / "lint-overlay.toml").write_text("port = 7000\n")
        explicit = isolated_env / "custom.toml"
        explicit.write_text("port = 7100\n")
        assert load_config(config_file=explicit).port == 7100

    def test_missing_explicit_file(self, isolated_env):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(config_file=isolated_env / "nope.toml")

    def test_malformed_file(self, isolated_env):
        (isolated_env / "lint-overlay.toml").write_text("port = = 1\n")
        with pytest.raises(ConfigurationError, match="project config"):
            load_config()

    def test_unknown_key(self, isolated_env):
        (isolated_env / "lint-overlay.toml").write_text("colour = 'red'\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_config()

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("LINT_OVERLAY_TS", "yes")
        monkeypatch.setenv("LINT_OVERLAY_EXTENSIONS", ".ts, .tsx")
        monkeypatch.setenv("LINT_OVERLAY_LINT_TIMEOUT", "12.5")
        config = load_config()
        assert config.ts is True
        assert config.extensions == [".ts", ".tsx"]
        assert config.lint_timeout == 12.5

    def test_env_beats_file_and_cli_beats_env(self, isolated_env, monkeypatch):
        (isolated_env / "lint-overlay.toml").write_text("port = 7000\n")
        monkeypatch.setenv("LINT_OVERLAY_PORT", "7200")
        assert load_config().port == 7200
        assert load_config(port=7300).port == 7300

    def test_missing_project_root(self, isolated_env):
        with pytest.raises(InvalidPathError) as info:
            load_config(project_root=str(isolated_env / "gone"))
        assert info.value.reason == "project directory does not exist"

    def test_project_root_is_a_file(self, isolated_env):
        target = isolated_env / "package.json"
        target.write_text("{}")
        with pytest.raises(InvalidPathError, match="Invalid path"):
            load_config(project_root=str(target))

    def test_allowed_origins(self, isolated_env, monkeypatch):
        assert load_config().allowed_origins == ["*"]
        monkeypatch.setenv("LINT_OVERLAY_ALLOWED_ORIGINS", "http://localhost:3000, http://127.0.0.1:3000")
        assert load_config().allowed_origins == ["http://localhost:3000", "http://127.0.0.1:3000"]

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("LINT_OVERLAY_ESLINT", "maybe")
        with pytest.raises(ConfigurationError, match="LINT_OVERLAY_ESLINT"):
            load_config()
