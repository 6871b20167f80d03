"""Tests for configuration loading."""

from pathlib import Path

import pytest

from relive.config import DEFAULT_ENTRY_POINTS, SupervisorConfig, load_config
from relive.errors import ConfigError


class TestSupervisorConfig:
    """Tests for SupervisorConfig."""

    def test_defaults(self):
        """Defaults match the documented options."""
        config = SupervisorConfig()

        assert config.watch_path == Path(".")
        assert config.scan_interval == 0.5
        assert config.protected is True
        assert config.quiet is False
        assert config.pre_swap is None
        assert config.entry_points == DEFAULT_ENTRY_POINTS
        assert config.quit_key == "escape"
        assert config.load_callback == "load"
        assert config.quit_callback == "quit"

    def test_extension_gets_dot(self):
        """Extensions are normalized to start with a dot."""
        assert SupervisorConfig(extension="py").extension == ".py"

    def test_import_root_defaults_to_watch_path(self, tmp_path: Path):
        """Module names are derived from the watch path unless overridden."""
        assert SupervisorConfig(watch_path=tmp_path).import_root == tmp_path
        other = tmp_path / "lib"
        assert SupervisorConfig(watch_path=tmp_path, module_root=other).import_root == other

    def test_hooks_must_be_callable(self):
        """Non-callable hooks are rejected."""
        with pytest.raises(ValueError):
            SupervisorConfig(pre_swap="not callable")


class TestLoadConfig:
    """Tests for load_config."""

    def test_pyproject_table(self, tmp_path: Path):
        """Options are read from [tool.relive] with paths relative to the file."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            '[project]\nname = "game"\n\n[tool.relive]\nwatch_path = "src"\nscan_interval = 2.0\n'
        )

        config = load_config(pyproject)

        assert config.watch_path == tmp_path / "src"
        assert config.scan_interval == 2.0

    def test_relive_toml_with_dashed_keys(self, tmp_path: Path):
        """A standalone file is a flat table; dashes are accepted."""
        path = tmp_path / "relive.toml"
        path.write_text("quiet = true\nscan-interval = 1.5\n")

        config = load_config(path)

        assert config.quiet is True
        assert config.scan_interval == 1.5

    def test_overrides_win(self, tmp_path: Path):
        """Keyword overrides replace file values; None overrides are ignored."""
        path = tmp_path / "relive.toml"
        path.write_text("quiet = true\nscan_interval = 1.5\n")

        config = load_config(path, quiet=False, scan_interval=None)

        assert config.quiet is False
        assert config.scan_interval == 1.5

    def test_discovers_file_in_cwd(self, tmp_path: Path, monkeypatch):
        """Without a path the current directory is searched."""
        (tmp_path / "relive.toml").write_text("quit_key = 'q'\n")
        monkeypatch.chdir(tmp_path)

        assert load_config().quit_key == "q"

    def test_no_file_gives_defaults(self, tmp_path: Path, monkeypatch):
        """With no config file the defaults apply."""
        monkeypatch.chdir(tmp_path)

        assert load_config() == SupervisorConfig()

    def test_malformed_toml(self, tmp_path: Path):
        """Unparseable files raise ConfigError."""
        path = tmp_path / "relive.toml"
        path.write_text("quiet = \n")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_option(self, tmp_path: Path):
        """Values failing validation raise ConfigError."""
        path = tmp_path / "relive.toml"
        path.write_text("scan_interval = -1\n")

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert exc_info.value.path == path
