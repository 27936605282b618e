"""Tests for config file, .env and collections file resolution."""

import pytest
import yaml

from reqman import core
from reqman.errors import ReqmanError


def _write_config(path, **defaults):
    """Helper to write a config YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump({"defaults": defaults}))


# ── resolve_config_path ─────────────────────────────────────────────────


class TestResolveConfigPath:
    def test_explicit_flag_takes_priority(self, tmp_project, global_reqman_dir):
        """Explicit -c flag should win over everything else."""
        explicit = tmp_project / "custom" / "my.yaml"
        _write_config(explicit)
        _write_config(tmp_project / ".reqman.yaml", timeout=1)
        _write_config(global_reqman_dir / "config.yaml", timeout=2)

        assert core.resolve_config_path(str(explicit)) == explicit.resolve()

    def test_explicit_flag_nonexistent_returns_none(self, tmp_project, global_reqman_dir):
        """Explicit -c pointing to a missing file does not fall through."""
        _write_config(tmp_project / ".reqman.yaml")
        assert core.resolve_config_path("/nonexistent/config.yaml") is None

    def test_cwd_config_found(self, tmp_project, global_reqman_dir):
        _write_config(tmp_project / ".reqman.yaml")
        _write_config(global_reqman_dir / "config.yaml")
        assert core.resolve_config_path(None) == (tmp_project / ".reqman.yaml").resolve()

    @pytest.mark.parametrize("name", [".reqman.yml", "reqman.yaml", "reqman.yml"])
    def test_cwd_variants(self, tmp_project, name):
        _write_config(tmp_project / name)
        assert core.resolve_config_path(None) == (tmp_project / name).resolve()

    def test_cwd_config_priority_order(self, tmp_project):
        """.reqman.yaml wins over reqman.yaml when both exist."""
        _write_config(tmp_project / ".reqman.yaml")
        _write_config(tmp_project / "reqman.yaml")
        assert core.resolve_config_path(None) == (tmp_project / ".reqman.yaml").resolve()

    def test_global_config_fallback(self, tmp_project, global_reqman_dir):
        _write_config(global_reqman_dir / "config.yaml")
        assert core.resolve_config_path(None) == (global_reqman_dir / "config.yaml").resolve()

    def test_no_config_anywhere(self, tmp_project):
        assert core.resolve_config_path(None) is None


# ── load_config ──────────────────────────────────────────────────────────


class TestLoadConfig:
    def test_none_path_returns_defaults(self):
        assert core.load_config(None) == {"defaults": {}, "_config_dir": None}

    def test_nonexistent_path_returns_defaults(self, tmp_path):
        assert core.load_config(tmp_path / "missing.yaml")["defaults"] == {}

    def test_valid_config_loads_defaults(self, tmp_path):
        path = tmp_path / "c.yaml"
        _write_config(path, timeout=10, data_file="cols.json")
        config = core.load_config(path)
        assert config["defaults"] == {"timeout": 10, "data_file": "cols.json"}
        assert config["_config_dir"] == tmp_path.resolve()

    def test_empty_yaml_returns_empty_defaults(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("")
        assert core.load_config(path)["defaults"] == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("defaults: [unclosed")
        with pytest.raises(ReqmanError, match="Invalid config file"):
            core.load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ReqmanError, match="expected a mapping"):
            core.load_config(path)


# ── load_env / resolve_value ─────────────────────────────────────────────


class TestEnv:
    def test_dotenv_overrides_environ(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REQMAN_TEST_VAR", "from-os")
        (tmp_path / ".env").write_text("REQMAN_TEST_VAR=from-dotenv\nOTHER=1\n")
        env = core.load_env(".env", tmp_path)
        assert env["REQMAN_TEST_VAR"] == "from-dotenv"
        assert env["OTHER"] == "1"

    def test_missing_dotenv_is_environ(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REQMAN_TEST_VAR", "x")
        assert core.load_env(".env", tmp_path)["REQMAN_TEST_VAR"] == "x"

    def test_resolve_value(self):
        env = {"HOME_DIR": "/h", "N": "3"}
        assert core.resolve_value("${HOME_DIR}/c.json", env) == "/h/c.json"
        assert core.resolve_value("$N", env) == "3"
        assert core.resolve_value(5, env) == 5
        assert core.resolve_value(None, env) is None

    def test_unknown_variable_left_as_written(self, monkeypatch):
        monkeypatch.delenv("REQMAN_NOT_SET", raising=False)
        assert core.resolve_value("${REQMAN_NOT_SET}", {}) == "${REQMAN_NOT_SET}"


# ── resolve_store_path ───────────────────────────────────────────────────


class TestResolveStorePath:
    def test_flag_wins(self, tmp_path):
        config = {"defaults": {"data_file": "cfg.json"}, "_config_dir": tmp_path}
        env = {"REQMAN_JSON": "/env.json"}
        assert core.resolve_store_path("/flag.json", config, env) == core.Path("/flag.json")

    def test_env_var_over_config(self, tmp_path):
        config = {"defaults": {"data_file": "cfg.json"}, "_config_dir": tmp_path}
        env = {"REQMAN_JSON": "/env.json"}
        assert core.resolve_store_path(None, config, env) == core.Path("/env.json")

    def test_config_relative_to_config_dir(self, tmp_path):
        config = {"defaults": {"data_file": "cfg.json"}, "_config_dir": tmp_path}
        assert core.resolve_store_path(None, config, {}) == tmp_path / "cfg.json"

    def test_config_with_variable(self, tmp_path):
        config = {"defaults": {"data_file": "${DATA}/c.json"}, "_config_dir": tmp_path}
        path = core.resolve_store_path(None, config, {"DATA": "/data"})
        assert path == core.Path("/data/c.json")

    def test_global_default(self, global_reqman_dir):
        config = {"defaults": {}, "_config_dir": None}
        assert core.resolve_store_path(None, config, {}) == global_reqman_dir / "collections.json"


# ── transport_settings ───────────────────────────────────────────────────


class TestTransportSettings:
    def test_defaults(self):
        assert core.transport_settings({"defaults": {}}, {}) == {
            "timeout": None,
            "follow_redirects": True,
        }

    def test_from_config(self):
        config = {"defaults": {"timeout": 30, "follow_redirects": False}}
        assert core.transport_settings(config, {}) == {
            "timeout": 30.0,
            "follow_redirects": False,
        }

    def test_from_variables(self):
        config = {"defaults": {"timeout": "${T}", "follow_redirects": "$F"}}
        settings = core.transport_settings(config, {"T": "2.5", "F": "no"})
        assert settings == {"timeout": 2.5, "follow_redirects": False}
