"""Tests for configuration loading."""

import json
import os
import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from rolegraph.config import Config, substitute_env_vars


class TestEnvSubstitution:
    """Tests for environment variable substitution."""

    def test_substitute_string(self):
        """Test substituting a string value."""
        os.environ["TEST_VAR"] = "hello"
        result = substitute_env_vars("${TEST_VAR}")
        assert result == "hello"

    def test_substitute_in_dict(self):
        """Test substituting values in a dictionary."""
        os.environ["TEST_DB_PATH"] = "/var/lib/rolegraph.db"
        data = {"path": "${TEST_DB_PATH}", "backend": "sqlite"}
        result = substitute_env_vars(data)
        assert result == {"path": "/var/lib/rolegraph.db", "backend": "sqlite"}

    def test_substitute_in_list(self):
        """Test substituting values in a list."""
        os.environ["TEST_ITEM"] = "item1"
        data = ["${TEST_ITEM}", "item2"]
        result = substitute_env_vars(data)
        assert result == ["item1", "item2"]

    def test_missing_env_var_raises(self):
        """Test that missing env vars raise ValueError."""
        if "NONEXISTENT_VAR" in os.environ:
            del os.environ["NONEXISTENT_VAR"]
        with pytest.raises(ValueError, match="NONEXISTENT_VAR"):
            substitute_env_vars("${NONEXISTENT_VAR}")

    def test_partial_substitution(self):
        """Test substituting part of a string."""
        os.environ["PREFIX"] = "prod"
        result = substitute_env_vars("${PREFIX}-rolegraph.db")
        assert result == "prod-rolegraph.db"

    def test_non_strings_pass_through(self):
        """Numbers and booleans are left alone."""
        assert substitute_env_vars({"depth": 32, "seed": True}) == {"depth": 32, "seed": True}


class TestConfigLoading:
    """Tests for configuration loading."""

    def test_from_dict(self, sample_config_dict):
        """Test loading config from dictionary."""
        config = Config.from_dict(sample_config_dict)
        assert config.storage.database.path == ":memory:"
        assert config.rbac.max_hierarchy_depth == 16
        assert config.rbac.system_actor_id == "bootstrap"
        assert config.logging.level == "DEBUG"

    def test_from_yaml_file(self, sample_config_dict):
        """Test loading config from YAML file."""
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".yaml", delete=False
        ) as f:
            yaml.dump(sample_config_dict, f)
            f.flush()

            config = Config.from_file(f.name)
            assert config.rbac.audit_page_size == 20

            Path(f.name).unlink()

    def test_from_json_file(self, sample_config_dict, tmp_path):
        """Test loading config from JSON file."""
        path = tmp_path / "rolegraph.json"
        path.write_text(json.dumps(sample_config_dict))

        config = Config.from_file(path)
        assert config.rbac.max_hierarchy_depth == 16

    def test_empty_yaml_file(self, tmp_path):
        """An empty YAML file yields the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = Config.from_file(path)
        assert config.storage.database.backend == "sqlite"

    def test_env_substitution_in_file(self, tmp_path):
        """Environment variables are substituted in loaded files."""
        os.environ["ROLEGRAPH_TEST_ACTOR"] = "ops-bot"
        path = tmp_path / "config.yaml"
        path.write_text("rbac:\n  system_actor_id: ${ROLEGRAPH_TEST_ACTOR}\n")

        config = Config.from_file(path)
        assert config.rbac.system_actor_id == "ops-bot"

    def test_defaults(self):
        """Test that defaults are applied."""
        config = Config.from_dict({})
        assert config.storage.database.backend == "sqlite"
        assert config.storage.database.path is None
        assert config.rbac.max_hierarchy_depth == 32
        assert config.rbac.cache_ttl_seconds == 0
        assert config.rbac.cache_max_size == 1000
        assert config.rbac.role_page_size == 50
        assert config.rbac.audit_page_size == 50
        assert config.rbac.max_page_size == 200
        assert config.rbac.system_actor_id == "system"
        assert config.rbac.seed_defaults_on_init is False
        assert config.logging.format == "json"

    def test_rejects_invalid_values(self):
        """Out-of-range settings fail validation."""
        with pytest.raises(ValidationError):
            Config.from_dict({"rbac": {"max_hierarchy_depth": 0}})
        with pytest.raises(ValidationError):
            Config.from_dict({"rbac": {"cache_ttl_seconds": -1}})
