# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for the Config loader, env overrides, placeholders and dataclass binding."""

import os
from dataclasses import dataclass
from pathlib import Path

import pytest

from dynacache.core.config import Config, config_properties


class TestConfig:
    def test_get_simple_value(self):
        config = Config({"app": {"port": 8080}})
        assert config.get("app.port") == 8080

    def test_get_with_default(self):
        config = Config({})
        assert config.get("missing.key", "default") == "default"

    def test_get_through_non_dict(self):
        config = Config({"app": "flat"})
        assert config.get("app.name", "fallback") == "fallback"

    def test_load_from_yaml_file(self, tmp_path: Path):
        config_file = tmp_path / "dynacache.yaml"
        config_file.write_text("dynacache:\n  cache:\n    table: sessions\n")
        config = Config.from_file(config_file)
        assert config.get("dynacache.cache.table") == "sessions"
        assert config.loaded_sources == [str(config_file)]

    def test_load_from_toml_file(self, tmp_path: Path):
        config_file = tmp_path / "dynacache.toml"
        config_file.write_text('[dynacache.cache]\ntable = "sessions"\n')
        config = Config.from_file(config_file)
        assert config.get("dynacache.cache.table") == "sessions"

    def test_missing_file_is_empty(self, tmp_path: Path):
        config = Config.from_file(tmp_path / "absent.yaml")
        assert config.to_dict() == {}
        assert config.loaded_sources == []

    def test_profile_overlay(self, tmp_path: Path):
        base = tmp_path / "dynacache.yaml"
        base.write_text("dynacache:\n  cache:\n    table: cache\n    provider: memory\n")
        (tmp_path / "dynacache-prod.yaml").write_text("dynacache:\n  cache:\n    provider: dynamodb\n")

        config = Config.from_file(base, active_profiles=["prod"])

        assert config.get("dynacache.cache.provider") == "dynamodb"
        assert config.get("dynacache.cache.table") == "cache"
        assert len(config.loaded_sources) == 2

    def test_env_var_override(self):
        os.environ["DYNACACHE_CACHE_TABLE"] = "env-table"
        try:
            config = Config({"dynacache": {"cache": {"table": "file-table"}}})
            assert config.get("dynacache.cache.table") == "env-table"
        finally:
            del os.environ["DYNACACHE_CACHE_TABLE"]

    def test_get_section(self):
        config = Config({"dynacache": {"logging": {"level": {"root": "DEBUG"}}}})
        assert config.get_section("dynacache.logging.level") == {"root": "DEBUG"}
        assert config.get_section("dynacache.missing") == {}


class TestPlaceholderResolution:
    def test_resolve_env_var(self, monkeypatch):
        monkeypatch.setenv("CACHE_TABLE", "from-env")
        config = Config({"dynacache": {"cache": {"table": "${CACHE_TABLE}"}}})
        assert config.get("dynacache.cache.table") == "from-env"

    def test_resolve_config_reference(self):
        config = Config({"app": {"name": "orders"}, "table": "${app.name}-cache"})
        assert config.get("table") == "orders-cache"

    def test_resolve_with_default(self):
        config = Config({"region": "${MISSING_REGION_VAR:eu-west-1}"})
        assert config.get("region") == "eu-west-1"

    def test_unresolvable_placeholder_raises(self):
        config = Config({"region": "${MISSING_REGION_VAR}"})
        with pytest.raises(ValueError, match="Cannot resolve placeholder"):
            config.get("region")

    def test_circular_reference_raises(self):
        config = Config({"a": "${b}", "b": "${a}"})
        with pytest.raises(ValueError, match="recursion"):
            config.get("a")


class TestConfigProperties:
    def test_bind_to_dataclass(self):
        @config_properties(prefix="database")
        @dataclass
        class DatabaseConfig:
            url: str = "sqlite:///test.db"
            pool_size: int = 5

        config = Config({"database": {"url": "postgresql://localhost/mydb", "pool_size": 20}})
        db_config = config.bind(DatabaseConfig)
        assert db_config.url == "postgresql://localhost/mydb"
        assert db_config.pool_size == 20

    def test_bind_coerces_strings(self):
        @config_properties(prefix="svc")
        @dataclass
        class ServiceConfig:
            retries: int = 1
            ratio: float = 0.5
            enabled: bool = False

        config = Config({"svc": {"retries": "3", "ratio": "0.75", "enabled": "yes"}})
        bound = config.bind(ServiceConfig)
        assert (bound.retries, bound.ratio, bound.enabled) == (3, 0.75, True)

    def test_bind_uses_defaults(self):
        @config_properties(prefix="database")
        @dataclass
        class DatabaseConfig:
            url: str = "sqlite:///default.db"

        assert Config({}).bind(DatabaseConfig).url == "sqlite:///default.db"

    def test_bind_requires_decorator(self):
        @dataclass
        class Plain:
            x: int = 1

        with pytest.raises(ValueError, match="config_properties"):
            Config({}).bind(Plain)
