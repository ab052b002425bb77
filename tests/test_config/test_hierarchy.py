"""Tests for config hierarchy."""

from photocache.config.hierarchy import (
    _coerce_env_value,
    _load_yaml_config,
    load_config_hierarchy,
)


class TestLoadConfigHierarchy:
    def test_returns_defaults(self):
        config = load_config_hierarchy()
        assert config["memory_count_limit"] == 50
        assert config["display_scale"] == 3.0

    def test_runtime_overrides(self):
        config = load_config_hierarchy(memory_count_limit=10, display_scale=2.0)
        assert config["memory_count_limit"] == 10
        assert config["display_scale"] == 2.0

    def test_none_overrides_ignored(self):
        config = load_config_hierarchy(memory_count_limit=None)
        assert config["memory_count_limit"] == 50

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("PHOTOCACHE_DISK_DIR", "/tmp/photocache-env")
        config = load_config_hierarchy()
        assert config["disk_dir"] == "/tmp/photocache-env"

    def test_runtime_beats_env(self, monkeypatch):
        monkeypatch.setenv("PHOTOCACHE_MEMORY_COUNT_LIMIT", "20")
        config = load_config_hierarchy(memory_count_limit=30)
        assert config["memory_count_limit"] == 30

    def test_env_numeric_coercion(self, monkeypatch):
        monkeypatch.setenv("PHOTOCACHE_MEMORY_COUNT_LIMIT", "75")
        config = load_config_hierarchy()
        assert config["memory_count_limit"] == 75
        assert isinstance(config["memory_count_limit"], int)

    def test_project_config(self, tmp_path, monkeypatch):
        config_file = tmp_path / "photocache.yaml"
        config_file.write_text("memory_count_limit: 120\ndisk_budget_mb: 16\n")
        monkeypatch.chdir(tmp_path)
        config = load_config_hierarchy()
        assert config["memory_count_limit"] == 120
        assert config["disk_budget_mb"] == 16


class TestLoadYamlConfig:
    def test_loads_valid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("key: value\n")
        assert _load_yaml_config(path) == {"key": "value"}

    def test_returns_none_for_missing(self, tmp_path):
        assert _load_yaml_config(tmp_path / "nonexistent.yaml") is None

    def test_returns_none_for_non_dict(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- item1\n- item2\n")
        assert _load_yaml_config(path) is None

    def test_returns_none_for_broken_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("key: [unclosed\n")
        assert _load_yaml_config(path) is None


class TestCoerceEnvValue:
    def test_int_coercion(self):
        assert _coerce_env_value("memory_count_limit", "10") == 10

    def test_float_coercion(self):
        assert _coerce_env_value("disk_budget_mb", "256.5") == 256.5

    def test_bad_number_passthrough(self):
        assert _coerce_env_value("memory_count_limit", "lots") == "lots"

    def test_string_passthrough(self):
        assert _coerce_env_value("disk_dir", "/var/cache") == "/var/cache"

    def test_thumbnail_sizes(self):
        assert _coerce_env_value("thumbnail_sizes", "110x120, 600X600") == [
            [110.0, 120.0],
            [600.0, 600.0],
        ]

    def test_bad_sizes_passthrough(self):
        assert _coerce_env_value("thumbnail_sizes", "large") == "large"


class TestConfigSources:
    def test_global_config(self, tmp_path, monkeypatch):
        path = tmp_path / "global.yaml"
        path.write_text("display_scale: 2.0\n")
        monkeypatch.setattr("photocache.config.hierarchy._GLOBAL_CONFIG_PATH", path)
        assert load_config_hierarchy()["display_scale"] == 2.0

    def test_project_beats_global(self, tmp_path, monkeypatch):
        path = tmp_path / "global.yaml"
        path.write_text("display_scale: 2.0\n")
        monkeypatch.setattr("photocache.config.hierarchy._GLOBAL_CONFIG_PATH", path)
        project = tmp_path / "project"
        project.mkdir()
        (project / "photocache.yaml").write_text("display_scale: 1.0\n")
        monkeypatch.chdir(project)
        assert load_config_hierarchy()["display_scale"] == 1.0

    def test_nested_cache_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("cache:\n  memory_count_limit: 5\n")
        assert _load_yaml_config(path) == {"memory_count_limit": 5}

    def test_env_for_any_setting(self, monkeypatch):
        monkeypatch.setenv("PHOTOCACHE_SEARCH_ITERATIONS", "9")
        monkeypatch.setenv("PHOTOCACHE_THUMBNAIL_SIZES", "50x50")
        config = load_config_hierarchy()
        assert config["search_iterations"] == 9
        assert config["thumbnail_sizes"] == [[50.0, 50.0]]
