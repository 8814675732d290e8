"""
配置单元测试

测试 elastic_devtools/config/settings.py 的多源配置优先级。
"""

import pytest

from elastic_devtools.config.settings import (
    Environment,
    Settings,
    detect_environment,
    get_settings,
    reload_settings,
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """写入临时 YAML 配置文件"""
    path = tmp_path / "conf.yaml"
    monkeypatch.setenv("ELASTIC_DEVTOOLS_CONFIG_FILE", str(path))
    return path


class TestSettingsSources:
    """测试配置来源"""

    def test_defaults(self, config_file):
        settings = Settings()

        assert settings.host_list == ["http://localhost:9200"]
        assert settings.max_retries == 3
        assert settings.default_page_size == 25
        assert settings.index_prefix == ""

    def test_yaml_file(self, config_file):
        config_file.write_text("hosts: http://yaml:9200\nindex_prefix: tenant\n")

        settings = Settings()
        assert settings.hosts == "http://yaml:9200"
        assert settings.index_prefix == "tenant"

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        """环境变量优先于 YAML"""
        config_file.write_text("hosts: http://yaml:9200\nmax_retries: 1\n")
        monkeypatch.setenv("ELASTIC_DEVTOOLS_HOSTS", "http://env:9200")

        settings = Settings()
        assert settings.hosts == "http://env:9200"
        assert settings.max_retries == 1

    def test_init_overrides_env(self, config_file, monkeypatch):
        monkeypatch.setenv("ELASTIC_DEVTOOLS_MAX_RETRIES", "7")
        assert Settings(max_retries=2).max_retries == 2

    def test_host_list_splits(self, config_file):
        settings = Settings(hosts="http://a:9200, ,http://b:9200")
        assert settings.host_list == ["http://a:9200", "http://b:9200"]

    def test_empty_hosts_rejected(self, config_file):
        with pytest.raises(ValueError):
            Settings(hosts=" , ")

    def test_production_forces_json_logs(self, config_file):
        settings = Settings(environment="production", log_format="console")
        assert settings.log_format == "json"


class TestEnvironment:
    """测试环境检测"""

    def test_detect_from_env(self, monkeypatch):
        monkeypatch.setenv("ELASTIC_DEVTOOLS_ENV", "staging")
        assert detect_environment() is Environment.STAGING

    def test_unknown_falls_back_to_development(self, monkeypatch):
        monkeypatch.setenv("ELASTIC_DEVTOOLS_ENV", "moon")
        assert detect_environment() is Environment.DEVELOPMENT


class TestSingleton:
    """测试配置单例"""

    def test_get_settings_cached(self, config_file):
        reload_settings()
        assert get_settings() is get_settings()

    def test_reload_settings(self, config_file, monkeypatch):
        first = reload_settings()
        monkeypatch.setenv("ELASTIC_DEVTOOLS_INDEX_PREFIX", "reloaded")

        second = reload_settings()
        assert second is not first
        assert second.index_prefix == "reloaded"
