"""配置管理

支持多源配置，优先级从高到低：
1. 初始化参数
2. 环境变量（ELASTIC_DEVTOOLS_*，.env 文件会先加载到环境变量）
3. YAML 配置文件（conf.yaml 或 ELASTIC_DEVTOOLS_CONFIG_FILE 指定的路径）
4. 默认值

环境变量命名规范：
- ELASTIC_DEVTOOLS_HOSTS（逗号分隔，如 "http://es1:9200,http://es2:9200"）
- ELASTIC_DEVTOOLS_MAX_RETRIES
- ELASTIC_DEVTOOLS_LOG_LEVEL
"""

import os
from enum import Enum
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

load_dotenv()

# YAML 配置文件默认路径
CONFIG_FILE = Path("conf.yaml")


class Environment(str, Enum):
    """环境类型"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"

    @property
    def is_development(self) -> bool:
        return self == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self == Environment.PRODUCTION

    @property
    def is_test(self) -> bool:
        return self == Environment.TEST


def detect_environment() -> Environment:
    """检测当前环境"""
    env = os.getenv("ELASTIC_DEVTOOLS_ENV", os.getenv("ENVIRONMENT", "development"))
    try:
        return Environment(env)
    except ValueError:
        return Environment.DEVELOPMENT


def config_file_path() -> Path:
    """解析 YAML 配置文件路径"""
    return Path(os.getenv("ELASTIC_DEVTOOLS_CONFIG_FILE", str(CONFIG_FILE)))


class Settings(BaseSettings):
    """应用配置"""

    environment: Environment = Field(default_factory=detect_environment)

    # ========== 日志配置 ==========
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # ========== Elasticsearch 配置 ==========
    hosts: str = "http://localhost:9200"
    username: str | None = None
    password: str | None = None
    api_key: str | None = None
    verify_certs: bool = True
    request_timeout: float = 30.0
    max_retries: int = Field(default=3, ge=0)
    retry_on_timeout: bool = False
    index_prefix: str = ""

    # ========== 分页配置 ==========
    default_page_size: int = Field(default=25, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="elastic_devtools_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("hosts")
    @classmethod
    def validate_hosts(cls, v: str) -> str:
        """验证主机列表非空"""
        if not any(host.strip() for host in v.split(",")):
            raise ValueError("hosts 至少需要包含一个 Elasticsearch 地址")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """YAML 配置位于环境变量之后、默认值之前"""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=config_file_path()),
            file_secret_settings,
        )

    @property
    def host_list(self) -> list[str]:
        """拆分后的主机地址列表"""
        return [host.strip() for host in self.hosts.split(",") if host.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.is_development

    @property
    def is_production(self) -> bool:
        return self.environment.is_production

    @property
    def is_test(self) -> bool:
        return self.environment.is_test

    def model_post_init(self, __context) -> None:
        """初始化后处理"""
        if self.is_production and self.log_format == "console":
            self.log_format = "json"


_settings: Settings | None = None


def get_settings() -> Settings:
    """获取配置实例（单例）

    Returns:
        Settings 实例
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """重新加载配置

    Returns:
        新的 Settings 实例
    """
    global _settings
    _settings = None
    return get_settings()
