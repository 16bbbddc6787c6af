"""
配置管理模块
初次启动时生成默认配置文件供修改
"""

from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


CONFIG_FILE = Path("config.yaml")


class ExecutorProperties(BaseSettings):
    """请求执行器配置（可通过 ONEOAUTH_EXECUTOR_* 环境变量覆盖）"""

    model_config = SettingsConfigDict(env_prefix="ONEOAUTH_EXECUTOR_")

    # 连接超时
    connect_timeout: timedelta = timedelta(seconds=2)
    # 读取超时
    read_timeout: timedelta = timedelta(seconds=5)
    # 最大并发连接数
    max_concurrent_requests: int = Field(default=64, ge=1)
    # 空闲连接的最长保留时间
    max_idle_time: timedelta = timedelta(minutes=5)
    # keep-alive 时长
    keep_alive_timeout: timedelta = timedelta(minutes=3)
    # 传输层重试次数（连接拒绝、DNS、TLS 错误不重试）
    retry_times: int = Field(default=1, ge=0)
    # 代理地址，例如 http://127.0.0.1:7890
    proxy: Optional[str] = None
    # 留给特定执行器实现的自定义参数
    custom: dict[str, Optional[str]] = Field(default_factory=dict)


class ServerConfig(BaseModel):
    """服务器配置"""
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    # 外部访问地址
    external_url: str = "http://localhost:8000"


class PlatformConfig(BaseModel):
    """单个平台的配置"""
    platform: str
    # 同一平台下区分多个应用，默认为平台名
    identifier: Optional[str] = None
    application: dict[str, Any] = Field(default_factory=dict)
    # 为空时使用平台的默认授权属性
    authorization: Optional[dict[str, Any]] = None

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("platform 不能为空")
        return v


class Config(BaseModel):
    """主配置"""
    server: ServerConfig = Field(default_factory=ServerConfig)
    executor: ExecutorProperties = Field(default_factory=ExecutorProperties)
    platforms: list[PlatformConfig] = Field(default_factory=list)


def generate_default_config() -> Config:
    """生成默认配置"""
    config = Config()
    # 添加一个示例平台
    config.platforms.append(
        PlatformConfig(
            platform="github",
            application={
                "client_id": "example_client_id",
                "client_secret": "example_client_secret_change_me",
                "authorize_callback": "http://localhost:8000/oauth2/github/callback",
            },
            authorization={"scopes": ["read:user", "user:email"]},
        )
    )
    return config


def load_config(path: Path = CONFIG_FILE) -> Config:
    """加载配置文件，如果不存在则创建默认配置"""
    if not path.exists():
        config = generate_default_config()
        save_config(config, path)
        print(f"已生成默认配置文件: {path.absolute()}")
        print("请修改配置文件后重新启动程序")
        return config

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return Config.model_validate(data)


def save_config(config: Config, path: Path = CONFIG_FILE) -> None:
    """保存配置到文件"""
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(
            config.model_dump(mode="json"),
            f,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )


# 全局配置实例
_config: Config | None = None


def get_config() -> Config:
    """获取配置实例"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置"""
    global _config
    _config = load_config()
    return _config
