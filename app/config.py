"""
全局配置模块：通过 pydantic-settings 读取 .env 环境变量
"""

from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用全局配置，从 .env 文件加载"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 模拟 API ──
    API_SUCCESS_RATE: float = 1.0  # 成功概率 [0, 1]，1.0 = 永不随机失败
    API_LATENCY_STEP_MS: int = 100  # 延迟步长（毫秒）
    API_LATENCY_MAX_STEPS: int = 10  # 延迟取 [0, MAX_STEPS) 个步长，默认 0~900ms

    # ── 随机负载驱动 ──
    DRIVER_MIN_PERIOD: float = 1.0  # 两次随机操作的最小间隔（秒）
    DRIVER_MAX_PERIOD: float = 5.0  # 两次随机操作的最大间隔（秒）
    DRIVER_NAME_LENGTH: int = 5  # 随机清单名长度
    DRIVER_DESCRIPTION_LENGTH: int = 15  # 随机条目描述长度

    # ── 应用 ──
    ENV: str = "development"  # development | production
    APP_NAME: str = "fake-todo-backend"
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        """成功率、延迟和驱动间隔必须落在合法区间"""
        if not 0.0 <= self.API_SUCCESS_RATE <= 1.0:
            raise ValueError("API_SUCCESS_RATE 必须在 [0, 1] 区间内")
        if self.API_LATENCY_STEP_MS < 0 or self.API_LATENCY_MAX_STEPS < 1:
            raise ValueError("API_LATENCY_STEP_MS 不能为负，API_LATENCY_MAX_STEPS 至少为 1")
        if (
            self.DRIVER_MIN_PERIOD < 0
            or self.DRIVER_MAX_PERIOD < 0
            or self.DRIVER_MIN_PERIOD >= self.DRIVER_MAX_PERIOD
        ):
            raise ValueError("DRIVER_MIN_PERIOD 必须小于 DRIVER_MAX_PERIOD，且两者均不能为负")
        return self


@lru_cache
def get_settings() -> Settings:
    """单例获取配置（带缓存）"""
    return Settings()
