"""
核心配置模块
"""
from typing import Dict, List, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # 运行模式（回放模式下不做真实屏幕搜索）
    mock_mode: bool = Field(default=False)
    fixtures_path: str = Field(default="")
    mock_probabilities: Dict[str, int] = Field(default_factory=dict)

    # 图像与屏幕
    image_path: str = Field(default="./images")
    screen_width: int = Field(default=1920)
    screen_height: int = Field(default=1080)

    # 搜索
    match_history_size: int = Field(default=5)
    default_similarity: float = Field(default=0.85)
    search_duration: float = Field(default=3.0)
    locate_timeout_margin: float = Field(default=2.0)
    not_found_warn_threshold: int = Field(default=5)
    state_match_mode: str = Field(default="any")

    # 监控调度
    monitoring_initial_delay: float = Field(default=5.0)
    monitoring_check_interval: float = Field(default=2.0)
    monitoring_max_iterations: Optional[int] = Field(default=None)
    monitoring_total_duration: Optional[float] = Field(default=None)
    monitoring_required_states: str = Field(default="Prompt")
    monitoring_rebuild_on_mismatch: bool = Field(default=True)
    monitoring_skip_if_states_missing: bool = Field(default=False)
    monitoring_icon_timeout: float = Field(default=5.0)
    monitoring_highlight: bool = Field(default=True)
    stop_grace_period: float = Field(default=5.0)
    neutral_position: str = Field(default="0,0")

    # 日志
    log_level: str = Field(default="INFO")
    log_path: str = Field(default="./logs")
    log_retention_days: int = Field(default=3)
    log_console_enabled: bool = Field(default=True)
    log_rotation: str = Field(default="00:00")

    @property
    def required_state_list(self) -> List[str]:
        """获取监控所需状态列表"""
        return [s.strip() for s in self.monitoring_required_states.split(",") if s.strip()]

    @property
    def neutral_point(self) -> Tuple[int, int]:
        """获取指针停放位置"""
        x, y = (int(v.strip()) for v in self.neutral_position.split(","))
        return x, y


# 全局配置实例
settings = Settings()
