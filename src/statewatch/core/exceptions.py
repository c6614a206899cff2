"""
异常定义

未找到锚点（NotFound）与依赖目标暂无匹配（ResolutionUnavailable）都不是异常，
统一以 None 返回。
"""


class StateWatchError(Exception):
    """基础异常"""


class ConfigurationError(StateWatchError):
    """配置错误：注册表不一致、参数非法、动作目标缺失等"""


class InvalidRegionError(ConfigurationError):
    """区域宽或高不为正"""


class ActionFailedError(StateWatchError):
    """点击/输入等动作在系统输入层失败"""


class TransitionStepError(StateWatchError):
    """转换中的单个步骤失败"""

    def __init__(self, step_index: int, message: str):
        super().__init__(f"step {step_index}: {message}")
        self.step_index = step_index


class SchedulerError(StateWatchError):
    """调度器致命错误：无法启动或重复启动已停止的调度器"""
