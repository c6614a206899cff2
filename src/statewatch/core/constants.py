"""
常量和枚举定义
"""
from enum import Enum


class SchedulerState(str, Enum):
    """调度器状态"""
    IDLE = "idle"
    SCHEDULED = "scheduled"
    VERIFYING = "verifying"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ActionKind(str, Enum):
    """执行器动作类型"""
    CLICK = "click"
    TYPE = "type"
    HIGHLIGHT = "highlight"
    MOVE = "move"


class StateMatchMode(str, Enum):
    """状态判定方式：任一锚点命中 / 全部锚点命中"""
    ANY = "any"
    ALL = "all"


# 动作目标：同一次转换中最近一次成功定位的区域
LAST_LOCATED = "last-located-region"

# 默认状态 / 锚点名称
PROMPT_STATE = "Prompt"
WORKING_STATE = "Working"
PROMPT_ANCHOR = "ClaudePrompt"
ICON_ANCHOR = "ClaudeIcon"

# 提示符状态下输入的继续指令
CONTINUE_COMMAND = "continue\n"

# 回放匹配概率取值范围
MIN_PROBABILITY = 0
MAX_PROBABILITY = 100
