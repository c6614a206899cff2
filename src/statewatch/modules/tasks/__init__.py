"""
任务调度模块
"""
from .monitor import PromptMonitor
from .scheduler import SchedulerConfig, StateAwareScheduler

__all__ = ["PromptMonitor", "SchedulerConfig", "StateAwareScheduler"]
