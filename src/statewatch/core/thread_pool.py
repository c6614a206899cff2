"""
全局线程池管理

锚点定位与输入动作都是阻塞调用，统一 offload 到单线程 I/O 池执行：

- 单线程保证锚点注册表与外部协作者只被一个工作线程访问
- 事件循环不被阻塞，停止计时器可以与任何一次 tick 竞争

停止时的清理动作（指针归位）使用独立的单线程清理池，
即使 I/O 线程被一次不返回的定位卡住，清理动作也能执行。
"""
from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .logger import logger

_io_pool: Optional[ThreadPoolExecutor] = None
_cleanup_pool: Optional[ThreadPoolExecutor] = None
_io_lock = threading.Lock()


def get_io_pool() -> ThreadPoolExecutor:
    """获取单线程 I/O 池（定位、点击、输入）。"""
    global _io_pool
    with _io_lock:
        if _io_pool is None:
            _io_pool = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="anchor-io",
            )
            logger.info("I/O 线程池已创建: max_workers=1")
        return _io_pool


def get_cleanup_pool() -> ThreadPoolExecutor:
    """获取清理线程池（停止时的收尾动作）。"""
    global _cleanup_pool
    with _io_lock:
        if _cleanup_pool is None:
            _cleanup_pool = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="cleanup",
            )
            logger.info("清理线程池已创建: max_workers=1")
        return _cleanup_pool


async def _run_in(pool: ThreadPoolExecutor, func, args, timeout: Optional[float]):
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(pool, func, *args)
    if timeout is None:
        return await future
    return await asyncio.wait_for(future, timeout)


async def run_in_io(func, *args, timeout: Optional[float] = None):
    """在 I/O 线程池中执行同步函数并 await 结果。

    timeout 到期时抛出 asyncio.TimeoutError；工作线程中的调用无法被强制中断，
    但调用方不再等待它。
    """
    return await _run_in(get_io_pool(), func, args, timeout)


async def run_in_cleanup(func, *args, timeout: Optional[float] = None):
    """在清理线程池中执行同步函数，不排在 I/O 池的定位调用之后。"""
    return await _run_in(get_cleanup_pool(), func, args, timeout)


def shutdown_pools() -> None:
    """关闭线程池（在应用退出时调用）。"""
    global _io_pool, _cleanup_pool
    with _io_lock:
        for pool in (_io_pool, _cleanup_pool):
            if pool:
                pool.shutdown(wait=False)
        _io_pool = None
        _cleanup_pool = None
    logger.info("线程池已关闭")
