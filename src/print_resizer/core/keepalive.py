"""长时间任务期间的保活钩子。"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol

LOGGER = logging.getLogger(__name__)


class KeepAlive(Protocol):
    """宿主环境提供的保活资源，只需支持开始/结束受保护区间。"""

    def begin(self) -> None: ...

    def end(self) -> None: ...


class NullKeepAlive:
    """不做任何事情的默认实现。"""

    def begin(self) -> None:
        LOGGER.debug("保活区间开始")

    def end(self) -> None:
        LOGGER.debug("保活区间结束")


@contextmanager
def keep_alive_scope(keep_alive: Optional[KeepAlive] = None) -> Iterator[None]:
    """进入时调用一次 begin()，退出时无论成败都调用一次 end()。"""

    resource = keep_alive or NullKeepAlive()
    resource.begin()
    try:
        yield
    finally:
        resource.end()
