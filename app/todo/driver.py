"""
RandomActionExecutor：随机负载驱动

启动后循环：等待 [min_period, max_period) 秒内的随机时长 → 随机执行一个操作。
只通过 TodoApi 的公开接口访问数据，不接触存储或广播通道。
探测性质：任何失败都只记 debug 日志后丢弃。
"""

import asyncio
import random
import string

import structlog

from app.config import get_settings
from app.todo.api import TodoApi
from app.todo.schemas import Todo, TodoList

log = structlog.get_logger()


class RandomActionExecutor:
    """对模拟 API 持续发起随机操作"""

    def __init__(self, api: TodoApi, rng: random.Random | None = None):
        settings = get_settings()
        self._api = api
        self._rng = rng or random.Random()
        self._task: asyncio.Task | None = None
        self.min_period = settings.DRIVER_MIN_PERIOD
        self.max_period = settings.DRIVER_MAX_PERIOD
        self.name_length = settings.DRIVER_NAME_LENGTH
        self.description_length = settings.DRIVER_DESCRIPTION_LENGTH
        self.actions = [
            self.move_todo,
            self.add_todo,
            self.create_list,
            self.delete_list,
            self.remove_todo,
            self.edit_todo,
        ]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def launch(self, min_period: float | None = None, max_period: float | None = None) -> None:
        """
        开始随机操作。

        min_period / max_period 单位为秒，均不能为负，且 min_period < max_period。
        不传时沿用配置中的默认值。
        """
        min_period = self.min_period if min_period is None else min_period
        max_period = self.max_period if max_period is None else max_period
        if min_period < 0 or max_period < 0 or min_period >= max_period:
            raise ValueError("min_period 必须小于 max_period，且两者均不能为负")
        self.min_period = min_period
        self.max_period = max_period
        if not self.running:
            self._task = asyncio.create_task(self._run())
            log.info("随机负载已启动", min_period=min_period, max_period=max_period)

    async def stop(self) -> None:
        """停止循环，已发出的 API 调用照常结算"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("随机负载已停止")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._rng.uniform(self.min_period, self.max_period))
            await self.perform_random_action()

    async def perform_random_action(self) -> None:
        action = self._rng.choice(self.actions)
        try:
            await action()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # 探测性驱动：不关心结果，丢弃所有异常
            log.debug("随机操作异常，已忽略", action=action.__name__, error=str(e))

    # ── 辅助 ──

    def _random_index(self, sequence: list) -> int | None:
        if not sequence:
            return None
        return self._rng.randrange(len(sequence))

    def _random_word(self, length: int) -> str:
        return "".join(self._rng.choice(string.ascii_lowercase) for _ in range(length))

    async def _fetch_lists(self) -> list[TodoList] | None:
        response = await self._api.get_todo_lists()
        if not response.ok:
            log.debug("读取清单失败，本轮跳过", code=response.error.code)
            return None
        return response.response

    def _ignore(self, action: str, response) -> None:
        if not response.ok:
            log.debug("随机操作失败，已忽略", action=action, code=response.error.code)

    # ── 随机操作 ──

    async def move_todo(self) -> None:
        todo_lists = await self._fetch_lists()
        if not todo_lists:
            return
        list_index = self._random_index(todo_lists)
        items = todo_lists[list_index].items
        if len(items) < 2:
            return
        source_index = self._random_index(items)
        dest_index = self._random_index(items)
        while dest_index == source_index:
            dest_index = self._random_index(items)
        self._ignore("move_todo", await self._api.move_todo(list_index, source_index, dest_index))

    async def add_todo(self) -> None:
        todo_lists = await self._fetch_lists()
        if not todo_lists:
            return
        item = Todo(
            description=self._random_word(self.description_length),
            done=self._rng.random() >= 0.5,
        )
        self._ignore("add_todo", await self._api.add_todo(self._random_index(todo_lists), item))

    async def remove_todo(self) -> None:
        todo_lists = await self._fetch_lists()
        if not todo_lists:
            return
        list_index = self._random_index(todo_lists)
        item_index = self._random_index(todo_lists[list_index].items)
        if item_index is None:
            return
        self._ignore("remove_todo", await self._api.remove_todo(list_index, item_index))

    async def edit_todo(self) -> None:
        todo_lists = await self._fetch_lists()
        if not todo_lists:
            return
        list_index = self._random_index(todo_lists)
        items = todo_lists[list_index].items
        item_index = self._random_index(items)
        if item_index is None:
            return
        new_value = items[item_index].model_copy(update={"done": not items[item_index].done})
        self._ignore("edit_todo", await self._api.edit_todo(list_index, item_index, new_value))

    async def create_list(self) -> None:
        self._ignore("create_list", await self._api.create_list(self._random_word(self.name_length)))

    async def delete_list(self) -> None:
        todo_lists = await self._fetch_lists()
        if not todo_lists:
            return
        self._ignore("delete_list", await self._api.delete_list(self._random_index(todo_lists)))
