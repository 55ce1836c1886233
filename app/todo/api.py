"""
TodoApi：模拟远端 Todo 后端的请求服务

每次调用的生命周期：
1. 向 FaultPolicy 要 Outcome（延迟 + 是否成功）
2. await 模拟延迟（唯一的挂起点，之前不产生任何可见效果）
3. 随机失败 → 500 transient_failure，不修改
4. 提交单元（同步执行，中间没有 await，其他调用无法穿插）：
   校验下标 → 构造值拷贝与通知 → 修改存储 → 派发恰好一条通知
   越界 → 400，未修改；意外异常 → 500 unexpected_fault，未修改

并发语义：
- 多个调用可同时处于延迟中，完成顺序只由各自延迟决定，与调用顺序无关
- 不可取消：调用在独立 Task 中结算，调用方被取消（shield）不影响已排期的提交
- 调用方的结果与广播投递结果相互独立：监听者异常不会影响返回值

错误一律以失败信封返回给直接调用方，服务内不记录错误日志、不吞错误。
"""

import asyncio
from typing import Callable, TypeVar

import structlog

from app.config import get_settings
from app.observability.context import bind_request
from app.observability.metrics import API_CALL_TOTAL, API_LATENCY
from app.todo.envelope import ApiError, ApiResponse, IndexOutOfBound
from app.todo.latency import FaultPolicy, RandomFaultPolicy
from app.todo.notifications import (
    AddItemMessage,
    CreateListMessage,
    DeleteListMessage,
    EditItemMessage,
    MoveItemMessage,
    RemoveItemMessage,
)
from app.todo.schemas import Todo, TodoList, copy_todo
from app.todo.socket import TodoSocket
from app.todo.store import TodoStore

log = structlog.get_logger()

T = TypeVar("T")


def _default_policy() -> RandomFaultPolicy:
    """未注入策略时按配置随机：0~900ms 延迟 + API_SUCCESS_RATE 成功率"""
    settings = get_settings()
    return RandomFaultPolicy(
        success_rate=settings.API_SUCCESS_RATE,
        step_ms=settings.API_LATENCY_STEP_MS,
        max_steps=settings.API_LATENCY_MAX_STEPS,
    )


class TodoApi:
    """模拟的异步、可失败的 Todo 后端"""

    def __init__(
        self,
        socket: TodoSocket,
        policy: FaultPolicy | None = None,
        store: TodoStore | None = None,
    ):
        self._socket = socket
        self._policy = policy or _default_policy()
        self._store = store if store is not None else TodoStore()
        self._pending: set[asyncio.Task] = set()

    @property
    def store(self) -> TodoStore:
        return self._store

    @property
    def policy(self) -> FaultPolicy:
        return self._policy

    @property
    def pending(self) -> int:
        """当前处于延迟中的调用数"""
        return len(self._pending)

    async def join(self) -> None:
        """等待所有已排期的调用结算完毕"""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # ── 调用骨架 ──

    async def _call(self, operation: str, commit: Callable[[], T]) -> ApiResponse[T]:
        task = asyncio.ensure_future(self._resolve(operation, commit))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return await asyncio.shield(task)

    async def _resolve(self, operation: str, commit: Callable[[], T]) -> ApiResponse[T]:
        bind_request(operation)
        outcome = self._policy.decide(operation)
        API_LATENCY.labels(operation=operation).observe(outcome.delay_ms)

        await asyncio.sleep(outcome.delay_ms / 1000)

        if not outcome.succeeds:
            return self._reply(operation, ApiResponse.fail(ApiError.transient()))

        try:
            result = commit()
        except IndexOutOfBound:
            return self._reply(operation, ApiResponse.fail(ApiError.index_out_of_bound()))
        except Exception:
            return self._reply(operation, ApiResponse.fail(ApiError.unexpected()))

        log.debug("修改已提交", delay_ms=outcome.delay_ms)
        return self._reply(operation, ApiResponse.success(result))

    @staticmethod
    def _reply(operation: str, response: ApiResponse[T]) -> ApiResponse[T]:
        status = "success" if response.ok else response.error.kind
        API_CALL_TOTAL.labels(operation=operation, status=status).inc()
        return response

    # ── 读取 ──

    async def get_todo_lists(self) -> ApiResponse[list[TodoList]]:
        """返回全部清单的深拷贝"""
        return await self._call("get_todo_lists", self._store.snapshot)

    # ── 修改 ──

    async def create_list(self, name: str) -> ApiResponse[int]:
        """新建空清单，返回新清单下标"""

        def commit() -> int:
            message = CreateListMessage(name=name)
            index = self._store.append_list(message.name)
            self._socket.dispatch(message)
            return index

        return await self._call("create_list", commit)

    async def delete_list(self, list_index: int) -> ApiResponse[bool]:
        """删除指定下标的清单，越界返回 400"""

        def commit() -> bool:
            self._store.check_list(list_index)
            message = DeleteListMessage(index=list_index)
            self._store.delete_list(list_index)
            self._socket.dispatch(message)
            return True

        return await self._call("delete_list", commit)

    async def add_todo(self, list_index: int, item: Todo | dict) -> ApiResponse[bool]:
        """向清单末尾追加条目的拷贝"""

        def commit() -> bool:
            self._store.check_list(list_index)
            value = copy_todo(item)
            message = AddItemMessage(list_index=list_index, item=value.model_copy(deep=True))
            self._store.append_item(list_index, value)
            self._socket.dispatch(message)
            return True

        return await self._call("add_todo", commit)

    async def remove_todo(self, list_index: int, item_index: int) -> ApiResponse[bool]:
        """删除条目，清单或条目下标越界返回 400"""

        def commit() -> bool:
            self._store.check_item(list_index, item_index)
            message = RemoveItemMessage(list_index=list_index, item_index=item_index)
            self._store.remove_item(list_index, item_index)
            self._socket.dispatch(message)
            return True

        return await self._call("remove_todo", commit)

    async def move_todo(self, list_index: int, source_index: int, dest_index: int) -> ApiResponse[bool]:
        """
        移动条目：先移除 source，再插入修正后的位置。
        dest_index > source_index 时实际插入 dest_index - 1，否则插入 dest_index。
        通知里记录的是原始 dest_index。
        """

        def commit() -> bool:
            self._store.check_item(list_index, source_index)
            message = MoveItemMessage(
                list_index=list_index,
                source_index=source_index,
                dest_index=dest_index,
            )
            self._store.move_item(list_index, source_index, dest_index)
            self._socket.dispatch(message)
            return True

        return await self._call("move_todo", commit)

    async def edit_todo(self, list_index: int, item_index: int, new_value: Todo | dict) -> ApiResponse[bool]:
        """用 new_value 的拷贝整体替换条目"""

        def commit() -> bool:
            self._store.check_item(list_index, item_index)
            value = copy_todo(new_value)
            message = EditItemMessage(
                list_index=list_index,
                item_index=item_index,
                new_value=value.model_copy(deep=True),
            )
            self._store.replace_item(list_index, item_index, value)
            self._socket.dispatch(message)
            return True

        return await self._call("edit_todo", commit)
