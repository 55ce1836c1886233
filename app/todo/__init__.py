"""
Todo 模块：模拟远端 Todo 后端

提供内存存储 + 异步请求服务 TodoApi（延迟/失败注入），
以及把每次成功修改按序广播给监听者的 TodoSocket。
"""

from app.todo.api import TodoApi
from app.todo.envelope import ApiError, ApiResponse, ApiResponseError
from app.todo.latency import FixedFaultPolicy, Outcome, RandomFaultPolicy, ScriptedFaultPolicy
from app.todo.mirror import TodoMirror
from app.todo.notifications import Notification
from app.todo.schemas import Todo, TodoList
from app.todo.socket import CallbackListener, TodoListener, TodoSocket

__all__ = [
    "ApiError",
    "ApiResponse",
    "ApiResponseError",
    "CallbackListener",
    "FixedFaultPolicy",
    "Notification",
    "Outcome",
    "RandomFaultPolicy",
    "ScriptedFaultPolicy",
    "Todo",
    "TodoApi",
    "TodoList",
    "TodoListener",
    "TodoMirror",
    "TodoSocket",
]
