"""
共享 fixture：广播通道、记录型监听者、零延迟必成功的 TodoApi
"""

import pytest

from app.todo.api import TodoApi
from app.todo.latency import FixedFaultPolicy
from app.todo.socket import TodoSocket

from .fixtures import Recorder


@pytest.fixture
def socket() -> TodoSocket:
    return TodoSocket()


@pytest.fixture
def recorder(socket: TodoSocket) -> Recorder:
    rec = Recorder()
    socket.add_listener(rec)
    return rec


@pytest.fixture
def api(socket: TodoSocket) -> TodoApi:
    return TodoApi(socket, FixedFaultPolicy())
