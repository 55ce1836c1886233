"""
控制台主入口：挂上随机负载跑一段时间，核对服务端状态与镜像是否一致

运行方式：
    python -m app.main --seconds 10 --success-rate 0.8
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# 将项目根目录添加到 python path，以便直接运行 main.py 时能找到 app 模块
sys.path.append(str(Path(__file__).resolve().parent.parent))

import structlog

from app.config import get_settings
from app.observability.logging_config import setup_logging
from app.todo.api import TodoApi
from app.todo.driver import RandomActionExecutor
from app.todo.latency import RandomFaultPolicy
from app.todo.mirror import TodoMirror
from app.todo.notifications import Notification
from app.todo.socket import CallbackListener, TodoSocket

settings = get_settings()
log = structlog.get_logger()


def _log_notification(message: Notification) -> None:
    log.info("收到通知", sequence_id=message.sequence_id, **message.message.model_dump())


async def run(seconds: float, success_rate: float, min_period: float, max_period: float) -> bool:
    """跑 seconds 秒随机负载，返回镜像是否与服务端一致"""
    socket = TodoSocket()
    policy = RandomFaultPolicy(
        success_rate=success_rate,
        step_ms=settings.API_LATENCY_STEP_MS,
        max_steps=settings.API_LATENCY_MAX_STEPS,
    )
    api = TodoApi(socket, policy)
    mirror = TodoMirror()
    socket.add_listener(CallbackListener(_log_notification, name="console"))
    socket.add_listener(mirror)

    driver = RandomActionExecutor(api)
    driver.launch(min_period, max_period)
    await asyncio.sleep(seconds)
    await driver.stop()
    await api.join()

    server_state = api.store.snapshot()
    mirror_state = mirror.snapshot()
    consistent = mirror.consistent and server_state == mirror_state
    print(json.dumps([lst.model_dump() for lst in server_state], ensure_ascii=False, indent=2))
    log.info(
        "运行结束",
        notifications=mirror.received,
        lists=len(server_state),
        consistent=consistent,
    )
    return consistent


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="模拟 Todo 后端 + 随机负载")
    parser.add_argument("--seconds", type=float, default=10.0, help="运行时长（秒）")
    parser.add_argument("--success-rate", type=float, default=settings.API_SUCCESS_RATE)
    parser.add_argument("--min-period", type=float, default=settings.DRIVER_MIN_PERIOD)
    parser.add_argument("--max-period", type=float, default=settings.DRIVER_MAX_PERIOD)
    args = parser.parse_args(argv)

    setup_logging(env=settings.ENV, level=settings.LOG_LEVEL)
    log.info("应用启动", env=settings.ENV, app=settings.APP_NAME)
    consistent = asyncio.run(run(args.seconds, args.success_rate, args.min_period, args.max_period))
    return 0 if consistent else 1


if __name__ == "__main__":
    sys.exit(main())
