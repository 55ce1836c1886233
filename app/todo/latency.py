"""
延迟 / 失败注入策略

每次 API 调用向策略要一个 Outcome（延迟毫秒数 + 是否成功）。
测试注入 FixedFaultPolicy / ScriptedFaultPolicy 即可得到确定性行为，无需改动存储逻辑。
"""

import random
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Protocol


@dataclass(frozen=True)
class Outcome:
    """单次调用的模拟结果"""

    delay_ms: int  # 模拟网络往返延迟
    succeeds: bool  # 是否通过随机失败判定


class FaultPolicy(Protocol):
    def decide(self, operation: str) -> Outcome: ...


class RandomFaultPolicy:
    """
    随机策略：延迟 = randint(0, max_steps - 1) * step_ms，
    成功判定 = random() < success_rate。
    """

    def __init__(
        self,
        success_rate: float = 1.0,
        step_ms: int = 100,
        max_steps: int = 10,
        rng: random.Random | None = None,
    ):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError(f"success_rate 必须在 [0, 1] 区间内: {success_rate}")
        if step_ms < 0 or max_steps < 1:
            raise ValueError("step_ms 不能为负，max_steps 至少为 1")
        self.success_rate = success_rate
        self.step_ms = step_ms
        self.max_steps = max_steps
        self._rng = rng or random.Random()

    def decide(self, operation: str) -> Outcome:
        delay_ms = self._rng.randrange(self.max_steps) * self.step_ms
        return Outcome(delay_ms=delay_ms, succeeds=self._rng.random() < self.success_rate)


@dataclass(frozen=True)
class FixedFaultPolicy:
    """固定策略：每次调用同样的延迟与结果"""

    delay_ms: int = 0
    succeeds: bool = True

    def decide(self, operation: str) -> Outcome:
        return Outcome(delay_ms=self.delay_ms, succeeds=self.succeeds)


class ScriptedFaultPolicy:
    """按顺序消费预设结果，用完后回落到 fallback"""

    def __init__(self, outcomes: Iterable[Outcome], fallback: Outcome = Outcome(0, True)):
        self._outcomes = deque(outcomes)
        self._fallback = fallback

    def decide(self, operation: str) -> Outcome:
        if self._outcomes:
            return self._outcomes.popleft()
        return self._fallback
