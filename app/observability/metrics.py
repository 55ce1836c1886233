"""
Prometheus 指标定义

所有指标统一在此文件定义，API 服务和广播通道按需引用。
"""

from prometheus_client import Counter, Histogram

# ── API 调用指标 ──

API_CALL_TOTAL = Counter(
    "todo_api_call_total",
    "模拟 API 调用总数",
    ["operation", "status"],  # status: success/transient_failure/precondition_violation/unexpected_fault
)

API_LATENCY = Histogram(
    "todo_api_latency_ms",
    "模拟网络延迟（毫秒）",
    ["operation"],
    buckets=[0, 100, 200, 300, 500, 700, 900, 2000],
)

# ── 广播指标 ──

NOTIFICATION_TOTAL = Counter(
    "todo_notification_total",
    "已广播通知总数",
    ["kind"],
)

LISTENER_ERROR_TOTAL = Counter(
    "todo_listener_error_total",
    "监听者处理通知时抛出异常的次数",
    ["listener"],
)
