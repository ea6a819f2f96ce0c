"""
导出器示例

演示如何把进程内缓存统计周期性导出到 DogStatsD。

运行:
    python examples/exporter_usage.py            # 只记录日志，不需要 StatsD 代理
    python examples/exporter_usage.py --statsd   # 发送到 DD_AGENT_HOST:DD_AGENT_PORT
"""

import argparse
import logging
import random
import time

from groupcache_statsd import (
    CacheType,
    Exporter,
    ExporterOptions,
    LoggingSink,
    MetricSink,
    StatsDClientOptions,
    StatsRecorder,
    new_statsd_client,
)


def simulate_cache_operations(recorder: StatsRecorder, operations: int = 20) -> None:
    """模拟缓存操作以产生统计数据"""
    for _ in range(operations):
        hit = random.random() < 0.6
        recorder.record_get(hit=hit)
        if not hit:
            recorder.record_load(local=True)
            recorder.observe_peer_latency(random.randint(1, 50))
        if random.random() < 0.1:
            recorder.record_eviction(CacheType.MAIN)

    recorder.set_items(CacheType.MAIN, items=random.randint(10, 20), nbytes=random.randint(1000, 2000))


def main() -> None:
    parser = argparse.ArgumentParser(description="groupcache-statsd 导出器示例")
    parser.add_argument("--statsd", action="store_true", help="发送到真实的 StatsD 代理")
    parser.add_argument("--interval", type=float, default=5.0, help="导出间隔（秒）")
    parser.add_argument("--rounds", type=int, default=4, help="模拟轮数")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

    client: MetricSink
    if args.statsd:
        client = new_statsd_client(StatsDClientOptions(namespace="groupcache", debug=True))
    else:
        client = LoggingSink()

    # 组可以在运行中增减，导出器每个周期重新查找
    groups = [StatsRecorder("files")]

    with Exporter(
        client,
        list_groups=lambda: list(groups),
        options=ExporterOptions(export_interval=args.interval, debug=args.statsd),
    ):
        for i in range(args.rounds):
            if i == args.rounds // 2:
                groups.append(StatsRecorder("users"))
            for recorder in groups:
                simulate_cache_operations(recorder)
            time.sleep(args.interval)


if __name__ == "__main__":
    main()
