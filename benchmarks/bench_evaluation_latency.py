"""Benchmark: Compliance evaluation latency and throughput.

Measures per-call latency of ComplianceEngine.evaluate() against the default
policy catalogue, and the throughput of ComplianceService.check() including
the in-memory audit write.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sovereign_compliance.config import EngineConfig
from sovereign_compliance.engine import ComplianceEngine
from sovereign_compliance.policy.loader import load_catalogue
from sovereign_compliance.request import ComplianceRequest
from sovereign_compliance.service import create_service

_WARMUP: int = 100
_ITERATIONS: int = 3_000


def _make_request(sector_mode: str = "government") -> ComplianceRequest:
    """Build a cross-border request touching residency, geo and sector rules."""
    return ComplianceRequest(
        tenant_id="bench-tenant",
        operation="cross_border",  # type: ignore[arg-type]
        source_country="SA",
        target_country="AE",
        sector_mode=sector_mode,
        data_types=("government", "personal"),
        encrypted=True,
    )


def bench_evaluation_latency() -> dict[str, object]:
    """Benchmark ComplianceEngine.evaluate() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms.
    """
    engine = ComplianceEngine(load_catalogue())
    request = _make_request()

    # Warmup.
    for _ in range(_WARMUP):
        engine.evaluate(request)

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        engine.evaluate(request)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "evaluation_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_evaluation_latency] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def bench_audited_check_throughput() -> dict[str, object]:
    """Benchmark ComplianceService.check() throughput with in-memory audit."""
    service = create_service(EngineConfig(stats_cache_ttl_seconds=0))

    start = time.perf_counter()
    for _ in range(_ITERATIONS):
        service.check(
            "cross_border", "SA", "AE",
            sector_mode="government", tenant_id="bench-tenant",
            data_types=["government", "personal"], encrypted=True,
        )
    total = time.perf_counter() - start

    result: dict[str, object] = {
        "operation": "audited_check_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(total / _ITERATIONS * 1000, 4),
    }
    print(
        f"[bench_evaluation_latency] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning both benchmark result dicts."""
    return {
        "evaluation_latency": bench_evaluation_latency(),
        "audited_check_throughput": bench_audited_check_throughput(),
    }


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "evaluation_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
