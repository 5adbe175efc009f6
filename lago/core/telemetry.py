import time
import threading
import numpy as np
from collections import deque

REWRITE_PATHS = ("none", "ai", "fallback")


class Telemetry:
    """Thread-safe request telemetry collector."""
    def __init__(self, max_latencies=10000):
        self._lock = threading.Lock()
        self.start_time = time.time()
        self.total_requests = 0
        self.total_errors = 0
        self.latencies: deque[float] = deque(maxlen=max_latencies)
        self.severity_counts = {}
        self.rewrite_counts = {path: 0 for path in REWRITE_PATHS}

    def record_request(self, latency_ms, severity, rewrite_path="none", is_error=False):
        with self._lock:
            self.total_requests += 1
            if is_error:
                self.total_errors += 1
            else:
                self.rewrite_counts[rewrite_path] = self.rewrite_counts.get(rewrite_path, 0) + 1
            self.latencies.append(latency_ms)
            self.severity_counts[severity] = self.severity_counts.get(severity, 0) + 1

    def snapshot(self, models=None):
        with self._lock:
            uptime = time.time() - self.start_time
            lats = np.array(self.latencies) if self.latencies else np.array([0])
            rewrites = self.rewrite_counts["ai"] + self.rewrite_counts["fallback"]
            return {
                "uptime_seconds": round(uptime, 1),
                "uptime_human": _format_uptime(uptime),
                "total_requests": self.total_requests,
                "total_errors": self.total_errors,
                "error_rate": round(self.total_errors / max(self.total_requests, 1), 4),
                "rewrites": dict(self.rewrite_counts),
                "fallback_rate": round(self.rewrite_counts["fallback"] / max(rewrites, 1), 4),
                "latency": {
                    "mean_ms": round(float(np.mean(lats)), 2),
                    "p50_ms": round(float(np.median(lats)), 2),
                    "p95_ms": round(float(np.percentile(lats, 95)), 2),
                    "p99_ms": round(float(np.percentile(lats, 99)), 2),
                    "max_ms": round(float(np.max(lats)), 2),
                    "samples": len(self.latencies),
                },
                "severity_distribution": dict(sorted(
                    self.severity_counts.items(), key=lambda x: -x[1]
                )),
                "requests_per_second": round(
                    self.total_requests / max(uptime, 1), 1
                ),
                "models": models or {},
            }


def _format_uptime(seconds):
    h, r = divmod(int(seconds), 3600)
    m, s = divmod(r, 60)
    if h > 0:
        return f"{h}h {m}m {s}s"
    elif m > 0:
        return f"{m}m {s}s"
    return f"{s}s"
