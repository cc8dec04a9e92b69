from __future__ import annotations

import logging
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

# ---------------- Utilities ----------------

LabelKey = Tuple[Tuple[str, str], ...]  # sorted (k, v) pairs
SeriesKey = Tuple[str, LabelKey]


def _labels_key(labels: Dict[str, Any] | None) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _pct(sorted_vals: Iterable[float], q: float) -> float:
    vals = list(sorted_vals)
    if not vals:
        return 0.0
    idx = max(0, min(len(vals) - 1, int(round((len(vals) - 1) * q))))
    return vals[idx]


# ---------------- Series ----------------

class _Series:
    kind = "series"

    def __init__(self, name: str, labels: LabelKey):
        self.name = name
        self.labels = labels
        self._lock = threading.Lock()


class Counter(_Series):
    kind = "counter"

    def __init__(self, name: str, labels: LabelKey):
        super().__init__(name, labels)
        self._value = 0.0

    def inc(self, n: float = 1.0) -> None:
        with self._lock:
            self._value += n

    def value(self) -> float:
        with self._lock:
            return self._value


class Gauge(_Series):
    kind = "gauge"

    def __init__(self, name: str, labels: LabelKey):
        super().__init__(name, labels)
        self._value = 0.0

    def set(self, v: float) -> None:
        with self._lock:
            self._value = float(v)

    def value(self) -> float:
        with self._lock:
            return self._value


class Histogram(_Series):
    kind = "hist"

    def __init__(self, name: str, labels: LabelKey, maxlen: int = 2048):
        super().__init__(name, labels)
        self._values: Deque[float] = deque(maxlen=maxlen)

    def observe(self, v: float) -> None:
        with self._lock:
            self._values.append(float(v))

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            vals = sorted(self._values)
        if not vals:
            return {"count": 0, "min": 0.0, "max": 0.0, "mean": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
        return {
            "count": float(len(vals)),
            "min": vals[0],
            "max": vals[-1],
            "mean": mean(vals),
            "p50": _pct(vals, 0.50),
            "p90": _pct(vals, 0.90),
            "p99": _pct(vals, 0.99),
        }


# ---------------- Store ----------------

class _Store:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._series: Dict[str, Dict[SeriesKey, _Series]] = {"counter": {}, "gauge": {}, "hist": {}}

    def get(self, cls, name: str, labels: Dict[str, Any] | None):
        key = (name, _labels_key(labels))
        with self._lock:
            bucket = self._series[cls.kind]
            m = bucket.get(key)
            if m is None:
                m = cls(name, key[1])
                bucket[key] = m
            return m

    def items(self, kind: str) -> List[Tuple[SeriesKey, Any]]:
        with self._lock:
            return list(self._series[kind].items())

    def clear(self) -> None:
        with self._lock:
            for bucket in self._series.values():
                bucket.clear()


_STORE = _Store()

# ---------------- Public API ----------------

def inc(name: str, n: float = 1.0, **labels: Any) -> None:
    _STORE.get(Counter, name, labels).inc(n)


def gauge_set(name: str, v: float, **labels: Any) -> None:
    _STORE.get(Gauge, name, labels).set(v)


def observe_hist(name: str, v: float, **labels: Any) -> None:
    _STORE.get(Histogram, name, labels).observe(v)


def reset() -> None:
    """Forget every series (test isolation)."""
    _STORE.clear()


def snapshot() -> dict:
    """Plain-dict view of all series."""
    out: Dict[str, list] = {"counters": [], "gauges": [], "hists": []}
    for (name, labels), m in _STORE.items("counter"):
        out["counters"].append({"name": name, "labels": dict(labels), "value": m.value()})
    for (name, labels), m in _STORE.items("gauge"):
        out["gauges"].append({"name": name, "labels": dict(labels), "value": m.value()})
    for (name, labels), m in _STORE.items("hist"):
        out["hists"].append({"name": name, "labels": dict(labels), **m.snapshot()})
    return out


def value(name: str, **labels: Any) -> Optional[float]:
    """Current value of a counter or gauge series, None if never touched."""
    key = (name, _labels_key(labels))
    for kind in ("counter", "gauge"):
        for k, m in _STORE.items(kind):
            if k == key:
                return m.value()
    return None


# ---------------- Timer Helper ----------------

class Timer:
    """Context manager reporting elapsed milliseconds into a histogram."""
    def __init__(self, hist_name: str, **labels: Any) -> None:
        self.hist_name = hist_name
        self.labels = labels
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        dt_ms = (time.perf_counter() - self._t0) * 1000.0
        observe_hist(self.hist_name, dt_ms, **self.labels)
        return False


# ---------------- Exporter (log every N seconds) ----------------

def _emit(log: logging.Logger, json_mode: bool) -> None:
    snap = snapshot()
    if json_mode:
        for kind, rows in (("counter", snap["counters"]), ("gauge", snap["gauges"]), ("hist", snap["hists"])):
            for row in rows:
                log.info({"type": kind, **row})
        return
    for row in snap["counters"]:
        log.info(f"[ctr] {row['name']} {row['labels']} value={row['value']:.0f}")
    for row in snap["gauges"]:
        log.info(f"[gauge] {row['name']} {row['labels']} value={row['value']:.3f}")
    for s in snap["hists"]:
        log.info(
            f"[hist] {s['name']} {s['labels']} "
            f"n={int(s['count'])} min={s['min']:.3f} p50={s['p50']:.3f} "
            f"p90={s['p90']:.3f} p99={s['p99']:.3f} "
            f"max={s['max']:.3f} mean={s['mean']:.3f}"
        )


class _Exporter(threading.Thread):
    def __init__(self, interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None):
        super().__init__(name="metrics-exporter", daemon=True)
        self.interval = float(interval_sec)
        self.json_mode = bool(json_mode)
        self.log = logger or logging.getLogger("metrics")
        self._stop_evt = threading.Event()

    def run(self) -> None:
        while not self._stop_evt.is_set():
            t0 = time.time()
            _emit(self.log, self.json_mode)
            to_sleep = max(0.5, self.interval - (time.time() - t0))
            self._stop_evt.wait(to_sleep)

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_evt.set()
        self.join(timeout=timeout)


_EXPORTER: Optional[_Exporter] = None


def start_exporter(interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        return
    _EXPORTER = _Exporter(interval_sec=interval_sec, json_mode=json_mode, logger=logger)
    _EXPORTER.start()


def stop_exporter(timeout: float = 1.0) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        _EXPORTER.stop(timeout=timeout)
        _EXPORTER = None


def exporter_running() -> bool:
    return _EXPORTER is not None and _EXPORTER.is_alive()


def force_emit(logger: Optional[logging.Logger] = None, json_mode: bool = False) -> None:
    """Log a snapshot right now, no thread involved."""
    _emit(logger or logging.getLogger("metrics"), json_mode)
