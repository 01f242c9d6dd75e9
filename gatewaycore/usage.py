"""Usage counters keyed by period, and metric summaries built from them."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field, fields
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Optional


def _utc_naive(now: Optional[datetime]) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def get_hour_key(company_id: str, key: str, now: Optional[datetime] = None) -> str:
    """Counter key for the current UTC hour."""
    return f"{company_id}:{key}:{_utc_naive(now):%Y-%m-%d-%H}"


def get_daily_key(company_id: str, key: str, now: Optional[datetime] = None) -> str:
    """Counter key for the current UTC day."""
    return f"{company_id}:{key}:{_utc_naive(now):%Y-%m-%d}"


def get_monthly_key(company_id: str, key: str, now: Optional[datetime] = None) -> str:
    """Counter key for the current UTC month."""
    return f"{company_id}:{key}:{_utc_naive(now):%Y-%m}"


def get_total_key(company_id: str, key: str) -> str:
    """Counter key that never rolls over."""
    return f"{company_id}:{key}:total"


class LimitPeriod(Enum):
    """The period a counter is kept for."""

    HOUR = "Hour"
    DAY = "Day"
    MONTH = "Month"
    TOTAL = "Total"

    def __str__(self) -> str:
        return self.value

    def seconds_until_refresh(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole seconds until the counter expires, or None if it never does.

        The hourly period refreshes at the next minute boundary.
        """
        now = _utc_naive(now)
        if self is LimitPeriod.HOUR:
            refresh = (now + timedelta(minutes=1)).replace(second=0)
        elif self is LimitPeriod.DAY:
            refresh = datetime.combine((now + timedelta(days=1)).date(), time())
        elif self is LimitPeriod.MONTH:
            year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
            refresh = datetime(year, month, 1)
        else:
            return None
        return int((refresh - now).total_seconds())

    def get_key(self, identifier: str, key: str, now: Optional[datetime] = None) -> str:
        """Counter key for ``identifier`` and ``key`` in this period."""
        if self is LimitPeriod.HOUR:
            return get_hour_key(identifier, key, now)
        if self is LimitPeriod.DAY:
            return get_daily_key(identifier, key, now)
        if self is LimitPeriod.MONTH:
            return get_monthly_key(identifier, key, now)
        return get_total_key(identifier, key)


_OMIT_WHEN_NONE = frozenset({"input_tokens", "output_tokens", "total_tokens", "llm_usage"})


@dataclass
class Metrics:
    """Aggregated metrics of one model over one window."""

    requests: Optional[float] = None
    input_tokens: Optional[float] = None
    output_tokens: Optional[float] = None
    total_tokens: Optional[float] = None
    latency: Optional[float] = None
    ttft: Optional[float] = None
    llm_usage: Optional[float] = None
    tps: Optional[float] = None
    error_rate: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; token counts and usage are left out when unset."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None and f.name in _OMIT_WHEN_NONE:
                continue
            result[f.name] = value
        return result


@dataclass
class TimeMetrics:
    """Metrics over the whole lifetime and over recent windows."""

    total: Metrics = field(default_factory=Metrics)
    last_15_minutes: Metrics = field(default_factory=Metrics)
    last_hour: Metrics = field(default_factory=Metrics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total.to_dict(),
            "last_15_minutes": self.last_15_minutes.to_dict(),
            "last_hour": self.last_hour.to_dict(),
        }


@dataclass
class ModelMetrics:
    """Metrics of one model."""

    metrics: TimeMetrics = field(default_factory=TimeMetrics)

    def to_dict(self) -> dict[str, Any]:
        return {"metrics": self.metrics.to_dict()}


@dataclass
class ProviderMetrics:
    """Metrics of every model of one provider, by model name."""

    models: dict[str, ModelMetrics] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"models": {name: self.models[name].to_dict() for name in sorted(self.models)}}


_TOTAL_FIELDS = {"requests", "input_tokens", "output_tokens", "total_tokens", "latency", "ttft", "llm_usage"}


class InMemoryStorage:
    """Process-local float counters that expire at the end of their period."""

    def __init__(self) -> None:
        self._counters: dict[str, float] = {}
        self._lock = threading.Lock()

    def _discard(self, key: str) -> None:
        with self._lock:
            self._counters.pop(key, None)

    async def increment_and_get_value(
        self, refresh_rate: LimitPeriod, identifier: str, key: str, incr_by: float
    ) -> float:
        """Add ``incr_by`` to a counter and return its new value.

        Counters of a limited period are dropped once the period refreshes.
        """
        full_key = refresh_rate.get_key(identifier, key)
        with self._lock:
            value = self._counters.get(full_key, 0.0) + incr_by
            self._counters[full_key] = value

        expire_seconds = refresh_rate.seconds_until_refresh()
        if expire_seconds is not None:
            asyncio.get_running_loop().call_later(max(expire_seconds, 0), self._discard, full_key)
        return value

    def get_value(self, refresh_rate: LimitPeriod, identifier: str, key: str) -> Optional[float]:
        """Current value of a counter, or None if it does not exist."""
        full_key = refresh_rate.get_key(identifier, key)
        with self._lock:
            return self._counters.get(full_key)

    async def get_all_counters(self) -> dict[str, ProviderMetrics]:
        """Lifetime metrics per provider and model, read from the total counters."""
        with self._lock:
            items = sorted(self._counters.items())

        providers: dict[str, ProviderMetrics] = {}
        for full_key, value in items:
            if full_key.startswith("default:"):
                continue
            parts = full_key.split(":")
            if len(parts) <= 2:
                continue
            provider, model, metric_type = parts[0], parts[1], parts[2]

            model_metrics = providers.setdefault(provider, ProviderMetrics()).models.setdefault(
                model, ModelMetrics()
            )
            if len(parts) < 4 or parts[3] != "total":
                continue
            if metric_type in _TOTAL_FIELDS:
                setattr(model_metrics.metrics.total, metric_type, value)

        return {
            name: ProviderMetrics(
                models={m: providers[name].models[m] for m in sorted(providers[name].models)}
            )
            for name in sorted(providers)
        }