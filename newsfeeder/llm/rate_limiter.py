"""Per-model request admission against per-minute and per-day quotas."""

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date

import structlog

from newsfeeder.llm.errors import LimitKind
from newsfeeder.llm.models import MODEL_CATALOG, ModelDescriptor
from newsfeeder.store.protocols import RateLimitStore


logger = structlog.get_logger()

RPM_PERIOD_SECONDS = 60.0
ACQUIRE_TIMEOUT_SECONDS = 0.1


@dataclass
class TokenBucketRateLimiter:
    """Token bucket refilled to full capacity once per period.

    Models publish quotas as "N requests per minute", so the bucket
    grants ``capacity`` tokens per fixed window rather than trickling
    tokens in continuously.

    Thread-safe; the clock and sleep functions are injectable for tests.

    Attributes:
        capacity: Tokens available per window.
        period_seconds: Window length.
    """

    capacity: int
    period_seconds: float = RPM_PERIOD_SECONDS
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    _tokens: int = field(init=False, default=0)
    _window_start: float = field(init=False, default=0.0)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _rate_limited_count: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        """Initialize the bucket full."""
        if self.capacity <= 0:
            msg = f"capacity must be positive, got {self.capacity}"
            raise ValueError(msg)
        self._tokens = self.capacity
        self._window_start = self.clock()

    def _refill(self) -> None:
        """Start a new window if the current one has elapsed.

        Must be called while holding the lock.
        """
        now = self.clock()
        elapsed = now - self._window_start
        if elapsed >= self.period_seconds:
            windows = int(elapsed // self.period_seconds)
            self._window_start += windows * self.period_seconds
            self._tokens = self.capacity

    def _seconds_until_refill(self) -> float:
        """Must be called while holding the lock."""
        return max(0.0, self._window_start + self.period_seconds - self.clock())

    def try_acquire(self, tokens: int = 1, timeout: float = 0.0) -> bool:
        """Try to acquire tokens, waiting at most ``timeout`` seconds.

        Args:
            tokens: Number of tokens to acquire.
            timeout: Longest wait for the next window.

        Returns:
            True if tokens were acquired, False otherwise.
        """
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            wait = self._seconds_until_refill()

        if wait > timeout:
            with self._lock:
                self._rate_limited_count += 1
            return False

        self.sleep(wait)

        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            self._rate_limited_count += 1
            return False

    @property
    def rate_limited_count(self) -> int:
        """Get the number of refused acquisitions."""
        with self._lock:
            return self._rate_limited_count

    def get_available_tokens(self) -> int:
        """Get the number of tokens left in the current window."""
        with self._lock:
            self._refill()
            return self._tokens


@dataclass(frozen=True)
class AdmitResult:
    """Admission decision for one request.

    Attributes:
        allowed: Whether the request may be sent.
        kind: Which limit refused it, when denied.
    """

    allowed: bool
    kind: LimitKind | None = None

    @classmethod
    def denied(cls, kind: LimitKind) -> "AdmitResult":
        """Build a denial for the given limit."""
        return cls(allowed=False, kind=kind)


ALLOWED = AdmitResult(allowed=True)


class RateLimiter:
    """Admits requests per model against RPM buckets and RPD counters.

    The RPM check runs first and never touches storage. The RPD check
    is a conditional increment in the store, so the daily cap holds even
    when several processes share one database.
    """

    def __init__(
        self,
        store: RateLimitStore,
        today: Callable[[], date],
        models: Iterable[ModelDescriptor] = MODEL_CATALOG,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        acquire_timeout: float = ACQUIRE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Persistent daily counters.
            today: Provider of the current calendar day.
            models: Models to manage.
            clock: Monotonic clock for the RPM buckets.
            sleep: Sleep function for the RPM buckets.
            acquire_timeout: Longest wait for an RPM token.
        """
        self._store = store
        self._today = today
        self._models = {m.name: m for m in models}
        self._acquire_timeout = acquire_timeout
        self._buckets = {
            m.name: TokenBucketRateLimiter(capacity=m.rpm_limit, clock=clock, sleep=sleep)
            for m in self._models.values()
        }
        self._log = logger.bind(component="llm", subcomponent="rate_limiter")

    def admit(self, model: ModelDescriptor) -> AdmitResult:
        """Decide whether one request to ``model`` may be sent now.

        Args:
            model: Model about to be called.

        Returns:
            ALLOWED, or a denial naming the refusing limit.
        """
        bucket = self._bucket_for(model)
        if not bucket.try_acquire(timeout=self._acquire_timeout):
            self._log.warning("rate_limit_denied", model=model.name, kind=LimitKind.RPM.value)
            return AdmitResult.denied(LimitKind.RPM)

        today = self._today()
        counter = self._store.find_or_create_rate_limit(model.name, today, model.rpd_limit)
        if not self._store.conditional_increment(counter):
            self._log.warning(
                "rate_limit_denied",
                model=model.name,
                kind=LimitKind.RPD.value,
                limit_date=today.isoformat(),
                max_requests_per_day=counter.max_requests_per_day,
            )
            return AdmitResult.denied(LimitKind.RPD)

        self._log.debug("rate_limit_admitted", model=model.name)
        return ALLOWED

    def today_usage(self) -> dict[str, tuple[int, int]]:
        """Get today's request count and daily cap per managed model."""
        counters = {c.model_name: c for c in self._store.list_rate_limits(self._today())}
        usage: dict[str, tuple[int, int]] = {}
        for name, model in self._models.items():
            counter = counters.get(name)
            if counter is None:
                usage[name] = (0, model.rpd_limit)
            else:
                usage[name] = (counter.request_count, counter.max_requests_per_day)
        return usage

    def _bucket_for(self, model: ModelDescriptor) -> TokenBucketRateLimiter:
        bucket = self._buckets.get(model.name)
        if bucket is None:
            msg = f"Unknown model: {model.name}"
            raise KeyError(msg)
        return bucket
