"""
Resilience utilities for VisaScore.
Implements retry with exponential backoff and circuit breakers for provider calls.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

# HTTP statuses that will not succeed on a second attempt
NON_RETRYABLE_STATUSES = {400, 401, 403}


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, rejecting requests
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""
    failure_threshold: int = 5  # Number of failures before opening
    recovery_timeout: int = 60  # Seconds before trying half-open
    success_threshold: int = 1  # Successes needed to close from half-open
    timeout: float = 600.0  # Request timeout in seconds; long reports take minutes


@dataclass
class RetryConfig:
    """Configuration for retry logic."""
    max_attempts: int = 3
    base_delay: float = 1.0  # Base delay in seconds
    max_delay: float = 60.0  # Maximum delay in seconds
    exponential_base: float = 2.0  # Exponential backoff base
    jitter: bool = False  # Add random jitter to delays

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry following a failed ``attempt`` (0-based)."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay *= (0.5 + random.random() * 0.5)
        return delay


class CircuitBreakerOpenError(Exception):
    """Exception raised when circuit breaker is open."""
    pass


class RetryableError(Exception):
    """Base class for errors that should trigger retries."""
    pass


class NonRetryableError(Exception):
    """Base class for errors that should not trigger retries."""
    pass


def _status_code(error: Exception) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_retryable(error: Exception) -> bool:
    """
    Decide whether a failed provider call is worth another attempt.

    Rate limits, server errors, and dropped or timed out connections are
    retryable; client errors (400/401/403) and anything unrecognized are not.
    """
    if isinstance(error, NonRetryableError):
        return False
    if isinstance(error, RetryableError):
        return True

    status = _status_code(error)
    if status is not None:
        if status in NON_RETRYABLE_STATUSES:
            return False
        if status == 429 or status >= 500:
            return True

    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True

    name = type(error).__name__
    return name.endswith("ConnectionError") or name.endswith("TimeoutError")


def with_retry(config: RetryConfig):
    """
    Decorator for adding retry logic to coroutine functions.

    Args:
        config: Retry configuration
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(config.max_attempts):
                try:
                    return await func(*args, **kwargs)

                except Exception as e:
                    if not is_retryable(e) or attempt == config.max_attempts - 1:
                        if attempt > 0:
                            logger.error(f"Giving up on {func.__name__} after {attempt + 1} attempts: {str(e)}")
                        raise

                    delay = config.delay_for(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1}/{config.max_attempts} failed for {func.__name__}: {str(e)}. "
                        f"Retrying in {delay:.2f} seconds..."
                    )
                    await asyncio.sleep(delay)

            raise RuntimeError(f"{func.__name__} called with max_attempts={config.max_attempts}")

        return wrapper
    return decorator


class CircuitBreaker:
    """
    Circuit breaker implementation for external service calls.
    """

    def __init__(self, name: str, config: CircuitBreakerConfig):
        self.name = name
        self.config = config
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.next_attempt_time: Optional[datetime] = None

        logger.info(f"Initialized circuit breaker '{name}' with config: {config}")

    @property
    def is_open(self) -> bool:
        """True while calls are being rejected."""
        return self.state == CircuitState.OPEN and not self._should_attempt_reset()

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute a coroutine function with circuit breaker protection.

        Raises:
            CircuitBreakerOpenError: When circuit is open
            Exception: Original function exceptions when circuit is closed
        """
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                self.state = CircuitState.HALF_OPEN
                self.success_count = 0
                logger.info(f"Circuit breaker '{self.name}' moved to HALF_OPEN state")
            else:
                raise CircuitBreakerOpenError(f"Circuit breaker '{self.name}' is OPEN")

        try:
            result = await asyncio.wait_for(func(*args, **kwargs), timeout=self.config.timeout)
        except Exception as e:
            self._on_failure(e)
            raise

        self._on_success()
        return result

    def _on_success(self):
        """Handle successful call."""
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.config.success_threshold:
                self.state = CircuitState.CLOSED
                self.failure_count = 0
                self.success_count = 0
                logger.info(f"Circuit breaker '{self.name}' moved to CLOSED state")
        elif self.state == CircuitState.CLOSED:
            self.failure_count = 0

    def _on_failure(self, exception: Exception):
        """Handle failed call."""
        self.failure_count += 1
        self.last_failure_time = datetime.now()

        logger.warning(f"Circuit breaker '{self.name}' recorded failure {self.failure_count}: {str(exception)}")

        if self.state == CircuitState.CLOSED and self.failure_count >= self.config.failure_threshold:
            self.state = CircuitState.OPEN
            self.next_attempt_time = datetime.now() + timedelta(seconds=self.config.recovery_timeout)
            logger.error(f"Circuit breaker '{self.name}' moved to OPEN state")
        elif self.state == CircuitState.HALF_OPEN:
            self.state = CircuitState.OPEN
            self.next_attempt_time = datetime.now() + timedelta(seconds=self.config.recovery_timeout)
            logger.error(f"Circuit breaker '{self.name}' moved back to OPEN state")

    def _should_attempt_reset(self) -> bool:
        """Check if circuit should attempt to reset."""
        return (
            self.next_attempt_time is not None and
            datetime.now() >= self.next_attempt_time
        )

    def get_status(self) -> Dict[str, Any]:
        """Get current circuit breaker status."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
            "next_attempt_time": self.next_attempt_time.isoformat() if self.next_attempt_time else None
        }
