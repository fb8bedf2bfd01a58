"""Helper utilities for retries and display formatting."""

import asyncio
import re
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from scambait.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def retry_async(
    max_attempts: int = 3,
    delay: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async function with linear backoff."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as exc:
                    if attempt == max_attempts - 1:
                        raise
                    logger.warning(
                        "%s failed (attempt %d/%d): %s",
                        func.__name__,
                        attempt + 1,
                        max_attempts,
                        exc,
                    )
                    await asyncio.sleep(delay * (attempt + 1))

        return wrapper

    return decorator


def mask_phone_number(number: Optional[str]) -> str:
    """Keep only the country code and last four digits, e.g. ``+1***4567``."""
    cleaned = re.sub(r"[^\d+]", "", number or "")
    if len(cleaned) < 6:
        return "***" + cleaned[-3:]

    has_plus = cleaned.startswith("+")
    digits = cleaned.replace("+", "")
    if len(digits) <= 4:
        return ("+***" if has_plus else "***") + digits
    if len(digits) == 11 and digits.startswith("1"):
        return "+1***" + digits[-4:]

    first = ("+" if has_plus else "") + digits[:1]
    return f"{first}***{digits[-4:]}"


_SECONDS_PATTERN = re.compile(r"[0-9]+")


def parse_seconds(value: Optional[str]) -> Optional[int]:
    """Whole seconds from a provider form field; only plain ASCII digits count."""
    if value and _SECONDS_PATTERN.fullmatch(value):
        return int(value)
    return None


def truncate(text: Optional[str], limit: int = 100) -> Optional[str]:
    if not text:
        return None
    if len(text) <= limit:
        return text
    return text[:limit].strip() + "..."
