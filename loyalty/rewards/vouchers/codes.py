from __future__ import annotations

import re
import secrets
from collections.abc import Awaitable, Callable

import structlog

from loyalty.rewards.errors import VoucherGenerationExhaustedError
from loyalty.rewards.vouchers.constants import (
    VOUCHER_CODE_MAX_ATTEMPTS,
    VOUCHER_CODE_PREFIX,
    VOUCHER_RANDOM_BYTES,
)

logger = structlog.get_logger(__name__)

_VOUCHER_NORMALIZE_PATTERN = re.compile(r"\s+")


def new_voucher_code(
    *,
    prefix: str = VOUCHER_CODE_PREFIX,
    random_bytes: int = VOUCHER_RANDOM_BYTES,
) -> str:
    """Bearer code such as BP-9F2C4E1A7B3D5C60 built from a CSPRNG."""
    if random_bytes <= 0:
        raise ValueError("random_bytes must be positive")
    token = secrets.token_hex(random_bytes).upper()
    return f"{prefix}-{token}" if prefix else token


def normalize_voucher_code(raw_code: str) -> str:
    return _VOUCHER_NORMALIZE_PATTERN.sub("", raw_code).upper()


async def generate_unique_voucher_code(
    is_code_taken: Callable[[str], Awaitable[bool]],
    *,
    max_attempts: int = VOUCHER_CODE_MAX_ATTEMPTS,
    code_factory: Callable[[], str] = new_voucher_code,
) -> str:
    if max_attempts <= 0:
        raise ValueError("max_attempts must be positive")

    for attempt in range(1, max_attempts + 1):
        code = code_factory()
        if not await is_code_taken(code):
            return code
        logger.warning("voucher_code_collision", attempt=attempt, max_attempts=max_attempts)

    raise VoucherGenerationExhaustedError(
        f"unable to generate a unique voucher code after {max_attempts} attempts"
    )
