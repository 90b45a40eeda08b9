from __future__ import annotations

import re

import pytest

from loyalty.rewards.errors import VoucherGenerationExhaustedError
from loyalty.rewards.vouchers.codes import (
    generate_unique_voucher_code,
    new_voucher_code,
    normalize_voucher_code,
)

CODE_PATTERN = re.compile(r"^BP-[0-9A-F]{16}$")


def test_new_voucher_code_format() -> None:
    code = new_voucher_code()

    assert CODE_PATTERN.match(code)


def test_ten_thousand_codes_are_unique() -> None:
    codes = {new_voucher_code() for _ in range(10_000)}

    assert len(codes) == 10_000


def test_new_voucher_code_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError):
        new_voucher_code(random_bytes=0)


def test_normalize_voucher_code_strips_whitespace_and_uppercases() -> None:
    assert normalize_voucher_code("  bp-9f2c 4e1a\t7b3d5c60 ") == "BP-9F2C4E1A7B3D5C60"


@pytest.mark.asyncio
async def test_generate_unique_voucher_code_retries_on_collision() -> None:
    issued = iter(["BP-TAKEN", "BP-TAKEN", "BP-FREE"])
    checked: list[str] = []

    async def _is_code_taken(code: str) -> bool:
        checked.append(code)
        return code == "BP-TAKEN"

    code = await generate_unique_voucher_code(_is_code_taken, code_factory=lambda: next(issued))

    assert code == "BP-FREE"
    assert checked == ["BP-TAKEN", "BP-TAKEN", "BP-FREE"]


@pytest.mark.asyncio
async def test_generate_unique_voucher_code_gives_up_after_max_attempts() -> None:
    attempts = 0

    async def _always_taken(code: str) -> bool:
        nonlocal attempts
        attempts += 1
        return True

    with pytest.raises(VoucherGenerationExhaustedError):
        await generate_unique_voucher_code(_always_taken)

    assert attempts == 5
