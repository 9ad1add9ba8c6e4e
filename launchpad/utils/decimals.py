#  Copyright 2025 Launchpad Contributors
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#  http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.

"""Integer helpers for rates, basis points and decimal rescaling.

Every helper multiplies first and divides once at the end, so the result is truncated toward zero
exactly once. Amounts are never negative, so floor division and truncation agree.
"""

BASIS_POINTS = 10_000


def _check_non_negative(**values: int) -> None:
    for name, value in values.items():
        if value < 0:
            raise ValueError(f'{name} must not be negative, got {value}')


def to_token_units(amount: int, rate: int, token_decimals: int, currency_decimals: int) -> int:
    """Convert a currency amount into sale token units at `rate` tokens per currency unit.

    amount * rate * 10**token_decimals // 10**currency_decimals
    """
    _check_non_negative(
        amount=amount,
        rate=rate,
        token_decimals=token_decimals,
        currency_decimals=currency_decimals,
    )
    return amount * rate * 10**token_decimals // 10**currency_decimals


def apply_bps(amount: int, bps: int) -> int:
    """Return `bps` basis points of `amount`, truncated."""
    _check_non_negative(amount=amount, bps=bps)
    return amount * bps // BASIS_POINTS


def min_after_slippage(amount: int, slippage_bps: int) -> int:
    """Smallest amount still acceptable when `slippage_bps` of `amount` may be lost."""
    if slippage_bps > BASIS_POINTS:
        raise ValueError(f'slippage cannot exceed {BASIS_POINTS} bps')
    return apply_bps(amount, BASIS_POINTS - slippage_bps)
