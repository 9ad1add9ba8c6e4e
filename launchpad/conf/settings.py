# Copyright 2025 Launchpad Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from pydantic import BaseModel, ConfigDict, model_validator
from typing_extensions import Self

from launchpad.utils.decimals import BASIS_POINTS

DAY_IN_SECONDS: int = 24 * 60 * 60


class LaunchpadSettings(BaseModel):
    """Network-wide constants shared by every blueprint and by the runner."""

    model_config = ConfigDict(frozen=True)

    # Name of the network, only used for logging and the state API
    NETWORK_NAME: str

    # Sentinel asset id standing for the native currency
    NATIVE_TOKEN_UID: bytes = b'\x00'

    # The native currency is always accounted with 18 decimals
    NATIVE_DECIMALS: int = 18

    # Bounds for the share of the raise routed to liquidity, in basis points
    MIN_LIQUIDITY_BPS: int = 5_100
    MAX_LIQUIDITY_BPS: int = 10_000

    # Maximum slippage tolerance accepted by a sale, in basis points
    MAX_SLIPPAGE_BPS: int = 500

    # soft_cap must be at least hard_cap / SOFT_CAP_DIVISOR
    SOFT_CAP_DIVISOR: int = 4

    # Window after finalization during which contributors may claim
    CLAIM_PERIOD: int = 90 * DAY_IN_SECONDS

    # Deadline given to the AMM when adding liquidity, in seconds from now
    LIQUIDITY_DEADLINE: int = 600

    # Pool tokens kept by the router on the first deposit into a pair
    MINIMUM_LIQUIDITY: int = 1_000

    # Maximum depth of nested contract calls inside a single transaction
    MAX_CALL_DEPTH: int = 64

    # Fee charged by the factory when none is given at initialization
    DEFAULT_CREATION_FEE: int = 10**17

    @model_validator(mode='after')
    def _check_bounds(self) -> Self:
        if not 0 < self.MIN_LIQUIDITY_BPS <= self.MAX_LIQUIDITY_BPS <= BASIS_POINTS:
            raise ValueError('liquidity bounds must satisfy 0 < min <= max <= BASIS_POINTS')
        if not 0 <= self.MAX_SLIPPAGE_BPS < BASIS_POINTS:
            raise ValueError('MAX_SLIPPAGE_BPS must be lower than BASIS_POINTS')
        if self.SOFT_CAP_DIVISOR <= 0:
            raise ValueError('SOFT_CAP_DIVISOR must be positive')
        if self.MAX_CALL_DEPTH <= 0:
            raise ValueError('MAX_CALL_DEPTH must be positive')
        return self
