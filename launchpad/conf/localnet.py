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

from launchpad.conf.settings import DAY_IN_SECONDS, LaunchpadSettings

SETTINGS = LaunchpadSettings(
    NETWORK_NAME='launchpad-localnet',
    NATIVE_TOKEN_UID=b'\x00',
    NATIVE_DECIMALS=18,
    MIN_LIQUIDITY_BPS=5_100,
    MAX_LIQUIDITY_BPS=10_000,
    MAX_SLIPPAGE_BPS=500,
    SOFT_CAP_DIVISOR=4,
    CLAIM_PERIOD=90 * DAY_IN_SECONDS,
    LIQUIDITY_DEADLINE=600,
    MINIMUM_LIQUIDITY=1_000,
    MAX_CALL_DEPTH=64,
    DEFAULT_CREATION_FEE=10**17,
)
