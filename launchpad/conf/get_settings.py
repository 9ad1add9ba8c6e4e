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

import importlib
import logging
import os
from typing import NamedTuple, Optional

from launchpad.conf.settings import LaunchpadSettings

logger = logging.getLogger(__name__)

LAUNCHPAD_CONFIG_FILE_ENV = 'LAUNCHPAD_CONFIG_FILE'
DEFAULT_CONFIG_MODULE = 'launchpad.conf.localnet'


class _SettingsMetadata(NamedTuple):
    source: str
    settings: LaunchpadSettings


_settings_singleton: Optional[_SettingsMetadata] = None


def get_global_settings() -> LaunchpadSettings:
    """Return the settings of the configured network.

    The module is taken from the `LAUNCHPAD_CONFIG_FILE` environment variable and must expose a
    `SETTINGS` attribute. Once loaded, the settings cannot be switched to another module.
    """
    global _settings_singleton

    source = os.environ.get(LAUNCHPAD_CONFIG_FILE_ENV, DEFAULT_CONFIG_MODULE)

    if _settings_singleton is not None:
        if _settings_singleton.source != source:
            raise RuntimeError(
                f'settings already loaded from {_settings_singleton.source}, cannot switch to {source}'
            )
        return _settings_singleton.settings

    settings = _load_module_settings(source)
    logger.debug('loaded settings for network %s from %s', settings.NETWORK_NAME, source)
    _settings_singleton = _SettingsMetadata(source, settings)
    return settings


def _load_module_settings(module_path: str) -> LaunchpadSettings:
    module = importlib.import_module(module_path)
    settings = getattr(module, 'SETTINGS', None)
    if not isinstance(settings, LaunchpadSettings):
        raise TypeError(f'{module_path}.SETTINGS must be a LaunchpadSettings instance')
    return settings


def _reset_global_settings() -> None:
    """Forget the loaded settings. Only meant for tests."""
    global _settings_singleton
    _settings_singleton = None
