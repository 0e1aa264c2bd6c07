# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""LoggingPort: how a cache process sets up its logging."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from dynacache.core.config import Config


@runtime_checkable
class LoggingPort(Protocol):
    """Process-wide logging setup, driven by the ``dynacache.logging`` section.

    :func:`dynacache.cache.factory.create_store` calls :meth:`configure`
    before building a store whenever that section is present.
    """

    def configure(self, config: Config) -> None:
        """Apply levels, format and output stream from config."""
        ...

    def get_logger(self, name: str) -> Any:
        """Return a logger bound to ``name``."""
        ...

    def set_level(self, name: str, level: str) -> None:
        """Set the level of one stdlib logger by name."""
        ...
