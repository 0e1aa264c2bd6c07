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
"""StructlogAdapter: structlog-backed logging for cache processes."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

from dynacache.core.config import Config

# AWS SDK loggers that emit a line per request at INFO/DEBUG
_SDK_LOGGERS = ("aioboto3", "aiobotocore", "boto3", "botocore", "urllib3")

_RENDERERS = ("console", "json", "keyvalue")


class StructlogAdapter:
    """Logging adapter backed by structlog.

    Reads the ``dynacache.logging`` section:

    - ``level``: ``root`` plus per-module entries such as
      ``dynacache.cache.adapters.dynamodb: DEBUG``. Nested YAML mappings are
      flattened into dotted logger names.
    - ``sdk_level``: level applied to the AWS SDK loggers before the
      per-module entries (default ``WARNING``).
    - ``format``: ``console``, ``json`` or ``keyvalue``.
    - ``stream``: ``stdout`` or ``stderr``.
    """

    def __init__(self) -> None:
        self._root_level = "INFO"
        self._sdk_level = "WARNING"
        self._format = "console"
        self._stream: TextIO = sys.stdout
        self._module_levels: dict[str, str] = {}

    def configure(self, config: Config) -> None:
        """Configure structlog and stdlib logging from config."""
        level_section = self._flatten(config.get_section("dynacache.logging.level"))
        self._root_level = str(level_section.pop("root", "INFO")).upper()
        self._module_levels = {name: str(level).upper() for name, level in level_section.items()}
        self._sdk_level = str(config.get("dynacache.logging.sdk_level", "WARNING")).upper()

        fmt = str(config.get("dynacache.logging.format", "console")).lower()
        if fmt not in _RENDERERS:
            raise ValueError(f"Unknown log format '{fmt}', expected one of {', '.join(_RENDERERS)}")
        self._format = fmt

        stream = str(config.get("dynacache.logging.stream", "stdout")).lower()
        self._stream = sys.stderr if stream == "stderr" else sys.stdout

        self._setup_structlog()
        self._apply_levels()

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(getattr(logging, level.upper(), logging.INFO))

    @staticmethod
    def _flatten(section: dict[str, Any], parent: str = "") -> dict[str, Any]:
        # YAML turns "dynacache.cache: DEBUG" keys into nested mappings
        flat: dict[str, Any] = {}
        for key, value in section.items():
            name = f"{parent}.{key}" if parent else key
            if isinstance(value, dict):
                flat.update(StructlogAdapter._flatten(value, name))
            else:
                flat[name] = value
        return flat

    def _renderer(self) -> structlog.types.Processor:
        if self._format == "json":
            return structlog.processors.JSONRenderer()
        if self._format == "keyvalue":
            return structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "logger", "event"])
        return structlog.dev.ConsoleRenderer()

    def _setup_structlog(self) -> None:
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                self._renderer(),
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            format="%(message)s",
            stream=self._stream,
            level=getattr(logging, self._root_level, logging.INFO),
            force=True,
        )

    def _apply_levels(self) -> None:
        # module entries win over the SDK default
        for name in _SDK_LOGGERS:
            self.set_level(name, self._sdk_level)
        for module, level in self._module_levels.items():
            self.set_level(module, level)
