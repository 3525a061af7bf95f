"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core and adapters expect so the app layer can build them safely.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_INFO_HTML = 'Visit <h3><a href="http://www.recommenders.net">recommenders.net</a></h3>'


@dataclass(frozen=True)
class ServerConfig:
    """HTTP transport settings."""

    host: str = "0.0.0.0"
    port: int = 8080
    decode_form_body: bool = True
    info_html: str = DEFAULT_INFO_HTML


@dataclass(frozen=True)
class EngineConfig:
    """Settings for the in-memory recency engine."""

    history_size: int = 100
    default_limit: int = 6
