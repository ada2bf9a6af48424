"""Typed hub settings loaded from ``config.txt``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from device_hub.core.config_manager import ConfigManager, get_config_manager

from .outbound_queue import (
    DEFAULT_COMMAND_QUEUE_LIMIT,
    DEFAULT_PHOTO_QUEUE_LIMIT,
    OverflowPolicy,
)
from .registration_timer import DEFAULT_REGISTRATION_TIMEOUT


@dataclass
class HubConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    registration_timeout: float = DEFAULT_REGISTRATION_TIMEOUT
    photo_queue_limit: int = DEFAULT_PHOTO_QUEUE_LIMIT
    command_queue_limit: int = DEFAULT_COMMAND_QUEUE_LIMIT
    queue_overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST
    max_pending_frames: int = 256
    max_message_size: int = 8 * 1024 * 1024
    ws_heartbeat: Optional[float] = 30.0
    tls_cert: Optional[Path] = None
    tls_key: Optional[Path] = None
    log_level: str = "info"
    log_file: Optional[Path] = None
    console_output: bool = True

    def __post_init__(self) -> None:
        # Queued photos and commands use half the outbox; replies need the rest.
        if self.max_pending_frames < 2:
            raise ValueError(f"max_pending_frames must be at least 2, got {self.max_pending_frames}")

    @property
    def tls_enabled(self) -> bool:
        return self.tls_cert is not None and self.tls_key is not None

    @classmethod
    def from_config(
        cls,
        config: Dict[str, str],
        *,
        env: Optional[Mapping[str, str]] = None,
        manager: Optional[ConfigManager] = None,
    ) -> "HubConfig":
        """Build settings from a parsed config dict; ``PORT`` in ``env`` wins."""
        cm = manager or get_config_manager()
        defaults = cls()

        port = cm.get_int(config, "port", defaults.port)
        if env and env.get("PORT"):
            port = cm.get_int({"port": env["PORT"]}, "port", port)

        heartbeat = cm.get_float(config, "ws_heartbeat", defaults.ws_heartbeat or 0.0)
        tls_cert = cm.get_optional_str(config, "tls_cert")
        tls_key = cm.get_optional_str(config, "tls_key")
        log_file = cm.get_optional_str(config, "log_file")

        return cls(
            host=cm.get_str(config, "host", defaults.host),
            port=port,
            registration_timeout=cm.get_float(config, "registration_timeout", defaults.registration_timeout),
            photo_queue_limit=cm.get_int(config, "photo_queue_limit", defaults.photo_queue_limit),
            command_queue_limit=cm.get_int(config, "command_queue_limit", defaults.command_queue_limit),
            queue_overflow_policy=OverflowPolicy.parse(
                cm.get_str(config, "queue_overflow_policy", defaults.queue_overflow_policy.value)
            ),
            max_pending_frames=cm.get_int(config, "max_pending_frames", defaults.max_pending_frames),
            max_message_size=cm.get_int(config, "max_message_size", defaults.max_message_size),
            ws_heartbeat=heartbeat if heartbeat > 0 else None,
            tls_cert=Path(tls_cert) if tls_cert else None,
            tls_key=Path(tls_key) if tls_key else None,
            log_level=cm.get_str(config, "log_level", defaults.log_level),
            log_file=Path(log_file) if log_file else None,
            console_output=cm.get_bool(config, "console_output", defaults.console_output),
        )

    @classmethod
    async def load(cls, path: Path, *, env: Optional[Mapping[str, str]] = None) -> "HubConfig":
        cm = get_config_manager()
        return cls.from_config(await cm.read_config_async(path), env=env, manager=cm)
