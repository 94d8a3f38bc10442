from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ClientConfig:
    application_id: str
    rest_key: Optional[str] = None
    master_key: Optional[str] = None
    server_url: str = "https://api.parse.com"
    mount_path: str = "1"
    connect_timeout: Optional[float] = None
    timeout: Optional[float] = None
    revocable_sessions: bool = False
    raise_http_errors: bool = True

    def __post_init__(self) -> None:
        """Validate and normalize configuration parameters."""
        if not self.application_id:
            raise ValueError("application_id must be a non-empty string")
        if not self.server_url.startswith(("http://", "https://")):
            raise ValueError(
                f"server_url must start with http:// or https://, got {self.server_url!r}"
            )
        self.server_url = self.server_url.rstrip("/")
        self.mount_path = self.mount_path.strip("/")
        for name in ("connect_timeout", "timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be > 0 when set")

    @property
    def api_url(self) -> str:
        if not self.mount_path:
            return f"{self.server_url}/"
        return f"{self.server_url}/{self.mount_path}/"

    @property
    def request_timeout(self) -> float | tuple[Optional[float], Optional[float]] | None:
        """Timeout in the shape requests expects: None, or (connect, read)."""
        if self.connect_timeout is None and self.timeout is None:
            return None
        return (self.connect_timeout, self.timeout)


@dataclass
class StorageConfig:
    key_prefix: str = "parsekit:storage"
    ttl_s: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.key_prefix:
            raise ValueError("key_prefix must be a non-empty string")
        if self.ttl_s is not None and self.ttl_s <= 0:
            raise ValueError("ttl_s must be > 0; use None to keep the hash forever")
