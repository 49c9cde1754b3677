from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass


log = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FluxerConfig:
    host: str = "127.0.0.1"
    port: int = 8086
    use_tls: bool = False
    username: str | None = None
    password: str | None = None
    pool_size: int = 10
    timeout: float = 5.0

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def credentials(self) -> tuple[str, str] | None:
        # Both or neither.
        if self.username and self.password:
            return self.username, self.password
        return None

    def auth_headers(self) -> dict[str, str]:
        creds = self.credentials
        if creds is None:
            return {}
        token = base64.b64encode(f"{creds[0]}:{creds[1]}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {token}"}

    @staticmethod
    def from_env() -> "FluxerConfig":
        host = os.getenv("FLUXER_HOST", "127.0.0.1").strip()
        port = int(os.getenv("FLUXER_PORT", "8086"))
        use_tls = _env_bool("FLUXER_TLS", False)
        username = os.getenv("FLUXER_USER") or None
        password = os.getenv("FLUXER_PASS") or None
        if (username is None) != (password is None):
            log.warning("Only one of FLUXER_USER/FLUXER_PASS is set; requests will be sent without auth")
        pool_size = int(os.getenv("FLUXER_POOL_SIZE", "10"))
        timeout = float(os.getenv("FLUXER_TIMEOUT_S", "5.0"))
        return FluxerConfig(
            host=host,
            port=port,
            use_tls=use_tls,
            username=username,
            password=password,
            pool_size=pool_size,
            timeout=timeout,
        )
