"""
config.py - Engine settings for the assure runner

Every timing constant the engine uses lives here so tests can shrink them to
zero and the CLI can override them. Values are in seconds.

Environment overrides:
  CHROME_PATH                   Browser executable (skips discovery)
  ASSURE_CDP_PORT               Remote debugging port (default 9222)
  ASSURE_HEADLESS               "0" / "false" to show the browser window
  ASSURE_ELEMENT_TIMEOUT        Element wait budget in seconds (default 10)
  ASSURE_NETWORK_IDLE_TIMEOUT   Network idle budget in seconds (default 5)
  ASSURE_LOG_LEVEL              Logging level for the CLI (default INFO)
"""

import os
from dataclasses import dataclass, field, replace
from typing import Optional

# === CONFIG ===
CDP_HOST = "127.0.0.1"
CDP_PORT = int(os.environ.get("ASSURE_CDP_PORT", 9222))
LOG_LEVEL = os.environ.get("ASSURE_LOG_LEVEL", "INFO")

SCRIPT_EXTENSION = ".assure"
DEFAULT_OTP_SELECTOR = 'input[type="text"]'

CHROME_FLAGS = [
    "--headless",
    "--disable-gpu",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--remote-allow-origins=*",
    "--no-first-run",
    "--no-default-browser-check",
]


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def _env_float(name, default):
    value = os.environ.get(name)
    if not value:
        return default
    return float(value)


@dataclass
class EngineConfig:
    # Session
    chrome_path: Optional[str] = None
    host: str = CDP_HOST
    port: int = CDP_PORT
    headless: bool = True
    extra_flags: list = field(default_factory=list)
    startup_delay: float = 2.0
    connect_attempts: int = 10
    connect_backoff: float = 0.5
    call_timeout: float = 30.0

    # Navigation
    navigation_timeout: float = 30.0

    # Waits
    element_timeout: float = 10.0
    text_timeout: float = 10.0
    url_timeout: float = 10.0
    network_idle_timeout: float = 5.0
    element_poll_interval: float = 0.1
    text_poll_interval: float = 0.2
    network_idle_grace: float = 0.5
    network_idle_settle: float = 0.5

    # Input
    click_settle: float = 0.1
    key_delay: float = 0.01

    @classmethod
    def from_env(cls, **overrides) -> "EngineConfig":
        """Build a config from ASSURE_* / CHROME_PATH, then apply keyword overrides."""
        config = cls(
            chrome_path=os.environ.get("CHROME_PATH") or None,
            port=int(os.environ.get("ASSURE_CDP_PORT", CDP_PORT)),
            headless=_env_bool("ASSURE_HEADLESS", True),
            element_timeout=_env_float("ASSURE_ELEMENT_TIMEOUT", 10.0),
            network_idle_timeout=_env_float("ASSURE_NETWORK_IDLE_TIMEOUT", 5.0),
        )
        return replace(config, **overrides) if overrides else config

    def chrome_args(self, user_data_dir=None):
        """Command-line flags for the browser process, debugging port included."""
        flags = [f for f in CHROME_FLAGS if self.headless or f != "--headless"]
        flags.append(f"--remote-debugging-port={self.port}")
        if user_data_dir:
            flags.append(f"--user-data-dir={user_data_dir}")
        flags.extend(self.extra_flags)
        flags.append("about:blank")
        return flags
