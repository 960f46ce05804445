"""
session.py -- Browser process + CDP connection lifecycle
========================================================

One Session per run. create_session():
  1. Resolve the browser executable (CHROME_PATH, known install paths, PATH)
  2. Spawn it with fixed flags and a throwaway profile directory
  3. Connect over CDP with a fixed retry budget (default 10 x 0.5s)
  4. Enable Page, Runtime, DOM and Network (any failure here is fatal)

close_session() never raises: transport close, process termination and
profile removal are each best-effort and only logged on failure.

Usage:
    async with open_session(EngineConfig.from_env()) as session:
        await navigate(session, "https://example.com")
"""

import asyncio
import logging
import os
import shutil
import subprocess
import sys
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional, Set

from .config import EngineConfig
from .errors import ConnectionFailed, ExecutableNotFound, LaunchError
from .protocol import DOMDomain, InputDomain, NetworkDomain, PageDomain, RuntimeDomain
from .transport import CDPConnection, discover_page_ws_url

logger = logging.getLogger(__name__)

# Known install locations, checked in order before falling back to PATH
BROWSER_PATHS = {
    "darwin": [
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Chromium.app/Contents/MacOS/Chromium",
        "/usr/bin/google-chrome",
        "/usr/bin/chromium",
    ],
    "win32": [
        r"C:\Program Files\Google\Chrome\Application\chrome.exe",
        r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
        r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe",
        r"C:\Program Files\Microsoft\Edge\Application\msedge.exe",
    ],
    "linux": [
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/usr/bin/chromium",
        "/usr/bin/chromium-browser",
        "/snap/bin/chromium",
    ],
}
BROWSER_NAMES = ["google-chrome", "google-chrome-stable", "chromium", "chromium-browser", "chrome"]

TERMINATE_TIMEOUT = 5


@dataclass
class Session:
    """Live binding to one browser process. Pass it explicitly to every operation."""
    connection: Any
    config: EngineConfig = field(default_factory=EngineConfig)
    process: Optional[subprocess.Popen] = None
    user_data_dir: Optional[str] = None
    enabled_domains: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self.page = PageDomain(self.connection)
        self.runtime = RuntimeDomain(self.connection)
        self.dom = DOMDomain(self.connection)
        self.input = InputDomain(self.connection)
        self.network = NetworkDomain(self.connection)


# =============================================================================
# EXECUTABLE DISCOVERY
# =============================================================================

def _platform_key():
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def find_chrome_executable(chrome_path=None):
    """
    Resolve the browser executable.

    Order: explicit path (CHROME_PATH), known install locations for this
    platform, then the first browser name found on PATH.

    Raises:
        ExecutableNotFound: if nothing resolves.
    """
    if chrome_path:
        if os.path.isfile(chrome_path):
            return chrome_path
        resolved = shutil.which(chrome_path)
        if resolved:
            return resolved
        raise ExecutableNotFound(f"CHROME_PATH points to a missing executable: {chrome_path}")

    for path in BROWSER_PATHS.get(_platform_key(), []):
        if os.path.isfile(path):
            return path

    for name in BROWSER_NAMES:
        resolved = shutil.which(name)
        if resolved:
            return resolved

    raise ExecutableNotFound(
        "Chrome/Chromium not found. Please install Chrome or set CHROME_PATH environment variable."
    )


# =============================================================================
# CONNECTION
# =============================================================================

async def connect_with_retry(config: EngineConfig, process=None) -> CDPConnection:
    """
    Discover the page target and open the websocket, retrying with a fixed backoff.

    Raises:
        ConnectionFailed: once the retry budget is spent, or if the browser
        process exits while we are still trying.
    """
    last_error = None
    for attempt in range(1, config.connect_attempts + 1):
        if process is not None and process.poll() is not None:
            raise ConnectionFailed(
                f"Browser exited with code {process.returncode} before CDP was reachable",
                attempts=attempt - 1,
            )
        try:
            ws_url = await discover_page_ws_url(config.host, config.port)
            return await CDPConnection.open(ws_url, call_timeout=config.call_timeout)
        except Exception as e:
            last_error = e
            logger.debug(f"CDP connect attempt {attempt}/{config.connect_attempts} failed: {e}")
        if attempt < config.connect_attempts:
            await asyncio.sleep(config.connect_backoff)

    raise ConnectionFailed(
        f"Failed to connect to Chrome DevTools Protocol on port {config.port} "
        f"after {config.connect_attempts} attempts",
        attempts=config.connect_attempts,
    ) from last_error


async def enable_domains(session: Session):
    """Enable every domain the engine relies on. Partial enablement is fatal."""
    for domain in (session.page, session.runtime, session.dom, session.network):
        try:
            await domain.enable()
        except Exception as e:
            raise LaunchError(f"Could not enable CDP domain {domain.name}: {e}") from e
        session.enabled_domains.add(domain.name)
    session.enabled_domains.add(session.input.name)


# =============================================================================
# LIFECYCLE
# =============================================================================

def _terminate(process, timeout=TERMINATE_TIMEOUT):
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait(timeout=timeout)


async def _terminate_quietly(process):
    try:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _terminate, process)
    except Exception as e:
        logger.warning(f"Browser process termination failed: {e}")


async def create_session(config: Optional[EngineConfig] = None) -> Session:
    """
    Launch the browser and return a connected Session with all domains enabled.

    Raises:
        ExecutableNotFound / LaunchError: nothing to launch, spawn failure,
            or a domain refused to enable.
        ConnectionFailed: the retry budget ran out (the process is killed).
    """
    config = config or EngineConfig.from_env()
    chrome_path = find_chrome_executable(config.chrome_path)
    user_data_dir = tempfile.mkdtemp(prefix="assure-profile-")
    cmd = [chrome_path] + config.chrome_args(user_data_dir)

    try:
        process = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        shutil.rmtree(user_data_dir, ignore_errors=True)
        raise LaunchError(f"Could not start browser {chrome_path}: {e}") from e

    mode = "headless" if config.headless else "headed"
    logger.info(f"Launched browser ({mode}) with CDP on port {config.port}: {chrome_path}")

    await asyncio.sleep(config.startup_delay)

    try:
        connection = await connect_with_retry(config, process)
    except ConnectionFailed:
        await _terminate_quietly(process)
        shutil.rmtree(user_data_dir, ignore_errors=True)
        raise

    session = Session(connection=connection, config=config, process=process, user_data_dir=user_data_dir)
    try:
        await enable_domains(session)
    except LaunchError:
        await close_session(session)
        raise

    logger.debug(f"CDP domains enabled: {', '.join(sorted(session.enabled_domains))}")
    return session


async def close_session(session: Session):
    """Close the transport, stop the process, drop the profile. Never raises."""
    if session.connection is not None:
        try:
            await session.connection.close()
        except Exception as e:
            logger.warning(f"CDP connection close failed: {e}")

    if session.process is not None:
        await _terminate_quietly(session.process)

    if session.user_data_dir:
        shutil.rmtree(session.user_data_dir, ignore_errors=True)

    session.enabled_domains.clear()


@asynccontextmanager
async def open_session(config: Optional[EngineConfig] = None):
    """Scoped session: close_session() runs on every exit path."""
    session = await create_session(config)
    try:
        yield session
    finally:
        await close_session(session)
