"""Stable per-device identifier for shared kiosk tablets"""
import hashlib
import json
import logging
import platform
import secrets
import socket
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

STORAGE_KEY = "deviceIdentifier"


def _host_characteristics() -> list:
    return [
        platform.system(),
        platform.release(),
        platform.machine(),
        platform.node(),
        socket.gethostname(),
        str(uuid.getnode()),
    ]


def generate_device_identifier() -> str:
    """Hash host characteristics with a random salt into a `device_` tag."""
    components = _host_characteristics() + [secrets.token_hex(16)]
    digest = hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()
    return f"device_{digest[:32]}"


def get_device_identifier(path: str | Path) -> str:
    """
    Return the identifier cached at `path`, generating and caching one on first use.

    The identifier is only a correlation tag for sessions, not a credential.
    """
    path = Path(path)
    if path.exists():
        try:
            cached = json.loads(path.read_text(encoding="utf-8")).get(STORAGE_KEY)
            if cached:
                return cached
        except (ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable device identifier cache {path}: {e}")

    device_id = generate_device_identifier()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({STORAGE_KEY: device_id}), encoding="utf-8")
    logger.info(f"Generated device identifier {device_id}")
    return device_id
