from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import psutil

logger = logging.getLogger(__name__)

DEFAULT_LOCK_PATH = Path.home() / ".autoclicker" / "session.lock"
PROCESS_START_TOLERANCE_S = 1.0


class SessionBusyError(RuntimeError):
    def __init__(self, lock_file: Path, owner: Dict[str, Any]) -> None:
        super().__init__(f"another autoclicker session (pid {owner.get('pid')}) holds {lock_file}")
        self.lock_file = lock_file
        self.owner = owner


def default_lock_path() -> Path:
    override = os.getenv("AUTOCLICKER_LOCK_PATH", "").strip()
    return Path(override).expanduser() if override else DEFAULT_LOCK_PATH


def process_start_time(pid: int) -> Optional[float]:
    try:
        return psutil.Process(pid).create_time()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


def is_live_session(owner: Optional[Dict[str, Any]]) -> bool:
    """True when the lock's pid still belongs to the process that wrote it.

    A pid alone is not enough: after a crash the pid can be reused by an
    unrelated process, so the recorded process start time must match too.
    """
    if not owner or owner.get("pid") is None:
        return False
    recorded = owner.get("process_start")
    if not isinstance(recorded, (int, float)):
        return False
    started = process_start_time(owner["pid"])
    return started is not None and abs(started - recorded) < PROCESS_START_TOLERANCE_S


@dataclass
class SessionLock:
    lock_file: Path
    cdp_url: str = ""
    owner_pid: int = field(default_factory=os.getpid)

    def owner(self) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(self.lock_file.read_text())
        except FileNotFoundError:
            return None
        except Exception:  # noqa: BLE001
            return {}
        if not isinstance(data, dict):
            return {}
        try:
            data["pid"] = int(data.get("pid"))
        except (TypeError, ValueError):
            data["pid"] = None
        return data

    def _reap_if_stale(self) -> bool:
        owner = self.owner()
        if owner is None:
            return True
        if is_live_session(owner):
            return False
        logger.info("Removing stale session lock %s (pid %s)", self.lock_file, owner.get("pid"))
        try:
            self.lock_file.unlink()
        except FileNotFoundError:
            pass
        return True

    def acquire(self) -> None:
        """Take the lock or raise SessionBusyError when a live session owns it."""
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(2):
            try:
                fd = os.open(str(self.lock_file), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            except FileExistsError:
                if self._reap_if_stale():
                    continue
                raise SessionBusyError(self.lock_file, self.owner() or {})
            try:
                payload = {
                    "pid": self.owner_pid,
                    "start_time": datetime.now(timezone.utc).isoformat(),
                    "cdp_url": self.cdp_url,
                    "process_start": process_start_time(self.owner_pid),
                }
                os.write(fd, json.dumps(payload).encode("utf-8"))
            finally:
                os.close(fd)
            logger.debug("Session lock acquired: %s", self.lock_file)
            return
        raise SessionBusyError(self.lock_file, self.owner() or {})

    def release(self) -> None:
        owner = self.owner()
        if not owner or owner.get("pid") != self.owner_pid:
            return
        try:
            self.lock_file.unlink()
        except FileNotFoundError:
            return

    def __enter__(self) -> "SessionLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()
