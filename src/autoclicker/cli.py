from __future__ import annotations

import argparse
import importlib.util
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .browser import cdp_endpoint_alive, default_cdp_url, open_page
from .config import ConfigError, load_config
from .controls import PlaywrightControls
from .poller import Poller, start
from .scheduler import LoopScheduler
from .session_lock import SessionBusyError, SessionLock, default_lock_path, is_live_session
from .sound import WebAudioCue

logger = logging.getLogger("autoclicker")


def pretty_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, sort_keys=True)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll a page control, fill its input and click it when ready")
    parser.add_argument(
        "--log-level",
        default=os.getenv("AUTOCLICKER_LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_run = sub.add_parser("run", help="Start polling the page until stopped")
    p_run.add_argument("--sound", action="store_true", help="Play a tone when the control leaves the busy state")
    p_run.add_argument("--config", help="Path to a JSON config file")
    p_run.add_argument("--cdp-url", default=default_cdp_url(), help="Chrome DevTools endpoint")
    p_run.add_argument("--url", help="Page to open when no matching tab is already open")
    p_run.add_argument("--page-match", help="Substring of the URL of the tab to attach to")

    sub.add_parser("stop", help="Stop the running session")

    p_show = sub.add_parser("show-config", help="Print the resolved configuration")
    p_show.add_argument("--config", help="Path to a JSON config file")

    p_doctor = sub.add_parser("doctor", help="Run local environment preflight checks")
    p_doctor.add_argument("--cdp-url", default=default_cdp_url(), help="Chrome DevTools endpoint")

    return parser.parse_args(argv)


def _config_path(args: argparse.Namespace) -> Optional[Path]:
    return Path(args.config).expanduser() if getattr(args, "config", None) else None


def _install_stop_handlers(poller: Poller) -> Dict[int, Any]:
    def _handler(signum: int, frame: Any) -> None:
        del frame
        logger.info("Received signal %d, stopping.", signum)
        poller.stop()

    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, _handler)
    return previous


def _restore_handlers(previous: Dict[int, Any]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def _run(args: argparse.Namespace) -> int:
    try:
        config = load_config(_config_path(args))
    except ConfigError as exc:
        print(pretty_json({"ok": False, "error": str(exc)}))
        return 2

    lock = SessionLock(default_lock_path(), cdp_url=args.cdp_url)
    try:
        lock.acquire()
    except SessionBusyError as exc:
        logger.warning("Already running. Stop the current session with 'autoclicker stop' first.")
        print(pretty_json({"ok": False, "error": str(exc)}))
        return 1

    try:
        from playwright.sync_api import sync_playwright

        with sync_playwright() as p:
            page = open_page(p, args.cdp_url, url=args.url, page_match=args.page_match)
            scheduler = LoopScheduler(sleep=page.wait_for_timeout)
            sound = WebAudioCue(page) if args.sound else None
            poller = start(
                PlaywrightControls(page, config),
                config,
                scheduler,
                play_sound_on_change=args.sound,
                sound=sound,
            )
            logger.info("To stop, run: autoclicker stop (or press Ctrl-C)")
            previous = _install_stop_handlers(poller)
            try:
                scheduler.run()
            finally:
                _restore_handlers(previous)
                poller.stop()
                if sound is not None:
                    sound.close()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Session failed")
        print(pretty_json({"ok": False, "error": str(exc)}))
        return 1
    finally:
        lock.release()

    result = {
        "ok": poller.error is None,
        "cycles": poller.cycles,
        "clicks": poller.clicks,
        "sounds": poller.sounds,
        "error": poller.error,
    }
    print(pretty_json(result))
    return 0 if poller.error is None else 1


def _stop() -> int:
    lock = SessionLock(default_lock_path())
    owner = lock.owner()
    if not is_live_session(owner):
        if owner and owner.get("pid") is not None:
            logger.warning("Lock file names pid %s, which is not an autoclicker session; not signalling it.", owner["pid"])
        logger.info("Already stopped or was never started.")
        print(pretty_json({"ok": True, "stopped_pid": None}))
        return 0
    pid = owner["pid"]
    try:
        os.kill(pid, signal.SIGTERM)
    except OSError as exc:
        print(pretty_json({"ok": False, "error": f"could not signal pid {pid}: {exc}"}))
        return 1
    logger.info("Stop requested for session pid %d", pid)
    print(pretty_json({"ok": True, "stopped_pid": pid}))
    return 0


def _show_config(args: argparse.Namespace) -> int:
    try:
        config = load_config(_config_path(args))
    except ConfigError as exc:
        print(pretty_json({"ok": False, "error": str(exc)}))
        return 2
    print(pretty_json({"ok": True, "config": config.as_dict()}))
    return 0


def _doctor(cdp_url: str) -> Dict[str, Any]:
    checks: Dict[str, Dict[str, Any]] = {}
    checks["cdp_endpoint"] = {
        "ok": cdp_endpoint_alive(cdp_url),
        "details": cdp_url,
    }
    checks["playwright"] = {
        "ok": importlib.util.find_spec("playwright") is not None,
        "details": "pip install playwright",
    }
    owner = SessionLock(default_lock_path()).owner()
    running = is_live_session(owner)
    checks["session"] = {
        "ok": True,
        "details": f"running (pid {owner['pid']})" if running else "not running",
    }

    overall_ok = all(item["ok"] for item in checks.values())
    return {"ok": overall_ok, "checks": checks}


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.command == "run":
        code = _run(args)
    elif args.command == "stop":
        code = _stop()
    elif args.command == "show-config":
        code = _show_config(args)
    else:
        result = _doctor(args.cdp_url)
        print(pretty_json(result))
        code = 0 if result["ok"] else 1

    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main(sys.argv[1:])
