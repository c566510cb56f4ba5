"""Page autoclicker: poll a page control, fill its input and click when ready."""

__all__ = [
    "browser",
    "cli",
    "config",
    "controls",
    "poller",
    "scheduler",
    "session_lock",
    "sound",
]
