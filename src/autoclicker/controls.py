"""Page control adapters.

The poller only talks to the small capabilities below; the Playwright
classes implement them on top of element handles so the state machine can
be exercised against fakes.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from .config import ClickerConfig

logger = logging.getLogger(__name__)

EVENT_INIT = {"bubbles": True, "composed": True}


class ReadinessProbe(Protocol):
    def label(self) -> str:
        ...

    def is_busy_label(self) -> bool:
        ...

    def is_disabled(self) -> bool:
        ...

    def activate(self) -> None:
        ...


class TextInput(Protocol):
    def value(self) -> str:
        ...

    def fill(self, text: str) -> None:
        ...


class PageControls(Protocol):
    def find_control(self) -> Optional[ReadinessProbe]:
        ...

    def find_input(self) -> Optional[TextInput]:
        ...


def normalize_label(text: Optional[str]) -> str:
    return (text or "").strip().lower()


class ElementProbe:
    def __init__(self, element: Any, label_selector: str, busy_label: str = "stop") -> None:
        self.element = element
        self.label_selector = label_selector
        self.busy_label = normalize_label(busy_label)

    def label(self) -> str:
        inner = self.element.query_selector(self.label_selector)
        if inner is None:
            return ""
        return normalize_label(inner.text_content())

    def is_busy_label(self) -> bool:
        return self.label() == self.busy_label

    def is_disabled(self) -> bool:
        if self.element.evaluate("el => !!el.disabled"):
            return True
        return self.element.get_attribute("aria-disabled") == "true"

    def activate(self) -> None:
        # DOM click, not a synthesized mouse click: an overlay must not block it.
        self.element.evaluate("el => el.click()")


class ElementInput:
    def __init__(self, element: Any) -> None:
        self.element = element

    def value(self) -> str:
        return self.element.evaluate("el => el.value") or ""

    def fill(self, text: str) -> None:
        self.element.evaluate("(el, text) => { el.value = text; }", text)
        self.element.dispatch_event("input", EVENT_INIT)
        self.element.dispatch_event("change", EVENT_INIT)
        # Some frameworks only pick the new value up on focus changes.
        self.element.focus()
        self.element.evaluate("el => el.blur()")


class PlaywrightControls:
    """Looks both elements up on every call; handles go stale when the page re-renders."""

    def __init__(self, page: Any, config: ClickerConfig) -> None:
        self.page = page
        self.config = config

    def find_control(self) -> Optional[ElementProbe]:
        element = self.page.query_selector(self.config.button_selector)
        if element is None:
            return None
        return ElementProbe(element, self.config.label_selector, self.config.busy_label)

    def find_input(self) -> Optional[ElementInput]:
        element = self.page.query_selector(self.config.textarea_selector)
        if element is None:
            return None
        return ElementInput(element)
