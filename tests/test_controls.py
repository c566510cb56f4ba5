from __future__ import annotations

from autoclicker.config import ClickerConfig
from autoclicker.controls import ElementInput, ElementProbe, PlaywrightControls, normalize_label


class _FakeElement:
    """Just enough of a Playwright ElementHandle for the control adapters."""

    def __init__(self, text=None, disabled=False, attrs=None, children=None, value=""):
        self.text = text
        self.disabled = disabled
        self.attrs = attrs or {}
        self.children = children or {}
        self.value = value
        self.calls = []

    def query_selector(self, selector):
        return self.children.get(selector)

    def text_content(self):
        return self.text

    def get_attribute(self, name):
        return self.attrs.get(name)

    def evaluate(self, script, arg=None):
        if "el.disabled" in script:
            return self.disabled
        if "el.click()" in script:
            self.calls.append("click")
            return None
        if "el.blur()" in script:
            self.calls.append("blur")
            return None
        if "el.value = text" in script:
            self.value = arg
            self.calls.append("set_value")
            return None
        if "el.value" in script:
            return self.value
        raise AssertionError(f"unexpected script: {script}")

    def dispatch_event(self, event_type, event_init=None):
        self.calls.append((event_type, event_init))

    def focus(self):
        self.calls.append("focus")


class _FakePage:
    def __init__(self, elements):
        self.elements = elements
        self.queries = []

    def query_selector(self, selector):
        self.queries.append(selector)
        return self.elements.get(selector)


def _button(label, **kwargs):
    span = _FakeElement(text=label)
    return _FakeElement(children={"div.inner span": span}, **kwargs)


def test_normalize_label() -> None:
    assert normalize_label("  Stop \n") == "stop"
    assert normalize_label(None) == ""


def test_control_reads_nested_label() -> None:
    control = ElementProbe(_button("  STOP "), "div.inner span")
    assert control.label() == "stop"
    assert control.is_busy_label() is True


def test_control_without_label_node_is_not_busy() -> None:
    control = ElementProbe(_FakeElement(), "div.inner span")
    assert control.label() == ""
    assert control.is_busy_label() is False


def test_control_custom_busy_label() -> None:
    control = ElementProbe(_button("Cancel"), "div.inner span", busy_label=" CANCEL")
    assert control.is_busy_label() is True


def test_control_disabled_from_property_or_aria() -> None:
    assert ElementProbe(_button("Run", disabled=True), "div.inner span").is_disabled() is True
    aria = _button("Run", attrs={"aria-disabled": "true"})
    assert ElementProbe(aria, "div.inner span").is_disabled() is True
    not_aria = _button("Run", attrs={"aria-disabled": "false"})
    assert ElementProbe(not_aria, "div.inner span").is_disabled() is False


def test_control_activate_clicks_element() -> None:
    button = _button("Run")
    ElementProbe(button, "div.inner span").activate()
    assert button.calls == ["click"]


def test_input_fill_dispatches_input_then_change() -> None:
    element = _FakeElement(value="")
    text_input = ElementInput(element)
    text_input.fill("continue")

    assert text_input.value() == "continue"
    events = [c for c in element.calls if isinstance(c, tuple)]
    assert events == [
        ("input", {"bubbles": True, "composed": True}),
        ("change", {"bubbles": True, "composed": True}),
    ]
    assert element.calls[0] == "set_value"
    assert element.calls[-2:] == ["focus", "blur"]


def test_controls_query_page_on_every_lookup() -> None:
    config = ClickerConfig()
    button = _button("Run")
    page = _FakePage({config.button_selector: button})
    controls = PlaywrightControls(page, config)

    control = controls.find_control()
    assert control is not None and control.element is button
    assert controls.find_control() is not None
    assert controls.find_input() is None
    assert page.queries == [config.button_selector, config.button_selector, config.textarea_selector]
