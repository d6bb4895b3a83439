"""Callback registry + adapter registration tests."""

import re

import pytest

from conftest import message_payload, options_payload
from interactive_messages.adapter import MessageAdapter
from interactive_messages.dispatcher.registry import (
    CallbackRegistry,
    HandlerConvention,
    RegistrationError,
)
from interactive_messages.schemas.payload import parse_payload


def handler(payload, respond=None):
    return None


# ─── Registry ─────────────────────────────────────────────


def test_first_registered_match_wins():
    registry = CallbackRegistry()
    first = registry.register("id", lambda p, r: "first")
    registry.register(re.compile("i"), lambda p, r: "second")
    registry.register("id", lambda p, r: "third")

    assert registry.match_first(parse_payload(message_payload())) is first


def test_no_match_returns_none():
    registry = CallbackRegistry()
    registry.register("other", handler)
    assert registry.match_first(parse_payload(message_payload())) is None


def test_registration_does_not_deduplicate():
    registry = CallbackRegistry()
    registry.register("id", handler)
    registry.register("id", handler)
    assert len(registry) == 2


def test_non_callable_handler_is_rejected():
    registry = CallbackRegistry()
    with pytest.raises(RegistrationError):
        registry.register("id", None)
    with pytest.raises(TypeError):
        registry.register("id", "not a function")
    assert len(registry) == 0


def test_matching_skips_entries_of_the_other_convention():
    registry = CallbackRegistry()
    options_entry = registry.register("pick_team", handler, HandlerConvention.OPTIONS)
    action_entry = registry.register("pick_team", handler, HandlerConvention.ACTION)

    select = parse_payload(message_payload(callback_id="pick_team"))
    assert registry.match_first(select) is action_entry
    assert registry.match_first(parse_payload(options_payload())) is options_entry


def test_convention_defaults_to_action():
    registry = CallbackRegistry()
    entry = registry.register("pick_team", handler)
    assert entry.convention is HandlerConvention.ACTION
    assert registry.match_first(parse_payload(options_payload())) is None


def test_iteration_is_a_snapshot():
    registry = CallbackRegistry()
    registry.register("a", handler)
    seen = []
    for entry in registry:
        seen.append(entry)
        registry.register("b", handler)
    assert len(seen) == 1
    assert len(registry) == 2


def test_reset_drops_everything():
    registry = CallbackRegistry()
    registry.register("id", handler)
    registry.reset()
    assert len(registry) == 0
    assert registry.match_first(parse_payload(message_payload())) is None


# ─── Adapter registration API ─────────────────────────────


@pytest.mark.parametrize("method", ["action", "options"])
def test_adapter_registers_string_and_pattern_ids(method):
    adapter = MessageAdapter("secret")
    getattr(adapter, method)("my_callback", handler)
    getattr(adapter, method)(re.compile(r"\w+_callback"), handler)
    assert len(adapter.registry) == 2


@pytest.mark.parametrize("method", ["action", "options"])
@pytest.mark.parametrize("bad", [5, True, [], None])
def test_adapter_rejects_invalid_ids(method, bad):
    adapter = MessageAdapter("secret")
    with pytest.raises(TypeError):
        getattr(adapter, method)(bad, handler)


@pytest.mark.parametrize("method", ["action", "options"])
def test_adapter_decorator_form(method):
    adapter = MessageAdapter("secret")

    @getattr(adapter, method)("my_callback")
    def on_callback(payload, respond=None):
        return "ok"

    assert on_callback(None) == "ok"
    [entry] = list(adapter.registry)
    assert entry.handler is on_callback
    assert entry.constraint.callback_id == "my_callback"
    assert entry.convention is HandlerConvention(method)


def test_adapter_decorator_validates_before_decorating():
    adapter = MessageAdapter("secret")
    with pytest.raises(RegistrationError):
        adapter.action({"type": "not_a_real_action_type"})


def test_adapter_registration_is_chainable():
    adapter = MessageAdapter("secret")
    adapter.action("a", handler).options("b", handler)
    assert len(adapter.registry) == 2


def test_adapter_constructor_validation():
    with pytest.raises(TypeError):
        MessageAdapter(1234)
    with pytest.raises(ValueError):
        MessageAdapter("secret", sync_response_timeout=0)
    with pytest.raises(ValueError):
        MessageAdapter("secret", options_response_limit=-1)
