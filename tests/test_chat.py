import pytest

from magic_ui.agents import default_registry
from magic_ui.chat import CHAT_MAX_TOKENS, ChatHandler, select_agent


@pytest.mark.parametrize(
    "message,expected",
    [
        ("Can you change the color palette?", "style-curator"),
        ("Switch to a darker THEME", "style-curator"),
        ("Rework the layout of the sidebar", "architect"),
        ("Add another component", "architect"),
        ("Implement a search function", "code-generator"),
        ("Improve accessibility", "qa-specialist"),
        ("Run a quality test", "qa-specialist"),
        ("Can you change the color scheme?", "style-curator"),
        ("Add a new component to the layout", "architect"),
        ("hello", "architect"),
        ("", "architect"),
    ],
)
def test_select_agent_routes_by_keywords(message, expected):
    assert select_agent(message) == expected


def test_style_keywords_win_over_layout():
    assert select_agent("style the layout") == "style-curator"


class Recorder:
    def __init__(self, reply="ok"):
        self.reply = reply
        self.calls = []

    def __call__(self, messages, model=None, temperature=None, max_tokens=None):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        return self.reply


def test_reply_uses_routed_agent_system_prompt():
    reg = default_registry()
    rec = Recorder("Try a teal accent.")
    out = ChatHandler(reg, rec).reply("change the colors")
    assert out == "Try a teal accent."
    msgs = rec.calls[0]["messages"]
    assert msgs[0] == {"role": "system", "content": reg.lookup("style-curator").system_prompt}
    assert msgs[1] == {"role": "user", "content": "change the colors"}
    assert rec.calls[0]["temperature"] == 0.6
    assert rec.calls[0]["max_tokens"] == CHAT_MAX_TOKENS


def test_known_hint_overrides_keywords():
    reg = default_registry()
    handler = ChatHandler(reg, Recorder())
    assert handler.resolve_agent("change the colors", "exporter").name == "exporter"


def test_unknown_hint_falls_back_to_keywords():
    handler = ChatHandler(default_registry(), Recorder())
    assert handler.resolve_agent("implement a function", "wizard").name == "code-generator"
    assert handler.resolve_agent("hi", "wizard").name == "architect"


def test_stream_delegates_to_stream_callable():
    seen = {}

    def fake_stream(messages, model=None, temperature=None, max_tokens=None):
        seen["system"] = messages[0]["content"]
        yield "a"
        yield "b"

    reg = default_registry()
    handler = ChatHandler(reg, Recorder(), fake_stream)
    assert list(handler.stream("run a test")) == ["a", "b"]
    assert seen["system"] == reg.lookup("qa-specialist").system_prompt


def test_stream_without_stream_callable_yields_single_reply():
    handler = ChatHandler(default_registry(), Recorder("whole reply"))
    assert list(handler.stream("hi")) == ["whole reply"]


def test_variant_context_rides_between_prompt_and_message():
    reg = default_registry()
    rec = Recorder()
    ChatHandler(reg, rec).reply("change the colors", context='Refining "Calm" (light).')
    msgs = rec.calls[0]["messages"]
    assert [m["role"] for m in msgs] == ["system", "system", "user"]
    assert msgs[1]["content"] == 'Refining "Calm" (light).'
    assert msgs[2]["content"] == "change the colors"


def test_stream_passes_variant_context():
    seen = []

    def fake_stream(messages, model=None, temperature=None, max_tokens=None):
        seen.extend(messages)
        yield "ok"

    handler = ChatHandler(default_registry(), Recorder(), fake_stream)
    assert list(handler.stream("hi", context="Refining Calm.")) == ["ok"]
    assert seen[1] == {"role": "system", "content": "Refining Calm."}

    rec = Recorder("whole")
    assert list(ChatHandler(default_registry(), rec).stream("hi", context="Refining Calm.")) == ["whole"]
    assert rec.calls[0]["messages"][1]["content"] == "Refining Calm."
