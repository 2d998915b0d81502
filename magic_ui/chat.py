from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional, Tuple

from magic_ui.agents import DEFAULT_AGENT, Agent, AgentRegistry

log = logging.getLogger(__name__)

CHAT_TEMPERATURE = 0.6
CHAT_MAX_TOKENS = 1024

SUGGESTIONS = (
    "Adjust colors and styling",
    "Modify layout structure",
    "Add interactive features",
    "Export the design",
)

# Priority order matters: the first rule with a keyword hit wins.
ROUTING_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("style", "color", "theme"), "style-curator"),
    (("layout", "structure", "component"), "architect"),
    (("code", "implement", "function"), "code-generator"),
    (("accessibility", "quality", "test"), "qa-specialist"),
)


def select_agent(message: str) -> str:
    lowered = (message or "").lower()
    for keywords, agent_name in ROUTING_RULES:
        if any(k in lowered for k in keywords):
            return agent_name
    return DEFAULT_AGENT


class ChatHandler:
    """Routes one free-text message to a single agent and returns its reply."""

    def __init__(
        self,
        registry: AgentRegistry,
        complete: Callable[..., str],
        stream_complete: Optional[Callable[..., Iterator[str]]] = None,
    ):
        self.registry = registry
        self._complete = complete
        self._stream_complete = stream_complete

    def resolve_agent(self, message: str, agent_hint: Optional[str] = None) -> Agent:
        agent = self.registry.lookup(agent_hint)
        if agent is not None:
            return agent
        if agent_hint:
            log.info("chat: unknown agent hint %r; routing by keywords", agent_hint)
        return self.registry.lookup(select_agent(message)) or self.registry.default_agent()

    def _messages(self, agent: Agent, message: str, context: Optional[str] = None):
        messages = [{"role": "system", "content": agent.system_prompt}]
        if context:
            messages.append({"role": "system", "content": context})
        messages.append({"role": "user", "content": message})
        return messages

    def reply(self, message: str, agent_hint: Optional[str] = None, context: Optional[str] = None) -> str:
        """Answer one message; ``context`` describes the variant the user has selected."""
        agent = self.resolve_agent(message, agent_hint)
        log.info("chat: routed to agent=%s", agent.name)
        return self._complete(
            self._messages(agent, message, context),
            temperature=CHAT_TEMPERATURE,
            max_tokens=CHAT_MAX_TOKENS,
        )

    def stream(self, message: str, agent_hint: Optional[str] = None, context: Optional[str] = None) -> Iterator[str]:
        agent = self.resolve_agent(message, agent_hint)
        if self._stream_complete is None:
            yield self.reply(message, agent.name, context)
            return
        log.info("chat.stream: routed to agent=%s", agent.name)
        yield from self._stream_complete(
            self._messages(agent, message, context),
            temperature=CHAT_TEMPERATURE,
            max_tokens=CHAT_MAX_TOKENS,
        )
