"""Four-stage generation pipeline: structure -> style -> code -> QA -> join.

Stages run strictly in sequence, each prompt embedding the previous stage's
raw text. The result is all-or-nothing: if any stage output fails to parse,
or the join raises, the whole run is replaced by the canned fallback set.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from magic_ui import parsing, prompts
from magic_ui.agents import AgentRegistry
from magic_ui.fallback_variants import fallback_variants
from magic_ui.models import (
    AccessibilityResult,
    GeneratedCode,
    PreviewData,
    QAOutcome,
    StyleVariant,
    UIBrief,
    UIVariant,
    utc_timestamp,
)
from magic_ui.preview import preview_url

log = logging.getLogger(__name__)

STAGE_TEMPERATURE = 0.7
STAGE_MAX_TOKENS = 4096

CompleteFn = Callable[..., str]


class StageFailed(Exception):
    """A stage produced output that could not be used."""

    def __init__(self, stage: str, reason: str):
        super().__init__(f"{stage} stage: {reason}")
        self.stage = stage
        self.reason = reason


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")


def _clamp_score(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return max(0.0, min(1.0, score))


def _first_by_theme(entries: Sequence[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    for entry in entries:
        if entry.get("themeName") == name:
            return entry
    return None


def join_stage_results(
    styles: Sequence[Dict[str, Any]],
    code_entries: Sequence[Dict[str, Any]],
    qa_entries: Sequence[Dict[str, Any]],
    timestamp: Optional[str] = None,
) -> List[UIVariant]:
    """Assemble one UIVariant per style entry that has both a code and a QA match.

    Matching is by exact ``themeName == style.name``; the first matching entry
    wins. Styles without both matches are dropped, never fabricated.
    """
    stamp = timestamp or utc_timestamp()
    variants: List[UIVariant] = []
    for i, style in enumerate(styles):
        name = style["name"]
        code = _first_by_theme(code_entries, name)
        qa = _first_by_theme(qa_entries, name)
        if code is None or qa is None:
            log.info("workflow.join: dropping theme %r (code=%s qa=%s)", name, code is not None, qa is not None)
            continue
        outcome = QAOutcome(
            themeName=name,
            qaScore=_clamp_score(qa.get("qaScore")),
            accessibilityIssues=list(qa.get("accessibilityIssues") or []),
        )
        preview_id = f"v{i + 1}"
        variants.append(
            UIVariant(
                id=f"variant-{i + 1}",
                name=name,
                description=style.get("description", ""),
                code=GeneratedCode(
                    html=code["html"],
                    css=code.get("css", ""),
                    js=code.get("js", ""),
                    framework="vanilla",
                ),
                preview=PreviewData(
                    id=preview_id,
                    url=preview_url(preview_id),
                    thumbnail="",
                    status="pending",
                    lastUpdated=stamp,
                ),
                style=StyleVariant(
                    id=f"style-{i + 1}",
                    name=name,
                    description=style.get("description", ""),
                    theme=style.get("theme") or _slug(name),
                    colors=style.get("colors") or {},
                    typography=style.get("typography") or {},
                    spacing=style.get("spacing") or {},
                    components=style.get("components") or {},
                    animations=style.get("animations"),
                    responsive=style.get("responsive"),
                ),
                qaScore=outcome.qa_score,
                accessibility=AccessibilityResult(score=outcome.qa_score, issues=outcome.accessibility_issues),
            )
        )
    return variants


class WorkflowOrchestrator:
    """Drives one brief through the architect, style, code and QA agents."""

    def __init__(self, registry: AgentRegistry, complete: CompleteFn):
        self.registry = registry
        self._complete = complete

    def _run_agent(self, agent_name: str, task: str) -> str:
        agent = self.registry.lookup(agent_name)
        if agent is None:
            raise StageFailed(agent_name, "agent not registered")
        messages = [
            {"role": "system", "content": agent.system_prompt},
            {"role": "user", "content": task},
        ]
        return self._complete(messages, temperature=STAGE_TEMPERATURE, max_tokens=STAGE_MAX_TOKENS)

    def _parsed(self, stage: str, text: str) -> Any:
        result = parsing.parse_stage(stage, text)
        if not result.ok:
            raise StageFailed(stage, result.error or "unparseable output")
        return result.value

    def run_stages(self, brief: UIBrief) -> List[UIVariant]:
        """Run the pipeline without the fallback net; raises StageFailed."""
        structure_text = self._run_agent(
            "architect", prompts.structure_prompt(brief.description, brief.type, brief.requirements)
        )
        self._parsed(parsing.STRUCTURE, structure_text)
        log.info("workflow: structure stage done (%d chars)", len(structure_text))

        style_text = self._run_agent("style-curator", prompts.style_prompt(structure_text))
        styles = self._parsed(parsing.STYLE, style_text)
        log.info("workflow: style stage returned %d themes", len(styles))

        code_text = self._run_agent("code-generator", prompts.code_prompt(structure_text, style_text))
        code_entries = self._parsed(parsing.CODE, code_text)
        log.info("workflow: code stage returned %d implementations", len(code_entries))

        qa_text = self._run_agent("qa-specialist", prompts.qa_prompt(code_text))
        qa_entries = self._parsed(parsing.QA, qa_text)
        log.info("workflow: qa stage returned %d reviews", len(qa_entries))

        return join_stage_results(styles, code_entries, qa_entries)

    def run(self, brief: UIBrief) -> List[UIVariant]:
        """Return the generated variants, or the canned set if any stage fails."""
        try:
            variants = self.run_stages(brief)
        except StageFailed as e:
            log.error("workflow: %s; serving fallback variants", e)
            return fallback_variants()
        except Exception:
            log.exception("workflow: unexpected failure; serving fallback variants")
            return fallback_variants()
        if not variants:
            log.warning("workflow: no theme matched across stages; serving fallback variants")
            return fallback_variants()
        log.info("workflow: produced %d variants", len(variants))
        return variants
