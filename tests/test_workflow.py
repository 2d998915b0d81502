import json

import pytest

from magic_ui import completion_client
from magic_ui.agents import default_registry
from magic_ui.fallback_variants import FALLBACK_VARIANTS
from magic_ui.models import UIBrief
from magic_ui.workflow import StageFailed, WorkflowOrchestrator, join_stage_results

THEMES = ["Calm Coast", "Night Shift", "Paper Mill", "Signal Pop"]

STRUCTURE = {"components": ["header", "sidebar", "chart"], "layout": "grid", "navigation": "sidebar"}


def _styles(names=THEMES):
    return [
        {
            "name": n,
            "description": f"{n} look",
            "colors": {"primary": "#112233", "background": "#ffffff"},
            "typography": {"heading": "Inter"},
            "spacing": {"base": "1rem"},
            "components": {"button": "rounded"},
        }
        for n in names
    ]


def _code(names=THEMES):
    return [{"themeName": n, "html": f"<main>{n}</main>", "css": "main{}", "js": ""} for n in names]


def _qa(names=THEMES, score=0.9):
    return [{"themeName": n, "qaScore": score, "accessibilityIssues": []} for n in names]


class ScriptedCrew:
    """Answers each agent by its system prompt; records the prompts it saw."""

    def __init__(self, **overrides):
        registry = default_registry()
        self.outputs = {
            "architect": json.dumps(STRUCTURE),
            "style-curator": json.dumps(_styles()),
            "code-generator": json.dumps(_code()),
            "qa-specialist": json.dumps(_qa()),
        }
        self.outputs.update(overrides)
        self._by_prompt = {registry.lookup(n).system_prompt: n for n in self.outputs}
        self.calls = []

    def __call__(self, messages, model=None, temperature=None, max_tokens=None):
        agent = self._by_prompt[messages[0]["content"]]
        self.calls.append({"agent": agent, "task": messages[-1]["content"], "temperature": temperature})
        return self.outputs[agent]


def _brief(**kw):
    kw.setdefault("description", "an analytics dashboard")
    kw.setdefault("type", "dashboard")
    return UIBrief(**kw)


def test_full_run_produces_four_variants_in_style_order():
    crew = ScriptedCrew()
    variants = WorkflowOrchestrator(default_registry(), crew).run(_brief())

    assert [v.name for v in variants] == THEMES
    assert [v.id for v in variants] == ["variant-1", "variant-2", "variant-3", "variant-4"]
    assert [c["agent"] for c in crew.calls] == ["architect", "style-curator", "code-generator", "qa-specialist"]
    assert all(c["temperature"] == 0.7 for c in crew.calls)
    first = variants[0]
    assert first.code.html == "<main>Calm Coast</main>"
    assert first.qa_score == pytest.approx(0.9)
    assert first.accessibility.score == pytest.approx(0.9)
    assert first.preview.status == "pending"
    assert first.style.theme == "calm-coast"


def test_prompts_embed_previous_stage_output():
    crew = ScriptedCrew()
    WorkflowOrchestrator(default_registry(), crew).run(
        _brief(requirements=["dark mode toggle"])
    )
    tasks = {c["agent"]: c["task"] for c in crew.calls}
    assert "an analytics dashboard" in tasks["architect"]
    assert "dashboard" in tasks["architect"]
    assert "dark mode toggle" in tasks["architect"]
    assert crew.outputs["architect"] in tasks["style-curator"]
    assert crew.outputs["architect"] in tasks["code-generator"]
    assert crew.outputs["style-curator"] in tasks["code-generator"]
    assert crew.outputs["code-generator"] in tasks["qa-specialist"]


def test_two_themes_give_at_most_two_variants():
    crew = ScriptedCrew(**{"style-curator": json.dumps(_styles(THEMES[:2]))})
    variants = WorkflowOrchestrator(default_registry(), crew).run(_brief())
    assert [v.name for v in variants] == THEMES[:2]


def test_unmatched_theme_is_dropped():
    crew = ScriptedCrew(**{"qa-specialist": json.dumps(_qa(THEMES[:3]))})
    variants = WorkflowOrchestrator(default_registry(), crew).run(_brief())
    assert [v.name for v in variants] == THEMES[:3]
    assert [v.id for v in variants] == ["variant-1", "variant-2", "variant-3"]


def test_duplicate_theme_name_uses_first_match():
    code = _code() + [{"themeName": "Calm Coast", "html": "<main>second</main>"}]
    crew = ScriptedCrew(**{"code-generator": json.dumps(list(reversed(code)))})
    variants = WorkflowOrchestrator(default_registry(), crew).run(_brief())
    assert variants[0].code.html == "<main>second</main>"


@pytest.mark.parametrize("agent", ["architect", "style-curator", "code-generator", "qa-specialist"])
def test_any_unparseable_stage_yields_fallback_set(agent):
    crew = ScriptedCrew(**{agent: "Sorry, I cannot help with that."})
    variants = WorkflowOrchestrator(default_registry(), crew).run(_brief())
    assert variants == list(FALLBACK_VARIANTS)


def test_stage_failure_stops_the_pipeline():
    crew = ScriptedCrew(**{"style-curator": "no json here"})
    with pytest.raises(StageFailed) as exc:
        WorkflowOrchestrator(default_registry(), crew).run_stages(_brief())
    assert exc.value.stage == "style"
    assert [c["agent"] for c in crew.calls] == ["architect", "style-curator"]


def test_no_matching_themes_yields_fallback_set():
    crew = ScriptedCrew(**{"qa-specialist": json.dumps(_qa(["Somebody Else"]))})
    variants = WorkflowOrchestrator(default_registry(), crew).run(_brief())
    assert variants == list(FALLBACK_VARIANTS)


def test_unexpected_error_yields_fallback_set():
    def exploding(messages, **kw):
        raise RuntimeError("provider went away")

    variants = WorkflowOrchestrator(default_registry(), exploding).run(_brief())
    assert variants == list(FALLBACK_VARIANTS)


def test_without_credentials_runs_are_deterministic():
    orch = WorkflowOrchestrator(default_registry(), completion_client.complete)
    first = orch.run(_brief())
    second = orch.run(_brief(description="a todo app"))
    assert first == second == list(FALLBACK_VARIANTS)
    assert len(first) == 4
    assert [v.name for v in first] == ["Retro Futurism", "Glass Aurora", "Neo Brutalist", "Minimal Mono"]


def test_fallback_variants_satisfy_invariants():
    for v in FALLBACK_VARIANTS:
        assert 0.0 <= v.qa_score <= 1.0
        assert 0.0 <= v.accessibility.score <= 1.0
        assert v.code.html.strip()
        assert v.preview.thumbnail.startswith("data:image/svg+xml;base64,")
        assert v.style.name == v.name


def test_join_clamps_out_of_range_scores():
    variants = join_stage_results(
        _styles(THEMES[:2]),
        _code(THEMES[:2]),
        [
            {"themeName": THEMES[0], "qaScore": 7},
            {"themeName": THEMES[1], "qaScore": -0.5},
        ],
        timestamp="2024-01-01T00:00:00Z",
    )
    assert variants[0].qa_score == 1.0
    assert variants[1].qa_score == 0.0
    assert all(v.preview.last_updated == "2024-01-01T00:00:00Z" for v in variants)


def test_join_keeps_style_theme_when_given():
    styles = _styles(THEMES[:1])
    styles[0]["theme"] = "coastal"
    variants = join_stage_results(styles, _code(THEMES[:1]), _qa(THEMES[:1]))
    assert variants[0].style.theme == "coastal"
    assert variants[0].to_wire()["qaScore"] == pytest.approx(0.9)
