import json

from magic_ui import parsing


def test_json_from_text_plain_and_fenced():
    assert parsing.json_from_text('{"a": 1}') == {"a": 1}
    fenced = 'Here you go:\n```json\n[{"name": "X"}]\n```\nThanks!'
    assert parsing.json_from_text(fenced) == [{"name": "X"}]
    bare_fence = "```\n{\"b\": 2}\n```"
    assert parsing.json_from_text(bare_fence) == {"b": 2}


def test_json_from_text_balanced_slice_ignores_braces_in_strings():
    text = 'Sure! {"html": "<div>{ not a brace }</div>", "n": [1, 2]} trailing words'
    assert parsing.json_from_text(text) == {"html": "<div>{ not a brace }</div>", "n": [1, 2]}


def test_json_from_text_repairs_trailing_commas():
    text = 'Result: [{"name": "A",}, {"name": "B"},]'
    assert parsing.json_from_text(text) == [{"name": "A"}, {"name": "B"}]


def test_json_from_text_raises_on_prose():
    try:
        parsing.json_from_text("I could not come up with anything.")
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")


def test_parse_stage_structure_requires_object():
    assert parsing.parse_stage(parsing.STRUCTURE, '{"components": ["nav"]}').ok
    bad = parsing.parse_stage(parsing.STRUCTURE, "[1, 2]")
    assert not bad.ok and bad.error


def test_parse_stage_style_unwraps_wrapper_object():
    text = json.dumps({"themes": [{"name": "Calm", "colors": {"primary": "#123456"}}]})
    res = parsing.parse_stage(parsing.STYLE, text)
    assert res.ok
    assert res.value == [{"name": "Calm", "colors": {"primary": "#123456"}}]


def test_parse_stage_style_rejects_missing_name():
    res = parsing.parse_stage(parsing.STYLE, json.dumps([{"description": "nameless"}]))
    assert not res.ok
    assert "name" in res.error


def test_parse_stage_code_and_qa_shapes():
    code = [{"themeName": "Calm", "html": "<p>x</p>", "css": "", "js": ""}]
    assert parsing.parse_stage(parsing.CODE, json.dumps(code)).ok
    assert not parsing.parse_stage(parsing.CODE, json.dumps([{"themeName": "Calm"}])).ok

    qa = [{"themeName": "Calm", "qaScore": 0.8, "accessibilityIssues": ["low contrast"]}]
    assert parsing.parse_stage(parsing.QA, json.dumps(qa)).ok
    bad_qa = [{"themeName": "Calm", "qaScore": "high"}]
    res = parsing.parse_stage(parsing.QA, json.dumps(bad_qa))
    assert not res.ok and "qaScore" in res.error


def test_parse_stage_never_raises_on_garbage():
    for stage in (parsing.STRUCTURE, parsing.STYLE, parsing.CODE, parsing.QA, "bogus"):
        res = parsing.parse_stage(stage, "not json at all")
        assert res.ok is False
        assert res.stage == stage


def test_parse_stage_skips_bracketed_preamble():
    payload = [{"themeName": "A", "html": "<p>a</p>"}]
    text = "Implementations for [Modern, Bold] themes:\n" + json.dumps(payload)
    res = parsing.parse_stage(parsing.CODE, text)
    assert res.ok, res.error
    assert res.value == payload


def test_parse_stage_skips_valid_json_of_the_wrong_shape():
    qa = [{"themeName": "A", "qaScore": 0.7}]
    text = "Scores for variants [1, 2] follow: " + json.dumps(qa)
    res = parsing.parse_stage(parsing.QA, text)
    assert res.ok
    assert res.value == qa


def test_brackets_inside_quoted_prose_do_not_open_a_span():
    text = 'Note: "use [brackets] sparingly" then {"components": ["nav"]}'
    assert parsing.json_from_text(text) == {"components": ["nav"]}


def test_later_span_is_repaired_when_earlier_ones_fail():
    text = 'Themes (see [1]): [{"name": "Calm",}]'
    res = parsing.parse_stage(parsing.STYLE, text)
    assert res.ok
    assert res.value == [{"name": "Calm"}]
