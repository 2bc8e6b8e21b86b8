import pytest
from pydantic import ValidationError

from slidespec.agents.prompts.generation.slide_prompts import render_generator_prompt
from slidespec.models.intent_plan import IntentPlan
from slidespec.models.requests import GenerationRequest
from slidespec.models.slide_spec import SlideSpec

from conftest import PLAN


class TestSlideSpec:

    def test_unknown_keys_dropped(self, spec_data):
        spec_data["content"]["sparkles"] = True
        spec = SlideSpec.model_validate(spec_data)
        assert "sparkles" not in spec.content.model_dump()

    def test_title_required(self, spec_data):
        del spec_data["content"]["title"]
        with pytest.raises(ValidationError):
            SlideSpec.model_validate(spec_data)

    def test_bad_identifier_rejected(self, spec_data):
        spec_data["content"]["bullets"][0]["id"] = "bullets 1"
        with pytest.raises(ValidationError):
            SlideSpec.model_validate(spec_data)

    def test_content_ids_in_order(self, spec_data):
        spec_data["content"]["dataViz"] = {"id": "chart"}
        spec_data["content"]["imagePlaceholders"] = [{"id": "img"}]
        spec = SlideSpec.model_validate(spec_data)
        assert spec.content_ids() == ["title", "subtitle", "b1", "c1", "chart", "img"]

    def test_chart_display_options_kept(self, spec_data):
        spec_data["content"]["dataViz"] = {
            "id": "chart",
            "labels": ["Q1", "Q2"],
            "legend": {"position": "right"},
            "gridlines": False,
            "dataLabels": True,
        }
        chart = SlideSpec.model_validate(spec_data).content.dataViz
        assert chart.gridlines is False
        assert chart.dataLabels is True
        assert chart.legend.position == "right"
        dumped = chart.model_dump(exclude_none=True)
        assert dumped["gridlines"] is False and dumped["dataLabels"] is True

    def test_chart_display_options_in_json_schema(self):
        chart_schema = SlideSpec.model_json_schema()["$defs"]["DataViz"]["properties"]
        assert {"legend", "gridlines", "dataLabels"} <= set(chart_schema)


class TestIntentPlan:

    def test_defaults(self):
        plan = IntentPlan(intent="explanatory", audience="team", tone="formal", slidePattern="overview")
        assert plan.visualPlan == "minimal"
        assert plan.brandHints == []

    def test_limits(self):
        with pytest.raises(ValidationError):
            IntentPlan(**{**PLAN, "brandHints": [f"b{i}" for i in range(6)]})
        with pytest.raises(ValidationError):
            IntentPlan(**{**PLAN, "audience": "a" * 101})
        with pytest.raises(ValidationError):
            IntentPlan(**{**PLAN, "tone": "sarcastic"})

    def test_generator_prompt_lists_hints(self):
        prompt = render_generator_prompt("Q1 plan", IntentPlan(**{**PLAN, "brandHints": ["Acme"]}))
        assert prompt.startswith("User prompt: Q1 plan")
        assert "- Slide Pattern: bar-chart" in prompt
        assert "- Brand Hints: Acme" in prompt
        assert "- Data Hints: Q1" in prompt


@pytest.mark.parametrize("kwargs,key", [
    ({"userId": "u-1", "context": {"clientIp": "10.0.0.1"}}, "u-1"),
    ({"context": {"clientIp": "10.0.0.1"}}, "10.0.0.1"),
    ({}, "anonymous"),
])
def test_request_client_key(kwargs, key):
    assert GenerationRequest(prompt="p", requestId="r", **kwargs).client_key == key
