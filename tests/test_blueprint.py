"""Tests for elysian/llm/blueprint.py."""

import json

import pytest

from conftest import make_response
from elysian.errors import MalformedBlueprint
from elysian.llm.blueprint import BLUEPRINT_SCHEMA, BlueprintSynthesizer, parse_blueprint
from elysian.models import UserProfile


VALID = {
    "rootAnalysis": "Fear of abandonment rooted in early instability.",
    "coreShift": "Your worth is not negotiated in every conversation.",
    "actionSteps": [
        {"title": "Name it", "description": "Label the fear when it arrives.", "whyItWorks": "Affect labeling calms the amygdala."},
        {"title": "Pause", "description": "Wait ten minutes before replying.", "whyItWorks": "Breaks the reactive loop."},
    ],
    "suggestedRitual": "Five minutes of journaling every evening.",
}

HISTORY = [
    {"role": "user", "content": "My partner ignores my messages"},
    {"role": "assistant", "content": "Let's look at what that brings up."},
    {"role": "user", "content": "I panic"},
    {"role": "assistant", "content": "That panic has a history."},
]


class TestParseBlueprint:
    def test_valid_payload(self):
        blueprint = parse_blueprint(json.dumps(VALID), now_ms=123)
        assert blueprint.root_analysis.startswith("Fear of abandonment")
        assert len(blueprint.action_steps) == 2
        assert blueprint.action_steps[1].why_it_works == "Breaks the reactive loop."
        assert blueprint.last_updated == 123

    def test_stamps_current_time(self):
        blueprint = parse_blueprint(json.dumps(VALID))
        assert blueprint.last_updated > 1_600_000_000_000

    def test_fenced_json(self):
        raw = "```json\n" + json.dumps(VALID) + "\n```"
        assert parse_blueprint(raw, now_ms=1).core_shift == VALID["coreShift"]

    def test_trailing_comma_is_repaired(self):
        raw = json.dumps(VALID)[:-1] + ",}"
        assert parse_blueprint(raw, now_ms=1).suggested_ritual == VALID["suggestedRitual"]

    def test_missing_action_steps(self):
        payload = {k: v for k, v in VALID.items() if k != "actionSteps"}
        with pytest.raises(MalformedBlueprint, match="actionSteps"):
            parse_blueprint(json.dumps(payload))

    def test_empty_action_steps(self):
        with pytest.raises(MalformedBlueprint):
            parse_blueprint(json.dumps({**VALID, "actionSteps": []}))

    def test_step_missing_field(self):
        steps = [{"title": "Only a title", "description": "x"}]
        with pytest.raises(MalformedBlueprint):
            parse_blueprint(json.dumps({**VALID, "actionSteps": steps}))

    @pytest.mark.parametrize("raw", ["", "   ", "[1, 2, 3]", '"just a string"'])
    def test_not_an_object(self, raw):
        with pytest.raises(MalformedBlueprint):
            parse_blueprint(raw)


class TestSynthesizer:
    @pytest.mark.asyncio
    async def test_requests_schema_constrained_json(self, gemini, fake_models, config):
        fake_models.responses.append(make_response(text=json.dumps(VALID)))
        profile = UserProfile(name="Sam", main_focus="Inner Equanimity")

        blueprint = await BlueprintSynthesizer(gemini, config).synthesize(HISTORY, profile)

        assert blueprint.core_shift == VALID["coreShift"]
        call = fake_models.calls[0]
        assert call["model"] == config.blueprint_model
        assert call["config"].response_mime_type == "application/json"
        assert call["config"].response_schema == BLUEPRINT_SCHEMA
        prompt = call["contents"][0].parts[0].text
        assert "Restoration Blueprint" in prompt
        assert "user: I panic" in prompt
        assert "assistant: That panic has a history." in prompt
        assert "User: Sam" in prompt
        assert "Focus Area: Inner Equanimity" in prompt

    def test_schema_requires_every_field(self):
        assert set(BLUEPRINT_SCHEMA.required) == {"rootAnalysis", "coreShift", "actionSteps", "suggestedRitual"}
        steps = BLUEPRINT_SCHEMA.properties["actionSteps"]
        assert steps.min_items == 1
        assert set(steps.items.required) == {"title", "description", "whyItWorks"}

    @pytest.mark.asyncio
    async def test_malformed_response(self, gemini, fake_models, config):
        fake_models.responses.append(make_response(text='{"rootAnalysis": "only this"}'))
        with pytest.raises(MalformedBlueprint):
            await BlueprintSynthesizer(gemini, config).synthesize(HISTORY)

    @pytest.mark.asyncio
    async def test_history_window(self, gemini, fake_models, config):
        fake_models.responses.append(make_response(text=json.dumps(VALID)))
        config.blueprint_history_messages = 2
        await BlueprintSynthesizer(gemini, config).synthesize(HISTORY)
        prompt = fake_models.calls[0]["contents"][0].parts[0].text
        assert "I panic" in prompt
        assert "ignores my messages" not in prompt
