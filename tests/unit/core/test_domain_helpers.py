"""
Unit Tests for the domain helpers: messages, review and prompts.
"""

from agent_engine.core.domain.events import QueueEvent
from agent_engine.core.domain.messages import (
    TOOL_CALL_TOKEN_OVERHEAD,
    estimate_tokens,
    message_text,
    user_message,
)
from agent_engine.core.domain.models import InvokeFrom, ReviewConfig
from agent_engine.core.domain.review import contains_keyword, mask_keywords, review_output
from agent_engine.core.prompts.agent_prompts import (
    AGENT_SYSTEM_PROMPT_TEMPLATE,
    render_system_prompt,
)


class TestEvents:
    def test_terminal_kinds(self):
        terminal = {kind for kind in QueueEvent if kind.is_terminal}
        assert terminal == {
            QueueEvent.AGENT_END,
            QueueEvent.STOP,
            QueueEvent.TIMEOUT,
            QueueEvent.ERROR,
        }

    def test_user_class(self):
        assert InvokeFrom.END_USER.user_class == "end-user"
        assert InvokeFrom.SERVICE_API.user_class == "account"


class TestMessages:
    def test_message_text_ignores_images(self):
        message = user_message("look", ["https://img/1.png"])
        assert message_text(message) == "look"

    def test_estimate_tokens(self):
        messages = [
            {"role": "user", "content": "abcd" * 3},
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [{"function": {"name": "echo", "arguments": "{}"}}],
            },
        ]
        # 12 chars -> 3 tokens; "echo{}" -> 6 chars -> 2 tokens + overhead
        assert estimate_tokens(messages) == 3 + 2 + TOOL_CALL_TOKEN_OVERHEAD


class TestReview:
    def test_contains_keyword_ignores_case(self):
        assert contains_keyword("please XX now", ("xx",))
        assert not contains_keyword("all good", ("xx",))

    def test_mask_is_literal_and_case_insensitive(self):
        assert mask_keywords("a.b and A.B but axb", ("a.b",)) == "** and ** but axb"

    def test_review_output_requires_both_switches(self):
        text = "secret stuff"
        assert review_output(text, ReviewConfig(keywords=("secret",), outputs_enable=True)) == text
        assert review_output(text, ReviewConfig(enable=True, keywords=("secret",))) == text
        enabled = ReviewConfig(enable=True, keywords=("secret",), outputs_enable=True)
        assert review_output(text, enabled) == "** stuff"

    def test_review_config_from_dict(self):
        config = ReviewConfig.from_dict(
            {
                "enable": True,
                "keywords": ["xx", ""],
                "inputs_config": {"enable": True, "preset_response": "no."},
                "outputs_config": {"enable": False},
            }
        )
        assert config.keywords == ("xx",)
        assert config.reviews_inputs
        assert not config.reviews_outputs
        assert config.preset_response == "no."
        assert ReviewConfig.from_dict(None) == ReviewConfig()


class TestPrompts:
    def test_placeholders_substituted_once(self):
        prompt = render_system_prompt(
            AGENT_SYSTEM_PROMPT_TEMPLATE,
            preset_prompt="Answer with {long_term_memory} literally",
            long_term_memory="likes tea",
        )
        assert "Answer with {long_term_memory} literally" in prompt
        assert "likes tea" in prompt
        assert "{preset_prompt}" not in prompt
