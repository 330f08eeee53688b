"""Unit tests for the versioned prompt loader."""

import pytest

from ragcore.infrastructure.prompts import PromptLoader


@pytest.mark.unit
class TestPromptLoader:
    def test_default_template_has_placeholders(self):
        template = PromptLoader().get_template()

        assert "{context}" in template
        assert "{query}" in template

    def test_format_inserts_context_and_query(self):
        prompt = PromptLoader().format(context="CTX-BLOCK", query="what is flu?")

        assert "CTX-BLOCK" in prompt
        assert "what is flu?" in prompt

    def test_braces_in_inputs_are_kept_verbatim(self):
        prompt = PromptLoader().format(context="{json: 1}", query="{query}")

        assert "{json: 1}" in prompt

    def test_missing_version_raises(self):
        with pytest.raises(FileNotFoundError):
            PromptLoader(version="v999").get_template()

    def test_custom_directory(self, tmp_path):
        (tmp_path / "v2_answer.md").write_text("Q={query} C={context}", encoding="utf-8")

        loader = PromptLoader(version="v2", prompts_dir=tmp_path)

        assert loader.format(context="c", query="q") == "Q=q C=c"

    def test_template_without_placeholders_is_rejected(self, tmp_path):
        (tmp_path / "v3_answer.md").write_text("Answer: {query}", encoding="utf-8")

        with pytest.raises(ValueError, match="context"):
            PromptLoader(version="v3", prompts_dir=tmp_path).get_template()
