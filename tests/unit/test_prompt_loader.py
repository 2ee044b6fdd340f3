"""Tests for prompt template, JSON schema and domain instruction loading."""

from pathlib import Path

import pytest

from docsieve.extraction.exceptions import PromptLoadError
from docsieve.extraction.prompt_loader import (
    PromptLibrary,
    load_json_schema,
    load_prompt_template,
)


class TestLoadPromptTemplate:
    def test_loads_bundled_template(self) -> None:
        template = load_prompt_template("extraction_prompt.txt")
        assert "{document_text}" in template
        assert "{json_schema}" in template

    def test_loads_custom_template(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom.txt"
        custom.write_text("Hello {document_text}")
        assert load_prompt_template("ignored", custom) == "Hello {document_text}"

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(PromptLoadError, match="Failed to load prompt"):
            load_prompt_template("x", Path("/nonexistent/file.txt"))


class TestLoadJsonSchema:
    def test_loads_bundled_schema(self) -> None:
        assert "entities" in load_json_schema("extraction_schema.json")

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(PromptLoadError, match="Failed to load JSON schema"):
            load_json_schema("x", Path("/nonexistent/schema.json"))


class TestPromptLibrary:
    def test_templates_format_with_expected_placeholders(self) -> None:
        prompts = PromptLibrary()
        prompts.extraction_template.format(
            domain_instructions="", profile="{}", json_schema="{}", document_text="doc"
        )
        prompts.ocr_template.format(domain_instructions="", page_label="p", json_schema="{}")
        prompts.question_template.format(
            domain_instructions="", json_schema="{}", context="c", question="q"
        )
        prompts.classification_template.format(json_schema="{}", text_sample="s")

    def test_schemas_are_parsed(self) -> None:
        prompts = PromptLibrary()
        assert prompts.extraction_schema["title"] == "extraction_result"
        assert prompts.answer_schema["title"] == "query_answer"

    def test_domain_instructions_differ_by_domain(self) -> None:
        prompts = PromptLibrary()
        assert prompts.domain_instructions("medical") != prompts.domain_instructions("legal")

    def test_unknown_domain_uses_general(self) -> None:
        prompts = PromptLibrary()
        assert prompts.domain_instructions("astrology") == prompts.domain_instructions("general")

    def test_known_domains(self) -> None:
        assert {"general", "medical", "legal", "finance"} <= set(PromptLibrary().known_domains())
