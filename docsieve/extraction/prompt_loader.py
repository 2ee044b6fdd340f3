import json
from pathlib import Path

from docsieve.extraction.exceptions import PromptLoadError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"
_DEFAULT_DOMAIN = "general"


def load_prompt_template(name: str, path: Path | None = None) -> str:
    """Load a prompt template from a file.

    Args:
        name: File name inside the bundled prompts directory.
        path: Explicit path overriding the bundled file.

    Returns:
        The raw template string with placeholders.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptLoadError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(name: str, path: Path | None = None) -> str:
    """Load a JSON schema from a file.

    Raises:
        PromptLoadError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PromptLoadError(f"Failed to load JSON schema: {exc}") from exc


class PromptLibrary:
    """Prompt templates, schemas and per-domain instructions.

    Domain instructions are looked up by key (``medical``, ``legal``, ...) in
    ``prompts/domains``; unknown keys use the ``general`` instructions.
    """

    def __init__(self, prompt_dir: Path | None = None) -> None:
        self._dir = prompt_dir if prompt_dir is not None else _DEFAULT_PROMPT_DIR
        self.system_prompt = self._template("system_prompt.txt").strip()
        self.extraction_template = self._template("extraction_prompt.txt")
        self.ocr_template = self._template("ocr_prompt.txt")
        self.question_template = self._template("question_prompt.txt")
        self.classification_template = self._template("classification_prompt.txt")
        self.extraction_schema_text = self._schema("extraction_schema.json")
        self.answer_schema_text = self._schema("answer_schema.json")
        self.classification_schema_text = self._schema("classification_schema.json")
        self.extraction_schema: dict[str, object] = json.loads(self.extraction_schema_text)
        self.answer_schema: dict[str, object] = json.loads(self.answer_schema_text)
        self.classification_schema: dict[str, object] = json.loads(
            self.classification_schema_text
        )
        self._domains: dict[str, str] = {}

    def domain_instructions(self, domain: str) -> str:
        key = (domain or _DEFAULT_DOMAIN).strip().lower()
        if key not in self._domains:
            path = self._dir / "domains" / f"{key}.txt"
            if not path.exists():
                key = _DEFAULT_DOMAIN
                path = self._dir / "domains" / f"{key}.txt"
            if key not in self._domains:
                self._domains[key] = load_prompt_template("", path).strip()
        return self._domains[key]

    def known_domains(self) -> list[str]:
        return sorted(p.stem for p in (self._dir / "domains").glob("*.txt"))

    def _template(self, name: str) -> str:
        return load_prompt_template(name, self._dir / name)

    def _schema(self, name: str) -> str:
        return load_json_schema(name, self._dir / name)
