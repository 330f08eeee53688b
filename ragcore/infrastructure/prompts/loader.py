"""
Name: Prompt Loader

Responsibilities:
  - Read the versioned answer template (ragcore/prompts/{version}_answer.md)
  - Check the template exposes both placeholders before first use
  - Render the template with the context block and the user query

Collaborators:
  - config.Settings.prompt_version (via container.py)
  - application.use_cases.answer_query: calls format()

Notes:
  - Placeholders: {context} and {query}
  - Loaded once per loader; rendering is pure string work
"""

from pathlib import Path
from typing import Optional

from ...logger import logger


PROMPTS_DIR = Path(__file__).resolve().parent.parent.parent / "prompts"
REQUIRED_PLACEHOLDERS = ("{context}", "{query}")


class PromptLoader:
    def __init__(self, version: str = "v1", prompts_dir: Optional[Path] = None):
        self.version = version
        self._prompts_dir = prompts_dir or PROMPTS_DIR
        self._template: Optional[str] = None

    @property
    def path(self) -> Path:
        return self._prompts_dir / f"{self.version}_answer.md"

    def get_template(self) -> str:
        """
        R: Template text, read on first call.

        Raises:
            FileNotFoundError: No template for this version
            ValueError: Template lacks {context} or {query}
        """
        if self._template is None:
            self._template = self._read()
        return self._template

    def _read(self) -> str:
        path = self.path
        if not path.is_file():
            logger.error(
                "Prompt template not found",
                extra={"prompt_version": self.version, "path": str(path)},
            )
            raise FileNotFoundError(f"Prompt template not found: {path}")

        template = path.read_text(encoding="utf-8")
        missing = [p for p in REQUIRED_PLACEHOLDERS if p not in template]
        if missing:
            raise ValueError(f"Prompt template {path.name} lacks {', '.join(missing)}")

        logger.info(
            "Prompt template loaded",
            extra={"prompt_version": self.version, "chars": len(template)},
        )
        return template

    def format(self, context: str, query: str) -> str:
        # str.format keeps braces inside the substituted values verbatim
        return self.get_template().format(context=context, query=query)
