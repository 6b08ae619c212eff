from pathlib import Path
from typing import Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
)

from covdiff.exceptions import ConfigurationError
from covdiff.logger import get_logger


TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = "comment.md.j2"

logger = get_logger("render")


def _signed(value: str) -> str:
    if value.startswith("-") or value == "0":
        return value
    return f"+{value}"


class CommentRenderer:
    """Render the coverage comment from a Jinja2 template.

    A custom template file replaces the packaged one; it may still
    ``{% import %}`` or ``{% include %}`` the packaged templates by name.
    """

    def __init__(self, template_path: str | Path | None = None) -> None:
        search_path = [str(TEMPLATE_DIR)]
        self.template_name = DEFAULT_TEMPLATE
        if template_path is not None:
            path = Path(template_path)
            if not path.is_file():
                raise ConfigurationError(f"Template file not found: {path}")
            search_path.insert(0, str(path.parent))
            self.template_name = path.name

        self._env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters["signed"] = _signed

    @property
    def environment(self) -> Environment:
        return self._env

    def render(self, template_vars: dict[str, Any]) -> str:
        try:
            template = self._env.get_template(self.template_name)
            body = template.render(**template_vars)
        except TemplateNotFound as e:
            raise ConfigurationError(f"Template not found: {e.name}") from e
        except TemplateError as e:
            raise ConfigurationError(f"Failed to render comment template: {e}") from e

        identifier = template_vars.get("pr_identifier", "")
        if identifier and identifier not in body:
            logger.debug("Template omitted the report identifier; appending it")
            body = f"{body.rstrip()}\n\n{identifier}\n"
        return body
