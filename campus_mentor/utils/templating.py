# campus_mentor/utils/templating.py
import re
from typing import Any, List, Mapping, Optional

from campus_mentor.errors import TemplateError

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def find_placeholders(template: str) -> List[str]:
    """Return placeholder names in order of first appearance"""
    seen = []
    for name in PLACEHOLDER_PATTERN.findall(template or ""):
        if name not in seen:
            seen.append(name)
    return seen


def render_template(
    template: str,
    variables: Optional[Mapping[str, Any]] = None,
    strict: bool = False,
) -> str:
    """Replace every {{name}} in the template with its value.

    Missing and None values render as an empty string. Unknown placeholders
    also render empty unless strict is set, in which case a TemplateError
    lists them. Substitution is a single pass: values are never re-scanned
    for placeholders.
    """
    if not template:
        return ""
    variables = variables or {}

    if strict:
        missing = [name for name in find_placeholders(template) if name not in variables]
        if missing:
            raise TemplateError(missing)

    def _substitute(match: "re.Match[str]") -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)
