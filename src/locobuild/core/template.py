# src/locobuild/core/template.py
from __future__ import annotations

import re
from typing import Any, Mapping

from locobuild.exceptions import TemplateError

# {name}, {name|fallback}, and the escapes {{ and }}.
VAR_PATTERN = re.compile(r"\{\{|\}\}|\{([A-Za-z_][\w.\-]*)(?:\|([^{}]*))?\}")


def evaluate(template: str, scope: Mapping[str, Any]) -> str:
    """
    Resolves every ``{name}`` placeholder in the template against the scope.

    Placeholders that name a missing (or None-valued) variable raise a
    TemplateError unless they carry a fallback, as in ``{dir|site}``; an empty
    fallback (``{dir|}``) resolves to an empty string. ``{{`` and ``}}`` produce
    literal braces.
    """
    def repl(m: re.Match) -> str:
        token = m.group(0)
        if token == "{{":
            return "{"
        if token == "}}":
            return "}"
        name, fallback = m.group(1), m.group(2)
        value = scope.get(name)
        if value is None:
            if fallback is None:
                raise TemplateError(template, name)
            return fallback
        return str(value)

    return VAR_PATTERN.sub(repl, template)

