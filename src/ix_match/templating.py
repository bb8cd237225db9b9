from __future__ import annotations

from typing import Any


class TemplateDict(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render_template(template: str, context: dict[str, Any]) -> str:
    enriched = TemplateDict(context)
    return template.format_map(enriched)


def check_template(template: str, context: dict[str, Any]) -> str | None:
    """Render ``template`` against a sample context and report why it fails.

    Returns None when the template renders and every placeholder is known.
    """
    try:
        rendered = template.format_map(context)
    except KeyError as exc:
        return f"unknown placeholder {exc.args[0]!r}"
    except (ValueError, IndexError, AttributeError) as exc:
        return str(exc)
    if not rendered.strip():
        return "renders to an empty string"
    return None
