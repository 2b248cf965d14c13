"""Static documents written into the overlay.

Documents are loaded from markdown files in this package.
"""

from importlib.resources import files

_PROMPTS_PKG = files("claudesidebar.prompts")


def load_prompt(name: str) -> str:
    """Load a document by name (without .md extension)."""
    return _PROMPTS_PKG.joinpath(f"{name}.md").read_text(encoding="utf-8")


GUIDANCE_TEMPLATE = load_prompt("guidance")

__all__ = [
    "load_prompt",
    "GUIDANCE_TEMPLATE",
]
