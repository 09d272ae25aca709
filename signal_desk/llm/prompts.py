"""Prompt loading and rendering helpers for AI tagging providers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"

VALID_AI_THEMES = (
    "ai",
    "ugc",
    "live-services",
    "cloud-gaming",
    "vr-ar",
    "blockchain",
    "esports",
    "indie",
    "mobile-first",
    "free-to-play",
    "premium",
    "subscription",
)


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_tagging_prompt(title: str, excerpt: str) -> tuple[str, str]:
    """Return the (system, user) messages for one tagging request."""
    system = _render_template("tagging_system", valid_themes=", ".join(VALID_AI_THEMES))
    user = _render_template("tagging_user", title=title, excerpt=excerpt)
    return system, user
