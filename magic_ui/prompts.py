from __future__ import annotations

from typing import List, Optional

THEME_DIRECTIONS = (
    "Modern/Minimal",
    "Bold/Vibrant",
    "Dark/Futuristic",
    "Clean/Professional",
)


def _requirements_block(requirements: Optional[List[str]]) -> str:
    items = [r.strip() for r in (requirements or []) if isinstance(r, str) and r.strip()]
    if not items:
        return ""
    lines = "\n".join(f"- {r}" for r in items)
    return f"\nRequirements:\n{lines}\n"


def structure_prompt(description: str, ui_type: Optional[str], requirements: Optional[List[str]] = None) -> str:
    return (
        f'Analyze this UI brief and create a component structure: "{description}".\n'
        f"Consider the type: {ui_type or 'general'}.\n"
        f"{_requirements_block(requirements)}"
        "Provide a JSON structure with components, layout, and navigation."
    )


def style_prompt(structure: str) -> str:
    directions = "\n".join(f"{i}. {d}" for i, d in enumerate(THEME_DIRECTIONS, start=1))
    return (
        f"Based on this UI structure: {structure}\n"
        "Create 4 distinct visual themes with different aesthetics:\n"
        f"{directions}\n\n"
        "For each theme, provide colors, typography, and styling approach."
    )


def code_prompt(structure: str, styles: str) -> str:
    return (
        "Generate HTML, CSS, and JavaScript code for these designs:\n"
        f"Structure: {structure}\n"
        f"Styles: {styles}\n\n"
        "Create 4 complete implementations, one for each theme."
    )


def qa_prompt(code: str) -> str:
    return (
        "Review these code implementations for quality and accessibility:\n"
        f"{code}\n\n"
        "Provide scores and recommendations for each variant."
    )
