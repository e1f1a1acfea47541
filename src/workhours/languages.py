"""Display names for editor language identifiers."""

from __future__ import annotations

from typing import Optional

_LANGUAGE_DISPLAY_NAMES: dict[str, str] = {
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "typescriptreact": "TypeScript React",
    "javascriptreact": "JavaScript React",
    "python": "Python",
    "java": "Java",
    "csharp": "C#",
    "cpp": "C++",
    "c": "C",
    "go": "Go",
    "rust": "Rust",
    "ruby": "Ruby",
    "php": "PHP",
    "swift": "Swift",
    "kotlin": "Kotlin",
    "html": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "less": "LESS",
    "json": "JSON",
    "yaml": "YAML",
    "xml": "XML",
    "markdown": "Markdown",
    "sql": "SQL",
    "shellscript": "Shell",
    "powershell": "PowerShell",
    "dockerfile": "Dockerfile",
    "vue": "Vue",
    "svelte": "Svelte",
    "plaintext": "Plain Text",
}


def display_name(category: Optional[str]) -> str:
    """Return a readable name for a language id, or the id itself when unknown."""
    if not category:
        return "Unknown"
    return _LANGUAGE_DISPLAY_NAMES.get(category, category)
