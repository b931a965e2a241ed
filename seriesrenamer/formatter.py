"""Formatter module for generating final file names from a naming template."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .errors import TemplateError


DEFAULT_TEMPLATE = "{show} - S{season:NN}E{episode:NN} - {title}{ext}"

PLACEHOLDERS = ("show", "season", "episode", "episode_end", "title", "ext")

PRESETS = {
    "Standard": DEFAULT_TEMPLATE,
    "Without Episode Title": "{show} - S{season:NN}E{episode:NN}{ext}",
    "Episode Range": "{show} - S{season:NN}E{episode:NN}-E{episode_end:NN} - {title}{ext}",
    "Compact (1x04)": "{show} - {season}x{episode:NN} - {title}{ext}",
    "Plex Style": "{show} - s{season:NN}e{episode:NN} - {title}{ext}",
}

# {name} or {name:NN}
_PLACEHOLDER = re.compile(r'\{(\w*)(?::([^}]*))?\}')

# Separator run that belongs to a placeholder when the value is empty
_LEADING_SEPARATOR = r'[ \t]*[-–_.,:]*[ \t]*'

# Characters not allowed in Windows filenames: / \ : * ? " < > |
_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str) -> str:
    """
    Remove characters that are invalid in file names.

    Args:
        name: The name to sanitize

    Returns:
        Sanitized name safe for use as a filename
    """
    sanitized = _INVALID_CHARS.sub('', name)
    sanitized = re.sub(r'\s+', ' ', sanitized)
    # Remove leading/trailing dots and spaces
    return sanitized.strip('. ')


@dataclass(frozen=True)
class NamingTemplate:
    """A validated naming template.

    Recognized placeholders are ``{show}``, ``{season}``, ``{episode}``,
    ``{episode_end}``, ``{title}`` and ``{ext}``.  Numbers take an
    optional zero-padding spec made of ``N``: ``{season:NN}`` -> ``02``.
    """
    text: str

    @classmethod
    def parse(cls, text: str) -> NamingTemplate:
        """
        Validate *text* and wrap it.

        Raises:
            TemplateError: On unknown placeholders, bad padding specs,
                stray braces or path separators
        """
        if not text or not text.strip():
            raise TemplateError("Template cannot be empty")
        if '/' in text or '\\' in text:
            raise TemplateError("Template must name a file, not a path")

        names = []
        for match in _PLACEHOLDER.finditer(text):
            name, spec = match.group(1), match.group(2)
            if name not in PLACEHOLDERS:
                raise TemplateError(f"Unknown placeholder: {{{name}}}")
            if spec is not None:
                if name not in ("season", "episode", "episode_end"):
                    raise TemplateError(f"Placeholder {{{name}}} does not take a format")
                if not re.fullmatch(r'N+', spec):
                    raise TemplateError(f"Invalid format '{spec}' for {{{name}}}; use N, NN, ...")
            names.append(name)

        leftover = _PLACEHOLDER.sub('', text)
        if '{' in leftover or '}' in leftover:
            raise TemplateError("Unbalanced brace in template")
        if "episode" not in names:
            raise TemplateError("Template must contain {episode}")

        return cls(text)

    @property
    def placeholders(self) -> list[str]:
        return [match.group(1) for match in _PLACEHOLDER.finditer(self.text)]

    def render(
        self,
        show: str,
        season: int,
        episodes: tuple[int, ...] | list[int],
        title: str | None = None,
        ext: str = "",
    ) -> str:
        """
        Render a file name.

        Empty ``{title}`` is dropped along with the separator before it.
        ``{episode_end}`` is dropped for single-episode files; a template
        without it renders ``{episode}`` as the whole range for
        multi-episode files (``01-E03``).

        Args:
            show: Series title
            season: Season number
            episodes: Episode numbers, ascending
            title: Episode title, if known
            ext: File extension including the dot

        Returns:
            Sanitized file name
        """
        multi = len(episodes) > 1
        has_end = "episode_end" in self.placeholders
        data: dict[str, Any] = {
            "show": sanitize_filename(show),
            "season": season,
            "episode": episodes[0],
            "episode_end": episodes[-1] if multi else None,
            "title": sanitize_filename(title) if title else None,
            "ext": ext,
        }

        template = self.text
        for name in ("title", "episode_end"):
            if data[name] is None:
                template = _drop_placeholder(template, name)

        def _substitute(match: re.Match) -> str:
            name, spec = match.group(1), match.group(2)
            if name == "episode" and multi and not has_end:
                return f"{_pad(episodes[0], spec)}-E{_pad(episodes[-1], spec)}"
            value = data[name]
            if isinstance(value, int):
                return _pad(value, spec)
            return str(value)

        rendered = _PLACEHOLDER.sub(_substitute, template)
        if ext and rendered.endswith(ext):
            return f"{sanitize_filename(rendered[:-len(ext)])}{ext}"
        return sanitize_filename(rendered)

    def __str__(self) -> str:
        return self.text


def _pad(value: int, spec: str | None) -> str:
    return f"{value:0{len(spec)}d}" if spec else str(value)


def _drop_placeholder(template: str, name: str) -> str:
    """Remove ``{name}`` together with the separator run before it.

    A short literal prefix glued to the placeholder ("-E" in
    ``E{episode:NN}-E{episode_end:NN}``) goes with it.
    """
    pattern = _LEADING_SEPARATOR + r'(?:[A-Za-z](?=\{))?\{' + name + r'(?::[^}]*)?\}'
    result = re.sub(pattern, '', template, count=1)
    if result == template:
        result = re.sub(r'\{' + name + r'(?::[^}]*)?\}', '', template)
    return result


def validate_template(text: str) -> tuple[bool, str]:
    """Check a template without raising. Returns (ok, message)."""
    try:
        NamingTemplate.parse(text)
    except TemplateError as e:
        return False, str(e)
    return True, ""
