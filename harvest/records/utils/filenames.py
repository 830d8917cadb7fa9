"""File-name patterns for persisted downloads.

A pattern is plain text with ``{parameter}`` or ``{parameter, option}``
placeholders. Recognized parameters:

- ``{page}`` / ``{page, 4}``: page number, optionally zero padded
- ``{date}`` / ``{date, %Y-%m-%d}``: parse date as epoch millis or strftime mask
- ``{url}``: URL path as sub-directories (``Property/307634/Springfield``)
- ``{url, 2}``: a single 0-based path section; ``{url, last}`` the last one
- ``{url, flat}``: path sections joined with ``_``
- ``{parent}``: file name (without extension) of the document that linked here
- ``{batch}``: batch identifier
- ``{follower}``: sequence number of the followed link

Any other name is a custom parameter assigned with ``set()`` or passed to
``render()``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import unquote, urlsplit

from ..core.exceptions import ConfigurationError

_PLACEHOLDER = re.compile(r"\{\s*([A-Za-z_][\w.]*)\s*(?:,\s*([^}]*?))?\s*\}")
_UNSAFE = re.compile(r'[<>:"\\|?*\x00-\x1f]')


@dataclass(frozen=True)
class Placeholder:
    name: str
    option: str | None
    start: int
    end: int


class FileNamePattern:
    """A parsed file-name pattern with optional preset parameter values."""

    def __init__(self, pattern: str) -> None:
        if not pattern or not pattern.strip():
            raise ConfigurationError("File name pattern cannot be blank")
        self.pattern = pattern
        self._placeholders = [
            Placeholder(m.group(1), (m.group(2) or "").strip() or None, m.start(), m.end())
            for m in _PLACEHOLDER.finditer(pattern)
        ]
        self._values: dict[str, Any] = {}

    @property
    def parameters(self) -> set[str]:
        return {p.name for p in self._placeholders}

    def contains(self, name: str) -> bool:
        return name in self.parameters

    def option(self, name: str) -> str | None:
        """Return the option given to the first ``name`` placeholder."""
        for placeholder in self._placeholders:
            if placeholder.name == name:
                return placeholder.option
        return None

    def set(self, name: str, value: Any) -> None:
        if not self.contains(name):
            raise ConfigurationError(
                f"Parameter '{name}' not in pattern '{self.pattern}'. Available: {sorted(self.parameters)}"
            )
        self._values[name] = value

    def get(self, name: str) -> Any:
        return self._values.get(name)

    def clear_values(self) -> None:
        self._values.clear()

    def render(self, **values: Any) -> str:
        """Substitute every placeholder. Missing values render as empty text."""
        merged = {**self._values, **{k: v for k, v in values.items() if v is not None}}
        out: list[str] = []
        cursor = 0
        for placeholder in self._placeholders:
            out.append(self.pattern[cursor : placeholder.start])
            out.append(self._render_one(placeholder, merged.get(placeholder.name)))
            cursor = placeholder.end
        out.append(self.pattern[cursor:])
        return "".join(out)

    def _render_one(self, placeholder: Placeholder, value: Any) -> str:
        if value is None:
            return ""
        name, option = placeholder.name, placeholder.option
        if name == "page":
            return _render_page(value, option)
        if name == "date":
            return _render_date(value, option)
        if name == "url":
            return _render_url(str(value), option)
        if name == "parent":
            return str(value)
        return _sanitize(str(value))

    def __repr__(self) -> str:
        return f"FileNamePattern({self.pattern!r})"


def with_extension(file_name: str, extension: str | None) -> str:
    """Append ``extension`` unless ``file_name`` already has one."""
    if not extension or PurePosixPath(file_name).suffix:
        return file_name
    return f"{file_name}.{extension.lstrip('.')}"


def _render_page(value: Any, option: str | None) -> str:
    number = int(value)
    if option:
        try:
            return str(number).zfill(int(option))
        except ValueError as e:
            raise ConfigurationError(f"Invalid page padding '{option}'") from e
    return str(number)


def _render_date(value: Any, option: str | None) -> str:
    if not isinstance(value, datetime):
        return _sanitize(str(value))
    if option:
        return _sanitize(value.strftime(option))
    return str(int(value.timestamp() * 1000))


def _url_sections(url: str) -> list[str]:
    path = urlsplit(url).path
    sections = (_sanitize(unquote(part)) for part in path.split("/"))
    # Relative sections must never lead out of the download directory.
    return [section for section in sections if section and section not in (".", "..")]


def _render_url(url: str, option: str | None) -> str:
    sections = _url_sections(url)
    if not sections:
        return _sanitize(urlsplit(url).netloc)
    if option is None:
        return "/".join(sections)
    if option == "last":
        return sections[-1]
    if option == "flat":
        return "_".join(sections)
    try:
        index = int(option)
    except ValueError as e:
        raise ConfigurationError(f"Invalid url option '{option}'") from e
    if 0 <= index < len(sections):
        return sections[index]
    return ""


def _sanitize(text: str) -> str:
    return _UNSAFE.sub("_", text).replace("/", "_")
