from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final, cast

import yaml


DEFAULT_CONFIG_PATH: Final[Path] = Path("omni-comment.yml")
_FORBIDDEN_SECTION_FRAGMENTS: Final[tuple[str, ...]] = ('"', "-->", "\n", "\r")


@dataclass(frozen=True)
class SectionConfig:
    sections: tuple[str, ...]
    title: str | None = None
    intro: str | None = None


@dataclass(frozen=True)
class UpsertOptions:
    issue_number: int | None
    repo: str
    section: str
    token: str
    message: str = ""
    title: str | None = None
    collapsed: bool = False
    config_path: Path = DEFAULT_CONFIG_PATH


class ConfigError(ValueError):
    pass


def load_section_config(path: Path) -> SectionConfig:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Section config not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Section config {path} is not valid YAML: {exc}") from exc

    if data is None:
        raise ConfigError(f"Section config {path} is empty")
    if not isinstance(data, dict):
        raise ConfigError(f"Section config {path} must be a mapping")
    return parse_section_config(cast(dict[str, object], data))


def parse_section_config(data: dict[str, object]) -> SectionConfig:
    return SectionConfig(
        sections=_require_section_ids(data, "sections"),
        title=_optional_str(data, "title"),
        intro=_optional_str(data, "intro"),
    )


def _require_section_ids(data: dict[str, object], key: str) -> tuple[str, ...]:
    value = data.get(key)
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{key} is required and must be a non-empty list of strings")

    section_ids: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"{key} entries must be non-empty strings")
        section_id = item.strip()
        if any(fragment in section_id for fragment in _FORBIDDEN_SECTION_FRAGMENTS):
            raise ConfigError(f"{key} entry {section_id!r} contains characters not allowed in ids")
        if section_id in section_ids:
            raise ConfigError(f"{key} entry {section_id!r} is declared more than once")
        section_ids.append(section_id)
    return tuple(section_ids)


def _optional_str(data: dict[str, object], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string if provided")
    return value if value.strip() else None
