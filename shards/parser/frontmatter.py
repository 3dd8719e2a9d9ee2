"""YAML frontmatter extraction."""

from typing import Any

import yaml

FRONTMATTER_DELIMITER = "---"


class FrontmatterError(ValueError):
    """Frontmatter present but not a YAML mapping."""


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split leading frontmatter from the body.

    Returns:
        (raw frontmatter or None, remaining text)
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return None, text
    for index in range(1, len(lines)):
        if lines[index].strip() == FRONTMATTER_DELIMITER:
            return "".join(lines[1:index]), "".join(lines[index + 1 :])
    return None, text


def load_frontmatter(text: str) -> dict[str, Any]:
    """Parse the frontmatter of a document into a dict.

    Raises:
        FrontmatterError: If the block is not valid YAML or not a mapping
    """
    raw, _ = split_frontmatter(text)
    if raw is None or not raw.strip():
        return {}
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid YAML frontmatter: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError("Frontmatter must be a mapping")
    return data


def as_string_list(value: Any) -> list[str]:
    """Normalize a string-or-list value to a list of strings.

    Nested lists are flattened, since an unquoted `[[Note]]` loads as a
    list inside a list. Non-string items are dropped.
    """
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for element in value for item in as_string_list(element)]
    return []
