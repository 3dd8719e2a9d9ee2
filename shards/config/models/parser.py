"""Declaration parser configuration models."""

from pydantic import BaseModel, Field, field_validator


def _default_frontmatter_keys() -> dict[str, str]:
    return {"parent": "parent", "child": "child", "related": "related"}


class ParserConfig(BaseModel):
    """Where and how relation declarations are read from documents."""

    fence_language: str = Field(
        default="shards",
        min_length=1,
        description="Info string of the fenced blocks holding declarations",
    )
    parse_frontmatter: bool = Field(
        default=True,
        description="Also read relations and hierarchies from YAML frontmatter",
    )
    frontmatter_keys: dict[str, str] = Field(
        default_factory=_default_frontmatter_keys,
        description="Frontmatter key -> relation type (parent, child, related)",
    )
    hierarchy_key: str = Field(
        default="hierarchy",
        description="Frontmatter key holding hierarchy paths",
    )

    @field_validator("frontmatter_keys")
    @classmethod
    def check_relation_types(cls, value: dict[str, str]) -> dict[str, str]:
        """Reject mappings onto unknown relation types."""
        allowed = {"parent", "child", "related"}
        unknown = sorted(set(value.values()) - allowed)
        if unknown:
            raise ValueError(f"Unknown relation types in frontmatter_keys: {unknown}")
        return value
