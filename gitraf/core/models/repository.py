import re
from pathlib import Path
from typing import ClassVar, Set

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Repository(BaseModel):
    """A bare repository inside the store root"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, max_length=128, description="Repository name without .git")
    path: Path = Field(..., description="Resolved path of the bare repository")

    SUFFIX: ClassVar[str] = ".git"

    NAME_PATTERN: ClassVar[re.Pattern] = re.compile(
        r"^[a-zA-Z0-9](?:[a-zA-Z0-9._-]*[a-zA-Z0-9])?$"
    )

    # Names that would collide with the layout of a bare repository
    RESERVED_NAMES: ClassVar[Set[str]] = {
        "HEAD",
        "config",
        "description",
        "hooks",
        "info",
        "objects",
        "refs",
    }

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if v in cls.RESERVED_NAMES:
            raise ValueError(f"'{v}' is a reserved repository name")

        if ".." in v:
            raise ValueError("Repository name cannot contain consecutive dots")

        if not cls.NAME_PATTERN.match(v):
            raise ValueError(
                "Repository name must start and end with alphanumeric characters, "
                "and can contain letters, numbers, dots, underscores, and hyphens"
            )

        return v

    @computed_field
    @property
    def directory_name(self) -> str:
        return f"{self.name}{self.SUFFIX}"

    @property
    def hooks_path(self) -> Path:
        return self.path / "hooks"
