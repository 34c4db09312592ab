import re
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PagesConfig(BaseModel):
    """Per-repository deployment settings read from git-pages.json"""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    enabled: bool = Field(default=True, description="Whether pushes deploy the site")
    branch: str = Field(default="main", description="Branch whose pushes are deployed")
    build_command: str = Field(default="", description="Shell command run in the build workspace")
    output_dir: str = Field(default="public", description="Directory published after the build")

    # Characters git check-ref-format refuses anywhere in a ref name
    FORBIDDEN_REF_CHARS: ClassVar[re.Pattern] = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")

    @field_validator("enabled", "branch", "build_command", "output_dir", mode="before")
    @classmethod
    def null_means_default(cls, v: Any, info) -> Any:
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("branch")
    @classmethod
    def validate_branch(cls, v: str) -> str:
        if v.startswith("refs/heads/"):
            v = v[len("refs/heads/"):]

        if (
            v in ("", "@", "HEAD")
            or v.startswith("-")
            or v.endswith(".")
            or ".." in v
            or "@{" in v
            or cls.FORBIDDEN_REF_CHARS.search(v)
            or any(not part or part.startswith(".") or part.endswith(".lock") for part in v.split("/"))
        ):
            raise ValueError(f"Invalid branch name: {v!r}")

        return v

    @field_validator("output_dir")
    @classmethod
    def validate_output_dir(cls, v: str) -> str:
        return v or "."

    @property
    def ref(self) -> str:
        return f"refs/heads/{self.branch}"

    @property
    def has_build_step(self) -> bool:
        return bool(self.build_command)
