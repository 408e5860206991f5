"""
Rig models.

A rig is a member repository managed by the aggregation engine. Rigs come
from configuration and are read-only to the engine.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from allbeads.models.ids import RigId

BEADS_DIR = ".beads"
ISSUES_FILE = "issues.jsonl"


class AuthStrategy(str, Enum):
    """How git authenticates against a rig's remote."""

    SSH_AGENT = "ssh_agent"
    GH_ENTERPRISE_TOKEN = "gh_enterprise_token"
    PERSONAL_ACCESS_TOKEN = "personal_access_token"

    @property
    def uses_token(self) -> bool:
        return self is not AuthStrategy.SSH_AGENT


class SyncMode(str, Enum):
    """How a git-backed source refreshes a rig before reading it."""

    LOCAL_ONLY = "local_only"
    FETCH = "fetch"
    PULL = "pull"


class JiraBinding(BaseModel):
    """JIRA project bound to a rig (consumed by external adapters)."""

    url: str
    project: str
    token_env: str | None = None


class GitHubBinding(BaseModel):
    """GitHub organisation bound to a rig (consumed by external adapters)."""

    url: str = "https://github.com"
    owner: str
    repo_pattern: str | None = None


class Integrations(BaseModel):
    """Optional integration bindings."""

    jira: JiraBinding | None = None
    github: GitHubBinding | None = None


class Rig(BaseModel):
    """A member repository."""

    model_config = ConfigDict(frozen=True)

    name: RigId = Field(min_length=1, description="Rig name, used in bead:// URIs")
    remote: str = Field(default="", description="Remote locator (git URL)")
    path: Path = Field(description="Local clone path")
    branch: str = Field(default="main", description="Branch holding the issue data")
    auth_strategy: AuthStrategy = Field(default=AuthStrategy.SSH_AGENT)
    token_env: str | None = Field(
        default=None,
        description="Environment variable holding the access token",
    )
    prefix: str | None = Field(default=None, description="Bead id prefix used by this rig")
    context: str = Field(default="default", description="Aggregating context label")
    integrations: Integrations = Field(default_factory=Integrations)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        value = value.strip()
        if "/" in value or " " in value:
            raise ValueError("rig name may not contain '/' or spaces")
        return value

    @field_validator("path")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def beads_dir(self) -> Path:
        return self.path / BEADS_DIR

    @property
    def issues_path(self) -> Path:
        return self.beads_dir / ISSUES_FILE

    def to_summary(self) -> str:
        return f"{self.name} ({self.context}) {self.remote or self.path}"
