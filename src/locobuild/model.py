# src/locobuild/model.py
from datetime import datetime
from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# An action entry as written in a definition file: "name arg1 arg2",
# ["name", "arg1", "arg2"], or (programmatically) a callable.
ActionSpec = Union[str, List[str], Callable[..., Any]]


class CommandDefinition(BaseModel):
    """Declarative form of a command, as loaded from a definitions file."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    args: List[str] = Field(default_factory=list, description="Names for positional arguments.")
    vars: Dict[str, str] = Field(default_factory=dict, description="Locally scoped variable templates.")
    action: Optional[ActionSpec] = None
    actions: List[ActionSpec] = Field(default_factory=list)
    silent_fail: bool = Field(default=False, alias="silentFail")
    description: str = ""


class CommitInfo(BaseModel):
    hash: str
    timestamp: datetime
    committer_email: str
    subject: str


class RepositoryIdentity(BaseModel):
    """Identity of a working copy, always re-read from disk."""
    path: str
    account: Optional[str] = None
    repo_name: Optional[str] = None
    branch: str
    commit: CommitInfo
    remotes: List[str] = Field(default_factory=list)

    @property
    def record_key(self) -> str:
        """Key under which this repo/branch pair is stored in a build record."""
        return f"{self.repo_name}#{self.branch}"


class BuildResult(BaseModel):
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ChangeBatch(BaseModel):
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed


class CommandOutcome(BaseModel):
    """Result of a single command invocation."""
    command: str
    status: Literal["completed", "suppressed"] = "completed"
    error: Optional[str] = Field(default=None, description="Message of a suppressed failure.")
