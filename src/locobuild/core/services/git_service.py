# src/locobuild/core/services/git_service.py
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple, Union

from locobuild.core.services.process_service import ProcessResult, ProcessService
from locobuild.exceptions import RepositoryStateError, RepositorySyncError
from locobuild.model import CommitInfo, RepositoryIdentity

logger = logging.getLogger(__name__)

REMOTE_REF_PREFIX = "refs/remotes/origin/"
_REMOTE_LINE = re.compile(r"^origin\s+(.+?)\s+\(fetch\)$")
# e.g. "d748d93 1465819027 committer@email.com A commit message"
_LOG_LINE = re.compile(r"^([0-9a-f]+)\s+(\d+)\s+(\S+)\s+(.*)$")
_PATH_SEPARATORS = re.compile(r"[/:\\]+")

PathLike = Union[str, Path]


def parse_origin(origin: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Reads (account, repo_name) from an origin reference. Best effort: only
    accurate for origins shaped like ``.../{account}/{repo}.git``.
    """
    if not origin:
        return None, None
    parts = [p for p in _PATH_SEPARATORS.split(origin.rstrip("/\\")) if p]
    if not parts:
        return None, None
    name = parts[-1]
    if name.endswith(".git"):
        name = name[:-4]
    account = parts[-2] if len(parts) > 1 else None
    return account, name


class GitService:
    """
    Primitive repository operations used by the publish workflow.

    Nothing is cached: every call re-reads the state of the working copy
    from disk. Any git invocation that exits non-zero logs its stderr and
    raises RepositorySyncError.
    """

    def __init__(self, processes: Optional[ProcessService] = None, executable: str = "git"):
        self._processes = processes or ProcessService()
        self._executable = executable

    def _git(self, path: PathLike, *args: str, check: bool = True) -> ProcessResult:
        result = ProcessResult(code=0)
        # Lines from calls allowed to fail are expected noise.
        log_line = logger.info if check else logger.debug

        def on_stderr(line: str) -> None:
            result.stderr.append(line)
            log_line("git: %s", line)

        result.code = self._processes.run(
            path, None, self._executable, args, result.stdout.append, on_stderr,
        )
        if check and result.code != 0:
            raise RepositorySyncError(str(path), args, result.code, result.stderr)
        return result

    @staticmethod
    def is_working_copy(path: PathLike) -> bool:
        p = Path(path)
        return p.is_dir() and (p / ".git").exists()

    # --- Primitives ---

    def clone(self, path: PathLike, origin: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning %s into %s...", origin, target)
        self._git(target.parent, "clone", "-q", origin, target.name)

    def list_remote_branches(self, path: PathLike) -> List[str]:
        result = self._git(path, "branch", "-a", "--format", "%(refname)")
        return [
            ref[len(REMOTE_REF_PREFIX):]
            for ref in result.stdout
            if ref.startswith(REMOTE_REF_PREFIX) and not ref.endswith("/HEAD")
        ]

    def list_remotes(self, path: PathLike) -> List[str]:
        """Fetch URLs of the 'origin' remote."""
        result = self._git(path, "remote", "-v")
        remotes = []
        for line in result.stdout:
            m = _REMOTE_LINE.match(line.strip())
            if m:
                remotes.append(m.group(1))
        return remotes

    def _has_local_branch(self, path: PathLike, branch: str) -> bool:
        result = self._git(path, "show-ref", "--verify", "--quiet", f"refs/heads/{branch}", check=False)
        return result.code == 0

    def fetch(self, path: PathLike) -> None:
        self._git(path, "fetch", "-q", "origin")

    def pull(self, path: PathLike) -> None:
        self._git(path, "pull", "-q", "--ff-only")

    def stage_all(self, path: PathLike) -> bool:
        """Stages every change. Returns True if anything is staged."""
        self._git(path, "add", "-A", ".")
        status = self._git(path, "status", "--porcelain")
        return any(line.strip() for line in status.stdout)

    def commit(self, path: PathLike, message: str) -> None:
        self._git(path, "commit", "-q", "-m", message)

    def push(self, path: PathLike, branch: str) -> None:
        if not branch:
            raise RepositorySyncError(str(path), ("push",), -1, ["branch name is required"])
        logger.info("git push %s > %s", path, branch)
        self._git(path, "push", "-q", "origin", branch)

    # --- Synchronization protocol ---

    def ensure_clone(self, path: PathLike, remote: str, branch: str) -> None:
        """
        Makes ``path`` a working copy of ``remote`` with ``branch`` checked out.
        A working copy of some other remote is removed and recloned.
        """
        target = Path(path)
        if self.is_working_copy(target):
            remotes = self.list_remotes(target)
            if remote not in remotes:
                logger.info("Replacing working copy at %s (remotes %s != %s)", target, remotes, remote)
                shutil.rmtree(target)
                self.clone(target, remote)
            else:
                logger.info("Reusing working copy at %s", target)
                self.fetch(target)
        else:
            if target.exists():
                shutil.rmtree(target)
            self.clone(target, remote)
        self.checkout_branch(target, branch)

    def checkout_branch(self, path: PathLike, branch: str) -> None:
        """
        Checks out ``branch``. A branch known to the remote becomes a local
        tracking branch and is fast-forwarded; a branch the remote has never
        seen starts out as an orphan with an empty index and a clean tree.
        """
        if branch in self.list_remote_branches(path):
            self._git(path, "checkout", "-q", "-B", branch, f"origin/{branch}")
            self.pull(path)
        elif self._has_local_branch(path, branch):
            self._git(path, "checkout", "-q", branch)
        else:
            logger.info("Creating orphan branch %s in %s", branch, path)
            self._git(path, "checkout", "-q", "--orphan", branch)
            self._git(path, "rm", "-q", "-r", "--cached", "--ignore-unmatch", ".")
            self._git(path, "clean", "-q", "-f", "-d")

    def commit_and_push(self, path: PathLike, branch: str, message: Optional[str] = None) -> bool:
        """
        Stages, commits and pushes all changes. Does nothing when there is
        nothing to commit.

        Returns:
            bool: True if a commit was made and pushed.
        """
        if not self.stage_all(path):
            logger.info("No changes in %s", path)
            return False
        logger.info("Committing changes in %s...", path)
        self.commit(path, message or f"locobuild build {datetime.now(timezone.utc).isoformat()}")
        self.push(path, branch)
        return True

    def merge(self, path: PathLike, source_branch: str) -> None:
        """Merges ``source_branch`` into whatever is checked out at ``path``."""
        self._git(path, "merge", "-q", "--no-edit", source_branch)

    def read_identity(self, path: PathLike) -> Optional[RepositoryIdentity]:
        """
        Reads the identity of the working copy at ``path``.

        Returns:
            None if there is no working copy at the path.

        Raises:
            RepositoryStateError: If the branch or latest commit can't be read.
        """
        if not self.is_working_copy(path):
            return None

        remotes = self.list_remotes(path)
        account, repo_name = parse_origin(remotes[0] if remotes else None)

        head = self._git(path, "rev-parse", "--abbrev-ref", "HEAD", check=False)
        branch = head.stdout[0].strip() if head.code == 0 and head.stdout else ""
        if not branch:
            raise RepositoryStateError(f"Unable to read branch name from {path}")

        log = self._git(path, "log", "--pretty=format:%h %ct %ce %s", "-n", "1", "HEAD", "--", check=False)
        line = log.stdout[0] if log.code == 0 and log.stdout else ""
        m = _LOG_LINE.match(line)
        if not m:
            raise RepositoryStateError(f"Unable to read commit info from {path}")
        commit_hash, ts, committer, subject = m.groups()

        return RepositoryIdentity(
            path=str(path),
            account=account,
            repo_name=repo_name,
            branch=branch,
            commit=CommitInfo(
                hash=commit_hash,
                timestamp=datetime.fromtimestamp(int(ts), tz=timezone.utc),
                committer_email=committer,
                subject=subject,
            ),
            remotes=remotes,
        )
