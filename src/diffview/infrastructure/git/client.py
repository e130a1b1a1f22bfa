"""Git client: runs git to obtain diffs and feeds them to the patch parser"""

import logging
import subprocess
import threading
from pathlib import Path
from typing import IO, List, Optional, Union

from diffview.domain.config import GitConfig, LimitsConfig, RetryConfig
from diffview.domain.models.diff import Diff
from diffview.infrastructure.diff_parser import parse_patch
from diffview.infrastructure.process import ProcessRegistry
from diffview.infrastructure.retry import retry_git_spawn

logger = logging.getLogger(__name__)

DIFF_TYPES = ("diff", "patch")


class GitError(Exception):
    """Diff retrieval failed"""

    pass


class GitCommandError(GitError):
    """A git command exited with a non-zero status"""

    def __init__(self, args: List[str], returncode: int, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        message = f"git {' '.join(self.args_list)} failed with exit status {returncode}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)


class CommitNotFoundError(GitError):
    """A commit id could not be resolved"""

    pass


def _collect(stream: IO[bytes], sink: List[bytes]) -> None:
    for chunk in iter(lambda: stream.read(8192), b""):
        sink.append(chunk)


class GitClient:
    """Client for reading diffs out of a local repository"""

    def __init__(
        self,
        repo_path: Union[str, Path],
        git_config: Optional[GitConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        registry: Optional[ProcessRegistry] = None,
        ansi_charset: Optional[str] = None,
    ):
        """Initialize git client

        Args:
            repo_path: Path of the repository (work tree or bare)
            git_config: Git invocation configuration
            retry_config: Retry configuration for spawning git
            registry: Registry running processes are tracked in (for cancellation)
            ansi_charset: Charset assumed for diff content that is not UTF-8
        """
        self.repo_path = Path(repo_path)
        self.git_config = git_config or GitConfig()
        self.retry_config = retry_config or RetryConfig()
        self.registry = registry or ProcessRegistry()
        self.ansi_charset = ansi_charset

        retrying = retry_git_spawn(self.retry_config)
        self._spawn = retrying(self._popen)
        self._execute = retrying(self._run_to_completion)

    def _command(self, args: List[str]) -> List[str]:
        return [self.git_config.binary, *args]

    def _popen(self, command: List[str]) -> subprocess.Popen:
        return subprocess.Popen(
            command,
            cwd=self.repo_path,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )

    def _run_to_completion(self, command: List[str], input: Optional[bytes]) -> subprocess.CompletedProcess:
        return subprocess.run(
            command,
            cwd=self.repo_path,
            input=input,
            stdin=None if input is not None else subprocess.DEVNULL,
            capture_output=True,
            timeout=self.git_config.timeout,
        )

    def run(self, *args: str, input: Optional[bytes] = None) -> bytes:
        """Run a git command to completion

        Returns:
            Standard output

        Raises:
            GitError: If git cannot be started or times out
            GitCommandError: If git exits with a non-zero status
        """
        command = self._command(list(args))
        logger.debug(f"Running {' '.join(command)} in {self.repo_path}")
        try:
            result = self._execute(command, input)
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {' '.join(args)} timed out after {self.git_config.timeout}s") from e
        except OSError as e:
            raise GitError(f"Failed to start {command[0]}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", "replace")
            logger.error(f"git {' '.join(args)} failed ({result.returncode}): {stderr.strip()}")
            raise GitCommandError(list(args), result.returncode, stderr)
        return result.stdout

    def resolve_commit(self, commit_id: str) -> str:
        """Resolve a commit-ish to a full commit id

        Raises:
            CommitNotFoundError: If the commit does not exist
        """
        if not commit_id or commit_id.startswith("-"):
            raise CommitNotFoundError(f"Invalid commit id: {commit_id!r}")
        try:
            out = self.run("rev-parse", "--verify", "--quiet", f"{commit_id}^{{commit}}")
        except GitCommandError as e:
            if e.returncode == 1:
                raise CommitNotFoundError(f"Commit not found: {commit_id}") from e
            raise
        return out.decode("ascii").strip()

    def commit_parents(self, commit_id: str) -> List[str]:
        out = self.run("rev-list", "--parents", "-n", "1", commit_id, "--")
        return out.decode("ascii").split()[1:]

    def empty_tree_id(self) -> str:
        """Id of the empty tree in this repository's hash format"""
        return self.run("hash-object", "-t", "tree", "--stdin", input=b"").decode("ascii").strip()

    def _diff_args(self, before_id: str, after_id: str) -> List[str]:
        args = ["diff", "-M" if self.git_config.detect_renames else "--no-renames"]
        return args + [before_id, after_id, "--"]

    def _base_of(self, commit_id: str) -> str:
        parents = self.commit_parents(commit_id)
        # First commit of repository
        return parents[0] if parents else self.empty_tree_id()

    def diff_for_range(self, before_id: str, after_id: str, limits: Optional[LimitsConfig] = None) -> Diff:
        """Get the parsed diff between two commits

        An empty ``before_id`` means the first parent of ``after_id`` (or the
        empty tree for a commit without parents).

        Raises:
            GitError: If retrieval fails
            DiffParseError: If git output cannot be parsed
        """
        after = self.resolve_commit(after_id)
        before = self.resolve_commit(before_id) if before_id else self._base_of(after)
        return self._parse_output(self._diff_args(before, after), limits or LimitsConfig())

    def diff_for_commit(self, commit_id: str, limits: Optional[LimitsConfig] = None) -> Diff:
        """Get the parsed diff introduced by one commit"""
        return self.diff_for_range("", commit_id, limits)

    def raw_diff(self, commit_id: str, diff_type: str = "diff") -> bytes:
        """Get the raw output of one commit as a plain diff or an email patch

        Args:
            commit_id: Commit to export
            diff_type: "diff" or "patch"

        Raises:
            ValueError: If diff_type is unknown
            GitError: If retrieval fails
        """
        if diff_type not in DIFF_TYPES:
            raise ValueError(f"Invalid diff type '{diff_type}'")

        commit = self.resolve_commit(commit_id)
        parents = self.commit_parents(commit)
        if diff_type == "diff":
            base = parents[0] if parents else self.empty_tree_id()
            return self.run(*self._diff_args(base, commit))

        if parents:
            return self.run("format-patch", "--no-signature", "--stdout", f"{parents[0]}..{commit}")
        return self.run("format-patch", "--no-signature", "--stdout", "--root", commit)

    def _parse_output(self, args: List[str], limits: LimitsConfig) -> Diff:
        """Stream the output of a git command into the patch parser

        Standard output is parsed while git runs and standard error is drained on
        a separate thread, so neither pipe can fill up and block git. The process
        is always reaped, also when parsing fails or the caller interrupts.
        """
        command = self._command(args)
        logger.debug(f"Running {' '.join(command)} in {self.repo_path}")
        try:
            proc = self._spawn(command)
        except OSError as e:
            raise GitError(f"Failed to start {command[0]}: {e}") from e

        pid = self.registry.add(f"git {args[0]} ({self.repo_path})", proc)
        stderr_chunks: List[bytes] = []
        stderr_thread = threading.Thread(target=_collect, args=(proc.stderr, stderr_chunks), daemon=True)
        stderr_thread.start()

        timed_out = threading.Event()

        def _on_timeout() -> None:
            timed_out.set()
            self.registry.kill(pid)

        timer = threading.Timer(self.git_config.timeout, _on_timeout)
        timer.daemon = True
        timer.start()

        try:
            diff = parse_patch(
                limits.max_lines,
                limits.max_line_length,
                limits.max_files,
                proc.stdout,
                ansi_charset=self.ansi_charset,
            )
            returncode = proc.wait()
        finally:
            timer.cancel()
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            stderr_thread.join()
            proc.stdout.close()
            proc.stderr.close()
            self.registry.remove(pid)

        if timed_out.is_set():
            raise GitError(f"git {' '.join(args)} timed out after {self.git_config.timeout}s")
        if returncode != 0:
            stderr = b"".join(stderr_chunks).decode("utf-8", "replace")
            logger.error(f"git {' '.join(args)} failed ({returncode}): {stderr.strip()}")
            raise GitCommandError(args, returncode, stderr)
        return diff


def diff_for_commit(
    repo_path: Union[str, Path],
    commit_id: str,
    limits: Optional[LimitsConfig] = None,
    git_config: Optional[GitConfig] = None,
) -> Diff:
    """Get the parsed diff introduced by one commit"""
    return GitClient(repo_path, git_config=git_config).diff_for_commit(commit_id, limits)


def diff_for_range(
    repo_path: Union[str, Path],
    before_id: str,
    after_id: str,
    limits: Optional[LimitsConfig] = None,
    git_config: Optional[GitConfig] = None,
) -> Diff:
    """Get the parsed diff between two commits"""
    return GitClient(repo_path, git_config=git_config).diff_for_range(before_id, after_id, limits)
