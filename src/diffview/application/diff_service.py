"""Diff service - retrieves, parses and renders diffs"""

from __future__ import annotations

import html
import logging
import sys
from pathlib import Path
from typing import IO, List, Optional, Union

from diffview.domain.config import EncodingConfig, GitConfig, LimitsConfig, RetryConfig
from diffview.domain.models.diff import Diff, DiffFile, DiffLineType, DiffSection
from diffview.domain.models.rendered_line import RenderedLine
from diffview.infrastructure.config.config_manager import ConfigManager
from diffview.infrastructure.diff_parser import parse_patch
from diffview.infrastructure.git.client import GitClient
from diffview.infrastructure.inline_diff import compute_inline_diff
from diffview.infrastructure.process import ProcessRegistry

logger = logging.getLogger(__name__)


def _displayable(text: str) -> str:
    # Bytes no charset could decode are kept as lone surrogates; show them as U+FFFD
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


class DiffService:
    """Service for obtaining and rendering diffs under configured limits"""

    def __init__(
        self,
        limits: Optional[LimitsConfig] = None,
        git_config: Optional[GitConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        encoding_config: Optional[EncodingConfig] = None,
        registry: Optional[ProcessRegistry] = None,
    ):
        """Initialize diff service

        Args:
            limits: Diff size limits
            git_config: Git invocation configuration
            retry_config: Retry configuration for spawning git
            encoding_config: Content transcoding configuration
            registry: Registry of running git processes (shared across clients)
        """
        self.limits = limits or LimitsConfig()
        self.git_config = git_config or GitConfig()
        self.retry_config = retry_config or RetryConfig()
        self.encoding_config = encoding_config or EncodingConfig()
        self.registry = registry or ProcessRegistry()

    @classmethod
    def from_config(cls, config_manager: ConfigManager) -> "DiffService":
        return cls(
            limits=config_manager.get_limits_config(),
            git_config=config_manager.get_git_config(),
            retry_config=config_manager.get_retry_config(),
            encoding_config=config_manager.get_encoding_config(),
        )

    def _client(self, repo_path: Union[str, Path]) -> GitClient:
        return GitClient(
            repo_path,
            git_config=self.git_config,
            retry_config=self.retry_config,
            registry=self.registry,
            ansi_charset=self.encoding_config.ansi_charset,
        )

    def parse_stream(self, stream: Union[IO[str], IO[bytes]]) -> Diff:
        """Parse patch text from an open stream"""
        return parse_patch(
            self.limits.max_lines,
            self.limits.max_line_length,
            self.limits.max_files,
            stream,
            ansi_charset=self.encoding_config.ansi_charset,
        )

    def parse_patch_file(self, path: Union[str, Path]) -> Diff:
        """Parse a patch file ("-" reads standard input)"""
        if str(path) == "-":
            return self.parse_stream(sys.stdin.buffer)

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        logger.info(f"Parsing patch file: {path}")
        with open(path, "rb") as f:
            return self.parse_stream(f)

    def get_commit_diff(self, repo_path: Union[str, Path], commit_id: str) -> Diff:
        logger.info(f"Loading diff of {commit_id} in {repo_path}")
        return self._client(repo_path).diff_for_commit(commit_id, self.limits)

    def get_range_diff(self, repo_path: Union[str, Path], before_id: str, after_id: str) -> Diff:
        logger.info(f"Loading diff {before_id}..{after_id} in {repo_path}")
        return self._client(repo_path).diff_for_range(before_id, after_id, self.limits)

    def get_raw_diff(self, repo_path: Union[str, Path], commit_id: str, diff_type: str = "diff") -> bytes:
        return self._client(repo_path).raw_diff(commit_id, diff_type)

    def cancel_all(self) -> int:
        """Kill every git process started through this service"""
        return self.registry.kill_all()

    def render_section(self, section: DiffSection, inline: bool = True) -> List[RenderedLine]:
        """Render the rows of one section

        Args:
            section: Section to render
            inline: Highlight the changed characters of paired added/removed lines

        Returns:
            Rendered rows in section order
        """
        rows = []
        for line in section.lines:
            if line.type == DiffLineType.SECTION:
                content = html.escape(line.content)
            elif inline and line.type in (DiffLineType.ADD, DiffLineType.DEL):
                content = compute_inline_diff(section, line)
            else:
                content = html.escape(line.content[1:])
            rows.append(RenderedLine(line.type, line.left_idx, line.right_idx, _displayable(content)))
        return rows

    def render_file(self, diff_file: DiffFile, inline: bool = True) -> List[RenderedLine]:
        """Render all sections of a file (nothing for binary files)"""
        if diff_file.is_bin:
            return []
        rows: List[RenderedLine] = []
        for section in diff_file.sections:
            rows.extend(self.render_section(section, inline=inline))
        return rows
