"""Git service for project detection."""

import json
import logging
import re
import subprocess
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Raised when git operations fail."""

    pass


@dataclass
class GitInfo:
    """Project name and changed files of a workspace."""

    project_name: str
    changed_files: list[str] = field(default_factory=list)


class GitService:
    """Service for git-related operations."""

    @staticmethod
    def run_git(args: list[str], workspace_root: str | None = None) -> list[str]:
        """Run a git command and return its non-empty output lines.

        Raises:
            GitError: If git is missing or the command fails
        """
        try:
            result = subprocess.run(
                ["git", *args],
                capture_output=True,
                text=True,
                check=True,
                cwd=workspace_root,
            )
        except (subprocess.CalledProcessError, OSError) as e:
            raise GitError(f"git {' '.join(args)} failed") from e

        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    @staticmethod
    def get_changed_files(workspace_root: str | None = None) -> list[str]:
        """Get unstaged, staged and recently committed files.

        Recent commits are the last five, falling back to the last one and
        then to modified/untracked files when history is shorter.

        Returns:
            De-duplicated file paths in discovery order, empty on any failure
        """
        try:
            unstaged = GitService.run_git(["diff", "--name-only"], workspace_root)
            staged = GitService.run_git(
                ["diff", "--cached", "--name-only"], workspace_root
            )
        except GitError as e:
            logger.warning(f"Could not read changed files: {e}")
            return []

        recent: list[str] = []
        for args in (
            ["diff", "--name-only", "HEAD~5..HEAD"],
            ["diff", "--name-only", "HEAD~1..HEAD"],
            ["ls-files", "--modified", "--others", "--exclude-standard"],
        ):
            try:
                recent = GitService.run_git(args, workspace_root)
                break
            except GitError:
                continue

        return list(dict.fromkeys([*unstaged, *staged, *recent]))

    @staticmethod
    def get_project_name(workspace_root: str | None = None) -> str:
        """Get project name from pyproject.toml, package.json, the origin remote or the directory."""
        root = Path(workspace_root) if workspace_root else Path.cwd()

        pyproject = root / "pyproject.toml"
        if pyproject.is_file():
            try:
                name = tomllib.loads(pyproject.read_text()).get("project", {}).get("name")
                if name:
                    return name
            except (OSError, tomllib.TOMLDecodeError):
                pass

        package_json = root / "package.json"
        if package_json.is_file():
            try:
                name = json.loads(package_json.read_text()).get("name")
                if name:
                    return name
            except (OSError, json.JSONDecodeError):
                pass

        try:
            remote = GitService.run_git(
                ["config", "--get", "remote.origin.url"], str(root)
            )
        except GitError:
            remote = []

        if remote:
            repo_name = GitService.parse_repo_name(remote[0])
            if repo_name:
                return repo_name

        return root.resolve().name

    @staticmethod
    def parse_repo_name(remote_url: str) -> str | None:
        """Extract the repository name from an HTTPS or SSH remote URL.

        - https://github.com/org/repo.git -> repo
        - git@github.com:org/repo.git -> repo
        """
        match = re.search(r"[/:]([^/:]+?)(?:\.git)?/?$", remote_url.strip())
        return match.group(1) if match else None

    @staticmethod
    def get_git_info(workspace_root: str | None = None) -> GitInfo:
        return GitInfo(
            project_name=GitService.get_project_name(workspace_root),
            changed_files=GitService.get_changed_files(workspace_root),
        )
