"""
Credential resolution for git-backed rigs.

``ssh_agent`` rigs rely on the user's SSH agent and need nothing from us.
Token strategies look for a token in the rig's ``token_env`` variable, then
``GITHUB_TOKEN``, then ask the ``gh`` CLI. Tokens are handed to git as an
HTTP header and are never logged.
"""

from __future__ import annotations

import base64
import os
import shutil
import subprocess

from pydantic import BaseModel, Field

from allbeads.models.rig import Rig
from allbeads.utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_TOKEN_ENV = "GITHUB_TOKEN"


class GitCredentials(BaseModel):
    """Resolved credentials for one rig."""

    username: str = Field(default="git")
    token: str | None = Field(default=None, repr=False)
    source: str | None = Field(default=None, description="Where the token came from")

    @property
    def has_token(self) -> bool:
        return bool(self.token)


def gh_cli_token(timeout: int = 5) -> str | None:
    """Ask ``gh auth token`` for a token; None if gh is missing or logged out."""
    if shutil.which("gh") is None:
        return None
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("gh auth token failed: %s", e)
        return None
    token = result.stdout.strip()
    if result.returncode != 0 or not token:
        return None
    return token


def resolve_credentials(rig: Rig, environ: dict[str, str] | None = None) -> GitCredentials:
    """
    Resolve credentials for a rig according to its auth strategy.

    Args:
        rig: Rig to resolve credentials for
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        GitCredentials; ``token`` is None for ssh_agent rigs or when nothing was found
    """
    if not rig.auth_strategy.uses_token:
        return GitCredentials()

    env = os.environ if environ is None else environ

    if rig.token_env:
        token = env.get(rig.token_env.lstrip("$"))
        if token:
            return GitCredentials(token=token, source=f"env:{rig.token_env}")

    token = env.get(FALLBACK_TOKEN_ENV)
    if token:
        return GitCredentials(token=token, source=f"env:{FALLBACK_TOKEN_ENV}")

    token = gh_cli_token()
    if token:
        logger.debug("Using token from `gh auth token` for rig %s", rig.name)
        return GitCredentials(token=token, source="gh")

    logger.warning(
        "No token found for rig %s (%s). Try: gh auth login, or set %s",
        rig.name,
        rig.auth_strategy.value,
        rig.token_env or FALLBACK_TOKEN_ENV,
    )
    return GitCredentials()


def git_auth_args(credentials: GitCredentials) -> list[str]:
    """
    Build ``git -c`` arguments that authenticate HTTPS requests.

    Returns:
        Arguments to place before the git subcommand (empty without a token)
    """
    if not credentials.token:
        return []
    basic = base64.b64encode(f"{credentials.username}:{credentials.token}".encode()).decode()
    return ["-c", f"http.extraHeader=Authorization: Basic {basic}"]
