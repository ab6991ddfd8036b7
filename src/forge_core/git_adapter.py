"""Git-backed data adapter.

Clones a remote repository into a local cache and reads it as a filesystem
registry. The cache directory is keyed by a hash of the URL, so the same URL
always maps to the same cache path regardless of call order.

Clone/update is lazy and happens once per adapter instance; everything else
delegates to FilesystemAdapter.
"""

import asyncio
import hashlib
import logging
import os
from pathlib import Path
from urllib.parse import urlsplit
from urllib.parse import urlunsplit

from .exceptions import AdapterError
from .filesystem_adapter import FilesystemAdapter
from .models import ArtifactBundle
from .schema import ArtifactMetadata

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30.0


class GitCommandError(Exception):
    """A git subprocess failed (wrapped into AdapterError by callers)."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


def default_cache_dir() -> Path:
    return Path.home() / ".forge" / "cache" / "git"


def cache_key(url: str) -> str:
    """Deterministic cache directory name for a source URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:12]


async def run_git(args: list[str], cwd: Path) -> str:
    """Run a git command, raising GitCommandError on failure or timeout."""
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise GitCommandError(f"could not run git: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=GIT_TIMEOUT_SECONDS)
    except TimeoutError as e:
        proc.kill()
        await proc.wait()
        raise GitCommandError(f"git {args[0]} timed out after {GIT_TIMEOUT_SECONDS:.0f}s") from e

    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip() or f"exit code {proc.returncode}"
        raise GitCommandError(detail)

    return stdout.decode("utf-8", errors="replace")


class GitAdapter:
    """
    Data adapter over a git repository (with injected cache location).

    Example:
        >>> adapter = GitAdapter(url="https://github.com/org/registry.git", ref="main")
        >>> skills = await adapter.list("skill")
    """

    def __init__(
        self,
        url: str,
        ref: str = "main",
        registry_path: str = "registry",
        sparse: list[str] | None = None,
        cache_dir: Path | None = None,
        token_env: str | None = None,
        name: str | None = None,
    ):
        """Initialize adapter.

        Args:
            url: Git clone URL (HTTPS, SSH or local path)
            ref: Branch or tag to check out
            registry_path: Subdirectory of the repo holding the registry layout
            sparse: Optional sparse-checkout paths
            cache_dir: Base cache directory (app policy, defaults to ~/.forge/cache/git)
            token_env: Environment variable holding an HTTPS token
            name: Registry name (defaults to the URL)
        """
        self.url = url
        self.ref = ref
        self.registry_path = registry_path
        self.sparse = sparse or []
        self.token_env = token_env
        self.name = name or url
        self.cache_dir = Path(cache_dir or default_cache_dir()) / cache_key(url)

        self._delegate: FilesystemAdapter | None = None

    def __repr__(self) -> str:
        return f"GitAdapter(name={self.name!r}, url={self.url!r}, ref={self.ref!r})"

    async def list(self, artifact_type: str) -> list[ArtifactMetadata]:
        delegate = await self._ensure_synced()
        return await delegate.list(artifact_type)

    async def read(self, artifact_type: str, artifact_id: str) -> ArtifactBundle:
        delegate = await self._ensure_synced()
        return await delegate.read(artifact_type, artifact_id)

    async def exists(self, artifact_type: str, artifact_id: str) -> bool:
        delegate = await self._ensure_synced()
        return await delegate.exists(artifact_type, artifact_id)

    async def write(self, artifact_type: str, artifact_id: str, bundle: ArtifactBundle) -> None:
        delegate = await self._ensure_synced()
        await delegate.write(artifact_type, artifact_id, bundle)

    async def _ensure_synced(self) -> FilesystemAdapter:
        """Clone or update the cache once, then return the filesystem delegate."""
        if self._delegate is not None:
            return self._delegate

        if (self.cache_dir / ".git").exists():
            await self._fetch_and_checkout()
        else:
            await self._clone()

        self._delegate = FilesystemAdapter(self.cache_dir / self.registry_path, name=self.name)
        return self._delegate

    def _resolve_url(self) -> str:
        """Inject the HTTPS token (if configured) as the URL username."""
        if not self.token_env:
            return self.url

        token = os.environ.get(self.token_env)
        if not token:
            logger.warning(
                f"Token env var '{self.token_env}' is not set. Falling back to unauthenticated access."
            )
            return self.url

        parts = urlsplit(self.url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            # SSH or local path - tokens don't apply
            return self.url

        netloc = f"{token}@{parts.hostname}"
        if parts.port:
            netloc += f":{parts.port}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    async def _clone(self) -> None:
        self.cache_dir.parent.mkdir(parents=True, exist_ok=True)

        args = ["clone", "--depth", "1", "--branch", self.ref, "--single-branch"]
        if self.sparse:
            args.append("--sparse")
        args.extend([self._resolve_url(), str(self.cache_dir)])

        logger.info(f"Cloning {self.url}@{self.ref} into {self.cache_dir}")
        try:
            await run_git(args, cwd=self.cache_dir.parent)
        except GitCommandError as e:
            raise AdapterError(
                self.name,
                f"Clone failed for {self.url}: {e.detail}",
                "Check that the URL is correct and you have access. If using HTTPS, set token_env.",
            ) from e

        if self.sparse:
            try:
                await run_git(["sparse-checkout", "set", *self.sparse], cwd=self.cache_dir)
            except GitCommandError as e:
                raise AdapterError(
                    self.name,
                    f"Sparse checkout config failed: {e.detail}",
                    "Check that the sparse paths are valid directories in the repository.",
                ) from e

    async def _fetch_and_checkout(self) -> None:
        logger.debug(f"Updating cached clone {self.cache_dir} to {self.ref}")
        try:
            await run_git(["fetch", "--depth", "1", "origin", self.ref], cwd=self.cache_dir)
            await run_git(["checkout", "FETCH_HEAD"], cwd=self.cache_dir)
        except GitCommandError as e:
            raise AdapterError(
                self.name,
                f"Fetch/checkout failed for {self.url} ref={self.ref}: {e.detail}",
                f"Check that the ref '{self.ref}' exists in the repository and that you have network access.",
            ) from e
