"""
Runtime resolution and invocation.

``DenoBridge`` hands out a ``deno`` binary whose version satisfies a semver
range, trying three tiers in a fixed order:

1. the global ``deno`` on PATH (unless disabled),
2. a previously downloaded binary in the cache directory,
3. a fresh download into the cache directory.

The download tier is terminal: if it fails, resolution fails. Download hooks
only fire around tier 3.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol, Sequence, Union

from .cache import read_cached_binary, write_version_record
from .common import vlog
from .detection import get_binary_version
from .errors import ConfigError, DownloadError
from .host import BINARY_BASENAME, get_path_in_home
from .runner import RunResult, run_process
from .versions import parse_range

if TYPE_CHECKING:
    from .config import BridgeConfig

DEFAULT_VERSION_RANGE = "^1.20.3"
DEFAULT_CACHE_SUBDIR = "deno-cli"
GLOBAL_COMMAND = BINARY_BASENAME

LifecycleHook = Callable[[], Union[None, Awaitable[None]]]
Downloader = Callable[[Path, str], Union[str, os.PathLike]]


class ResolutionStage(enum.Enum):
    """Resolution tiers, in the order they are tried."""

    CHECK_GLOBAL = "global"
    CHECK_CACHE = "cache"
    DOWNLOAD = "download"


# Tiers that may fall through to the next one. DOWNLOAD is never in here.
FALLBACK_STAGES = (ResolutionStage.CHECK_GLOBAL, ResolutionStage.CHECK_CACHE)


@dataclass(frozen=True)
class ResolutionResult:
    """
    A resolved runtime binary.

    Attributes:
        path: Binary path, or the bare command name for a global install
        is_global: Whether the binary came from PATH rather than the cache
        stage: Tier that produced the binary
    """
    path: str
    is_global: bool
    stage: ResolutionStage

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": self.path,
            "global": self.is_global,
            "stage": self.stage.value,
        }


class DownloadHooks(Protocol):
    """
    Extension points around the download tier.

    Both methods are optional; either may be a coroutine function.
    """

    def before_download(self) -> Optional[Awaitable[None]]: ...

    def after_download(self) -> Optional[Awaitable[None]]: ...


class CallbackHooks:
    """DownloadHooks built from two optional bare callables."""

    def __init__(
        self,
        on_before_download: LifecycleHook | None = None,
        on_after_download: LifecycleHook | None = None,
    ):
        self.on_before_download = on_before_download
        self.on_after_download = on_after_download

    def before_download(self) -> Optional[Awaitable[None]]:
        if self.on_before_download is not None:
            return self.on_before_download()
        return None

    def after_download(self) -> Optional[Awaitable[None]]:
        if self.on_after_download is not None:
            return self.on_after_download()
        return None


async def _maybe_await(result: Any) -> Any:
    """Await if result is awaitable, otherwise return directly."""
    if inspect.isawaitable(result):
        return await result
    return result


def _invoke_hook(hooks: Any, name: str) -> Any:
    hook = getattr(hooks, name, None)
    if hook is None:
        return None
    return hook()


def _call_hook(hooks: Any, name: str) -> None:
    """
    Run a hook from synchronous code.

    An awaitable result is driven on a private event loop. Inside a running
    loop that is impossible, so the caller is pointed at the async API.

    Raises:
        ConfigError: If an asynchronous hook is used from inside a running loop
    """
    result = _invoke_hook(hooks, name)
    if not inspect.isawaitable(result):
        return

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(_maybe_await(result))
        return

    if inspect.iscoroutine(result):
        result.close()
    raise ConfigError(
        f"Asynchronous {name} hook cannot run inside a running event loop",
        remediation="Use 'await bridge.resolve_async()' or 'await bridge.run_async(...)' from async code",
    )


class DenoBridge:
    """
    Resolves and runs a version-compliant ``deno`` binary.

    Args:
        cache_directory: Where downloaded binaries live (default:
            ``<config home>/deno-bridge/deno-cli``)
        downloader: ``downloader(cache_dir, version_range) -> binary path``;
            required only when resolution reaches the download tier
        hooks: Object with optional ``before_download``/``after_download``
        on_before_download: Bare callable alternative to ``hooks``
        on_after_download: Bare callable alternative to ``hooks``
        use_global: Whether to consider a ``deno`` found on PATH
        version_range: npm-style range every tier must satisfy
        probe_timeout: Optional timeout for ``deno --version`` probes
        verbose: Enable verbose logging

    Raises:
        InvalidRangeError: If ``version_range`` cannot be parsed
        ConfigError: If both ``hooks`` and callbacks are given
    """

    def __init__(
        self,
        cache_directory: str | os.PathLike[str] | None = None,
        downloader: Downloader | None = None,
        hooks: DownloadHooks | None = None,
        on_before_download: LifecycleHook | None = None,
        on_after_download: LifecycleHook | None = None,
        use_global: bool = True,
        version_range: str = DEFAULT_VERSION_RANGE,
        probe_timeout: float | None = None,
        verbose: bool = False,
    ):
        if hooks is not None and (on_before_download or on_after_download):
            raise ConfigError("Pass either a hooks object or on_*_download callbacks, not both")

        self.cache_directory = Path(cache_directory) if cache_directory else get_path_in_home(DEFAULT_CACHE_SUBDIR)
        self.downloader = downloader
        self.hooks = hooks if hooks is not None else CallbackHooks(on_before_download, on_after_download)
        self.use_global = use_global
        self.version_range = version_range
        self.probe_timeout = probe_timeout
        self.verbose = verbose

        self._range = parse_range(version_range)

    @classmethod
    def from_config(cls, config: BridgeConfig, **kwargs: Any) -> DenoBridge:
        """
        Build a bridge from a loaded configuration.

        Keyword arguments (hooks, downloader, verbose) override the config.
        """
        from .config import load_downloader

        options: dict[str, Any] = {
            "cache_directory": config.cache_directory or None,
            "use_global": config.use_global,
            "version_range": config.version_range,
            "probe_timeout": config.probe_timeout_seconds,
        }
        if "downloader" not in kwargs and config.downloader:
            options["downloader"] = load_downloader(config.downloader)
        options.update(kwargs)
        return cls(**options)

    def get_binary_version(self, binary: str | os.PathLike[str]) -> str | None:
        return get_binary_version(binary, timeout=self.probe_timeout, verbose=self.verbose)

    def _check_global(self) -> str | None:
        if not self.use_global:
            return None

        global_version = self.get_binary_version(GLOBAL_COMMAND)
        if global_version is None or not self._range.test(global_version):
            vlog(f"Global {GLOBAL_COMMAND} unusable (version: {global_version or 'unknown'})", self.verbose)
            return None

        return GLOBAL_COMMAND

    def _check_cache(self) -> Path | None:
        return read_cached_binary(self.cache_directory, self._range, verbose=self.verbose)

    def _require_downloader(self) -> None:
        if self.downloader is None:
            raise DownloadError(
                f"No cached {GLOBAL_COMMAND} satisfies {self.version_range} and no downloader is configured",
                remediation="Install a matching deno on PATH or configure a downloader",
            )

    def _download(self) -> Path:
        self._require_downloader()
        _call_hook(self.hooks, "before_download")
        binary_path = self._fetch()
        _call_hook(self.hooks, "after_download")
        return binary_path

    async def _download_async(self) -> Path:
        self._require_downloader()
        await _maybe_await(_invoke_hook(self.hooks, "before_download"))
        binary_path = await asyncio.to_thread(self._fetch)
        await _maybe_await(_invoke_hook(self.hooks, "after_download"))
        return binary_path

    def _fetch(self) -> Path:
        self.cache_directory.mkdir(parents=True, exist_ok=True)
        vlog(f"Downloading {GLOBAL_COMMAND} {self.version_range} into {self.cache_directory}", self.verbose)

        binary_path = Path(self.downloader(self.cache_directory, self.version_range))
        downloaded_version = self.get_binary_version(binary_path)

        # The downloader promises a binary inside the range; an unreadable one
        # means the range or the downloader is broken, not a transient fault.
        if downloaded_version is None:
            raise DownloadError(f"Could not read downloaded binary: {binary_path}")

        write_version_record(self.cache_directory, downloaded_version)
        return binary_path

    def _check_fallbacks(self) -> ResolutionResult | None:
        handlers: dict[ResolutionStage, Callable[[], Any]] = {
            ResolutionStage.CHECK_GLOBAL: self._check_global,
            ResolutionStage.CHECK_CACHE: self._check_cache,
        }

        for stage in FALLBACK_STAGES:
            path = handlers[stage]()
            if path is not None:
                return self._finish(stage, path)
        return None

    def resolve(self) -> ResolutionResult:
        """
        Find a binary satisfying the version range.

        Returns:
            ResolutionResult describing the chosen binary

        Raises:
            DownloadError: If the download tier cannot produce a usable binary
            ConfigError: If an asynchronous hook must run inside a running
                event loop (use ``resolve_async`` there)
            OSError: If the cache directory or version record cannot be written
        """
        result = self._check_fallbacks()
        if result is not None:
            return result
        return self._finish(ResolutionStage.DOWNLOAD, self._download())

    get_binary_path = resolve

    async def resolve_async(self) -> ResolutionResult:
        """
        ``resolve()`` for callers already inside an event loop.

        Hooks are awaited on the caller's loop. Probes, the downloader and the
        record write run in a worker thread so they do not block it.
        """
        result = await asyncio.to_thread(self._check_fallbacks)
        if result is not None:
            return result
        return self._finish(ResolutionStage.DOWNLOAD, await self._download_async())

    def _finish(self, stage: ResolutionStage, path: str | Path) -> ResolutionResult:
        result = ResolutionResult(
            path=str(path),
            is_global=stage is ResolutionStage.CHECK_GLOBAL,
            stage=stage,
        )
        vlog(f"Resolved {GLOBAL_COMMAND} via {stage.value}: {result.path}", self.verbose)
        return result

    def run(self, args: Sequence[str], wait: bool = True) -> subprocess.Popen | RunResult:
        """
        Resolve the binary, then run it with ``args``.

        Resolution happens on every call. See ``runner.run_process`` for the
        ``wait`` semantics.

        Raises:
            DownloadError: If no binary can be resolved
            RunError: If ``wait`` is True and the process exits non-zero
        """
        resolved = self.resolve()
        return run_process(resolved.path, args, wait=wait, verbose=self.verbose)

    async def run_async(self, args: Sequence[str], wait: bool = True) -> subprocess.Popen | RunResult:
        """``run()`` for callers already inside an event loop; waiting happens in a worker thread."""
        resolved = await self.resolve_async()
        if not wait:
            return run_process(resolved.path, args, wait=False, verbose=self.verbose)
        return await asyncio.to_thread(run_process, resolved.path, args, True, self.verbose)
