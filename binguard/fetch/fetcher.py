# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Remote fetcher: download the platform artifact from a versioned release.

The release URL is a pure function of (repository, manifest version, artifact
filename):

    {release_base_url}/{owner}/{repo}/releases/download/v{version}/{filename}

Download rules:
  - the body is streamed into a temp file next to the target and only renamed
    onto the real filename once the download completed
  - any failure removes the partial file before the error surfaces, so a
    failed download never leaves a file that looks installed
  - redirects are followed by hand, one hop per recursive call, up to
    max_redirects hops
  - on non-Windows targets the execute bit is set as the final step
  - nothing is retried; a failed fetch needs a fresh install run

The fetcher makes no integrity claim. Callers re-run the verifier.
"""

import logging
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

import requests

from binguard.exceptions import (
    DownloadError,
    RedirectWithoutLocationError,
    RepositoryResolutionError,
    TooManyRedirectsError,
    UnsupportedPlatformError,
)
from binguard.logging.logger import get_logger
from binguard.manifest.store import ManifestStore
from binguard.runtime.platforms import is_windows
from binguard.utils.filesystem import commit_temp, discard_temp, make_executable, open_temp_sibling

_logger: logging.Logger = get_logger(__name__)

REDIRECT_STATUSES: frozenset[int] = frozenset({301, 302, 303, 307, 308})

_GITHUB_REPO_PATTERN = re.compile(
    r"github\.com[/:](?P<owner>[\w.-]+)/(?P<repo>[\w.-]+?)(?:\.git)?/?$"
)

USER_AGENT = "binguard-installer"


def parse_repository(repository_url: str) -> tuple[str, str]:
    """
    Extract (owner, repo) from a GitHub repository URL.

    Accepts https://, git+https://, ssh and scp-style (git@github.com:o/r.git)
    forms.

    Raises:
        RepositoryResolutionError: If the URL isn't a recognizable GitHub repo URL.
    """
    match = _GITHUB_REPO_PATTERN.search(repository_url.strip())
    if match is None:
        raise RepositoryResolutionError(repository_url)
    return match.group("owner"), match.group("repo")


def release_url(base_url: str, owner: str, repo: str, version: str, filename: str) -> str:
    """Build the download URL for one release asset."""
    tag = version if version.startswith("v") else f"v{version}"
    return f"{base_url.rstrip('/')}/{owner}/{repo}/releases/download/{tag}/{filename}"


class RemoteFetcher:
    """
    Downloads artifacts named by the manifest into artifact_dir.

    `session` is anything with a requests-compatible `get`; tests inject a
    fake one.
    """

    def __init__(
        self,
        store: ManifestStore,
        artifact_dir: Path,
        repository_url: str,
        release_base_url: str = "https://github.com",
        max_redirects: int = 5,
        timeout_seconds: float = 60.0,
        chunk_size: int = 65536,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.store = store
        self.artifact_dir = artifact_dir
        self.repository_url = repository_url
        self.release_base_url = release_base_url
        self.max_redirects = max_redirects
        self.timeout_seconds = timeout_seconds
        self.chunk_size = chunk_size
        self.session = session if session is not None else requests.Session()

    def url_for(self, platform_key: str) -> str:
        """
        Resolve the release URL for platform_key.

        Raises:
            UnsupportedPlatformError: No manifest entry for the key.
            RepositoryResolutionError: repository_url can't be parsed.
        """
        manifest = self.store.load()
        entry = manifest.entry(platform_key)
        if entry is None:
            raise UnsupportedPlatformError(platform_key, manifest.available_platforms())
        owner, repo = parse_repository(self.repository_url)
        return release_url(self.release_base_url, owner, repo, manifest.version, entry.filename)

    def fetch(self, platform_key: str) -> Path:
        """
        Download the artifact for platform_key and return its local path.

        Raises:
            DownloadError, RedirectWithoutLocationError, TooManyRedirectsError,
            RepositoryResolutionError, UnsupportedPlatformError
        """
        url = self.url_for(platform_key)
        filename = self.store.entry(platform_key).filename
        destination = self.artifact_dir / filename

        _logger.info(
            "Fetching artifact",
            extra={"platform": platform_key, "url": url, "destination": str(destination)},
        )
        self.artifact_dir.mkdir(parents=True, exist_ok=True)
        self._download(url, destination, hops=0)

        if not is_windows(platform_key):
            try:
                make_executable(destination)
            except OSError as err:
                # The compatibility gate re-checks and repairs the execute bit.
                _logger.warning(
                    "Could not set execute permission on downloaded artifact",
                    extra={"platform": platform_key, "path": str(destination), "error": str(err)},
                )

        _logger.info(
            "Artifact downloaded",
            extra={"platform": platform_key, "size": destination.stat().st_size},
        )
        return destination

    def _download(self, url: str, destination: Path, hops: int) -> None:
        try:
            response = self.session.get(
                url,
                stream=True,
                allow_redirects=False,
                timeout=self.timeout_seconds,
                headers={"User-Agent": USER_AGENT},
            )
        except requests.RequestException as err:
            raise DownloadError(url, str(err)) from err

        try:
            if response.status_code in REDIRECT_STATUSES:
                location = response.headers.get("Location")
                if not location:
                    raise RedirectWithoutLocationError(url, response.status_code)
                if hops >= self.max_redirects:
                    raise TooManyRedirectsError(url, self.max_redirects)
                next_url = urljoin(url, location)
                _logger.debug(
                    "Following redirect",
                    extra={"status": response.status_code, "hop": hops + 1},
                )
                self._download(next_url, destination, hops + 1)
                return

            if response.status_code != 200:
                raise DownloadError(url, f"HTTP {response.status_code}: {response.reason}")

            self._stream_to_file(url, response, destination)
        finally:
            response.close()

    def _stream_to_file(self, url: str, response: requests.Response, destination: Path) -> None:
        temp_fd, temp_path = open_temp_sibling(destination, mode="wb")
        try:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if chunk:
                    temp_fd.write(chunk)
            commit_temp(temp_fd, temp_path, destination)
        except (requests.RequestException, OSError) as err:
            discard_temp(temp_fd, temp_path)
            _logger.error("Download stream failed", extra={"url": url, "error": str(err)})
            raise DownloadError(url, f"stream error: {err}") from err
        except BaseException:
            discard_temp(temp_fd, temp_path)
            raise
