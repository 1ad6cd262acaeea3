# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the remote fetcher.

The HTTP layer is a fake session returning canned responses, so no test
touches the network. What matters:
  - the release URL is derived from repository, version and filename
  - redirects are followed up to the hop limit, relative Locations included
  - a failed download never leaves a file behind
  - the execute bit is set on non-Windows targets
"""

import os
import sys
from pathlib import Path
from typing import Iterator, Optional

import pytest
import requests

from binguard.exceptions import (
    DownloadError,
    RedirectWithoutLocationError,
    RepositoryResolutionError,
    TooManyRedirectsError,
    UnsupportedPlatformError,
)
from binguard.fetch.fetcher import RemoteFetcher, parse_repository, release_url
from binguard.utils.filesystem import TEMP_PREFIX

from conftest import Project, missing_entry

BASE = "https://github.com/acme/tool/releases/download/v1.2.0"


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        chunks: Optional[list[bytes]] = None,
        headers: Optional[dict[str, str]] = None,
        fail_after: Optional[int] = None,
        reason: str = "OK",
    ) -> None:
        self.status_code = status_code
        self.headers = headers or {}
        self.reason = reason
        self._chunks = chunks or []
        self._fail_after = fail_after
        self.closed = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for index, chunk in enumerate(self._chunks):
            if self._fail_after is not None and index >= self._fail_after:
                raise requests.ConnectionError("connection reset")
            yield chunk

    def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, responses: dict[str, FakeResponse]) -> None:
        self.responses = responses
        self.calls: list[str] = []

    def get(self, url: str, **kwargs: object) -> FakeResponse:
        self.calls.append(url)
        assert kwargs["allow_redirects"] is False
        assert kwargs["stream"] is True
        return self.responses[url]


def _fetcher(project: Project, session: FakeSession, max_redirects: int = 5) -> RemoteFetcher:
    return RemoteFetcher(
        project.store(),
        project.artifact_dir,
        repository_url="https://github.com/acme/tool.git",
        max_redirects=max_redirects,
        session=session,  # type: ignore[arg-type]
    )


@pytest.fixture()
def manifest_project(project: Project) -> Project:
    project.write_manifest(
        {
            "linux-x64": missing_entry("tool-linux-x64"),
            "win32-x64": missing_entry("tool-windows-x64.exe"),
        }
    )
    return project


class TestRepositoryParsing:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/tool",
            "https://github.com/acme/tool.git",
            "git+https://github.com/acme/tool.git",
            "git@github.com:acme/tool.git",
            "https://github.com/acme/tool/",
        ],
    )
    def test_accepted_forms(self, url: str) -> None:
        assert parse_repository(url) == ("acme", "tool")

    def test_non_github_url_rejected(self) -> None:
        with pytest.raises(RepositoryResolutionError):
            parse_repository("https://example.com/acme/tool")

    def test_release_url_adds_v_prefix(self) -> None:
        url = release_url("https://github.com/", "acme", "tool", "1.2.0", "tool-linux-x64")
        assert url == f"{BASE}/tool-linux-x64"

    def test_release_url_keeps_existing_prefix(self) -> None:
        assert "/download/v1.2.0/" in release_url("https://github.com", "a", "b", "v1.2.0", "f")


class TestFetchSuccess:
    def test_streams_body_to_artifact_dir(self, manifest_project: Project) -> None:
        url = f"{BASE}/tool-linux-x64"
        session = FakeSession({url: FakeResponse(chunks=[b"abc", b"", b"def"])})

        path = _fetcher(manifest_project, session).fetch("linux-x64")

        assert path == manifest_project.artifact_dir / "tool-linux-x64"
        assert path.read_bytes() == b"abcdef"
        assert session.responses[url].closed
        assert list(manifest_project.artifact_dir.glob(f"{TEMP_PREFIX}*")) == []

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_sets_execute_bit_on_posix_target(self, manifest_project: Project) -> None:
        session = FakeSession({f"{BASE}/tool-linux-x64": FakeResponse(chunks=[b"x"])})

        path = _fetcher(manifest_project, session).fetch("linux-x64")

        assert os.stat(path).st_mode & 0o777 == 0o755

    def test_chmod_failure_keeps_download(
        self, manifest_project: Project, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def refuse_chmod(path: Path) -> None:
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr("binguard.fetch.fetcher.make_executable", refuse_chmod)
        session = FakeSession({f"{BASE}/tool-linux-x64": FakeResponse(chunks=[b"elf"])})

        path = _fetcher(manifest_project, session).fetch("linux-x64")

        assert path.read_bytes() == b"elf"

    def test_creates_missing_artifact_dir(self, manifest_project: Project) -> None:
        manifest_project.artifact_dir.rmdir()
        session = FakeSession({f"{BASE}/tool-windows-x64.exe": FakeResponse(chunks=[b"MZ"])})

        path = _fetcher(manifest_project, session).fetch("win32-x64")

        assert path.read_bytes() == b"MZ"

    def test_follows_relative_redirect(self, manifest_project: Project) -> None:
        first = f"{BASE}/tool-linux-x64"
        second = "https://github.com/storage/blob/tool-linux-x64"
        session = FakeSession(
            {
                first: FakeResponse(302, headers={"Location": "/storage/blob/tool-linux-x64"}),
                second: FakeResponse(chunks=[b"payload"]),
            }
        )

        path = _fetcher(manifest_project, session).fetch("linux-x64")

        assert session.calls == [first, second]
        assert path.read_bytes() == b"payload"

    def test_redirects_up_to_limit_succeed(self, manifest_project: Project) -> None:
        urls = [f"{BASE}/tool-linux-x64"] + [f"https://cdn.example/{i}" for i in range(1, 3)]
        responses = {
            urls[0]: FakeResponse(301, headers={"Location": urls[1]}),
            urls[1]: FakeResponse(307, headers={"Location": urls[2]}),
            urls[2]: FakeResponse(chunks=[b"ok"]),
        }

        path = _fetcher(manifest_project, FakeSession(responses), max_redirects=2).fetch("linux-x64")

        assert path.read_bytes() == b"ok"


class TestFetchFailures:
    def test_too_many_redirects(self, manifest_project: Project) -> None:
        first = f"{BASE}/tool-linux-x64"
        loop = "https://cdn.example/loop"
        session = FakeSession(
            {
                first: FakeResponse(302, headers={"Location": loop}),
                loop: FakeResponse(302, headers={"Location": loop}),
            }
        )

        with pytest.raises(TooManyRedirectsError):
            _fetcher(manifest_project, session, max_redirects=3).fetch("linux-x64")

        assert len(session.calls) == 4
        assert not (manifest_project.artifact_dir / "tool-linux-x64").exists()

    def test_redirect_without_location(self, manifest_project: Project) -> None:
        session = FakeSession({f"{BASE}/tool-linux-x64": FakeResponse(302)})

        with pytest.raises(RedirectWithoutLocationError):
            _fetcher(manifest_project, session).fetch("linux-x64")

    def test_non_200_status(self, manifest_project: Project) -> None:
        session = FakeSession({f"{BASE}/tool-linux-x64": FakeResponse(404, reason="Not Found")})

        with pytest.raises(DownloadError, match="HTTP 404"):
            _fetcher(manifest_project, session).fetch("linux-x64")

        assert not (manifest_project.artifact_dir / "tool-linux-x64").exists()

    def test_broken_stream_leaves_no_partial_file(self, manifest_project: Project) -> None:
        session = FakeSession(
            {f"{BASE}/tool-linux-x64": FakeResponse(chunks=[b"abc", b"def"], fail_after=1)}
        )

        with pytest.raises(DownloadError, match="stream error"):
            _fetcher(manifest_project, session).fetch("linux-x64")

        assert list(manifest_project.artifact_dir.iterdir()) == []

    def test_connection_error_wrapped(self, manifest_project: Project) -> None:
        class RefusingSession(FakeSession):
            def get(self, url: str, **kwargs: object) -> FakeResponse:
                raise requests.ConnectionError("refused")

        with pytest.raises(DownloadError, match="refused"):
            _fetcher(manifest_project, RefusingSession({})).fetch("linux-x64")

    def test_unknown_platform(self, manifest_project: Project) -> None:
        with pytest.raises(UnsupportedPlatformError):
            _fetcher(manifest_project, FakeSession({})).fetch("darwin-arm64")
