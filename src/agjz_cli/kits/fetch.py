"""Fetch kit sources into a local staging directory.

Kit sources use the ``[provider:]owner/repo[/subdir][#ref]`` form, e.g.
``github:vudovn/antigravity-kit`` or ``gitlab:team/kit/assets#v2``.
Without a provider prefix GitHub is assumed; without a ref ``main`` is used.

The merge engine only depends on the ``TemplateFetcher`` protocol, so tests
substitute a fetcher that copies fixture trees instead of downloading.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import ssl
import tarfile
import tempfile
import zlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

import httpx
import truststore

from agjz_cli.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_REF = "main"

PROVIDER_ALIASES = {"gh": "github"}

ARCHIVE_URLS = {
    "github": "https://github.com/{owner}/{repo}/archive/{ref}.tar.gz",
    "gitlab": "https://gitlab.com/{owner}/{repo}/-/archive/{ref}.tar.gz",
    "bitbucket": "https://bitbucket.org/{owner}/{repo}/get/{ref}.tar.gz",
    "sourcehut": "https://git.sr.ht/~{owner}/{repo}/archive/{ref}.tar.gz",
}

_SOURCE_RE = re.compile(
    r"^(?:(?P<provider>[a-z]+):)?"
    r"(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+)"
    r"(?P<subdir>(?:/[^#]*)?)"
    r"(?:#(?P<ref>[^#]+))?$"
)


class TemplateFetcher(Protocol):
    """Materializes a kit source as a directory tree."""

    def fetch(self, source: str, destination: Path) -> None:
        """Populate *destination* with the kit's tree, replacing prior content.

        Raises:
            FetchError: The kit could not be fetched or extracted.
        """
        ...


@dataclass(frozen=True)
class KitSource:
    provider: str
    owner: str
    repo: str
    subdir: str = ""
    ref: str = DEFAULT_REF

    @property
    def archive_url(self) -> str:
        return ARCHIVE_URLS[self.provider].format(owner=self.owner, repo=self.repo, ref=self.ref)


def parse_kit_source(source: str) -> KitSource:
    """Parse a kit source string.

    Raises:
        FetchError: The string is malformed or names an unknown provider.
    """
    match = _SOURCE_RE.match(source.strip())
    if match is None:
        raise FetchError(source, "expected [provider:]owner/repo[/subdir][#ref]")

    provider = match.group("provider") or "github"
    provider = PROVIDER_ALIASES.get(provider, provider)
    if provider not in ARCHIVE_URLS:
        raise FetchError(
            source, f"unsupported provider '{provider}' (supported: {', '.join(sorted(ARCHIVE_URLS))})"
        )

    return KitSource(
        provider=provider,
        owner=match.group("owner"),
        repo=match.group("repo"),
        subdir=match.group("subdir").strip("/"),
        ref=match.group("ref") or DEFAULT_REF,
    )


def _github_token() -> str | None:
    """Return the GitHub token from GH_TOKEN/GITHUB_TOKEN, or None."""
    return ((os.getenv("GH_TOKEN") or os.getenv("GITHUB_TOKEN") or "").strip()) or None


def _auth_headers(kit: KitSource) -> dict:
    """Return an Authorization header for GitHub when a token is configured."""
    if kit.provider != "github":
        return {}
    token = _github_token()
    return {"Authorization": f"Bearer {token}"} if token else {}


def _member_target(name: str, subdir_parts: tuple[str, ...]) -> PurePosixPath | None:
    """Map an archive member name to a path below the destination.

    The archive's top-level directory is stripped, then *subdir_parts* when
    given. Returns None for members outside the wanted subtree and for
    absolute or parent-relative names.
    """
    member_path = PurePosixPath(name)
    if member_path.is_absolute() or ".." in member_path.parts:
        return None

    parts = member_path.parts[1:]
    if subdir_parts:
        if parts[: len(subdir_parts)] != subdir_parts:
            return None
        parts = parts[len(subdir_parts):]

    if not parts:
        return None
    return PurePosixPath(*parts)


def extract_archive(archive_path: Path, destination: Path, subdir: str = "") -> int:
    """Extract a gzipped tarball into *destination*.

    Only directories and regular files are extracted; links and device
    members are ignored.

    Returns:
        Number of files written.
    """
    subdir_parts = PurePosixPath(subdir).parts if subdir else ()
    written = 0
    with tarfile.open(archive_path, "r:gz") as archive:
        for member in archive:
            target = _member_target(member.name, subdir_parts)
            if target is None:
                continue
            out_path = destination.joinpath(*target.parts)
            if member.isdir():
                out_path.mkdir(parents=True, exist_ok=True)
            elif member.isfile():
                extracted = archive.extractfile(member)
                if extracted is None:
                    continue
                out_path.parent.mkdir(parents=True, exist_ok=True)
                with extracted, open(out_path, "wb") as f:
                    shutil.copyfileobj(extracted, f)
                written += 1
            else:
                logger.debug("Ignoring archive member %s", member.name)
    return written


class ArchiveFetcher:
    """Download a provider tarball over HTTPS and extract it."""

    def __init__(self, client: httpx.Client | None = None, timeout: float = 60):
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(verify=truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT))
        self.client = client
        self.timeout = timeout

    def __enter__(self) -> ArchiveFetcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _download(self, kit: KitSource, source: str, archive_path: Path) -> None:
        url = kit.archive_url
        logger.debug("Downloading %s from %s", source, url)
        try:
            with self.client.stream(
                "GET",
                url,
                timeout=self.timeout,
                follow_redirects=True,
                headers=_auth_headers(kit),
            ) as response:
                if response.status_code != 200:
                    raise FetchError(source, f"download failed with HTTP {response.status_code} ({url})")
                with open(archive_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)
        except httpx.HTTPError as exc:
            raise FetchError(source, str(exc)) from exc

    def fetch(self, source: str, destination: Path) -> None:
        kit = parse_kit_source(source)
        destination = Path(destination)

        with tempfile.TemporaryDirectory(prefix="ag-jz-archive-") as tmp:
            archive_path = Path(tmp) / "kit.tar.gz"
            self._download(kit, source, archive_path)

            try:
                if destination.exists():
                    shutil.rmtree(destination)
                destination.mkdir(parents=True)
                written = extract_archive(archive_path, destination, kit.subdir)
            except (tarfile.TarError, OSError, EOFError, zlib.error) as exc:
                raise FetchError(source, f"could not extract archive ({exc})") from exc

        if kit.subdir and written == 0:
            raise FetchError(source, f"subdirectory '{kit.subdir}' not found in archive")
        logger.debug("Extracted %d file(s) for %s into %s", written, source, destination)
