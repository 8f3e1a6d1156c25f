"""Repository URL canonicalization for Git, container image and chart sources.

Two URLs that point at the same repository must compare equal after
normalization. Freight identity and Warehouse subscription matching both
depend on this.

Every function here is total: input that cannot be parsed is returned
trimmed and lowercased rather than raising.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

# [user@]host:path, where host contains no slash and path does not start with "//"
_SCP_PATTERN = re.compile(r"^(?:(?P<user>[^@/]+)@)?(?P<host>[^:/]+):(?!//)(?P<path>.*)$")

_DOCKER_HUB = "docker.io"

_DOCKER_HUB_ALIASES = frozenset({
    "index.docker.io",
    "registry-1.docker.io",
    "registry.hub.docker.com",
})

_IMAGE_SCHEMES = ("oci://", "docker://", "https://", "http://")


def _trim_repo_path(path: str) -> str:
    """Drop a trailing slash and then a trailing ``.git`` from a repo path."""
    return path.removesuffix("/").removesuffix(".git")


def normalize_git(url: str) -> str:
    """Canonicalize a Git repository URL.

    - ``http(s)://`` URLs lose any embedded credentials.
    - ``ssh://`` URLs keep their user, which selects the remote account.
    - SCP-style ``[user@]host:path`` is rewritten as ``ssh://[user@]host/path``.

    In all three forms a trailing ``/`` and then a trailing ``.git`` are
    removed from the path.
    """
    repo = url.strip().lower()

    if repo.startswith(("http://", "https://")):
        try:
            parts = urlsplit(repo)
            host = parts.hostname or ""
            port = parts.port
        except ValueError:
            return repo
        netloc = f"{host}:{port}" if port else host
        return urlunsplit(
            (parts.scheme, netloc, _trim_repo_path(parts.path), parts.query, parts.fragment)
        )

    if repo.startswith("ssh://"):
        try:
            parts = urlsplit(repo)
        except ValueError:
            return repo
        return urlunsplit(
            (parts.scheme, parts.netloc, _trim_repo_path(parts.path), parts.query, parts.fragment)
        )

    match = _SCP_PATTERN.match(repo)
    if match:
        user = match.group("user")
        host = match.group("host")
        path = _trim_repo_path(match.group("path").lstrip("/"))
        netloc = f"{user}@{host}" if user else host
        return f"ssh://{netloc}/{path}"

    return repo


def normalize_chart(url: str) -> str:
    """Canonicalize a Helm chart repository URL.

    Classic (HTTP/S) and OCI repositories are both supported; the ``oci://``
    scheme is dropped so a registry reference compares equal with or without it.
    """
    return url.strip().lower().removeprefix("oci://")


def normalize_image(url: str) -> str:
    """Canonicalize a container image repository reference.

    >>> normalize_image("nginx")
    'docker.io/library/nginx'
    >>> normalize_image("https://index.docker.io/Foo/Bar/")
    'docker.io/foo/bar'
    >>> normalize_image("ghcr.io/akuity/kargo")
    'ghcr.io/akuity/kargo'
    """
    repo = url.strip().lower()
    for scheme in _IMAGE_SCHEMES:
        if repo.startswith(scheme):
            repo = repo[len(scheme):]
            break
    repo = repo.rstrip("/")
    if not repo:
        return repo

    first, sep, rest = repo.partition("/")
    # A leading segment is a registry host only if it looks like one.
    if sep and ("." in first or ":" in first or first == "localhost"):
        registry, path = first, rest
    else:
        registry, path = _DOCKER_HUB, repo

    if registry in _DOCKER_HUB_ALIASES:
        registry = _DOCKER_HUB
    if registry == _DOCKER_HUB and "/" not in path:
        path = f"library/{path}"

    return f"{registry}/{path}"
