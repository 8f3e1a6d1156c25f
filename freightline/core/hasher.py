"""Deterministic Freight identity.

A Freight ID is the SHA-1 hex digest of the Freight's origin plus the sorted,
canonical form of every artifact reference it carries. Sorting makes the ID
independent of the order in which artifacts were listed; normalizing
repository URLs makes it independent of how a repository was spelled.

SHA-1 is used for speed and compactness, not collision resistance.
"""

from __future__ import annotations

import hashlib
import posixpath
from typing import TYPE_CHECKING

from freightline.core.urls import normalize_chart, normalize_git

if TYPE_CHECKING:
    from freightline.models.freight import Artifact, Chart, Freight, GitCommit, Image


def sha1_hex(data: bytes) -> str:
    """Return the SHA-1 hex digest of raw bytes."""
    return hashlib.sha1(data).hexdigest()


def commit_hash_part(commit: GitCommit) -> str:
    """Canonical form of a Git commit.

    A tag is folded in when present: one commit can acquire several tags over
    time, and a newly discovered tag on a known commit must yield new Freight.
    """
    repo = normalize_git(commit.repo_url)
    if commit.tag:
        return f"{repo}:{commit.tag}:{commit.id}"
    return f"{repo}:{commit.id}"


def image_hash_part(image: Image) -> str:
    """Canonical form of a container image.

    Both tag and digest are included. A mutable tag may later resolve to a new
    digest and a known digest may be re-tagged; either change alone must
    change the ID.
    """
    return f"{image.repo_url}:{image.tag}@{image.digest}"


def _join_chart_ref(repo: str, name: str) -> str:
    # OCI chart references carry the chart in the repo URL and leave name empty.
    joined = posixpath.join(repo, name)
    return posixpath.normpath(joined) if joined else ""


def chart_hash_part(chart: Chart) -> str:
    """Canonical form of a Helm chart."""
    return f"{_join_chart_ref(normalize_chart(chart.repo_url), chart.name)}:{chart.version}"


def artifact_hash_part(artifact: Artifact) -> str:
    """Canonical form of a generic artifact."""
    return f"{artifact.artifact_type}:{artifact.subscription_name}:{artifact.version}"


def freight_hash_parts(freight: Freight) -> list[str]:
    """Return the sorted canonical parts that make up a Freight's identity."""
    parts = [commit_hash_part(c) for c in freight.commits]
    parts.extend(image_hash_part(i) for i in freight.images)
    parts.extend(chart_hash_part(c) for c in freight.charts)
    parts.extend(artifact_hash_part(a) for a in freight.artifacts)
    parts.sort()
    return parts


def generate_freight_id(freight: Freight) -> str:
    """Compute the deterministic ID of a piece of Freight.

    Pure and total: Freight without any artifacts still hashes, to a value
    that depends only on its origin.
    """
    payload = f"{freight.origin}:{'|'.join(freight_hash_parts(freight))}"
    return sha1_hex(payload.encode("utf-8"))
