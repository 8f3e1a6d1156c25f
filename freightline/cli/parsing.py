"""Parsers for the compact artifact and duration syntax accepted on the command line.

Artifact references
-------------------
- commit   : ``REPO_URL@COMMIT_ID[#TAG]``
- image    : ``REPO[:TAG][@DIGEST]``
- chart    : ``REPO_URL[#NAME]@VERSION``
- artifact : ``TYPE:SUBSCRIPTION:VERSION``

Durations use Go's notation, e.g. ``90s``, ``1h30m``, ``1.5h``. The finest unit is
the microsecond, the resolution of ``timedelta``.
"""

from __future__ import annotations

import re
from datetime import timedelta

import typer

from freightline.models.freight import Artifact, Chart, GitCommit, Image

_DURATION_UNITS = {
    "us": timedelta(microseconds=1),
    "µs": timedelta(microseconds=1),
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(us|µs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration string such as ``1h30m``."""
    value = text.strip()
    if value == "0":
        return timedelta(0)
    if not value:
        raise ValueError("empty duration")

    total = timedelta(0)
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(value):
        raise ValueError(f"invalid duration {text!r}")
    return total


def _split_last(text: str, sep: str, what: str, expected: str) -> tuple[str, str]:
    head, found, tail = text.rpartition(sep)
    if not found or not head or not tail:
        raise ValueError(f"invalid {what} {text!r}, expected {expected}")
    return head, tail


def parse_commit(text: str) -> GitCommit:
    ref, _, tag = text.partition("#")
    repo_url, commit_id = _split_last(ref, "@", "commit", "REPO_URL@COMMIT_ID[#TAG]")
    return GitCommit(repo_url=repo_url, id=commit_id, tag=tag)


def parse_image(text: str) -> Image:
    ref, _, digest = text.rpartition("@") if "@" in text else (text, "", "")
    repo_url, tag = ref, ""
    last_colon = ref.rfind(":")
    # A colon after the last slash separates the tag; earlier ones belong to a registry port.
    if last_colon > ref.rfind("/"):
        repo_url, tag = ref[:last_colon], ref[last_colon + 1:]
    if not repo_url or not (tag or digest):
        raise ValueError(f"invalid image {text!r}, expected REPO[:TAG][@DIGEST]")
    return Image(repo_url=repo_url, tag=tag, digest=digest)


def parse_chart(text: str) -> Chart:
    ref, version = _split_last(text, "@", "chart", "REPO_URL[#NAME]@VERSION")
    repo_url, _, name = ref.partition("#")
    return Chart(repo_url=repo_url, name=name, version=version)


def parse_artifact(text: str) -> Artifact:
    parts = text.split(":", 2)
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"invalid artifact {text!r}, expected TYPE:SUBSCRIPTION:VERSION")
    artifact_type, subscription_name, version = parts
    return Artifact(
        artifact_type=artifact_type, subscription_name=subscription_name, version=version
    )


def as_parameter(parser, values: list[str] | None, option: str) -> list:
    """Apply ``parser`` to each value, reporting failures as Typer usage errors."""
    try:
        return [parser(value) for value in values or []]
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=option) from exc
