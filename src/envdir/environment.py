from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from typing import AnyStr

from envdir.config import VARIABLE_NAME_PATTERN


def make_environment_map(pairs: Iterable[str]) -> dict[str, str]:
    """Build a map from ``NAME=VALUE`` strings, splitting on the first ``=`` only."""
    environment: dict[str, str] = {}
    for pair in pairs:
        key, _, value = pair.partition("=")
        environment[key] = value
    return environment


def environment_strings(environment: Mapping[str, str]) -> list[str]:
    return [f"{key}={value}" for key, value in environment.items()]


def snapshot_environment(ignore_environment: bool) -> dict[str, str]:
    """Return the base map: empty for a fresh environment, else a copy of ours."""
    if ignore_environment:
        return {}
    return dict(os.environ)


def is_valid_variable_name(name: str) -> bool:
    return VARIABLE_NAME_PATTERN.fullmatch(name) is not None


def contains_null_byte(data: bytes) -> bool:
    return b"\x00" in data


def strip_trailing_terminator(value: AnyStr) -> AnyStr:
    """Remove one trailing ``\\r\\n``, ``\\r`` or ``\\n``; nothing else is trimmed."""
    if isinstance(value, bytes):
        crlf, cr, lf = b"\r\n", b"\r", b"\n"
    else:
        crlf, cr, lf = "\r\n", "\r", "\n"

    if value.endswith(crlf):
        return value[:-2]
    if value.endswith(cr) or value.endswith(lf):
        return value[:-1]
    return value


def decode_value(data: bytes) -> str:
    # surrogateescape keeps undecodable bytes intact on the way to the child
    return os.fsdecode(data)
