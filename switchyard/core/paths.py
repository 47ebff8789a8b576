"""Path Resolution - prefix concatenation and template rewriting.

Invariants:
    - The segment "/" is the empty prefix: resolve_base_url("/", "/a") == "/a"
    - An all-empty resolution is "/" (never "" and never "//")
    - Templates use {name} placeholders; the transport sees {name:str}
"""

import re

PLACEHOLDER = re.compile(r"\{([^{}:/]+)\}")


def resolve_base_url(*urls: str) -> str:
    """Concatenate path prefixes, treating "/" as empty."""
    return "".join(url for url in urls if url != "/") or "/"


def placeholders(template: str) -> list[str]:
    """Placeholder names in template order."""
    return PLACEHOLDER.findall(template)


def to_native_path(template: str) -> str:
    """Rewrite {name} into Starlette's single-segment capture {name:str}."""
    return PLACEHOLDER.sub(r"{\1:str}", template)


def normalize_prefix(prefix: str) -> str:
    """Mount prefixes never end with a slash; "/" mounts at the root ("")."""
    return prefix.rstrip("/")


def strip_prefix(path: str, prefix: str) -> str | None:
    """Remainder of `path` under a normalized `prefix`, or None when outside it.

    Matches on segment boundaries only, so "/ab" is not under "/a".
    """
    if not prefix:
        return path
    if path == prefix:
        return "/"
    if path.startswith(prefix + "/"):
        return path[len(prefix):]
    return None
