from __future__ import annotations

import functools
import logging
import re
from typing import AbstractSet, Iterable, List, Pattern

from reconciler.errors import GlobPatternError
from reconciler.reconcile.types import MatchResult

logger = logging.getLogger("reconciler")


def translate(pattern: str) -> str:
    """Translate a path glob into a regular expression.

    ``*`` and ``?`` stay inside one path segment, ``**`` as a whole segment
    spans any number of segments (including none), ``[...]`` is a character
    class with ``!`` or ``^`` negation and ``\\`` escapes the next character.
    """
    i, n = 0, len(pattern)
    out: List[str] = []
    while i < n:
        c = pattern[i]
        if c == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            segment_start = i == 0 or pattern[i - 1] == "/"
            segment_end = j == n or pattern[j] == "/"
            if j - i >= 2 and segment_start and segment_end:
                if j == n:
                    out.append(".*")
                    i = j
                else:
                    out.append("(?:.*/)?")
                    i = j + 1
            else:
                out.append("[^/]*")
                i = j
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                raise GlobPatternError(
                    f"Unterminated character class in '{pattern}'", pattern=pattern
                )
            body = pattern[i + 1 : j]
            negate = body[:1] in ("!", "^")
            if negate:
                body = body[1:]
            body = body.replace("\\", "\\\\").replace("[", "\\[")
            # a class never matches the path separator
            out.append("(?!/)" + ("[^" if negate else "[") + body + "]")
            i = j + 1
        elif c == "\\":
            if i + 1 >= n:
                raise GlobPatternError(
                    f"Dangling escape at end of '{pattern}'", pattern=pattern
                )
            out.append(re.escape(pattern[i + 1]))
            i += 2
        else:
            out.append(re.escape(c))
            i += 1
    return "(?s:" + "".join(out) + r")\Z"


@functools.lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Pattern[str]:
    if not pattern:
        raise GlobPatternError("Empty path filter", pattern=pattern)
    try:
        return re.compile(translate(pattern))
    except re.error as e:
        raise GlobPatternError(
            f"Invalid path filter '{pattern}': {e}", pattern=pattern
        ) from e


def compile_filters(filters: Iterable[str]) -> List[Pattern[str]]:
    """Compile path filters, logging and dropping each malformed one once."""
    compiled = []
    for pattern in sorted(filters):
        try:
            compiled.append(compile_pattern(pattern))
        except GlobPatternError as e:
            logger.warning("Ignoring path filter: %s", e)
    return compiled


def path_matches(path: str, pattern: str) -> bool:
    """``True`` if ``path`` satisfies ``pattern``; malformed patterns never match."""
    return any(regex.match(path) is not None for regex in compile_filters([pattern]))


def match_path_filters(
    filters: AbstractSet[str], changed: Iterable[str]
) -> MatchResult:
    """Decide whether any changed path satisfies a workflow's path filters.

    A ``!`` filter makes the result depend on filter order, which a set does
    not keep, so its presence leaves the result undetermined.
    """
    if len(filters) == 0:
        return MatchResult.undetermined

    if any(f.startswith("!") for f in filters):
        logger.debug("Negated path filter present, relevance undetermined")
        return MatchResult.undetermined

    regexes = compile_filters(filters)
    for path in changed:
        if any(regex.match(path) is not None for regex in regexes):
            logger.debug("Path %s matches path filters", path)
            return MatchResult.matched

    return MatchResult.not_matched
