"""Maps commits to the canonical names of their contributors.

Credit is taken from three places:

* the author string, which may list several people
  (``"Jane Doe and John Roe"``, ``"Jane Doe & John Roe"``, ...),
* the commit message: ``Co-authored-by:`` trailers and a trailing
  bracketed credit such as ``[Jane Doe, John Roe]``,
* the commit detail (``git show``), only when the two above yield nobody.
  Added CHANGELOG lines there often carry the credit of old imported
  commits whose author is a committer account (``+* Fixed foo. [Jane Doe]``).

Every candidate is then canonicalized through the naming rules and dropped
if it is denylisted or does not look like a name.
"""

import json
import logging
import re
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Optional

from pydantic import ValidationError

from contribsync.errors import ConfigurationError
from contribsync.models.commit import Commit
from contribsync.models.naming_rules import NamingRules

logger = logging.getLogger(__name__)

AUTHOR_SEPARATORS_RE = re.compile(r"\s*(?:,|\band\b|&|\+|/)\s*")
EMAIL_RE = re.compile(r"<[^>]*>")
CO_AUTHOR_RE = re.compile(r"^\s*co-authored-by:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
TRAILING_CREDIT_RE = re.compile(r"\[([^\[\]]+)\]\s*\Z")
DIFF_HEADER_RE = re.compile(r"^diff --git a/\S+ b/(\S+)$", re.MULTILINE)
ADDED_CREDIT_RE = re.compile(r"^\+(?!\+\+ ).*\[([^\[\]]+)\]\s*$", re.MULTILINE)
SHA_LIKE_RE = re.compile(r"^[0-9a-f]{7,40}$")

# Bracketed tags that are not credits
NON_NAME_CREDITS = {"ci skip", "skip ci", "wip", "docs", "breaking"}


def load_naming_rules(path: Optional[Path]) -> NamingRules:
    """Read the naming rules JSON file. No file means no rules."""
    if path is None or not Path(path).exists():
        return NamingRules()
    try:
        return NamingRules(**json.loads(Path(path).read_text()))
    except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid naming rules in {path}: {e}") from e


def split_names(credit: str) -> List[str]:
    """Split a credit string that may mention several people."""
    credit = EMAIL_RE.sub("", credit)
    return [name.strip() for name in AUTHOR_SEPARATORS_RE.split(credit) if name.strip()]


def changelog_sections(detail: str) -> List[str]:
    """Return the diff sections of files whose name starts with CHANGELOG."""
    headers = list(DIFF_HEADER_RE.finditer(detail))
    sections = []
    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(detail)
        if Path(header.group(1)).name.upper().startswith("CHANGELOG"):
            sections.append(detail[header.end() : end])
    return sections


def looks_like_a_name(name: str) -> bool:
    if not re.search(r"[^\W\d_]", name):
        return False
    if "@" in name or SHA_LIKE_RE.match(name):
        return False
    if name.lower() in NON_NAME_CREDITS:
        return False
    # Tracker tags and code, like "#1234 state:resolved" or ":id"
    if re.search(r"[#:=()\[\]{}]", name):
        return False
    if any(token.isdigit() for token in name.split()):
        return False
    return True


class NameResolver:
    """Resolves the set of canonical contributor names of a commit.

    The result depends only on the commit and the rules snapshot, so
    resolving the same commit twice gives the same names.
    """

    def __init__(
        self,
        rules: NamingRules,
        detail: Optional[Callable[[str], str]] = None,
    ):
        self.rules = rules
        self.detail = detail

    def resolve(self, commit: Commit) -> FrozenSet[str]:
        candidates = split_names(commit.author)
        candidates.extend(self._message_credits(commit.message or ""))

        names = self._canonicalize(candidates)
        if not names and self.detail is not None:
            logger.debug("no names for %s, looking into its detail", commit.short_sha1)
            names = self._canonicalize(self._detail_credits(commit.sha1))
        return names

    def _message_credits(self, message: str) -> List[str]:
        credits = []
        for trailer in CO_AUTHOR_RE.findall(message):
            credits.extend(split_names(trailer))
        match = TRAILING_CREDIT_RE.search(message.strip())
        if match:
            credits.extend(split_names(match.group(1)))
        return credits

    def _detail_credits(self, sha1: str) -> List[str]:
        credits = []
        for hunks in changelog_sections(self.detail(sha1)):
            for credit in ADDED_CREDIT_RE.findall(hunks):
                credits.extend(split_names(credit))
        return credits

    def _canonicalize(self, candidates: Iterable[str]) -> FrozenSet[str]:
        names = set()
        for candidate in candidates:
            if self.rules.denies(candidate):
                continue
            name = self.rules.canonical(candidate)
            if self.rules.denies(name) or not looks_like_a_name(name):
                continue
            names.add(name)
        return frozenset(names)
