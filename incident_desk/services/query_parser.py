"""Boolean free-text query parsing.

The grammar is flat and two-level: ``OR`` binds loosest, ``AND`` binds
tighter, and there is no parenthesised grouping. Parentheses are ordinary
term characters, so ``network AND (server)`` searches for the literal
substring ``(server)``.

    printer                      -> [[printer]]
    network AND server           -> [[network, server]]
    email OR printer AND urgent  -> [[email], [printer, urgent]]
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_OR_SPLIT = re.compile(r"\s+OR\s+", re.IGNORECASE)
_AND_SPLIT = re.compile(r"\s+AND\s+", re.IGNORECASE)
_QUOTES = "\"'"
IDENTIFIER_PREFIX = "#"


@dataclass(frozen=True)
class SearchTerm:
    text: str
    is_identifier: bool = False

    @property
    def identifier(self) -> str | None:
        """The ticket-number fragment of a ``#`` term, without the prefix."""
        if not self.is_identifier:
            return None
        return self.text[len(IDENTIFIER_PREFIX):]


@dataclass(frozen=True)
class ParsedQuery:
    """OR-ed sequence of AND-groups. No groups means no text constraint."""

    groups: tuple[tuple[SearchTerm, ...], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.groups

    @property
    def terms(self) -> list[SearchTerm]:
        return [term for group in self.groups for term in group]


def make_term(raw: str) -> SearchTerm | None:
    """Normalize a raw term; returns None when nothing is left to match."""
    text = raw.strip().strip(_QUOTES).strip()
    if not text:
        return None
    is_identifier = text.startswith(IDENTIFIER_PREFIX) and len(text) > len(IDENTIFIER_PREFIX)
    return SearchTerm(text=text, is_identifier=is_identifier)


def _split_groups(text: str) -> tuple[tuple[SearchTerm, ...], ...]:
    groups = []
    for branch in _OR_SPLIT.split(text):
        if not branch.strip():
            continue
        terms = tuple(
            term for term in (make_term(part) for part in _AND_SPLIT.split(branch)) if term is not None
        )
        if terms:
            groups.append(terms)
    return tuple(groups)


def parse_query(text: str | None) -> ParsedQuery:
    """Parse free text into OR-of-AND groups. Never raises."""
    if text is None or not text.strip():
        return ParsedQuery()

    try:
        return ParsedQuery(groups=_split_groups(text))
    except Exception:
        logger.warning("Falling back to literal search for query %r", text, exc_info=True)
        term = make_term(text)
        return ParsedQuery(groups=((term,),)) if term is not None else ParsedQuery()
