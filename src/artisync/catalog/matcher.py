"""Resolve free-text track labels to catalog entries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from artisync.models import MatchCandidate, ResourceRecord
from artisync.utils.text import tokenize

LOGGER = logging.getLogger(__name__)

MIN_CONFIDENT_SCORE = 10

WORD_SCORE = 10
FILENAME_BONUS = 3
PREFIX_SCORE = 5
NUMBER_SCORE = 15
NUMBER_CONFLICT_PENALTY = -20

DEFAULT_ALIASES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "cor anglais": ("english horn",),
        "english horn": ("cor anglais",),
        "double bass": ("contrabass", "basses"),
        "contrabass": ("double bass",),
        "cello": ("violoncello", "celli"),
        "violoncello": ("cello",),
        "bassoon": ("fagott",),
        "fagott": ("bassoon",),
        "french horn": ("horn",),
        "violins": ("violin",),
        "violin": ("violins",),
    }
)


@dataclass(frozen=True, slots=True)
class _Term:
    text: str
    forms: Tuple[Tuple[str, ...], ...]

    @property
    def is_number(self) -> bool:
        return self.text.isdigit()

    @property
    def weight(self) -> int:
        return len(self.forms[0])


def _contains_sequence(words: Sequence[str], phrase: Sequence[str]) -> bool:
    width = len(phrase)
    return any(tuple(words[i : i + width]) == tuple(phrase) for i in range(len(words) - width + 1))


class NameMatcher:
    """Three-tier matcher: exact name, substring, then keyword scoring.

    Instances hold no per-query state, so one matcher can serve concurrent
    callers against a shared catalog snapshot.
    """

    def __init__(
        self,
        aliases: Mapping[str, Sequence[str]] | None = None,
        *,
        threshold: int = MIN_CONFIDENT_SCORE,
    ) -> None:
        source = DEFAULT_ALIASES if aliases is None else aliases
        table: Dict[Tuple[str, ...], Tuple[Tuple[str, ...], ...]] = {}
        for key, values in source.items():
            key_words = tuple(tokenize(key))
            if key_words:
                table[key_words] = tuple(tuple(tokenize(value)) for value in values if tokenize(value))
        self._aliases = MappingProxyType(table)
        self._max_phrase = max((len(key) for key in table), default=1)
        self.threshold = threshold

    def terms(self, query: str) -> List[_Term]:
        """Split ``query`` into scoring terms, joining alias phrases."""
        words = tokenize(query)
        terms: List[_Term] = []
        index = 0
        while index < len(words):
            for width in range(min(self._max_phrase, len(words) - index), 1, -1):
                phrase = tuple(words[index : index + width])
                if phrase in self._aliases:
                    terms.append(_Term(" ".join(phrase), (phrase,) + self._aliases[phrase]))
                    index += width
                    break
            else:
                word = words[index]
                index += 1
                if len(word) == 1 and not word.isdigit():
                    continue
                terms.append(_Term(word, ((word,),) + self._aliases.get((word,), ())))
        return terms

    def score(self, query: str, resource: ResourceRecord) -> MatchCandidate:
        """Keyword score of ``resource`` for ``query``."""
        return self._score_terms(self.terms(query), resource)

    def _score_terms(self, terms: Sequence[_Term], resource: ResourceRecord) -> MatchCandidate:
        words = tokenize(resource.search_text)
        name_words = tokenize(resource.display_name)
        bare_digits = {word for word in words if len(word) == 1 and word.isdigit()}
        total = 0
        matched: List[str] = []

        for term in terms:
            if term.is_number:
                if term.text in words:
                    total += NUMBER_SCORE
                    matched.append(term.text)
                elif len(term.text) == 1 and bare_digits - {term.text}:
                    total += NUMBER_CONFLICT_PENALTY
                continue

            hit = next((form for form in term.forms if _contains_sequence(words, form)), None)
            if hit is not None:
                total += WORD_SCORE * term.weight
                if _contains_sequence(name_words, hit):
                    total += FILENAME_BONUS * term.weight
                matched.append(term.text)
                continue

            prefixes = [form[0] for form in term.forms if len(form) == 1]
            if any(word.startswith(prefix) for prefix in prefixes for word in words):
                total += PREFIX_SCORE
                matched.append(term.text)

        return MatchCandidate(resource=resource, score=total, matched_terms=tuple(matched))

    def rank(
        self, query: str, catalog: Sequence[ResourceRecord], *, limit: int | None = None
    ) -> List[MatchCandidate]:
        """Keyword-score every entry, best first, catalog order breaking ties."""
        if not catalog:
            return []
        terms = self.terms(query)
        candidates = [self._score_terms(terms, resource) for resource in catalog]
        scores = np.array([candidate.score for candidate in candidates])
        order = np.argsort(-scores, kind="stable")
        ranked = [candidates[int(i)] for i in order]
        return ranked if limit is None else ranked[:limit]

    def match_candidate(
        self, query: str, catalog: Sequence[ResourceRecord]
    ) -> MatchCandidate | None:
        normalized = query.casefold().strip()
        if not normalized or not catalog:
            return None

        for resource in catalog:
            if resource.display_name.casefold().strip() == normalized:
                return MatchCandidate(resource, 0, (normalized,), strategy="exact")

        for resource in catalog:
            name = resource.display_name.casefold().strip()
            if name and (name in normalized or normalized in name):
                return MatchCandidate(resource, 0, (name,), strategy="substring")

        terms = self.terms(query)
        candidates = [self._score_terms(terms, resource) for resource in catalog]
        scores = np.array([candidate.score for candidate in candidates])
        best = candidates[int(np.argmax(scores))]
        if best.score < self.threshold:
            LOGGER.debug("No confident match for %r (best %d)", query, best.score)
            return None
        return best

    def match(self, query: str, catalog: Sequence[ResourceRecord]) -> ResourceRecord | None:
        candidate = self.match_candidate(query, catalog)
        return candidate.resource if candidate is not None else None
