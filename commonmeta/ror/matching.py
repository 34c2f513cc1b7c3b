"""
Affiliation matching: free text to ROR organizations.

Architecture Context
--------------------
Matching runs in memory over a set of ROR records, without network access:

    matcher = AffiliationMatcher(organizations)
    results = matcher.match("Leibniz Universität Hannover")
    results[0].chosen          # True
    results[0].organization.id # "https://ror.org/0304hq317"

The pipeline mirrors the ROR affiliation API:

1. Countries mentioned in the string are extracted; when any are found,
   candidates located elsewhere score 0.
2. An EXACT check compares the whole string with every organization name.
3. Otherwise the string is split on ``,;:`` into nodes (the whole string
   first). Each node runs the strategies PHRASE, COMMON TERMS, FUZZY,
   HEURISTICS and ACRONYM until one yields a score >= MIN_CHOSEN_SCORE.
4. Candidates are grouped by organization; the best of each group is
   returned, at most 100, sorted by score.

Design Decisions
----------------
1. **Inverted index**: candidate retrieval uses a token index over the
   normalized names, so the full registry (>100k records) stays usable.
2. **Similarity**: token-sorted Levenshtein ratio, or the partial ratio
   when a multi-word organization name occurs inside a longer string.
3. **One chosen organization**: when nodes choose different
   organizations, none of them is flagged as chosen.
"""

import math
import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from commonmeta.core.logging import get_logger
from commonmeta.ror.model import ROR
from commonmeta.vocabularies.countries import (
    country_aliases,
    is_city,
    is_country,
    iso3_codes,
    to_region,
)

logger = get_logger(__name__)

MIN_CHOSEN_SCORE = 0.9
MIN_MATCHING_SCORE = 0.5
COUNTRY_SCORE = 0.9
MAX_RESULTS = 100

# tokens found in more than this share of all organizations are common terms
COMMON_TERMS_CUTOFF = 0.1

MATCHING_TYPE_PHRASE = "PHRASE"
MATCHING_TYPE_COMMON = "COMMON TERMS"
MATCHING_TYPE_FUZZY = "FUZZY"
MATCHING_TYPE_HEURISTICS = "HEURISTICS"
MATCHING_TYPE_ACRONYM = "ACRONYM"
MATCHING_TYPE_EXACT = "EXACT"

NODE_MATCHING_TYPES = (
    MATCHING_TYPE_PHRASE,
    MATCHING_TYPE_COMMON,
    MATCHING_TYPE_FUZZY,
    MATCHING_TYPE_HEURISTICS,
    MATCHING_TYPE_ACRONYM,
)

MATCHING_TYPE_RANK = {
    MATCHING_TYPE_EXACT: 5,
    MATCHING_TYPE_PHRASE: 4,
    MATCHING_TYPE_COMMON: 3,
    MATCHING_TYPE_FUZZY: 2,
    MATCHING_TYPE_HEURISTICS: 1,
    MATCHING_TYPE_ACRONYM: 0,
}

SPECIAL_CHARS_RE = re.compile(r"[\+\-\=\|\>\<\!\(\)\\\{\}\[\]\^\"\~\*\?\:\/\.\,\;]")
POSTAL_CODE_RE = re.compile(r"\d{5}")
WHITESPACE_RE = re.compile(r"\s+")
SPLIT_RE = re.compile(r"[,;:]")
ACRONYM_RE = re.compile(r"[A-Z]{3,}")
UNIVERSITY_OF_RE = re.compile(r"University of (\S+)")
X_UNIVERSITY_RE = re.compile(r"(\S+) University")
DO_NOT_MATCH = "university hospital"

# abbreviation -> expansion, applied before comparing names
ABBREVIATIONS = (
    (re.compile(r"(?<![a-z])univ$"), "university"),
    (re.compile(r"(?<![a-z])univ[\. ]"), "university "),
    (re.compile(r"(?<![a-z])inst[\. ]"), "institute "),
    (re.compile(r"(?<![a-z])lab[\. ]"), "laboratory "),
    (re.compile(r"(?<![a-z])sci[\. ]"), "science "),
    (re.compile(r"(?<![a-z])res[\. ]"), "research "),
    (re.compile(r"(?<![a-z])natl[\. ]"), "national "),
    (re.compile(r"(?<![a-z])dept[\. ]"), "department "),
    (re.compile(r"(?<![a-z])tech[\. ]"), "technical "),
)
STOP_WORDS_RE = re.compile(r"(?<![a-z])(?:the|of|and|at|for|in|zu|de|der|la|le)(?![a-z])")


# ============================================================================
# Similarity
# ============================================================================


def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance with unit insert, delete and substitute costs."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, 1):
        current = [i]
        for j, c2 in enumerate(s2, 1):
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (c1 != c2))
            )
        previous = current
    return previous[-1]


def ratio(s1: str, s2: str) -> float:
    """1 - distance / longer length, in [0, 1]."""
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    return 1.0 - levenshtein_distance(s1, s2) / max(len(s1), len(s2))


def token_sort_ratio(s1: str, s2: str) -> float:
    return ratio(" ".join(sorted(s1.split())), " ".join(sorted(s2.split())))


def partial_ratio(short: str, long: str) -> float:
    """Best ratio of `short` against any window of `long` of the same length."""
    if len(short) > len(long):
        short, long = long, short
    if not short:
        return 0.0
    if short in long:
        return 1.0
    width = len(short)
    return max(ratio(short, long[i : i + width]) for i in range(len(long) - width + 1))


def strip_accents(s: str) -> str:
    normalized = unicodedata.normalize("NFKD", s)
    return "".join(c for c in normalized if unicodedata.category(c) != "Mn")


def normalize(s: str) -> str:
    """Lowercase, strip accents, expand abbreviations, drop stop words and punctuation."""
    s = WHITESPACE_RE.sub(" ", strip_accents(s).strip().lower())
    for pattern, replacement in ABBREVIATIONS:
        s = pattern.sub(replacement, s)
    s = s.replace("&", " and ")
    s = STOP_WORDS_RE.sub(" ", s)
    s = re.sub(r"[^\w\s]", " ", s)
    return WHITESPACE_RE.sub(" ", s).strip()


def get_similarity(aff_sub: str, cand_name: str) -> float:
    """Similarity of an affiliation substring and an organization name."""
    aff_sub = normalize(aff_sub)
    cand_name = normalize(cand_name)
    if not aff_sub or not cand_name:
        return 0.0
    if aff_sub == cand_name:
        return 1.0
    score = token_sort_ratio(aff_sub, cand_name)
    if len(cand_name) < len(aff_sub) and len(cand_name.split()) > 1:
        score = max(score, partial_ratio(cand_name, aff_sub))
    return score


# ============================================================================
# Country extraction
# ============================================================================


def _max_token_score(name: str, tokens: str) -> float:
    return max((ratio(name, token) for token in tokens.split() if token), default=0.0)


def get_country_codes(s: str) -> List[str]:
    """ISO-2 codes of the countries mentioned in s, sorted."""
    s = s.strip()
    lower = WHITESPACE_RE.sub(" ", s.lower())
    lower_alpha = WHITESPACE_RE.sub(" ", re.sub(r"[^a-z]", " ", s.lower()))
    alpha = WHITESPACE_RE.sub(" ", re.sub(r"[^a-zA-Z]", " ", s))

    words = set(lower_alpha.split())
    codes = set()
    for code, names in country_aliases().items():
        for name in names:
            if re.search(r"[^a-z]", name):
                if name not in lower and not words.intersection(re.findall(r"[a-z]{3,}", name)):
                    continue
                score = partial_ratio(name, lower)
            elif len(name) == 2:
                score = _max_token_score(name.upper(), alpha)
            else:
                score = _max_token_score(name, lower_alpha)
            if score >= COUNTRY_SCORE:
                codes.add(code.upper())
                break
    return sorted(codes)


def get_countries(s: str) -> List[str]:
    """Regions of the countries mentioned in s."""
    return sorted({to_region(code) for code in get_country_codes(s)})


# ============================================================================
# Results
# ============================================================================


@dataclass(eq=False)
class MatchedOrganization:
    """A scored candidate organization for an affiliation substring."""

    organization: ROR
    substring: str = ""
    matching_type: str = ""
    score: float = 0.0
    chosen: bool = False

    @property
    def rank(self) -> int:
        return MATCHING_TYPE_RANK.get(self.matching_type, -1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "substring": self.substring,
            "score": round(self.score, 2),
            "matching_type": self.matching_type,
            "chosen": self.chosen,
            "organization": self.organization.to_dict(),
        }


def clean_search_string(search_string: str) -> str:
    """Remove special characters and 5-digit postal codes."""
    cleaned = WHITESPACE_RE.sub(" ", SPECIAL_CHARS_RE.sub(" ", search_string))
    cleaned = POSTAL_CODE_RE.sub("", cleaned)
    return WHITESPACE_RE.sub(" ", cleaned).strip()


def check_do_not_match(search_string: str) -> bool:
    """True for strings that alone must never match: country and city names."""
    value = search_string.strip()
    if not value:
        return True
    return value.lower() == DO_NOT_MATCH or is_country(value) or is_city(value)


def acronym_substrings(text: str) -> List[str]:
    """Runs of 3+ capitals that are not ISO-3 country codes."""
    iso3 = iso3_codes()
    return [s for s in ACRONYM_RE.findall(text) if s.upper() not in iso3]


def heuristic_substrings(text: str) -> List[str]:
    """"University of X" <-> "X University" variants of text."""
    substrings = []
    match = UNIVERSITY_OF_RE.search(text)
    if match:
        substrings.extend([match.group(0), f"{match.group(1)} University"])
    match = X_UNIVERSITY_RE.search(text)
    if match:
        substrings.extend([match.group(0), f"University of {match.group(1)}"])
    return substrings


def get_output(
    chosen: List[MatchedOrganization],
    all_matched: List[MatchedOrganization],
    active_only: bool = True,
) -> List[MatchedOrganization]:
    """Best candidate per organization, sorted by score, at most MAX_RESULTS.

    When more than one organization was chosen, none is flagged as chosen.
    """
    if len({m.organization.id for m in chosen}) > 1:
        chosen = []
    chosen_ids = {id(m) for m in chosen}

    groups: Dict[str, List[MatchedOrganization]] = defaultdict(list)
    for m in all_matched:
        if m.score < MIN_MATCHING_SCORE and id(m) not in chosen_ids:
            continue
        if active_only and m.organization.status != "active":
            continue
        groups[m.organization.id].append(m)

    output = []
    for org_id in sorted(groups):
        for m in groups[org_id]:
            m.chosen = id(m) in chosen_ids
        best = max(
            groups[org_id],
            key=lambda m: (m.chosen, m.rank, m.score, -len(m.substring)),
        )
        output.append(best)

    output.sort(key=lambda m: m.score, reverse=True)
    return output[:MAX_RESULTS]


# ============================================================================
# Matcher
# ============================================================================


def _fuzziness(token: str) -> int:
    if len(token) <= 2:
        return 0
    if len(token) <= 5:
        return 1
    return 2


class AffiliationMatcher:
    """Matches affiliation strings against a fixed set of organizations."""

    def __init__(self, organizations: Iterable[ROR]) -> None:
        self.organizations: List[ROR] = list(organizations)
        self._names: List[List[str]] = []
        self._tokens: Dict[str, Set[int]] = defaultdict(set)
        self._acronyms: Dict[str, Set[int]] = defaultdict(set)
        self._exact: Dict[str, Set[int]] = defaultdict(set)
        for index, org in enumerate(self.organizations):
            names = [normalize(name) for name in org.matching_names()]
            self._names.append(names)
            for name in names:
                self._exact[name].add(index)
                for token in name.split():
                    self._tokens[token].add(index)
            for acronym in org.acronyms:
                self._acronyms[acronym.upper()].add(index)
        logger.debug(
            "Built affiliation index",
            organizations=len(self.organizations),
            tokens=len(self._tokens),
        )

    # -- scoring ------------------------------------------------------------

    def get_score(self, index: int, aff_sub: str, countries: List[str]) -> float:
        org = self.organizations[index]
        if countries and to_region(org.country_code) not in countries:
            return 0.0
        return max((get_similarity(aff_sub, name) for name in org.matching_names()), default=0.0)

    def _in_countries(self, index: int, countries: List[str]) -> bool:
        return not countries or to_region(self.organizations[index].country_code) in countries

    # -- candidate retrieval -------------------------------------------------

    def _phrase_candidates(self, query: str) -> Set[int]:
        if not query:
            return set()
        tokens = query.split()
        candidates = set.intersection(*(self._tokens.get(t, set()) for t in tokens))
        padded = f" {query} "
        return {i for i in candidates if any(padded in f" {name} " for name in self._names[i])}

    def _common_terms_candidates(self, query: str) -> Set[int]:
        tokens = [t for t in query.split() if t in self._tokens]
        if not tokens:
            return set()
        cutoff = max(1, math.floor(COMMON_TERMS_CUTOFF * len(self.organizations)))
        rare = [t for t in tokens if len(self._tokens[t]) <= cutoff]
        if rare:
            return set().union(*(self._tokens[t] for t in rare))
        return set.intersection(*(self._tokens[t] for t in tokens))

    def _fuzzy_candidates(self, query: str) -> Set[int]:
        candidates: Set[int] = set()
        for token in query.split():
            distance = _fuzziness(token)
            if distance == 0:
                continue
            for indexed, orgs in self._tokens.items():
                if indexed[0] != token[0] or abs(len(indexed) - len(token)) > distance:
                    continue
                if levenshtein_distance(token, indexed) <= distance:
                    candidates |= orgs
        return candidates

    # -- strategies ----------------------------------------------------------

    def match_by_query(
        self,
        substring: str,
        matching_type: str,
        candidates: Set[int],
        countries: List[str],
    ) -> List[MatchedOrganization]:
        return [
            MatchedOrganization(
                organization=self.organizations[i],
                substring=substring,
                matching_type=matching_type,
                score=self.get_score(i, substring, countries),
            )
            for i in sorted(candidates)
        ]

    def match_acronym(self, substring: str, countries: List[str]) -> List[MatchedOrganization]:
        holders = [i for i in sorted(self._acronyms.get(substring, ())) if self._in_countries(i, countries)]
        # an acronym alone identifies an organization only when it is unambiguous
        score = 1.0 if len(holders) == 1 else MIN_MATCHING_SCORE
        return [
            MatchedOrganization(
                organization=self.organizations[i],
                substring=substring,
                matching_type=MATCHING_TYPE_ACRONYM,
                score=score,
            )
            for i in holders
        ]

    def match_by_type(
        self, text: str, matching_type: str, countries: List[str]
    ) -> Tuple[Optional[MatchedOrganization], List[MatchedOrganization]]:
        """Run one strategy; return the best candidate and all candidates."""
        matched: List[MatchedOrganization] = []
        if matching_type == MATCHING_TYPE_ACRONYM:
            for substring in acronym_substrings(text):
                matched.extend(self.match_acronym(substring, countries))
        elif matching_type == MATCHING_TYPE_HEURISTICS:
            for substring in heuristic_substrings(text):
                candidates = self._phrase_candidates(normalize(substring))
                matched.extend(self.match_by_query(substring, matching_type, candidates, countries))
        else:
            query = normalize(text)
            if matching_type == MATCHING_TYPE_PHRASE:
                candidates = self._phrase_candidates(query)
            elif matching_type == MATCHING_TYPE_COMMON:
                candidates = self._common_terms_candidates(query)
            else:
                candidates = self._fuzzy_candidates(query)
            matched = self.match_by_query(text, matching_type, candidates, countries)

        chosen = max(matched, key=lambda m: m.score, default=None)
        return chosen, [m for m in matched if m.score >= MIN_MATCHING_SCORE]

    def check_exact_match(
        self, affiliation: str, countries: List[str]
    ) -> Tuple[Optional[MatchedOrganization], List[MatchedOrganization]]:
        """Whole-string comparison with every organization name."""
        indexes = [i for i in sorted(self._exact.get(normalize(affiliation), ())) if self._in_countries(i, countries)]
        matched = [
            MatchedOrganization(
                organization=self.organizations[i],
                substring=affiliation,
                matching_type=MATCHING_TYPE_EXACT,
                score=1.0,
            )
            for i in indexes
        ]
        chosen = matched[0] if len(matched) == 1 else None
        return chosen, matched

    def match_node(
        self, text: str, countries: List[str]
    ) -> Tuple[Optional[MatchedOrganization], List[MatchedOrganization]]:
        """Run the strategies in order until one reaches MIN_CHOSEN_SCORE."""
        matched: Optional[MatchedOrganization] = None
        all_matched: List[MatchedOrganization] = []
        for matching_type in NODE_MATCHING_TYPES:
            chosen, candidates = self.match_by_type(text, matching_type, countries)
            all_matched.extend(candidates)
            if chosen is not None and (matched is None or chosen.score > matched.score):
                matched = chosen
            if matched is not None and matched.score >= MIN_CHOSEN_SCORE:
                break
        if matched is not None and matched.score < MIN_CHOSEN_SCORE:
            matched = None
        return matched, all_matched

    def nodes(self, affiliation: str) -> List[str]:
        """The cleaned whole string followed by its ,;: separated parts."""
        affiliation = affiliation.replace("&amp;", "&")
        nodes = [clean_search_string(affiliation)]
        for part in SPLIT_RE.split(affiliation):
            cleaned = clean_search_string(part.strip())
            if cleaned and not check_do_not_match(cleaned) and cleaned not in nodes:
                nodes.append(cleaned)
        return [n for n in nodes if n and not check_do_not_match(n)]

    def match(self, affiliation: str, active_only: bool = True) -> List[MatchedOrganization]:
        """Scored candidate organizations for an affiliation string.

        An empty list is a valid result.
        """
        if not affiliation or not affiliation.strip() or not self.organizations:
            return []
        countries = get_countries(affiliation)
        exact_chosen, exact_matched = self.check_exact_match(affiliation, countries)
        if exact_chosen is not None:
            return get_output([exact_chosen], exact_matched, active_only)

        chosen: List[MatchedOrganization] = []
        all_matched: List[MatchedOrganization] = list(exact_matched)
        for node in self.nodes(affiliation):
            matched, candidates = self.match_node(node, countries)
            all_matched.extend(candidates)
            if matched is not None and matched.organization.id not in {
                m.organization.id for m in chosen
            }:
                chosen.append(matched)
        return get_output(chosen, all_matched, active_only)
