"""
Exact pattern matching algorithms for shard search
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Tuple, Type


NOT_FOUND = -1
ALPHABET_SIZE = 256


class MatchAlgorithm(ABC):
    """
    Capability set shared by every exact substring matcher.

    Callers fold case before calling; matchers compare characters as given.
    """

    @abstractmethod
    def find(self, text: str, pattern: str) -> int:
        """
        Find the first occurrence of pattern in text

        Args:
            text: Text to search in
            pattern: Pattern to search for

        Returns:
            Offset of the first occurrence, or NOT_FOUND
        """

    @abstractmethod
    def find_all(self, text: str, pattern: str) -> List[int]:
        """
        Find every occurrence of pattern in text

        Args:
            text: Text to search in
            pattern: Pattern to search for

        Returns:
            Offsets of all occurrences in increasing order
        """

    def contains(self, text: str, pattern: str) -> bool:
        """Check whether pattern occurs in text"""
        return self.find(text, pattern) != NOT_FOUND

    @staticmethod
    def _searchable(text: str, pattern: str) -> bool:
        return bool(text) and bool(pattern) and len(pattern) <= len(text)


class BoyerMooreMatcher(MatchAlgorithm):
    """
    Boyer-Moore matcher using the bad-character and strong good-suffix rules.

    Tables are built per call, so a single instance can be shared by
    concurrent searches.
    """

    def find(self, text: str, pattern: str) -> int:
        for position in self._scan(text, pattern):
            return position
        return NOT_FOUND

    def find_all(self, text: str, pattern: str) -> List[int]:
        return list(self._scan(text, pattern))

    def _scan(self, text: str, pattern: str):
        """Yield match offsets left to right"""
        if not self._searchable(text, pattern):
            return

        m = len(pattern)
        n = len(text)
        bad_char = self.bad_character_table(pattern)
        shift, _ = self.good_suffix_tables(pattern)

        s = 0
        while s <= n - m:
            j = m - 1
            while j >= 0 and pattern[j] == text[s + j]:
                j -= 1

            if j < 0:
                yield s
                # shift[0] is the smallest period of the pattern
                s += shift[0]
            else:
                s += max(shift[j + 1], j - self._last_index(bad_char, text[s + j]))

    @staticmethod
    def bad_character_table(pattern: str) -> Tuple[List[int], Dict[str, int]]:
        """
        Build the bad-character table for a pattern

        Characters inside the 256-symbol alphabet are kept in a flat list;
        wider characters fall back to a dictionary.

        Args:
            pattern: Pattern to preprocess

        Returns:
            Tuple of (table indexed by code point, table for wide characters)
            holding the last index of each character in the pattern
        """
        table = [NOT_FOUND] * ALPHABET_SIZE
        wide: Dict[str, int] = {}

        for index, char in enumerate(pattern):
            code = ord(char)
            if code < ALPHABET_SIZE:
                table[code] = index
            else:
                wide[char] = index

        return table, wide

    @staticmethod
    def _last_index(bad_char: Tuple[List[int], Dict[str, int]], char: str) -> int:
        table, wide = bad_char
        code = ord(char)
        if code < ALPHABET_SIZE:
            return table[code]
        return wide.get(char, NOT_FOUND)

    @staticmethod
    def good_suffix_tables(pattern: str) -> Tuple[List[int], List[int]]:
        """
        Build the good-suffix shift table and its border-position table

        Args:
            pattern: Pattern to preprocess

        Returns:
            Tuple of (shift, border_pos), both of length len(pattern) + 1
        """
        m = len(pattern)
        shift = [0] * (m + 1)
        border_pos = [0] * (m + 1)

        # Borders of each suffix: the matched suffix reappears inside the pattern
        i = m
        j = m + 1
        border_pos[i] = j
        while i > 0:
            while j <= m and pattern[i - 1] != pattern[j - 1]:
                if shift[j] == 0:
                    shift[j] = j - i
                j = border_pos[j]
            i -= 1
            j -= 1
            border_pos[i] = j

        # Only a prefix of the pattern matches part of the suffix
        j = border_pos[0]
        for i in range(m + 1):
            if shift[i] == 0:
                shift[i] = j
            if i == j:
                j = border_pos[j]

        return shift, border_pos


class NaiveMatcher(MatchAlgorithm):
    """
    Brute-force matcher that tries every alignment
    """

    def find(self, text: str, pattern: str) -> int:
        if not self._searchable(text, pattern):
            return NOT_FOUND

        m = len(pattern)
        for i in range(len(text) - m + 1):
            if text[i:i + m] == pattern:
                return i
        return NOT_FOUND

    def find_all(self, text: str, pattern: str) -> List[int]:
        if not self._searchable(text, pattern):
            return []

        m = len(pattern)
        return [i for i in range(len(text) - m + 1) if text[i:i + m] == pattern]


MATCHERS: Dict[str, Type[MatchAlgorithm]] = {
    "boyer-moore": BoyerMooreMatcher,
    "naive": NaiveMatcher,
}


def get_matcher(name: str = "boyer-moore") -> MatchAlgorithm:
    """
    Create a matcher by name

    Args:
        name: Registered algorithm name ('boyer-moore', 'naive')

    Returns:
        New matcher instance
    """
    try:
        return MATCHERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown match algorithm '{name}', expected one of: {', '.join(sorted(MATCHERS))}"
        ) from None
