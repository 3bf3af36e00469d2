"""
Allow/deny rules for the binding generator
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Pattern, Tuple


@dataclass(frozen=True)
class SymbolFilter:
    """
    Which functions are exposed and which type names must never appear

    Function names match exactly. Type patterns are regular expressions that
    must match the whole type name.
    """

    allow_functions: FrozenSet[str]
    deny_type_patterns: Tuple[Pattern[str], ...] = ()

    @classmethod
    def from_lists(cls, allow: Iterable[str], deny: Iterable[str] = ()) -> "SymbolFilter":
        """
        Build a filter from plain lists

        Raises:
            ValueError: if a deny pattern is not a valid regular expression
        """
        patterns = []
        for pattern in deny:
            try:
                patterns.append(re.compile(pattern))
            except re.error as e:
                raise ValueError(f"Invalid deny pattern '{pattern}': {e}") from e
        return cls(allow_functions=frozenset(allow), deny_type_patterns=tuple(patterns))

    def allows_function(self, name: str) -> bool:
        return name in self.allow_functions

    def denies_type(self, name: str) -> bool:
        return any(p.fullmatch(name) for p in self.deny_type_patterns)
