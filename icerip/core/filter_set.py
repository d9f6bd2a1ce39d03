"""
The user's list of match phrases.
"""


class FilterSet:
    """
    An ordered list of phrases matched case-insensitively against track metadata.

    Phrases come from free-form text, one per line. Blank lines are dropped and
    surrounding whitespace is trimmed; duplicates are kept as entered.
    """

    def __init__(self, raw_text: str = ""):
        self._phrases: tuple[str, ...] = ()
        self.rebuild(raw_text)

    @property
    def phrases(self) -> tuple[str, ...]:
        return self._phrases

    def rebuild(self, raw_text: str | None) -> None:
        """Replaces all phrases with the non-blank lines of `raw_text`."""
        lines = (raw_text or "").splitlines()
        self._phrases = tuple(line.strip() for line in lines if line.strip())

    def matches(self, text: str | None) -> bool:
        """Returns True if any phrase occurs in `text`, ignoring case."""
        if not text:
            return False
        haystack = text.casefold()
        return any(phrase.casefold() in haystack for phrase in self._phrases)

    def is_empty(self) -> bool:
        return not self._phrases

    def __len__(self) -> int:
        return len(self._phrases)

    def __repr__(self) -> str:
        return f"FilterSet({list(self._phrases)!r})"
