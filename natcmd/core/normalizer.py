"""
Text normalizer: canonicalizes raw utterances before resolution.

Steps, in fixed order:
    1. lowercase
    2. strip politeness phrases (whole phrase, repeated until stable)
    3. apply the word-substitution table (whole word, single pass)
    4. collapse whitespace
    5. strip punctuation (replaced by a space so words never merge)

normalize() is total and idempotent. Idempotence depends on the substitution
table being "closed": a replacement must not reintroduce a word that any key
or politeness phrase is made of. Unsafe entries are dropped when the
normalizer is built.
"""

import re
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Set, Tuple

from natcmd.core.logger import get_logger


POLITENESS_PHRASES: Tuple[str, ...] = (
    "would you kindly",
    "could you",
    "would you",
    "can you",
    "will you",
    "may you",
    "please",
    "kindly",
)

STRIP_PUNCTUATION = '.,!?;:"'

# Separator allowed between the words of a multi-word phrase
_SEP = rf"[\s{re.escape(STRIP_PUNCTUATION)}]+"
_PUNCT_RE = re.compile(f"[{re.escape(STRIP_PUNCTUATION)}]")
_WS_RE = re.compile(r"\s+")


class NormalizedText(str):
    """Lowercase, trimmed, politeness-free, substituted, punctuation-free text."""
    __slots__ = ()


def _split_words(phrase: str) -> List[str]:
    return [w for w in re.split(_SEP, phrase.lower()) if w]


def _phrase_pattern(phrase: str) -> str:
    words = _split_words(phrase)
    body = _SEP.join(re.escape(w) for w in words)
    return rf"(?<!\w){body}(?!\w)"


def compile_phrases(phrases: Iterable[str]) -> Optional[Pattern]:
    """One alternation over phrases, longest first so "would you kindly" beats "would you"."""
    ordered = sorted({p.strip().lower() for p in phrases if p and p.strip()}, key=lambda p: (-len(p), p))
    if not ordered:
        return None
    return re.compile("|".join(_phrase_pattern(p) for p in ordered), re.IGNORECASE)


def phrase_key(matched: str) -> str:
    """Canonical key for a phrase match (separators collapsed to one space)."""
    return " ".join(_split_words(matched))


def apply_word_map(text: str, pattern: Optional[Pattern], mapping: Mapping[str, str]) -> str:
    """Replace whole-word keys of mapping in one left-to-right pass."""
    if pattern is None or not text:
        return text
    return pattern.sub(lambda m: mapping.get(phrase_key(m.group(0)), m.group(0)), text)


def sanitize_substitutions(
    table: Mapping[str, str],
    politeness_phrases: Iterable[str] = POLITENESS_PHRASES,
) -> Dict[str, str]:
    """
    Lowercase the table and drop entries that would break idempotence.

    Rejected:
        - empty keys or non-string values
        - empty replacements (a deletion can join neighbours into a new key)
        - replacements containing a word used by any key or politeness phrase
    """
    logger = get_logger()
    cleaned: Dict[str, str] = {}
    for key, value in table.items():
        if not isinstance(key, str) or not isinstance(value, str):
            logger.warning(f"[NORMALIZE] Ignoring non-string substitution {key!r} -> {value!r}")
            continue
        k = phrase_key(key)
        v = " ".join(value.lower().split())
        if not k:
            continue
        if not v:
            logger.warning(f"[NORMALIZE] Ignoring empty substitution for '{k}'")
            continue
        cleaned[k] = v

    reserved: Set[str] = set()
    for k in cleaned:
        reserved.update(_split_words(k))
    for phrase in politeness_phrases:
        reserved.update(_split_words(phrase))

    safe: Dict[str, str] = {}
    for k, v in cleaned.items():
        clash = reserved.intersection(_split_words(v))
        if clash:
            logger.warning(
                f"[NORMALIZE] Ignoring substitution '{k}' -> '{v}': "
                f"replacement reuses {sorted(clash)}"
            )
            continue
        safe[k] = v
    return safe


class TextNormalizer:
    """Normalizer bound to one politeness list and one substitution table."""

    def __init__(
        self,
        substitutions: Optional[Mapping[str, str]] = None,
        politeness_phrases: Iterable[str] = POLITENESS_PHRASES,
    ):
        self.politeness_phrases = tuple(politeness_phrases)
        self.substitutions = sanitize_substitutions(substitutions or {}, self.politeness_phrases)
        self._politeness_re = compile_phrases(self.politeness_phrases)
        self._substitution_re = compile_phrases(self.substitutions.keys())

    def _strip_politeness(self, text: str) -> str:
        if self._politeness_re is None:
            return text
        # Removing one phrase can join the halves of another ("could please you")
        while True:
            stripped = self._politeness_re.sub(" ", text)
            if stripped == text:
                return text
            text = stripped

    def normalize(self, raw: Optional[str]) -> NormalizedText:
        if not raw:
            return NormalizedText("")
        text = str(raw).lower()
        text = self._strip_politeness(text)
        text = apply_word_map(text, self._substitution_re, self.substitutions)
        text = _WS_RE.sub(" ", text).strip()
        text = _PUNCT_RE.sub(" ", text)
        text = _WS_RE.sub(" ", text).strip()
        return NormalizedText(text)

    __call__ = normalize


_default_normalizer: Optional[TextNormalizer] = None


def normalize(raw: Optional[str]) -> NormalizedText:
    """Normalize with the built-in substitution table."""
    global _default_normalizer
    if _default_normalizer is None:
        from natcmd.core.command_data import DEFAULT_SUBSTITUTIONS
        _default_normalizer = TextNormalizer(DEFAULT_SUBSTITUTIONS)
    return _default_normalizer.normalize(raw)
