"""Asset lexicon: canonical names, recognition patterns and reference prices."""
from __future__ import annotations

import re
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Pattern

DEFAULT_BASE_PRICE = 100.0

# Misspelling tolerance. Transposed letters ("Appel", "Googel") score lower
# than a dropped letter, so anagrams of an alias get the looser threshold.
FUZZY_MIN_TOKEN = 5
FUZZY_CUTOFF = 0.85
FUZZY_ANAGRAM_CUTOFF = 0.75

_WORD = re.compile(r"[a-z]+")


class AssetEntry:
    def __init__(self, name: str, aliases: List[str], base_price: float, category: str):
        self.name = name
        self.aliases = aliases
        self.pattern: Pattern[str] = re.compile(
            r"\b(" + "|".join(re.escape(alias) for alias in aliases) + r")\b", re.IGNORECASE
        )
        self.base_price = base_price
        self.category = category

    def matches(self, message: str) -> bool:
        return bool(self.pattern.search(message))

    @property
    def fuzzy_aliases(self) -> List[str]:
        return [alias for alias in self.aliases if alias.isalpha() and len(alias) >= FUZZY_MIN_TOKEN]


# Order matters: classification takes the first entry whose pattern matches.
ASSET_LEXICON: List[AssetEntry] = [
    AssetEntry("Bitcoin", ["bitcoin", "btc"], 43000, "crypto"),
    AssetEntry("Ethereum", ["ethereum", "eth"], 2200, "crypto"),
    AssetEntry("Apple", ["apple", "aapl"], 182, "stock"),
    AssetEntry("Tesla", ["tesla", "tsla"], 200, "stock"),
    AssetEntry("Microsoft", ["microsoft", "msft"], 378, "stock"),
    AssetEntry("Amazon", ["amazon", "amzn"], 3100, "stock"),
    AssetEntry("Google", ["google", "googl", "alphabet"], 142, "stock"),
    AssetEntry("Gold", ["gold", "xau"], 2040, "commodity"),
    AssetEntry("Silver", ["silver", "xag"], 23, "commodity"),
    AssetEntry("Oil", ["oil", "crude", "wti", "brent"], 75, "commodity"),
    AssetEntry("S&P 500", ["s&p", "spx", "spy"], 4500, "index"),
    AssetEntry("QQQ", ["qqq", "nasdaq", "ndx"], 390, "etf"),
]

_BY_NAME: Dict[str, AssetEntry] = {entry.name: entry for entry in ASSET_LEXICON}


def _is_close(token: str, alias: str) -> bool:
    ratio = SequenceMatcher(None, token, alias).ratio()
    if ratio >= FUZZY_CUTOFF:
        return True
    return ratio >= FUZZY_ANAGRAM_CUTOFF and sorted(token) == sorted(alias)


def fuzzy_find_asset(message: str) -> Optional[AssetEntry]:
    """Lexicon entry with an alias close to a word of the message, in lexicon order."""
    tokens = [token for token in _WORD.findall((message or "").lower()) if len(token) >= FUZZY_MIN_TOKEN]
    if not tokens:
        return None
    for entry in ASSET_LEXICON:
        for alias in entry.fuzzy_aliases:
            if any(_is_close(token, alias) for token in tokens):
                return entry
    return None


def find_asset(message: str) -> Optional[AssetEntry]:
    """Exact alias scan first; the fuzzy pass runs only when nothing matched."""
    for entry in ASSET_LEXICON:
        if entry.matches(message):
            return entry
    return fuzzy_find_asset(message)


def get_asset(name: Optional[str]) -> Optional[AssetEntry]:
    if not name:
        return None
    return _BY_NAME.get(name)


def base_price_for(name: Optional[str]) -> float:
    entry = get_asset(name)
    return entry.base_price if entry else DEFAULT_BASE_PRICE
