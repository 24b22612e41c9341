"""Short public identifiers for snippets.

Ids are drawn at random from the 62-symbol alphabet, shortest length first.
A longer length is only used once every id of the current length is taken.
"""

import random
from typing import Collection, Optional, Set

ID_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def encode_id(number: int, length: int, alphabet: str = ID_ALPHABET) -> str:
    """Encode number as a fixed-width base-len(alphabet) string. Raises ValueError if it does not fit."""
    base = len(alphabet)
    if number < 0 or number >= base**length:
        raise ValueError(f"number {number} too large to encode with length {length} in base {base}")
    chars = []
    for _ in range(length):
        number, rem = divmod(number, base)
        chars.append(alphabet[rem])
    return "".join(reversed(chars))


class IdGenerator:
    """Allocates ids not present in a given collection of taken ids.

    Caller must hold exclusive access to the collection for the duration of
    allocate() and the subsequent insert.
    """

    def __init__(self, alphabet: str = ID_ALPHABET, rng: Optional[random.Random] = None) -> None:
        self.alphabet = alphabet
        self._rng = rng or random.SystemRandom()

    def _occupied(self, taken: Collection[str], length: int) -> int:
        """Count taken ids that belong to the key space of this length."""
        alphabet = set(self.alphabet)
        return sum(1 for key in taken if len(key) == length and set(key) <= alphabet)

    def allocate(self, taken: Collection[str]) -> str:
        """Return a random free id of the shortest length that still has one."""
        length = 1
        while True:
            space = len(self.alphabet) ** length
            if self._occupied(taken, length) < space:
                tried: Set[int] = set()
                # Rejection sampling without repeats over the whole space
                while len(tried) < space:
                    n = self._rng.randrange(space)
                    if n in tried:
                        continue
                    tried.add(n)
                    candidate = encode_id(n, length, self.alphabet)
                    if candidate not in taken:
                        return candidate
            length += 1
