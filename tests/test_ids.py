"""Tests for id allocation."""

import random

import pytest

from snipbin.snippets.ids import ID_ALPHABET, IdGenerator, encode_id


def test_alphabet_has_62_symbols() -> None:
    """Lowercase, uppercase and digits, no duplicates."""
    assert len(ID_ALPHABET) == 62
    assert len(set(ID_ALPHABET)) == 62


def test_encode_id_fixed_width() -> None:
    """Numbers encode big-endian and padded to the requested length."""
    assert encode_id(0, 1) == "a"
    assert encode_id(61, 1) == "9"
    assert encode_id(0, 3) == "aaa"
    assert encode_id(62, 2) == "ba"


def test_encode_id_rejects_overflow() -> None:
    """A number outside the key space of the length raises ValueError."""
    with pytest.raises(ValueError, match="too large"):
        encode_id(62, 1)


def test_allocate_prefers_shortest_length() -> None:
    """With free one-character ids left, a one-character id is returned."""
    gen = IdGenerator(rng=random.Random(1))
    taken = set(ID_ALPHABET[:61])
    assert gen.allocate(taken) == ID_ALPHABET[61]


def test_allocate_grows_when_length_full() -> None:
    """All one-character ids taken gives a two-character id."""
    gen = IdGenerator(rng=random.Random(2))
    got = gen.allocate(set(ID_ALPHABET))
    assert len(got) == 2
    assert set(got) <= set(ID_ALPHABET)


def test_allocate_ignores_foreign_keys_when_counting() -> None:
    """Keys outside the alphabet do not make a length look full."""
    gen = IdGenerator(alphabet="ab", rng=random.Random(3))
    assert gen.allocate({"a", "-"}) == "b"


def test_allocate_small_alphabet_fills_in_order_of_length() -> None:
    """With a two-symbol alphabet ids fill 2 of length 1, then 4 of length 2."""
    gen = IdGenerator(alphabet="ab", rng=random.Random(4))
    taken = set()
    for _ in range(6):
        taken.add(gen.allocate(taken))
    assert taken == {"a", "b", "aa", "ab", "ba", "bb"}
    assert len(gen.allocate(taken)) == 3


def test_allocate_is_not_sequential() -> None:
    """Different random sources give different first ids (no counter)."""
    firsts = {IdGenerator(rng=random.Random(seed)).allocate(set()) for seed in range(20)}
    assert len(firsts) > 1
