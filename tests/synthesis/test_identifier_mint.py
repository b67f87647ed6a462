"""Tests for identifier minting and the persisted identifier pool."""

import json
import string

import pytest

from src.synthesis.identifier_mint import (
    ALPHABET,
    IdentifierMint,
    JsonIdentifierStore,
    MemoryIdentifierStore,
)
from src.utils.errors import IdentifierPoolError, IdentifierSpaceExhaustedError


class _SequenceRng:
    """Returns scripted characters from choice()."""

    def __init__(self, values):
        self.values = list(values)

    def choice(self, seq):
        return self.values.pop(0)


def test_mints_are_distinct_and_avoid_existing_pool():
    existing = {"AAAAAAAAA", "BBBBBBBBB", "abc123XYZ"}
    store = MemoryIdentifierStore(existing)
    mint = IdentifierMint(store, random_seed=11)

    minted = [mint.mint(9) for _ in range(300)]

    assert len(set(minted)) == 300
    assert not set(minted) & existing
    assert all(m in store for m in minted)
    assert len(store) == 303


def test_mint_uses_alphanumeric_alphabet_and_length():
    mint = IdentifierMint(MemoryIdentifierStore(), random_seed=1)
    identifier = mint.mint(12)

    assert len(identifier) == 12
    assert set(identifier) <= set(string.ascii_letters + string.digits)
    assert len(ALPHABET) == 62


def test_mint_retries_on_collision():
    store = MemoryIdentifierStore(["AA"])
    mint = IdentifierMint(store, rng=_SequenceRng(["A", "A", "B", "B"]))

    assert mint.mint(2) == "BB"


def test_mint_fails_loudly_when_attempts_exhausted():
    store = MemoryIdentifierStore(ALPHABET)
    mint = IdentifierMint(store, max_attempts=50, random_seed=0)

    with pytest.raises(IdentifierSpaceExhaustedError):
        mint.mint(1)
    assert len(store) == len(ALPHABET)


def test_mint_rejects_zero_length():
    with pytest.raises(ValueError):
        IdentifierMint(MemoryIdentifierStore()).mint(0)


def test_json_store_writes_through_on_every_mint(tmp_path):
    path = tmp_path / "pool" / "used.json"
    mint = IdentifierMint(JsonIdentifierStore(path), random_seed=5)

    first = mint.mint(8)
    with open(path) as f:
        assert json.load(f) == [first]

    second = mint.mint(8)
    with open(path) as f:
        assert json.load(f) == [first, second]


def test_json_store_survives_restart(tmp_path):
    path = tmp_path / "used.json"
    minted = IdentifierMint(JsonIdentifierStore(path), random_seed=5).mint_many(5, 9)

    reloaded = JsonIdentifierStore(path)

    assert len(reloaded) == 5
    assert all(m in reloaded for m in minted)


def test_json_store_restart_with_same_seed_never_repeats(tmp_path):
    path = tmp_path / "used.json"
    first_run = IdentifierMint(JsonIdentifierStore(path), random_seed=9).mint_many(3, 6)
    second_run = IdentifierMint(JsonIdentifierStore(path), random_seed=9).mint_many(3, 6)

    assert not set(first_run) & set(second_run)


def test_json_store_reset_clears_file(tmp_path):
    path = tmp_path / "used.json"
    store = JsonIdentifierStore(path)
    store.add("abc")

    store.reset()

    assert "abc" not in store
    with open(path) as f:
        assert json.load(f) == []


def test_json_store_rejects_corrupt_file(tmp_path):
    path = tmp_path / "used.json"
    path.write_text("{not json")

    with pytest.raises(IdentifierPoolError):
        JsonIdentifierStore(path)


def test_json_store_rejects_non_list(tmp_path):
    path = tmp_path / "used.json"
    path.write_text(json.dumps({"a": 1}))

    with pytest.raises(IdentifierPoolError):
        JsonIdentifierStore(path)
