"""
IdentifierMint: Short unique identifiers with a persistent exclusion pool.

Prepayment request numbers must never repeat, even across runs, so every
minted identifier is written through to the pool store before it is
handed out.
"""

import json
import logging
import random
import string
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Set

from ..utils.errors import IdentifierPoolError, IdentifierSpaceExhaustedError

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DEFAULT_MAX_ATTEMPTS = 1000


class IdentifierStore(ABC):
    """Durable set of identifiers that have already been used."""

    @abstractmethod
    def __contains__(self, identifier: str) -> bool:
        ...

    @abstractmethod
    def add(self, identifier: str) -> None:
        """Insert an identifier and persist the pool immediately."""

    @abstractmethod
    def reset(self) -> None:
        """Forget every identifier."""

    @abstractmethod
    def __len__(self) -> int:
        ...


class MemoryIdentifierStore(IdentifierStore):
    """In-process store, mainly for tests and dry runs."""

    def __init__(self, identifiers: Optional[Iterable[str]] = None):
        self._identifiers: Set[str] = set(identifiers or [])

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._identifiers

    def __len__(self) -> int:
        return len(self._identifiers)

    def add(self, identifier: str) -> None:
        self._identifiers.add(identifier)

    def reset(self) -> None:
        self._identifiers.clear()


class JsonIdentifierStore(IdentifierStore):
    """
    Pool persisted as a flat JSON list.

    Loaded once on construction and rewritten after every insertion.
    Only one process may use a given file at a time.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._identifiers: List[str] = []
        self._index: Set[str] = set()
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            self._identifiers = []
            self._index = set()
            return

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise IdentifierPoolError(f"Could not read identifier pool {self.path}: {exc}") from exc

        if not isinstance(data, list):
            raise IdentifierPoolError(f"Identifier pool {self.path} must be a JSON list")

        self._identifiers = [str(i) for i in data]
        self._index = set(self._identifiers)
        logger.debug("Loaded %d used identifiers from %s", len(self._identifiers), self.path)

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._identifiers, f, indent=2)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._index

    def __len__(self) -> int:
        return len(self._identifiers)

    def add(self, identifier: str) -> None:
        if identifier in self._index:
            return
        self._identifiers.append(identifier)
        self._index.add(identifier)
        self._flush()

    def reset(self) -> None:
        self._identifiers = []
        self._index = set()
        self._flush()


class IdentifierMint:
    """
    Draws random alphanumeric identifiers not present in the store.

    Draws are retried up to max_attempts times. If every draw collides
    the mint raises instead of handing out a duplicate.
    """

    def __init__(
        self,
        store: IdentifierStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        random_seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.max_attempts = max(1, max_attempts)
        self.rng = rng or random.Random(random_seed)

    def _draw(self, length: int) -> str:
        return "".join(self.rng.choice(ALPHABET) for _ in range(length))

    def mint(self, length: int = 9) -> str:
        """
        Mint a new identifier.

        Args:
            length: Number of characters

        Returns:
            An identifier never seen before by the store

        Raises:
            IdentifierSpaceExhaustedError: if max_attempts draws all collided
        """
        if length < 1:
            raise ValueError("Identifier length must be at least 1")

        for _ in range(self.max_attempts):
            candidate = self._draw(length)
            if candidate not in self.store:
                self.store.add(candidate)
                return candidate

        raise IdentifierSpaceExhaustedError(
            f"No unused identifier of length {length} after {self.max_attempts} attempts"
        )

    def mint_many(self, count: int, length: int = 9) -> List[str]:
        return [self.mint(length) for _ in range(count)]
