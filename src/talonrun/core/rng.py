"""Deterministic, replayable RNG built on Mulberry32."""
from __future__ import annotations

from typing import Callable, Iterable, Sequence, TypedDict, TypeVar

T_co = TypeVar("T_co")

_MASK_32 = 0xFFFFFFFF
_GOLDEN_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


class RNGStatePayload(TypedDict):
    seed: int
    calls: int


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK_32


class RNG:
    """
    Mulberry32 generator with a draw counter.

    The generator never persists its internal register. Its position is fully
    described by ``(seed, calls)`` and is restored by replaying ``calls`` draws.
    """

    def __init__(self, seed: int, calls: int = 0) -> None:
        if calls < 0:
            raise ValueError("calls must be non-negative.")
        self._seed = seed
        self._state = seed & _MASK_32
        self._calls = 0
        self.skip(calls)

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def calls(self) -> int:
        """Number of floats drawn since the generator was seeded."""
        return self._calls

    def random(self) -> float:
        """Return the next random floating point number in the range [0.0, 1.0)."""
        self._state = (self._state + _GOLDEN_INCREMENT) & _MASK_32
        t = _imul(self._state ^ (self._state >> 15), 1 | self._state)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK_32) ^ t
        self._calls += 1
        return ((t ^ (t >> 14)) & _MASK_32) / _TWO_POW_32

    def randint(self, a: int, b: int) -> int:
        """Return a random integer N such that a <= N <= b (one draw)."""
        if b < a:
            raise ValueError("randint upper bound must be >= lower bound.")
        return a + int(self.random() * (b - a + 1))

    def roll_d20(self) -> int:
        return self.randint(1, 20)

    def choice(self, seq: Sequence[T_co]) -> T_co:
        """Return a random element from the non-empty sequence (one draw)."""
        if not seq:
            raise ValueError("Cannot choose from an empty sequence.")
        return seq[int(self.random() * len(seq))]

    def skip(self, count: int) -> None:
        """Discard ``count`` draws."""
        for _ in range(count):
            self.random()

    def export_state(self) -> RNGStatePayload:
        return {"seed": self._seed, "calls": self._calls}

    @classmethod
    def from_state(cls, payload: RNGStatePayload) -> "RNG":
        """Recreate a generator and replay it to the stored position."""
        seed = payload.get("seed")
        calls = payload.get("calls")
        if not isinstance(seed, int) or isinstance(seed, bool):
            raise ValueError("RNG seed must be an integer.")
        if not isinstance(calls, int) or isinstance(calls, bool) or calls < 0:
            raise ValueError("RNG calls must be a non-negative integer.")
        return cls(seed, calls)


def create_prng(seed: int) -> Callable[[], float]:
    """Return a zero-argument draw function seeded with ``seed``."""
    return RNG(seed).random


def generate_seed(text: str) -> int:
    """Derive a signed 32-bit seed from arbitrary text (31-multiplier string hash)."""
    encoded = text.encode("utf-16-le", "surrogatepass")
    value = 0
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        value = ((value << 5) - value + code_unit) & _MASK_32
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def derive_run_seed(member_ids: Iterable[str], started_at: int) -> int:
    """Seed for a new run from the squad composition and its start timestamp."""
    return generate_seed("-".join(member_ids) + f"-{started_at}")
