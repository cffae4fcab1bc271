import random
from dataclasses import dataclass

INITIAL_RETRY_DELAY = 0.5
MAX_RETRY_DELAY = 60.0

# OS entropy, independent of the module-level seeded RNG.
_entropy = random.SystemRandom()


@dataclass(frozen=True)
class Backoff:
    """Exponential backoff with jitter, in seconds.

    ``base(n) = min(initial * 2**(n-1), maximum)``. The jitter term is a
    random fraction in [0, 0.5) of the base; it is subtracted in full or added
    at half size, so ``delay(n)`` always lies in ``[0.5 * base, 1.25 * base]``.
    """

    initial: float = INITIAL_RETRY_DELAY
    maximum: float = MAX_RETRY_DELAY

    def base(self, attempt: int) -> float:
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        # Cap the exponent too, 2**attempt overflows floats for huge attempts.
        exponent = min(attempt - 1, 64)
        return min(self.initial * (2 ** exponent), self.maximum)

    def delay(self, attempt: int) -> float:
        base = self.base(attempt)
        jitter = _entropy.random() * 0.5 * base
        if _entropy.getrandbits(1):
            return base + jitter / 2
        return base - jitter


DEFAULT_BACKOFF = Backoff()
