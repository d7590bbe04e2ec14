"""
Seeded PRNG - mulberry32 with exact 32-bit wraparound.

One generator is seeded per optimizer run and every random draw of the run
comes from it in a fixed order, so a history plus a seed always replays the
same evolution.
"""

MASK_32 = 0xFFFFFFFF
MULBERRY_INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0


def _imul(a, b):
    """32-bit truncated multiply."""
    return (a * b) & MASK_32


class Mulberry32:
    def __init__(self, seed):
        self.state = int(seed) & MASK_32

    def next_uint32(self):
        self.state = (self.state + MULBERRY_INCREMENT) & MASK_32
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK_32
        return (t ^ (t >> 14)) & MASK_32

    def next_float(self):
        """Uniform float in [0, 1)."""
        return self.next_uint32() / TWO_POW_32

    def randint_below(self, n):
        """Uniform int in [0, n)."""
        if n <= 0:
            raise ValueError(f'randint_below needs n > 0, got {n}')
        return int(self.next_float() * n)

    choice_index = randint_below

    def chance(self, probability):
        """One draw; True with the given probability."""
        return self.next_float() < probability


def derive_seed(history, seed=None):
    """Run seed: the explicit seed if given, else the history length."""
    if seed is not None:
        return int(seed) & MASK_32
    return len(history) & MASK_32
