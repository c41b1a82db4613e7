"""Second-order IIR filter in transposed direct form II."""

from __future__ import annotations

from collections.abc import Sequence


class BiquadFilter:
    """Biquad filter with a small state offset that keeps values away from denormals.

    Feedback coefficients are added, not subtracted, so ``a1`` and ``a2``
    are given with the sign they should have in the recursion.
    """

    def __init__(self, a_coefs: Sequence[float], b_coefs: Sequence[float]) -> None:
        self.s1 = 0.0
        self.s2 = 0.0
        self.b_coefs = (0.0, 0.0, 0.0)
        self.a_coefs = (0.0, 0.0)
        self.update(a_coefs, b_coefs)

    def update(self, a_coefs: Sequence[float], b_coefs: Sequence[float]) -> None:
        """Set new coefficients, normalised by ``a_coefs[0]``; state is kept."""
        a0, a1, a2 = a_coefs
        b0, b1, b2 = b_coefs
        self.b_coefs = (b0 / a0, b1 / a0, b2 / a0)
        self.a_coefs = (a1 / a0, a2 / a0)

    def put(self, value: float) -> float:
        """Feed one sample and return the filtered output."""
        b0, b1, b2 = self.b_coefs
        a1, a2 = self.a_coefs
        y = b0 * value + self.s1 - 0.5
        self.s1 = self.s2 + b1 * value + a1 * y
        self.s2 = b2 * value + a2 * y + 0.5
        return y