"""Price mathematics for American odds: the single source of truth.

Every function here is **pure**: no I/O and no logging.
Import from this module; never reimplement locally in services.

The two pillars exposed are:

1. **Odds conversion**: American → decimal → implied probability.
2. **Price movement**: how far a price has moved, in cents, between the
   opening quote and the current quote.

Design decisions
----------------
* All functions accept ``int`` or ``float`` American odds because odds feeds
  return integers but derived prices (e.g. averaged books) may be fractional.
* Price movement is measured on the *cents* scale, not as a raw difference.
  Between -110 and +105 the raw difference is 215, but the market only moved
  15 cents: -110 → -100 is 10 cents, +100 → +105 is 5 more.  Mapping positive
  odds to ``odds - 200`` makes the scale continuous across even money, and it
  leaves two negative prices (the common case) with their plain difference.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  Values below this are not representable
#: and indicate a data error upstream.
_MIN_ODDS_MAGNITUDE: Final[int] = 100

#: Standard two-way juice, used for break-even reference rates.
STANDARD_PRICE: Final[int] = -110


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def _check_american(american: int | float) -> None:
    if abs(american) < _MIN_ODDS_MAGNITUDE:
        raise ValueError(
            f"Invalid American odds {american!r}: magnitude must be ≥ 100. "
            "Check upstream odds parsing for data errors."
        )


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Decimal odds are the total payout per unit staked, **including** the
    stake.  Examples::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000

    Raises:
        ValueError: If ``|american| < 100``.
    """
    _check_american(american)
    if american > 0:
        return american / 100.0 + 1.0
    return 100.0 / abs(american) + 1.0


def implied_prob(american: int | float) -> float:
    """Raw implied probability from American odds (vig-inclusive).

    This is also the break-even hit rate for a bet at that price::

        implied_prob(-110) → 0.5238
        implied_prob(+150) → 0.4000
    """
    return 1.0 / american_to_decimal(american)


# ---------------------------------------------------------------------------
# Price movement
# ---------------------------------------------------------------------------


def price_cents(american: int | float) -> float:
    """Map American odds onto a continuous cents scale.

    Negative odds are returned unchanged; positive odds become
    ``odds - 200`` so that ``+100`` and ``-100`` coincide.  Lower values
    always mean more juice on this side.

    Raises:
        ValueError: If ``|american| < 100``.
    """
    _check_american(american)
    if american > 0:
        return float(american) - 200.0
    return float(american)


def juice_movement(opening: int | float, current: int | float) -> float:
    """Cents the price has moved toward *more juice* since opening.

    Positive means the market now charges more for this side (money came in
    on it); negative means the price drifted the other way::

        juice_movement(-110, -125) → 15.0
        juice_movement(+105, -110) → 15.0
        juice_movement(-120, -110) → -10.0
    """
    return price_cents(opening) - price_cents(current)
