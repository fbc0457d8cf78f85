import random
from typing import Optional, Sequence

from matatena.models import DICE_FACES


def roll_weighted_die(weights: Sequence[float], rng: Optional[random.Random] = None) -> int:
    """Pick a die face with probability proportional to its weight.

    ``weights[i]`` is the weight of face ``i + 1``. Negative entries count as
    zero. A weighting that sums to zero, or that does not cover exactly six
    faces, falls back to a fair die.
    """
    rng = rng or random
    try:
        cleaned = [max(0.0, float(w)) for w in weights]
    except (TypeError, ValueError):
        cleaned = []
    total = sum(cleaned)
    if len(cleaned) != len(DICE_FACES) or total <= 0:
        return rng.choice(DICE_FACES)

    sample = rng.random()
    cumulative = 0.0
    fallback = DICE_FACES[-1]
    for face, weight in zip(DICE_FACES, cleaned):
        if weight <= 0:
            continue
        fallback = face
        cumulative += weight / total
        if cumulative >= sample:
            return face
    # Rounding can leave the final cumulative value just below the sample
    return fallback
