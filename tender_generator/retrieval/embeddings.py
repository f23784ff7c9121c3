import logging
from typing import List, Sequence

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 768


def fit_dimension(vector: Sequence[float], dimension: int = DEFAULT_DIMENSION) -> List[float]:
    """Truncates or zero-pads a provider vector to the index dimension."""
    values = [float(v) for v in vector]
    if len(values) == dimension:
        return values
    logger.warning(f"Embedding has {len(values)} dimensions, expected {dimension}; adjusting.")
    if len(values) > dimension:
        return values[:dimension]
    return values + [0.0] * (dimension - len(values))
