"""Shared type aliases for the coco_ts package."""

from collections.abc import Sequence

import numpy as np
import pandas as pd

# Array-like inputs accepted by the public API.
ArrayLike = np.ndarray | pd.DataFrame | pd.Series | Sequence[float]
