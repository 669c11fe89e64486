"""Display downsampling for frames much larger than their canvas.

Each level smooths with a 3-tap binomial kernel before keeping every other
row and column, which avoids the aliasing of naive subsampling. Only the
rendered raster is reduced; data coordinates and annotation geometry stay in
full-resolution units.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
from scipy import ndimage

_KERNEL = np.array([0.25, 0.5, 0.25], dtype=np.float32)


def restrict(frame: np.ndarray) -> np.ndarray:
    """Halve the first two axes of ``frame``.

    Parameters
    ----------
    frame : numpy.ndarray
        Display array (Y, X) or (Y, X, C).

    Returns
    -------
    numpy.ndarray
        float32 array of shape ``(ceil(Y/2), ceil(X/2), ...)``.
    """
    out = np.asarray(frame, dtype=np.float32)
    for axis in (0, 1):
        out = ndimage.correlate1d(out, _KERNEL, axis=axis, mode="nearest")
    return out[::2, ::2]


def restrict_to_canvas(
    frame: np.ndarray, width: int, height: int, ratio: int = 2
) -> Tuple[np.ndarray, int]:
    """Restrict while ``frame`` exceeds ``ratio`` times the canvas in both dimensions.

    Returns the reduced frame and the number of halvings applied.
    """
    levels = 0
    while frame.shape[0] > ratio * height and frame.shape[1] > ratio * width:
        frame = restrict(frame)
        levels += 1
    return frame, levels
