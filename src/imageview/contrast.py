"""Contrast mapping from raw samples to display intensities.

Samples are described by a ``SampleKind`` tag carried next to the array:
scalar images are plain N-D arrays, RGB and multichannel images carry their
channels on the trailing axis. Contrast limits (``CLim``) map a sample range
affinely onto [0, 1]; color kinds are rescaled channel by channel, so
changing one channel's limits never alters the others.

Conventions
-----------
- Display-ready arrays are float32 in [0, 1].
- Non-finite samples map to 0.
- ``CLim`` components are plain Python scalars (or tuples of them).
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from imageview.config import DEFAULT_CONFIG, ViewerConfig
from imageview.logger import get_logger
from imageview.signals import Cell, Scope

__all__ = [
    "SampleKind",
    "CLim",
    "DEFAULT_CHANNEL_COLORS",
    "safeminmax",
    "fast_finite_extrema",
    "valuespan",
    "default_clim",
    "scale_minmax",
    "clamp01nan",
    "apply_contrast",
    "channel_clims",
    "composite_channels",
    "supported_dtype",
    "validate_stage",
    "ContrastPipeline",
    "prep_contrast",
]

LOGGER = get_logger(__name__)

Limit = Union[float, Tuple[float, ...]]

DEFAULT_CHANNEL_COLORS: Tuple[Tuple[float, float, float], ...] = (
    (1.0, 0.0, 0.0),
    (0.0, 1.0, 0.0),
    (0.0, 0.0, 1.0),
    (0.0, 1.0, 1.0),
    (1.0, 0.0, 1.0),
    (1.0, 1.0, 0.0),
    (1.0, 1.0, 1.0),
)


class SampleKind(enum.Enum):
    """How the samples of an array are laid out."""

    SCALAR = "scalar"
    RGB = "rgb"
    MULTICHANNEL = "multichannel"

    @classmethod
    def resolve(cls, arr: np.ndarray, kind: Union["SampleKind", str, None] = None) -> "SampleKind":
        """Return the kind for ``arr``, validating the channel axis.

        Without an explicit ``kind`` arrays are treated as scalar, so a
        ``(10, 10, 3)`` array is a volume unless ``kind="rgb"`` is given.
        """
        if kind is None:
            return cls.SCALAR
        resolved = cls(kind.lower()) if isinstance(kind, str) else cls(kind)
        if resolved is cls.RGB and (arr.ndim < 2 or arr.shape[-1] != 3):
            raise ValueError(f"RGB images need a trailing axis of length 3, got shape {arr.shape}")
        if resolved is cls.MULTICHANNEL and arr.ndim < 2:
            raise ValueError(f"Multichannel images need a trailing channel axis, got shape {arr.shape}")
        return resolved

    @property
    def has_channels(self) -> bool:
        return self is not SampleKind.SCALAR

    def spatial_ndim(self, arr: np.ndarray) -> int:
        return arr.ndim - 1 if self.has_channels else arr.ndim

    def nchannels(self, arr: np.ndarray) -> int:
        return int(arr.shape[-1]) if self.has_channels else 1


def _scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def _normalize_limit(value: Any) -> Limit:
    if isinstance(value, (tuple, list, np.ndarray)):
        return tuple(_scalar(v) for v in np.asarray(value).ravel())
    return _scalar(value)


@dataclass(frozen=True)
class CLim:
    """Contrast limits: ``x <= min`` renders black and ``x >= max`` white.

    Either both limits are scalars or both are per-channel tuples of the same
    length.
    """

    min: Limit
    max: Limit

    def __post_init__(self) -> None:
        lo = _normalize_limit(self.min)
        hi = _normalize_limit(self.max)
        if isinstance(lo, tuple) != isinstance(hi, tuple):
            raise ValueError("CLim limits must both be scalars or both be per-channel tuples.")
        if isinstance(lo, tuple) and len(lo) != len(hi):
            raise ValueError(f"CLim channel counts differ: {len(lo)} vs {len(hi)}")
        object.__setattr__(self, "min", lo)
        object.__setattr__(self, "max", hi)

    @property
    def nchannels(self) -> int:
        return len(self.min) if isinstance(self.min, tuple) else 1

    def channel(self, index: int) -> "CLim":
        """Scalar limits of one channel; scalar CLims apply to every channel."""
        if not isinstance(self.min, tuple):
            return self
        return CLim(self.min[index], self.max[index])

    def expand(self, nchannels: int) -> "CLim":
        """Per-channel copy; scalar limits are repeated for every channel."""
        if isinstance(self.min, tuple):
            return self
        return CLim((self.min,) * nchannels, (self.max,) * nchannels)

    def with_channel(self, index: int, cmin: float, cmax: float) -> "CLim":
        """Return a copy with the limits of one channel replaced."""
        if not isinstance(self.min, tuple):
            return CLim(cmin, cmax)
        lo = list(self.min)
        hi = list(self.max)
        lo[index], hi[index] = cmin, cmax
        return CLim(tuple(lo), tuple(hi))


def safeminmax(cmin: Limit, cmax: Limit) -> Tuple[Limit, Limit]:
    """Coerce ``cmax := cmin + 1`` wherever ``cmin < cmax`` does not hold."""
    if isinstance(cmin, tuple):
        pairs = [safeminmax(lo, hi) for lo, hi in zip(cmin, cmax)]
        return tuple(p[0] for p in pairs), tuple(p[1] for p in pairs)
    if not cmin < cmax:
        cmax = cmin + 1
    return cmin, cmax


def fast_finite_extrema(a: np.ndarray) -> Tuple[Any, Any]:
    """Return the finite (min, max) of ``a``; ``(nan, nan)`` when there is none."""
    a = np.asarray(a)
    if a.size == 0:
        return math.nan, math.nan
    if a.dtype == bool:
        a = a.view(np.uint8)
    if np.issubdtype(a.dtype, np.integer):
        return a.min().item(), a.max().item()
    finite = a[np.isfinite(a)]
    if finite.size == 0:
        return math.nan, math.nan
    return finite.min().item(), finite.max().item()


def _isfinite(value: Any) -> bool:
    return value is not None and math.isfinite(value)


def valuespan(
    img: np.ndarray,
    checkmax: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    config: ViewerConfig = DEFAULT_CONFIG,
) -> Tuple[Any, Any]:
    """Return a (min, max) span of the finite samples of ``img``.

    Arrays with more than ``checkmax`` elements are probed at ``checkmax``
    uniformly drawn positions. Missing or degenerate spans are repaired:

    ========================  =====================
    finite samples            result
    ========================  =====================
    min and max               (min, max)
    min == max                (min, min + 1)
    only max                  (max - 1, max)
    only min                  (min, min + 1)
    none                      (0, 1)
    ========================  =====================
    """
    a = np.asarray(img)
    if checkmax is None:
        checkmax = config.valuespan_checkmax
    if a.size > checkmax:
        rng = np.random.default_rng() if rng is None else rng
        flat = rng.integers(0, a.size, size=checkmax)
        a = a[np.unravel_index(flat, a.shape)]
    minval, maxval = fast_finite_extrema(a)
    invalid_min, invalid_max = not _isfinite(minval), not _isfinite(maxval)
    if invalid_min or invalid_max:
        LOGGER.warning("Could not determine valid value span")
    if invalid_min and invalid_max:
        minval, maxval = 0, 1
    elif invalid_min:
        minval = maxval - 1
    elif invalid_max:
        maxval = minval + 1
    elif minval == maxval:
        maxval = minval + 1
    return minval, maxval


def _dtype_range(dtype: np.dtype) -> float:
    if np.issubdtype(dtype, np.integer):
        return np.iinfo(dtype).max
    return 1.0


def default_clim(
    img: np.ndarray, kind: SampleKind = SampleKind.SCALAR, config: ViewerConfig = DEFAULT_CONFIG
) -> Optional[CLim]:
    """Initial contrast limits for ``img``; ``None`` means native contrast.

    Boolean images use native contrast. Scalar images span their finite
    values (integer dtypes keep integer limits). Color images start from the
    full nominal range of their dtype on every channel.
    """
    a = np.asarray(img)
    if a.dtype == bool:
        return None
    if kind is SampleKind.SCALAR:
        lo, hi = valuespan(a, config=config)
        return CLim(lo, hi)
    n = kind.nchannels(a)
    top = _dtype_range(a.dtype)
    return CLim((0,) * n if top != 1.0 else (0.0,) * n, (top,) * n)


def scale_minmax(a: np.ndarray, cmin: float, cmax: float) -> np.ndarray:
    """Clamp ``a`` to ``[cmin, cmax]`` and rescale to float32 [0, 1]."""
    cmin, cmax = safeminmax(cmin, cmax)
    data = np.asarray(a, dtype=np.float64)
    finite = np.isfinite(data)
    out = (np.clip(data, cmin, cmax) - cmin) / (cmax - cmin)
    out[~finite] = 0.0
    return out.astype(np.float32)


def clamp01nan(a: np.ndarray) -> np.ndarray:
    """Native contrast: integers are read as fixed-point fractions of their dtype range."""
    data = np.asarray(a)
    if data.dtype == bool:
        return data.astype(np.float32)
    if np.issubdtype(data.dtype, np.integer):
        return scale_minmax(data, 0, _dtype_range(data.dtype))
    return scale_minmax(data, 0.0, 1.0)


def channel_clims(clim: CLim, nchannels: int) -> List[CLim]:
    """Split ``clim`` into one scalar CLim per channel."""
    return [clim.channel(i) for i in range(nchannels)]


def apply_contrast(a: np.ndarray, clim: CLim, kind: SampleKind = SampleKind.SCALAR) -> np.ndarray:
    """Map a slice through ``clim``; color channels are rescaled independently."""
    if kind is SampleKind.SCALAR:
        return scale_minmax(a, clim.min, clim.max)
    data = np.asarray(a)
    out = np.empty(data.shape, dtype=np.float32)
    for i, cl in enumerate(channel_clims(clim, data.shape[-1])):
        out[..., i] = scale_minmax(data[..., i], cl.min, cl.max)
    return out


def composite_channels(
    a: np.ndarray, colors: Optional[Sequence[Tuple[float, float, float]]] = None
) -> np.ndarray:
    """Blend an (..., N) multichannel display array into RGB."""
    data = np.asarray(a, dtype=np.float32)
    n = data.shape[-1]
    palette = list(colors) if colors else list(DEFAULT_CHANNEL_COLORS)
    weights = np.array([palette[i % len(palette)] for i in range(n)], dtype=np.float32)
    rgb = np.tensordot(data, weights, axes=([data.ndim - 1], [0]))
    return np.clip(rgb, 0.0, 1.0)


def supported_dtype(a: Any) -> bool:
    dtype = getattr(a, "dtype", None)
    return dtype is not None and dtype.kind in "biuf"


def validate_stage(a: Any, stage: str) -> None:
    """Raise ``TypeError`` naming ``stage`` when ``a`` cannot be rendered."""
    if not supported_dtype(a):
        dtype = getattr(a, "dtype", type(a).__name__)
        raise TypeError(f"got unsupported sample type {dtype} in {stage}")


class ContrastPipeline:
    """Reactive contrast stage: slice cell in, display-ready cell out.

    Parameters
    ----------
    source : Cell
        Cell holding the current 2D slice.
    clim : Cell, CLim, callable or None
        Contrast limits (a plain ``CLim`` is wrapped in a cell), a custom
        elementwise mapping, or ``None`` for native contrast.
    kind : SampleKind
        Sample layout of ``source``.

    Notes
    -----
    Histograms are only computed while ``enabled`` is True (the contrast
    editor sets it while open). Per-channel limits are derived once and
    shared by histograms and the editor.
    """

    def __init__(
        self,
        source: Cell,
        clim: Union[Cell, CLim, Callable[[np.ndarray], np.ndarray], None],
        kind: SampleKind = SampleKind.SCALAR,
        config: ViewerConfig = DEFAULT_CONFIG,
        scope: Optional[Scope] = None,
    ) -> None:
        from imageview.histogram import histogram_cell

        self.source = source
        self.kind = kind
        self.config = config
        self.scope = scope if scope is not None else Scope()
        self.enabled: Cell = Cell(False, name="histogram-enabled")
        self.clim: Optional[Cell] = None
        self.channel_clims: List[Cell] = []
        self.histograms: List[Cell] = []
        if isinstance(clim, CLim):
            clim = Cell(clim, name="clim")
        if isinstance(clim, Cell):
            self.clim = clim
            self._build_channels(histogram_cell)
            self.image = self.scope.derive(
                lambda image, cl: apply_contrast(image, cl, kind), source, clim, name="contrast"
            )
        elif callable(clim):
            mapper = clim
            self.image = self.scope.derive(lambda image: np.asarray(mapper(image)), source, name="contrast")
        elif clim is None:
            self.image = self.scope.derive(clamp01nan, source, name="contrast")
        else:
            raise TypeError(f"Unsupported clim of type {type(clim).__name__}")

    def _build_channels(self, histogram_cell) -> None:
        if not self.kind.has_channels:
            self.channel_clims = [self.clim]
            channel_images = [self.source]
        else:
            n = self.kind.nchannels(np.asarray(self.source.value))
            self.channel_clims = [
                self.scope.derive(lambda cl, i=i: cl.channel(i), self.clim, name=f"clim[{i}]")
                for i in range(n)
            ]
            channel_images = [
                self.scope.derive(lambda image, i=i: np.asarray(image)[..., i], self.source, name=f"channel[{i}]")
                for i in range(n)
            ]
        self.histograms = [
            histogram_cell(self.enabled, image, cl, config=self.config, scope=self.scope)
            for image, cl in zip(channel_images, self.channel_clims)
        ]

    @property
    def nchannels(self) -> int:
        return len(self.channel_clims)

    def set_channel_clim(self, index: int, cmin: float, cmax: float) -> None:
        """Replace the limits of one channel, leaving the others untouched."""
        if self.clim is None:
            raise RuntimeError("This pipeline uses native or custom contrast; there are no limits to edit.")
        current = self.clim.value
        if self.kind.has_channels:
            current = current.expand(self.nchannels)
        self.clim.set(current.with_channel(index, cmin, cmax))

    def close(self) -> None:
        self.scope.close()


def prep_contrast(
    source: Cell,
    clim: Union[Cell, CLim, Callable[[np.ndarray], np.ndarray], None],
    kind: SampleKind = SampleKind.SCALAR,
    config: ViewerConfig = DEFAULT_CONFIG,
    scope: Optional[Scope] = None,
) -> ContrastPipeline:
    """Build the contrast stage and validate its first output eagerly."""
    pipeline = ContrastPipeline(source, clim, kind, config=config, scope=scope)
    validate_stage(pipeline.image.value, "preparing the contrast")
    return pipeline
