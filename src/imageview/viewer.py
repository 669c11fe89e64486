"""High-level entry points: ``imshow`` and friends.

These functions assemble the pipeline for one or more images: slice cells,
contrast pipelines, display drivers, mouse interactions, players and the
hover status line, all owned by a ``ViewSession``.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np

from imageview.annotations import Annotation, AnnotationRegistry, scalebar_annotation
from imageview.config import DEFAULT_CONFIG, ViewerConfig
from imageview.contrast import CLim, SampleKind, default_clim, prep_contrast
from imageview.display import DisplayDriver, hoverinfo
from imageview.interaction import (
    Interaction,
    init_pan_drag,
    init_pan_scroll,
    init_zoom_rubberband,
    init_zoom_scroll,
)
from imageview.logger import get_logger
from imageview.players import make_players
from imageview.render_mpl import MplCanvas
from imageview.session import ViewSession
from imageview.signals import Cell, Scope
from imageview.slicing import SliceData, flip_view, roi, slice_cell

__all__ = [
    "imshow",
    "imshow_canvas",
    "imshow_gui",
    "canvasgrid",
    "imshowlabeled",
    "imlink",
    "annotate",
    "scalebar",
    "default_canvas_size",
    "canvas_size",
]

LOGGER = get_logger(__name__)

ClimArg = Union[str, CLim, Cell, Callable[[np.ndarray], np.ndarray], None]

PLAYER_ROW_PX = 30
STATUS_ROW_PX = 20


def default_canvas_size(imgsz: Tuple[int, int], pixelaspectratio: float = 1) -> Tuple[int, int]:
    """Canvas ``(width, height)`` for an image of ``(nrows, ncols)`` pixels."""
    nrows, ncols = imgsz
    if pixelaspectratio >= 1:
        return int(round(pixelaspectratio * ncols)), int(nrows)
    return int(ncols), int(round(nrows / pixelaspectratio))


def canvas_size(
    screensize: Tuple[float, float], requested: Tuple[float, float], minsize: int = 100
) -> Tuple[int, int]:
    """Fit a requested ``(width, height)`` to the screen.

    Sizes larger than the screen shrink to fit. Smaller sizes grow until the
    smaller side reaches ``minsize``, but never beyond the screen.
    """
    f = min(s / r for s, r in zip(screensize, requested))
    if f > 1:
        fmn = max(minsize / r for r in requested)
        f = max(1, min(f, fmn))
    return int(round(f * requested[0])), int(round(f * requested[1]))


def _check_gridsize(gridsize: Tuple[int, int]) -> Tuple[int, int]:
    nrows, ncols = gridsize
    if int(nrows) < 1 or int(ncols) < 1:
        raise ValueError(f"Grid size must be positive, got {gridsize}")
    return int(nrows), int(ncols)


def canvasgrid(
    fig, gridsize: Tuple[int, int] = (1, 1), rect: Sequence[float] = (0.0, 0.0, 1.0, 1.0), aspect: str = "auto"
) -> List[List[MplCanvas]]:
    """Create an ``nrows x ncols`` grid of canvases inside ``rect`` (figure fractions)."""
    nrows, ncols = _check_gridsize(gridsize)
    left, bottom, width, height = rect
    grid = fig.add_gridspec(
        nrows,
        ncols,
        left=left,
        bottom=bottom,
        right=left + width,
        top=bottom + height,
        wspace=0.02,
        hspace=0.02,
    )
    return [[MplCanvas(fig.add_subplot(grid[i, j]), aspect=aspect) for j in range(ncols)] for i in range(nrows)]


def imshow_gui(
    canvassize: Optional[Tuple[int, int]] = None,
    gridsize: Tuple[int, int] = (1, 1),
    name: str = "imageview",
    slicedata: Optional[SliceData] = None,
    aspect: str = "auto",
    config: Optional[ViewerConfig] = None,
) -> ViewSession:
    """Create an empty viewer window.

    Parameters
    ----------
    canvassize : tuple[int, int], optional
        Requested ``(width, height)`` of each canvas in pixels; the whole grid
        is fitted to the configured screen size.
    gridsize : tuple[int, int]
        ``(nrows, ncols)`` of canvases.
    slicedata : SliceData, optional
        Adds one player per sliced axis below the canvases.

    Returns
    -------
    ViewSession
        Session with ``figure`` and ``canvases`` populated.
    """
    config = config or DEFAULT_CONFIG
    nrows, ncols = _check_gridsize(gridsize)
    if canvassize is None:
        canvassize = (4 * config.min_canvas_size, 4 * config.min_canvas_size)
    screen = tuple(config.screen_fraction * s for s in config.screen_size)
    width, height = canvas_size(
        screen, (canvassize[0] * ncols, canvassize[1] * nrows), minsize=config.min_canvas_size
    )
    nplayers = len(slicedata) if slicedata is not None else 0
    footer_px = STATUS_ROW_PX + PLAYER_ROW_PX * nplayers
    total_height = height + footer_px
    fig = plt.figure(figsize=(width / config.dpi, total_height / config.dpi), dpi=config.dpi)
    manager = fig.canvas.manager
    if manager is not None:
        manager.set_window_title(name)
    session = ViewSession(fig, name=name, config=config)
    footer = footer_px / total_height
    grid = canvasgrid(fig, (nrows, ncols), rect=(0.0, footer, 1.0, 1.0 - footer), aspect=aspect)
    session.canvases = [c for row in grid for c in row]
    status_frac = STATUS_ROW_PX / total_height
    status_text = fig.text(0.01, status_frac / 2, "", fontsize=8, va="center")

    def _show_status(text: str) -> None:
        status_text.set_text(text)
        fig.canvas.draw_idle()

    session.scope.listen(_show_status, session.status)
    if nplayers:
        session.slicedata = slicedata
        players = make_players(fig, slicedata, rect=(0.15, status_frac, 0.7, footer - status_frac))
        for player in players:
            session.players.append(session.track(player))
    return session


def _resolve_clim(clim: ClimArg, arr: np.ndarray, slice_value: np.ndarray, kind: SampleKind, scaled: bool, config):
    if isinstance(clim, str):
        if clim != "auto":
            raise ValueError(f"Unknown clim {clim!r}; use 'auto', a CLim, a Cell, a callable or None")
        return default_clim(slice_value if scaled else arr, kind, config=config)
    return clim


def _attach(
    session: ViewSession,
    canvas,
    arr: np.ndarray,
    zoom_cell: Cell,
    sd: SliceData,
    kind: SampleKind,
    clim: ClimArg = "auto",
    scalei: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    annotations: Optional[AnnotationRegistry] = None,
    channel_colors=None,
    hover_source: Optional[np.ndarray] = None,
    hover_kind: Optional[SampleKind] = None,
) -> DisplayDriver:
    config = session.config
    scope = session.scope
    sliced = slice_cell(arr, zoom_cell, sd, kind, scalei=scalei, scope=scope)
    clim = _resolve_clim(clim, arr, sliced.value, kind, scalei is not None, config)
    pipeline = prep_contrast(sliced, clim, kind, config=config, scope=scope)
    session.pipelines.append(pipeline)
    session.images.append(arr)
    registry = annotations if annotations is not None else session.annotations
    driver = DisplayDriver(
        canvas,
        pipeline.image,
        zoom=zoom_cell,
        annotations=registry,
        slicedata=sd,
        kind=kind,
        channel_colors=channel_colors,
        config=config,
        session_id=session.id,
    )
    session.drivers.append(session.track(driver))
    for interaction in (
        init_zoom_rubberband(canvas, zoom_cell, config),
        init_zoom_scroll(canvas, zoom_cell, config),
        init_pan_scroll(canvas, zoom_cell, config),
        init_pan_drag(canvas, zoom_cell),
    ):
        session.interactions.append(session.track(interaction))

    probe = hover_source if hover_source is not None else arr
    probe_kind = hover_kind if hover_kind is not None else kind

    def _on_motion(ev) -> None:
        if not ev.inside:
            return
        session.status.set(hoverinfo(ev.x, ev.y, probe, sd, probe_kind))

    pipeline_index = len(session.pipelines) - 1

    def _on_press(ev) -> None:
        if ev.button == 3:
            session.open_contrast_editor(pipeline_index)

    cids = [canvas.connect("motion", _on_motion), canvas.connect("press", _on_press)]
    session.interactions.append(session.track(Interaction(canvas, cids, name="hover")))
    return driver


def imshow(
    img: Any,
    clim: ClimArg = "auto",
    *,
    axes: Sequence[int] = (0, 1),
    kind: Union[SampleKind, str, None] = None,
    name: str = "imageview",
    scalei: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    flipx: bool = False,
    flipy: bool = False,
    aspect: str = "auto",
    canvassize: Optional[Tuple[int, int]] = None,
    pixelaspectratio: float = 1,
    zoom: Optional[Cell] = None,
    slicedata: Optional[SliceData] = None,
    annotations: Optional[AnnotationRegistry] = None,
    channel_colors=None,
    label: Any = None,
    config: Optional[ViewerConfig] = None,
) -> ViewSession:
    """Open a viewer window for ``img``.

    Parameters
    ----------
    img : array_like
        1-D to N-D image. Color images need ``kind="rgb"`` or
        ``kind="multichannel"`` with channels on the last axis.
    clim : "auto", CLim, Cell, callable or None
        ``"auto"`` derives limits from the data; ``None`` shows samples as
        they are (integers as fractions of their dtype range); a callable
        maps each slice to display values.
    axes : tuple[int, int]
        Array axes shown as rows and columns.
    scalei : callable, optional
        Elementwise transform applied to each slice before contrast.
    zoom, slicedata : optional
        Share zoom and slice state with another view.
    annotations : AnnotationRegistry, optional
        Share overlays with another view.
    label : array_like, optional
        Values reported in the status line instead of pixel values; must
        match the spatial shape of ``img``.

    Returns
    -------
    ViewSession

    Raises
    ------
    ValueError
        Invalid axes, kind or shared state.
    TypeError
        Unsupported sample type while slicing or preparing the contrast.
    """
    config = config or DEFAULT_CONFIG
    arr = np.asarray(img)
    kind = SampleKind.resolve(arr, kind)
    if label is not None:
        label = np.asarray(label)
        spatial = arr.shape[: kind.spatial_ndim(arr)]
        if label.shape != spatial:
            raise ValueError(f"Label array shape {label.shape} disagrees with image shape {spatial}")
    if flipx or flipy:
        arr = flip_view(arr, axes, flipx=flipx, flipy=flipy)
        if label is not None:
            label = flip_view(label, axes, flipx=flipx, flipy=flipy)
    zoom_cell, sd = _shared_state(arr, axes, kind, zoom, slicedata)
    if canvassize is None:
        fullview = zoom_cell.value.fullview
        canvassize = default_canvas_size((fullview[3], fullview[2]), pixelaspectratio)
    session = imshow_gui(canvassize, (1, 1), name=name, slicedata=sd, aspect=aspect, config=config)
    try:
        session.zoom = zoom_cell
        session.slicedata = sd
        _attach(
            session,
            session.canvas,
            arr,
            zoom_cell,
            sd,
            kind,
            clim=clim,
            scalei=scalei,
            annotations=annotations,
            channel_colors=channel_colors,
            hover_source=label,
            hover_kind=SampleKind.SCALAR if label is not None else None,
        )
    except Exception:
        session.close()
        raise
    return session


def _shared_state(
    arr: np.ndarray,
    axes: Sequence[int],
    kind: SampleKind,
    zoom: Optional[Cell],
    slicedata: Optional[SliceData],
) -> Tuple[Cell, SliceData]:
    zoom_cell, sd = roi(arr, axes, kind)
    if zoom is not None:
        if zoom.value.fullview != zoom_cell.value.fullview:
            raise ValueError(
                f"Zoom region {zoom.value.fullview} does not match the image plane {zoom_cell.value.fullview}"
            )
        zoom_cell = zoom
    if slicedata is not None:
        if not slicedata.compatible(sd):
            raise ValueError("Slice data does not match the image axes")
        sd = slicedata
    return zoom_cell, sd


def imshow_canvas(
    canvas,
    img: Any,
    zoom: Optional[Cell] = None,
    annotations: Optional[AnnotationRegistry] = None,
    kind: Union[SampleKind, str, None] = None,
    clim: ClimArg = None,
    config: Optional[ViewerConfig] = None,
) -> DisplayDriver:
    """Draw ``img`` into an existing canvas without any mouse interaction.

    ``img`` may be a cell of display-ready frames, which is drawn as given,
    or an array, which is shown with ``clim`` (native contrast by default).
    """
    config = config or DEFAULT_CONFIG
    if isinstance(img, Cell):
        frame = np.asarray(img.value)
        sample_kind = SampleKind.RGB if frame.ndim == 3 and frame.shape[-1] == 3 else SampleKind.SCALAR
        if kind is not None:
            sample_kind = SampleKind.resolve(frame, kind)
        return DisplayDriver(canvas, img, zoom=zoom, annotations=annotations, kind=sample_kind, config=config)
    arr = np.asarray(img)
    sample_kind = SampleKind.resolve(arr, kind)
    zoom_cell, sd = roi(arr, (0, 1), sample_kind)
    if zoom is not None:
        zoom_cell = zoom
    scope = Scope()
    sliced = slice_cell(arr, zoom_cell, sd, sample_kind, scope=scope)
    if isinstance(clim, str):
        clim = _resolve_clim(clim, arr, sliced.value, sample_kind, False, config)
    pipeline = prep_contrast(sliced, clim, sample_kind, config=config, scope=scope)
    return DisplayDriver(
        canvas,
        pipeline.image,
        zoom=zoom_cell,
        annotations=annotations,
        slicedata=sd,
        kind=sample_kind,
        config=config,
        scope=scope,
    )


def imshowlabeled(img: Any, label: Any, **kwargs) -> ViewSession:
    """Like ``imshow``, but the status line shows ``label`` values instead of pixel values.

    Raises ``ValueError`` when ``label`` and ``img`` differ in spatial shape.
    """
    return imshow(img, label=label, **kwargs)


def imlink(
    *imgs: Any,
    gridsize: Optional[Tuple[int, int]] = None,
    axes: Sequence[int] = (0, 1),
    names: Optional[Sequence[str]] = None,
    kind: Union[SampleKind, str, None] = None,
    clim: ClimArg = "auto",
    name: str = "imageview",
    canvassize: Optional[Tuple[int, int]] = None,
    config: Optional[ViewerConfig] = None,
) -> ViewSession:
    """Show several images side by side with shared zoom and slice indices.

    Raises
    ------
    ValueError
        No images, mismatched shapes, or a grid too small for all images.
    """
    if not imgs:
        raise ValueError("imlink needs at least one image")
    config = config or DEFAULT_CONFIG
    arrays = [np.asarray(img) for img in imgs]
    kinds = [SampleKind.resolve(a, kind) for a in arrays]
    shapes = [a.shape[: k.spatial_ndim(a)] for a, k in zip(arrays, kinds)]
    if any(s != shapes[0] for s in shapes[1:]):
        raise ValueError(f"Linked images must share their spatial shape, got {shapes}")
    if gridsize is None:
        gridsize = (1, len(arrays))
    nrows, ncols = _check_gridsize(gridsize)
    if nrows * ncols < len(arrays):
        raise ValueError(f"Grid {gridsize} cannot hold {len(arrays)} images")
    if names is not None and len(names) != len(arrays):
        raise ValueError(f"Expected {len(arrays)} names, got {len(names)}")
    zoom_cell, sd = roi(arrays[0], axes, kinds[0])
    if canvassize is None:
        fullview = zoom_cell.value.fullview
        canvassize = default_canvas_size((fullview[3], fullview[2]))
    session = imshow_gui(canvassize, (nrows, ncols), name=name, slicedata=sd, config=config)
    try:
        session.zoom = zoom_cell
        session.slicedata = sd
        for i, (arr, sample_kind) in enumerate(zip(arrays, kinds)):
            canvas = session.canvases[i]
            _attach(session, canvas, arr, zoom_cell, sd, sample_kind, clim=clim)
            if names is not None:
                canvas.ax.set_title(names[i], fontsize=9)
        for canvas in session.canvases[len(arrays):]:
            canvas.ax.set_visible(False)
    except Exception:
        session.close()
        raise
    return session


def annotate(session: ViewSession, ann: Annotation) -> int:
    """Add ``ann`` to the session's overlays; returns its handle."""
    return session.annotate(ann)


def scalebar(
    session: ViewSession, length: float, x: float = 0.8, y: float = 0.1, color: str = "white"
) -> int:
    """Add a scale bar of ``length`` pixels; see ``scalebar_annotation``."""
    if session.zoom is None:
        raise ValueError("Session has no image to attach a scale bar to")
    return session.annotate(scalebar_annotation(session.zoom.value.fullview, length, x=x, y=y, color=color))
