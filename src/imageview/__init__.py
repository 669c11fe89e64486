"""imageview: interactive viewing of N-dimensional image arrays."""

from imageview.annotations import (
    AnnotationBox,
    AnnotationLine,
    AnnotationLines,
    AnnotationPoint,
    AnnotationPoints,
    AnnotationRegistry,
    AnnotationStyle,
    AnnotationText,
    at_slice,
)
from imageview.config import DEFAULT_CONFIG, ViewerConfig
from imageview.contrast import CLim, SampleKind
from imageview.session import closeall
from imageview.signals import Cell, derive, listen
from imageview.slicing import roi, slice2d
from imageview.viewer import (
    annotate,
    canvas_size,
    canvasgrid,
    default_canvas_size,
    imlink,
    imshow,
    imshow_canvas,
    imshow_gui,
    imshowlabeled,
    scalebar,
)
from imageview.zoom import ZoomRegion

__all__ = [
    "__version__",
    "AnnotationBox",
    "AnnotationLine",
    "AnnotationLines",
    "AnnotationPoint",
    "AnnotationPoints",
    "AnnotationRegistry",
    "AnnotationStyle",
    "AnnotationText",
    "at_slice",
    "DEFAULT_CONFIG",
    "ViewerConfig",
    "CLim",
    "SampleKind",
    "closeall",
    "Cell",
    "derive",
    "listen",
    "roi",
    "slice2d",
    "annotate",
    "canvas_size",
    "canvasgrid",
    "default_canvas_size",
    "imlink",
    "imshow",
    "imshow_canvas",
    "imshow_gui",
    "imshowlabeled",
    "scalebar",
    "ZoomRegion",
]

__version__ = "0.1.0"
