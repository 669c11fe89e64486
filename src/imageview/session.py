"""View sessions and the process-wide registry used by ``closeall``.

A ``ViewSession`` owns everything created for one viewer window: the
figure, its canvases, the reactive cells and listeners (through a
``Scope``), the annotation registry, players and interactions. Closing a
session releases all of it and unregisters it.
"""

from __future__ import annotations

import threading
import uuid
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt

from imageview.annotations import Annotation, AnnotationRegistry
from imageview.config import DEFAULT_CONFIG, ViewerConfig
from imageview.logger import get_logger
from imageview.signals import Cell, Scope

__all__ = ["SessionRegistry", "REGISTRY", "closeall", "ViewSession"]

LOGGER = get_logger(__name__)


class SessionRegistry:
    """Explicitly managed set of open sessions.

    Sessions are driven from the UI thread; the lock covers ``closeall`` run
    from an interpreter-exit hook or a worker thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: List["ViewSession"] = []

    def register(self, session: "ViewSession") -> None:
        with self._lock:
            if session not in self._sessions:
                self._sessions.append(session)

    def unregister(self, session: "ViewSession") -> None:
        with self._lock:
            if session in self._sessions:
                self._sessions.remove(session)

    def sessions(self) -> List["ViewSession"]:
        with self._lock:
            return list(self._sessions)

    def close_all(self) -> int:
        """Close every registered session; returns how many were closed."""
        sessions = self.sessions()
        for session in reversed(sessions):
            session.close()
        with self._lock:
            self._sessions.clear()
        return len(sessions)

    def __contains__(self, session: "ViewSession") -> bool:
        with self._lock:
            return session in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


REGISTRY = SessionRegistry()


def closeall() -> None:
    """Close all open viewer sessions."""
    count = REGISTRY.close_all()
    LOGGER.info("Closed %d session(s)", count)


class ViewSession:
    """State and resources of one viewer window.

    Attributes
    ----------
    figure : matplotlib.figure.Figure or None
        Window contents; closed together with the session.
    canvases : list of MplCanvas
        Canvases in row-major grid order.
    status : Cell[str]
        Status line (hover information).
    zoom, slicedata, pipeline :
        Set when an image is attached; ``pipelines`` holds one contrast
        pipeline per linked image.
    scope : Scope
        Owns derived cells, listeners, drivers, players and interactions.
    """

    def __init__(
        self,
        figure=None,
        name: str = "imageview",
        config: ViewerConfig = DEFAULT_CONFIG,
        registry: Optional[SessionRegistry] = None,
    ) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.name = name
        self.figure = figure
        self.config = config
        self.registry = registry if registry is not None else REGISTRY
        self.scope = Scope()
        self.status: Cell = Cell("", name="status")
        self.canvases: List[Any] = []
        self.drivers: List[Any] = []
        self.interactions: List[Any] = []
        self.players: List[Any] = []
        self.pipelines: List[Any] = []
        self.images: List[Any] = []
        self.zoom: Optional[Cell] = None
        self.slicedata = None
        self.annotations = AnnotationRegistry()
        self.contrast_editors: Dict[int, Any] = {}
        self.closed = False
        self._close_cid: Optional[int] = None
        if figure is not None:
            self._close_cid = figure.canvas.mpl_connect("close_event", self._on_figure_closed)
        self.registry.register(self)
        LOGGER.info("Opened session %r", name, extra={"session": self.id})

    @property
    def contrast_editor(self):
        """Editor of the first image, if open."""
        return self.contrast_editors.get(0)

    @property
    def canvas(self):
        return self.canvases[0] if self.canvases else None

    @property
    def pipeline(self):
        return self.pipelines[0] if self.pipelines else None

    @property
    def image(self):
        return self.images[0] if self.images else None

    def track(self, obj):
        return self.scope.track(obj)

    def annotate(self, ann: Annotation) -> int:
        """Add an overlay; returns the handle for ``remove_annotation``."""
        return self.annotations.add(ann)

    def remove_annotation(self, handle: int) -> Annotation:
        return self.annotations.remove(handle)

    def open_contrast_editor(self, index: int = 0):
        """Show the histogram contrast editor for pipeline ``index``."""
        from imageview.contrast_gui import ContrastEditor

        if self.closed:
            raise RuntimeError("Session is closed")
        pipeline = self.pipelines[index] if index < len(self.pipelines) else None
        if pipeline is None or pipeline.clim is None:
            LOGGER.info("No adjustable contrast limits in this view", extra={"session": self.id})
            return None
        editor = self.contrast_editors.get(index)
        if editor is not None and editor.is_open:
            return editor
        label = f"{self.name}: contrast" if len(self.pipelines) == 1 else f"{self.name}: contrast [{index}]"
        editor = ContrastEditor(pipeline, name=label)
        self.contrast_editors[index] = editor
        return editor

    def _on_figure_closed(self, event) -> None:
        self.close()

    def close(self) -> None:
        """Release every resource of the session; calling it again does nothing."""
        if self.closed:
            return
        self.closed = True
        for editor in self.contrast_editors.values():
            editor.close()
        self.contrast_editors.clear()
        self.scope.close()
        self.drivers.clear()
        self.interactions.clear()
        self.players.clear()
        if self.figure is not None:
            if self._close_cid is not None:
                self.figure.canvas.mpl_disconnect(self._close_cid)
            plt.close(self.figure)
        self.registry.unregister(self)
        LOGGER.info("Closed session %r", self.name, extra={"session": self.id})

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<ViewSession {self.name!r} {state}>"
