"""Guard against GUI toolkit imports in core modules.

Run this script in CI or locally to ensure the reactive/display core stays
usable with any canvas implementation.
"""

from __future__ import annotations

from pathlib import Path
import sys


CORE_MODULES = [
    "src/imageview/signals.py",
    "src/imageview/zoom.py",
    "src/imageview/coordinate_transforms.py",
    "src/imageview/slicing.py",
    "src/imageview/contrast.py",
    "src/imageview/histogram.py",
    "src/imageview/annotations.py",
    "src/imageview/pyramid.py",
    "src/imageview/display.py",
    "src/imageview/canvas.py",
]

FORBIDDEN = ("matplotlib", "PyQt", "PySide", "QtCore", "QtWidgets", "tkinter")


def main() -> int:
    bad = []
    for rel in CORE_MODULES:
        path = Path(rel)
        if not path.exists():
            bad.append(f"{rel} is missing")
            continue
        text = path.read_text(encoding="utf-8", errors="ignore")
        for token in FORBIDDEN:
            if token in text:
                bad.append(f"{rel} contains '{token}'")
                break
    if bad:
        sys.stderr.write("Toolkit import guard failed:\n")
        sys.stderr.write("\n".join(bad))
        sys.stderr.write("\n")
        return 2
    print("Toolkit import guard passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
