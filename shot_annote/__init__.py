# shot_annote/__init__.py
'''
shot_annote/
    __init__.py
    __main__.py

    app.py                 # QApplication + boot + argument parsing + logging setup
    main_window.py         # QMainWindow: player, annotation panel, saved-annotations table

    domain.py              # dataclasses: TimeCode, AnnotationRecord; ResolutionChoice, NotifyLevel
    persistence.py         # sidecar path, atomic write, AnnotationStore (load/merge/sort/persist)
    resolver.py            # timestamp collision -> record to write
    workflow.py            # SaveWorkflow state machine + AnnotationHost protocol
    config.py              # ~/.shot_annote/config.json
    media_import.py        # media path / file:// uri helpers, extension validation
    timeutils.py           # ms/us <-> TimeCode, clock label

    widgets/
      annotation_panel.py  # timestamp label + description/shot inputs + Refresh/Save/Clear
      annotations_table.py # read-only table of the sidecar, double click seeks

    dialogs/
      collision_warning.py # Proceed / Refresh and Proceed / Cancel
'''

from __future__ import annotations

__all__ = ["__version__", "run_app"]

__version__ = "0.1.0"


def run_app(argv=None) -> int:
    from .app import run_app as _run_app

    return _run_app(argv)
