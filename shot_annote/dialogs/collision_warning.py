# shot_annote/dialogs/collision_warning.py
from __future__ import annotations

from typing import Optional

from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
)

from ..domain import AnnotationRecord, ResolutionChoice


class CollisionWarningDialog(QDialog):
    """
    Non-modal warning shown when an annotation already exists at the timestamp.

    Emits choice_made(ResolutionChoice) exactly once; closing the window
    counts as Cancel.
    """
    choice_made = pyqtSignal(object)  # ResolutionChoice

    def __init__(self, existing: AnnotationRecord, incoming: AnnotationRecord, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Warning: Overwriting Annotation")
        self.setModal(False)
        self.setAttribute(Qt.WA_DeleteOnClose, True)

        self._existing = existing
        self._incoming = incoming
        self._choice: Optional[ResolutionChoice] = None

        self._build_ui()

    def choice(self) -> Optional[ResolutionChoice]:
        return self._choice

    # ---------------- UI ----------------

    def _build_ui(self):
        layout = QVBoxLayout(self)
        layout.setSpacing(8)

        layout.addWidget(QLabel("An annotation with the same timestamp already exists:"))
        layout.addWidget(self._line_label(self._existing))
        layout.addWidget(QLabel("New annotation:"))
        layout.addWidget(self._line_label(self._incoming))

        btn_row = QHBoxLayout()
        self.btn_proceed = QPushButton("Proceed")
        self.btn_refresh = QPushButton("Refresh and Proceed")
        self.btn_cancel = QPushButton("Cancel")
        self.btn_proceed.setToolTip("Replace the existing annotation with the new one.")
        self.btn_refresh.setToolTip("Keep the existing annotation; save the new one at the current playback time.")
        self.btn_cancel.setToolTip("Keep the file as it is.")

        self.btn_proceed.clicked.connect(lambda: self._choose(ResolutionChoice.PROCEED))
        self.btn_refresh.clicked.connect(lambda: self._choose(ResolutionChoice.REFRESH_AND_PROCEED))
        self.btn_cancel.clicked.connect(lambda: self._choose(ResolutionChoice.CANCEL))

        btn_row.addWidget(self.btn_proceed)
        btn_row.addWidget(self.btn_refresh)
        btn_row.addStretch()
        btn_row.addWidget(self.btn_cancel)
        layout.addLayout(btn_row)

        for b in (self.btn_proceed, self.btn_refresh, self.btn_cancel):
            b.setCursor(Qt.PointingHandCursor)
        self.btn_cancel.setDefault(True)

    @staticmethod
    def _line_label(rec: AnnotationRecord) -> QLabel:
        lbl = QLabel(f"{rec.timestamp.format()}    {rec.description}    [{rec.shot_type}]")
        lbl.setTextInteractionFlags(Qt.TextSelectableByMouse)
        lbl.setStyleSheet("font-family: monospace; padding-left: 12px;")
        return lbl

    # ---------------- Actions ----------------

    def _choose(self, choice: ResolutionChoice) -> None:
        if self._choice is not None:
            return
        self._choice = choice
        self.choice_made.emit(choice)
        self.accept()

    def closeEvent(self, event):
        if self._choice is None:
            self._choice = ResolutionChoice.CANCEL
            self.choice_made.emit(ResolutionChoice.CANCEL)
        super().closeEvent(event)

    def reject(self):
        # Esc key
        if self._choice is None:
            self._choice = ResolutionChoice.CANCEL
            self.choice_made.emit(ResolutionChoice.CANCEL)
        super().reject()
