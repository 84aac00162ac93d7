# shot_annote/widgets/annotation_panel.py
from __future__ import annotations

from typing import List, Optional

from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QComboBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..domain import TimeCode


class AnnotationPanel(QGroupBox):
    """
    Right panel: captured timestamp, description, shot type and the
    Refresh / Save / Clear buttons.

    The timestamp shown is captured when media is opened or Refresh is
    pressed; Save uses that captured value, not the live position.

    Emits:
      - refresh_requested()
      - save_requested(description: str, shot_type: str)
    """
    refresh_requested = pyqtSignal()
    save_requested = pyqtSignal(str, str)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__("Annotate", parent)
        self._timestamp = TimeCode.zero()
        self._build_ui()

    # ---------------- UI ----------------

    def _build_ui(self):
        layout = QVBoxLayout()
        layout.setContentsMargins(6, 6, 6, 6)
        layout.setSpacing(6)
        self.setLayout(layout)

        form = QFormLayout()
        self.timestamp_label = QLabel(self._timestamp.format())
        self.timestamp_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        form.addRow("Current Timestamp:", self.timestamp_label)

        self.description_input = QLineEdit()
        self.description_input.setPlaceholderText("What happens here")
        self.description_input.returnPressed.connect(self._on_save)
        form.addRow("Description:", self.description_input)

        self.shot_input = QComboBox()
        self.shot_input.setEditable(True)
        self.shot_input.setInsertPolicy(QComboBox.NoInsert)
        self.shot_input.lineEdit().setPlaceholderText("N/A")
        form.addRow("Type of Shot:", self.shot_input)
        layout.addLayout(form)

        btn_row = QHBoxLayout()
        self.btn_refresh = QPushButton("Refresh Timestamp")
        self.btn_refresh.clicked.connect(lambda: self.refresh_requested.emit())
        self.btn_save = QPushButton("Save")
        self.btn_save.clicked.connect(self._on_save)
        self.btn_clear = QPushButton("Clear")
        self.btn_clear.clicked.connect(self.clear_inputs)
        btn_row.addWidget(self.btn_refresh)
        btn_row.addStretch()
        btn_row.addWidget(self.btn_save)
        btn_row.addWidget(self.btn_clear)
        layout.addLayout(btn_row)
        layout.addStretch()

        for b in (self.btn_refresh, self.btn_save, self.btn_clear):
            b.setCursor(Qt.PointingHandCursor)

    # ---------------- Public API ----------------

    def set_shot_types(self, shot_types: List[str]) -> None:
        current = self.shot_input.currentText()
        self.shot_input.clear()
        self.shot_input.addItems([s for s in shot_types or [] if s])
        self.shot_input.setEditText(current)

    def set_timestamp(self, tc: TimeCode) -> None:
        self._timestamp = tc or TimeCode.zero()
        self.timestamp_label.setText(self._timestamp.format())

    def timestamp(self) -> TimeCode:
        return self._timestamp

    def set_save_enabled(self, enabled: bool) -> None:
        self.btn_save.setEnabled(bool(enabled))

    def clear_inputs(self) -> None:
        self.description_input.clear()
        self.shot_input.setEditText("")
        self.description_input.setFocus()

    # ---------------- Actions ----------------

    def _on_save(self):
        if not self.btn_save.isEnabled():
            return
        self.save_requested.emit(self.description_input.text(), self.shot_input.currentText())
