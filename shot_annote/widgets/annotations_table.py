# shot_annote/widgets/annotations_table.py
from __future__ import annotations

from typing import List, Optional

from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtWidgets import (
    QAbstractItemView,
    QTableWidget,
    QTableWidgetItem,
    QWidget,
)

from ..domain import AnnotationRecord
from ..timeutils import timecode_to_ms


TABLE_COLUMNS = ["timestamp", "description", "shot_type"]


class AnnotationsTable(QTableWidget):
    """
    Bottom table mirroring the sidecar file (read-only, sorted by timestamp).

    Signals:
      - seek_requested(ms) on double click
    """
    seek_requested = pyqtSignal(int)

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(0, len(TABLE_COLUMNS), parent)

        self.setHorizontalHeaderLabels(TABLE_COLUMNS)
        self.horizontalHeader().setStretchLastSection(True)
        self.horizontalHeader().setDefaultSectionSize(140)
        self.verticalHeader().setVisible(False)

        self.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setEditTriggers(QAbstractItemView.NoEditTriggers)

        self.cellDoubleClicked.connect(self._on_double_click)

        self._records: List[AnnotationRecord] = []

    # ---------------- Public API ----------------

    def set_records(self, records: List[AnnotationRecord]) -> None:
        self._records = sorted(records or [], key=lambda r: r.timestamp)
        self.refresh()

    def records(self) -> List[AnnotationRecord]:
        return list(self._records)

    def select_record(self, rec: Optional[AnnotationRecord]) -> None:
        if rec is None:
            return
        for row, r in enumerate(self._records):
            if r.timestamp == rec.timestamp:
                self.selectRow(row)
                self.scrollToItem(self.item(row, 0))
                return

    # ---------------- Rendering ----------------

    def refresh(self) -> None:
        self.setRowCount(0)
        for rec in self._records:
            row = self.rowCount()
            self.insertRow(row)
            values = [rec.timestamp.format(), rec.description, rec.shot_type]
            for col, val in enumerate(values):
                item = QTableWidgetItem(val)
                item.setToolTip(val)
                item.setFlags(item.flags() & ~Qt.ItemIsEditable)
                self.setItem(row, col, item)

    def _on_double_click(self, row: int, _col: int) -> None:
        if 0 <= row < len(self._records):
            self.seek_requested.emit(timecode_to_ms(self._records[row].timestamp))
