# shot_annote/main_window.py
from __future__ import annotations

import logging
import os
from typing import Optional

from PyQt5.QtCore import Qt, QUrl
from PyQt5.QtMultimedia import QMediaContent, QMediaPlayer
from PyQt5.QtMultimediaWidgets import QVideoWidget
from PyQt5.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSlider,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from .config import AppConfig, save_config
from .dialogs.collision_warning import CollisionWarningDialog
from .domain import AnnotationRecord, NotifyLevel, ResolutionChoice, TimeCode
from .media_import import media_file_filter, media_path_from_uri, validate_local_media_path
from .persistence import AnnotationStore, sidecar_path_for
from .timeutils import ms_to_time_str, ms_to_timecode
from .widgets.annotation_panel import AnnotationPanel
from .widgets.annotations_table import AnnotationsTable
from .workflow import SaveWorkflow, WorkflowState


logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    """
    Player + annotation panel. Acts as the AnnotationHost of the SaveWorkflow:
    it supplies the playback position, shows the overwrite warning and
    surfaces notifications.
    """

    def __init__(self, cfg: Optional[AppConfig] = None, config_path: Optional[str] = None):
        super().__init__()
        self.setWindowTitle("Shot-Annote (Video Annotation Tool)")
        self.resize(1400, 860)

        self.cfg: AppConfig = cfg or AppConfig()
        self._config_path = config_path

        self.media_path: Optional[str] = None
        self.workflow: Optional[SaveWorkflow] = None
        self._collision_dialog: Optional[CollisionWarningDialog] = None

        # Slider update guard
        self._ignore_slider_updates = False

        self.setAcceptDrops(True)
        self._build_ui()
        self._update_enabled_state()

    # ---------------- UI ----------------

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)

        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(6, 6, 6, 6)
        main_layout.setSpacing(6)

        # ===== Top: media path =====
        top = QHBoxLayout()
        self.btn_open = QPushButton("Open Media")
        self.btn_open.clicked.connect(self._choose_media)
        self.media_label = QLabel("No media loaded")
        self.media_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        top.addWidget(self.btn_open)
        top.addWidget(self.media_label, stretch=1)
        main_layout.addLayout(top)

        # ===== Middle: video (left) + annotation panel (right) =====
        split = QSplitter(Qt.Horizontal)
        main_layout.addWidget(split, stretch=10)

        left = QWidget()
        left_lay = QVBoxLayout(left)
        left_lay.setContentsMargins(0, 0, 0, 0)
        left_lay.setSpacing(6)

        self.video_widget = QVideoWidget()
        self.player = QMediaPlayer(self, QMediaPlayer.VideoSurface)
        self.player.setVideoOutput(self.video_widget)
        self.player.positionChanged.connect(self._on_position)
        self.player.durationChanged.connect(self._on_duration)
        self.player.stateChanged.connect(lambda _s: self._update_play_pause_buttons())
        self.player.mediaStatusChanged.connect(self._on_media_status)
        self.player.error.connect(self._on_player_error)
        left_lay.addWidget(self.video_widget, stretch=12)

        play_bar = QHBoxLayout()
        play_bar.setSpacing(8)
        self.btn_play = QPushButton("Play")
        self.btn_pause = QPushButton("Pause")
        self.btn_play.clicked.connect(self.player.play)
        self.btn_pause.clicked.connect(self.player.pause)
        self.slider = QSlider(Qt.Horizontal)
        self.slider.setRange(0, 0)
        self.slider.sliderMoved.connect(self._on_slider_moved)
        self.timeline_label = QLabel("00:00:00 / 00:00:00")
        play_bar.addWidget(self.btn_play)
        play_bar.addWidget(self.btn_pause)
        play_bar.addWidget(self.slider, stretch=1)
        play_bar.addWidget(self.timeline_label)
        left_lay.addLayout(play_bar)

        split.addWidget(left)

        self.panel = AnnotationPanel()
        self.panel.set_shot_types(self.cfg.shot_types)
        self.panel.refresh_requested.connect(self.refresh_timestamp)
        self.panel.save_requested.connect(self._on_save_requested)
        split.addWidget(self.panel)
        split.setStretchFactor(0, 4)
        split.setStretchFactor(1, 1)

        # ===== Bottom: saved annotations =====
        self.table = AnnotationsTable()
        self.table.seek_requested.connect(self._seek_ms)
        main_layout.addWidget(self.table, stretch=4)

        self.statusBar().showMessage("Open a media file to start annotating.")

        for b in (self.btn_open, self.btn_play, self.btn_pause):
            b.setCursor(Qt.PointingHandCursor)

    # ---------------- AnnotationHost ----------------

    def get_current_timestamp(self) -> TimeCode:
        if not self.media_path:
            return TimeCode.zero()
        return ms_to_timecode(self.player.position())

    def present_collision(self, existing: AnnotationRecord, incoming: AnnotationRecord) -> Optional[ResolutionChoice]:
        dlg = CollisionWarningDialog(existing, incoming, self)
        dlg.choice_made.connect(self._on_collision_choice)
        self._collision_dialog = dlg
        self._update_enabled_state()
        dlg.show()
        dlg.raise_()
        # answered later through _on_collision_choice
        return None

    def notify(self, level: NotifyLevel, message: str) -> None:
        self.statusBar().showMessage(message, 8000)
        if level is NotifyLevel.WARNING:
            QMessageBox.warning(self, "Annotation not saved", message)
        elif level is NotifyLevel.ERROR:
            QMessageBox.critical(self, "Save failed", message)

    # ---------------- Media ----------------

    def _choose_media(self):
        start_dir = self.cfg.last_media_dir or os.path.expanduser("~")
        path, _ = QFileDialog.getOpenFileName(self, "Open Media", start_dir, media_file_filter())
        if path:
            self.open_media(path)

    def open_media(self, path_or_uri: str) -> bool:
        path = media_path_from_uri(path_or_uri)
        if path is None:
            QMessageBox.warning(self, "Cannot open media", "Only local files can be annotated (no sidecar for streams).")
            return False
        ok, msg = validate_local_media_path(path)
        if not ok:
            QMessageBox.warning(self, "Cannot open media", msg)
            return False

        if self.workflow is not None:
            self.workflow.abandon()
        self._close_collision_dialog()
        logger.info("Input changed: %s", path)

        self.media_path = os.path.abspath(path)
        sidecar = sidecar_path_for(self.media_path, self.cfg.sidecar_extension)
        self.workflow = SaveWorkflow(sidecar, self, default_shot_type=self.cfg.default_shot_type)

        self.player.setMedia(QMediaContent(QUrl.fromLocalFile(self.media_path)))
        self.media_label.setText(f"{self.media_path}  ->  {os.path.basename(sidecar)}")
        self.panel.set_timestamp(TimeCode.zero())
        self._reload_table()

        self.cfg.last_media_dir = os.path.dirname(self.media_path)
        self._save_config()
        self._update_enabled_state()
        return True

    def _reload_table(self, select: Optional[AnnotationRecord] = None) -> None:
        if self.workflow is None:
            self.table.set_records([])
            return
        store = AnnotationStore.load(self.workflow.sidecar_path)
        self.table.set_records(store.records)
        self.table.select_record(select)
        if store.skipped_lines:
            self.statusBar().showMessage(
                f"{store.skipped_lines} line(s) in {os.path.basename(store.path)} are not annotations "
                "and will be dropped on the next save.",
                10000,
            )

    # ---------------- Annotation actions ----------------

    def refresh_timestamp(self) -> None:
        tc = self.get_current_timestamp()
        self.panel.set_timestamp(tc)
        logger.info("Timestamp refreshed to: %s", tc)

    def _on_save_requested(self, description: str, shot_type: str) -> None:
        if self.workflow is None:
            QMessageBox.warning(self, "No media", "Open a media file first.")
            return
        state = self.workflow.save(description, shot_type, timestamp=self.panel.timestamp())
        self._after_workflow_step(state)

    def _on_collision_choice(self, choice: ResolutionChoice) -> None:
        self._collision_dialog = None
        if self.workflow is None or not self.workflow.is_awaiting_resolution:
            return
        state = self.workflow.resolve(choice)
        self._after_workflow_step(state)

    def _after_workflow_step(self, state: WorkflowState) -> None:
        if state is WorkflowState.PERSISTED:
            self.panel.clear_inputs()
            self._reload_table(select=self.workflow.last_saved)
        elif state is WorkflowState.CANCELLED:
            self.statusBar().showMessage("Annotation not saved.", 5000)
        elif state is WorkflowState.AWAITING_RESOLUTION and self._collision_dialog is None:
            # write failed after a choice: ask again so the user can retry or cancel
            existing, incoming = self.workflow.pending
            self.present_collision(existing, incoming)
        self._update_enabled_state()

    def _close_collision_dialog(self) -> None:
        dlg = self._collision_dialog
        self._collision_dialog = None
        if dlg is not None:
            try:
                dlg.choice_made.disconnect(self._on_collision_choice)
            except TypeError:
                pass
            dlg.close()

    # ---------------- Playback + slider ----------------

    def _on_position(self, pos_ms: int):
        if self._ignore_slider_updates:
            return
        self._ignore_slider_updates = True
        try:
            self.slider.setValue(max(0, int(pos_ms)))
        finally:
            self._ignore_slider_updates = False
        self._update_timeline_label(int(pos_ms), int(self.player.duration()))

    def _on_duration(self, dur_ms: int):
        self.slider.setRange(0, max(0, int(dur_ms)))
        self._update_timeline_label(int(self.player.position()), int(dur_ms))

    def _on_slider_moved(self, pos: int):
        self._seek_ms(pos)

    def _seek_ms(self, ms: int) -> None:
        if not self.media_path:
            return
        self._ignore_slider_updates = True
        try:
            self.player.setPosition(max(0, int(ms)))
        finally:
            self._ignore_slider_updates = False
        self._update_timeline_label(int(ms), int(self.player.duration()))

    def _on_media_status(self, status):
        if status == QMediaPlayer.LoadedMedia:
            self.refresh_timestamp()

    def _on_player_error(self, _err):
        msg = self.player.errorString() or "Unknown playback error."
        logger.error("Player error: %s", msg)
        self.statusBar().showMessage(msg, 8000)

    def _update_timeline_label(self, pos_ms: int, dur_ms: int):
        self.timeline_label.setText(f"{ms_to_time_str(pos_ms)} / {ms_to_time_str(dur_ms)}")

    def _update_play_pause_buttons(self) -> None:
        has_media = bool(self.media_path)
        playing = self.player.state() == QMediaPlayer.PlayingState
        self.btn_play.setEnabled(has_media and not playing)
        self.btn_pause.setEnabled(has_media and playing)

    # ---------------- Helpers ----------------

    def _update_enabled_state(self):
        has_media = bool(self.media_path)
        awaiting = bool(self.workflow and self.workflow.is_awaiting_resolution)
        # one save at a time: no new save while the overwrite warning is open
        self.panel.set_save_enabled(has_media and not awaiting)
        self.panel.btn_refresh.setEnabled(has_media)
        self.slider.setEnabled(has_media)
        self._update_play_pause_buttons()

    def _save_config(self) -> None:
        try:
            save_config(self.cfg, self._config_path)
        except OSError as e:
            logger.warning("Could not save config: %s", e)

    def closeEvent(self, event):
        if self.workflow is not None:
            self.workflow.abandon()
        self._close_collision_dialog()
        self.player.stop()
        self._save_config()
        super().closeEvent(event)

    # ---------------- Drag & drop ----------------

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event):
        urls = event.mimeData().urls()
        if urls:
            self.open_media(urls[0].toString())
