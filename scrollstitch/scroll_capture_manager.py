"""Ручной скролл-захват фиксированной области экрана."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Optional
from uuid import uuid4

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtWidgets import QDialog, QHBoxLayout, QLabel, QPushButton, QVBoxLayout

from .config import ScrollCaptureConfig, load_config
from .errors import CancelledError, ScrollCaptureError
from .image_stitcher import to_pil
from .sampler import Region
from .session import CaptureResult
from .session_runner import Sampler, ScrollCaptureSession

OUTPUT_DIR = Path(tempfile.gettempdir()) / "scrollstitch"


class ScrollControlDialog(QDialog):
    finish_requested = Signal()
    canceled = Signal()

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Scroll Capture")
        self.setModal(False)
        self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)
        self._handled = False
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        self.hint = QLabel("Прокручивайте содержимое, кадры снимаются сами.")
        self.frames_label = QLabel("Кадров: 0")
        layout.addWidget(self.hint)
        layout.addWidget(self.frames_label)

        buttons = QHBoxLayout()
        self.btn_finish = QPushButton("Готово")
        self.btn_cancel = QPushButton("Отмена")

        self.btn_finish.clicked.connect(self._on_finish)
        self.btn_cancel.clicked.connect(self._on_cancel)

        buttons.addWidget(self.btn_finish)
        buttons.addWidget(self.btn_cancel)
        layout.addLayout(buttons)

    def _on_finish(self) -> None:
        self.btn_finish.setEnabled(False)
        self.btn_cancel.setEnabled(False)
        self.hint.setText("Склейка...")
        self._handled = True
        self.finish_requested.emit()

    def _on_cancel(self) -> None:
        self._handled = True
        self.canceled.emit()
        self.close()

    def dismiss(self) -> None:
        """Закрывает окно без отмены сессии."""
        self._handled = True
        self.close()

    def closeEvent(self, event) -> None:
        # Закрытие крестиком равносильно отмене
        if not self._handled:
            self._handled = True
            self.canceled.emit()
        super().closeEvent(event)

    def update_frames(self, count: int) -> None:
        self.frames_label.setText(f"Кадров: {count}")

    def show_end_of_content(self) -> None:
        self.hint.setText("Похоже, содержимое закончилось. Нажмите «Готово».")


class ScrollCaptureManager(QObject):
    """Связывает сессию скролл-захвата с окном управления и сохраняет результат."""

    capture_started = Signal()
    frame_captured = Signal(int)
    capture_completed = Signal(str)
    capture_canceled = Signal()
    error_occurred = Signal(str)

    def __init__(
        self,
        config: Optional[ScrollCaptureConfig] = None,
        sampler: Optional[Sampler] = None,
        output_dir: Path = OUTPUT_DIR,
        session: Optional[ScrollCaptureSession] = None,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self.config = config or load_config()
        self.output_dir = Path(output_dir)
        self.session = session or ScrollCaptureSession(sampler=sampler, config=self.config, parent=self)
        self.session.end_of_content.connect(self._on_end_of_content)
        self._dialog: Optional[ScrollControlDialog] = None

    def start(self, region: Optional[Region]) -> bool:
        try:
            self.session.start(region, on_progress=self._on_frame_captured, on_complete=self._on_session_complete)
        except ScrollCaptureError as exc:
            self.error_occurred.emit(str(exc))
            return False
        self._show_dialog()
        self.capture_started.emit()
        return True

    # ---- dialog ----
    def _show_dialog(self) -> None:
        self._dialog = ScrollControlDialog()
        self._dialog.finish_requested.connect(self.session.finish)
        self._dialog.canceled.connect(self.session.cancel)
        self._dialog.show()

    def _close_dialog(self) -> None:
        if self._dialog:
            self._dialog.dismiss()
            self._dialog = None

    # ---- session callbacks ----
    def _on_frame_captured(self, count: int) -> None:
        self.frame_captured.emit(count)
        if self._dialog:
            self._dialog.update_frames(count)

    def _on_end_of_content(self, _count: int) -> None:
        if self._dialog:
            self._dialog.show_end_of_content()

    def _on_session_complete(self, result: CaptureResult) -> None:
        self._close_dialog()
        if isinstance(result.error, CancelledError):
            self.capture_canceled.emit()
            return
        if not result.ok:
            self.error_occurred.emit(str(result.error))
            return

        try:
            final_path = self.save(result.unwrap())
        except (OSError, ValueError) as exc:
            logging.exception("Ошибка сохранения результата: %s", exc)
            self.error_occurred.emit(f"Не удалось сохранить изображение: {exc}")
            return
        self.capture_completed.emit(str(final_path))

    def save(self, image) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"scroll_{uuid4().hex}.png"
        to_pil(image).save(output_path, format="PNG", optimize=True)
        return output_path
