# -*- coding: utf-8 -*-
from __future__ import annotations

import os
import shutil
import tempfile
import unittest
from pathlib import Path

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PIL import Image
from PySide6.QtWidgets import QApplication

from scrollstitch.config import ScrollCaptureConfig
from scrollstitch.sampler import Region
from scrollstitch.session import SessionState
from scrollstitch.scroll_capture_manager import ScrollCaptureManager
from scrollstitch.session_runner import ScrollCaptureSession
from synthetic import scroll_pair


class _Clock:
    now = 0.0

    def __call__(self) -> float:
        return self.now


class _Sampler:
    frame = None

    def __call__(self, region):
        return self.frame


class ScrollCaptureManagerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._app = QApplication.instance() or QApplication([])

    def setUp(self) -> None:
        self.tmp_dir = Path(tempfile.mkdtemp())
        self.clock = _Clock()
        self.sampler = _Sampler()
        session = ScrollCaptureSession(sampler=self.sampler, clock=self.clock, threaded_stitching=False)
        self.manager = ScrollCaptureManager(
            config=ScrollCaptureConfig(), output_dir=self.tmp_dir, session=session
        )
        self.completed = []
        self.errors = []
        self.canceled = []
        self.manager.capture_completed.connect(self.completed.append)
        self.manager.error_occurred.connect(self.errors.append)
        self.manager.capture_canceled.connect(lambda: self.canceled.append(True))

    def tearDown(self) -> None:
        self.manager.session.cancel()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _feed(self, frame, at: float) -> None:
        self.sampler.frame = frame
        self.clock.now = at
        self.manager.session.tick()

    def test_finish_saves_png(self) -> None:
        _, top, bottom = scroll_pair(overlap=100)
        self.assertTrue(self.manager.start(Region(0, 0, 120, 500)))

        self._feed(top, 0.0)
        self._feed(top, 0.3)
        self._feed(bottom, 0.4)
        self._feed(bottom, 0.8)
        self.assertEqual(self.manager._dialog.frames_label.text(), "Кадров: 2")

        self.manager._dialog.btn_finish.click()

        self.assertEqual(self.errors, [])
        self.assertEqual(self.canceled, [])
        self.assertEqual(len(self.completed), 1)
        saved = Path(self.completed[0])
        self.assertEqual(saved.parent, self.tmp_dir)
        with Image.open(saved) as img:
            self.assertEqual(img.size, (120, 900))
        self.assertIsNone(self.manager._dialog)

    def test_cancel_button(self) -> None:
        self.manager.start(Region(0, 0, 120, 500))

        self.manager._dialog.btn_cancel.click()

        self.assertEqual(self.canceled, [True])
        self.assertEqual(self.completed, [])
        self.assertEqual(self.errors, [])

    def test_missing_region_reports_error(self) -> None:
        self.assertFalse(self.manager.start(None))
        self.assertEqual(len(self.errors), 1)
        self.assertIsNone(self.manager._dialog)

    def test_closing_dialog_cancels_session(self) -> None:
        self.manager.start(Region(0, 0, 120, 500))
        self.assertTrue(self.manager.session.timer_active)

        self.manager._dialog.close()

        self.assertEqual(self.canceled, [True])
        self.assertIs(self.manager.session.state, SessionState.CANCELLED)
        self.assertFalse(self.manager.session.timer_active)
        self.assertIsNone(self.manager._dialog)

    def test_cancel_button_cancels_once(self) -> None:
        self.manager.start(Region(0, 0, 120, 500))
        dialog = self.manager._dialog
        emitted = []
        dialog.canceled.connect(lambda: emitted.append(True))

        dialog.btn_cancel.click()
        dialog.close()

        self.assertEqual(emitted, [True])
        self.assertEqual(self.canceled, [True])


if __name__ == "__main__":
    unittest.main()
