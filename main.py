import argparse
import logging
import sys

from PySide6.QtWidgets import QApplication, QMessageBox

from scrollstitch.config import APP_NAME, load_config
from scrollstitch.sampler import Region
from scrollstitch.scroll_capture_manager import ScrollCaptureManager

_APP_CTX = None


def parse_args(argv):
    parser = argparse.ArgumentParser(prog=APP_NAME, description="Скролл-захват области экрана")
    parser.add_argument("left", type=int)
    parser.add_argument("top", type=int)
    parser.add_argument("width", type=int)
    parser.add_argument("height", type=int)
    parser.add_argument("-v", "--verbose", action="store_true", help="подробный лог")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)

    manager = ScrollCaptureManager(load_config())

    def on_completed(path: str) -> None:
        print(path)
        app.quit()

    def on_error(message: str) -> None:
        QMessageBox.warning(None, APP_NAME, message)
        app.exit(1)

    manager.capture_completed.connect(on_completed)
    manager.capture_canceled.connect(app.quit)
    manager.error_occurred.connect(on_error)

    global _APP_CTX
    _APP_CTX = manager
    if not manager.start(Region(args.left, args.top, args.width, args.height)):
        return 1
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
