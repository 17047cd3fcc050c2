from __future__ import annotations

import logging
import os
import sys

from PyQt5.QtWidgets import QApplication


def _resolve_imports():
    if __package__:
        return

    parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if parent_dir not in sys.path:
        sys.path.append(parent_dir)


def main() -> int:
    _resolve_imports()

    from arena_gui.app_window import AppWindow
    from arena_gui.config import get_settings
    from arena_gui.sync import ClientStateSynchronizer
    from arena_gui.ws_client import ConnectionManager

    config = get_settings()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    connection = ConnectionManager(config)
    synchronizer = ClientStateSynchronizer(connection, config)
    window = AppWindow(synchronizer=synchronizer, config=config)
    app.aboutToQuit.connect(connection.disconnect)
    connection.connect(config.server_url)
    window.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(main())
