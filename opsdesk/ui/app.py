from __future__ import annotations
import logging
import sys

from PySide6.QtWidgets import QApplication, QDialog

from opsdesk.core.config import get_settings
from opsdesk.core.logging import configure_logging
from opsdesk.core.services.auth_service import AuthService
from opsdesk.core.storage.api_repo import ApiClient
from opsdesk.core.storage.session_store import SessionStore
from opsdesk.ui.main_window import MainWindow
from opsdesk.ui.widgets.login_dialog import LoginDialog

log = logging.getLogger(__name__)


def main() -> int:
    configure_logging()
    settings = get_settings()
    app = QApplication(sys.argv)

    client = ApiClient(settings)
    auth = AuthService(client, SessionStore(settings.session_path))

    session = auth.restore()
    if session is None:
        dlg = LoginDialog(auth)
        if dlg.exec() != QDialog.Accepted or dlg.session is None:
            return 0
        session = dlg.session

    log.info("API %s, utilisateur %s", settings.api_url, session.user.username)
    win = MainWindow(client, session, settings)
    win.show()
    try:
        return app.exec()
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
