from __future__ import annotations
from typing import Optional
from PySide6.QtWidgets import QDialog, QVBoxLayout, QFormLayout, QLineEdit, QDialogButtonBox, QLabel

from opsdesk.core.errors import OpsDeskError
from opsdesk.core.models.user import Session
from opsdesk.core.services.auth_service import AuthService


class LoginDialog(QDialog):
    def __init__(self, auth: AuthService, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Sign in")
        self.setModal(True)
        self.auth = auth
        self.session: Optional[Session] = None

        self.ed_user = QLineEdit()
        self.ed_pass = QLineEdit(); self.ed_pass.setEchoMode(QLineEdit.Password)
        self.lab_error = QLabel(); self.lab_error.setStyleSheet("color: #b00020;")

        form = QFormLayout()
        form.addRow("Username", self.ed_user)
        form.addRow("Password", self.ed_pass)

        btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        btns.accepted.connect(self._login)
        btns.rejected.connect(self.reject)

        lay = QVBoxLayout(self)
        lay.addLayout(form)
        lay.addWidget(self.lab_error)
        lay.addWidget(btns)

    def _login(self):
        try:
            self.session = self.auth.login(self.ed_user.text(), self.ed_pass.text())
        except OpsDeskError as e:
            self.lab_error.setText(e.message)
            return
        self.accept()
