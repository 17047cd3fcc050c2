from __future__ import annotations

import time
from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .config import ClientSettings, get_settings
from .sync import ClientState, ClientStateSynchronizer, leader_board_rows
from .ws_client import ConnectionManager

FORM_FIELDS = (("name", "Name"), ("email", "Email"))


class AppWindow(QMainWindow):
    def __init__(
        self,
        synchronizer: Optional[ClientStateSynchronizer] = None,
        config: Optional[ClientSettings] = None,
    ) -> None:
        super().__init__()
        self.config = config or get_settings()
        self.synchronizer = synchronizer or ClientStateSynchronizer(
            ConnectionManager(self.config), self.config
        )

        self.setWindowTitle(self.config.app_name)
        self.resize(960, 640)

        self.mode_buttons: list[QPushButton] = []
        self.field_inputs: dict[str, QLineEdit] = {}
        self._last_state: Optional[ClientState] = None

        self._build_ui()
        self._apply_styles()
        self.synchronizer.state_changed.connect(self._render)
        self._render(self.synchronizer.state)
        self._switch_mode(0)

    def _build_ui(self) -> None:
        container = QWidget()
        outer_layout = QVBoxLayout(container)
        outer_layout.setSpacing(16)
        outer_layout.setContentsMargins(18, 18, 18, 18)

        outer_layout.addWidget(self._build_top_bar())

        self.mode_stack = QStackedWidget()
        self.mode_stack.addWidget(self._build_start_page())
        self.mode_stack.addWidget(self._build_results_page())
        outer_layout.addWidget(self.mode_stack, stretch=1)

        self.log_box = self._build_log_box()
        outer_layout.addWidget(self.log_box)

        self.setCentralWidget(container)

    def _build_top_bar(self) -> QWidget:
        bar = QWidget()
        bar.setObjectName("TopBar")
        layout = QHBoxLayout(bar)
        layout.setContentsMargins(20, 10, 20, 10)
        layout.setSpacing(14)

        title = QLabel(self.config.app_name)
        title.setObjectName("LogoTitle")
        layout.addWidget(title)

        self.connection_label = QLabel()
        self.connection_label.setObjectName("ConnectionStatus")
        layout.addWidget(self.connection_label)

        layout.addStretch()

        self.mode_buttons = []
        layout.addWidget(self._create_mode_button("Start", 0))
        layout.addWidget(self._create_mode_button("Results", 1))
        return bar

    def _create_mode_button(self, text: str, index: int) -> QPushButton:
        button = QPushButton(text)
        button.setCheckable(True)
        button.setObjectName("ModeButton")
        button.clicked.connect(lambda _: self._switch_mode(index))
        self.mode_buttons.append(button)
        return button

    def _switch_mode(self, index: int) -> None:
        self.mode_stack.setCurrentIndex(index)
        for i, button in enumerate(self.mode_buttons):
            button.blockSignals(True)
            button.setChecked(i == index)
            button.blockSignals(False)

    def _build_start_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        layout.setSpacing(12)

        self.phase_label = QLabel()
        self.phase_label.setObjectName("PhaseStatus")
        self.phase_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.phase_label)

        form_box = QGroupBox("Registration")
        form_box.setObjectName("FormBox")
        form_layout = QVBoxLayout(form_box)
        form_layout.setSpacing(12)
        form_layout.setContentsMargins(20, 20, 20, 24)

        for key, label in FORM_FIELDS:
            line_edit = QLineEdit()
            line_edit.setPlaceholderText(label)
            line_edit.textChanged.connect(lambda text, k=key: self.synchronizer.set_user_field(k, text.strip()))
            self.field_inputs[key] = line_edit
            form_layout.addWidget(line_edit)

        action_row = QHBoxLayout()
        action_row.addStretch(1)
        self.register_btn = QPushButton("Register")
        self.register_btn.clicked.connect(self._submit_registration)
        action_row.addWidget(self.register_btn)
        form_layout.addLayout(action_row)

        layout.addWidget(form_box)
        layout.addStretch(1)
        return page

    def _build_results_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self.leader_table = QTableWidget(0, 3)
        self.leader_table.setObjectName("LeaderBoard")
        self.leader_table.setHorizontalHeaderLabels(["#", "Player", "Score"])
        self.leader_table.verticalHeader().setVisible(False)
        self.leader_table.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)
        self.leader_table.setEditTriggers(QTableWidget.NoEditTriggers)
        layout.addWidget(self.leader_table)
        return page

    def _build_log_box(self) -> QGroupBox:
        box = QGroupBox("Activity")
        box.setObjectName("LogBox")
        layout = QVBoxLayout(box)
        layout.setContentsMargins(16, 12, 16, 16)

        self.activity_log = QPlainTextEdit()
        self.activity_log.setReadOnly(True)
        self.activity_log.setFixedHeight(120)
        layout.addWidget(self.activity_log)
        return box

    def _apply_styles(self) -> None:
        self.setStyleSheet(
            """
            QWidget {
                background-color: #1e1f2e;
                color: #f1f2f8;
                font-family: "Segoe UI", "Tahoma", sans-serif;
                font-size: 11pt;
            }
            #TopBar {
                background: #232437;
                border: 1px solid #2f314b;
                border-radius: 14px;
            }
            #LogoTitle {
                font-size: 15pt;
                font-weight: 600;
            }
            #FormBox, #LogBox {
                background: #232437;
                border-radius: 16px;
            }
            QLineEdit {
                background: #1b1c29;
                border: 1px solid #3e4164;
                border-radius: 8px;
                padding: 8px 12px;
            }
            QLineEdit:disabled, QPushButton:disabled {
                color: #7f80a0;
            }
            QPushButton {
                background: #4b5fe0;
                border: none;
                border-radius: 8px;
                color: white;
                padding: 8px 20px;
                font-weight: 600;
            }
            QPushButton#ModeButton {
                background: transparent;
                border: 1px solid #3a3b5a;
                border-radius: 16px;
            }
            QPushButton#ModeButton:checked {
                background: #3c46c5;
            }
            """
        )

    def _submit_registration(self) -> None:
        user = self.synchronizer.user_input
        if not user:
            self._append_activity("Fill in the form before registering.")
            return
        sent = self.synchronizer.register()
        if sent:
            self._append_activity(f"Registration sent for {user.get('name', 'player')}.")
        else:
            self._append_activity("Not connected; registration was not sent.")
        remaining = self.synchronizer.user_input
        for key, line_edit in self.field_inputs.items():
            line_edit.blockSignals(True)
            line_edit.setText(str(remaining.get(key, "")))
            line_edit.blockSignals(False)

    def _render(self, state: ClientState) -> None:
        previous = self._last_state
        self._last_state = state

        self.connection_label.setText("● Connected" if state.connected else "○ Disconnected")
        if state.game_in_progress:
            self.phase_label.setText("Registration is closed. The game is in progress.")
        else:
            self.phase_label.setText("Registration is open.")

        form_enabled = not state.form_disabled and not state.game_in_progress
        for line_edit in self.field_inputs.values():
            line_edit.setEnabled(form_enabled)
        self.register_btn.setEnabled(form_enabled)

        rows = leader_board_rows(list(state.leader_board))
        self.leader_table.setRowCount(len(rows))
        for index, (name, score) in enumerate(rows):
            self.leader_table.setItem(index, 0, QTableWidgetItem(str(index + 1)))
            self.leader_table.setItem(index, 1, QTableWidgetItem(name))
            self.leader_table.setItem(index, 2, QTableWidgetItem(score))

        if previous is not None and previous.connected != state.connected:
            self._append_activity("Connected to server." if state.connected else "Connection lost, retrying…")
        if previous is not None and previous.phase != state.phase:
            self._append_activity(self.phase_label.text())

    def _append_activity(self, message: str) -> None:
        timestamp = time.strftime("%H:%M:%S")
        self.activity_log.appendPlainText(f"[{timestamp}] {message}")
        self.activity_log.verticalScrollBar().setValue(self.activity_log.verticalScrollBar().maximum())
