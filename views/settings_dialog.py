"""
Settings Dialog.

Provides UI for viewing and editing application settings.
"""

import os
import platform
import subprocess

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QTabWidget,
    QWidget, QFormLayout, QLineEdit, QPushButton,
    QSpinBox, QDoubleSpinBox, QCheckBox, QComboBox,
    QGroupBox, QLabel, QFileDialog, QDialogButtonBox,
    QMessageBox, QFrame
)

from services.settings_manager import get_settings


class SettingsDialog(QDialog):
    """
    Settings dialog with tabbed interface.

    Tabs:
    - Storage (where saved funnels live)
    - Editor (canvas and editing preferences)
    """

    settingsChanged = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._settings = get_settings()
        self._setup_ui()
        self._load_current_settings()

    def _setup_ui(self):
        self.setWindowTitle("Settings")
        self.setMinimumWidth(520)
        self.setMinimumHeight(420)

        layout = QVBoxLayout(self)

        self._tabs = QTabWidget()
        self._tabs.addTab(self._create_storage_tab(), "Storage")
        self._tabs.addTab(self._create_editor_tab(), "Editor")
        layout.addWidget(self._tabs)

        # Settings file location info
        info_frame = QFrame()
        info_frame.setStyleSheet("""
            QFrame {
                background: #F3F4F6;
                border-radius: 4px;
                padding: 8px;
            }
            QLabel {
                color: #6B7280;
                font-size: 11px;
            }
        """)
        info_layout = QHBoxLayout(info_frame)
        info_layout.setContentsMargins(8, 4, 8, 4)

        path_label = QLabel(f"Settings file: {self._settings.settings_path}")
        path_label.setWordWrap(True)
        info_layout.addWidget(path_label, 1)

        open_btn = QPushButton("Open Folder")
        open_btn.setFixedWidth(100)
        open_btn.clicked.connect(self._open_settings_folder)
        info_layout.addWidget(open_btn)

        layout.addWidget(info_frame)

        # Buttons
        button_layout = QHBoxLayout()

        reset_btn = QPushButton("Reset to Defaults")
        reset_btn.clicked.connect(self._reset_to_defaults)
        button_layout.addWidget(reset_btn)

        button_layout.addStretch()

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok |
            QDialogButtonBox.StandardButton.Cancel |
            QDialogButtonBox.StandardButton.Apply
        )
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        buttons.button(QDialogButtonBox.StandardButton.Apply).clicked.connect(self._apply_settings)
        button_layout.addWidget(buttons)

        layout.addLayout(button_layout)

    def _create_storage_tab(self) -> QWidget:
        """Create storage settings tab."""
        widget = QWidget()
        layout = QVBoxLayout(widget)

        backend_group = QGroupBox("Saved Funnels")
        backend_layout = QFormLayout(backend_group)

        self._backend_combo = QComboBox()
        self._backend_combo.addItem("Local files", "local")
        self._backend_combo.addItem("Supabase", "supabase")
        self._backend_combo.currentIndexChanged.connect(self._on_backend_changed)
        backend_layout.addRow("Backend:", self._backend_combo)

        self._owner_edit = QLineEdit()
        self._owner_edit.setPlaceholderText(self._settings.storage.get_owner_id())
        backend_layout.addRow("Owner ID:", self._owner_edit)

        layout.addWidget(backend_group)

        # Local store
        self._local_group = QGroupBox("Local Files")
        local_layout = QFormLayout(self._local_group)

        dir_layout = QHBoxLayout()
        self._local_dir_edit = QLineEdit()
        self._local_dir_edit.setPlaceholderText(str(self._settings.storage._get_default_local_dir()))
        dir_layout.addWidget(self._local_dir_edit)

        browse_btn = QPushButton("Browse...")
        browse_btn.setFixedWidth(80)
        browse_btn.clicked.connect(self._browse_local_dir)
        dir_layout.addWidget(browse_btn)

        local_layout.addRow("Folder:", dir_layout)
        layout.addWidget(self._local_group)

        # Supabase
        self._supabase_group = QGroupBox("Supabase")
        supabase_layout = QFormLayout(self._supabase_group)

        self._supabase_url_edit = QLineEdit()
        self._supabase_url_edit.setPlaceholderText("https://<project>.supabase.co")
        supabase_layout.addRow("Project URL:", self._supabase_url_edit)

        self._supabase_key_edit = QLineEdit()
        self._supabase_key_edit.setEchoMode(QLineEdit.EchoMode.Password)
        supabase_layout.addRow("API Key:", self._supabase_key_edit)

        hint = QLabel("Leave empty to use SUPABASE_URL and SUPABASE_KEY from the environment.")
        hint.setWordWrap(True)
        hint.setStyleSheet("color: #6B7280; font-size: 11px;")
        supabase_layout.addRow("", hint)

        layout.addWidget(self._supabase_group)

        layout.addStretch()
        return widget

    def _create_editor_tab(self) -> QWidget:
        """Create editor settings tab."""
        widget = QWidget()
        layout = QVBoxLayout(widget)

        # Canvas group
        canvas_group = QGroupBox("Canvas")
        canvas_layout = QFormLayout(canvas_group)

        self._show_grid_check = QCheckBox("Show grid")
        canvas_layout.addRow("", self._show_grid_check)

        self._grid_size_spin = QSpinBox()
        self._grid_size_spin.setRange(10, 200)
        self._grid_size_spin.setSuffix(" px")
        canvas_layout.addRow("Grid Size:", self._grid_size_spin)

        self._zoom_step_spin = QDoubleSpinBox()
        self._zoom_step_spin.setRange(0.05, 0.5)
        self._zoom_step_spin.setSingleStep(0.05)
        self._zoom_step_spin.setDecimals(2)
        canvas_layout.addRow("Zoom Step:", self._zoom_step_spin)

        layout.addWidget(canvas_group)

        # Funnels group
        funnels_group = QGroupBox("Funnels")
        funnels_layout = QFormLayout(funnels_group)

        self._starter_check = QCheckBox("Start with the sample funnel")
        funnels_layout.addRow("", self._starter_check)

        self._recent_spin = QSpinBox()
        self._recent_spin.setRange(0, 50)
        funnels_layout.addRow("Recent Funnels (max):", self._recent_spin)

        layout.addWidget(funnels_group)

        layout.addStretch()
        return widget

    def _on_backend_changed(self, index: int):
        backend = self._backend_combo.currentData()
        self._local_group.setEnabled(backend == "local")
        self._supabase_group.setEnabled(backend == "supabase")

    def _load_current_settings(self):
        """Load current settings into form fields."""
        s = self._settings.settings

        # Storage tab
        idx = self._backend_combo.findData(s.storage.backend)
        self._backend_combo.setCurrentIndex(idx if idx >= 0 else 0)
        self._owner_edit.setText(s.storage.owner_id)
        self._local_dir_edit.setText(s.storage.local_dir)
        self._supabase_url_edit.setText(s.storage.supabase_url)
        self._supabase_key_edit.setText(s.storage.supabase_key)
        self._on_backend_changed(self._backend_combo.currentIndex())

        # Editor tab
        self._show_grid_check.setChecked(s.editor.show_grid)
        self._grid_size_spin.setValue(s.editor.grid_size)
        self._zoom_step_spin.setValue(s.editor.zoom_step)
        self._starter_check.setChecked(s.editor.starter_funnel)
        self._recent_spin.setValue(s.editor.recent_funnels_max)

    def _apply_settings(self):
        """Apply settings from form to settings manager."""
        s = self._settings.settings

        # Storage tab
        s.storage.backend = self._backend_combo.currentData()
        s.storage.owner_id = self._owner_edit.text().strip()
        s.storage.local_dir = self._local_dir_edit.text().strip()
        s.storage.supabase_url = self._supabase_url_edit.text().strip()
        s.storage.supabase_key = self._supabase_key_edit.text().strip()

        # Editor tab
        s.editor.show_grid = self._show_grid_check.isChecked()
        s.editor.grid_size = self._grid_size_spin.value()
        s.editor.zoom_step = self._zoom_step_spin.value()
        s.editor.starter_funnel = self._starter_check.isChecked()
        s.editor.recent_funnels_max = self._recent_spin.value()

        self._settings.save()
        self.settingsChanged.emit()

    def _on_accept(self):
        """Handle OK button."""
        self._apply_settings()
        self.accept()

    def _browse_local_dir(self):
        """Browse for the local funnels folder."""
        path = QFileDialog.getExistingDirectory(
            self, "Select Funnels Folder",
            self._local_dir_edit.text() or str(self._settings.storage.get_local_dir())
        )
        if path:
            self._local_dir_edit.setText(path)

    def _open_settings_folder(self):
        """Open the settings folder in file explorer."""
        folder = os.path.dirname(self._settings.settings_path)

        if platform.system() == "Windows":
            os.startfile(folder)
        elif platform.system() == "Darwin":
            subprocess.run(["open", folder])
        else:
            subprocess.run(["xdg-open", folder])

    def _reset_to_defaults(self):
        """Reset all settings to defaults."""
        reply = QMessageBox.question(
            self,
            "Reset Settings",
            "Are you sure you want to reset all settings to defaults?\n\n"
            "This will switch storage back to local files.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
        )

        if reply == QMessageBox.StandardButton.Yes:
            self._settings.reset()
            self._load_current_settings()
            self.settingsChanged.emit()
