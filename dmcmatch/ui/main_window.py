"""
主窗口界面
"""

from typing import List, Optional

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QFileDialog, QMessageBox, QSplitter, QLabel, QPushButton, QSlider,
    QButtonGroup, QGroupBox, QListWidget, QListWidgetItem, QAbstractItemView,
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QKeySequence, QColor, QPixmap

from dmcmatch.core.app_context import ApplicationContext
from dmcmatch.core.color_matcher import match_quality
from dmcmatch.core.data_types import ColorMatch, ColorSample, FrameDrawList

from .minimap_widget import MinimapWidget
from .preview_widget import PreviewCanvas
from .shortcuts import ShortcutsBinder


SWATCH_SIZE = 48


def _swatch_pixmap(hex_value: str, size: int = SWATCH_SIZE) -> QPixmap:
    pixmap = QPixmap(size, size)
    pixmap.fill(QColor(hex_value))
    return pixmap


class MainWindow(QMainWindow):
    """主窗口"""

    def __init__(self, context: Optional[ApplicationContext] = None):
        super().__init__()

        # 初始化核心组件
        self.context = context or ApplicationContext(parent=self)

        # 设置窗口
        self.setWindowTitle("DMC Match - 绣线取色")
        self.setGeometry(100, 100, 1280, 820)

        # 创建界面
        self._create_ui()
        self._create_menus()
        self._create_statusbar()
        self._connect_context_signals()

        # 快捷键
        self.shortcuts = ShortcutsBinder(self)
        self.shortcuts.setup_default_shortcuts()

        self._refresh_history()
        if self.context.startup_message:
            self.statusBar().showMessage(self.context.startup_message)

    # ============ 界面 ============
    def _create_ui(self):
        """创建用户界面"""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        main_layout = QHBoxLayout(central_widget)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(splitter)

        # 中央预览区域
        self.canvas = PreviewCanvas(self.context)
        splitter.addWidget(self.canvas)

        # 右侧面板
        panel = QWidget()
        panel_layout = QVBoxLayout(panel)
        panel_layout.addWidget(self._create_view_group())
        panel_layout.addWidget(self._create_sample_group())
        panel_layout.addWidget(self._create_match_group())
        panel_layout.addWidget(self._create_history_group(), 1)
        splitter.addWidget(panel)
        splitter.setStretchFactor(0, 1)
        splitter.setSizes([900, 360])

    def _create_view_group(self) -> QGroupBox:
        group = QGroupBox("视图")
        layout = QGridLayout(group)

        self.minimap = MinimapWidget(self.context)
        layout.addWidget(self.minimap, 0, 0, 1, 3, Qt.AlignmentFlag.AlignHCenter)

        settings = self.context.settings
        self.zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self.zoom_slider.setRange(int(settings.min_zoom * 100), int(settings.max_zoom * 100))
        self.zoom_slider.setValue(100)
        self.zoom_slider.setEnabled(False)
        self.zoom_slider.valueChanged.connect(self._on_zoom_slider_changed)
        self.zoom_label = QLabel("100%")
        self.reset_button = QPushButton("重置")
        self.reset_button.setEnabled(False)
        self.reset_button.clicked.connect(self.context.reset_view)

        layout.addWidget(self.zoom_slider, 1, 0)
        layout.addWidget(self.zoom_label, 1, 1)
        layout.addWidget(self.reset_button, 1, 2)
        return group

    def _create_sample_group(self) -> QGroupBox:
        group = QGroupBox("取色")
        layout = QVBoxLayout(group)

        aperture_row = QHBoxLayout()
        aperture_row.addWidget(QLabel("孔径:"))
        self.aperture_group = QButtonGroup(self)
        self.aperture_group.setExclusive(True)
        for size in self.context.settings.aperture_sizes:
            button = QPushButton(f"{size}x{size}")
            button.setCheckable(True)
            button.setChecked(size == self.context.get_aperture())
            self.aperture_group.addButton(button, int(size))
            aperture_row.addWidget(button)
        self.aperture_group.idClicked.connect(self.context.set_aperture)
        layout.addLayout(aperture_row)

        sample_row = QHBoxLayout()
        self.sample_swatch = QLabel()
        self.sample_swatch.setFixedSize(SWATCH_SIZE, SWATCH_SIZE)
        self.sample_info = QLabel("点击图像取色")
        sample_row.addWidget(self.sample_swatch)
        sample_row.addWidget(self.sample_info, 1)
        layout.addLayout(sample_row)

        self.find_button = QPushButton("查找匹配")
        self.find_button.setEnabled(False)
        self.find_button.clicked.connect(self.context.find_matches)
        layout.addWidget(self.find_button)
        return group

    def _create_match_group(self) -> QGroupBox:
        group = QGroupBox("最接近的 DMC")
        layout = QVBoxLayout(group)
        self.match_list = QListWidget()
        self.match_list.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.match_list.itemDoubleClicked.connect(self._on_match_activated)
        layout.addWidget(self.match_list)
        self.add_pin_button = QPushButton("添加标注点")
        self.add_pin_button.setEnabled(False)
        self.add_pin_button.clicked.connect(self._on_add_pin_clicked)
        layout.addWidget(self.add_pin_button)
        return group

    def _create_history_group(self) -> QGroupBox:
        group = QGroupBox("标注历史")
        layout = QVBoxLayout(group)
        self.history_list = QListWidget()
        self.history_list.currentItemChanged.connect(self._on_history_item_changed)
        layout.addWidget(self.history_list, 1)

        buttons = QHBoxLayout()
        self.delete_pin_button = QPushButton("删除")
        self.delete_pin_button.clicked.connect(self._on_delete_pin_clicked)
        self.clear_pins_button = QPushButton("清空")
        self.clear_pins_button.clicked.connect(self._on_clear_pins_clicked)
        buttons.addWidget(self.delete_pin_button)
        buttons.addWidget(self.clear_pins_button)
        layout.addLayout(buttons)
        return group

    def _create_menus(self):
        """创建菜单栏"""
        menubar = self.menuBar()

        # 文件菜单
        file_menu = menubar.addMenu("文件")

        open_action = QAction("打开图像", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._open_image)
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        quit_action = QAction("退出", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # 视图菜单
        view_menu = menubar.addMenu("视图")
        reset_action = QAction("重置视图", self)
        reset_action.setShortcut(QKeySequence("Ctrl+0"))
        reset_action.triggered.connect(self.context.reset_view)
        view_menu.addAction(reset_action)

    def _create_statusbar(self):
        """创建状态栏"""
        self.statusBar().showMessage("就绪")

    def _connect_context_signals(self):
        """连接 ApplicationContext 的信号到UI槽函数"""
        self.context.status_message_changed.connect(self.statusBar().showMessage)
        self.context.image_loaded.connect(self._on_image_loaded)
        self.context.frame_changed.connect(self._on_frame_changed)
        self.context.sample_changed.connect(self._on_sample_changed)
        self.context.matches_changed.connect(self._on_matches_changed)
        self.context.history_changed.connect(self._refresh_history)
        self.context.pin_highlighted.connect(self._on_pin_highlighted)

    # ============ 文件 ============
    def _open_image(self):
        """打开图像文件"""
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "打开图像文件",
            "",
            "图像文件 (*.jpg *.jpeg *.png *.tif *.tiff *.bmp *.webp *.gif)"
        )
        if not file_path:
            return

        clear_history = None
        if self.context.needs_history_confirmation():
            reply = QMessageBox.question(
                self, "标注历史",
                "是否清空当前的标注历史？",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                QMessageBox.StandardButton.No,
            )
            clear_history = reply == QMessageBox.StandardButton.Yes

        size = self.canvas.size()
        self.context.load_image(file_path, (float(size.width()), float(size.height())), clear_history)

    def _on_image_loaded(self):
        controller = self.context.controller
        self.canvas.set_image(controller.image)
        self.zoom_slider.setEnabled(True)
        self.reset_button.setEnabled(True)

    # ============ 视图 ============
    def _on_zoom_slider_changed(self, value: int):
        self.context.set_zoom(value / 100.0)

    def _on_frame_changed(self, frame: FrameDrawList):
        self.zoom_label.setText(f"{frame.zoom_percent}%")
        # 同步滑块但不回触发 set_zoom
        self.zoom_slider.blockSignals(True)
        self.zoom_slider.setValue(frame.zoom_percent)
        self.zoom_slider.blockSignals(False)

    # ============ 取色与匹配 ============
    def _on_sample_changed(self, sample: Optional[ColorSample]):
        if sample is None:
            self.sample_swatch.clear()
            self.sample_info.setText("点击图像取色")
            self.find_button.setEnabled(False)
            return
        self.sample_swatch.setPixmap(_swatch_pixmap(sample.hex))
        c = sample.color
        self.sample_info.setText(f"{sample.hex}\nRGB({c.r}, {c.g}, {c.b})")
        self.find_button.setEnabled(True)

    def _on_matches_changed(self, matches: List[ColorMatch]):
        self.match_list.clear()
        for index, match in enumerate(matches):
            quality = match_quality(match.delta_e)
            item = QListWidgetItem(
                f"DMC {match.id}  {match.name}\nΔE {match.delta_e:.2f} · {quality.label} ({quality.percent}%)"
            )
            item.setIcon(_swatch_pixmap(match.hex, 32))
            item.setData(Qt.ItemDataRole.UserRole, index)
            self.match_list.addItem(item)
        if matches:
            self.match_list.setCurrentRow(0)
        self.add_pin_button.setEnabled(bool(matches))

    def _on_match_activated(self, item: QListWidgetItem):
        self.context.select_match(int(item.data(Qt.ItemDataRole.UserRole)))

    def _on_add_pin_clicked(self):
        item = self.match_list.currentItem()
        if item is not None:
            self._on_match_activated(item)

    # ============ 标注历史 ============
    def _refresh_history(self):
        numbering = self.context.get_numbering()
        self.history_list.blockSignals(True)
        self.history_list.clear()
        for pin in self.context.get_pins():
            number = numbering.get(pin.palette_id, 0)
            item = QListWidgetItem(
                f"#{number}  DMC {pin.palette_id}  {pin.name}\n"
                f"{pin.sampled_color.hex} → {pin.matched_color.hex} · ΔE {pin.delta_e:.2f}"
            )
            item.setIcon(_swatch_pixmap(pin.matched_color.hex, 32))
            item.setData(Qt.ItemDataRole.UserRole, pin.id)
            self.history_list.addItem(item)
        self.history_list.blockSignals(False)
        has_pins = self.history_list.count() > 0
        self.delete_pin_button.setEnabled(has_pins)
        self.clear_pins_button.setEnabled(has_pins)

    def _on_history_item_changed(self, current: Optional[QListWidgetItem], _previous):
        pin_id = current.data(Qt.ItemDataRole.UserRole) if current is not None else None
        self.context.highlight_pin(pin_id)

    def _on_pin_highlighted(self, pin_id):
        self.history_list.blockSignals(True)
        for row in range(self.history_list.count()):
            item = self.history_list.item(row)
            if item.data(Qt.ItemDataRole.UserRole) == pin_id:
                self.history_list.setCurrentRow(row)
                self.history_list.scrollToItem(item)
                break
        else:
            self.history_list.clearSelection()
        self.history_list.blockSignals(False)

    def _on_delete_pin_clicked(self):
        item = self.history_list.currentItem()
        if item is None:
            return
        self.context.delete_pin(int(item.data(Qt.ItemDataRole.UserRole)))

    def _on_clear_pins_clicked(self):
        reply = QMessageBox.question(
            self, "清空标注历史", "确定要删除全部标注点吗？",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.context.clear_pins()
