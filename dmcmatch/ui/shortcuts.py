# shortcuts.py
from PySide6.QtCore import Qt, QObject
from PySide6.QtGui import QShortcut, QKeySequence


class ShortcutsBinder(QObject):
    """
    统一注册快捷键并内置动作逻辑。
    依赖 host 提供以下属性/方法：
        host.context (ApplicationContext)
        host.match_list (QListWidget)
    """
    def __init__(self, host):
        super().__init__(host)
        self.host = host
        self._shortcuts = []  # 持有引用，避免被GC

    # ---------- 公共入口 ----------
    def setup_default_shortcuts(self):
        add = self._add

        # 缩放：+ / - ，重置：0
        add(Qt.Key_Plus,  self._act_zoom_in)
        add(Qt.Key_Equal, self._act_zoom_in)
        add(Qt.Key_Minus, self._act_zoom_out)
        add(Qt.Key_0,     self.host.context.reset_view)

        # 孔径：数字键直接对应尺寸
        for size in self.host.context.settings.aperture_sizes:
            key = getattr(Qt, f"Key_{int(size)}", None)
            if key is not None:
                add(key, lambda s=int(size): self._act_set_aperture(s))

        # 查找匹配：M；确认当前匹配：Enter
        add(Qt.Key_M, self.host.context.find_matches)
        add(Qt.Key_Return, self._act_add_pin)

        # 删除高亮的标注点
        add(Qt.Key_Delete, self._act_delete_highlighted)
        add(Qt.Key_Backspace, self._act_delete_highlighted)

    # ---------- 内部：工具 ----------
    def _add(self, seq, slot, context=Qt.WindowShortcut):
        sc = QShortcut(QKeySequence(seq), self.host)
        sc.setContext(context)
        sc.activated.connect(slot)
        self._shortcuts.append(sc)
        return sc

    # ---------- 动作 ----------
    def _act_zoom_in(self):
        ctx = self.host.context
        viewport = ctx.controller.viewport
        if viewport is not None:
            ctx.set_zoom(viewport.zoom * ctx.settings.wheel_zoom_in)

    def _act_zoom_out(self):
        ctx = self.host.context
        viewport = ctx.controller.viewport
        if viewport is not None:
            ctx.set_zoom(viewport.zoom * ctx.settings.wheel_zoom_out)

    def _act_set_aperture(self, size: int):
        self.host.context.set_aperture(size)
        button = self.host.aperture_group.button(size)
        if button is not None:
            button.setChecked(True)

    def _act_add_pin(self):
        row = self.host.match_list.currentRow()
        if 0 <= row < len(self.host.context.get_current_matches()):
            self.host.context.select_match(row)

    def _act_delete_highlighted(self):
        pin_id = self.host.context.controller.highlighted_pin_id
        if pin_id is not None:
            self.host.context.delete_pin(pin_id)
