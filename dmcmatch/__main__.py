"""
DMC Match 主应用程序入口
"""

import sys

from PySide6.QtWidgets import QApplication

from dmcmatch import __version__
from dmcmatch.ui.main_window import MainWindow
from dmcmatch.utils.debug_logger import info


def main():
    """主函数"""
    # 创建Qt应用
    app = QApplication(sys.argv)
    app.setApplicationName("DMC Match")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("DMC Match")

    info(f"Starting DMC Match {__version__}", "Main")

    # 创建主窗口
    window = MainWindow()
    window.show()

    # 运行应用程序
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
