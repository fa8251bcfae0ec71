"""
DMC Match: 从照片取色并匹配最接近的 DMC 绣线颜色
"""

__version__ = "0.1.0"
