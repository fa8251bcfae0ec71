"""
核心：视口、取色、色差匹配、标注点与交互状态机
"""
