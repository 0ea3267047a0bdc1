"""
前台预订引擎
房间可用性计算、预订生命周期与冲突守卫
"""

__version__ = "1.0.0"
