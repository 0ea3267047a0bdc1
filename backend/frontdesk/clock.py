"""
业务日期
入住/超期判断均以日历日期为准，通过依赖注入便于测试固定"今天"
"""
from datetime import date


def get_today() -> date:
    """依赖注入：获取当前营业日期"""
    return date.today()
