"""
时长格式化
"""
from datetime import timedelta


def format_duration(delta: timedelta) -> str:
    """
    把时长格式化为 "Xd Yh Zm Ws"

    只输出非零的部分，以单个空格分隔；零时长输出 "0s"，
    负时长在前面加 "-"。不足一秒的部分被舍去。

    Args:
        delta: 时长

    Returns:
        str: 格式化后的字符串
    """
    total_seconds = int(delta.total_seconds())
    if total_seconds < 0:
        return "-" + format_duration(timedelta(seconds=-total_seconds))

    total_hours, seconds_of_hour = divmod(total_seconds, 3600)
    days, hours = divmod(total_hours, 24)
    minutes, seconds = divmod(seconds_of_hour, 60)

    parts = [
        f"{value}{unit}"
        for value, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (seconds, "s"))
        if value
    ]
    return " ".join(parts) or "0s"
