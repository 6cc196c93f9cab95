from .service import add_log, delete_log, get_logs_by_date

__all__ = [
    "add_log",
    "delete_log",
    "get_logs_by_date",
]
