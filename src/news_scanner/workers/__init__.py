from news_scanner.workers.scheduler import Scheduler, TickReport, is_due

__all__ = ["Scheduler", "TickReport", "is_due"]
