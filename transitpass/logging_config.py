import logging
import pytz
from datetime import datetime


class TimezoneFormatter(logging.Formatter):
    def __init__(self, fmt=None, datefmt=None, tz_name='UTC'):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.tz = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        record_time = datetime.fromtimestamp(record.created, self.tz)
        return record_time.strftime(datefmt) if datefmt else record_time.isoformat()


def setup_logging(level='INFO', tz_name='UTC'):
    logger = logging.getLogger()
    if not logger.handlers:
        formatter = TimezoneFormatter(
            fmt='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S %Z',
            tz_name=tz_name,
        )

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger
