"""RQ worker entrypoint.

Run with: python worker.py

Or in Docker: `CMD ["python","worker.py"]`
"""
import logging

from redis import Redis
from rq import Queue, Worker

import config

redis_conn = Redis.from_url(config.REDIS_URL)

if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL)
    missing = config.ensure_config()
    if missing:
        logging.getLogger(__name__).warning(f"Missing configuration: {', '.join(missing)}")
    qs = [config.QUEUE_NAME]
    worker = Worker([Queue(name, connection=redis_conn) for name in qs], connection=redis_conn)
    worker.work()
