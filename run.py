import logging

from utils.logging_config import setup_logging

# Initialize centralized logging configuration
setup_logging()

from server import main

# SQL statements carry emails and addresses; keep SQLAlchemy quiet regardless of LOG_LEVEL
for logger_name in ['aiosqlite', 'sqlalchemy', 'sqlalchemy.engine', 'sqlalchemy.pool', 'sqlalchemy.orm']:
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.CRITICAL)
    logger.propagate = False

logging.info("SQL loggers silenced (aiosqlite, sqlalchemy.*)")

if __name__ == '__main__':
    main()
