import logging

logger = logging.getLogger("ncframe")
