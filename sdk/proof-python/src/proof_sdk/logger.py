import logging

logger = logging.getLogger("proof_sdk")
logger.addHandler(logging.NullHandler())
