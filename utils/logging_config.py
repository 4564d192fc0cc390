"""
Logging Configuration
Sinks for entry points; library modules only call `logger`
"""

import sys

from loguru import logger


def configure_logging(level: str = "INFO", log_file: str = "data/logs/pipeline.log"):
    """
    Configure loguru sinks

    Args:
        level: Console log level
        log_file: Rotating debug log (None disables it)
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level
    )

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
            level="DEBUG"
        )


def log_pipeline_error(error):
    """Log a PipelineError with its structured fields"""
    logger.error(f"❌ {error.kind}: {error.detail}")
    if error.reason:
        logger.error(f"  Reason: {error.reason}")
    if error.tx_hash:
        logger.error(f"  Transaction: {error.tx_hash}")
    for diagnostic in getattr(error, 'diagnostics', []):
        logger.error(f"  {diagnostic}")
