import logging
import logging.config
import os

logger = logging.getLogger("shopcart")


def configure_logging(config_file: str = "logging.conf") -> None:
    """Load the INI logging configuration, falling back to basicConfig when the file is missing."""
    if not os.path.exists(config_file):
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        logger.warning(f"Logging config {config_file} not found, using basic configuration")
        return

    # Ensure logs directory exists
    os.makedirs("logs", exist_ok=True)
    logging.config.fileConfig(config_file, disable_existing_loggers=False)
