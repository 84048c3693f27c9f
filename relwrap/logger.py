import logging
import sys

PACKAGE_LOGGER = "relwrap"
HANDLER_NAME = "relwrap-console"

_FORMAT = "[%(levelname)s] %(message)s"
_VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(verbose: bool = False) -> logging.Logger:
    """Send relwrap's log records to stderr.

    Only the ``relwrap`` logger is configured, so a host application's
    logging setup is left alone. Calling this again replaces the console
    handler instead of stacking a second one.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in list(logger.handlers):
        if handler.get_name() == HANDLER_NAME:
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(fmt=_VERBOSE_FORMAT if verbose else _FORMAT)
    )

    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
