import logging
from logging import StreamHandler, Formatter


def setup_gridder_logging(level=logging.INFO, format_string=' -- %(name)s: %(message)s'):
    """Setup logging for the entire gridder package"""
    gridder_logger = logging.getLogger('gpsgridder')

    # Avoid duplicate handlers
    if not gridder_logger.handlers:
        handler = StreamHandler()
        if level == logging.INFO:
            handler.setFormatter(Formatter(' -- %(message)s'))
        else:
            handler.setFormatter(Formatter(format_string))
        gridder_logger.addHandler(handler)
        # Prevent propagation to root logger to avoid duplicate messages
        gridder_logger.propagate = False

    gridder_logger.setLevel(level)

    return gridder_logger
