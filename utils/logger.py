"""Universal loggers for the application and its client library."""

import logfire
from logging import getLogger

# Create a universal logger that can be imported anywhere
logger = getLogger("diagram_editor")


# Also create a convenience function for getting a logger with context
def get_logger(name: str = "diagram_editor"):
    """Get a logger nested under the application logger."""
    if name == "diagram_editor":
        return logger
    return getLogger(f"diagram_editor.{name}")


def instrument_libraries():
    """Instrument the database driver and HTTP client for better observability."""
    logfire.instrument_httpx()
    logfire.instrument_pymongo()
