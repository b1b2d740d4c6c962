from .logging import (  # noqa: F401
    QubitWeaveJSONFormatter,
    RotatingFileHandlerWithDir,
    setup_logging,
)
