import atexit
import datetime as dt
import json
import logging
import logging.config
import os
import pathlib
from logging.handlers import RotatingFileHandler
from typing import Any, override

# Attributes every LogRecord carries; anything else was passed via ``extra``
_RECORD_ATTRIBUTES = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


def setup_logging(
    config_path: str | os.PathLike | None = None, level: str | None = None
) -> dict:
    """
    Configures logging

    The configuration is looked up in this order: the explicitly given
    ``config_path``, a 'logging_config.json' in the current working
    directory, and finally the config shipped with qubit_weave.

    Parameters
    ----------
    config_path: str | os.PathLike | None
        Optional path to a ``logging.config.dictConfig`` json file
    level: str | None
        Optional level override for the ``qubit_weave`` logger

    Returns
    -------
    dict
        The configuration that was applied
    """
    user_config_file = pathlib.Path("logging_config.json")

    if config_path is not None:
        config_file = pathlib.Path(config_path)
    elif user_config_file.is_file():
        config_file = user_config_file
    else:
        config_file = pathlib.Path(__file__).parent.resolve() / "config.json"
    with open(config_file) as f_in:
        config = json.load(f_in)
    if level is not None:
        config.setdefault("loggers", {}).setdefault("qubit_weave", {})["level"] = level
    logging.config.dictConfig(config)

    queue_handler = logging.getHandlerByName("queue_handler")
    if queue_handler is not None:
        queue_handler.listener.start()
        atexit.register(queue_handler.listener.stop)
    return config


class QubitWeaveJSONFormatter(logging.Formatter):
    """
    JSON lines formatter used by the file handler

    Attributes:
        fmt_keys (dict): output key -> LogRecord attribute

    Values passed through ``extra`` (register names, operation names,
    shot counts, ...) are appended to every record as-is.
    """

    def __init__(
        self,
        *,
        fmt_keys: dict[str, str] | None = None,
    ) -> None:
        super().__init__()
        self.fmt_keys = fmt_keys if fmt_keys is not None else {}

    @override
    def format(self, record: logging.LogRecord) -> str:
        message = self._prepare_log_dict(record)
        return json.dumps(message, default=str)

    def _prepare_log_dict(self, record: logging.LogRecord) -> dict:
        always_fields = {
            "message": record.getMessage(),
            "timestamp": dt.datetime.fromtimestamp(
                record.created, tz=dt.timezone.utc
            ).isoformat(),
        }

        if record.exc_info is not None:
            always_fields["exc_info"] = self.formatException(record.exc_info)

        if record.stack_info is not None:
            always_fields["stack_info"] = self.formatStack(record.stack_info)

        message = {
            key: msg_val
            if (msg_val := always_fields.pop(val, None)) is not None
            else getattr(record, val)
            for key, val in self.fmt_keys.items()
        }
        message.update(always_fields)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and key not in message:
                message[key] = value
        return message


class RotatingFileHandlerWithDir(RotatingFileHandler):
    """
    RotatingFileHandler which creates the log directory on demand
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        log_file_path = kwargs.get("filename") or (args[0] if args else None)
        if log_file_path:
            log_dir = os.path.dirname(log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

        super().__init__(*args, **kwargs)
