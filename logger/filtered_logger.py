from enum import Enum

from env_utils import parse_bool_env


class LogChannel(Enum):
    GLOBAL = "GLOBAL"
    TRANSFER = "TRANSFER"
    STREAM = "STREAM"
    DISPATCH = "DISPATCH"


class LogLevel(Enum):
    INFO = "INFO"
    WARNING = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"


class FilteredLogger:
    def __init__(self):
        self.extreme_debug = parse_bool_env('IMGPROC_EXTREME_DEBUG', '0')
        self.transfer_debug = parse_bool_env('TRANSFER_DEBUG_LOGS', '0')
        self.stream_debug = parse_bool_env('STREAM_DEBUG_LOGS', '0')
        self.dispatch_debug = parse_bool_env('DISPATCH_DEBUG_LOGS', '0')

    def configure(self, *, extreme_debug=None, transfer_debug=None, stream_debug=None, dispatch_debug=None):
        if extreme_debug is not None:
            self.extreme_debug = extreme_debug
        if transfer_debug is not None:
            self.transfer_debug = transfer_debug
        if stream_debug is not None:
            self.stream_debug = stream_debug
        if dispatch_debug is not None:
            self.dispatch_debug = dispatch_debug

    def should_log_debug(self, channel):
        if self.extreme_debug:
            return True
        if channel == LogChannel.GLOBAL:
            return self.transfer_debug or self.stream_debug or self.dispatch_debug
        if channel == LogChannel.TRANSFER:
            return self.transfer_debug
        if channel == LogChannel.STREAM:
            return self.stream_debug
        if channel == LogChannel.DISPATCH:
            return self.dispatch_debug
        return False

    def _print(self, level, channel, message):
        prefix = f"[{level.value}]"
        channel_tag = f"[{channel.value}]"
        for line in str(message).splitlines():
            print(f"{prefix} {channel_tag} {line}")

    def info(self, channel, message):
        self._print(LogLevel.INFO, channel, message)

    def warning(self, channel, message):
        self._print(LogLevel.WARNING, channel, message)

    def error(self, channel, message):
        self._print(LogLevel.ERROR, channel, message)

    def debug(self, channel, message):
        if not self.should_log_debug(channel):
            return
        self._print(LogLevel.DEBUG, channel, message)


_shared_logger = FilteredLogger()


def configure_logger(**kwargs):
    _shared_logger.configure(**kwargs)


def info(channel, message):
    _shared_logger.info(channel, message)


def warning(channel, message):
    _shared_logger.warning(channel, message)


def error(channel, message):
    _shared_logger.error(channel, message)


def debug(channel, message):
    _shared_logger.debug(channel, message)
