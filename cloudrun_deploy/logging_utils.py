import logging
import sys


_NOISY_LOGGERS = ("google", "urllib3", "grpc")


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )

    # Secret Manager 클라이언트 로그는 -vv 부터 노출
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbosity >= 2 else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
