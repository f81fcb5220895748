"""Bunch of random utilities."""

import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from eth_typing import HexAddress, HexStr
from eth_utils import is_address


def get_url_domain(url: str) -> str:
    """Redact URL so that only domain is displayed.

    Some services e.g. Tenderly fork endpoints
    contain the fork id or API key in the path. Never log them as is.

    :return:
        Domain name, with an optional port
    """
    parsed = urlparse(url)
    if parsed.port in (80, 443, None):
        return parsed.hostname
    else:
        return f"{parsed.hostname}:{parsed.port}"


def setup_console_logging(
    default_log_level="warning",
    simplified_logging=False,
    log_file: str | Path = None,
    std_out_log_level: Optional[int] = None,
) -> logging.Logger:
    """Set up coloured log output.

    - Helper function to have nicer logging output in command line scripts.
    - Tune down some noisy dependency library logging

    Log level is read from ``LOG_LEVEL`` environment variable.

    :param log_file:
        Output both console and this log file.

    :return:
        Root logger
    """

    level = os.environ.get("LOG_LEVEL", default_log_level).upper()
    numeric_level = getattr(logging, level.upper(), None)
    assert numeric_level, f"No level: {level}"

    if not std_out_log_level:
        std_out_log_level = numeric_level

    if simplified_logging:
        fmt = "%(message)s"
    else:
        fmt = "%(asctime)s %(name)-44s %(message)s"
    date_fmt = "%H:%M:%S"

    try:
        # Optional dev dependency
        import coloredlogs

        coloredlogs.install(level=std_out_log_level, fmt=fmt, date_fmt=date_fmt)
    except ImportError:
        # non-ANSI e.g. Docker
        logging.basicConfig(level=std_out_log_level, format=fmt, datefmt=date_fmt)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        # The file is always logged with INFO level and
        # env var controls only terminal output
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(min(logging.INFO, numeric_level))
        file_handler.setFormatter(logging.Formatter(fmt, date_fmt))
        logging.getLogger().addHandler(file_handler)

    # Mute noise
    logging.getLogger("web3.providers.HTTPProvider").setLevel(logging.WARNING)
    logging.getLogger("web3.RequestManager").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    return logging.getLogger()


def addr(address: str | HexAddress | HexStr) -> HexAddress:
    """Validate and convert a 0x string to HexAddress.

    :raise ValueError:
        If the string is not a 20 bytes hex address
    """
    if not isinstance(address, str) or not is_address(address):
        raise ValueError(f"Not a valid address: {address}")
    return HexAddress(HexStr(address))
