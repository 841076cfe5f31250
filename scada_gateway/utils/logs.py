# scada_gateway/utils/logs.py
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from colorama import Fore, Style, init

init(autoreset=True)  # reseta cores automaticamente

PROCESS_LEVEL = 25  # INFO=20, WARNING=30 -> PROCESS no meio
logging.addLevelName(PROCESS_LEVEL, "PROCESS")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def process(self, message, *args, **kwargs):
    if self.isEnabledFor(PROCESS_LEVEL):
        self._log(PROCESS_LEVEL, message, args, **kwargs)


# injetando método process em logging.Logger
logging.Logger.process = process


class ColorFormatter(logging.Formatter):
    COLORS = {
        'PROCESS': Fore.CYAN,
        'DEBUG': Fore.BLUE,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA
    }

    def format(self, record):
        levelname = record.levelname
        color = self.COLORS.get(levelname, Fore.WHITE)
        log_fmt = f"[%(asctime)s] {levelname:<8} %(message)s"
        formatter = logging.Formatter(log_fmt, DATE_FORMAT)
        return color + formatter.format(record) + Style.RESET_ALL


def setup_logger(root_level=logging.INFO,
                 silence_names=None,
                 log_dir=None,
                 max_bytes=5 * 1024 * 1024,
                 backup_count=5):
    """
    Inicializa o logger root colorido e silencia loggers listados.

    :param root_level: nível do root logger (DEBUG/INFO/WARNING/ERROR ou nome)
    :param silence_names: lista de nomes de loggers a silenciar
    :param log_dir: se informado, grava também em ``<log_dir>/gateway.log``
    :return: logger root configurado
    """
    if silence_names is None:
        silence_names = []
    if isinstance(root_level, str):
        root_level = logging.getLevelName(root_level.upper())
        if not isinstance(root_level, int):
            root_level = logging.INFO

    logger = logging.getLogger()
    logger.setLevel(root_level)

    # limpa handlers antigos
    for h in list(logger.handlers):
        logger.removeHandler(h)

    ch = logging.StreamHandler()
    ch.setFormatter(ColorFormatter())
    logger.addHandler(ch)

    if log_dir is not None:
        path = Path(log_dir)
        try:
            path.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                path / "gateway.log",
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            fh.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
            logger.addHandler(fh)
        except OSError:
            logger.exception("Não foi possível criar o arquivo de log em %s", path)

    defaults_to_silence = [
        "asyncio",
        "pymodbus",
        "httpx",
        "httpcore",
        "hpack",
    ]

    for name in defaults_to_silence + list(silence_names):
        logging.getLogger(name).setLevel(logging.ERROR)
        logging.getLogger(name).propagate = False

    return logger


# criar logger já configurado por padrão (pode chamar setup_logger manualmente se quiser)
logger = setup_logger()
