"""
==============================================
Centralized logging configuration for sandbox.
==============================================

Modules obtain loggers with ``get_logger(__name__)``. Nothing is configured
on import: the sandbox runs inside test runners that own the root logger,
so only the command-line entry point calls ``setup_logging()``.

Example:
    >>> from core.logger import get_logger, setup_logging
    >>> 
    >>> setup_logging(log_level='DEBUG', log_file='sandbox.log')
    >>> logger = get_logger(__name__)
    >>> logger.info("Template ready")
"""

import copy
import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Formatter adding ANSI colors and an emoji marker per level.
    
    Attributes:
        COLORS: Dict mapping log levels to ANSI color codes
        EMOJI: Dict mapping log levels to emoji indicators
    """
    
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }
    
    EMOJI = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️ ',
        'WARNING': '⚠️ ',
        'ERROR': '❌',
        'CRITICAL': '🔥'
    }
    
    def format(self, record):
        # Work on a copy: other handlers share the same record
        record = copy.copy(record)
        levelname = record.levelname
        record.emoji = self.EMOJI.get(levelname, '')
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        return super().format(record)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger instance for the specified module.
    
    Args:
        name: Logger name (typically __name__ of calling module)
        level: Optional logging level override (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        
    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    
    if level:
        logger.setLevel(getattr(logging, level.upper()))
    
    return logger


def setup_logging(
    log_level: str = 'INFO',
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True,
    use_colors: bool = True
) -> None:
    """Configure the root logger with console and/or file handlers.
    
    Existing root handlers are replaced, so calling it twice does not
    duplicate output.
    
    Args:
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name (e.g., 'sandbox.log')
        log_dir: Optional log directory path (defaults to 'logs/')
        console_output: If True, output to console (stdout)
        use_colors: If True, use colored output for console
    """
    level = getattr(logging, log_level.upper())
    
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        
        if use_colors:
            console_formatter = ColoredFormatter(f'%(emoji)s {LOG_FORMAT}', datefmt=DATE_FORMAT)
        else:
            console_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)
    
    if log_file:
        log_path = Path(log_dir) if log_dir else Path('logs')
        log_path.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path / log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)
