import logging
import logging.handlers
from pathlib import Path
import traceback
from datetime import datetime

from target_allocation.config import config

class Logger:
    """Logging manager for the Target Allocation engine.

    Each component gets a named logger writing to ``<directory>/<name>.log``
    with size-based rotation, plus the console when enabled.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._settings = config.log_config
        self._level = getattr(logging, self._settings['level'].upper(), logging.INFO)
        self._formatter = logging.Formatter(self._settings['format'])
        self._log_dir = Path(self._settings['directory'])
        self._log_dir.mkdir(parents=True, exist_ok=True)

        self._configure_root_logger()
        self._initialized = True

    def _configure_root_logger(self):
        """Route loggers created with logging.getLogger (core modules) to the console."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self._level)

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        if self._settings['console_output']:
            root_logger.addHandler(self._console_handler())

    def _console_handler(self):
        handler = logging.StreamHandler()
        handler.setFormatter(self._formatter)
        return handler

    def _file_handler(self, name):
        handler = logging.handlers.RotatingFileHandler(
            self._log_dir / f"{name}.log",
            maxBytes=self._settings['max_size_mb'] * 1024 * 1024,
            backupCount=self._settings['backup_count'],
            encoding='utf-8'
        )
        handler.setFormatter(self._formatter)
        return handler

    def get_logger(self, name):
        """Get the logger of a component, creating its handlers on first use.

        Args:
            name: Component name (app, run, import, allocation, scenario,
                persistence or tracking)

        Returns:
            Configured logger instance
        """
        if name in self._loggers:
            return self._loggers[name]

        component_logger = logging.getLogger(name)
        component_logger.setLevel(self._level)

        for handler in component_logger.handlers[:]:
            component_logger.removeHandler(handler)

        component_logger.addHandler(self._file_handler(name))
        if self._settings['console_output']:
            component_logger.addHandler(self._console_handler())

        # Handlers are attached here; the root logger would print twice
        component_logger.propagate = False

        self._loggers[name] = component_logger
        return component_logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception and the active traceback.

        AllocationError subclasses also log their details dictionary.
        """
        component_logger = self.get_logger(logger_name)

        text = f"{message}: {exception}" if message else str(exception)
        component_logger.error(text)

        details = getattr(exception, 'details', None)
        if details:
            component_logger.error(f"Details: {details}")

        component_logger.debug(traceback.format_exc())

    def run_start_log(self, command, context=None):
        """Log the start of a CLI run (plan, compare, consolidate, track).

        Args:
            command: Name of the run
            context: Optional text such as the scenario name and target year

        Returns:
            Dictionary to pass to run_end_log
        """
        run_logger = self.get_logger('run')
        run_info = {
            'command': command,
            'start_time': datetime.now(),
            'context': context
        }

        run_logger.info(f"Starting {command}" + (f" {context}" if context else ""))
        return run_info

    def run_end_log(self, run_info, success=True, result=None):
        """Log the outcome and duration of a run started with run_start_log."""
        run_logger = self.get_logger('run')
        end_time = datetime.now()
        command = run_info.get('command', 'unknown')
        duration = end_time - run_info.get('start_time', end_time)

        if success:
            run_logger.info(f"Finished {command} in {duration}")
        else:
            run_logger.error(f"{command} failed after {duration}")

        if result:
            run_logger.info(f"Result of {command}: {result}")

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)
