import os
import configparser
from pathlib import Path

# Written to settings.ini the first time the engine runs
DEFAULT_SETTINGS = {
    'DATABASE': {
        'type': 'postgresql',  # postgresql, sqlite or supabase
        'engine': 'postgresql',
        'host': 'localhost',
        'port': '5432',
        'database': 'metas',
        'username': 'postgres',
        'password': 'postgres',
        'url': '',
        'pool_size': '5',
        'max_overflow': '10',
        'echo': 'False'
    },
    'SUPABASE': {
        'url': '',
        'key': ''
    },
    'LOGGING': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'directory': 'logs',
        'max_size_mb': '10',
        'backup_count': '5',
        'console_output': 'True'
    },
    'ALLOCATION': {
        'currency_scale': '1',  # 1 = whole units, 100 = cents
        'weight_tolerance': '0.000001',
        'week_start': 'sunday'
    },
    'INDICES': {
        'inflation_rate': '0.045',
        'regulated_price_index': '0.05',
        'category_participation': '0.55',
        'growth_rate': '0.10'
    },
    'IMPORT': {
        'delimiter': '',  # empty = sniff , ; or tab
        'encoding': 'utf-8'
    }
}

class Config:
    """Configuration manager for the Target Allocation engine.

    Settings live in ``config/settings.ini``; set TARGET_ALLOCATION_CONFIG
    to read another file.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        override = os.getenv('TARGET_ALLOCATION_CONFIG')
        self._config_path = Path(override) if override else Path('config') / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        if self._config_path.exists():
            self._config.read(self._config_path, encoding='utf-8')
        else:
            self._config.read_dict(DEFAULT_SETTINGS)
            self._save_config()

        self._initialized = True

    def _save_config(self):
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, 'w', encoding='utf-8') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def set(self, section, key, value):
        """Set a value and write the file back."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))
        self._save_config()

    def get_db_url(self):
        """SQLAlchemy URL: the explicit ``url`` if set, else built from parts.

        With ``type = sqlite`` the ``database`` option is the file path.
        """
        url = self.get('DATABASE', 'url', '')
        if url:
            return url

        database = self.get('DATABASE', 'database', 'metas')
        if self.get('DATABASE', 'type', 'postgresql').split('#')[0].strip().lower() == 'sqlite':
            return f"sqlite:///{database}"

        engine = self.get('DATABASE', 'engine', 'postgresql')
        username = self.get('DATABASE', 'username', 'postgres')
        password = self.get('DATABASE', 'password', 'postgres')
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', DEFAULT_SETTINGS['LOGGING']['format']),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def allocation_config(self):
        """Currency scale, custom-weight tolerance and first day of the week."""
        return {
            'currency_scale': self.get_int('ALLOCATION', 'currency_scale', 1),
            'weight_tolerance': self.get_float('ALLOCATION', 'weight_tolerance', 1e-6),
            'week_start': self.get('ALLOCATION', 'week_start', 'sunday')
        }

    @property
    def index_defaults(self):
        """Index parameters of the baseline scenario."""
        return {
            name: self.get_float('INDICES', name, float(value))
            for name, value in DEFAULT_SETTINGS['INDICES'].items()
        }

    @property
    def import_config(self):
        return {
            'delimiter': self.get('IMPORT', 'delimiter', '') or None,
            'encoding': self.get('IMPORT', 'encoding', 'utf-8')
        }

# Global config instance
config = Config()
