"""Configuration management for the affiliate migration tool."""

from typing import Optional, Dict, Any, Set
from pathlib import Path
import os

from pydantic import BaseModel, Field, validator
import yaml
from dotenv import load_dotenv


def _parse_roles(value: Any) -> Any:
    """Accept a comma separated string as well as any iterable of roles."""
    if value is None:
        return set()
    if isinstance(value, str):
        return {role.strip() for role in value.split(',') if role.strip()}
    return value


class ServiceConfig(BaseModel):
    """Configuration for the site API that owns users and affiliates."""

    url: str = Field(..., description='Site API base URL')
    token: Optional[str] = Field(default=None, description='API access token')
    timeout: int = Field(default=30, description='Request timeout in seconds')

    @validator('url')
    def validate_url(cls, v):
        """Validate API URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @validator('timeout')
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError('Timeout must be positive')
        return v


class JobConfig(BaseModel):
    """Per-run job settings supplied once at initialization."""

    roles: Set[str] = Field(
        default_factory=set, description='Roles whose users are migrated'
    )

    @validator('roles', pre=True)
    def validate_roles(cls, v):
        """Normalize the role selection."""
        return _parse_roles(v)

    class Config:
        """Pydantic configuration."""

        frozen = True


class MigrationConfig(BaseModel):
    """Batch process settings."""

    batch_id: str = Field(default='migrate-users', description='Batch process ID')
    page_size: int = Field(default=100, description='Users converted per step')
    capability: str = Field(
        default='manage_affiliates', description='Capability required to run steps'
    )
    guard_duplicates: bool = Field(
        default=False,
        description='Skip users that already have an affiliate before inserting',
    )

    @validator('page_size')
    def validate_page_size(cls, v):
        """Validate page size is positive."""
        if v <= 0:
            raise ValueError('Page size must be positive')
        return v

    @validator('batch_id')
    def validate_batch_id(cls, v):
        """Validate batch ID is not blank."""
        if not v.strip():
            raise ValueError('Batch ID must not be empty')
        return v.strip()


class ProgressConfig(BaseModel):
    """Progress store settings."""

    path: str = Field(
        default='.affiliate-migrate/progress.json',
        description='JSON file holding job progress between invocations',
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(
        default=None, description='Log format, replacing the built-in formats'
    )

    @validator('level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for the affiliate migration tool."""

    service: ServiceConfig = Field(..., description='Site API settings')
    job: JobConfig = Field(default_factory=JobConfig, description='Job settings')
    migration: MigrationConfig = Field(
        default_factory=MigrationConfig, description='Migration settings'
    )
    progress: ProgressConfig = Field(
        default_factory=ProgressConfig, description='Progress store settings'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    class Config:
        """Pydantic configuration."""

        extra = 'forbid'  # Don't allow extra fields

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        # Load .env file if it exists
        load_dotenv()

        config_data = {
            'service': {
                'url': os.getenv('AFFILIATE_API_URL'),
                'token': os.getenv('AFFILIATE_API_TOKEN'),
                'timeout': int(os.getenv('AFFILIATE_API_TIMEOUT', 30)),
            },
            'job': {
                'roles': os.getenv('MIGRATE_ROLES'),
            },
            'migration': {
                'batch_id': os.getenv('MIGRATE_BATCH_ID', 'migrate-users'),
                'page_size': int(os.getenv('MIGRATE_PAGE_SIZE', 100)),
                'capability': os.getenv('MIGRATE_CAPABILITY', 'manage_affiliates'),
                'guard_duplicates': os.getenv('MIGRATE_GUARD_DUPLICATES', 'false').lower()
                == 'true',
            },
            'progress': {
                'path': os.getenv('MIGRATE_PROGRESS_PATH'),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        # Remove None values
        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        data = self.dict()
        data['job']['roles'] = sorted(data['job']['roles'])

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, indent=2, sort_keys=False)


TEMPLATE_CONFIG = {
    'service': {
        'url': 'https://example.com/wp-json/affiliate-migrate/v1',
        'token': 'your-api-token',
        'timeout': 30,
    },
    'job': {
        'roles': ['subscriber'],
    },
    'migration': {
        'batch_id': 'migrate-users',
        'page_size': 100,
        'capability': 'manage_affiliates',
        'guard_duplicates': False,
    },
    'progress': {
        'path': '.affiliate-migrate/progress.json',
    },
    'logging': {
        'level': 'INFO',
        'file': 'migration.log',
    },
}


def create_template(output_path: str) -> None:
    """Create a configuration template file."""
    config_file = Path(output_path)
    config_file.parent.mkdir(parents=True, exist_ok=True)

    with open(config_file, 'w', encoding='utf-8') as f:
        yaml.dump(
            TEMPLATE_CONFIG, f, default_flow_style=False, indent=2, sort_keys=False
        )
