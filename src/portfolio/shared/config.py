from logging import CRITICAL, DEBUG, ERROR, INFO, WARNING
from os import PathLike, environ
from pathlib import Path
from tomllib import load
from typing import Literal

from pydantic import BaseModel, field_validator

DEFAULT_CONFIG_PATH = Path("config.toml")
CONFIG_ENV_VAR = "PORTFOLIO_CONFIG"


class General(BaseModel):
    title: str


class Database(BaseModel):
    path: str


class Logging(BaseModel):
    level: int

    @field_validator("level", mode="before")
    @classmethod
    def convert_log_level(cls, value):
        if isinstance(value, int):
            return value
        log_levels = {
            "DEBUG": DEBUG,
            "INFO": INFO,
            "WARNING": WARNING,
            "ERROR": ERROR,
            "CRITICAL": CRITICAL,
        }
        return log_levels.get(value.upper(), INFO)


class Paths(BaseModel):
    logs: str
    files: str


class Files(BaseModel):
    max_file_size: int = 10485760  # 10 MB default


class Auth(BaseModel):
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    cookie_expire_days: int = 7
    cookie_secure: bool = False
    reset_token_minutes: int = 15


class Media(BaseModel):
    backend: Literal["local", "cloudinary"] = "local"
    base_url: str = "http://localhost:4000/media"
    cloud_name: str = ""
    api_key: str = ""
    api_secret: str = ""
    timeout: float = 30.0


class Mail(BaseModel):
    backend: Literal["log", "smtp"] = "log"
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    sender: str = ""
    use_ssl: bool = False
    use_tls: bool = True
    timeout: int = 12


class Portfolio(BaseModel):
    dashboard_url: str
    owner_email: str = ""


class RateLimit(BaseModel):
    timeout_period: int
    ip_rate_limit: int


class Network(BaseModel):
    host: str
    port: int
    reload: bool
    allow_origins: list[str] = ["*"]

    rate_limit: RateLimit


class Config(BaseModel):
    general: General
    database: Database
    paths: Paths
    files: Files
    logging: Logging
    auth: Auth
    media: Media
    mail: Mail
    portfolio: Portfolio
    network: Network


def load_config(
    shared_config_file: PathLike | None = None,
    specific_config_file: PathLike | None = None,
) -> Config:
    """Load and merge configurations from TOML files.

    Without an explicit path the file named by ``PORTFOLIO_CONFIG`` is used,
    falling back to ``config.toml`` in the working directory.
    """
    if shared_config_file is None:
        shared_config_file = Path(environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))

    with Path(shared_config_file).open("rb") as f:
        config_data = load(f)

    # Sections of the specific file replace whole sections of the shared one
    if specific_config_file:
        with Path(specific_config_file).open("rb") as f:
            specific_data = load(f)
            config_data.update(specific_data)

    return Config(**config_data)
