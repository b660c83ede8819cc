"""
Configuration utilities for IPTB
"""

import yaml
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional, Union
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException
import os

from ..errors import ConfigurationError

ROOT_ENV_VAR = "IPTB_ROOT"
CONFIG_ENV_VAR = "IPTB_CONFIG"
DEFAULT_ROOT_NAME = "testbed"


@dataclass
class DaemonSettings:
    """How the daemon under test is invoked"""
    binary: str = "ipfs"
    init_args: List[str] = field(default_factory=lambda: ["init", "-b=1024"])
    run_args: List[str] = field(default_factory=lambda: ["daemon"])
    repo_env: str = "IPFS_PATH"


@dataclass
class ProbeSettings:
    attempts: int = 50
    interval: float = 0.2
    request_timeout: float = 2.0
    method: str = "GET"
    api_prefix: str = "/api/v0"


@dataclass
class SupervisorSettings:
    stop_timeout: float = 10.0


@dataclass
class InitSettings:
    max_workers: int = 8


@dataclass
class LoggingSettings:
    level: str = "INFO"
    structured: bool = False


@dataclass
class Settings:
    """Top-level IPTB settings"""
    root: str = ""
    daemon: DaemonSettings = field(default_factory=DaemonSettings)
    probe: ProbeSettings = field(default_factory=ProbeSettings)
    supervisor: SupervisorSettings = field(default_factory=SupervisorSettings)
    init: InitSettings = field(default_factory=InitSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file
    
    Args:
        config_path: Path to configuration file
        
    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path)
    
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")
    
    if config_path.suffix in ['.yaml', '.yml']:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
    elif config_path.suffix == '.json':
        with open(config_path, 'r') as f:
            config = json.load(f)
    else:
        raise ConfigurationError(f"Unsupported config format: {config_path.suffix}")
    
    # Resolve environment variables
    config = resolve_env_vars(config)
    
    return config


def resolve_env_vars(config: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """
    Resolve environment variables in configuration
    
    Supports ${ENV_VAR} and ${ENV_VAR:default} syntax. An unset variable
    without a default resolves to the empty string.
    """
    environ = os.environ if environ is None else environ

    if isinstance(config, str):
        if config.startswith('${') and config.endswith('}'):
            env_var = config[2:-1]
            
            if ':' in env_var:
                var_name, default = env_var.split(':', 1)
                return environ.get(var_name, default)
            return environ.get(env_var, '')
        return config
    
    elif isinstance(config, dict):
        return {k: resolve_env_vars(v, environ) for k, v in config.items()}
    
    elif isinstance(config, list):
        return [resolve_env_vars(item, environ) for item in config]
    
    return config


def load_settings(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Settings:
    """
    Build Settings from defaults, an optional file and overrides

    Later sources override earlier ones. Unknown keys are rejected.
    """
    merged = OmegaConf.structured(Settings)
    sources = []
    if config_path:
        sources.append(load_config(config_path))
    if overrides:
        sources.append(overrides)

    try:
        for source in sources:
            merged = OmegaConf.merge(merged, source)
        return OmegaConf.to_object(merged)
    except OmegaConfBaseException as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def resolve_root(
    settings: Settings,
    environ: Optional[Mapping[str, str]] = None
) -> Path:
    """
    Resolve the directory all nodes live under

    Explicit setting first, then IPTB_ROOT, then $HOME/testbed.
    """
    environ = os.environ if environ is None else environ

    if settings.root:
        return Path(settings.root)

    root = environ.get(ROOT_ENV_VAR)
    if root:
        return Path(root)

    home = environ.get('HOME')
    if not home:
        raise ConfigurationError("could not find home directory")

    return Path(home) / DEFAULT_ROOT_NAME
