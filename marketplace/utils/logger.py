"""
Logging setup for the marketplace service

dictConfig based configuration with an optional YAML override file, plus
small helpers for request and audit logging.
"""

import copy
import logging
import logging.config
import os
from typing import Any, Dict, Optional

import yaml

LOGGER_NAMESPACE = "marketplace"

DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        },
        'detailed': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(lineno)d - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        },
        'json': {
            'format': '{"timestamp": "%(asctime)s", "logger": "%(name)s", "level": "%(levelname)s", "module": "%(module)s", "line": %(lineno)d, "message": "%(message)s"}',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        }
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'level': 'INFO',
            'formatter': 'default',
            'stream': 'ext://sys.stdout'
        }
    },
    'root': {
        'level': 'INFO',
        'handlers': ['console']
    },
    'loggers': {
        LOGGER_NAMESPACE: {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False
        }
    }
}


def load_logging_config(config_path: Optional[str]) -> Dict[str, Any]:
    """
    Load a dictConfig mapping from a YAML file, or the default one

    Args:
        config_path: Path to a YAML logging config file

    Returns:
        dict: Logging configuration
    """
    if config_path and os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
        if isinstance(config, dict):
            return config
        logging.getLogger(__name__).warning(
            f"Logging config at {config_path} is not a mapping, using defaults"
        )
    return copy.deepcopy(DEFAULT_LOGGING_CONFIG)


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    environment: Optional[str] = None
) -> Dict[str, Any]:
    """
    Configure logging for the process

    Args:
        config_path: Optional YAML dictConfig file
        log_level: Override level for every logger and handler
        log_format: Override formatter ('default', 'detailed', 'json')
        environment: Name of an environment section inside the config to merge

    Returns:
        dict: The configuration that was applied
    """
    config = load_logging_config(config_path)

    # Environment-specific sections merge over the base handlers/loggers
    if environment and isinstance(config.get(environment), dict):
        env_config = config.pop(environment)
        config.setdefault('handlers', {}).update(env_config.get('handlers', {}))
        config.setdefault('loggers', {}).update(env_config.get('loggers', {}))

    if log_level:
        level = log_level.upper()
        for logger_config in config.get('loggers', {}).values():
            logger_config['level'] = level
        for handler_config in config.get('handlers', {}).values():
            handler_config['level'] = level
        if 'root' in config:
            config['root']['level'] = level

    if log_format and log_format in config.get('formatters', {}):
        for handler_config in config.get('handlers', {}).values():
            handler_config['formatter'] = log_format

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug(f"Logging configured (environment={environment})")
    return config


class RequestLogger:
    """Logger for HTTP requests"""

    def __init__(self, name: str = f"{LOGGER_NAMESPACE}.requests"):
        self.logger = logging.getLogger(name)

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        response_time: float,
        ip_address: Optional[str] = None
    ):
        self.logger.info(
            f"{method} {path} {status_code} {response_time:.3f}s",
            extra={
                'request_method': method,
                'request_path': path,
                'response_status': status_code,
                'response_time': response_time,
                'ip_address': ip_address,
                'event_type': 'http_request'
            }
        )


class AuditLogger:
    """Audit trail for security-relevant account events"""

    def __init__(self, name: str = f"{LOGGER_NAMESPACE}.audit"):
        self.logger = logging.getLogger(name)

    def log_user_action(
        self,
        actor: str,
        action: str,
        resource: str,
        resource_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Record an account event. Never pass codes, tokens or passwords in details."""
        self.logger.info(
            f"{actor} performed {action} on {resource}"
            + (f" {resource_id}" if resource_id is not None else ""),
            extra={
                'actor': actor,
                'action': action,
                'resource': resource,
                'resource_id': resource_id,
                'details': details or {},
                'event_type': 'user_action'
            }
        )


def get_request_logger() -> RequestLogger:
    return RequestLogger()


def get_audit_logger() -> AuditLogger:
    return AuditLogger()
