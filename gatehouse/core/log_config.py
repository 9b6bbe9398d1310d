# (c) Copyright Datacraft, 2026
"""Logging bootstrap from a YAML dictConfig file."""
import logging
import os
from logging.config import dictConfig
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


def configure_logging(path: Path | str | None = None) -> bool:
	"""
	Apply a YAML logging configuration.

	Resolution order: explicit ``path``, ``GATEHOUSE__LOGGING_CFG`` env var,
	then ``Settings.log_config``. Returns False when no file was found, in
	which case the interpreter's default logging setup is left untouched.
	"""
	if path is None:
		env_path = os.environ.get("GATEHOUSE__LOGGING_CFG")
		if env_path:
			path = env_path
		else:
			from gatehouse.core.config import get_settings
			path = get_settings().log_config

	if path is None:
		return False

	logging_config_path = Path(path)
	if not (logging_config_path.exists() and logging_config_path.is_file()):
		return False

	with open(logging_config_path, "r") as stream:
		config = yaml.safe_load(stream)

	dictConfig(config)
	logger.debug(f"Logging configured from {logging_config_path}")
	return True
