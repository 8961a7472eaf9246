import json
import os
import hashlib
import sys
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

import jsonschema
import numpy as np
import pandas as pd
import patsy
import statsmodels
from patsy import PatsyError

from fastbackward.models.model_factory import ModelFactory
from fastbackward.models.terms import parse_formula
from fastbackward.utils.exceptions import ConfigurationError
from fastbackward.utils import constants

CRITERIA = ('aic', 'bic')


def resolve_penalty(selection: Dict[str, Any], nobs: int) -> float:
    """
    Penalty multiplier k per degree of freedom.

    An explicit ``k`` wins; otherwise ``aic`` gives 2 and ``bic`` gives log(n).
    """
    k = selection.get('k')
    if k is not None:
        return float(k)
    criterion = str(selection.get('criterion', 'aic')).lower()
    if criterion == 'aic':
        return constants.DEFAULT_K
    if criterion == 'bic':
        return math.log(nobs)
    raise ConfigurationError(f"Unknown criterion '{criterion}', expected one of {CRITERIA}")


class ConfigurationManager:
    """
    Loads the JSON run configuration, checks it against the schema and the
    selection rules, and fills in defaults. One instance per selection run.
    """

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        self.config_path = Path(config_path)
        self.schema_path = Path(schema_path)
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Returns:
            Dict[str, Any]: Validated configuration with defaults applied.

        Raises:
            ConfigurationError: Missing file, bad JSON, schema or rule violation.
        """
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        self._validate_schema()
        self._validate_logic()
        self._apply_defaults()

        self.logger.debug(f"Configuration {self.config_path} validated")
        return self.config

    def generate_run_id(self) -> str:
        """Timestamp identifier (YYYYMMDD_HHMMSS), fixed on first call."""
        if not self.run_id:
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Record what produced this run under ``<output_dir>/01_RunConfiguration``:
        the configuration used, its SHA-256 and the library versions that
        determine the fitted criterion values.
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        (config_dir / constants.CONFIG_USED_FILE).write_text(json.dumps(self.config, indent=2))

        config_hash = hashlib.sha256(json.dumps(self.config, sort_keys=True).encode()).hexdigest()
        (config_dir / constants.CONFIG_HASH_FILE).write_text(config_hash)

        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'config_path': str(self.config_path),
            'config_hash': config_hash,
            'python_version': sys.version,
            'platform': sys.platform,
            'working_directory': os.getcwd(),
            'library_versions': {
                'numpy': np.__version__,
                'pandas': pd.__version__,
                'patsy': patsy.__version__,
                'statsmodels': statsmodels.__version__,
            },
        }
        (config_dir / constants.RUN_METADATA_FILE).write_text(json.dumps(metadata, indent=2))

    def _load_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigurationError(f"File not found: {path}")
        try:
            return json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            location = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigurationError(f"Schema validation failed at {location}: {e.message}")

    def _validate_logic(self) -> None:
        """Logical validation beyond what the schema expresses."""
        # --- Data Section ---
        data = self.config.get('data', {})
        for key in ['file_path', 'formula']:
            if not data.get(key):
                raise ConfigurationError(f"Data '{key}' must be specified and non-empty.")
        if '~' not in data['formula']:
            raise ConfigurationError(f"Data 'formula' must contain '~', got '{data['formula']}'")
        try:
            parse_formula(data['formula'])
        except PatsyError as e:
            raise ConfigurationError(f"Data 'formula' could not be parsed: {e}")

        family = str(data.get('family', 'ols')).lower()
        if family not in ModelFactory.get_available_families():
            raise ConfigurationError(
                f"Data 'family' must be one of {ModelFactory.get_available_families()}, got '{family}'"
            )

        # --- Selection Section ---
        selection = self.config.get('selection', {})
        criterion = str(selection.get('criterion', 'aic')).lower()
        if criterion not in CRITERIA:
            raise ConfigurationError(f"selection.criterion must be one of {CRITERIA}, got '{criterion}'")

        k = selection.get('k')
        if k is not None and k <= 0:
            raise ConfigurationError(f"selection.k must be > 0, got {k}")

        scale = selection.get('scale', 0.0)
        if scale < 0:
            raise ConfigurationError(f"selection.scale must be >= 0, got {scale}")

        steps = selection.get('steps', constants.DEFAULT_STEPS)
        if steps < 0:
            raise ConfigurationError(f"selection.steps must be >= 0, got {steps}")

        trace = selection.get('trace', constants.DEFAULT_TRACE)
        if trace < 0:
            raise ConfigurationError(f"selection.trace must be >= 0, got {trace}")

        scope = selection.get('scope')
        if scope is not None and not isinstance(scope, (str, list)):
            raise ConfigurationError("selection.scope must be a formula string or a list of terms")

    def _apply_defaults(self) -> None:
        selection = self.config.setdefault('selection', {})
        selection.setdefault('criterion', 'aic')
        selection.setdefault('scale', constants.DEFAULT_SCALE)
        selection.setdefault('steps', constants.DEFAULT_STEPS)
        selection.setdefault('trace', constants.DEFAULT_TRACE)
        selection.setdefault('bounding', True)
        selection.setdefault('show_progress', False)

        self.config['data'].setdefault('family', 'ols')
        self.config.setdefault('logging', {})
        outputs = self.config.setdefault('outputs', {})
        outputs.setdefault('base_results_dir', 'results')
        outputs.setdefault('save_excel_copy', False)
        outputs.setdefault('save_model', True)
        self.logger.debug(f"Selection settings resolved: {selection}")
