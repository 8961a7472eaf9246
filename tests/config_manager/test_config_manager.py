import pytest
import json
import hashlib
import math
from pathlib import Path

from fastbackward.config_manager import ConfigurationManager, resolve_penalty
from fastbackward.utils import constants
from fastbackward.utils.exceptions import ConfigurationError

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "config" / "schema.json"


@pytest.fixture
def valid_config(tmp_path):
    return {
        "data": {
            "file_path": str(tmp_path / "data.csv"),
            "formula": "y ~ x1 + x2",
        },
        "selection": {"criterion": "aic", "trace": 1},
        "outputs": {"base_results_dir": str(tmp_path / "results")}
    }


@pytest.fixture
def write_config(tmp_path):
    def _write(content):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(content))
        return ConfigurationManager(str(config_path), str(SCHEMA_PATH))
    return _write


class TestConfigurationManager:

    def test_load_applies_defaults(self, write_config, valid_config):
        config = write_config(valid_config).load_and_validate()
        selection = config["selection"]
        assert selection["steps"] == constants.DEFAULT_STEPS
        assert selection["scale"] == constants.DEFAULT_SCALE
        assert selection["bounding"] is True
        assert config["data"]["family"] == "ols"
        assert config["outputs"]["save_model"] is True
        assert config["logging"] == {}

    def test_missing_file(self, tmp_path):
        manager = ConfigurationManager(str(tmp_path / "nope.json"), str(SCHEMA_PATH))
        with pytest.raises(ConfigurationError, match="File not found"):
            manager.load_and_validate()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            ConfigurationManager(str(path), str(SCHEMA_PATH)).load_and_validate()

    def test_schema_violation(self, write_config, valid_config):
        valid_config["selection"]["steps"] = -1
        with pytest.raises(ConfigurationError, match="Schema validation failed"):
            write_config(valid_config).load_and_validate()

    def test_formula_needs_tilde(self, write_config, valid_config):
        valid_config["data"]["formula"] = "y + x1"
        with pytest.raises(ConfigurationError, match="must contain '~'"):
            write_config(valid_config).load_and_validate()

    def test_unparseable_formula(self, write_config, valid_config):
        valid_config["data"]["formula"] = "y ~ x1 +"
        with pytest.raises(ConfigurationError, match="could not be parsed"):
            write_config(valid_config).load_and_validate()

    def test_unknown_family(self, write_config, valid_config):
        valid_config["data"]["family"] = "cauchy"
        with pytest.raises(ConfigurationError, match="family"):
            write_config(valid_config).load_and_validate()

    def test_non_positive_k(self, write_config, valid_config):
        valid_config["selection"]["k"] = 0
        with pytest.raises(ConfigurationError, match="k must be > 0"):
            write_config(valid_config).load_and_validate()

    def test_scope_forms_accepted(self, write_config, valid_config):
        valid_config["selection"]["scope"] = ["x1"]
        assert write_config(valid_config).load_and_validate()["selection"]["scope"] == ["x1"]

    def test_save_artifacts(self, write_config, valid_config, tmp_path):
        manager = write_config(valid_config)
        manager.load_and_validate()
        manager.generate_run_id()
        manager.save_artifacts(str(tmp_path / "run"))

        config_dir = tmp_path / "run" / constants.CONFIG_DIR
        saved = json.loads((config_dir / constants.CONFIG_USED_FILE).read_text())
        assert saved == manager.config
        expected_hash = hashlib.sha256(json.dumps(manager.config, sort_keys=True).encode()).hexdigest()
        assert (config_dir / constants.CONFIG_HASH_FILE).read_text() == expected_hash
        metadata = json.loads((config_dir / constants.RUN_METADATA_FILE).read_text())
        assert metadata["run_id"] == manager.run_id

    def test_shipped_default_config_is_valid(self):
        root = SCHEMA_PATH.parent
        config = ConfigurationManager(str(root / "config.json"), str(SCHEMA_PATH)).load_and_validate()
        assert config["data"]["formula"].startswith("mpg ~")


class TestResolvePenalty:

    def test_aic(self):
        assert resolve_penalty({"criterion": "aic"}, 100) == 2.0

    def test_bic(self):
        assert resolve_penalty({"criterion": "BIC"}, 100) == pytest.approx(math.log(100))

    def test_explicit_k_wins(self):
        assert resolve_penalty({"criterion": "bic", "k": 3.5}, 100) == 3.5

    def test_default_is_aic(self):
        assert resolve_penalty({}, 100) == 2.0

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            resolve_penalty({"criterion": "hqic"}, 100)
