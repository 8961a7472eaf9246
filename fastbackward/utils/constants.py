# fastbackward/utils/constants.py

# --- Search Tolerances ---
# A term is pruned when its lower bound exceeds best + BOUND_TOLERANCE.
BOUND_TOLERANCE = 1e-6
# A refit is accepted only when it beats the current best by more than this.
IMPROVEMENT_TOLERANCE = 1e-7

# --- Search Defaults ---
DEFAULT_STEPS = 1000
DEFAULT_K = 2.0
DEFAULT_SCALE = 0.0
DEFAULT_TRACE = 1

# --- Table Labels ---
NO_CHANGE_LABEL = "<none>"
DROP_PREFIX = "- "
AIC_COLUMN = "AIC"
CP_COLUMN = "Cp"

# --- Termination Reasons ---
STOP_NO_DROPPABLE = "No droppable terms remain"
STOP_ALL_PRUNED = "Every droppable term was ruled out by its lower bound"
STOP_NO_CHANGE = "No removal improves the criterion"
STOP_BUDGET = "Step budget exhausted"
STOP_NO_IMPROVEMENT = "Refit did not improve the criterion"

# --- Top-Level Result Directories ---
CONFIG_DIR = "01_RunConfiguration"          # Config used, hash, metadata
SELECTION_DIR = "02_SelectionPath"          # Path table, heading, keep table
FINAL_MODEL_DIR = "03_SelectedModel"        # Final fit summary and pickle

TOP_LEVEL_RESULT_DIRS = [
    CONFIG_DIR,
    SELECTION_DIR,
    FINAL_MODEL_DIR,
]

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
PATH_TABLE_FILE = "selection_path.parquet"
PATH_HEADING_FILE = "selection_path.txt"
KEEP_TABLE_FILE = "keep.parquet"
RUN_SUMMARY_FILE = "run_summary.json"
MODEL_SUMMARY_FILE = "model_summary.txt"
MODEL_PICKLE_FILE = "final_model.joblib"
LOG_FILE = "fastbackward.log"
