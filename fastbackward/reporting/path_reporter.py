import json
import logging
from pathlib import Path
from typing import Dict, Any

import joblib
import pandas as pd

from fastbackward.elimination.results import SelectionResult
from fastbackward.utils.file_io import save_dataframe
from fastbackward.utils import constants


def render_path(result: SelectionResult) -> str:
    """Heading followed by the analysis-of-deviance table of the accepted steps."""
    table = result.anova.to_string(index=False, na_rep="", float_format=lambda v: f"{v:.6g}")
    return f"{result.heading}\n{table}\n"


class PathReporter:
    """
    Persists the outcome of a selection run.

    Layout under ``outputs.base_results_dir``:
    - 02_SelectionPath: path table (parquet, optional xlsx), printable path,
      keep table and run summary.
    - 03_SelectedModel: summary of the final fit and the pickled results.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger
        outputs = config.get('outputs', {})
        self.base_dir = Path(outputs.get('base_results_dir', 'results'))
        self.excel_copy = outputs.get('save_excel_copy', False)
        self.save_model = outputs.get('save_model', True)

    def save(self, result: SelectionResult) -> Dict[str, Any]:
        self.logger.info(f"Saving selection outputs to {self.base_dir}")
        path_dir = self.base_dir / constants.SELECTION_DIR
        model_dir = self.base_dir / constants.FINAL_MODEL_DIR
        path_dir.mkdir(parents=True, exist_ok=True)
        model_dir.mkdir(parents=True, exist_ok=True)

        save_dataframe(result.anova, path_dir / constants.PATH_TABLE_FILE, excel_copy=self.excel_copy)
        (path_dir / constants.PATH_HEADING_FILE).write_text(render_path(result), encoding='utf-8')

        if isinstance(result.keep, pd.DataFrame):
            keep_df = result.keep.T.infer_objects()
            keep_df.index = keep_df.index.astype(int)
            keep_df.index.name = "step"
            save_dataframe(keep_df, path_dir / constants.KEEP_TABLE_FILE,
                           excel_copy=self.excel_copy, index=True)

        summary = self.build_summary(result)
        (path_dir / constants.RUN_SUMMARY_FILE).write_text(json.dumps(summary, indent=2))

        if hasattr(result.model, 'summary'):
            (model_dir / constants.MODEL_SUMMARY_FILE).write_text(result.model.summary(), encoding='utf-8')
        else:
            (model_dir / constants.MODEL_SUMMARY_FILE).write_text(f"{result.formula}\n", encoding='utf-8')

        if self.save_model and hasattr(result.model, 'results'):
            joblib.dump(result.model.results, model_dir / constants.MODEL_PICKLE_FILE)
            self.logger.info(f"Final model saved to {model_dir / constants.MODEL_PICKLE_FILE}")

        return summary

    @staticmethod
    def build_summary(result: SelectionResult) -> Dict[str, Any]:
        criterion = result.anova.iloc[:, -1]
        return {
            'initial_formula': result.initial_formula,
            'final_formula': result.formula,
            'stop_reason': result.stop_reason,
            'n_steps': result.n_steps,
            'removed_terms': [s[len(constants.DROP_PREFIX):] for s in result.anova['Step'].iloc[1:]],
            'initial_criterion': float(criterion.iloc[0]),
            'final_criterion': float(criterion.iloc[-1]),
            'n_evaluated': result.n_evaluated,
            'n_skipped': result.n_skipped,
        }
