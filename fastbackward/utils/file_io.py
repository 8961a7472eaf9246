import pandas as pd
from pathlib import Path

READERS = {
    ".parquet": pd.read_parquet,
    ".xlsx": pd.read_excel,
    ".xls": pd.read_excel,
    ".csv": pd.read_csv,
    ".tsv": lambda path: pd.read_csv(path, sep="\t"),
}


def save_dataframe(df: pd.DataFrame, path: Path, *, excel_copy: bool = False, index: bool = False) -> Path:
    """
    Write ``df`` as Parquet, plus an ``.xlsx`` twin when ``excel_copy`` is set.

    Column labels are written as strings (Parquet rejects integer labels such
    as the step numbers of a keep table).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    out = df.rename(columns=str)
    out.to_parquet(path, index=index)

    if excel_copy:
        out.to_excel(path.with_suffix(".xlsx"), index=index)

    return path


def read_dataframe(path: Path) -> pd.DataFrame:
    """Load the modelling data set; the reader is chosen from the file extension."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in READERS:
        raise ValueError(f"Unsupported file extension for reading: {suffix} (expected one of {sorted(READERS)})")
    return READERS[suffix](path)
