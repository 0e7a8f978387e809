"""
Expression table loading and gene-level deduplication
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import DataShapeError
from ..utils import require_columns

logger = logging.getLogger(__name__)


@dataclass
class ColorScale:
    """Symmetric colour scale shared by every rendered pathway"""

    bound: int
    bins: int

    @property
    def limits(self) -> Tuple[int, int]:
        return (-self.bound, self.bound)


def load_expression_table(
    path: Union[str, Path],
    id_column: str,
    columns: Optional[Sequence[str]] = None,
    sep: str = "\t",
    decimal: str = ",",
) -> pd.DataFrame:
    """
    Read a tab-delimited, decimal-comma expression table

    Args:
        path: Expression file
        id_column: Column holding the gene identifier
        columns: Condition columns to keep; all other columns when empty
        sep: Field separator
        decimal: Decimal mark used by the numeric columns

    Returns:
        DataFrame with the id column followed by numeric condition columns
    """
    path = Path(path)
    df = pd.read_csv(path, sep=sep, decimal=decimal)
    logger.info(f"Loaded expression table {path.name}: {df.shape[0]} rows")

    require_columns(df, [id_column], source=str(path))

    if columns:
        require_columns(df, columns, source=str(path))
        value_columns = list(columns)
    else:
        value_columns = [c for c in df.columns if c != id_column]

    if not value_columns:
        raise DataShapeError(
            f"No condition columns found in {path}", field="columns"
        )

    values = df[value_columns].apply(pd.to_numeric, errors="coerce")
    non_numeric = [c for c in value_columns if values[c].isna().all()]
    if non_numeric:
        raise DataShapeError(
            f"Condition column '{non_numeric[0]}' in {path} holds no numeric values",
            field=non_numeric[0],
        )

    return pd.concat([df[[id_column]], values], axis=1)


def deduplicate_expression(df: pd.DataFrame, id_column: str) -> pd.DataFrame:
    """
    Collapse repeated gene identifiers by arithmetic mean

    Rows whose identifier is missing, not numeric or not a whole number are
    dropped before the aggregation. The result is indexed by the integer gene
    identifier.
    """
    require_columns(df, [id_column])

    ids = pd.to_numeric(df[id_column], errors="coerce")
    keep = ids.notna() & np.isfinite(ids)
    dropped = int((~keep).sum())
    if dropped:
        logger.info(f"Dropping {dropped} rows without a numeric {id_column}")

    fractional = keep & (ids != np.floor(ids))
    if fractional.any():
        logger.warning(
            f"Dropping {int(fractional.sum())} rows with a non-integer {id_column}: "
            f"{list(df.loc[fractional, id_column])}"
        )
        keep &= ~fractional

    clean = df.loc[keep].drop(columns=[id_column]).copy()
    clean.index = ids[keep].astype("int64").rename(id_column)

    dedup = clean.groupby(level=0, sort=True).mean()
    logger.info(
        f"Deduplicated {len(clean)} rows into {len(dedup)} unique {id_column} values"
    )
    return dedup


def compute_color_scale(df: pd.DataFrame) -> ColorScale:
    """
    Colour bound from the largest absolute value in the whole table

    The bound is rounded to an integer and applied symmetrically with
    ``2 * bound`` bins. A table of zeros still gets a bound of 1.
    """
    values = df.select_dtypes(include=[np.number]).to_numpy(dtype=float)
    finite = values[np.isfinite(values)]
    if finite.size == 0:
        raise DataShapeError("Expression table has no finite values", field="values")

    bound = int(round(float(np.max(np.abs(finite)))))
    bound = max(bound, 1)
    return ColorScale(bound=bound, bins=2 * bound)


def selected_columns(df: pd.DataFrame, columns: Optional[List[str]]) -> List[str]:
    """Columns to colour on the diagrams; all of them when none are configured"""
    if not columns:
        return list(df.columns)
    require_columns(df, columns)
    return list(columns)
