"""
Sample targets, design matrix and contrast matrix construction
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Union

import pandas as pd

from ..exceptions import DataShapeError
from ..utils import require_columns

logger = logging.getLogger(__name__)

FILENAME_COLUMN = "Filename"
GROUP_COLUMN = "Group"


def make_names(name: str) -> str:
    """Syntactically valid R name, as produced by R's ``make.names``"""
    safe = re.sub(r"[^0-9A-Za-z._]", ".", str(name))
    if not re.match(r"^([A-Za-z]|\.(?![0-9]))", safe):
        safe = "X" + safe
    return safe


def load_sample_targets(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read the whitespace-delimited sample metadata file

    The file needs ``Filename`` and ``Group`` columns; each filename may
    appear only once.
    """
    path = Path(path)
    targets = pd.read_csv(path, sep=r"\s+", dtype=str)
    require_columns(targets, [FILENAME_COLUMN, GROUP_COLUMN], source=str(path))

    duplicated = targets[FILENAME_COLUMN][targets[FILENAME_COLUMN].duplicated()]
    if not duplicated.empty:
        raise DataShapeError(
            f"Sample '{duplicated.iloc[0]}' has more than one group in {path}",
            field=FILENAME_COLUMN,
        )

    missing_group = targets[targets[GROUP_COLUMN].isna()]
    if not missing_group.empty:
        raise DataShapeError(
            f"Sample '{missing_group[FILENAME_COLUMN].iloc[0]}' has no group",
            field=GROUP_COLUMN,
        )

    logger.info(
        f"Loaded {len(targets)} sample targets in "
        f"{targets[GROUP_COLUMN].nunique()} groups from {path.name}"
    )
    return targets[[FILENAME_COLUMN, GROUP_COLUMN]].reset_index(drop=True)


def validate_targets(
    targets: pd.DataFrame, cel_files: Iterable[Union[str, Path]]
) -> pd.DataFrame:
    """
    Match targets against the array files present

    Every array file must have exactly one group. Targets naming files that
    are not present are dropped with a warning.

    Returns:
        Targets restricted to the present files, sorted by filename
    """
    present = sorted(Path(f).name for f in cel_files)
    if not present:
        raise DataShapeError("No array files found", field=FILENAME_COLUMN)

    assigned = set(targets[FILENAME_COLUMN])
    unassigned = [name for name in present if name not in assigned]
    if unassigned:
        raise DataShapeError(
            f"Array file '{unassigned[0]}' has no group assignment "
            f"({len(unassigned)} unassigned in total)",
            field=GROUP_COLUMN,
        )

    extra = sorted(assigned - set(present))
    if extra:
        logger.warning(f"Ignoring targets without array files: {', '.join(extra)}")

    matched = targets[targets[FILENAME_COLUMN].isin(present)]
    return sort_by_filename(matched)


def sort_by_filename(targets: pd.DataFrame) -> pd.DataFrame:
    return targets.sort_values(FILENAME_COLUMN, kind="mergesort").reset_index(
        drop=True
    )


def sort_by_group(targets: pd.DataFrame) -> pd.DataFrame:
    """Targets ordered by group, then filename; used for plot ordering"""
    return targets.sort_values(
        [GROUP_COLUMN, FILENAME_COLUMN], kind="mergesort"
    ).reset_index(drop=True)


def build_design_matrix(targets: pd.DataFrame) -> pd.DataFrame:
    """
    Indicator design matrix, one column per distinct group

    Rows follow the filename order, columns the sorted group labels.
    """
    require_columns(targets, [FILENAME_COLUMN, GROUP_COLUMN], source="sample targets")
    ordered = sort_by_filename(targets)
    groups = sorted(ordered[GROUP_COLUMN].unique())

    design = pd.DataFrame(
        [[int(group == level) for level in groups] for group in ordered[GROUP_COLUMN]],
        index=pd.Index(ordered[FILENAME_COLUMN], name=FILENAME_COLUMN),
        columns=groups,
    )
    return design


def parse_contrast(contrast: str) -> List[str]:
    """'HGP-Control' -> ['HGP', 'Control']"""
    parts = [p.strip() for p in str(contrast).split("-")]
    if len(parts) != 2 or not all(parts):
        raise DataShapeError(
            f"Contrast '{contrast}' must be written as 'GroupA-GroupB'",
            field="comparisons",
        )
    return parts


def build_contrast_matrix(contrasts: List[str], groups: List[str]) -> pd.DataFrame:
    """
    Contrast matrix (groups x contrasts) for pairwise group differences

    Columns are the R-safe contrast names; the left group gets +1 and the
    right group -1.
    """
    if not contrasts:
        raise DataShapeError("No group comparisons configured", field="comparisons")

    matrix = pd.DataFrame(0, index=list(groups), columns=[], dtype=int)
    for contrast in contrasts:
        left, right = parse_contrast(contrast)
        for group in (left, right):
            if group not in matrix.index:
                raise DataShapeError(
                    f"Contrast '{contrast}' references unknown group '{group}'; "
                    f"design groups: {', '.join(groups)}",
                    field="comparisons",
                )
        column = pd.Series(0, index=matrix.index, dtype=int)
        column[left] = 1
        column[right] = -1
        matrix[make_names(contrast)] = column

    return matrix


@dataclass
class DesignSpec:
    """Design and contrast matrices ready to hand to limma"""

    targets: pd.DataFrame
    design: pd.DataFrame
    contrasts: pd.DataFrame
    contrast_labels: Dict[str, str]

    @property
    def contrast_names(self) -> List[str]:
        return list(self.contrasts.columns)

    @classmethod
    def from_targets(
        cls, targets: pd.DataFrame, comparisons: List[str]
    ) -> "DesignSpec":
        design = build_design_matrix(targets)
        contrasts = build_contrast_matrix(comparisons, list(design.columns))
        labels = {make_names(c): c for c in comparisons}
        return cls(
            targets=sort_by_filename(targets),
            design=design,
            contrasts=contrasts,
            contrast_labels=labels,
        )
